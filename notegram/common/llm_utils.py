"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import re
from typing import Dict, Iterable


def strip_code_fences(raw: str) -> str:
    """Remove markdown code fence lines from an LLM response."""
    if not raw:
        return ""
    text = raw.strip()
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text.strip()


def normalize_answer(raw: str) -> str:
    """Lower-case a one-word answer and drop the quoting models like to add.

    ``'**Work**.'`` becomes ``'work'``.
    """
    text = strip_code_fences(raw).lower().strip()
    return text.strip("\"'`*_. \n\t").strip()


def extract_parameters(raw: str, names: Iterable[str]) -> Dict[str, str]:
    """Extract ``name: value`` lines from an LLM response.

    Tries for each name:
    1. A ``name: value`` line (case-insensitive), brackets around the value stripped
    2. "Untitled" for a missing title
    3. The parameter name itself
    """
    text = strip_code_fences(raw)
    values = {}
    for name in names:
        match = re.search(rf"^[\s\-*]*{re.escape(name)}\s*:\s*(.+)$", text, re.IGNORECASE | re.MULTILINE)
        value = ""
        if match:
            value = match.group(1).strip().strip("[]").strip()
        if not value:
            value = "Untitled" if name == "title" else name
        values[name] = value
    return values
