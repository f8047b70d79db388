"""
Path Templates

Renders note and attachment paths from templates such as
``Work/{{date:YYYY}}/{{content:30}}.md``.

Supported placeholders:
- ``{{date:FMT}}``: current time, moment-style tokens (YYYY, YY, MM, DD, HH, mm, ss)
- ``{{messageDate:FMT}}``: time the message was received
- ``{{content:N}}``: first N characters of the note content
- ``{{category}}``, ``{{chat}}``, ``{{user}}``, ``{{file}}``
- ``{{ai:name}}``: a custom AI parameter
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

from ..common.schemas.category import Category
from ..common.schemas.content import ContentItem

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*(?::([^}]*))?\}\}")
_DATE_TOKENS = re.compile(r"YYYY|YY|MM|DD|HH|mm|ss")
_STRFTIME = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
_UNSAFE = re.compile(r'[\\/:*?"<>|#^\[\]]')
_MARKDOWN = re.compile(r"[*_`~>]+")

DEFAULT_SNIPPET_LENGTH = 30


def format_date(value: datetime, fmt: str) -> str:
    """Format ``value`` with moment-style tokens."""
    if value.tzinfo is not None:
        value = value.astimezone()
    pattern = _DATE_TOKENS.sub(lambda m: _STRFTIME[m.group(0)], fmt.replace("%", "%%"))
    return value.strftime(pattern)


def sanitize_segment(text: str) -> str:
    """Make ``text`` safe to use inside a single path segment."""
    text = _UNSAFE.sub("", text or "")
    text = " ".join(text.split())
    return text.strip(" .")


def content_snippet(content: str, length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    text = _MARKDOWN.sub("", content or "")
    text = sanitize_segment(text)[:length].strip(" .")
    return text or "untitled"


def ensure_markdown(path: str) -> str:
    return path if path.lower().endswith(".md") else f"{path}.md"


def ai_parameter_names(template: str) -> List[str]:
    """Names of the ``{{ai:name}}`` placeholders in ``template``, in order."""
    names = []
    for key, arg in _PLACEHOLDER.findall(template or ""):
        name = (arg or "").strip()
        if key == "ai" and name and name not in names:
            names.append(name)
    return names


def render_path(
    template: str,
    *,
    item: Optional[ContentItem] = None,
    content: str = "",
    category: Optional[Category] = None,
    file_name: Optional[str] = None,
    ai_values: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Render a path template.

    Values substituted into the template are sanitized; separators written in
    the template itself are kept. Unknown placeholders are left untouched.
    """
    now = now or datetime.now()
    ai_values = ai_values or {}

    def substitute(match: "re.Match") -> str:
        key, arg = match.group(1), (match.group(2) or "").strip()
        if key == "date":
            return format_date(now, arg or "YYYY-MM-DD")
        if key == "messageDate":
            received = item.received_at if item is not None else now
            return format_date(received, arg or "YYYY-MM-DD")
        if key == "content":
            length = int(arg) if arg.isdigit() else DEFAULT_SNIPPET_LENGTH
            return content_snippet(content, length)
        if key == "category":
            return sanitize_segment(category.name) if category else "Uncategorized"
        if key == "chat":
            return sanitize_segment(item.chat_title if item else "") or "chat"
        if key == "user":
            return sanitize_segment(item.sender_name if item else "") or "unknown"
        if key == "file":
            return sanitize_segment(file_name or "") or "file"
        if key == "ai":
            return sanitize_segment(ai_values.get(arg, "")) or f"param_{arg}"
        return match.group(0)

    path = _PLACEHOLDER.sub(substitute, template or "")
    return "/".join(part.strip() for part in path.split("/") if part.strip())
