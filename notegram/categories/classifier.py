"""
AI Classifier

Asks the active AI provider which category a piece of content belongs to and
resolves the free-text answer against the enabled categories. Answers are
cached per (content, enabled category set) so the same content is only paid
for once.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from ..ai.orchestrator import AIOrchestrator
from ..common.config import AIConfig
from ..common.llm_utils import normalize_answer
from ..common.log_events import log_event
from ..common.schemas.category import Category, CategoryMatch

logger = logging.getLogger("notegram.categories.classifier")

CACHE_CAPACITY = 100

EXACT_CONFIDENCE = 0.9
CACHED_CONFIDENCE = 0.8
KEYWORD_CONFIDENCE = 0.7
FUZZY_CONFIDENCE = 0.6

_NO_MATCH_ANSWERS = {"none", "no"}

_FNV_OFFSET = 0xcbf29ce484222325
_FNV_PRIME = 0x100000001b3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(text: str) -> str:
    """64-bit FNV-1a over the UTF-8 bytes of ``text``, as 16 hex digits.

    Collisions are possible; with at most 100 live cache entries the chance
    is negligible and a collision only returns another content's answer.
    """
    value = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * _FNV_PRIME) & _MASK_64
    return f"{value:016x}"


def cache_key(content: str, categories: List[Category]) -> str:
    ids = ",".join(sorted(c.id for c in categories))
    return f"{fnv1a_64(content)}_{fnv1a_64(ids)}"


class ClassificationCache:
    """
    Bounded FIFO map of cache key to raw provider answer.

    Eviction follows insertion order: when a new key would exceed the
    capacity, the oldest-inserted key is dropped. Overwriting an existing key
    keeps its original position. ``put`` never awaits, so concurrent
    classification tasks cannot interleave inside it.
    """

    def __init__(self, capacity: int = CACHE_CAPACITY):
        self.capacity = capacity
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def put(self, key: str, answer: str) -> None:
        if key in self._entries:
            self._entries[key] = answer
            return
        self._entries[key] = answer
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def clear(self) -> None:
        self._entries.clear()


def build_prompt(content: str, categories: List[Category]) -> str:
    """Prompt listing every candidate category."""
    lines = []
    for category in categories:
        line = f"- **{category.name}**: {category.description}"
        if category.keywords:
            line += f"\n  Keywords: {', '.join(category.keywords)}"
        if category.note_path_template:
            line += f"\n  Note path: {category.note_path_template}"
        lines.append(line)
    descriptions = "\n".join(lines)

    return (
        "Analyze the following content and determine which category it belongs to.\n\n"
        f"Available categories:\n{descriptions}\n\n"
        f"Content to analyze:\n{content}\n\n"
        'Respond with only the name of the most suitable category or "none" if none fits.'
    )


def resolve_answer(answer: str, categories: List[Category]) -> Optional[CategoryMatch]:
    """
    Resolve a provider answer to one of ``categories``.

    Tries in order:
    1. "none"/"no" (no match)
    2. Exact case-insensitive name match
    3. A category keyword contained in the answer
    4. Answer contains the category name, or the name contains the answer
    """
    normalized = normalize_answer(answer)
    if not normalized or normalized in _NO_MATCH_ANSWERS:
        return None

    for category in categories:
        if category.name.lower() == normalized:
            return CategoryMatch(category.id, EXACT_CONFIDENCE, "ai_exact_match")

    for category in categories:
        matched = [k for k in category.keywords if k and k.lower() in normalized]
        if matched:
            return CategoryMatch(category.id, KEYWORD_CONFIDENCE, "ai_keyword_match", matched)

    for category in categories:
        name = category.name.lower()
        if name and (name in normalized or normalized in name):
            return CategoryMatch(category.id, FUZZY_CONFIDENCE, "ai_fuzzy_match")

    return None


class AIClassifier:
    """AI-backed classification with a bounded answer cache."""

    def __init__(self, orchestrator: AIOrchestrator, cache: Optional[ClassificationCache] = None):
        self._orchestrator = orchestrator
        self._cache = cache if cache is not None else ClassificationCache()

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    @property
    def config(self) -> AIConfig:
        return self._orchestrator.config

    @property
    def is_available(self) -> bool:
        return self._orchestrator.is_available

    async def classify(self, content: str, categories: List[Category]) -> Optional[CategoryMatch]:
        """
        Classify ``content`` into one of ``categories``.

        Args:
            content: Text to classify
            categories: Candidate categories; disabled ones are ignored

        Returns:
            CategoryMatch, or None if nothing fits or classification failed
        """
        try:
            enabled = [c for c in categories if c.enabled]
            if not enabled or not (content or "").strip() or not self.is_available:
                return None

            key = cache_key(content, enabled)
            cached = self._cache.get(key)
            if cached is not None:
                match = resolve_answer(cached, enabled)
                if match is not None:
                    logger.debug("Classification served from cache: %s", match.category_id)
                    match.matched_rule = "ai_cached"
                    match.confidence = min(match.confidence, CACHED_CONFIDENCE)
                    return match

            answer = await self._orchestrator.process_with_prompt(
                content, build_prompt(content, enabled), label="classification"
            )
            if not answer:
                return None

            match = resolve_answer(answer, enabled)
            if match is not None:
                self._cache.put(key, answer)
            return match
        except Exception as e:
            log_event(logger, logging.WARNING, "classification_error", error=str(e))
            return None

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> Dict[str, int]:
        return {"size": len(self._cache), "capacity": self._cache.capacity}
