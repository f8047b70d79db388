"""
Categorization Engine

Resolves one category per piece of content:
1. A category force-pinned by the caller wins outright
2. Enabled rules in descending priority (keyword rules, AI rules)
3. AI classification over all enabled categories
4. The configured default category

Owns the category and rule tables. Every mutation builds new tables and
swaps them in whole, so readers never see a half-applied change.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .classifier import AIClassifier
from ..common.config import CategoriesConfig
from ..common.errors import RuleApplicationError
from ..common.log_events import log_event
from ..common.schemas.category import (
    Category,
    CategorizationRule,
    CategoryMatch,
    RuleType,
    default_categories,
)
from ..common.schemas.content import ContentItem

logger = logging.getLogger("notegram.categories.engine")

ChangeCallback = Callable[[List[Category], List[CategorizationRule]], None]

_IMMUTABLE_FIELDS = {"id", "created_at"}


def _sort_rules(rules) -> Tuple[CategorizationRule, ...]:
    # sorted() is stable: equal priorities keep insertion order
    return tuple(sorted(rules, key=lambda r: r.priority, reverse=True))


class CategorizationEngine:
    """Rule engine plus AI classification over a category table."""

    def __init__(
        self,
        config: CategoriesConfig,
        classifier: Optional[AIClassifier] = None,
        on_change: Optional[ChangeCallback] = None,
    ):
        self.config = config
        self._classifier = classifier
        self._on_change = on_change

        categories = list(config.categories)
        seeded = False
        if not categories:
            categories = default_categories()
            seeded = True
            logger.info("Seeded %d default categories", len(categories))

        self._categories: Dict[str, Category] = {c.id: c for c in categories}
        self._rules: Tuple[CategorizationRule, ...] = _sort_rules(config.rules)
        if seeded:
            self._persist()

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def categories(self) -> List[Category]:
        return list(self._categories.values())

    @property
    def rules(self) -> List[CategorizationRule]:
        """Rules in evaluation order"""
        return list(self._rules)

    def get_category(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def find_category_by_name(self, name: str) -> Optional[Category]:
        lowered = (name or "").strip().lower()
        for category in self._categories.values():
            if category.name.lower() == lowered:
                return category
        return None

    def enabled_categories(self) -> List[Category]:
        return [c for c in self._categories.values() if c.enabled]

    def rules_for_category(self, category_id: str) -> List[CategorizationRule]:
        return [r for r in self._rules if r.category_id == category_id]

    @property
    def default_category(self) -> Optional[Category]:
        if not self.config.default_category_id:
            return None
        return self._categories.get(self.config.default_category_id)

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            "total_categories": len(self._categories),
            "enabled_categories": len(self.enabled_categories()),
            "total_rules": len(self._rules),
            "enabled_rules": sum(1 for r in self._rules if r.enabled),
            "default_category_id": self.config.default_category_id or None,
        }
        if self._classifier is not None:
            stats["cache"] = self._classifier.cache_stats()
        return stats

    # =========================================================================
    # Mutations
    # =========================================================================

    def _persist(self) -> None:
        self.config.categories = list(self._categories.values())
        self.config.rules = list(self._rules)
        if self._on_change is not None:
            self._on_change(self.config.categories, self.config.rules)

    def replace_tables(self, categories: List[Category], rules: List[CategorizationRule]) -> None:
        """Swap both tables, e.g. after the configuration file was reloaded."""
        self._categories = {c.id: c for c in categories}
        self._rules = _sort_rules(rules)
        self.config.categories = list(self._categories.values())
        self.config.rules = list(self._rules)

    def create_category(self, **data) -> Category:
        category = Category.model_validate(data)
        self._categories = {**self._categories, category.id: category}
        self._persist()
        logger.info("Created category %s (%s)", category.name, category.id)
        return category

    def update_category(self, category_id: str, **updates) -> Optional[Category]:
        current = self._categories.get(category_id)
        if current is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in _IMMUTABLE_FIELDS}
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        category = Category.model_validate({**current.model_dump(), **changes})
        self._categories = {**self._categories, category_id: category}
        self._persist()
        return category

    def delete_category(self, category_id: str) -> bool:
        """Delete a category together with the rules that target it."""
        if category_id not in self._categories:
            return False
        self._categories = {k: v for k, v in self._categories.items() if k != category_id}
        self._rules = tuple(r for r in self._rules if r.category_id != category_id)
        if self.config.default_category_id == category_id:
            self.config.default_category_id = ""
        self._persist()
        logger.info("Deleted category %s", category_id)
        return True

    def set_default_category(self, category_id: Optional[str]) -> None:
        if category_id and category_id not in self._categories:
            raise KeyError(category_id)
        self.config.default_category_id = category_id or ""
        self._persist()

    def create_rule(self, **data) -> CategorizationRule:
        rule = CategorizationRule.model_validate(data)
        if rule.category_id not in self._categories:
            raise KeyError(rule.category_id)
        self._rules = _sort_rules(self._rules + (rule,))
        self._persist()
        return rule

    def update_rule(self, rule_id: str, **updates) -> Optional[CategorizationRule]:
        for current in self._rules:
            if current.id == rule_id:
                break
        else:
            return None
        changes = {k: v for k, v in updates.items() if k != "id"}
        rule = CategorizationRule.model_validate({**current.model_dump(), **changes})
        self._rules = _sort_rules(rule if r.id == rule_id else r for r in self._rules)
        self._persist()
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        rules = tuple(r for r in self._rules if r.id != rule_id)
        if len(rules) == len(self._rules):
            return False
        self._rules = rules
        self._persist()
        return True

    # =========================================================================
    # Categorization
    # =========================================================================

    async def categorize(
        self,
        content: str,
        item: Optional[ContentItem] = None,
        *,
        forced_category_id: Optional[str] = None,
    ) -> Optional[Category]:
        """
        Resolve the category for ``content``.

        Args:
            content: Text of the note being categorized
            item: Source item, for diagnostics
            forced_category_id: Category pinned by the caller, skips all rules

        Returns:
            The resolved Category, or None
        """
        match = await self.match(content, item, forced_category_id=forced_category_id)
        if match is None:
            return None
        return self._categories.get(match.category_id)

    async def match(
        self,
        content: str,
        item: Optional[ContentItem] = None,
        *,
        forced_category_id: Optional[str] = None,
    ) -> Optional[CategoryMatch]:
        """Same as ``categorize`` but returns how the category was chosen."""
        try:
            if not self.config.enabled:
                return None

            if forced_category_id:
                if forced_category_id in self._categories:
                    return CategoryMatch(forced_category_id, 1.0, "forced")
                logger.warning("Forced category %s does not exist", forced_category_id)

            categories = self._categories
            rules = self._rules
            content = content or ""

            for rule in rules:
                if not rule.enabled:
                    continue
                try:
                    match = await self._apply_rule(rule, content, categories)
                except Exception as e:
                    log_event(
                        logger, logging.WARNING, "categorization_error",
                        rule_id=rule.id, error=str(e),
                        item_id=item.item_id if item else None,
                    )
                    continue
                if match is None:
                    continue
                category = categories.get(match.category_id)
                if category is not None and category.enabled:
                    return match

            if self._classifier is not None and self._classifier.config.categorization_enabled:
                match = await self._classifier.classify(content, [c for c in categories.values() if c.enabled])
                if match is not None and match.category_id in categories:
                    return match

            default = self.default_category
            if default is not None:
                return CategoryMatch(default.id, 0.0, "default")
            return None
        except Exception as e:
            log_event(logger, logging.ERROR, "categorization_error", strategy="chain", error=str(e))
            return None

    async def _apply_rule(
        self,
        rule: CategorizationRule,
        content: str,
        categories: Dict[str, Category],
    ) -> Optional[CategoryMatch]:
        if rule.type is RuleType.KEYWORDS:
            lowered = content.lower()
            matched = [k for k in rule.keywords if k in lowered]
            if matched:
                return CategoryMatch(rule.category_id, 1.0, f"rule:{rule.id}", matched)
            return None

        if rule.type is RuleType.AI_CLASSIFICATION:
            category = categories.get(rule.category_id)
            if category is None or self._classifier is None:
                return None
            match = await self._classifier.classify(content, [category])
            if match is None:
                return None
            return CategoryMatch(rule.category_id, match.confidence, f"rule:{rule.id}")

        raise RuleApplicationError(f"Unsupported rule type: {rule.type}")
