"""
Notegram Schemas

"""

from .content import (
    ContentType,
    ContentItem,
    Attachment,
    display_name,
)
from .category import (
    RuleType,
    Category,
    CategorizationRule,
    CategoryMatch,
    DEFAULT_CATEGORIES,
    default_categories,
    generate_id,
)

__all__ = [
    "ContentType",
    "ContentItem",
    "Attachment",
    "display_name",
    "RuleType",
    "Category",
    "CategorizationRule",
    "CategoryMatch",
    "DEFAULT_CATEGORIES",
    "default_categories",
    "generate_id",
]
