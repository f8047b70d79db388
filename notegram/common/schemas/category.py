"""
Category Schemas

Categories and categorization rules are persisted in the configuration file,
so they are pydantic models. A CategoryMatch is the transient result of one
categorization call.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================

class RuleType(str, Enum):
    """How a rule decides whether content belongs to its category"""
    KEYWORDS = "keywords"
    AI_CLASSIFICATION = "ai"


# ============================================================================
# Models
# ============================================================================

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_id(prefix: str) -> str:
    """Generate a unique ID such as ``cat_3f2a9c0d1b7e``"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Category(BaseModel):
    """User-defined note category"""
    id: str = Field(default_factory=lambda: generate_id("cat"))
    name: str
    description: str = ""
    color: str = "#95a5a6"
    keywords: List[str] = Field(default_factory=list)
    note_path_template: str = ""
    file_path_override: Optional[str] = None
    enabled: bool = True
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    @property
    def tag(self) -> str:
        """Hashtag form of the name, e.g. ``#side-projects``"""
        return "#" + "-".join(self.name.lower().split())


class CategorizationRule(BaseModel):
    """Priority-ordered predicate mapping content to a category"""
    id: str = Field(default_factory=lambda: generate_id("rule"))
    category_id: str
    type: RuleType = RuleType.KEYWORDS
    condition: str = ""  # comma-separated keywords for KEYWORDS rules
    priority: int = 0  # higher is evaluated first
    enabled: bool = True

    @property
    def keywords(self) -> List[str]:
        return [k.strip().lower() for k in self.condition.split(",") if k.strip()]


@dataclass
class CategoryMatch:
    """Outcome of resolving content to a category"""
    category_id: str
    confidence: float
    matched_rule: Optional[str] = None
    matched_keywords: List[str] = field(default_factory=list)


# ============================================================================
# Defaults
# ============================================================================

DEFAULT_CATEGORIES = [
    {
        "name": "Work",
        "description": "Work notes, projects, meetings",
        "color": "#3498db",
        "keywords": ["work", "project", "meeting", "task", "deadline", "client", "colleague", "report"],
        "note_path_template": "Work/{{date:YYYY}}/{{date:MM}}/{{date:DD-HH-mm}}.md",
    },
    {
        "name": "Personal",
        "description": "Personal notes, thoughts, plans",
        "color": "#e74c3c",
        "keywords": ["personal", "family", "friends", "hobby", "health", "shopping", "home"],
        "note_path_template": "Personal/{{date:YYYY-MM}}/{{date:DD-HH-mm}}.md",
    },
    {
        "name": "Ideas",
        "description": "Creative ideas, concepts, inspiration",
        "color": "#f39c12",
        "keywords": ["idea", "concept", "inspiration", "creativity", "innovation", "solution"],
        "note_path_template": "Ideas/{{date:YYYY}}/{{content:30}}.md",
    },
    {
        "name": "Learning",
        "description": "Educational materials, study notes",
        "color": "#9b59b6",
        "keywords": ["learning", "education", "course", "lesson", "knowledge", "skill", "practice"],
        "note_path_template": "Learning/{{date:YYYY}}/{{content:20}}/{{date:MM-DD}}.md",
    },
]


def default_categories() -> List[Category]:
    """Fresh Category instances for the built-in defaults"""
    return [Category(**data) for data in DEFAULT_CATEGORIES]
