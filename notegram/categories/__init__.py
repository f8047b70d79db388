"""
Notegram Categorization

Deterministic rules first, cached AI classification second, default category
last.
"""

from .classifier import AIClassifier, ClassificationCache, fnv1a_64
from .engine import CategorizationEngine

__all__ = [
    "AIClassifier",
    "ClassificationCache",
    "fnv1a_64",
    "CategorizationEngine",
]
