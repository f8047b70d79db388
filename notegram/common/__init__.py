"""
Notegram Common Module

Shared infrastructure for the AI, categorization and note assembly layers.
"""

from .config import NotegramConfig, load_config, save_config
from .errors import (
    NotegramError,
    ConfigurationError,
    ProviderError,
    TransientProviderError,
    PermanentProviderError,
    EmptyResponseError,
    AttachmentRetrievalError,
    RuleApplicationError,
    ClassificationError,
)
from .log_events import log_event

__all__ = [
    "NotegramConfig",
    "load_config",
    "save_config",
    "NotegramError",
    "ConfigurationError",
    "ProviderError",
    "TransientProviderError",
    "PermanentProviderError",
    "EmptyResponseError",
    "AttachmentRetrievalError",
    "RuleApplicationError",
    "ClassificationError",
    "log_event",
]
