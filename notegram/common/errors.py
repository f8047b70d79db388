"""
Notegram Error Taxonomy

Errors raised inside the core. Public entry points catch these, log them
and degrade to raw content, so callers never see them directly.
"""

from typing import Optional


class NotegramError(Exception):
    """Base class for all notegram errors."""


class ConfigurationError(NotegramError):
    """Missing or invalid configuration for the active provider."""


class ProviderError(NotegramError):
    """Error reported by an AI provider.

    Not retryable unless raised as ``TransientProviderError``.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status = status
        self.code = code


class TransientProviderError(ProviderError):
    """Rate limiting, 5xx, timeouts and network failures."""

    retryable = True


class PermanentProviderError(ProviderError):
    """Invalid key or exhausted quota. Never retried."""

    QUOTA = "quota"
    AUTH = "auth"

    def __init__(self, message: str, *, kind: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.kind = kind


class EmptyResponseError(ProviderError):
    """Provider answered with a well-formed but empty result."""


class AttachmentRetrievalError(NotegramError):
    """An attachment could not be downloaded or saved."""

    def __init__(self, message: str, *, item_id: str = "") -> None:
        super().__init__(message)
        self.item_id = item_id


class RuleApplicationError(NotegramError):
    """A categorization rule failed while being evaluated."""


class ClassificationError(NotegramError):
    """AI classification failed."""
