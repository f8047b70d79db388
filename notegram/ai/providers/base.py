"""
Base Provider Adapter

Abstract base for AI provider adapters. Each adapter owns one vendor's
request/response shape and maps that vendor's failures onto the shared error
taxonomy, so the orchestrator can apply one retry policy to all of them.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...common.config import ProviderSettings
from ...common.errors import (
    ProviderError,
    TransientProviderError,
    PermanentProviderError,
)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

_TRANSIENT_MARKERS = ("timeout", "timed out", "network", "connection", "rate limit")
_QUOTA_MARKERS = (
    "insufficient_quota",
    "exceeded your current quota",
    "credit balance is too low",
    "quota exceeded",
)
_QUOTA_CODES = {"insufficient_quota", "billing_hard_limit_reached"}
_AUTH_CODES = {"invalid_api_key", "authentication_error", "permission_error", "access_terminated"}
_AUTH_MARKERS = ("api key not valid", "invalid api key", "incorrect api key")


def looks_transient(message: str) -> bool:
    """Text heuristics used when a failure carries no HTTP status."""
    lowered = (message or "").lower()
    return any(marker in lowered for marker in _TRANSIENT_MARKERS)


@dataclass
class ImagePayload:
    """Image sent alongside the text of a vision request"""
    data: bytes
    mime_type: str = "image/jpeg"

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def as_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.as_base64()}"


@dataclass
class AIRequest:
    """One logical AI call, shared by all its attempts"""
    provider: str
    content: str
    prompt: str
    image: Optional[ImagePayload] = None
    attempt: int = 0
    timeout: float = 30.0
    max_attempts: int = 3


class ProviderAdapter(ABC):
    """Base class for AI provider adapters"""

    name: str = ""
    display_name: str = ""

    def __init__(self, settings: ProviderSettings):
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.api_key)

    @property
    def supports_vision(self) -> bool:
        return self.settings.vision_enabled

    @abstractmethod
    async def process(self, request: AIRequest) -> str:
        """
        Send one attempt of ``request`` to the provider.

        Args:
            request: The logical call being attempted

        Returns:
            Non-empty response text

        Raises:
            TransientProviderError: retryable failure
            PermanentProviderError: invalid key or exhausted quota
            EmptyResponseError: the response carried no usable text
            ProviderError: any other non-retryable failure
        """
        pass

    def classify_status(
        self,
        status: Optional[int],
        message: str,
        code: Optional[str] = None,
    ) -> ProviderError:
        """Map an HTTP failure onto the error taxonomy."""
        lowered = (message or "").lower()
        code = (code or "").lower() or None
        details = {"provider": self.name, "status": status, "code": code}

        if code in _QUOTA_CODES or status == 402 or any(m in lowered for m in _QUOTA_MARKERS):
            return PermanentProviderError(
                f"Quota exceeded for {self.display_name}. Top up the account balance or check the plan",
                kind=PermanentProviderError.QUOTA,
                **details,
            )
        if code in _AUTH_CODES or status in (401, 403) or any(m in lowered for m in _AUTH_MARKERS):
            return PermanentProviderError(
                f"{self.display_name} API key is invalid or revoked",
                kind=PermanentProviderError.AUTH,
                **details,
            )
        if status in RETRYABLE_STATUSES:
            return TransientProviderError(message or f"HTTP {status}", **details)
        if status is None and looks_transient(message):
            return TransientProviderError(message, **details)
        return ProviderError(message or f"HTTP {status}", **details)
