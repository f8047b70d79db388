"""
Gemini Provider Adapter

REST generateContent requests over httpx, with the API key passed as the
``key`` query parameter.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .base import AIRequest, ProviderAdapter
from ...common.config import ProviderSettings
from ...common.errors import EmptyResponseError, TransientProviderError

logger = logging.getLogger("notegram.ai.providers.gemini_adapter")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _error_details(response: httpx.Response):
    """Return (message, status code string) from a Gemini error body.

    Error bodies come as ``{"error": {...}}``, sometimes wrapped in a
    one-element list; any other shape falls back to the raw text.
    """
    fallback = response.text or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback, None
    if isinstance(body, list) and len(body) == 1:
        body = body[0]
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return fallback, None
    message = error.get("message") or error.get("status") or f"HTTP {response.status_code}"
    return message, error.get("status")


class GeminiProvider(ProviderAdapter):
    """Google Gemini generateContent adapter"""

    name = "gemini"
    display_name = "Gemini"

    def __init__(self, settings: ProviderSettings, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(settings)
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self.settings.model or "gemini-1.5-flash"

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/models/{self.model}:generateContent"

    def build_body(self, request: AIRequest) -> Dict[str, Any]:
        parts = [{"text": f"{request.prompt}\n\n{request.content}"}]
        if request.image is not None:
            parts.append({
                "inlineData": {
                    "mimeType": request.image.mime_type,
                    "data": request.image.as_base64(),
                }
            })
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": self.settings.temperature,
                "maxOutputTokens": self.settings.max_tokens,
            },
        }

    async def _post(self, client: httpx.AsyncClient, request: AIRequest) -> httpx.Response:
        return await client.post(
            self.endpoint,
            params={"key": self.settings.api_key},
            json=self.build_body(request),
            timeout=request.timeout,
        )

    async def process(self, request: AIRequest) -> str:
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, request)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(request.timeout)) as client:
                    response = await self._post(client, request)
        except httpx.TimeoutException as e:
            raise TransientProviderError(f"Request timed out: {e}", provider=self.name)
        except httpx.TransportError as e:
            raise TransientProviderError(f"Network error: {e}", provider=self.name)

        if response.status_code >= 400:
            message, status_name = _error_details(response)
            raise self.classify_status(response.status_code, message, status_name)

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            text = ""
        text = (text or "").strip()
        if not text:
            raise EmptyResponseError("Gemini returned an empty response", provider=self.name)
        logger.debug("Gemini response received (%d chars)", len(text))
        return text
