"""
Claude Provider Adapter

Messages API requests. Claude has no separate system slot in this contract:
prompt and content travel together in a single user message.
"""

import logging
from typing import Any, Dict, Optional

import anthropic

from .base import AIRequest, ProviderAdapter
from ...common.config import ProviderSettings
from ...common.errors import EmptyResponseError, TransientProviderError

logger = logging.getLogger("notegram.ai.providers.claude_adapter")

ANTHROPIC_VERSION = "2023-06-01"


def _error_type(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            return error.get("type")
    return None


class ClaudeProvider(ProviderAdapter):
    """Anthropic messages adapter"""

    name = "claude"
    display_name = "Claude"

    def __init__(self, settings: ProviderSettings, client: Optional[Any] = None):
        super().__init__(settings)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.settings.api_key,
                max_retries=0,
                default_headers={"anthropic-version": ANTHROPIC_VERSION},
            )
        return self._client

    def build_body(self, request: AIRequest) -> Dict[str, Any]:
        text = f"{request.prompt}\n\n{request.content}"
        if request.image is None:
            content: Any = text
        else:
            content = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": request.image.mime_type,
                        "data": request.image.as_base64(),
                    },
                },
                {"type": "text", "text": text},
            ]
        return {
            "model": self.settings.model or "claude-3-5-sonnet-20241022",
            "max_tokens": self.settings.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }

    async def process(self, request: AIRequest) -> str:
        try:
            response = await self.client.messages.create(
                **self.build_body(request),
                timeout=request.timeout,
            )
        except anthropic.APITimeoutError as e:
            raise TransientProviderError(f"Request timed out: {e}", provider=self.name)
        except anthropic.APIConnectionError as e:
            raise TransientProviderError(f"Connection error: {e}", provider=self.name)
        except anthropic.APIStatusError as e:
            raise self.classify_status(e.status_code, str(e.message), _error_type(e.body))

        blocks = getattr(response, "content", None) or []
        text = (getattr(blocks[0], "text", "") or "").strip() if blocks else ""
        if not text:
            raise EmptyResponseError("Claude returned an empty response", provider=self.name)
        logger.debug("Claude response received (%d chars)", len(text))
        return text
