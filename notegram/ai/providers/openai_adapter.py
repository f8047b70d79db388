"""
OpenAI Provider Adapter

Chat-completions requests with the prompt as the system message and the
content as the user message. Vision requests send the image as a base64 data
URL next to the caption.
"""

import logging
from typing import Any, Dict, List, Optional

import openai

from .base import AIRequest, ProviderAdapter
from ...common.config import ProviderSettings
from ...common.errors import EmptyResponseError, TransientProviderError

logger = logging.getLogger("notegram.ai.providers.openai_adapter")

VISION_MODEL = "gpt-4o"


class OpenAIProvider(ProviderAdapter):
    """OpenAI chat-completions adapter"""

    name = "openai"
    display_name = "OpenAI"

    def __init__(self, settings: ProviderSettings, client: Optional[Any] = None):
        super().__init__(settings)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            # Retries are owned by the orchestrator
            self._client = openai.AsyncOpenAI(api_key=self.settings.api_key, max_retries=0)
        return self._client

    def model_for(self, request: AIRequest) -> str:
        model = self.settings.model or "gpt-4o-mini"
        if request.image is not None and "mini" in model:
            return VISION_MODEL
        return model

    def build_messages(self, request: AIRequest) -> List[Dict[str, Any]]:
        if request.image is None:
            user_content: Any = request.content
        else:
            user_content = [
                {"type": "text", "text": request.content or "Analyze this image"},
                {
                    "type": "image_url",
                    "image_url": {"url": request.image.as_data_url(), "detail": "high"},
                },
            ]
        return [
            {"role": "system", "content": request.prompt},
            {"role": "user", "content": user_content},
        ]

    def build_body(self, request: AIRequest) -> Dict[str, Any]:
        return {
            "model": self.model_for(request),
            "messages": self.build_messages(request),
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

    async def process(self, request: AIRequest) -> str:
        try:
            response = await self.client.chat.completions.create(
                **self.build_body(request),
                timeout=request.timeout,
            )
        except openai.APITimeoutError as e:
            raise TransientProviderError(f"Request timed out: {e}", provider=self.name)
        except openai.APIConnectionError as e:
            raise TransientProviderError(f"Connection error: {e}", provider=self.name)
        except openai.APIStatusError as e:
            code = getattr(e, "code", None) or getattr(e, "type", None)
            raise self.classify_status(e.status_code, str(e.message), code)

        choices = getattr(response, "choices", None) or []
        text = (choices[0].message.content or "").strip() if choices else ""
        if not text:
            raise EmptyResponseError("OpenAI returned an empty response", provider=self.name)
        logger.debug("OpenAI response received (%d chars)", len(text))
        return text
