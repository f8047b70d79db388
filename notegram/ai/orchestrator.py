"""
AI Orchestrator

Selects the configured provider, composes prompts and runs every request
under one retry/backoff/timeout policy. Public entry points never raise:
failures are logged as structured events and degrade to ``None`` so the
caller can fall back to the unprocessed content.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple

from .prompts import PromptComposer
from .providers import AIRequest, ImagePayload, ProviderAdapter, build_provider, looks_transient
from ..common.config import AIConfig, ProcessingConfig
from ..common.errors import ConfigurationError, ProviderError, TransientProviderError
from ..common.log_events import log_event
from ..common.schemas.content import ContentItem, ContentType, display_name

logger = logging.getLogger("notegram.ai.orchestrator")

DEFAULT_IMAGE_PROMPT = "Analyze this image"

ImageLoader = Callable[[ContentItem], Awaitable[Optional[bytes]]]


@dataclass
class RetryPolicy:
    """Attempt budget, exponential backoff and per-request timeout"""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    timeout: float = 30.0  # seconds
    jitter: float = 0.1  # up to 10% added to each delay
    random_fn: Callable[[], float] = field(default=random.random, repr=False)

    @classmethod
    def from_config(cls, config: AIConfig, random_fn: Callable[[], float] = random.random) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, int(config.max_attempts)),
            base_delay=float(config.base_delay),
            timeout=float(config.timeout),
            random_fn=random_fn,
        )

    def delay_before(self, attempt: int) -> float:
        """Delay in seconds before ``attempt`` (2 or later)."""
        delay = self.base_delay * (2 ** (attempt - 2))
        return delay + self.random_fn() * self.jitter * delay


class AIOrchestrator:
    """Provider-agnostic AI processing with retries and graceful degradation."""

    def __init__(
        self,
        config: AIConfig,
        processing: Optional[ProcessingConfig] = None,
        composer: Optional[PromptComposer] = None,
        *,
        provider_factory: Callable[[AIConfig], ProviderAdapter] = build_provider,
        image_loader: Optional[ImageLoader] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        random_fn: Callable[[], float] = random.random,
    ):
        self.config = config
        self.processing = processing or ProcessingConfig()
        self.composer = composer or PromptComposer()
        self.image_loader = image_loader
        self._provider_factory = provider_factory
        self._sleep = sleep
        self._random_fn = random_fn

    # =========================================================================
    # Gates
    # =========================================================================

    @property
    def is_available(self) -> bool:
        """True when AI is enabled and the active provider has a key."""
        if not self.config.enabled:
            return False
        try:
            self._provider_factory(self.config)
        except ConfigurationError:
            return False
        return True

    def is_enabled_for(self, content_type: Optional[ContentType]) -> bool:
        if not self.config.enabled or content_type is None:
            return False
        return bool(getattr(self.processing, content_type.value, False))

    def _resolve_provider(self) -> Optional[ProviderAdapter]:
        try:
            return self._provider_factory(self.config)
        except ConfigurationError as e:
            log_event(logger, logging.WARNING, "ai_config_error", provider=self.config.provider, reason=str(e))
            return None

    # =========================================================================
    # Entry points
    # =========================================================================

    async def process(
        self,
        content: str,
        content_type: ContentType,
        item: Optional[ContentItem] = None,
    ) -> Optional[str]:
        """
        Process content with the full (specific + general) prompt.

        Args:
            content: Text to process (message text or caption)
            content_type: Content type of the item
            item: Source item, used to fetch the image for vision requests

        Returns:
            Processed text, or None when processing is disabled or failed
        """
        try:
            if not self.is_enabled_for(content_type):
                return None
            provider = self._resolve_provider()
            if provider is None:
                return None
            prompt = self.composer.compose(content_type, final=True)
            return await self._process_item(provider, content, prompt, content_type, item)
        except Exception as e:
            logger.exception("Unexpected error during AI processing: %s", e)
            return None

    async def process_intermediate(
        self,
        content: str,
        content_type: ContentType,
        item: Optional[ContentItem] = None,
    ) -> Optional[str]:
        """Process content with the specific prompt only (no general formatting)."""
        try:
            if not self.is_enabled_for(content_type):
                return None
            provider = self._resolve_provider()
            if provider is None:
                return None
            prompt = self.composer.compose(content_type, final=False)
            return await self._process_item(provider, content, prompt, content_type, item)
        except Exception as e:
            logger.exception("Unexpected error during AI processing: %s", e)
            return None

    async def process_mixed(
        self,
        file_content: str,
        file_type: ContentType,
        message_text: Optional[str],
        item: Optional[ContentItem] = None,
    ) -> Optional[str]:
        """
        Process an attachment together with the text sent alongside it.

        At most two requests are made: an intermediate analysis of the
        attachment, then one final request that combines the analysis with
        the message text and applies the general prompt.
        """
        try:
            if not (self.is_enabled_for(file_type) or self.is_enabled_for(ContentType.TEXT)):
                return None
            provider = self._resolve_provider()
            if provider is None:
                return None

            analysis = None
            if self.is_enabled_for(file_type):
                prompt = self.composer.compose(file_type, final=False)
                analysis = await self._process_item(provider, file_content, prompt, file_type, item)

            text = (message_text or "").strip()
            if text and self.is_enabled_for(ContentType.TEXT):
                if analysis:
                    label = display_name(file_type).capitalize()
                    combined = f"**{label} Analysis:**\n{analysis}\n\n**Message Text:**\n{text}"
                else:
                    combined = text
                prompt = self.composer.compose(ContentType.TEXT, final=True)
                result = await self._call(provider, combined, prompt, ContentType.TEXT.value)
                if result:
                    return result
                return combined if analysis else None

            if analysis:
                general = self.composer.general_prompt
                if general:
                    result = await self._call(provider, analysis, general, file_type.value)
                    return result or analysis
                return analysis
            return None
        except Exception as e:
            logger.exception("Unexpected error during mixed AI processing: %s", e)
            return None

    async def process_with_prompt(self, content: str, prompt: str, label: str = "custom") -> Optional[str]:
        """Send ``content`` with a caller-built prompt (classification, parameters)."""
        try:
            if not self.config.enabled or not (content or "").strip():
                return None
            provider = self._resolve_provider()
            if provider is None:
                return None
            return await self._call(provider, content, prompt, label)
        except Exception as e:
            logger.exception("Unexpected error during AI processing: %s", e)
            return None

    # =========================================================================
    # Internals
    # =========================================================================

    async def _process_item(
        self,
        provider: ProviderAdapter,
        content: str,
        prompt: str,
        content_type: ContentType,
        item: Optional[ContentItem],
    ) -> Optional[str]:
        content, image = await self._vision_payload(provider, content or "", content_type, item)
        if not content.strip() and image is None:
            return None
        return await self._call(provider, content, prompt, content_type.value, image)

    async def _vision_payload(
        self,
        provider: ProviderAdapter,
        content: str,
        content_type: ContentType,
        item: Optional[ContentItem],
    ) -> Tuple[str, Optional[ImagePayload]]:
        """Attach the image when the provider has vision enabled.

        Falls back to a text-only request with the caption if the image
        cannot be retrieved.
        """
        if (
            content_type is not ContentType.PHOTO
            or item is None
            or not item.has_attachment
            or not provider.supports_vision
            or self.image_loader is None
        ):
            return content, None

        try:
            data = await self.image_loader(item)
        except Exception as e:
            logger.warning("Image retrieval failed for %s, sending caption only: %s", item.item_id, e)
            data = None
        if not data:
            return item.caption or content, None

        mime_type = item.attachment.mime_type or "image/jpeg"
        return item.caption or DEFAULT_IMAGE_PROMPT, ImagePayload(data=data, mime_type=mime_type)

    async def _call(
        self,
        provider: ProviderAdapter,
        content: str,
        prompt: str,
        label: str,
        image: Optional[ImagePayload] = None,
    ) -> Optional[str]:
        """Run one logical request through the retry loop.

        Attempts are strictly sequential; each one, including its backoff
        delay, finishes before the next starts.
        """
        policy = RetryPolicy.from_config(self.config, self._random_fn)
        request = AIRequest(
            provider=provider.name,
            content=content,
            prompt=prompt,
            image=image,
            timeout=policy.timeout,
            max_attempts=policy.max_attempts,
        )

        last_error: Optional[ProviderError] = None
        for attempt in range(1, policy.max_attempts + 1):
            request.attempt = attempt
            if attempt > 1:
                delay = policy.delay_before(attempt)
                log_event(
                    logger, logging.INFO, "ai_retry",
                    provider=provider.name, attempt=attempt, delay=round(delay, 3), error=str(last_error),
                )
                await self._sleep(delay)

            try:
                return await asyncio.wait_for(provider.process(request), timeout=policy.timeout)
            except asyncio.TimeoutError:
                last_error = TransientProviderError(
                    f"Request timed out after {policy.timeout}s", provider=provider.name
                )
            except TransientProviderError as e:
                last_error = e
            except ProviderError as e:
                self._report_failure(provider, label, attempt, policy.max_attempts, e)
                return None
            except Exception as e:
                if not looks_transient(str(e)):
                    self._report_failure(provider, label, attempt, policy.max_attempts, e)
                    return None
                last_error = TransientProviderError(str(e), provider=provider.name)

        self._report_failure(provider, label, policy.max_attempts, policy.max_attempts, last_error)
        return None

    def _report_failure(
        self,
        provider: ProviderAdapter,
        label: str,
        attempts: int,
        max_attempts: int,
        error: Exception,
    ) -> None:
        log_event(
            logger, logging.ERROR, "ai_failure",
            provider=provider.display_name,
            content_type=label,
            attempts=attempts,
            max_attempts=max_attempts,
            kind=getattr(error, "kind", type(error).__name__),
            error=str(error),
        )
        logger.warning(
            "Error processing with %s (attempt %d/%d): %s. Saving without AI processing",
            provider.display_name, attempts, max_attempts, error,
        )
