"""
Prompt Composer

Builds hierarchical prompts: a content-type-specific instruction plus the
general formatting instruction. Intermediate requests (an attachment analyzed
on its own before being combined with its caption) leave the general prompt
out so formatting is applied exactly once.
"""

from typing import Optional

from ..common.config import PromptConfig
from ..common.schemas.content import ContentType

GENERIC_PROMPT = "Process and structure this content in a clear format."
SEPARATOR = "\n\n---\n\nAdditional formatting requirements:\n"

DEFAULT_PROMPTS = {
    ContentType.TEXT: "Process and structure this text, make it more readable and informative.",
    ContentType.VOICE: "Transcribe and structure the content of this voice recording.",
    ContentType.PHOTO: "Describe the content of this image in detail and in a structured way.",
    ContentType.VIDEO: "Describe the content of this video and its key moments.",
    ContentType.AUDIO: "Transcribe and structure the content of this audio recording.",
    ContentType.DOCUMENT: "Analyze and structure the content of this document.",
}


def combine(specific: str, general: str) -> str:
    """Join a specific and a general prompt, or return whichever exists."""
    specific = (specific or "").strip()
    general = (general or "").strip()
    if specific and general:
        return f"{specific}{SEPARATOR}{general}"
    return specific or general or GENERIC_PROMPT


class PromptComposer:
    """Resolves prompts from configuration with built-in defaults."""

    def __init__(self, prompts: Optional[PromptConfig] = None):
        self.prompts = prompts or PromptConfig()

    @property
    def general_prompt(self) -> str:
        return (self.prompts.general or "").strip()

    def specific_prompt(self, content_type: ContentType) -> str:
        configured = getattr(self.prompts, content_type.value, "") or ""
        return configured.strip() or DEFAULT_PROMPTS.get(content_type, GENERIC_PROMPT)

    def compose(self, content_type: ContentType, final: bool = True) -> str:
        """Prompt for ``content_type``.

        Args:
            content_type: Content type of the request
            final: Whether the general prompt is appended

        Returns:
            The composed prompt, never empty
        """
        specific = self.specific_prompt(content_type)
        if not final:
            return specific
        return combine(specific, self.general_prompt)
