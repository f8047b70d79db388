"""Tests for hierarchical prompt composition."""

import pytest


class TestPromptComposer:
    def test_default_specific_prompt(self):
        from notegram.ai.prompts import PromptComposer
        from notegram.common.schemas.content import ContentType

        composer = PromptComposer()
        assert composer.specific_prompt(ContentType.VOICE) == (
            "Transcribe and structure the content of this voice recording."
        )

    def test_configured_prompt_overrides_default(self):
        from notegram.ai.prompts import PromptComposer
        from notegram.common.config import PromptConfig
        from notegram.common.schemas.content import ContentType

        composer = PromptComposer(PromptConfig(photo="List every object in the picture"))
        assert composer.specific_prompt(ContentType.PHOTO) == "List every object in the picture"

    def test_final_prompt_joins_specific_and_general(self):
        from notegram.ai.prompts import PromptComposer
        from notegram.common.config import PromptConfig
        from notegram.common.schemas.content import ContentType

        composer = PromptComposer(PromptConfig(text="Summarize", general="Use Markdown"))
        assert composer.compose(ContentType.TEXT) == (
            "Summarize\n\n---\n\nAdditional formatting requirements:\nUse Markdown"
        )

    def test_intermediate_prompt_omits_general(self):
        from notegram.ai.prompts import PromptComposer
        from notegram.common.config import PromptConfig
        from notegram.common.schemas.content import ContentType

        composer = PromptComposer(PromptConfig(text="Summarize", general="Use Markdown"))
        assert composer.compose(ContentType.TEXT, final=False) == "Summarize"

    def test_final_prompt_without_general(self):
        from notegram.ai.prompts import PromptComposer
        from notegram.common.config import PromptConfig
        from notegram.common.schemas.content import ContentType

        composer = PromptComposer(PromptConfig(document="Extract action items", general=""))
        assert composer.compose(ContentType.DOCUMENT) == "Extract action items"


class TestCombine:
    @pytest.mark.parametrize("specific,general,expected", [
        ("A", "", "A"),
        ("", "B", "B"),
        ("  ", None, "Process and structure this content in a clear format."),
    ])
    def test_combine_fallbacks(self, specific, general, expected):
        from notegram.ai.prompts import combine
        assert combine(specific, general) == expected
