"""Tests for the OpenAI, Claude and Gemini provider adapters."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, Mock


def make_request(**overrides):
    from notegram.ai.providers import AIRequest
    data = {"provider": "test", "content": "Buy milk", "prompt": "Structure this", "timeout": 5.0}
    data.update(overrides)
    return AIRequest(**data)


def openai_status_error(status, body=None):
    import openai
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return openai.APIStatusError("provider error", response=response, body=body)


def anthropic_status_error(status, body=None):
    import anthropic
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return anthropic.APIStatusError("provider error", response=response, body=body)


class TestClassifyStatus:
    """Mapping HTTP failures onto the error taxonomy"""

    @pytest.fixture
    def adapter(self):
        from notegram.ai.providers import OpenAIProvider
        from notegram.common.config import ProviderSettings
        return OpenAIProvider(ProviderSettings(api_key="sk-test"), client=Mock())

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, adapter, status):
        from notegram.common.errors import TransientProviderError
        error = adapter.classify_status(status, "server trouble")
        assert isinstance(error, TransientProviderError)
        assert error.status == status

    def test_unauthorized_is_permanent_auth(self, adapter):
        from notegram.common.errors import PermanentProviderError
        error = adapter.classify_status(401, "Incorrect API key provided")
        assert isinstance(error, PermanentProviderError)
        assert error.kind == "auth"
        assert "invalid or revoked" in str(error)

    def test_quota_code_is_permanent_quota(self, adapter):
        from notegram.common.errors import PermanentProviderError
        error = adapter.classify_status(429, "You exceeded your current quota", "insufficient_quota")
        assert isinstance(error, PermanentProviderError)
        assert error.kind == "quota"
        assert "Quota exceeded" in str(error)

    def test_payment_required_is_quota(self, adapter):
        error = adapter.classify_status(402, "payment required")
        assert error.kind == "quota"

    def test_bad_request_is_not_retryable(self, adapter):
        from notegram.common.errors import PermanentProviderError, TransientProviderError
        error = adapter.classify_status(400, "bad input")
        assert not isinstance(error, (TransientProviderError, PermanentProviderError))
        assert error.retryable is False

    def test_statusless_network_error_is_transient(self, adapter):
        from notegram.common.errors import TransientProviderError
        assert isinstance(adapter.classify_status(None, "Network unreachable"), TransientProviderError)
        assert not isinstance(adapter.classify_status(None, "weird failure"), TransientProviderError)


class TestOpenAIProvider:
    @pytest.fixture
    def client(self):
        client = Mock()
        client.chat.completions.create = AsyncMock(
            return_value=Mock(choices=[Mock(message=Mock(content="  # Shopping\n- milk  "))])
        )
        return client

    def make_provider(self, client, **settings):
        from notegram.ai.providers import OpenAIProvider
        from notegram.common.config import ProviderSettings
        data = {"api_key": "sk-test", "model": "gpt-4o-mini"}
        data.update(settings)
        return OpenAIProvider(ProviderSettings(**data), client=client)

    @pytest.mark.asyncio
    async def test_chat_completion_body(self, client):
        provider = self.make_provider(client, temperature=0.2, max_tokens=500)
        text = await provider.process(make_request())

        assert text == "# Shopping\n- milk"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Structure this"},
            {"role": "user", "content": "Buy milk"},
        ]
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 500
        assert kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_vision_request_upgrades_mini_model(self, client):
        from notegram.ai.providers import ImagePayload
        provider = self.make_provider(client)
        await provider.process(make_request(content="", image=ImagePayload(b"\x89PNG", "image/png")))

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        user_content = kwargs["messages"][1]["content"]
        assert user_content[0] == {"type": "text", "text": "Analyze this image"}
        assert user_content[1]["type"] == "image_url"
        assert user_content[1]["image_url"]["url"].startswith("data:image/png;base64,")
        assert user_content[1]["image_url"]["detail"] == "high"

    @pytest.mark.asyncio
    async def test_empty_response_raises(self, client):
        from notegram.common.errors import EmptyResponseError
        client.chat.completions.create.return_value = Mock(choices=[Mock(message=Mock(content=""))])
        provider = self.make_provider(client)
        with pytest.raises(EmptyResponseError):
            await provider.process(make_request())

    @pytest.mark.asyncio
    async def test_quota_error_mapping(self, client):
        from notegram.common.errors import PermanentProviderError
        client.chat.completions.create.side_effect = openai_status_error(
            429, {"code": "insufficient_quota", "type": "insufficient_quota", "message": "quota"}
        )
        provider = self.make_provider(client)
        with pytest.raises(PermanentProviderError) as exc_info:
            await provider.process(make_request())
        assert exc_info.value.kind == "quota"

    @pytest.mark.asyncio
    async def test_server_error_mapping(self, client):
        from notegram.common.errors import TransientProviderError
        client.chat.completions.create.side_effect = openai_status_error(503)
        provider = self.make_provider(client)
        with pytest.raises(TransientProviderError):
            await provider.process(make_request())

    @pytest.mark.asyncio
    async def test_timeout_mapping(self, client):
        import openai
        from notegram.common.errors import TransientProviderError
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
        provider = self.make_provider(client)
        with pytest.raises(TransientProviderError):
            await provider.process(make_request())


class TestClaudeProvider:
    @pytest.fixture
    def client(self):
        client = Mock()
        client.messages.create = AsyncMock(return_value=Mock(content=[Mock(text="Structured note")]))
        return client

    def make_provider(self, client):
        from notegram.ai.providers import ClaudeProvider
        from notegram.common.config import ProviderSettings
        settings = ProviderSettings(api_key="sk-ant", model="claude-3-5-sonnet-20241022", max_tokens=1024)
        return ClaudeProvider(settings, client=client)

    @pytest.mark.asyncio
    async def test_messages_body(self, client):
        provider = self.make_provider(client)
        text = await provider.process(make_request())

        assert text == "Structured note"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-5-sonnet-20241022"
        assert kwargs["max_tokens"] == 1024
        assert kwargs["messages"] == [{"role": "user", "content": "Structure this\n\nBuy milk"}]
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_authentication_error_mapping(self, client):
        from notegram.common.errors import PermanentProviderError
        client.messages.create.side_effect = anthropic_status_error(
            401, {"type": "error", "error": {"type": "authentication_error", "message": "invalid x-api-key"}}
        )
        provider = self.make_provider(client)
        with pytest.raises(PermanentProviderError) as exc_info:
            await provider.process(make_request())
        assert exc_info.value.kind == "auth"
        assert str(exc_info.value) == "Claude API key is invalid or revoked"

    @pytest.mark.asyncio
    async def test_overloaded_is_transient(self, client):
        from notegram.common.errors import TransientProviderError
        client.messages.create.side_effect = anthropic_status_error(502)
        provider = self.make_provider(client)
        with pytest.raises(TransientProviderError):
            await provider.process(make_request())

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, client):
        from notegram.common.errors import EmptyResponseError
        client.messages.create.return_value = Mock(content=[])
        provider = self.make_provider(client)
        with pytest.raises(EmptyResponseError):
            await provider.process(make_request())


class TestGeminiProvider:
    def make_provider(self, handler):
        from notegram.ai.providers import GeminiProvider
        from notegram.common.config import ProviderSettings
        settings = ProviderSettings(api_key="gm-key", model="gemini-1.5-flash", temperature=0.3, max_tokens=800)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GeminiProvider(settings, http_client=http_client)

    @pytest.mark.asyncio
    async def test_generate_content_request(self):
        captured = {}

        def handler(request):
            captured["url"] = request.url
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Gemini note"}]}}]
            })

        provider = self.make_provider(handler)
        text = await provider.process(make_request())

        assert text == "Gemini note"
        assert captured["url"].path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert captured["url"].params["key"] == "gm-key"
        assert captured["body"] == {
            "contents": [{"parts": [{"text": "Structure this\n\nBuy milk"}]}],
            "generationConfig": {"temperature": 0.3, "maxOutputTokens": 800},
        }

    @pytest.mark.asyncio
    async def test_inline_image(self):
        from notegram.ai.providers import ImagePayload
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "A cat"}]}}]
            })

        provider = self.make_provider(handler)
        await provider.process(make_request(image=ImagePayload(b"jpeg-bytes")))

        parts = captured["body"]["contents"][0]["parts"]
        assert parts[1]["inlineData"]["mimeType"] == "image/jpeg"
        assert parts[1]["inlineData"]["data"] == "anBlZy1ieXRlcw=="

    @pytest.mark.asyncio
    async def test_invalid_key_error(self):
        from notegram.common.errors import PermanentProviderError

        def handler(request):
            return httpx.Response(400, json={
                "error": {"code": 400, "message": "API key not valid. Please pass a valid API key.",
                          "status": "INVALID_ARGUMENT"}
            })

        provider = self.make_provider(handler)
        with pytest.raises(PermanentProviderError) as exc_info:
            await provider.process(make_request())
        assert exc_info.value.kind == "auth"

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        from notegram.common.errors import TransientProviderError

        def handler(request):
            return httpx.Response(429, json={"error": {"message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}})

        provider = self.make_provider(handler)
        with pytest.raises(TransientProviderError):
            await provider.process(make_request())

    @pytest.mark.asyncio
    async def test_list_wrapped_server_error_is_transient(self):
        from notegram.common.errors import TransientProviderError

        def handler(request):
            return httpx.Response(503, json=[
                {"error": {"code": 503, "message": "The model is overloaded", "status": "UNAVAILABLE"}}
            ])

        provider = self.make_provider(handler)
        with pytest.raises(TransientProviderError) as exc_info:
            await provider.process(make_request())
        assert str(exc_info.value) == "The model is overloaded"
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_unexpected_error_body_keeps_status(self):
        from notegram.common.errors import TransientProviderError

        def handler(request):
            return httpx.Response(500, json="backend error")

        provider = self.make_provider(handler)
        with pytest.raises(TransientProviderError) as exc_info:
            await provider.process(make_request())
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_list_wrapped_error_is_retried_by_orchestrator(self):
        from notegram.ai.orchestrator import AIOrchestrator
        from notegram.common.config import AIConfig
        from notegram.common.schemas.content import ContentType
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json=[{"error": {"message": "overloaded", "status": "UNAVAILABLE"}}])

        provider = self.make_provider(handler)
        orchestrator = AIOrchestrator(
            AIConfig(provider="gemini", max_attempts=3),
            provider_factory=lambda config: provider,
            sleep=AsyncMock(),
        )

        assert await orchestrator.process("Buy milk", ContentType.TEXT) is None
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_network_timeout_is_transient(self):
        from notegram.common.errors import TransientProviderError

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = self.make_provider(handler)
        with pytest.raises(TransientProviderError):
            await provider.process(make_request())

    @pytest.mark.asyncio
    async def test_missing_candidates_is_empty_response(self):
        from notegram.common.errors import EmptyResponseError

        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        provider = self.make_provider(handler)
        with pytest.raises(EmptyResponseError):
            await provider.process(make_request())


class TestRegistry:
    def test_build_provider_uses_configured_provider(self):
        from notegram.ai.providers import ClaudeProvider, build_provider
        from notegram.common.config import AIConfig
        config = AIConfig(provider="claude")
        config.claude.api_key = "sk-ant"
        assert isinstance(build_provider(config), ClaudeProvider)

    def test_missing_key_raises_configuration_error(self):
        from notegram.ai.providers import build_provider
        from notegram.common.config import AIConfig
        from notegram.common.errors import ConfigurationError
        with pytest.raises(ConfigurationError, match="OpenAI API key not set"):
            build_provider(AIConfig())

    def test_unknown_provider(self):
        from notegram.ai.providers import build_provider
        from notegram.common.config import AIConfig
        from notegram.common.errors import ConfigurationError
        with pytest.raises(ConfigurationError, match="Unsupported"):
            build_provider(AIConfig(provider="mistral"))
