"""
Unit tests for the LLM module.
Tests LLMMessage, LLMResponse, the OpenAI-compatible provider, the factory,
chat sessions and image description.
"""

import pytest
import json
from unittest.mock import AsyncMock, patch, MagicMock

from mealcoach.llm.base import LLMMessage, LLMResponse
from mealcoach.llm.openai_provider import OpenAIProvider
from mealcoach.llm.factory import create_llm_provider
from mealcoach.llm.session import ChatSession
from mealcoach.llm.vision import ImageDescriber


def sse(*chunks):
    """Build SSE lines for streamed deltas."""
    lines = []
    for text in chunks:
        lines.append("data: " + json.dumps({"choices": [{"delta": {"content": text}}]}))
        lines.append("")
    lines.append("data: [DONE]")
    return lines


def mock_stream_client(mock_client, lines):
    response = MagicMock()
    response.raise_for_status = MagicMock()

    async def aiter_lines():
        for line in lines:
            yield line

    response.aiter_lines = aiter_lines

    stream_cm = MagicMock()
    stream_cm.__aenter__ = AsyncMock(return_value=response)
    stream_cm.__aexit__ = AsyncMock(return_value=False)

    mock_instance = MagicMock()
    mock_instance.stream = MagicMock(return_value=stream_cm)
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


class TestLLMMessage:
    """Tests for LLMMessage dataclass."""

    def test_text_message(self):
        msg = LLMMessage.text("user", "Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"

    def test_system_message(self):
        msg = LLMMessage.text("system", "You are a health coach")
        assert msg.role == "system"
        assert msg.content == "You are a health coach"

    def test_with_image(self):
        msg = LLMMessage.with_images("user", "What is this?",
                                     [{"data": b"abc", "media_type": "image/png"}])
        assert isinstance(msg.content, list)
        assert len(msg.content) == 2
        assert msg.content[0]["type"] == "image_url"
        assert msg.content[0]["image_url"]["url"] == "data:image/png;base64,YWJj"
        assert msg.content[1] == {"type": "text", "text": "What is this?"}

    def test_with_no_images(self):
        msg = LLMMessage.with_images("user", "Just text", [])
        assert msg.content == [{"type": "text", "text": "Just text"}]


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_basic_response(self):
        resp = LLMResponse(content="Hello!", model="gpt-4o")
        assert resp.content == "Hello!"
        assert resp.usage == {}
        assert resp.raw is None


class TestOpenAIProvider:
    """Tests for OpenAI-compatible provider."""

    def test_init_defaults(self):
        provider = OpenAIProvider(api_key="test-key")
        assert provider.api_key == "test-key"
        assert provider.model == "gpt-4o"
        assert provider.base_url == "https://api.openai.com/v1"
        assert provider.timeout == 30.0

    def test_init_custom(self):
        provider = OpenAIProvider(
            api_key="key",
            model="gpt-4o-mini",
            base_url="https://custom.api.com/v1",
            timeout=10.0
        )
        assert provider.model == "gpt-4o-mini"
        assert provider.base_url == "https://custom.api.com/v1"
        assert provider.timeout == 10.0

    def test_headers(self):
        provider = OpenAIProvider(api_key="sk-test123")
        headers = provider._get_headers()
        assert headers["Authorization"] == "Bearer sk-test123"
        assert headers["Content-Type"] == "application/json"

    def test_build_payload(self):
        provider = OpenAIProvider(api_key="key", default_temperature=0.5)
        payload = provider._build_payload([LLMMessage.text("user", "hi")], None, None, stream=True)
        assert payload["temperature"] == 0.5
        assert payload["max_tokens"] == 2048
        assert payload["stream"] is True
        assert payload["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_chat_completion_success(self):
        provider = OpenAIProvider(api_key="test-key")
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "choices": [{"message": {"content": "Test response"}}],
            "model": "gpt-4o",
            "usage": {"prompt_tokens": 10, "completion_tokens": 5}
        }
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            result = await provider.chat_completion(
                [LLMMessage.text("user", "Hello")]
            )

            assert result.content == "Test response"
            assert result.model == "gpt-4o"
            assert result.usage["prompt_tokens"] == 10
            url = mock_instance.post.call_args[0][0]
            assert url == "https://api.openai.com/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_chat_completion_error_propagates(self):
        provider = OpenAIProvider(api_key="test-key")
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock(side_effect=RuntimeError("HTTP 500"))

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = mock_response
            mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
            mock_instance.__aexit__ = AsyncMock(return_value=False)
            mock_client.return_value = mock_instance

            with pytest.raises(RuntimeError):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])

    @pytest.mark.asyncio
    async def test_stream_yields_deltas(self):
        provider = OpenAIProvider(api_key="test-key")
        lines = [": keep-alive", "data: not-json"] + sse("```json\n", "[]\n```", "\nHi")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_stream_client(mock_client, lines)

            fragments = [f async for f in provider.chat_completion_stream(
                [LLMMessage.text("user", "Hello")]
            )]

            assert fragments == ["```json\n", "[]\n```", "\nHi"]
            args, kwargs = mock_instance.stream.call_args
            assert args[0] == "POST"
            assert kwargs["json"]["stream"] is True

    @pytest.mark.asyncio
    async def test_stream_stops_at_done(self):
        provider = OpenAIProvider(api_key="test-key")
        lines = sse("one") + ["data: " + json.dumps({"choices": [{"delta": {"content": "late"}}]})]

        with patch("httpx.AsyncClient") as mock_client:
            mock_stream_client(mock_client, lines)
            fragments = [f async for f in provider.chat_completion_stream([])]

        assert fragments == ["one"]


class TestLLMFactory:
    """Tests for LLM provider factory."""

    def test_create_openai_provider(self):
        provider = create_llm_provider(
            provider="openai",
            api_key="test-key",
            model="gpt-4o"
        )
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"

    def test_no_api_key_returns_none(self):
        provider = create_llm_provider(provider="openai", api_key="")
        assert provider is None

    def test_unsupported_provider_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_llm_provider(provider="unsupported", api_key="key")

    def test_custom_base_url_and_timeout(self):
        provider = create_llm_provider(
            provider="openai",
            api_key="key",
            base_url="https://custom.api.com/v1",
            timeout=5.0
        )
        assert provider.base_url == "https://custom.api.com/v1"
        assert provider.timeout == 5.0


class TestChatSession:
    """Tests for ChatSession."""

    def test_build_messages(self, fake_provider):
        session = ChatSession(fake_provider, "You are a coach.")
        messages = session.build_messages("hi")
        assert [(m.role, m.content) for m in messages] == [
            ("system", "You are a coach."),
            ("user", "hi"),
        ]

    @pytest.mark.asyncio
    async def test_history_committed_after_stream(self, fake_provider):
        fake_provider.replies = [["Hello", "!"]]
        session = ChatSession(fake_provider, "You are a coach.")

        fragments = [f async for f in session.send_stream("hi")]

        assert fragments == ["Hello", "!"]
        assert [(m.role, m.content) for m in session.history] == [
            ("user", "hi"),
            ("assistant", "Hello!"),
        ]

    @pytest.mark.asyncio
    async def test_history_untouched_on_failure(self, fake_provider):
        fake_provider.replies = [["Hel", RuntimeError("dropped")]]
        session = ChatSession(fake_provider, "You are a coach.")

        with pytest.raises(RuntimeError):
            async for _ in session.send_stream("hi"):
                pass

        assert session.history == []


class TestImageDescriber:
    """Tests for ImageDescriber."""

    @pytest.mark.asyncio
    async def test_describe(self):
        provider = MagicMock()
        provider.chat_completion = AsyncMock(
            return_value=LLMResponse(content="  A bowl of oatmeal with berries.\n")
        )
        describer = ImageDescriber(provider)

        description = await describer.describe(b"\xff\xd8", "image/jpeg")

        assert description == "A bowl of oatmeal with berries."
        messages = provider.chat_completion.call_args[0][0]
        assert len(messages) == 1
        assert messages[0].content[0]["image_url"]["url"].startswith("data:image/jpeg;base64,")
        assert provider.chat_completion.call_args[1]["temperature"] == 0.2
