"""Tests for core/llm.py — chat completions and Anthropic backends."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from config.settings import Settings
from core.errors import LLMUnavailableError
from core.llm import AnthropicClient, ChatCompletionsClient, LLMClient, build_llm_client


def make_settings(**overrides) -> Settings:
    values = {
        "llm_provider": "chat-completions",
        "llm_api_url": "https://llm.test/v1/chat/completions",
        "llm_api_key": "test-key",
        "llm_model": "test-model",
        "anthropic_api_key": "test-key",
        "anthropic_model": "claude-haiku-4-5",
        "request_timeout": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


MESSAGES = [
    {"role": "system", "content": "persona"},
    {"role": "system", "content": "context"},
    {"role": "assistant", "content": "Hello!"},
    {"role": "user", "content": "What's new?"},
]


# ── Chat completions ───────────────────────────────────────────────────────────


class TestChatCompletionsClient:
    def test_posts_payload_and_returns_content(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi there"}}],
            })

        client = ChatCompletionsClient(make_settings(), transport=httpx.MockTransport(handler))
        reply = client.complete(MESSAGES, temperature=0.7, max_tokens=1000)

        assert reply == "Hi there"
        body = json.loads(seen[0].content)
        assert body == {
            "model": "test-model",
            "messages": MESSAGES,
            "temperature": 0.7,
            "max_tokens": 1000,
        }
        assert seen[0].headers["Authorization"] == "Bearer test-key"

    def test_no_key_sends_no_authorization(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        client = ChatCompletionsClient(make_settings(llm_api_key=""), transport=httpx.MockTransport(handler))
        client.complete(MESSAGES, temperature=0.7, max_tokens=10)

        assert "Authorization" not in seen[0].headers

    def test_empty_choices_returns_empty_string(self):
        client = ChatCompletionsClient(
            make_settings(),
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})),
        )
        assert client.complete(MESSAGES, temperature=0.7, max_tokens=10) == ""

    def test_null_content_returns_empty_string(self):
        client = ChatCompletionsClient(
            make_settings(),
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json={"choices": [{"message": {"content": None}}]})
            ),
        )
        assert client.complete(MESSAGES, temperature=0.7, max_tokens=10) == ""

    def test_server_error_raises_unavailable(self):
        client = ChatCompletionsClient(
            make_settings(),
            transport=httpx.MockTransport(lambda r: httpx.Response(503, text="busy")),
        )
        with pytest.raises(LLMUnavailableError):
            client.complete(MESSAGES, temperature=0.7, max_tokens=10)

    def test_malformed_body_raises_unavailable(self):
        client = ChatCompletionsClient(
            make_settings(),
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="not json")),
        )
        with pytest.raises(LLMUnavailableError):
            client.complete(MESSAGES, temperature=0.7, max_tokens=10)

    def test_timeout_raises_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = ChatCompletionsClient(make_settings(), transport=httpx.MockTransport(handler))
        with pytest.raises(LLMUnavailableError):
            client.complete(MESSAGES, temperature=0.7, max_tokens=10)

    def test_close_releases_http_client(self):
        client = ChatCompletionsClient(
            make_settings(),
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})),
        )
        client.complete(MESSAGES, temperature=0.7, max_tokens=10)
        http_client = client.client

        client.close()

        assert http_client.is_closed
        assert client._client is None


# ── Anthropic ──────────────────────────────────────────────────────────────────


def fake_anthropic_response(*texts: str) -> MagicMock:
    blocks = []
    for text in texts:
        block = MagicMock()
        block.type = "text"
        block.text = text
        blocks.append(block)
    response = MagicMock()
    response.content = blocks
    return response


class TestAnthropicClient:
    @patch("core.llm.anthropic.Anthropic")
    def test_maps_messages_and_returns_text(self, mock_cls):
        mock_client = MagicMock()
        mock_client.messages.create.return_value = fake_anthropic_response("Hello ", "world")
        mock_cls.return_value = mock_client

        reply = AnthropicClient(make_settings()).complete(MESSAGES, temperature=0.3, max_tokens=500)

        assert reply == "Hello world"
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "persona\n\ncontext"
        assert kwargs["messages"] == [{"role": "user", "content": "What's new?"}]
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 500
        assert kwargs["model"] == "claude-haiku-4-5"

    @patch("core.llm.anthropic.Anthropic")
    def test_client_is_created_without_retries(self, mock_cls):
        mock_cls.return_value.messages.create.return_value = fake_anthropic_response("ok")

        AnthropicClient(make_settings()).complete(MESSAGES, temperature=0.3, max_tokens=10)

        assert mock_cls.call_args.kwargs["max_retries"] == 0
        assert mock_cls.call_args.kwargs["timeout"] == 5.0

    @patch("core.llm.anthropic.Anthropic")
    def test_api_error_raises_unavailable(self, mock_cls):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_cls.return_value.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        with pytest.raises(LLMUnavailableError):
            AnthropicClient(make_settings()).complete(MESSAGES, temperature=0.3, max_tokens=10)

    @patch("core.llm.anthropic.Anthropic")
    def test_no_user_turn_returns_empty(self, mock_cls):
        reply = AnthropicClient(make_settings()).complete(
            [{"role": "system", "content": "persona"}], temperature=0.3, max_tokens=10,
        )

        assert reply == ""
        mock_cls.return_value.messages.create.assert_not_called()

    @patch("core.llm.anthropic.Anthropic")
    def test_close_releases_sdk_client(self, mock_cls):
        client = AnthropicClient(make_settings())
        client.complete(MESSAGES, temperature=0.3, max_tokens=10)

        client.close()

        mock_cls.return_value.close.assert_called_once_with()
        assert client._client is None

    def test_close_before_use_is_a_no_op(self):
        AnthropicClient(make_settings()).close()


# ── Backend selection ──────────────────────────────────────────────────────────


class TestBuildLLMClient:
    def test_chat_completions(self):
        assert isinstance(build_llm_client(make_settings()), ChatCompletionsClient)

    def test_anthropic(self):
        assert isinstance(build_llm_client(make_settings(llm_provider="anthropic")), AnthropicClient)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_llm_client(make_settings(llm_provider="carrier-pigeon"))

    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            LLMClient()
