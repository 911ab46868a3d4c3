"""LLM provider clients.

Every client exposes ``complete(messages, temperature, max_tokens) -> str``
where ``messages`` is a list of ``{"role", "content"}`` dicts with roles
``system``, ``user`` or ``assistant``. An empty reply comes back as ``""``;
any provider failure is raised as ``LLMUnavailableError``. Nothing here
retries.

Backends
────────
ChatCompletionsClient  OpenAI-compatible ``/chat/completions`` endpoint
                       (OpenRouter by default) over httpx
AnthropicClient        Anthropic Messages API via the ``anthropic`` SDK
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import anthropic
import httpx
from pydantic import BaseModel, Field, ValidationError

from core.errors import LLMUnavailableError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """Base class for LLM provider backends."""

    @abstractmethod
    def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Send *messages* and return the reply text."""

    def close(self) -> None:
        """Release any connection held by the backend."""


# ── OpenAI-compatible chat completions ─────────────────────────────────────────


class _CompletionMessage(BaseModel):
    content: Optional[str] = None


class _CompletionChoice(BaseModel):
    message: _CompletionMessage = Field(default_factory=_CompletionMessage)


class _CompletionResponse(BaseModel):
    choices: list[_CompletionChoice] = Field(default_factory=list)


class ChatCompletionsClient(LLMClient):
    """Client for an OpenAI-compatible chat completions endpoint.

    The httpx client is lazy-initialised; tests pass an ``httpx`` transport.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialise and return the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        headers = {"Content-Type": "application/json"}
        if self.settings.llm_api_key:
            headers["Authorization"] = f"Bearer {self.settings.llm_api_key}"
        payload = {
            "model": self.settings.llm_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = self.client.post(self.settings.llm_api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("LLM request failed: %s", exc)
            raise LLMUnavailableError() from exc

        try:
            data = _CompletionResponse.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("LLM returned a malformed body (%d errors)", exc.error_count())
            raise LLMUnavailableError() from exc

        if not data.choices:
            logger.warning("LLM returned no choices")
            return ""
        return data.choices[0].message.content or ""


# ── Anthropic Messages API ─────────────────────────────────────────────────────


class AnthropicClient(LLMClient):
    """Client for the Anthropic Messages API.

    The SDK client is lazy-initialised so the class can be instantiated in
    tests without a live API key.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: object = None  # Lazy-initialised anthropic.Anthropic

    @property
    def client(self) -> object:
        """Lazy-initialise and return the Anthropic SDK client."""
        if self._client is None:
            self._client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=self.settings.request_timeout,
                max_retries=0,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] != "system"
        ]
        # A Messages API conversation must open with a user turn.
        while turns and turns[0]["role"] == "assistant":
            turns.pop(0)
        if not turns:
            logger.warning("No user message to send to Anthropic")
            return ""

        request: dict = {
            "model": self.settings.anthropic_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            request["system"] = system

        try:
            response = self.client.messages.create(**request)
        except anthropic.APIError as exc:
            logger.error("Anthropic request failed: %s", exc)
            raise LLMUnavailableError() from exc

        return "".join(
            getattr(block, "text", "") or ""
            for block in getattr(response, "content", []) or []
            if getattr(block, "type", None) == "text"
        )


def build_llm_client(settings: Settings) -> LLMClient:
    """Return the backend selected by ``settings.llm_provider``."""
    if settings.llm_provider == "anthropic":
        return AnthropicClient(settings)
    if settings.llm_provider == "chat-completions":
        return ChatCompletionsClient(settings)
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")
