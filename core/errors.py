"""Exceptions raised by the news and chat cores."""

from __future__ import annotations


class ProviderError(Exception):
    """An external provider could not produce a usable response."""


class NewsProviderError(ProviderError):
    """The news provider failed: network error, non-2xx status or malformed body."""


class LLMUnavailableError(ProviderError):
    """The LLM provider failed; surfaced to users as "AI unavailable"."""

    def __init__(self, message: str = "Failed to get AI response. Please try again.") -> None:
        super().__init__(message)
