"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ValueError if the LLM provider has no key
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

#: Supported values for ``LLM_PROVIDER``.
LLM_PROVIDERS: tuple[str, ...] = ("chat-completions", "anthropic")


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ`` or by passing
    keyword arguments.
    """

    # ── News provider ───────────────────────────────────────────────────────
    news_api_key: str = field(
        default_factory=lambda: os.environ.get("NEWS_API_KEY", "")
    )
    news_api_base_url: str = field(
        default_factory=lambda: os.environ.get("NEWS_API_BASE_URL", "https://newsapi.org/v2")
    )
    #: ISO country code sent to the provider.
    news_country: str = field(
        default_factory=lambda: os.environ.get("NEWS_COUNTRY", "my")
    )
    #: Country name used in provider keyword queries and prompts.
    news_country_name: str = field(
        default_factory=lambda: os.environ.get("NEWS_COUNTRY_NAME", "Malaysia")
    )

    # ── LLM provider ────────────────────────────────────────────────────────
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "chat-completions")
    )
    llm_api_url: str = field(
        default_factory=lambda: os.environ.get(
            "LLM_API_URL", "https://openrouter.ai/api/v1/chat/completions"
        )
    )
    llm_api_key: str = field(
        default_factory=lambda: os.environ.get("LLM_API_KEY", "")
    )
    llm_model: str = field(
        default_factory=lambda: os.environ.get("LLM_MODEL", "anthropic/claude-sonnet-4")
    )
    anthropic_api_key: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", "")
    )
    anthropic_model: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_MODEL", "claude-haiku-4-5")
    )

    # ── Limits ──────────────────────────────────────────────────────────────
    #: Seconds before any outbound provider call is treated as failed.
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "20"))
    )
    cache_ttl_seconds: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_TTL_SECONDS", "600"))
    )
    cache_max_entries: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_MAX_ENTRIES", "256"))
    )
    categorize_workers: int = field(
        default_factory=lambda: int(os.environ.get("CATEGORIZE_WORKERS", "4"))
    )
    max_messages: int = field(
        default_factory=lambda: int(os.environ.get("MAX_MESSAGES", "50"))
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5001"))
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )

    def validate(self) -> None:
        """Raise ``ValueError`` if any required setting is missing."""
        if self.llm_provider not in LLM_PROVIDERS:
            raise ValueError(
                f"LLM_PROVIDER must be one of {', '.join(LLM_PROVIDERS)}, "
                f"got {self.llm_provider!r}."
            )
        if self.llm_provider == "anthropic" and not self.anthropic_api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Copy .env.example to .env and add your key."
            )
        if self.llm_provider == "chat-completions" and not self.llm_api_key:
            raise ValueError(
                "LLM_API_KEY environment variable is not set. "
                "Copy .env.example to .env and add your key."
            )
