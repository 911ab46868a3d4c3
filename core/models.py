"""
Pydantic models shared across the news chat core.

Public models serialise with camelCase aliases (``publishedAt``,
``keyPoints``, …) so the JSON surface matches what the web client expects;
fields can be populated by either name.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Categories ────────────────────────────────────────────────────────────────


class Category(str, Enum):
    """Closed set of news categories, used as a filter and as classifier output."""

    POLITICS = "politics"
    ECONOMY = "economy"
    SOCIAL = "social"
    GENERAL = "general"


#: Human-readable labels for each category.
CATEGORY_LABELS: dict[Category, str] = {
    Category.POLITICS: "Politics",
    Category.ECONOMY: "Economy",
    Category.SOCIAL: "Social Issues",
    Category.GENERAL: "General News",
}

SortBy = Literal["relevancy", "popularity", "publishedAt"]
Role = Literal["user", "assistant"]
MessageType = Literal["text", "news", "summary"]
Sentiment = Literal["positive", "negative", "neutral"]


# ── Articles ──────────────────────────────────────────────────────────────────


class Source(_CamelModel):
    """The outlet an article was published by."""

    id: str = "unknown"
    name: str = "Unknown Source"


class Article(_CamelModel):
    """A canonical, normalised news article."""

    id: str
    title: str
    description: str = ""
    content: Optional[str] = None
    url: str
    url_to_image: Optional[str] = None
    published_at: datetime = Field(default_factory=_utcnow)
    source: Source = Field(default_factory=Source)
    category: Category = Category.GENERAL
    author: Optional[str] = None
    summary: Optional[str] = None


class NewsQuery(BaseModel):
    """Parameters of a single retrieval against the news provider."""

    query: Optional[str] = None
    category: Optional[Category] = None
    sort_by: SortBy = "publishedAt"
    page_size: int = 20
    page: int = 1
    from_date: Optional[str] = None
    to_date: Optional[str] = None

    def cache_key(self) -> str:
        """Canonical serialisation: equal field values always give the same key."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True)


# ── Chat ──────────────────────────────────────────────────────────────────────


class ChatMessage(_CamelModel):
    """One immutable entry in a conversation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    news_articles: Optional[list[Article]] = None
    type: MessageType = "text"


class ChatReply(_CamelModel):
    """The assistant's reply plus any news articles injected as context."""

    response: str
    context_articles: list[Article] = Field(default_factory=list)


class SummaryResult(_CamelModel):
    """Structured summary of a single article."""

    summary: str
    key_points: list[str] = Field(default_factory=list)
    sentiment: Sentiment = "neutral"
    category: Category = Category.GENERAL


# ── Provider payloads ─────────────────────────────────────────────────────────


class RawSource(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class RawArticle(_CamelModel):
    """An article record as returned by the news provider, before normalisation."""

    source: RawSource = Field(default_factory=RawSource)
    author: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    url_to_image: Optional[str] = None
    published_at: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None


class NewsAPIResponse(_CamelModel):
    """Envelope of a NewsAPI ``top-headlines`` response."""

    status: str
    total_results: int = 0
    articles: list[RawArticle] = Field(default_factory=list)
