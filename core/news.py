"""News retrieval: NewsAPI client, static fallback set and the News Service.

Responsibilities:
- Translate a ``NewsQuery`` into NewsAPI ``top-headlines`` parameters
- Validate and normalise the provider payload into ``Article`` objects
- Route every read through the ``NewsCache`` so provider failures degrade to
  stale or static data instead of raising
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

import httpx
from pydantic import ValidationError

from core.cache import NewsCache
from core.errors import NewsProviderError
from core.models import Article, Category, NewsAPIResponse, NewsQuery, Source
from core.normalizer import normalize_article

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


# ── Provider query composition ─────────────────────────────────────────────────

#: Category → (provider category, keyword query template).
#: ``general`` is absent: it adds no filter at all.
_CATEGORY_QUERIES: dict[Category, tuple[str, str]] = {
    Category.POLITICS: ("general", "{country} politics government parliament"),
    Category.ECONOMY: ("business", "{country} economy business finance"),
    Category.SOCIAL: ("general", "{country} social society community"),
}


def build_params(query: NewsQuery, settings: Settings) -> dict[str, str]:
    """Build NewsAPI request parameters for *query*.

    Free text is appended to the category keywords when both are present,
    and prefixed with the country name otherwise.

    Examples:
        >>> build_params(NewsQuery(category=Category.ECONOMY, query="tariffs"), s)["q"]
        'Malaysia economy business finance tariffs'
        >>> build_params(NewsQuery(query="floods"), s)["q"]
        'Malaysia floods'
    """
    params: dict[str, str] = {
        "country": settings.news_country,
        "apiKey": settings.news_api_key,
        "pageSize": str(query.page_size),
        "page": str(query.page),
        "sortBy": query.sort_by,
    }

    keywords: Optional[str] = None
    if query.category in _CATEGORY_QUERIES:
        provider_category, template = _CATEGORY_QUERIES[query.category]
        params["category"] = provider_category
        keywords = template.format(country=settings.news_country_name)

    text = (query.query or "").strip()
    if text:
        keywords = f"{keywords} {text}" if keywords else f"{settings.news_country_name} {text}"
    if keywords:
        params["q"] = keywords

    if query.from_date:
        params["from"] = query.from_date
    if query.to_date:
        params["to"] = query.to_date

    return params


# ── Provider client ────────────────────────────────────────────────────────────


class NewsAPIClient:
    """Fetches headlines from NewsAPI.

    The ``httpx`` client is lazy-initialised; pass an ``httpx`` transport
    (e.g. ``httpx.MockTransport``) to run without the network.
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
                base_url=self.settings.news_api_base_url,
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def fetch(self, query: NewsQuery) -> list[Article]:
        """Fetch and normalise articles for *query*.

        Records without a title or URL are skipped with a warning.

        Raises:
            NewsProviderError: On a missing API key, transport error or
                timeout, non-2xx status, non-``ok`` payload status or a body
                that does not match the expected schema.
        """
        if not self.settings.news_api_key:
            raise NewsProviderError("NEWS_API_KEY is not configured.")

        params = build_params(query, self.settings)
        try:
            response = self.client.get("/top-headlines", params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NewsProviderError(f"NewsAPI request failed: {exc}") from exc

        try:
            payload = NewsAPIResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise NewsProviderError(
                f"NewsAPI returned a malformed body ({exc.error_count()} errors)"
            ) from exc
        if payload.status != "ok":
            raise NewsProviderError(f"NewsAPI returned status {payload.status!r}")

        articles: list[Article] = []
        for raw in payload.articles:
            try:
                articles.append(normalize_article(raw))
            except ValueError as exc:
                logger.warning("Skipping NewsAPI record: %s", exc)

        logger.info(
            "Fetched %d articles from NewsAPI (category=%s, q=%r)",
            len(articles), params.get("category"), params.get("q"),
        )
        return articles


# ── Static fallback set ────────────────────────────────────────────────────────


def fallback_articles(category: Optional[Category] = None) -> list[Article]:
    """Return the static articles served when no live or cached data exists.

    Args:
        category: When given, only articles tagged with it are returned.
    """
    now = datetime.now(timezone.utc)
    articles = [
        Article(
            id="mock-1",
            title="Malaysia Announces New Economic Recovery Plan",
            description=(
                "The Malaysian government unveils a comprehensive economic "
                "recovery plan to boost post-pandemic growth."
            ),
            url="https://example.com/article-1",
            published_at=now,
            source=Source(id="mock-source", name="Malaysia Today"),
            category=Category.ECONOMY,
            author="Economic Reporter",
        ),
        Article(
            id="mock-2",
            title="Parliament Debates New Healthcare Reform Bill",
            description=(
                "Heated discussions in Parliament as lawmakers examine proposed "
                "healthcare system improvements."
            ),
            url="https://example.com/article-2",
            published_at=now - timedelta(hours=1),
            source=Source(id="mock-source-2", name="The Malaysian"),
            category=Category.POLITICS,
            author="Political Correspondent",
        ),
        Article(
            id="mock-3",
            title="Community Initiative Addresses Urban Housing Crisis",
            description=(
                "Local communities in Kuala Lumpur launch innovative programs to "
                "tackle affordable housing shortage."
            ),
            url="https://example.com/article-3",
            published_at=now - timedelta(hours=2),
            source=Source(id="mock-source-3", name="Community News"),
            category=Category.SOCIAL,
            author="Social Reporter",
        ),
        Article(
            id="mock-4",
            title="Tech Sector Shows Strong Growth in Q4",
            description=(
                "Malaysian technology companies report record profits as digital "
                "transformation accelerates."
            ),
            url="https://example.com/article-4",
            published_at=now - timedelta(hours=3),
            source=Source(id="mock-source-4", name="Tech Malaysia"),
            category=Category.ECONOMY,
            author="Tech Analyst",
        ),
    ]
    if category is None:
        return articles
    return [a for a in articles if a.category == category]


# ── News service ───────────────────────────────────────────────────────────────


class NewsService:
    """Read operations over the news provider, always answered via the cache."""

    #: Page sizes used by the read operations.
    SEARCH_PAGE_SIZE = 15
    CATEGORY_PAGE_SIZE = 20
    #: How many latest articles are scanned when resolving an article id.
    LOOKUP_SIZE = 50

    def __init__(self, client: NewsAPIClient, cache: NewsCache) -> None:
        self.client = client
        self.cache = cache

    def fetch(self, query: NewsQuery) -> list[Article]:
        """Return articles for an arbitrary query, degrading on provider failure."""
        return self.cache.get_or_fetch(
            query,
            fetch=lambda: self.client.fetch(query),
            fallback=lambda: fallback_articles(query.category),
        )

    def search(self, query: str, category: Optional[Category] = None) -> list[Article]:
        """Free-text search, ordered by relevancy.

        Raises:
            ValueError: If the query is blank.
        """
        query = query.strip()
        if not query:
            raise ValueError("Search query must not be empty.")
        return self.fetch(NewsQuery(
            query=query,
            category=category,
            sort_by="relevancy",
            page_size=self.SEARCH_PAGE_SIZE,
        ))

    def by_category(self, category: Category) -> list[Article]:
        """Most recent articles for one category."""
        return self.fetch(NewsQuery(
            category=category,
            sort_by="publishedAt",
            page_size=self.CATEGORY_PAGE_SIZE,
        ))

    def latest(self, limit: int = 10) -> list[Article]:
        """The *limit* most recent articles.

        The provider treats the page size as a hint, so the result is
        truncated here as well.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1.")
        articles = self.fetch(NewsQuery(page_size=limit, sort_by="publishedAt"))
        return articles[:limit]

    def find_article(self, article_id: str) -> Optional[Article]:
        """Resolve an article id against the latest headlines."""
        for article in self.latest(self.LOOKUP_SIZE):
            if article.id == article_id:
                return article
        return None
