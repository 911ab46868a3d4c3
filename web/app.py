"""
Flask web server for the Malaysia news chat.

Routes
──────
GET  /                      API index (JSON)
POST /api/chat              Chat turn, optionally grounded in searched news
GET  /api/news/fetch        Latest / by-category / query news
GET  /api/news/search       Free-text news search (q or query required)
POST /api/news/summarize    Structured summary of an article (id or URL)
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from pydantic import BaseModel, ValidationError

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from core.cache import NewsCache
from core.categorizer import parse_category
from core.chat import ChatOrchestrator
from core.errors import LLMUnavailableError
from core.llm import build_llm_client
from core.models import Article, Category, ChatMessage, Source
from core.news import NewsAPIClient, NewsService


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


configure_logging(Settings())
logger = logging.getLogger(__name__)


class InvalidRequest(ValueError):
    """Invalid request input; answered with HTTP 400."""


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _int_arg(value: object, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be an integer") from None
    if number < 1:
        raise InvalidRequest(f"{name} must be at least 1")
    return number


def _category_arg(value: Optional[str]) -> Optional[Category]:
    if not value:
        return None
    category = parse_category(value)
    if category is None:
        raise InvalidRequest(f"Unknown category: {value!r}")
    return category


def _parse_history(raw: object) -> list[ChatMessage]:
    if not isinstance(raw, list) or not raw:
        raise InvalidRequest("Messages array is required")
    history: list[ChatMessage] = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidRequest("Each message must be an object with role and content")
        try:
            history.append(ChatMessage(role=item.get("role"), content=item.get("content")))
        except ValidationError:
            raise InvalidRequest("Each message needs a role (user|assistant) and text content") from None
    return history


def _bool_arg(value: object, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidRequest(f"{name} must be a boolean")
    return value


# ── Service wiring ─────────────────────────────────────────────────────────────


def build_news_service(settings: Settings) -> NewsService:
    """Create the news service and its process-wide cache.

    The provider's HTTP client is closed at interpreter exit.
    """
    client = NewsAPIClient(settings)
    atexit.register(client.close)
    cache = NewsCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    return NewsService(client, cache)


def build_orchestrator(settings: Settings, news_service: Optional[NewsService] = None) -> ChatOrchestrator:
    """Create the chat orchestrator for the configured LLM backend.

    The backend's client is closed at interpreter exit.
    """
    llm = build_llm_client(settings)
    atexit.register(llm.close)
    return ChatOrchestrator(
        llm,
        news=news_service,
        country=settings.news_country_name,
        categorize_workers=settings.categorize_workers,
    )


def create_app(
    settings: Optional[Settings] = None,
    news_service: Optional[NewsService] = None,
    orchestrator: Optional[ChatOrchestrator] = None,
) -> Flask:
    """Build the Flask app.

    The news cache, news service and orchestrator are created once here and
    shared by every request of the process; tests inject their own.
    """
    settings = settings or Settings()

    if news_service is None:
        news_service = build_news_service(settings)
    if orchestrator is None:
        orchestrator = build_orchestrator(settings, news_service)

    app = Flask(__name__)

    @app.errorhandler(InvalidRequest)
    def bad_request(exc: InvalidRequest):
        return jsonify({"error": str(exc)}), 400

    # ── Index ──────────────────────────────────────────────────────────────

    @app.route("/")
    def index():
        return jsonify({
            "message": f"{settings.news_country_name} News Chatbot API",
            "endpoints": {
                "chat": "POST /api/chat - Send chat messages",
                "news": {
                    "fetch": "GET /api/news/fetch - Fetch latest news",
                    "search": "GET /api/news/search - Search news",
                    "summarize": "POST /api/news/summarize - Summarize articles",
                },
            },
        })

    # ── Chat ───────────────────────────────────────────────────────────────

    @app.route("/api/chat", methods=["POST"])
    def chat():
        """Answer a chat turn.

        JSON body:
          messages     (required) — [{"role": "user"|"assistant", "content": "..."}]
          includeNews  (optional) — inject searched news as context
          newsQuery    (optional) — search used for that context
        """
        body = request.get_json(silent=True) or {}
        history = _parse_history(body.get("messages"))
        include_news = _bool_arg(body.get("includeNews"), "includeNews")
        news_query = body.get("newsQuery")
        if news_query is not None and not isinstance(news_query, str):
            raise InvalidRequest("newsQuery must be a string")

        try:
            reply = orchestrator.reply(
                history,
                include_news=include_news,
                news_query=news_query,
            )
        except LLMUnavailableError as exc:
            logger.warning("Chat request failed: %s", exc)
            return jsonify({"error": "Failed to process chat request", "details": str(exc)}), 502

        payload = {"response": reply.response, "timestamp": _now()}
        if reply.context_articles:
            payload["contextArticles"] = [_dump(a) for a in reply.context_articles]
        return jsonify(payload)

    # ── News ───────────────────────────────────────────────────────────────

    def _news_payload(articles: list[Article], limit: int, category: Optional[Category], query: Optional[str]):
        return jsonify({
            "articles": [_dump(a) for a in articles[:limit]],
            "total": len(articles),
            "timestamp": _now(),
            "category": category.value if category else "all",
            "query": query,
        })

    @app.route("/api/news/fetch")
    def fetch_news():
        """Return latest news, news for a category, or results for a query."""
        category = _category_arg(request.args.get("category"))
        limit = _int_arg(request.args.get("limit"), "limit", 20)
        query = (request.args.get("query") or "").strip() or None

        if query:
            articles = news_service.search(query, category)
        elif category and category != Category.GENERAL:
            articles = news_service.by_category(category)
        else:
            articles = news_service.latest(limit)

        return _news_payload(articles, limit, category, query)

    @app.route("/api/news/search")
    def search_news():
        """Search news; ``q`` (or ``query``) is required."""
        query = (request.args.get("q") or request.args.get("query") or "").strip()
        if not query:
            raise InvalidRequest("Query parameter is required")
        category = _category_arg(request.args.get("category"))
        limit = _int_arg(request.args.get("limit"), "limit", 15)

        articles = news_service.search(query, category)
        return _news_payload(articles, limit, category, query)

    @app.route("/api/news/summarize", methods=["POST"])
    def summarize_news():
        """Summarise an article given by ``articleId`` or ``articleUrl``."""
        body = request.get_json(silent=True) or {}
        article_id = body.get("articleId")
        article_url = body.get("articleUrl")
        max_length = _int_arg(body.get("maxLength"), "maxLength", 200)

        if not article_id and not article_url:
            raise InvalidRequest("Either articleUrl or articleId is required")

        if article_id:
            article = news_service.find_article(str(article_id))
            if article is None:
                return jsonify({"error": "Article not found"}), 404
        else:
            article = Article(
                id=f"temp-{int(datetime.now(timezone.utc).timestamp() * 1000)}",
                title="Article to Summarize",
                description="Article content from provided URL",
                url=str(article_url),
                source=Source(id="external", name="External Source"),
            )

        try:
            summary = orchestrator.summarize(article, max_length)
        except LLMUnavailableError as exc:
            logger.warning("Summarisation failed for %s: %s", article.url, exc)
            return jsonify({"error": "Failed to summarize article", "details": str(exc)}), 502

        return jsonify({
            "summary": _dump(summary),
            "article": {
                "id": article.id,
                "title": article.title,
                "url": article.url,
                "source": article.source.name,
            },
            "timestamp": _now(),
        })

    return app


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    settings = Settings()
    try:
        settings.validate()
    except ValueError as exc:
        logger.warning("%s Chat and summaries will be unavailable.", exc)
    create_app(settings).run(debug=settings.debug, host="0.0.0.0", port=settings.port)
