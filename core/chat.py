"""Chat orchestration over an LLM provider.

Provides three operations:

1. **Conversation** — ``ChatOrchestrator.converse()`` / ``reply()``:
   persona prompt + optional news-context block + history, relayed to the
   LLM at a conversational temperature.

2. **Summarisation** — ``ChatOrchestrator.summarize()``:
   a low-temperature request for a fixed JSON shape. Malformed output
   degrades to a plain-text summary instead of raising.

3. **Re-categorisation** — ``ChatOrchestrator.categorize()``:
   asks the LLM to file ``general`` articles under a specific category,
   one bounded-pool request per article.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Optional

from core.categorizer import parse_category
from core.errors import LLMUnavailableError
from core.models import Article, Category, ChatMessage, ChatReply, SummaryResult

if TYPE_CHECKING:
    from core.llm import LLMClient
    from core.news import NewsService

logger = logging.getLogger(__name__)

# ── Sampling parameters ────────────────────────────────────────────────────────

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000
SUMMARY_TEMPERATURE = 0.3
SUMMARY_MAX_TOKENS = 500
CATEGORIZE_TEMPERATURE = 0.1
CATEGORIZE_MAX_TOKENS = 10

#: Characters of article content included in a summarisation prompt.
CONTENT_EXCERPT_CHARS = 2000
#: Articles injected as chat context.
DEFAULT_CONTEXT_LIMIT = 5

NO_RESPONSE = "Sorry, I could not generate a response."
SUMMARY_NOT_AVAILABLE = "Summary not available"

_SENTIMENTS = frozenset(["positive", "negative", "neutral"])
_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

# ── Prompts ────────────────────────────────────────────────────────────────────

PERSONA_PROMPT = """\
You are a knowledgeable {country} news assistant and chatbot. Your role is to:

1. Provide helpful information about current events in {country}
2. Summarize {country} news articles clearly and concisely
3. Answer questions about {country} politics, economy, and social issues
4. Engage in natural conversation about {country} current affairs
5. Always provide accurate, unbiased, and well-informed responses

Guidelines:
- Focus on {country} context and perspectives
- Provide balanced viewpoints on political and social issues
- Use clear, accessible language for all users
- When summarizing articles, highlight key points and implications
- If you don't have current information, clearly state this limitation
- Encourage users to verify important information from official sources

You should be conversational, helpful, and informative while maintaining journalistic objectivity."""

SUMMARY_SYSTEM = (
    "You are a professional news summarizer specializing in {country} news. "
    "Always respond with valid JSON."
)

CATEGORIZE_SYSTEM = (
    "You are a news categorization expert for {country} news. "
    "Respond with only the category name."
)


def _load_json_object(text: str) -> Optional[dict]:
    """Parse *text* as a JSON object, tolerating a markdown code fence.

    Returns ``None`` when the text is not JSON or not an object.
    """
    candidate = text.strip()
    fenced = _CODE_FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_summary(raw: str, max_length: int) -> SummaryResult:
    """Turn an LLM summarisation reply into a ``SummaryResult``.

    JSON replies have their fields passed through, with defaults for
    missing or invalid values. Anything else becomes the summary text,
    truncated to *max_length* characters with ``...`` appended when cut.
    """
    data = _load_json_object(raw)
    if data is None:
        logger.info("Summary reply was not JSON; using raw text")
        text = raw if len(raw) <= max_length else raw[:max_length] + "..."
        return SummaryResult(summary=text)

    key_points = data.get("keyPoints")
    sentiment = data.get("sentiment")
    category = data.get("category")

    return SummaryResult(
        summary=str(data.get("summary") or SUMMARY_NOT_AVAILABLE),
        key_points=[str(p) for p in key_points] if isinstance(key_points, list) else [],
        sentiment=sentiment.lower() if isinstance(sentiment, str) and sentiment.lower() in _SENTIMENTS else "neutral",
        category=(parse_category(category) if isinstance(category, str) else None) or Category.GENERAL,
    )


class ChatOrchestrator:
    """Assembles conversations and summary requests for the LLM provider."""

    def __init__(
        self,
        llm: LLMClient,
        news: Optional[NewsService] = None,
        country: str = "Malaysia",
        context_limit: int = DEFAULT_CONTEXT_LIMIT,
        categorize_workers: int = 4,
    ) -> None:
        """Initialise the orchestrator.

        Args:
            llm: Provider backend used for every call.
            news: News service used to fetch context articles for ``reply``.
            country: Country the assistant specialises in.
            context_limit: Maximum articles injected as chat context.
            categorize_workers: Pool size for ``categorize``.
        """
        self.llm = llm
        self.news = news
        self.country = country
        self.context_limit = context_limit
        self.categorize_workers = max(1, categorize_workers)

    # ── Conversation ───────────────────────────────────────────────────────

    def build_messages(
        self,
        history: Sequence[ChatMessage],
        articles: Optional[Sequence[Article]] = None,
    ) -> list[dict[str, str]]:
        """Build the outbound message list.

        Order: persona system prompt, optional news-context system message,
        then the history as ``{role, content}`` pairs. Attachments on
        history messages are not sent.
        """
        messages = [{"role": "system", "content": PERSONA_PROMPT.format(country=self.country)}]

        if articles:
            blocks = "\n\n".join(
                f"Title: {a.title}\n"
                f"Description: {a.description}\n"
                f"Source: {a.source.name}\n"
                f"Published: {a.published_at.isoformat()}\n"
                f"URL: {a.url}"
                for a in articles
            )
            messages.append({
                "role": "system",
                "content": f"Here are some relevant {self.country} news articles for context:\n\n{blocks}",
            })

        messages.extend({"role": m.role, "content": m.content} for m in history)
        return messages

    def converse(
        self,
        history: Sequence[ChatMessage],
        articles: Optional[Sequence[Article]] = None,
    ) -> str:
        """Send *history* (plus optional context articles) and return the reply.

        Raises:
            LLMUnavailableError: If the provider fails.
        """
        messages = self.build_messages(history, articles)
        logger.info(
            "Chat request: %d history messages, %d context articles",
            len(history), len(articles or []),
        )
        reply = self.llm.complete(messages, temperature=CHAT_TEMPERATURE, max_tokens=CHAT_MAX_TOKENS)
        return reply or NO_RESPONSE

    def reply(
        self,
        history: Sequence[ChatMessage],
        include_news: bool = False,
        news_query: Optional[str] = None,
    ) -> ChatReply:
        """Answer a chat turn, optionally grounding it in searched news.

        When *include_news* is set and *news_query* is non-blank, the first
        ``context_limit`` search results are injected as context.

        Raises:
            LLMUnavailableError: If the provider fails.
        """
        articles: list[Article] = []
        if include_news and news_query and news_query.strip() and self.news is not None:
            articles = self.news.search(news_query)[:self.context_limit]

        response = self.converse(history, articles)
        return ChatReply(response=response, context_articles=articles)

    # ── Summarisation ──────────────────────────────────────────────────────

    def summarize(self, article: Article, max_length: int = 200) -> SummaryResult:
        """Produce a structured summary of a single article.

        Args:
            article: The article to summarise.
            max_length: Word budget given to the model, and the character
                cap applied when the reply is not JSON.

        Raises:
            LLMUnavailableError: If the provider fails. Malformed replies
                never raise.
        """
        content = ""
        if article.content:
            content = f"Content: {article.content[:CONTENT_EXCERPT_CHARS]}\n"

        prompt = (
            f"Please provide a concise summary of this {self.country} news article:\n\n"
            f"Title: {article.title}\n"
            f"Description: {article.description}\n"
            f"Source: {article.source.name}\n"
            f"Published: {article.published_at.isoformat()}\n"
            f"{content}\n"
            "Please provide:\n"
            f"1. A summary in {max_length} words or less\n"
            "2. 3-5 key points\n"
            "3. The overall sentiment (positive, negative, or neutral)\n"
            "4. The main category this falls under (politics, economy, social, or general)\n\n"
            "Format your response as JSON with the following structure:\n"
            "{\n"
            '  "summary": "...",\n'
            '  "keyPoints": ["...", "...", "..."],\n'
            '  "sentiment": "positive|negative|neutral",\n'
            '  "category": "politics|economy|social|general"\n'
            "}"
        )
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM.format(country=self.country)},
            {"role": "user", "content": prompt},
        ]

        raw = self.llm.complete(messages, temperature=SUMMARY_TEMPERATURE, max_tokens=SUMMARY_MAX_TOKENS)
        return parse_summary(raw or "{}", max_length)

    # ── Re-categorisation ──────────────────────────────────────────────────

    def _ask_category(self, article: Article) -> Optional[Category]:
        prompt = (
            f"Categorize this {self.country} news article into one of these categories: "
            "politics, economy, social, general\n\n"
            f"Title: {article.title}\n"
            f"Description: {article.description}\n\n"
            "Respond with only one word: politics, economy, social, or general"
        )
        messages = [
            {"role": "system", "content": CATEGORIZE_SYSTEM.format(country=self.country)},
            {"role": "user", "content": prompt},
        ]
        reply = self.llm.complete(
            messages, temperature=CATEGORIZE_TEMPERATURE, max_tokens=CATEGORIZE_MAX_TOKENS,
        )
        return parse_category(reply)

    def categorize(self, articles: Sequence[Article]) -> list[Article]:
        """Ask the LLM to categorise every ``general`` article.

        Requests run on a pool of ``categorize_workers`` threads. An article
        whose request fails or whose reply is not a category keeps its
        original category. Input articles are never mutated; updated ones
        are returned as copies, in input order.
        """
        results = list(articles)
        pending = [i for i, a in enumerate(results) if a.category == Category.GENERAL]
        if not pending:
            return results

        with ThreadPoolExecutor(max_workers=self.categorize_workers) as pool:
            futures = {pool.submit(self._ask_category, results[i]): i for i in pending}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    category = future.result()
                except LLMUnavailableError:
                    logger.warning("Categorisation failed for article %s", results[index].id)
                    continue
                if category is not None and category != Category.GENERAL:
                    results[index] = results[index].model_copy(update={"category": category})

        logger.info("Categorised %d general articles", len(pending))
        return results
