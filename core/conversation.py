"""
In-memory conversation log for the news assistant.

A ``Conversation`` is an ordered, size-bounded list of immutable
``ChatMessage`` objects: once ``max_messages`` is exceeded the oldest
messages are dropped. ``ChatSession`` drives one conversation against a
``ChatOrchestrator``, deciding per turn whether to pull in news context.
Nothing here is persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Optional

from core.errors import LLMUnavailableError
from core.models import Article, ChatMessage, MessageType, Role

if TYPE_CHECKING:
    from core.chat import ChatOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 50

WELCOME_MESSAGE = (
    "Hello! I'm your Malaysian news assistant. Ask me about the latest news in "
    "politics, economy, social issues, or any current events in Malaysia. "
    "I can also summarize articles for you!"
)

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error while processing your message. "
    "Please try again."
)

#: Words that make a message worth answering with news context.
_NEWS_TRIGGERS: tuple[str, ...] = (
    "news", "latest", "current", "politics", "economy", "social",
)


def wants_news(content: str) -> bool:
    """Return True if *content* asks about news or a news category."""
    lowered = content.lower()
    return any(trigger in lowered for trigger in _NEWS_TRIGGERS)


class Conversation:
    """Ordered, size-bounded log of chat messages."""

    def __init__(
        self,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        greeting: Optional[str] = WELCOME_MESSAGE,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1.")
        self.max_messages = max_messages
        self.greeting = greeting
        self._messages: list[ChatMessage] = []
        self.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def history(self) -> list[ChatMessage]:
        """Return the messages, oldest first."""
        return list(self._messages)

    def add(
        self,
        role: Role,
        content: str,
        type: MessageType = "text",
        news_articles: Optional[list[Article]] = None,
    ) -> ChatMessage:
        """Append a message, evicting the oldest ones beyond ``max_messages``.

        Returns:
            The stored ``ChatMessage``.
        """
        message = ChatMessage(
            role=role,
            content=content,
            type=type,
            news_articles=news_articles or None,
        )
        self._messages.append(message)
        overflow = len(self._messages) - self.max_messages
        if overflow > 0:
            del self._messages[:overflow]
        return message

    def clear(self) -> None:
        """Drop every message and restore the greeting."""
        self._messages = []
        if self.greeting:
            self._messages.append(ChatMessage(id="welcome", role="assistant", content=self.greeting))


class ChatSession:
    """One user's conversation with the assistant."""

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        conversation: Optional[Conversation] = None,
        include_news_context: bool = True,
    ) -> None:
        self.orchestrator = orchestrator
        self.conversation = conversation if conversation is not None else Conversation()
        self.include_news_context = include_news_context
        self.error: Optional[str] = None

    def send(self, content: str, news_query: Optional[str] = None) -> Optional[ChatMessage]:
        """Send a user message and record the assistant's reply.

        Args:
            content: The user's message. Blank messages are ignored.
            news_query: Explicit news search; otherwise the message itself is
                used when it mentions news.

        Returns:
            The assistant message appended to the conversation, or ``None``
            for blank input. On provider failure this is an apology and
            ``error`` is set.
        """
        content = content.strip()
        if not content:
            return None

        self.error = None
        self.conversation.add("user", content)

        include_news = self.include_news_context and bool(news_query or wants_news(content))
        query = news_query or (content if include_news else None)

        try:
            reply = self.orchestrator.reply(
                self.conversation.history(),
                include_news=include_news,
                news_query=query,
            )
        except LLMUnavailableError as exc:
            logger.warning("Chat turn failed: %s", exc)
            self.error = str(exc)
            return self.conversation.add("assistant", APOLOGY_MESSAGE)

        if reply.context_articles:
            return self.conversation.add(
                "assistant", reply.response, type="news", news_articles=reply.context_articles,
            )
        return self.conversation.add("assistant", reply.response)
