"""
Terminal chat with the news assistant.

Run with: python web/console.py   (or the ``news-chat`` script)

The conversation lives in memory and is bounded by ``MAX_MESSAGES``.
Type ``/clear`` to start over and ``/quit`` to leave.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable, Iterator

# Allow running as `python web/console.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config.settings import Settings
from core.conversation import ChatSession, Conversation
from core.models import ChatMessage
from web.app import build_news_service, build_orchestrator

PROMPT = "you> "
QUIT_COMMANDS = ("/quit", "/exit")
CLEAR_COMMAND = "/clear"


def format_message(message: ChatMessage) -> str:
    """Render an assistant message, listing any attached articles."""
    lines = [f"assistant> {message.content}"]
    for article in message.news_articles or []:
        lines.append(f"  - {article.title} ({article.source.name}) {article.url}")
    return "\n".join(lines)


def run_session(
    session: ChatSession,
    lines: Iterable[str],
    write: Callable[[str], None] = print,
) -> None:
    """Drive *session* with user input *lines*, writing each reply."""
    for message in session.conversation:
        write(format_message(message))

    for line in lines:
        command = line.strip()
        if command in QUIT_COMMANDS:
            break
        if command == CLEAR_COMMAND:
            session.conversation.clear()
            for message in session.conversation:
                write(format_message(message))
            continue

        reply = session.send(line)
        if reply is not None:
            write(format_message(reply))


def _input_lines() -> Iterator[str]:
    while True:
        try:
            yield input(PROMPT)
        except (EOFError, KeyboardInterrupt):
            return


def main() -> None:
    settings = Settings()
    try:
        settings.validate()
    except ValueError as exc:
        sys.exit(str(exc))

    orchestrator = build_orchestrator(settings, build_news_service(settings))
    session = ChatSession(orchestrator, Conversation(max_messages=settings.max_messages))
    run_session(session, _input_lines())


if __name__ == "__main__":
    main()
