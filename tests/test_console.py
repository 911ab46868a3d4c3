"""
Tests for web/console.py

Run with: pytest tests/test_console.py
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from core.conversation import WELCOME_MESSAGE, ChatSession, Conversation
from core.models import Article, ChatReply, Source
from web.console import main, run_session


@pytest.fixture
def orchestrator() -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.reply.return_value = ChatReply(response="Sure.")
    return orchestrator


def run(session: ChatSession, lines: list[str]) -> list[str]:
    output: list[str] = []
    run_session(session, lines, output.append)
    return output


class TestRunSession:
    def test_greets_then_replies(self, orchestrator):
        output = run(ChatSession(orchestrator), ["Hi there"])

        assert output == [f"assistant> {WELCOME_MESSAGE}", "assistant> Sure."]

    def test_blank_lines_are_skipped(self, orchestrator):
        output = run(ChatSession(orchestrator), ["   ", ""])

        assert len(output) == 1
        orchestrator.reply.assert_not_called()

    def test_quit_stops_reading(self, orchestrator):
        run(ChatSession(orchestrator), ["/quit", "Hi there"])
        orchestrator.reply.assert_not_called()

    def test_clear_restarts_conversation(self, orchestrator):
        session = ChatSession(orchestrator)

        output = run(session, ["Hi there", "/clear"])

        assert [m.id for m in session.conversation] == ["welcome"]
        assert output[-1] == f"assistant> {WELCOME_MESSAGE}"

    def test_context_articles_are_listed(self, orchestrator):
        article = Article(
            id="a1", title="Budget tabled", url="https://example.com/1",
            source=Source(id="star", name="The Star"),
        )
        orchestrator.reply.return_value = ChatReply(response="Here you go.", context_articles=[article])

        output = run(ChatSession(orchestrator), ["latest news"])

        assert output[-1] == "assistant> Here you go.\n  - Budget tabled (The Star) https://example.com/1"

    def test_conversation_stays_bounded(self, orchestrator):
        session = ChatSession(orchestrator, Conversation(max_messages=4))

        run(session, [f"message {i}" for i in range(10)])

        assert len(session.conversation) == 4


class TestMain:
    @patch.dict(os.environ, {"LLM_PROVIDER": "chat-completions", "LLM_API_KEY": "k", "MAX_MESSAGES": "7"})
    @patch("web.console.run_session")
    @patch("web.console.build_news_service")
    @patch("web.console.build_orchestrator")
    def test_session_uses_configured_bound(self, mock_orchestrator, mock_news, mock_run):
        main()

        session = mock_run.call_args.args[0]
        assert session.conversation.max_messages == 7
        assert session.orchestrator is mock_orchestrator.return_value
        assert mock_orchestrator.call_args.args[1] is mock_news.return_value

    @patch.dict(os.environ, {"LLM_PROVIDER": "chat-completions", "LLM_API_KEY": ""})
    @patch("web.console.run_session")
    def test_missing_key_exits(self, mock_run):
        with pytest.raises(SystemExit):
            main()
        mock_run.assert_not_called()
