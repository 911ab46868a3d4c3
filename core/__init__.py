"""
Malaysia news chat core package.

Modules
───────
models        — Pydantic data models (Article, ChatMessage, SummaryResult, NewsQuery, …)
categorizer   — keyword-based news category classifier
normalizer    — raw provider record → Article, deterministic article ids
cache         — in-memory news cache with stale and static fallbacks
news          — NewsAPI client, fallback articles, NewsService
llm           — LLM provider clients (chat completions, Anthropic)
chat          — ChatOrchestrator: conversation, summaries, re-categorisation
conversation  — bounded in-memory conversation log and ChatSession
errors        — provider exception hierarchy
"""
