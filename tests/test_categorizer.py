"""Tests for core/categorizer.py — keyword-based news classification."""

from __future__ import annotations

import pytest

from core.categorizer import classify_text, parse_category
from core.models import Category


# ── Keyword classification ─────────────────────────────────────────────────────


class TestClassifyText:
    def test_parliament_is_politics(self):
        assert classify_text("Parliament sits for budget debate", "") == Category.POLITICS

    def test_minister_in_description_is_politics(self):
        assert classify_text("Press conference", "The minister announced new rules") == Category.POLITICS

    def test_ringgit_is_economy(self):
        assert classify_text("Ringgit strengthens against dollar", "") == Category.ECONOMY

    def test_economy_word_is_economy(self):
        assert classify_text("Malaysia's economy grows 5%", "") == Category.ECONOMY

    def test_education_is_social(self):
        assert classify_text("New schools open", "Education programme for rural pupils") == Category.SOCIAL

    def test_health_is_social(self):
        assert classify_text("Dengue cases rise", "Health officials urge caution") == Category.SOCIAL

    def test_politics_beats_economy(self):
        assert classify_text("Government unveils trade plan", "Markets react") == Category.POLITICS

    def test_economy_beats_social(self):
        assert classify_text("Business leaders fund community centre", "") == Category.ECONOMY

    def test_no_keywords_is_general(self):
        assert classify_text("Durian season arrives early", "Fruit stalls are busy") == Category.GENERAL

    def test_empty_text_is_general(self):
        assert classify_text("", "") == Category.GENERAL

    def test_none_is_general(self):
        assert classify_text(None, None) == Category.GENERAL

    def test_case_insensitive(self):
        assert classify_text("ELECTION RESULTS", "") == Category.POLITICS

    @pytest.mark.parametrize("title", ["", "x", "Parliament", "ringgit", "culture", "🙂"])
    def test_always_returns_a_category(self, title):
        assert classify_text(title, title) in set(Category)


# ── Category parsing ───────────────────────────────────────────────────────────


class TestParseCategory:
    def test_exact_value(self):
        assert parse_category("economy") == Category.ECONOMY

    def test_tolerates_case_and_punctuation(self):
        assert parse_category("  Politics.\n") == Category.POLITICS

    def test_unknown_returns_none(self):
        assert parse_category("sports") is None

    def test_empty_returns_none(self):
        assert parse_category("") is None
        assert parse_category(None) is None
