"""News category classification.

Classifies an article into one of four categories from keywords found in its
title and description:

- POLITICS  Government, parliament, elections, policy
- ECONOMY   Business, markets, trade, the ringgit
- SOCIAL    Community, education, health, culture
- GENERAL   Everything else

Keyword sets are checked in that order and the first hit wins, so an article
mentioning both parliament and the ringgit is filed under politics.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.models import Category

logger = logging.getLogger(__name__)


# ── Keyword sets ───────────────────────────────────────────────────────────────

#: Substrings matched against the lower-cased title + description.
#: Stems such as ``politic`` and ``econom`` cover their inflections.
_POLITICS_KEYWORDS: tuple[str, ...] = (
    "politic", "government", "parliament", "minister", "election", "policy",
)
_ECONOMY_KEYWORDS: tuple[str, ...] = (
    "econom", "business", "finance", "market", "trade", "ringgit",
)
_SOCIAL_KEYWORDS: tuple[str, ...] = (
    "social", "community", "society", "education", "health", "culture",
)

#: Priority order for matching.
_RULES: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.POLITICS, _POLITICS_KEYWORDS),
    (Category.ECONOMY, _ECONOMY_KEYWORDS),
    (Category.SOCIAL, _SOCIAL_KEYWORDS),
)


# ── Public interface ───────────────────────────────────────────────────────────


def classify_text(title: Optional[str], description: Optional[str]) -> Category:
    """Classify an article from its title and description.

    Args:
        title: The article headline. ``None`` is treated as empty.
        description: The article teaser. ``None`` is treated as empty.

    Returns:
        Exactly one ``Category``; ``Category.GENERAL`` when nothing matches.

    Examples:
        >>> classify_text("Parliament passes budget", "")
        <Category.POLITICS: 'politics'>
        >>> classify_text("Ringgit strengthens", "Markets rally")
        <Category.ECONOMY: 'economy'>
        >>> classify_text("", "")
        <Category.GENERAL: 'general'>
    """
    text = f"{title or ''} {description or ''}".lower()

    for category, keywords in _RULES:
        if any(keyword in text for keyword in keywords):
            return category

    return Category.GENERAL


def parse_category(value: Optional[str]) -> Optional[Category]:
    """Convert free-form text into a ``Category``, or ``None`` if it isn't one.

    Tolerates surrounding whitespace, case and trailing punctuation, which is
    what a one-word LLM answer usually looks like (``"Politics."``).
    """
    if not value:
        return None
    cleaned = value.strip().strip(".!\"'").lower()
    try:
        return Category(cleaned)
    except ValueError:
        logger.debug("Unrecognised category value: %r", value)
        return None
