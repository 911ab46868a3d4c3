"""Conversion of raw provider records into canonical ``Article`` objects."""

from __future__ import annotations

import hashlib
import logging

from core.categorizer import classify_text, parse_category
from core.models import Article, Category, RawArticle, Source

logger = logging.getLogger(__name__)

#: Length of generated article ids.
ID_LENGTH = 10

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

#: Title NewsAPI substitutes for articles withdrawn by the publisher.
_REMOVED_TITLE = "[Removed]"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def article_id(url: str) -> str:
    """Return a stable short id for *url*.

    SHA-256 of the URL rendered in base 36 and cut to ``ID_LENGTH``
    characters; identical across runs and processes.
    """
    digest = hashlib.sha256(url.encode("utf-8")).digest()
    return _to_base36(int.from_bytes(digest, "big"))[:ID_LENGTH]


def normalize_article(raw: RawArticle) -> Article:
    """Build a canonical ``Article`` from a raw provider record.

    Args:
        raw: The validated provider record.

    Returns:
        The normalised article. Its category comes from the provider when
        the provider supplies a non-general one, otherwise from
        ``classify_text``.

    Raises:
        ValueError: If the record has no usable title or URL, or its
            timestamp cannot be parsed.
    """
    title = (raw.title or "").strip()
    url = (raw.url or "").strip()
    if not title or not url or title == _REMOVED_TITLE:
        raise ValueError(f"Provider record is missing a title or URL: {raw.url!r}")

    description = raw.description or ""
    category = parse_category(raw.category)
    if category is None or category == Category.GENERAL:
        category = classify_text(title, description)

    fields = {
        "id": article_id(url),
        "title": title,
        "description": description,
        "content": raw.content,
        "url": url,
        "url_to_image": raw.url_to_image,
        "source": Source(
            id=raw.source.id or "unknown",
            name=raw.source.name or "Unknown Source",
        ),
        "category": category,
        "author": raw.author,
    }
    if raw.published_at:
        fields["published_at"] = raw.published_at

    return Article(**fields)
