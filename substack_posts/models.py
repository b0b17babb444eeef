"""
Data models for the Substack post cache.
"""

import datetime
import html
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple

_SKIPPED_BLOCKS = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_TAGS = re.compile("<.*?>", re.DOTALL)


def html_to_text(raw_html: Optional[str]) -> str:
    """Converts HTML markup to normalized plain text for indexing."""
    if not raw_html:
        return ""
    text = _SKIPPED_BLOCKS.sub(" ", raw_html)
    # Tags become spaces so adjacent block elements don't fuse words
    text = _TAGS.sub(" ", text)
    text = html.unescape(text)
    return " ".join(text.split())


def to_utc(value: datetime.datetime) -> datetime.datetime:
    """Returns an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


@dataclass(frozen=True)
class Article:
    """A single published post, immutable once fetched."""

    id: str
    title: str
    canonical_url: str
    summary: str
    rich_content: str
    plain_content: str
    published_at: datetime.datetime
    author: str
    tags: Tuple[str, ...] = field(default_factory=tuple)
    cover_image_url: Optional[str] = None

    @classmethod
    def create(
        cls,
        id: str,  # pylint: disable=redefined-builtin
        title: str,
        canonical_url: str,
        summary: str,
        rich_content: str,
        published_at: datetime.datetime,
        author: str,
        tags: Iterable[str] = (),
        cover_image_url: Optional[str] = None,
    ) -> "Article":
        """Builds an article, deriving plain_content from rich_content."""
        return cls(
            id=id,
            title=title,
            canonical_url=canonical_url,
            summary=summary,
            rich_content=rich_content,
            plain_content=html_to_text(rich_content),
            published_at=to_utc(published_at),
            author=author,
            tags=tuple(tags),
            cover_image_url=cover_image_url,
        )

    def with_content(self, rich_content: str) -> "Article":
        """Returns a copy with new markup and its recomputed plain text."""
        return replace(
            self, rich_content=rich_content, plain_content=html_to_text(rich_content)
        )


def build_collection(articles: Iterable[Article]) -> Tuple[Article, ...]:
    """
    Normalizes a raw article list into a collection.

    Duplicate ids and duplicate canonical URLs are resolved last-seen-wins.
    The result is ordered newest first; equal timestamps keep source order.
    """
    by_id = {}
    for article in articles:
        by_id.pop(article.id, None)
        by_id[article.id] = article

    by_url = {}
    for article in by_id.values():
        by_url.pop(article.canonical_url, None)
        by_url[article.canonical_url] = article

    unique: List[Article] = list(by_url.values())
    unique.sort(key=lambda a: a.published_at, reverse=True)
    return tuple(unique)
