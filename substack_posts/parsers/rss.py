"""
RSS feed parser implementation.

This module provides the RSSParser class for fetching and parsing
Substack RSS feeds into Article records.
"""

import calendar
import datetime
import logging
import time
from typing import Any, Callable, List, Optional

import requests
import feedparser  # type: ignore
from substack_posts.errors import FeedFetchError
from substack_posts.models import Article

logger = logging.getLogger(__name__)

USER_AGENT = "SubstackPostsBot/1.0"


class RSSParser:
    """Fetches RSS feeds with retry and exponential backoff."""

    def __init__(
        self,
        retries: int = 3,
        timeout: float = 10,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.retries = max(1, retries)
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _download(self, feed_url: str) -> bytes:
        # Some hosts reject the default python-requests agent
        resp = requests.get(
            feed_url, timeout=self.timeout, headers={"User-Agent": USER_AGENT}
        )
        resp.raise_for_status()
        return resp.content

    def _entry_date(self, entry: Any) -> datetime.datetime:
        """Publication date of an entry; falls back to now if it has none."""
        parsed = entry.get("published_parsed") or entry.get("updated_parsed")
        if parsed:
            # feedparser normalizes dates to UTC struct_time
            return datetime.datetime.fromtimestamp(
                calendar.timegm(parsed), tz=datetime.timezone.utc
            )
        return datetime.datetime.now(datetime.timezone.utc)

    def _entry_content(self, entry: Any) -> str:
        """Full HTML body: content:encoded, then content, then summary."""
        for content in entry.get("content") or []:
            value = content.get("value")
            if value:
                return value
        return entry.get("summary", "")

    def _entry_image(self, entry: Any) -> Optional[str]:
        for enclosure in entry.get("enclosures") or []:
            href = enclosure.get("href") or enclosure.get("url")
            if href:
                return href
        return None

    def _to_article(self, entry: Any) -> Article:
        link = entry.get("link", "")
        return Article.create(
            id=entry.get("id") or link or f"post-{time.time_ns()}",
            title=entry.get("title") or "Untitled",
            canonical_url=link,
            summary=entry.get("summary", ""),
            rich_content=self._entry_content(entry),
            published_at=self._entry_date(entry),
            author=entry.get("author") or "Unknown",
            tags=[t.get("term") for t in entry.get("tags") or [] if t.get("term")],
            cover_image_url=self._entry_image(entry),
        )

    def parse(self, content: bytes) -> List[Article]:
        """Parses raw feed bytes into articles."""
        feed = feedparser.parse(content)
        if feed.bozo and not feed.entries:
            raise FeedFetchError(f"Unparseable feed: {feed.get('bozo_exception')}")
        return [self._to_article(entry) for entry in feed.entries]

    def fetch_articles(self, feed_url: str) -> List[Article]:
        """Fetches and parses a single RSS feed, retrying on failure."""
        last_error: Optional[Exception] = None

        for attempt in range(self.retries):
            try:
                logger.info(
                    "Fetching RSS feed (attempt %d/%d): %s",
                    attempt + 1,
                    self.retries,
                    feed_url,
                )
                articles = self.parse(self._download(feed_url))
                logger.info("Successfully fetched %d posts.", len(articles))
                return articles
            except (requests.RequestException, FeedFetchError) as e:
                last_error = e
                logger.error("Attempt %d failed: %s", attempt + 1, e)

                if attempt < self.retries - 1:
                    delay = self.backoff_seconds * (2**attempt)
                    logger.info("Retrying in %.1fs...", delay)
                    self._sleep(delay)

        raise FeedFetchError(
            f"Failed to fetch RSS feed after {self.retries} attempts: {last_error}"
        )
