"""
Post cache service.

This module provides the PostCache class which owns the article
collection for one feed. It handles:
- Lazy freshness checks at the top of every query
- Wholesale refresh of the collection and its search index
- Snapshot persistence for fast restarts
- Lookup and search queries over the current collection
"""

import datetime
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from substack_posts.errors import SourceUnavailableError
from substack_posts.models import Article, build_collection, to_utc
from substack_posts.parsers.base import FeedSource
from substack_posts.services.search_index import SearchIndex
from substack_posts.services.snapshot import Snapshot, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL = datetime.timedelta(minutes=30)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def is_stale(
    last_fetched_at: Optional[datetime.datetime],
    ttl: datetime.timedelta,
    now: datetime.datetime,
) -> bool:
    """True if the cache was never filled or is older than `ttl`."""
    if last_fetched_at is None:
        return True
    return now - last_fetched_at > ttl


@dataclass(frozen=True)
class _CacheState:
    """Collection, index and fetch time, always replaced together."""

    articles: Tuple[Article, ...]
    index: SearchIndex
    fetched_at: datetime.datetime


class PostCache:
    """
    In-memory cache of a feed's posts with search capabilities.

    Every query first checks freshness and refreshes synchronously when
    the TTL has passed. Readers only ever see a fully built state.
    """

    def __init__(
        self,
        feed_url: str,
        source: FeedSource,
        ttl: datetime.timedelta = DEFAULT_TTL,
        snapshot_file: Optional[Path] = None,
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        self.feed_url = feed_url
        self.source = source
        self.ttl = ttl
        self.snapshot_file = snapshot_file
        self._clock = clock
        self._state: Optional[_CacheState] = None
        self._lock = threading.Lock()

    @property
    def last_fetched_at(self) -> Optional[datetime.datetime]:
        state = self._state
        return state.fetched_at if state else None

    def initialize(self) -> None:
        """
        Prepares the cache before any query is accepted.

        A valid snapshot is adopted without contacting the feed; otherwise
        a full refresh runs and SourceUnavailableError propagates on failure.
        """
        logger.info("Initializing post cache for %s...", self.feed_url)
        with self._lock:
            if self._state is None and not self._restore_snapshot():
                self._refresh()
        logger.info("Post cache initialized.")

    def _restore_snapshot(self) -> bool:
        if self.snapshot_file is None:
            return False
        snapshot = load_snapshot(self.snapshot_file, self.feed_url)
        if snapshot is None:
            return False

        articles = build_collection(snapshot.articles)
        self._state = _CacheState(articles, SearchIndex(articles), snapshot.fetched_at)
        logger.info(
            "Loaded %d posts from snapshot fetched at %s.",
            len(articles),
            snapshot.fetched_at.isoformat(),
        )
        return True

    def _current(self) -> _CacheState:
        """Returns fresh state, refreshing first when stale."""
        with self._lock:
            state = self._state
            if state is None or is_stale(state.fetched_at, self.ttl, self._clock()):
                if state is not None:
                    logger.info("Cache is stale, refreshing...")
                self._refresh()
            # _refresh either sets state or raises
            return self._state  # type: ignore[return-value]

    def _refresh(self) -> None:
        """Fetches the feed and swaps in a new collection and index."""
        try:
            fetched = self.source.fetch_articles(self.feed_url)
        except Exception as e:  # pylint: disable=broad-exception-caught
            if self._state is None:
                raise SourceUnavailableError(
                    f"Could not load posts from {self.feed_url}: {e}"
                ) from e
            logger.warning(
                "Failed to refresh cache, serving %d cached posts: %s",
                len(self._state.articles),
                e,
            )
            return

        articles = build_collection(fetched)
        state = _CacheState(articles, SearchIndex(articles), self._clock())
        self._state = state
        logger.info("Cache refreshed: %d posts loaded.", len(articles))
        self._persist(state)

    def _persist(self, state: _CacheState) -> None:
        if self.snapshot_file is None:
            return
        try:
            save_snapshot(
                self.snapshot_file,
                Snapshot(
                    source_address=self.feed_url,
                    fetched_at=state.fetched_at,
                    articles=state.articles,
                ),
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Failed to persist snapshot %s: %s", self.snapshot_file, e)

    def articles(self) -> List[Article]:
        """Returns every cached post, newest first."""
        return list(self._current().articles)

    def search(self, query: str, limit: int = 10) -> List[Article]:
        """Searches title, content, summary and author."""
        limit = max(0, limit)
        state = self._current()
        if not query or not query.strip():
            return list(state.articles[:limit])

        by_id = {a.id: a for a in state.articles}
        return [by_id[i] for i in state.index.search(query, limit)]

    def list_recent(self, limit: int = 10, offset: int = 0) -> List[Article]:
        """Returns a page of posts, newest first."""
        limit, offset = max(0, limit), max(0, offset)
        state = self._current()
        return list(state.articles[offset : offset + limit])

    def get_by_title(self, title: str, exact: bool = False) -> Optional[Article]:
        """Finds the newest post whose title equals or contains `title`."""
        state = self._current()
        wanted = title.lower()
        for article in state.articles:
            candidate = article.title.lower()
            if (candidate == wanted) if exact else (wanted in candidate):
                return article
        return None

    def get_by_url(self, url: str) -> Optional[Article]:
        state = self._current()
        for article in state.articles:
            if article.canonical_url == url:
                return article
        return None

    def get_by_date_range(
        self,
        start: datetime.datetime,
        end: datetime.datetime,
        limit: int = 100,
    ) -> List[Article]:
        """Returns posts published within [start, end], newest first."""
        limit = max(0, limit)
        state = self._current()
        start, end = to_utc(start), to_utc(end)
        if start > end:
            return []
        matches = [a for a in state.articles if start <= a.published_at <= end]
        return matches[:limit]
