"""
Base classes and interfaces for feed sources.

This module defines the contract that the post cache expects from
whatever fetches a publication's articles.
"""

from typing import Protocol, List
from substack_posts.models import Article


class FeedSource(Protocol):
    """
    Protocol for feed sources.

    Implementations fetch every article a feed publishes in one call and
    apply their own retry policy. A terminal failure is raised as
    FeedFetchError; an empty list means the feed really is empty.
    """

    def fetch_articles(self, feed_url: str) -> List[Article]:
        """Fetches and parses a feed."""
