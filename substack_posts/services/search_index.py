"""
Full-text search index over an article collection.

The index is derived data: it is built from scratch for every collection
and never patched in place. Matching is forward (prefix) based, so the
query token "dat" matches the indexed token "database".
"""

import bisect
import re
from typing import Dict, Iterable, List, Sequence, Set

from substack_posts.models import Article

_TOKEN = re.compile(r"\w+", re.UNICODE)

# Field priority also decides result order across fields
INDEXED_FIELDS = ("title", "plain_content", "summary", "author")


def tokenize(text: str) -> List[str]:
    """Splits text into lowercase word tokens."""
    if not text:
        return []
    return _TOKEN.findall(text.lower())


class _FieldIndex:
    """Inverted index for one article field."""

    def __init__(self) -> None:
        self.postings: Dict[str, Set[str]] = {}
        self.vocabulary: List[str] = []

    def add(self, article_id: str, text: str) -> None:
        for token in tokenize(text):
            self.postings.setdefault(token, set()).add(article_id)

    def freeze(self) -> None:
        self.vocabulary = sorted(self.postings)

    def prefix_matches(self, prefix: str) -> Set[str]:
        """Returns ids of articles holding any token starting with prefix."""
        ids: Set[str] = set()
        start = bisect.bisect_left(self.vocabulary, prefix)
        for token in self.vocabulary[start:]:
            if not token.startswith(prefix):
                break
            ids |= self.postings[token]
        return ids

    def match_all(self, query_tokens: Sequence[str]) -> Set[str]:
        """Returns ids of articles matching every query token."""
        result: Set[str] = set()
        for i, token in enumerate(query_tokens):
            ids = self.prefix_matches(token)
            result = ids if i == 0 else result & ids
            if not result:
                break
        return result


class SearchIndex:
    """Token index over title, plain content, summary and author."""

    def __init__(self, articles: Iterable[Article]):
        self._positions: Dict[str, int] = {}
        self._fields = {name: _FieldIndex() for name in INDEXED_FIELDS}
        for position, article in enumerate(articles):
            self._positions[article.id] = position
            for name, field_index in self._fields.items():
                field_index.add(article.id, getattr(article, name))
        for field_index in self._fields.values():
            field_index.freeze()

    def __len__(self) -> int:
        return len(self._positions)

    def search(self, query: str, limit: int) -> List[str]:
        """
        Returns ids of matching articles, deduplicated, at most `limit`.

        Fields are consulted in priority order; matches within a field
        follow collection order.
        """
        query_tokens = tokenize(query)
        if not query_tokens or limit <= 0:
            return []

        seen: Set[str] = set()
        ordered: List[str] = []
        for name in INDEXED_FIELDS:
            matches = self._fields[name].match_all(query_tokens)
            for article_id in sorted(matches, key=self._positions.__getitem__):
                if article_id in seen:
                    continue
                seen.add(article_id)
                ordered.append(article_id)
                if len(ordered) >= limit:
                    return ordered
        return ordered
