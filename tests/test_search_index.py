"""Unit tests for the search index."""

import datetime
import unittest

from substack_posts.models import Article
from substack_posts.services.search_index import SearchIndex, tokenize

UTC = datetime.timezone.utc


def make_article(post_id, title, body="", summary="", author="Jane Doe", day=1):
    return Article.create(
        id=post_id,
        title=title,
        canonical_url=f"https://example.substack.com/p/{post_id}",
        summary=summary,
        rich_content=body,
        published_at=datetime.datetime(2024, 1, day, tzinfo=UTC),
        author=author,
    )


class TestTokenize(unittest.TestCase):
    def test_lowercases_and_splits(self):
        self.assertEqual(tokenize("Hello, World! 2024"), ["hello", "world", "2024"])

    def test_unicode_words(self):
        self.assertEqual(tokenize("Fejl på Ærø"), ["fejl", "på", "ærø"])

    def test_empty(self):
        self.assertEqual(tokenize(""), [])


class TestSearchIndex(unittest.TestCase):
    def setUp(self):
        # Collection order: newest first
        self.articles = [
            make_article("p3", "Databases at scale", body="<p>Sharding notes</p>", day=3),
            make_article("p2", "Weekly notes", body="<p>About database design</p>", day=2),
            make_article("p1", "Hiring", summary="We are hiring", author="Data Team", day=1),
        ]
        self.index = SearchIndex(self.articles)

    def test_prefix_matching(self):
        self.assertEqual(self.index.search("datab", 10), ["p3", "p2"])

    def test_title_matches_come_first(self):
        self.assertEqual(self.index.search("notes", 10), ["p2", "p3"])

    def test_match_on_summary_and_author(self):
        self.assertEqual(self.index.search("hiring", 10), ["p1"])
        self.assertEqual(self.index.search("team", 10), ["p1"])

    def test_deduplicates_across_fields(self):
        index = SearchIndex(
            [make_article("x", "Python tips", body="<p>python everywhere</p>", summary="python")]
        )
        self.assertEqual(index.search("python", 10), ["x"])

    def test_all_tokens_must_match_within_a_field(self):
        self.assertEqual(self.index.search("database design", 10), ["p2"])
        self.assertEqual(self.index.search("hiring sharding", 10), [])

    def test_limit(self):
        self.assertEqual(self.index.search("data", 1), ["p3"])
        self.assertEqual(self.index.search("data", 0), [])

    def test_no_match(self):
        self.assertEqual(self.index.search("kubernetes", 10), [])

    def test_stable_for_identical_state(self):
        again = SearchIndex(self.articles)
        self.assertEqual(self.index.search("d", 10), again.search("d", 10))


if __name__ == "__main__":
    unittest.main()
