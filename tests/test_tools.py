"""Unit tests for the tool layer."""

import datetime
import json
import unittest

from substack_posts.errors import FeedFetchError, QueryInputError
from substack_posts.models import Article
from substack_posts.services.post_cache import PostCache
from substack_posts.tools import TOOLS, PostTools, parse_date, truncate

UTC = datetime.timezone.utc
FEED_URL = "https://example.substack.com/feed"


def make_article(post_id, published, title, summary="Summary"):
    return Article.create(
        id=post_id,
        title=title,
        canonical_url=f"https://example.substack.com/p/{post_id}",
        summary=summary,
        rich_content=f"<p>Content about {title}</p>",
        published_at=published,
        author="Jane Doe",
        tags=["essays"],
        cover_image_url=f"https://cdn.example.com/{post_id}.png",
    )


class FakeSource:
    def __init__(self, articles):
        self.articles = articles
        self.error = None

    def fetch_articles(self, feed_url):
        if self.error is not None:
            raise self.error
        return list(self.articles)


class TestPostTools(unittest.TestCase):
    def setUp(self):
        self.source = FakeSource(
            [
                make_article("jan", datetime.datetime(2024, 1, 1, tzinfo=UTC), "New Year plans"),
                make_article(
                    "jun",
                    datetime.datetime(2024, 6, 15, 18, 0, tzinfo=UTC),
                    "Midsummer notes",
                    summary="x" * 300,
                ),
                make_article("dec", datetime.datetime(2024, 12, 31, tzinfo=UTC), "Year in review"),
            ]
        )
        self.tools = PostTools(PostCache(FEED_URL, self.source))

    def test_tool_definitions(self):
        names = [tool["name"] for tool in PostTools.list_tools()]
        self.assertEqual(
            names,
            [
                "search_posts",
                "list_recent_posts",
                "get_post_by_title",
                "get_post_by_url",
                "get_posts_by_date_range",
                "get_post_citation",
            ],
        )
        json.dumps(TOOLS)

    def test_search_posts(self):
        result = self.tools.call("search_posts", {"query": "year"})
        self.assertTrue(result["ok"])
        self.assertEqual([p["link"][-3:] for p in result["data"]], ["dec", "jan"])
        json.dumps(result)

    def test_list_recent_posts_summary_shape(self):
        result = self.tools.call("list_recent_posts", {"limit": 2})
        first, second = result["data"]
        self.assertEqual(first["title"], "Year in review")
        self.assertEqual(first["pubDate"], "2024-12-31T00:00:00+00:00")
        self.assertEqual(first["categories"], ["essays"])
        self.assertEqual(len(second["description"]), 203)
        self.assertTrue(second["description"].endswith("..."))

    def test_list_recent_posts_defaults(self):
        result = self.tools.call("list_recent_posts")
        self.assertEqual(len(result["data"]), 3)

    def test_get_post_by_title_detail(self):
        result = self.tools.call("get_post_by_title", {"title": "midsummer"})
        self.assertTrue(result["ok"])
        self.assertEqual(result["data"]["contentText"], "Content about Midsummer notes")
        self.assertEqual(result["data"]["imageUrl"], "https://cdn.example.com/jun.png")

    def test_not_found_is_not_an_error(self):
        result = self.tools.call(
            "get_post_by_url", {"url": "https://example.substack.com/p/missing"}
        )
        self.assertEqual(result, {"ok": True, "data": None, "message": "Post not found"})

        result = self.tools.call("get_post_by_title", {"title": "year", "exact": True})
        self.assertIsNone(result["data"])

    def test_date_range_with_date_only_bounds(self):
        result = self.tools.call(
            "get_posts_by_date_range",
            {"start_date": "2024-01-01", "end_date": "2024-06-15", "limit": 100},
        )
        self.assertEqual([p["title"] for p in result["data"]], ["Midsummer notes", "New Year plans"])

    def test_date_range_reversed(self):
        result = self.tools.call(
            "get_posts_by_date_range", {"start_date": "2024-12-31", "end_date": "2024-01-01"}
        )
        self.assertEqual(result, {"ok": True, "data": []})

    def test_invalid_date(self):
        result = self.tools.call(
            "get_posts_by_date_range", {"start_date": "yesterday", "end_date": "2024-01-01"}
        )
        self.assertFalse(result["ok"])
        self.assertEqual(result["error"]["type"], "invalid_input")

    def test_invalid_arguments(self):
        cases = [
            ("search_posts", {}),
            ("search_posts", {"query": 42}),
            ("search_posts", {"query": "x", "limit": -1}),
            ("search_posts", {"query": "x", "limit": True}),
            ("list_recent_posts", {"offset": 1.5}),
            ("get_post_by_title", {"title": "x", "exact": "yes"}),
            ("get_post_by_url", {"url": "not a url"}),
            ("get_post_citation", {"title": "year", "style": "Harvard"}),
            ("get_post_citation", {}),
        ]
        for name, arguments in cases:
            with self.subTest(name=name, arguments=arguments):
                result = self.tools.call(name, arguments)
                self.assertFalse(result["ok"])
                self.assertEqual(result["error"]["type"], "invalid_input")

    def test_unknown_tool(self):
        result = self.tools.call("delete_everything", {})
        self.assertEqual(result["error"]["type"], "unknown_tool")

    def test_source_unavailable_is_structured(self):
        self.source.error = FeedFetchError("down")
        tools = PostTools(PostCache(FEED_URL, self.source))
        result = tools.call("list_recent_posts", {})
        self.assertFalse(result["ok"])
        self.assertEqual(result["error"]["type"], "source_unavailable")

    def test_get_post_citation(self):
        result = self.tools.call(
            "get_post_citation",
            {"url": "https://example.substack.com/p/dec", "style": "MLA"},
        )
        self.assertEqual(
            result["data"]["citation"],
            'Jane Doe. "Year in review." Example, 31 December 2024, '
            "https://example.substack.com/p/dec.",
        )


class TestHelpers(unittest.TestCase):
    def test_truncate(self):
        self.assertEqual(truncate("short", 10), "short")
        self.assertEqual(truncate("abcdef", 3), "abc...")

    def test_parse_date(self):
        self.assertEqual(parse_date("2024-06-15"), datetime.datetime(2024, 6, 15, tzinfo=UTC))
        self.assertEqual(
            parse_date("2024-06-15", end_of_day=True),
            datetime.datetime(2024, 6, 15, 23, 59, 59, 999999, tzinfo=UTC),
        )
        self.assertEqual(
            parse_date("2024-06-15T10:00:00Z"), datetime.datetime(2024, 6, 15, 10, tzinfo=UTC)
        )
        self.assertEqual(
            parse_date("2024-06-15T12:00:00+02:00"),
            datetime.datetime(2024, 6, 15, 10, tzinfo=UTC),
        )
        with self.assertRaises(QueryInputError):
            parse_date("15/06/2024")


if __name__ == "__main__":
    unittest.main()
