"""
Tool layer exposing the post cache to a calling agent.

Each tool takes primitive arguments and returns a JSON-serializable
payload. Failures are converted to structured error payloads here and
never propagate past PostTools.call.
"""

import datetime
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from substack_posts.citation import CITATION_STYLES, generate_citation
from substack_posts.errors import QueryInputError, SourceUnavailableError
from substack_posts.models import Article, to_utc
from substack_posts.services.post_cache import PostCache

logger = logging.getLogger(__name__)

DESCRIPTION_PREVIEW_CHARS = 200
NOT_FOUND_MESSAGE = "Post not found"

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


TOOLS: List[Dict[str, Any]] = [
    {
        "name": "search_posts",
        "description": "Search blog posts by keywords across title, content, and description",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query to find in posts",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results (default: 10)",
                    "default": 10,
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "list_recent_posts",
        "description": "List the most recent blog posts",
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "number",
                    "description": "Number of posts to return (default: 10)",
                    "default": 10,
                },
                "offset": {
                    "type": "number",
                    "description": "Number of posts to skip (default: 0)",
                    "default": 0,
                },
            },
        },
    },
    {
        "name": "get_post_by_title",
        "description": "Get a specific post by exact or partial title match",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "description": "Post title or partial title to search for",
                },
                "exact": {
                    "type": "boolean",
                    "description": "Require exact match (default: false)",
                    "default": False,
                },
            },
            "required": ["title"],
        },
    },
    {
        "name": "get_post_by_url",
        "description": "Retrieve a specific post by its URL",
        "inputSchema": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "Full URL of the Substack post",
                },
            },
            "required": ["url"],
        },
    },
    {
        "name": "get_posts_by_date_range",
        "description": "Get posts published within a date range",
        "inputSchema": {
            "type": "object",
            "properties": {
                "start_date": {
                    "type": "string",
                    "description": "Start date (ISO 8601 format, e.g., 2024-01-01)",
                },
                "end_date": {
                    "type": "string",
                    "description": "End date (ISO 8601 format, e.g., 2024-12-31)",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results (default: 100)",
                    "default": 100,
                },
            },
            "required": ["start_date", "end_date"],
        },
    },
    {
        "name": "get_post_citation",
        "description": "Format a citation for a post identified by URL or title",
        "inputSchema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Full URL of the post"},
                "title": {
                    "type": "string",
                    "description": "Post title or partial title, used when no URL is given",
                },
                "style": {
                    "type": "string",
                    "enum": list(CITATION_STYLES),
                    "description": "Citation style (default: markdown)",
                    "default": "markdown",
                },
            },
        },
    },
]


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def post_summary(article: Article) -> Dict[str, Any]:
    """Compact representation used for list results."""
    return {
        "title": article.title,
        "link": article.canonical_url,
        "description": truncate(article.summary, DESCRIPTION_PREVIEW_CHARS),
        "author": article.author,
        "pubDate": article.published_at.isoformat(),
        "categories": list(article.tags),
    }


def post_detail(article: Article) -> Dict[str, Any]:
    """Full representation used for single-post results."""
    return {
        "title": article.title,
        "link": article.canonical_url,
        "description": article.summary,
        "content": article.rich_content,
        "contentText": article.plain_content,
        "author": article.author,
        "pubDate": article.published_at.isoformat(),
        "categories": list(article.tags),
        "imageUrl": article.cover_image_url,
    }


def _ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def _not_found() -> Dict[str, Any]:
    return {"ok": True, "data": None, "message": NOT_FOUND_MESSAGE}


def _error(kind: str, message: str) -> Dict[str, Any]:
    return {"ok": False, "error": {"type": kind, "message": message}}


# Argument validation


def _require_str(args: Mapping[str, Any], name: str) -> str:
    value = args.get(name)
    if not isinstance(value, str):
        raise QueryInputError(f"'{name}' must be a string")
    return value


def _optional_int(args: Mapping[str, Any], name: str, default: int) -> int:
    value = args.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QueryInputError(f"'{name}' must be a number")
    if (isinstance(value, float) and not value.is_integer()) or value < 0:
        raise QueryInputError(f"'{name}' must be a non-negative integer")
    return int(value)


def _optional_bool(args: Mapping[str, Any], name: str, default: bool) -> bool:
    value = args.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise QueryInputError(f"'{name}' must be a boolean")
    return value


def _require_url(args: Mapping[str, Any], name: str) -> str:
    value = _require_str(args, name)
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise QueryInputError(f"'{name}' must be an absolute http(s) URL")
    return value


def parse_date(value: str, end_of_day: bool = False) -> datetime.datetime:
    """
    Parses an ISO-8601 date or datetime into an aware UTC datetime.

    A bare date is the start of that day, or its last instant when
    `end_of_day` is set, so that date-only ranges include the whole day.
    """
    text = value.strip()
    try:
        if _DATE_ONLY.match(text):
            day = datetime.date.fromisoformat(text)
            moment = datetime.time.max if end_of_day else datetime.time.min
            return datetime.datetime.combine(day, moment, tzinfo=datetime.timezone.utc)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.datetime.fromisoformat(text))
    except ValueError as e:
        raise QueryInputError(f"Invalid date: {value!r}") from e


class PostTools:
    """Dispatches tool calls to a PostCache."""

    def __init__(self, cache: PostCache):
        self.cache = cache
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
            "search_posts": self.search_posts,
            "list_recent_posts": self.list_recent_posts,
            "get_post_by_title": self.get_post_by_title,
            "get_post_by_url": self.get_post_by_url,
            "get_posts_by_date_range": self.get_posts_by_date_range,
            "get_post_citation": self.get_post_citation,
        }

    @staticmethod
    def list_tools() -> List[Dict[str, Any]]:
        return TOOLS

    def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Runs a tool by name. Never raises."""
        handler = self._handlers.get(name)
        if handler is None:
            return _error("unknown_tool", f"Unknown tool: {name}")

        try:
            return handler(arguments or {})
        except QueryInputError as e:
            logger.info("Rejected %s call: %s", name, e)
            return _error("invalid_input", str(e))
        except SourceUnavailableError as e:
            logger.error("Tool %s failed: %s", name, e)
            return _error("source_unavailable", str(e))
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.exception("Tool %s raised an unexpected error", name)
            return _error("internal_error", str(e))

    def search_posts(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        query = _require_str(args, "query")
        limit = _optional_int(args, "limit", 10)
        results = self.cache.search(query, limit)
        return _ok([post_summary(a) for a in results])

    def list_recent_posts(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        limit = _optional_int(args, "limit", 10)
        offset = _optional_int(args, "offset", 0)
        results = self.cache.list_recent(limit, offset)
        return _ok([post_summary(a) for a in results])

    def get_post_by_title(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        title = _require_str(args, "title")
        exact = _optional_bool(args, "exact", False)
        article = self.cache.get_by_title(title, exact)
        return _ok(post_detail(article)) if article else _not_found()

    def get_post_by_url(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        url = _require_url(args, "url")
        article = self.cache.get_by_url(url)
        return _ok(post_detail(article)) if article else _not_found()

    def get_posts_by_date_range(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        start = parse_date(_require_str(args, "start_date"))
        end = parse_date(_require_str(args, "end_date"), end_of_day=True)
        limit = _optional_int(args, "limit", 100)
        results = self.cache.get_by_date_range(start, end, limit)
        return _ok([post_summary(a) for a in results])

    def get_post_citation(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        style = args.get("style", "markdown")
        if style not in CITATION_STYLES:
            raise QueryInputError(
                f"'style' must be one of {', '.join(CITATION_STYLES)}"
            )

        if args.get("url") is not None:
            article = self.cache.get_by_url(_require_url(args, "url"))
        elif args.get("title") is not None:
            article = self.cache.get_by_title(_require_str(args, "title"))
        else:
            raise QueryInputError("Either 'url' or 'title' is required")

        if article is None:
            return _not_found()
        return _ok(generate_citation(article, style))
