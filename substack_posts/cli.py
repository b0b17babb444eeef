"""
Substack Posts command line entry point.

Builds the post cache from configuration, then runs one tool call and
prints its payload as JSON on stdout. Logs go to stderr.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from substack_posts.citation import CITATION_STYLES
from substack_posts.config import Settings, get_settings
from substack_posts.errors import ConfigError, ExportError, SourceUnavailableError
from substack_posts.export import export_to_json, export_to_markdown
from substack_posts.parsers.rss import RSSParser
from substack_posts.services.post_cache import PostCache
from substack_posts.services.snapshot import snapshot_path
from substack_posts.tools import TOOLS, PostTools

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def build_cache(settings: Settings) -> PostCache:
    """Wires the RSS source, snapshot location and TTL into a PostCache."""
    return PostCache(
        feed_url=settings.feed_url,
        source=RSSParser(),
        ttl=settings.ttl,
        snapshot_file=snapshot_path(settings.cache_dir, settings.feed_url),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="substack-posts",
        description="Search and look up posts from a Substack feed.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search posts by keywords")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("recent", help="List the most recent posts")
    p.add_argument("--limit", type=int, default=10)
    p.add_argument("--offset", type=int, default=0)

    p = sub.add_parser("title", help="Get a post by title")
    p.add_argument("title")
    p.add_argument("--exact", action="store_true")

    p = sub.add_parser("url", help="Get a post by URL")
    p.add_argument("url")

    p = sub.add_parser("range", help="Get posts within a date range")
    p.add_argument("start_date")
    p.add_argument("end_date")
    p.add_argument("--limit", type=int, default=100)

    p = sub.add_parser("cite", help="Format a citation for a post")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--url")
    target.add_argument("--title")
    p.add_argument("--style", choices=CITATION_STYLES, default="markdown")

    sub.add_parser("tools", help="Print the tool definitions")

    p = sub.add_parser("export", help="Export all cached posts to a file")
    p.add_argument("output", help="Output path (.md, or .json with --json)")
    p.add_argument("--json", action="store_true", help="Export JSON instead")
    p.add_argument("--no-metadata", action="store_true")
    p.add_argument("--html-content", action="store_true")
    return parser


def _tool_call(args: argparse.Namespace) -> Dict[str, Any]:
    """Maps CLI arguments onto a tool name and its arguments."""
    if args.command == "search":
        return {
            "name": "search_posts",
            "arguments": {"query": args.query, "limit": args.limit},
        }
    if args.command == "recent":
        return {
            "name": "list_recent_posts",
            "arguments": {"limit": args.limit, "offset": args.offset},
        }
    if args.command == "title":
        return {
            "name": "get_post_by_title",
            "arguments": {"title": args.title, "exact": args.exact},
        }
    if args.command == "url":
        return {"name": "get_post_by_url", "arguments": {"url": args.url}}
    if args.command == "range":
        return {
            "name": "get_posts_by_date_range",
            "arguments": {
                "start_date": args.start_date,
                "end_date": args.end_date,
                "limit": args.limit,
            },
        }
    arguments = {"style": args.style}
    if args.url:
        arguments["url"] = args.url
    else:
        arguments["title"] = args.title
    return {"name": "get_post_citation", "arguments": arguments}


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _export(cache: PostCache, args: argparse.Namespace) -> int:
    articles = cache.articles()
    try:
        if args.json:
            path = export_to_json(articles, args.output)
        else:
            path = export_to_markdown(
                articles,
                args.output,
                include_metadata=not args.no_metadata,
                include_html_content=args.html_content,
            )
    except ExportError as e:
        logger.error("Export failed: %s", e)
        return 1
    _print_json({"ok": True, "data": {"path": str(path), "count": len(articles)}})
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "tools":
        _print_json(TOOLS)
        return 0

    try:
        settings = get_settings()
        logger.info("Feed URL: %s", settings.feed_url)
        logger.info("Cache TTL: %dms", settings.cache_ttl_ms)
        cache = build_cache(settings)
        cache.initialize()
    except (ConfigError, SourceUnavailableError) as e:
        logger.error("Failed to start: %s", e)
        return 1

    if args.command == "export":
        return _export(cache, args)

    call = _tool_call(args)
    result = PostTools(cache).call(call["name"], call["arguments"])
    _print_json(result)
    return 0 if result["ok"] else 1


if __name__ == "__main__":
    sys.exit(main())
