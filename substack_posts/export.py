"""
Markdown and JSON export of cached posts.
"""

import datetime
import json
import logging
from pathlib import Path
from typing import List, Sequence

from substack_posts.errors import ExportError
from substack_posts.models import Article, html_to_text
from substack_posts.services.snapshot import encode_article

logger = logging.getLogger(__name__)

_PROTECTED_DIRS = ("/etc", "/usr", "/bin", "/sbin", "/System", "/Library")


def resolve_output_path(output_path: str, suffix: str) -> Path:
    """Expands and validates an export target path."""
    path = Path(output_path).expanduser().resolve()
    if path.suffix != suffix:
        raise ExportError(f"Output file must have {suffix} extension")

    for protected in _PROTECTED_DIRS:
        if path == Path(protected) or str(path).startswith(protected + "/"):
            raise ExportError(f"Cannot write to system directory: {protected}")
    return path


def _write(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write file: {e}") from e


def format_article_markdown(
    article: Article, include_metadata: bool = True, include_html_content: bool = False
) -> str:
    lines: List[str] = [f"# {article.title}", ""]

    if include_metadata:
        published = article.published_at
        lines += [
            f"**Author:** {article.author}",
            "",
            f"**Published:** {published.strftime('%B')} {published.day}, {published.year}",
            "",
            f"**URL:** [{article.canonical_url}]({article.canonical_url})",
            "",
        ]
        if article.tags:
            lines += [f"**Categories:** {', '.join(article.tags)}", ""]
        if article.cover_image_url:
            lines += [f"**Featured Image:** ![]({article.cover_image_url})", ""]
        lines += ["---", ""]

    if article.summary:
        lines += ["## Summary", "", article.summary, ""]

    lines += ["## Content", ""]
    if include_html_content:
        lines.append(html_to_text(article.rich_content))
    else:
        lines.append(article.plain_content)
    lines.append("")
    return "\n".join(lines) + "\n"


def export_to_markdown(
    articles: Sequence[Article],
    output_path: str,
    include_metadata: bool = True,
    include_html_content: bool = False,
) -> Path:
    """Writes posts to a markdown file and returns its resolved path."""
    path = resolve_output_path(output_path, ".md")

    generated = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    parts = [
        "# Blog Posts Export\n\n",
        f"Generated: {generated}\n",
        f"Total Posts: {len(articles)}\n\n",
        "---\n\n",
    ]
    for article in articles:
        parts.append(
            format_article_markdown(article, include_metadata, include_html_content)
        )
        parts.append("\n---\n\n")

    _write(path, "".join(parts))
    logger.info("Exported %d posts to %s.", len(articles), path)
    return path


def export_to_json(articles: Sequence[Article], output_path: str) -> Path:
    """Writes posts to a JSON file; a .md suffix is swapped for .json."""
    if output_path.endswith(".md"):
        output_path = output_path[: -len(".md")] + ".json"
    path = resolve_output_path(output_path, ".json")

    payload = [encode_article(a) for a in articles]
    _write(path, json.dumps(payload, ensure_ascii=False, indent=2))
    logger.info("Exported %d posts to %s.", len(articles), path)
    return path
