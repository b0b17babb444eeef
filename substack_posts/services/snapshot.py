"""
Disk persistence for the post cache.

A snapshot is a JSON document holding the last successfully fetched
collection. It is read once at startup and rewritten after every
successful refresh.
"""

import datetime
import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from substack_posts.errors import SnapshotError
from substack_posts.models import Article

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class Snapshot:
    """Persisted cache state."""

    source_address: str
    fetched_at: datetime.datetime
    articles: Tuple[Article, ...]
    schema_version: str = SCHEMA_VERSION


def snapshot_path(cache_dir: str, feed_url: str) -> Path:
    """Derives the snapshot file location for a feed."""
    digest = hashlib.md5(feed_url.encode("utf-8")).hexdigest()[:12]
    return Path(cache_dir) / f"posts-{digest}.json"


def _format_time(value: datetime.datetime) -> str:
    return value.astimezone(datetime.timezone.utc).isoformat()


def _parse_time(value: str) -> datetime.datetime:
    parsed = datetime.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without offset: {value}")
    return parsed.astimezone(datetime.timezone.utc)


def encode_article(article: Article) -> Dict[str, Any]:
    return {
        "id": article.id,
        "title": article.title,
        "canonicalUrl": article.canonical_url,
        "summary": article.summary,
        "richContent": article.rich_content,
        "plainContent": article.plain_content,
        "publishedAt": _format_time(article.published_at),
        "author": article.author,
        "tags": list(article.tags),
        "coverImageUrl": article.cover_image_url,
    }


_STRING_FIELDS = ("id", "title", "canonicalUrl", "summary", "richContent", "author")


def decode_article(data: Dict[str, Any]) -> Article:
    """Decodes one article record, recomputing plain text from the markup."""
    for name in _STRING_FIELDS:
        if not isinstance(data[name], str):
            raise SnapshotError(f"Article field {name!r} must be a string")
    tags = data.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise SnapshotError("Article field 'tags' must be a list of strings")
    cover_image_url = data.get("coverImageUrl")
    if cover_image_url is not None and not isinstance(cover_image_url, str):
        raise SnapshotError("Article field 'coverImageUrl' must be a string")

    return Article.create(
        id=data["id"],
        title=data["title"],
        canonical_url=data["canonicalUrl"],
        summary=data["summary"],
        rich_content=data["richContent"],
        published_at=_parse_time(data["publishedAt"]),
        author=data["author"],
        tags=tags,
        cover_image_url=cover_image_url,
    )


def encode_snapshot(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "schemaVersion": snapshot.schema_version,
        "sourceAddress": snapshot.source_address,
        "fetchedAt": _format_time(snapshot.fetched_at),
        "articles": [encode_article(a) for a in snapshot.articles],
    }


def decode_snapshot(data: Dict[str, Any]) -> Snapshot:
    """Decodes a snapshot document. Raises SnapshotError on bad structure."""
    try:
        return Snapshot(
            schema_version=data["schemaVersion"],
            source_address=data["sourceAddress"],
            fetched_at=_parse_time(data["fetchedAt"]),
            articles=tuple(decode_article(a) for a in data["articles"]),
        )
    except (AttributeError, KeyError, TypeError, ValueError, SnapshotError) as e:
        raise SnapshotError(f"Malformed snapshot: {e}") from e


def save_snapshot(path: Path, snapshot: Snapshot) -> None:
    """
    Writes a snapshot with a full-file atomic replace.

    The document goes to a temporary file in the target directory first,
    then replaces the target, so readers never see a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(encode_snapshot(snapshot), ensure_ascii=False, indent=2)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.debug("Snapshot written to %s (%d posts).", path, len(snapshot.articles))


def load_snapshot(path: Path, source_address: str) -> Optional[Snapshot]:
    """
    Loads a snapshot if it exists and is usable for `source_address`.

    Missing, unreadable, malformed, outdated or foreign snapshots all
    yield None.
    """
    if not path.exists():
        logger.info("No snapshot at %s.", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        snapshot = decode_snapshot(data)
    except (OSError, ValueError, SnapshotError) as e:
        logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
        return None

    if snapshot.schema_version != SCHEMA_VERSION:
        logger.warning(
            "Ignoring snapshot %s: schema %s, expected %s.",
            path,
            snapshot.schema_version,
            SCHEMA_VERSION,
        )
        return None
    if snapshot.source_address != source_address:
        logger.warning(
            "Ignoring snapshot %s: it belongs to %s.", path, snapshot.source_address
        )
        return None

    return snapshot
