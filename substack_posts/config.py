"""
Configuration loading.

Settings come from an optional JSON file and are overridden by
environment variables.
"""

import datetime
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from substack_posts.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 1_800_000  # 30 minutes
DEFAULT_CACHE_DIR = "cache"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""

    feed_url: str
    cache_ttl_ms: int = DEFAULT_TTL_MS
    cache_dir: str = DEFAULT_CACHE_DIR

    @property
    def ttl(self) -> datetime.timedelta:
        return datetime.timedelta(milliseconds=self.cache_ttl_ms)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Loads configuration from a JSON file."""
    if config_path is None:
        # Build absolute path relative to this package
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "config.json")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found at %s. Using empty config.", config_path)
        return {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e


def _parse_ttl(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid cache TTL: {value!r}")
    try:
        ttl = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid cache TTL: {value!r}") from e
    if ttl < 0:
        raise ConfigError(f"Cache TTL must not be negative: {ttl}")
    return ttl


def get_settings(
    config: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Resolves settings from a config mapping and environment variables.

    Raises:
        ConfigError: If no feed URL is configured or the TTL is malformed.
    """
    if environ is None:
        environ = os.environ
    if config is None:
        config = load_config(environ.get("SUBSTACK_CONFIG"))

    feed_url = environ.get("SUBSTACK_FEED_URL") or config.get("feed_url")
    if not feed_url:
        raise ConfigError("SUBSTACK_FEED_URL environment variable must be set")

    ttl_ms = _parse_ttl(
        environ.get("CACHE_TTL_MS") or config.get("cache_ttl_ms", DEFAULT_TTL_MS)
    )
    cache_dir = environ.get("SUBSTACK_CACHE_DIR") or config.get(
        "cache_dir", DEFAULT_CACHE_DIR
    )
    return Settings(feed_url=feed_url, cache_ttl_ms=ttl_ms, cache_dir=cache_dir)
