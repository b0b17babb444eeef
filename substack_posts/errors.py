"""
Exception types for the Substack post cache.

Only SourceUnavailableError halts an operation. The rest are caught at
the boundary where they occur and logged.
"""


class PostCacheError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(PostCacheError):
    """Configuration is missing or malformed."""


class FeedFetchError(PostCacheError):
    """The feed source could not produce an article list."""


class SourceUnavailableError(PostCacheError):
    """The feed could not be fetched and no cached state exists."""


class SnapshotError(PostCacheError):
    """A snapshot could not be read, decoded or written."""


class QueryInputError(PostCacheError, ValueError):
    """A tool was called with malformed arguments."""


class ExportError(PostCacheError):
    """An export target path was rejected or could not be written."""
