"""Exception hierarchy for archivist."""

from __future__ import annotations


class ArchivistError(Exception):
    """Base class for all archivist errors."""


class ConfigurationError(ArchivistError):
    """Invalid or unreadable configuration."""


class UnknownStrategyError(ConfigurationError):
    """A source names a strategy that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown strategy type: {name!r}")
        self.name = name


class PaginationConfigError(ConfigurationError):
    """Pagination settings that cannot drive any pagination mode."""


class FetchError(ArchivistError):
    """An HTTP fetch did not produce a usable response."""


class ContentExtractionError(ArchivistError):
    """The content extraction service failed for a URL."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimitError(ContentExtractionError):
    """The content extraction service rejected the call with HTTP 429."""


__all__ = [
    "ArchivistError",
    "ConfigurationError",
    "ContentExtractionError",
    "FetchError",
    "PaginationConfigError",
    "RateLimitError",
    "UnknownStrategyError",
]
