"""Core records shared by config, strategies, scheduler, and writer.

This module only depends on the standard library so every other archivist
module can import it without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .constants import (
    DEFAULT_CONSECUTIVE_EMPTY_PAGES,
    DEFAULT_DEBUG,
    DEFAULT_DELAY_SECONDS,
    DEFAULT_ERROR_KEYWORDS,
    DEFAULT_MAX_404_ERRORS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MIN_NEW_LINKS_PER_PAGE,
    DEFAULT_OUTPUT_DIRECTORY,
    DEFAULT_START_PAGE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)


class OutputFormat(str, Enum):
    """File formats supported by the result writer."""

    MARKDOWN = "markdown"
    HTML = "html"
    JSON = "json"


class FileNaming(str, Enum):
    """How the result writer derives file names from results."""

    URL_BASED = "url-based"
    TITLE_BASED = "title-based"
    HASH_BASED = "hash-based"


class StrategyName(str, Enum):
    """Built-in source strategies."""

    EXPLORER = "explorer"
    PAGINATION = "pagination"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an ISO-8601 UTC timestamp string for manifests."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class StopConditions:
    """Thresholds for the pagination stop detector."""

    consecutive_empty_pages: int = DEFAULT_CONSECUTIVE_EMPTY_PAGES
    max_404_errors: int = DEFAULT_MAX_404_ERRORS
    error_keywords: tuple[str, ...] = DEFAULT_ERROR_KEYWORDS
    min_new_links_per_page: int = DEFAULT_MIN_NEW_LINKS_PER_PAGE

    def to_json(self) -> JSONDict:
        return {
            "consecutive_empty_pages": self.consecutive_empty_pages,
            "max_404_errors": self.max_404_errors,
            "error_keywords": list(self.error_keywords),
            "min_new_links_per_page": self.min_new_links_per_page,
        }


@dataclass(frozen=True, slots=True)
class PaginationConfig:
    """Pagination settings for one source.

    `max_pages` and `page_param` stay `None` when not configured so the
    strategy can tell an explicit query-param setup from the defaults.
    """

    start_page: int = DEFAULT_START_PAGE
    max_pages: int | None = None
    page_param: str | None = None
    page_pattern: str | None = None
    next_link_selector: str | None = None
    stop_conditions: StopConditions | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.max_pages is None
            and self.page_param is None
            and self.page_pattern is None
            and self.next_link_selector is None
            and self.stop_conditions is None
            and self.start_page == DEFAULT_START_PAGE
        )

    def to_json(self) -> JSONDict:
        return {
            "start_page": self.start_page,
            "max_pages": self.max_pages,
            "page_param": self.page_param,
            "page_pattern": self.page_pattern,
            "next_link_selector": self.next_link_selector,
            "stop_conditions": (
                None if self.stop_conditions is None else self.stop_conditions.to_json()
            ),
        }


@dataclass(frozen=True, slots=True)
class Source:
    """One configured seed URL plus its discovery rules."""

    url: str
    name: str | None = None
    depth: int = 0
    link_selector: str | None = None
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    strategy: str = StrategyName.EXPLORER.value
    pagination: PaginationConfig | None = None
    is_simple: bool = False

    @property
    def label(self) -> str:
        return self.name or self.url

    def to_json(self) -> JSONDict | str:
        if self.is_simple:
            return self.url
        return {
            "url": self.url,
            "name": self.name,
            "depth": self.depth,
            "link_selector": self.link_selector,
            "include_patterns": list(self.include_patterns),
            "exclude_patterns": list(self.exclude_patterns),
            "strategy": self.strategy,
            "pagination": None if self.pagination is None else self.pagination.to_json(),
        }


@dataclass(frozen=True, slots=True)
class OutputConfig:
    """Where and how results of one archive are written."""

    directory: str = DEFAULT_OUTPUT_DIRECTORY
    format: OutputFormat = OutputFormat.MARKDOWN
    file_naming: FileNaming = FileNaming.URL_BASED

    def to_json(self) -> JSONDict:
        return {
            "directory": self.directory,
            "format": self.format.value,
            "file_naming": self.file_naming.value,
        }


@dataclass(frozen=True, slots=True)
class Archive:
    """A named group of sources crawled together into one output directory."""

    name: str
    sources: tuple[Source, ...]
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_json(self) -> JSONDict:
        return {
            "name": self.name,
            "sources": [source.to_json() for source in self.sources],
            "output": self.output.to_json(),
        }


@dataclass(frozen=True, slots=True)
class CrawlSettings:
    """Run-wide crawl tunables."""

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    delay_seconds: float = DEFAULT_DELAY_SECONDS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    debug: bool = DEFAULT_DEBUG

    def to_json(self) -> JSONDict:
        return {
            "max_concurrency": self.max_concurrency,
            "delay_seconds": self.delay_seconds,
            "timeout_seconds": self.timeout_seconds,
            "user_agent": self.user_agent,
            "debug": self.debug,
        }


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )

    @property
    def url(self) -> str:
        return self.final_url or self.requested_url

    @property
    def text(self) -> str:
        if not self.body:
            return ""
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class CrawlResult:
    """One crawled page. Never mutated after creation."""

    url: str
    title: str
    content: str
    links: tuple[str, ...] = ()
    crawled_at: str = field(default_factory=utc_now_iso)
    error: str | None = None

    @property
    def content_length(self) -> int:
        return len(self.content)

    @property
    def extraction_failed(self) -> bool:
        return self.error is not None

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "content_length": self.content_length,
            "links": list(self.links),
            "crawled_at": self.crawled_at,
            "error": self.error,
        }


@dataclass(slots=True)
class CollectedUrls:
    """URLs one source contributed to the frontier during seeding."""

    source: Source
    urls: list[str] = field(default_factory=list)
    pages_discovered: int = 0
    duplicates_removed: int = 0
    error: str | None = None

    def to_json(self) -> JSONDict:
        return {
            "source": self.source.url,
            "name": self.source.name,
            "strategy": self.source.strategy,
            "pagination_pages": self.pages_discovered,
            "url_count": len(self.urls),
            "duplicates_removed": self.duplicates_removed,
            "error": self.error,
            "urls": list(self.urls),
        }


__all__ = [
    "Archive",
    "CollectedUrls",
    "CrawlResult",
    "CrawlSettings",
    "FetchResult",
    "FileNaming",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "OutputConfig",
    "OutputFormat",
    "PaginationConfig",
    "Source",
    "StopConditions",
    "StrategyName",
    "utc_now_iso",
]
