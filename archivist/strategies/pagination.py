"""Multi-page link harvesting over numbered or linked listing pages."""

from __future__ import annotations

from enum import Enum
import logging
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from ..constants import (
    DEFAULT_NEXT_LINK_MAX_PAGES,
    DEFAULT_PAGE_PARAM,
    DEFAULT_PATTERN_MAX_PAGES,
    PAGE_PLACEHOLDER,
)
from ..errors import PaginationConfigError
from ..stop_detector import PaginationStopDetector, StopVerdict
from ..types import PaginationConfig, Source, StrategyName
from ..url import extract_links_from_html, normalize_url, visible_text
from .base import PageLinks, SourceStrategy, StrategyContext, StrategyResult

LOGGER = logging.getLogger(__name__)


class PaginationMode(str, Enum):
    """How the next listing page is located."""

    PATTERN = "pattern"
    QUERY_PARAM = "query_param"
    NEXT_LINK = "next_link"
    SINGLE_PAGE = "single_page"


def resolve_mode(config: PaginationConfig | None) -> PaginationMode:
    """Pick the one active mode; pattern > query param > next link."""

    if config is None or config.is_empty:
        return PaginationMode.SINGLE_PAGE
    if config.page_pattern:
        return PaginationMode.PATTERN
    if config.page_param:
        return PaginationMode.QUERY_PARAM
    if config.next_link_selector:
        return PaginationMode.NEXT_LINK
    if config.max_pages is not None:
        return PaginationMode.QUERY_PARAM
    return PaginationMode.SINGLE_PAGE


def validate_pagination(config: PaginationConfig) -> None:
    """Raise `PaginationConfigError` for settings no mode can run with."""

    if config.page_pattern is not None and PAGE_PLACEHOLDER not in config.page_pattern:
        raise PaginationConfigError(
            f"page_pattern must contain '{PAGE_PLACEHOLDER}': {config.page_pattern!r}"
        )
    if config.max_pages is not None and config.max_pages < 1:
        raise PaginationConfigError(f"max_pages must be >= 1, got {config.max_pages}")
    if config.start_page < 0:
        raise PaginationConfigError(f"start_page must be >= 0, got {config.start_page}")


def build_page_url(seed_url: str, page_number: int, *, pattern: str | None = None, page_param: str | None = None) -> str:
    """Build the URL of one numbered listing page.

    A pattern has `{page}` substituted and is resolved against the seed, so
    both absolute and root-relative patterns work. Otherwise the query
    parameter is set on the seed URL, replacing any existing value.
    """

    if pattern:
        return urljoin(seed_url, pattern.replace(PAGE_PLACEHOLDER, str(page_number)))

    param = page_param or DEFAULT_PAGE_PARAM
    parts = urlsplit(seed_url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)

    updated: list[tuple[str, str]] = []
    replaced = False
    for key, value in pairs:
        if key != param:
            updated.append((key, value))
        elif not replaced:
            updated.append((key, str(page_number)))
            replaced = True
    if not replaced:
        updated.append((param, str(page_number)))

    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(updated), parts.fragment))


def _key(url: str) -> str:
    return normalize_url(url) or url


class _PaginationRun:
    """State for one pagination invocation over one source."""

    def __init__(self, seed_url: str, source: Source, context: StrategyContext) -> None:
        self.seed_url = seed_url
        self.source = source
        self.context = context

        conditions = source.pagination.stop_conditions if source.pagination else None
        self.detector = PaginationStopDetector(conditions)

        self.pages: list[str] = []
        self.page_keys: set[str] = set()
        self.links: dict[str, None] = {}
        self.stop_reason: str | None = None

    def add_page(self, url: str) -> None:
        self.pages.append(url)
        self.page_keys.add(_key(url))

    def consume(self, page_number: int, page: PageLinks) -> StopVerdict:
        """Collect a fetched page's links and ask the detector whether to go on."""

        content_links = [link for link in page.links if _key(link) not in self.page_keys]
        for link in content_links:
            self.links.setdefault(link, None)

        page_text = visible_text(page.fetch.body) if page.fetch.ok and page.fetch.body else None
        verdict = self.detector.should_stop(
            page_number,
            page.url,
            content_links,
            page_content=page_text,
            http_status=page.fetch.status_code,
        )
        if verdict.should_stop:
            self.stop_reason = verdict.reason
            LOGGER.info(
                "Pagination stopped for %s at page %d: %s",
                self.source.label,
                page_number,
                verdict.reason,
            )
            if self.context.stats is not None:
                self.context.stats.record_pagination_stop(verdict.reason or "unknown")
        return verdict

    def result(self) -> StrategyResult:
        urls = tuple(link for link in self.links if _key(link) not in self.page_keys)
        LOGGER.info(
            "Pagination complete for %s: %d unique links from %d pages",
            self.source.label,
            len(urls),
            len(self.pages),
        )
        if self.context.stats is not None:
            self.context.stats.increment("pagination_pages", len(self.pages))
        return StrategyResult(urls=urls, pages=tuple(self.pages), stop_reason=self.stop_reason)


class PaginationStrategy(SourceStrategy):
    """Walk listing pages and union the content links found on each."""

    name = StrategyName.PAGINATION.value

    def execute(self, seed_url: str, source: Source, context: StrategyContext) -> StrategyResult:
        config = source.pagination
        mode = resolve_mode(config)
        if config is not None:
            validate_pagination(config)

        LOGGER.debug("Pagination mode for %s: %s", source.label, mode.value)

        run = _PaginationRun(seed_url, source, context)
        run.add_page(seed_url)

        if mode == PaginationMode.NEXT_LINK:
            self._walk_next_links(run, config)
            return run.result()

        seed_page = self.fetch_page(seed_url, source, context)
        if mode == PaginationMode.SINGLE_PAGE:
            run.links.update(dict.fromkeys(seed_page.links))
            return run.result()

        # Numbered modes keep the seed's own links and count the seed as page 0,
        # so an empty or error-looking seed can end pagination before page 1.
        if run.consume(0, seed_page).should_stop:
            return run.result()

        self._walk_numbered(run, config, mode)
        return run.result()

    def _walk_numbered(self, run: _PaginationRun, config: PaginationConfig, mode: PaginationMode) -> None:
        max_pages = config.max_pages or DEFAULT_PATTERN_MAX_PAGES
        pattern = config.page_pattern if mode == PaginationMode.PATTERN else None
        seed_key = _key(run.seed_url)

        for page_number in range(config.start_page, config.start_page + max_pages):
            page_url = build_page_url(
                run.seed_url,
                page_number,
                pattern=pattern,
                page_param=config.page_param,
            )
            if _key(page_url) == seed_key:
                continue

            if not run.context.fetcher.probe_exists(page_url):
                LOGGER.info(
                    "Pagination ended at page %d (no page at %s)",
                    page_number - 1,
                    page_url,
                )
                return

            run.add_page(page_url)
            page = self.fetch_page(page_url, run.source, run.context)
            if run.consume(page_number, page).should_stop:
                return

    def _walk_next_links(self, run: _PaginationRun, config: PaginationConfig) -> None:
        max_pages = config.max_pages or DEFAULT_NEXT_LINK_MAX_PAGES
        visited = {_key(run.seed_url)}
        current = self.fetch_page(run.seed_url, run.source, run.context)
        page_number = 1

        while True:
            if run.consume(page_number, current).should_stop:
                return
            if len(run.pages) >= max_pages or not current.fetch.ok:
                return

            candidates = extract_links_from_html(
                current.fetch.body or b"",
                base_url=current.fetch.url,
                selector=config.next_link_selector,
            )
            next_url = next((link for link in candidates if _key(link) not in visited), None)
            if next_url is None:
                LOGGER.debug("No unvisited next link on %s", current.url)
                return

            visited.add(_key(next_url))
            run.add_page(next_url)
            page_number += 1
            current = self.fetch_page(next_url, run.source, run.context)


__all__ = [
    "PaginationMode",
    "PaginationStrategy",
    "build_page_url",
    "resolve_mode",
    "validate_pagination",
]
