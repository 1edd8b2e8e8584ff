"""Shared contract for source discovery strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from ..fetcher import Fetcher
from ..types import FetchResult, Source
from ..url import extract_links_from_html

if TYPE_CHECKING:
    from ..stats import StatsCollector

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StrategyContext:
    """Collaborators a strategy may use while expanding one source."""

    fetcher: Fetcher
    stats: "StatsCollector | None" = None


@dataclass(frozen=True, slots=True)
class StrategyResult:
    """URLs a strategy found for one source.

    `pages` lists the listing pages the strategy walked (the seed first), and
    `stop_reason` is set when a pagination stop condition ended the walk.
    """

    urls: tuple[str, ...] = ()
    pages: tuple[str, ...] = ()
    stop_reason: str | None = None

    @property
    def pages_discovered(self) -> int:
        return len(self.pages)


@dataclass(slots=True)
class PageLinks:
    """One fetched listing page and the content links found on it."""

    url: str
    fetch: FetchResult
    links: list[str] = field(default_factory=list)


class SourceStrategy(ABC):
    """Expand a seed URL into the URLs a source contributes to the frontier."""

    name: str = ""

    @abstractmethod
    def execute(self, seed_url: str, source: Source, context: StrategyContext) -> StrategyResult:
        """Return the URLs discovered for `source` starting from `seed_url`."""

    @staticmethod
    def content_links(html: str | bytes, base_url: str, source: Source) -> list[str]:
        """Links on a page that pass the source's selector and patterns."""

        return extract_links_from_html(
            html,
            base_url=base_url,
            selector=source.link_selector,
            include_patterns=source.include_patterns,
            exclude_patterns=source.exclude_patterns,
        )

    def fetch_page(self, url: str, source: Source, context: StrategyContext) -> PageLinks:
        """GET `url` and extract its content links; never raises for HTTP failures."""

        result = context.fetcher.get(url)
        if not result.ok:
            LOGGER.warning(
                "[%s] Could not fetch %s: %s",
                self.name,
                url,
                result.error or f"HTTP {result.status_code}",
            )
            return PageLinks(url=url, fetch=result)

        links = self.content_links(result.body or b"", result.url, source)
        LOGGER.debug("[%s] Found %d links on %s", self.name, len(links), url)
        return PageLinks(url=url, fetch=result, links=links)


__all__ = [
    "PageLinks",
    "SourceStrategy",
    "StrategyContext",
    "StrategyResult",
]
