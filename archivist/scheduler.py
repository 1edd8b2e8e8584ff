"""Concurrency-limited crawl of one archive's frontier."""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
import logging
import time
from typing import Callable

from tqdm import tqdm

from .errors import ArchivistError, ContentExtractionError
from .extractor import ContentExtractor, PureMdClient, parse_markdown_content, title_from_url
from .fetcher import Fetcher
from .frontier import Frontier, FrontierItem
from .patterns import filter_urls, should_include
from .stats import StatsCollector
from .strategies import StrategyContext, get_strategy
from .types import Archive, CollectedUrls, CrawlResult, CrawlSettings, Source
from .url import extract_links_from_html, is_same_host, relative_depth

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ArchiveCrawl:
    """Everything one archive crawl produced."""

    archive: Archive
    collected: list[CollectedUrls] = field(default_factory=list)
    results: list[CrawlResult] = field(default_factory=list)
    frontier: dict[str, int] = field(default_factory=dict)

    @property
    def total_collected(self) -> int:
        return sum(len(item.urls) for item in self.collected)


class CrawlScheduler:
    """Seed a frontier from an archive's sources and drain it with a worker pool.

    Only the calling thread touches the frontier and the result list; worker
    threads fetch and extract one page each and hand the outcome back.
    Results are returned in completion order.
    """

    def __init__(
        self,
        settings: CrawlSettings | None = None,
        *,
        fetcher: Fetcher | None = None,
        extractor: ContentExtractor | None = None,
        stats: StatsCollector | None = None,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = False,
    ) -> None:
        self.settings = settings or CrawlSettings()
        self.fetcher = fetcher or Fetcher(self.settings)
        self.extractor = extractor or PureMdClient(timeout_seconds=self.settings.timeout_seconds)
        self.stats = stats or StatsCollector()
        self.show_progress = show_progress
        self._sleep = sleep

    def run(self, archive: Archive) -> list[CrawlResult]:
        """Crawl `archive` and return its results in completion order."""

        return self.crawl(archive).results

    def crawl(
        self,
        archive: Archive,
        *,
        frontier: Frontier | None = None,
        collected: list[CollectedUrls] | None = None,
    ) -> ArchiveCrawl:
        """Drain the frontier for `archive`, seeding a fresh one unless given."""

        outcome = ArchiveCrawl(archive=archive)
        if frontier is None:
            frontier = Frontier()
            outcome.collected = self.seed(archive, frontier)
        else:
            outcome.collected = list(collected or [])

        LOGGER.info(
            "Archive '%s': %d unique URLs queued from %d sources",
            archive.name,
            frontier.pending_count,
            len(archive.sources),
        )

        outcome.results = self._drain(archive, frontier)
        outcome.frontier = frontier.snapshot()
        self.stats.record_frontier_snapshot(outcome.frontier)
        return outcome

    def collect(self, archive: Archive) -> list[CollectedUrls]:
        """Run discovery only, as used by dry runs."""

        return self.seed(archive, Frontier())

    def seed(self, archive: Archive, frontier: Frontier) -> list[CollectedUrls]:
        """Expand every source into frontier URLs, one source at a time."""

        collected: list[CollectedUrls] = []
        for source in archive.sources:
            item = self._seed_source(source, frontier)
            self.stats.record_seed(item)
            collected.append(item)
        return collected

    def _seed_source(self, source: Source, frontier: Frontier) -> CollectedUrls:
        collected = CollectedUrls(source=source)

        if source.is_simple:
            result = frontier.add(source.url, source)
            if result.accepted and result.normalized_url:
                collected.urls.append(result.normalized_url)
            elif result.duplicate:
                collected.duplicates_removed += 1
            else:
                collected.error = f"Invalid source URL: {source.url!r}"
                LOGGER.error("Skipping source %s: invalid URL", source.label)
            return collected

        LOGGER.info("Collecting URLs from %s (strategy=%s)", source.label, source.strategy)
        context = StrategyContext(fetcher=self.fetcher, stats=self.stats)
        try:
            strategy = get_strategy(source.strategy)
            discovered = strategy.execute(source.url, source, context)
        except ArchivistError as exc:
            collected.error = str(exc)
            LOGGER.error("Skipping source %s: %s", source.label, exc)
            return collected
        except Exception as exc:
            collected.error = f"{exc.__class__.__name__}: {exc}"
            LOGGER.exception("Unexpected error while collecting URLs from %s", source.label)
            return collected

        collected.pages_discovered = discovered.pages_discovered
        for url in filter_urls(discovered.urls, source.include_patterns, source.exclude_patterns):
            result = frontier.add(url, source)
            if result.accepted and result.normalized_url:
                collected.urls.append(result.normalized_url)
            elif result.duplicate:
                collected.duplicates_removed += 1

        LOGGER.info(
            "Collected %d URLs from %s (%d duplicates removed)",
            len(collected.urls),
            source.label,
            collected.duplicates_removed,
        )
        return collected

    def _drain(self, archive: Archive, frontier: Frontier) -> list[CrawlResult]:
        results: list[CrawlResult] = []
        limit = max(1, self.settings.max_concurrency)
        in_flight: dict[Future[CrawlResult], FrontierItem] = {}
        dispatched = 0

        progress = tqdm(
            total=frontier.pending_count,
            desc=archive.name,
            unit="page",
            disable=not self.show_progress,
        )
        try:
            with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="archivist-worker") as pool:
                while True:
                    while len(in_flight) < limit:
                        item = frontier.pop()
                        if item is None:
                            break
                        if dispatched > 0 and self.settings.delay_seconds > 0:
                            self._sleep(self.settings.delay_seconds)
                        LOGGER.info("Crawling: %s", item.url)
                        in_flight[pool.submit(self._crawl_page, item)] = item
                        dispatched += 1

                    if not in_flight:
                        break

                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        item = in_flight.pop(future)
                        self._complete(item, future, frontier, results)
                        progress.total = frontier.visited_count + frontier.pending_count
                        progress.update(1)
        finally:
            progress.close()

        return results

    def _complete(
        self,
        item: FrontierItem,
        future: Future[CrawlResult],
        frontier: Frontier,
        results: list[CrawlResult],
    ) -> None:
        try:
            result = future.result()
        except Exception as exc:
            self.stats.record_page_failure(exc)
            LOGGER.error("Error crawling %s: %s", item.url, exc)
            return

        results.append(result)
        self.stats.record_page(result)
        self._expand(item, result, frontier)

    def _expand(self, item: FrontierItem, result: CrawlResult, frontier: Frontier) -> None:
        source = item.source
        if source.depth <= 0:
            return
        if relative_depth(item.url, source.url) >= source.depth:
            return

        added = 0
        for link in result.links:
            if not is_same_host(link, item.url):
                continue
            if relative_depth(link, source.url) > source.depth:
                continue
            if not should_include(link, source.include_patterns, source.exclude_patterns):
                continue
            if frontier.add(link, source).accepted:
                added += 1

        if added:
            LOGGER.debug("Queued %d links from %s", added, item.url)
            self.stats.record_depth_enqueued(added)

    def _crawl_page(self, item: FrontierItem) -> CrawlResult:
        """Worker body: extract one page, falling back to a raw link scan."""

        try:
            markdown = self.extractor.fetch_content(item.url)
        except Exception as exc:
            if isinstance(exc, ContentExtractionError):
                error = str(exc)
            else:
                error = f"{exc.__class__.__name__}: {exc}"
            LOGGER.warning("Content extraction failed for %s: %s", item.url, error)
            return CrawlResult(
                url=item.url,
                title=title_from_url(item.url),
                content="",
                links=tuple(self._fallback_links(item.url)),
                error=error,
            )

        page = parse_markdown_content(markdown, item.url)
        return CrawlResult(
            url=item.url,
            title=page.title,
            content=page.content,
            links=tuple(page.links),
        )

    def _fallback_links(self, url: str) -> list[str]:
        fetched = self.fetcher.get(url)
        if not fetched.ok:
            LOGGER.warning(
                "Fallback link scan failed for %s: %s",
                url,
                fetched.error or f"HTTP {fetched.status_code}",
            )
            return []
        self.stats.increment("fallback_link_scans")
        return extract_links_from_html(fetched.body or b"", base_url=fetched.url)


__all__ = ["ArchiveCrawl", "CrawlScheduler"]
