"""Run every configured archive in turn and persist its results."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import time
from typing import Any, Callable

from .config import ArchivistConfig
from .extractor import ContentExtractor, PureMdClient
from .fetcher import Fetcher
from .frontier import Frontier
from .scheduler import CrawlScheduler
from .stats import StatsCollector
from .storage import ResultWriter
from .types import Archive, CollectedUrls

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ArchiveSummary:
    """What one archive run produced on disk."""

    name: str
    output_dir: Path
    pages: int = 0
    extraction_failures: int = 0
    urls_collected: int = 0
    manifest_path: Path | None = None
    stats: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "output_dir": str(self.output_dir),
            "pages": self.pages,
            "extraction_failures": self.extraction_failures,
            "urls_collected": self.urls_collected,
            "manifest_path": None if self.manifest_path is None else str(self.manifest_path),
            "stats": self.stats,
            "error": self.error,
        }


@dataclass(slots=True)
class CollectionReport:
    """URLs discovered for one archive, before any page is crawled."""

    archive: Archive
    collected: list[CollectedUrls]
    report_path: Path | None = None

    @property
    def urls(self) -> list[str]:
        return [url for item in self.collected for url in item.urls]


@dataclass(slots=True)
class _SeededArchive:
    report: CollectionReport
    scheduler: CrawlScheduler
    frontier: Frontier


ConfirmCallback = Callable[[list[CollectionReport]], bool]


class ArchiveCoordinator:
    """Collect URLs for every archive, then crawl the archives one at a time.

    Each archive gets a fresh frontier and stats. The fetcher and content
    extractor are shared across archives and closed by `close()` when the
    coordinator created them.
    """

    def __init__(
        self,
        config: ArchivistConfig,
        *,
        fetcher: Fetcher | None = None,
        extractor: ContentExtractor | None = None,
        pure_api_key: str | None = None,
        clean: bool = False,
        show_progress: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.clean = clean
        self.show_progress = show_progress
        self._sleep = sleep

        self.fetcher = fetcher or Fetcher(config.crawl)
        self.extractor = extractor or PureMdClient(
            pure_api_key or config.pure_api_key,
            timeout_seconds=config.crawl.timeout_seconds,
        )
        self._owns_fetcher = fetcher is None
        self._owns_extractor = extractor is None

    def _scheduler(self, stats: StatsCollector) -> CrawlScheduler:
        return CrawlScheduler(
            self.config.crawl,
            fetcher=self.fetcher,
            extractor=self.extractor,
            stats=stats,
            sleep=self._sleep,
            show_progress=self.show_progress,
        )

    def run(self, confirm: ConfirmCallback | None = None) -> list[ArchiveSummary]:
        """Collect, optionally confirm, then crawl and write every archive.

        `confirm` sees the collection reports of all archives before anything is
        crawled or cleaned; returning False cancels the run with no summaries.
        An archive that fails is logged and reported in its summary, and the
        remaining archives still run.
        """

        summaries: list[ArchiveSummary] = []
        try:
            seeded = [self._seed(archive) for archive in self.config.archives]
            if confirm is not None and not confirm([item.report for item in seeded]):
                LOGGER.info("Crawl cancelled before any page was fetched")
                return summaries

            for index, item in enumerate(seeded, start=1):
                archive = item.report.archive
                LOGGER.info(
                    "Archive %d/%d: '%s' (%d sources) -> %s",
                    index,
                    len(seeded),
                    archive.name,
                    len(archive.sources),
                    archive.output.directory,
                )
                try:
                    summaries.append(self._crawl_seeded(item))
                except Exception as exc:
                    LOGGER.exception("Archive '%s' failed", archive.name)
                    summaries.append(
                        ArchiveSummary(
                            name=archive.name,
                            output_dir=Path(archive.output.directory),
                            urls_collected=len(item.report.urls),
                            error=f"{exc.__class__.__name__}: {exc}",
                        )
                    )
        finally:
            self.close()
        return summaries

    def _seed(self, archive: Archive) -> _SeededArchive:
        scheduler = self._scheduler(StatsCollector())
        frontier = Frontier()
        collected = scheduler.seed(archive, frontier)
        report = CollectionReport(archive=archive, collected=collected)
        return _SeededArchive(report=report, scheduler=scheduler, frontier=frontier)

    def _crawl_seeded(self, item: _SeededArchive) -> ArchiveSummary:
        archive = item.report.archive
        stats = item.scheduler.stats
        writer = ResultWriter(archive.output, clean=self.clean)
        writer.prepare()
        item.report.report_path = writer.write_collected_links(
            item.report.collected,
            archive_name=archive.name,
        )

        outcome = item.scheduler.crawl(archive, frontier=item.frontier, collected=item.report.collected)
        stats.finish()
        payload = stats.to_json()

        manifest = writer.write_results(outcome.results, archive_name=archive.name, stats=payload)
        failures = sum(1 for result in outcome.results if result.extraction_failed)

        LOGGER.info(
            "Archive '%s' complete: %d pages (%d extraction failures)",
            archive.name,
            len(outcome.results),
            failures,
        )
        return ArchiveSummary(
            name=archive.name,
            output_dir=writer.output_dir,
            pages=len(outcome.results),
            extraction_failures=failures,
            urls_collected=outcome.total_collected,
            manifest_path=manifest,
            stats=payload,
        )

    def collect(self) -> list[CollectionReport]:
        """Discover URLs for every archive without crawling them."""

        reports: list[CollectionReport] = []
        try:
            for archive in self.config.archives:
                report = self._seed(archive).report
                writer = ResultWriter(archive.output, clean=self.clean)
                report.report_path = writer.write_collected_links(report.collected, archive_name=archive.name)
                reports.append(report)
        finally:
            self.close()
        return reports

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()
        close_extractor = getattr(self.extractor, "close", None)
        if self._owns_extractor and callable(close_extractor):
            close_extractor()


__all__ = ["ArchiveCoordinator", "ArchiveSummary", "CollectionReport", "ConfirmCallback"]
