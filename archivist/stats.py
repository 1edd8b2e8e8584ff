"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .types import CollectedUrls, CrawlResult, JSONDict, utc_now_iso


@dataclass(slots=True)
class CrawlStats:
    """Core counters for one archive crawl."""

    sources_seeded: int = 0
    sources_failed: int = 0
    urls_collected: int = 0
    duplicates_removed: int = 0
    depth_enqueued: int = 0

    pages_ok: int = 0
    extraction_failures: int = 0
    page_failures: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def to_json(self) -> JSONDict:
        return {
            "sources_seeded": self.sources_seeded,
            "sources_failed": self.sources_failed,
            "urls_collected": self.urls_collected,
            "duplicates_removed": self.duplicates_removed,
            "depth_enqueued": self.depth_enqueued,
            "pages_ok": self.pages_ok,
            "extraction_failures": self.extraction_failures,
            "page_failures": self.page_failures,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class StatsCollector:
    """Collect crawl statistics from the scheduler and its workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._core = CrawlStats()

        self._pagination_stop_reasons: dict[str, int] = defaultdict(int)
        self._failure_types: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int] = {}
        self._content_chars_total = 0
        self._links_total = 0
        self._custom_counters: dict[str, int] = defaultdict(int)

    def record_seed(self, collected: CollectedUrls) -> None:
        """Record what one source contributed during seeding."""

        with self._lock:
            if collected.error is not None:
                self._core.sources_failed += 1
                return
            self._core.sources_seeded += 1
            self._core.urls_collected += len(collected.urls)
            self._core.duplicates_removed += collected.duplicates_removed

    def record_depth_enqueued(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._core.depth_enqueued += count

    def record_page(self, result: CrawlResult) -> None:
        """Record one finished page, placeholder or not."""

        with self._lock:
            if result.extraction_failed:
                self._core.extraction_failures += 1
            else:
                self._core.pages_ok += 1
            self._content_chars_total += result.content_length
            self._links_total += len(result.links)

    def record_page_failure(self, exc: BaseException) -> None:
        with self._lock:
            self._core.page_failures += 1
            self._failure_types[exc.__class__.__name__] += 1

    def record_pagination_stop(self, reason: str) -> None:
        with self._lock:
            self._pagination_stop_reasons[reason] += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a custom counter for ad-hoc instrumentation."""

        if not name or value == 0:
            return
        with self._lock:
            self._custom_counters[name] += value

    def finish(self) -> None:
        with self._lock:
            self._core.finished_at = utc_now_iso()

    def core(self) -> CrawlStats:
        """Return a copy of the core counters."""

        with self._lock:
            return replace(self._core)

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())
            pages_total = self._core.pages_ok + self._core.extraction_failures

            return {
                **self._core.to_json(),
                "duration_seconds": duration_seconds,
                "pages_per_second": pages_total / duration_seconds if duration_seconds > 0 else 0.0,
                "content_chars_total": self._content_chars_total,
                "links_total": self._links_total,
                "failure_types": dict(self._failure_types),
                "pagination_stop_reasons": dict(self._pagination_stop_reasons),
                "frontier": dict(self._frontier_snapshot),
                "custom_counters": dict(self._custom_counters),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["CrawlStats", "StatsCollector"]
