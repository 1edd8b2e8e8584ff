"""Pending/visited URL bookkeeping for one archive crawl."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import threading

from .types import Source
from .url import normalize_url


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_PENDING = "skipped_pending"
    SKIPPED_VISITED = "skipped_visited"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED

    @property
    def duplicate(self) -> bool:
        return self.status in {EnqueueStatus.SKIPPED_PENDING, EnqueueStatus.SKIPPED_VISITED}


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A URL handed out for fetching, with the source that owns it."""

    url: str
    source: Source


class Frontier:
    """Pending and visited URL sets plus the URL -> Source table.

    - A URL lives in at most one of pending/visited.
    - `pop` moves a URL from pending to visited atomically; visited URLs are
      never queued again.
    - The first source to enqueue a URL owns it for the rest of the run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, None] = {}
        self._visited: set[str] = set()
        self._source_of: dict[str, Source] = {}

        self._enqueued_count = 0
        self._skipped_pending_count = 0
        self._skipped_visited_count = 0
        self._skipped_invalid_count = 0

    def add(self, url: str, source: Source) -> EnqueueResult:
        """Queue `url` for `source` unless it is already pending or visited."""

        normalized = normalize_url(url)
        if not normalized:
            with self._lock:
                self._skipped_invalid_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        with self._lock:
            if normalized in self._visited:
                self._skipped_visited_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_VISITED, normalized_url=normalized)
            if normalized in self._pending:
                self._skipped_pending_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_PENDING, normalized_url=normalized)

            self._pending[normalized] = None
            self._source_of.setdefault(normalized, source)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized)

    def pop(self) -> FrontierItem | None:
        """Take the oldest pending URL and mark it visited in one step."""

        with self._lock:
            if not self._pending:
                return None
            url = next(iter(self._pending))
            del self._pending[url]
            self._visited.add(url)
            return FrontierItem(url=url, source=self._source_of[url])

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

        with self._lock:
            return list(self._pending)

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "pending": len(self._pending),
                "visited": len(self._visited),
                "enqueued": self._enqueued_count,
                "skipped_pending": self._skipped_pending_count,
                "skipped_visited": self._skipped_visited_count,
                "skipped_invalid": self._skipped_invalid_count,
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
    "FrontierItem",
]
