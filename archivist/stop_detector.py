"""Heuristic that decides when pagination has run out of new content."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable

from .constants import DECLINE_MIN_PAGES, DECLINE_RATIO, DECLINE_WINDOW
from .types import JSONDict, StopConditions

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageRecord:
    """One page observed by the detector."""

    page_number: int
    url: str
    new_links_count: int
    total_links: int
    had_error: bool = False

    def to_json(self) -> JSONDict:
        return {
            "page_number": self.page_number,
            "url": self.url,
            "new_links_count": self.new_links_count,
            "total_links": self.total_links,
            "had_error": self.had_error,
        }


@dataclass(frozen=True, slots=True)
class StopVerdict:
    """Detector decision for one page; `reason` is set when stopping."""

    should_stop: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.should_stop


_CONTINUE = StopVerdict(False)


class PaginationStopDetector:
    """Accumulate per-page signals and report when to stop paginating.

    One detector belongs to one pagination run for one source. It performs no
    I/O: callers feed it the page's links, HTTP status and visible text.
    """

    def __init__(self, conditions: StopConditions | None = None) -> None:
        self.conditions = conditions or StopConditions()
        self._keywords = tuple(keyword.lower() for keyword in self.conditions.error_keywords)
        self.reset()

    def reset(self) -> None:
        """Forget all observed pages."""

        self.consecutive_empty_count = 0
        self.error_404_count = 0
        self.seen_links: set[str] = set()
        self.page_history: list[PageRecord] = []

    def should_stop(
        self,
        page_number: int,
        page_url: str,
        discovered_links: Iterable[str],
        page_content: str | None = None,
        http_status: int | None = None,
    ) -> StopVerdict:
        """Record one page and return whether pagination should halt."""

        if http_status == 404:
            self.error_404_count += 1
            self.page_history.append(
                PageRecord(
                    page_number=page_number,
                    url=page_url,
                    new_links_count=0,
                    total_links=0,
                    had_error=True,
                )
            )
            if self.error_404_count >= self.conditions.max_404_errors:
                return StopVerdict(
                    True,
                    f"Reached maximum 404 errors ({self.error_404_count})",
                )
            return _CONTINUE

        if page_content:
            lowered = page_content.lower()
            for keyword in self._keywords:
                if keyword in lowered:
                    return StopVerdict(True, f"Found error keyword: '{keyword}'")

        links = list(discovered_links)
        new_links = {link for link in links if link not in self.seen_links}
        self.seen_links.update(links)

        self.page_history.append(
            PageRecord(
                page_number=page_number,
                url=page_url,
                new_links_count=len(new_links),
                total_links=len(links),
            )
        )

        if len(new_links) < self.conditions.min_new_links_per_page:
            self.consecutive_empty_count += 1
            if self.consecutive_empty_count >= self.conditions.consecutive_empty_pages:
                return StopVerdict(
                    True,
                    f"No new links found in {self.consecutive_empty_count} consecutive pages",
                )
        else:
            self.consecutive_empty_count = 0

        if self._is_declining():
            return StopVerdict(True, "Detected declining pattern in new links")

        return _CONTINUE

    def _is_declining(self) -> bool:
        if len(self.page_history) < DECLINE_WINDOW:
            return False

        recent = [
            record.new_links_count
            for record in self.page_history[-DECLINE_WINDOW:]
            if not record.had_error
        ]
        if len(recent) < DECLINE_MIN_PAGES:
            return False

        pairs = len(recent) - 1
        declining = sum(1 for prev, cur in zip(recent, recent[1:]) if cur < prev)
        return declining >= pairs * DECLINE_RATIO

    def stats(self) -> JSONDict:
        """Summarize what the detector has seen; reporting only."""

        history = self.page_history
        average = (
            sum(record.new_links_count for record in history) / len(history)
            if history
            else 0.0
        )
        return {
            "total_pages": len(self.page_history),
            "total_unique_links": len(self.seen_links),
            "error_404_count": self.error_404_count,
            "average_new_links_per_page": average,
            "page_history": [record.to_json() for record in self.page_history],
        }


__all__ = ["PageRecord", "PaginationStopDetector", "StopVerdict"]
