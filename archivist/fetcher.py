"""HTTP fetching and page existence probes over requests."""

from __future__ import annotations

import logging
import threading
import time

import requests

from .constants import (
    DEFAULT_HTTP_HEADERS,
    PROBE_RETRIES,
    PROBE_RETRY_DELAY_SECONDS,
    PROBE_TIMEOUT_SECONDS,
)
from .types import CrawlSettings, FetchResult

LOGGER = logging.getLogger(__name__)


class Fetcher:
    """Fetch pages and probe URLs with `requests`.

    Each worker thread gets its own `requests.Session` unless a session is
    injected, in which case that one object is shared by every thread.
    """

    def __init__(
        self,
        settings: CrawlSettings | None = None,
        *,
        session: requests.Session | None = None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        probe_retry_delay: float = PROBE_RETRY_DELAY_SECONDS,
    ) -> None:
        self.settings = settings or CrawlSettings()
        self.probe_timeout = probe_timeout
        self.probe_retry_delay = max(0.0, probe_retry_delay)

        self._shared_session = session
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def headers(self) -> dict[str, str]:
        merged = dict(DEFAULT_HTTP_HEADERS)
        merged["User-Agent"] = self.settings.user_agent
        return merged

    def get(self, url: str) -> FetchResult:
        """GET one URL; network failures are reported on the result, not raised."""

        started = time.perf_counter()
        try:
            response = self._session().get(
                url,
                headers=self.headers,
                timeout=self.settings.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                error=f"{exc.__class__.__name__}: {exc}",
            )

        body = response.content if response.content is not None else b""
        return FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type"),
            body=body,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def head_status(self, url: str) -> int:
        """Return the HTTP status of a HEAD request, following redirects."""

        response = self._session().head(
            url,
            headers=self.headers,
            timeout=self.probe_timeout,
            allow_redirects=True,
        )
        return int(response.status_code)

    def probe_exists(self, url: str, *, retries: int = PROBE_RETRIES) -> bool:
        """Return True when `url` answers 2xx/3xx to HEAD.

        A 404, a 5xx or a network error is retried `retries` times before the
        page is declared missing. Any other status is final.
        """

        attempts = max(0, retries) + 1
        for attempt in range(1, attempts + 1):
            try:
                status = self.head_status(url)
            except requests.RequestException as exc:
                if attempt < attempts:
                    self._wait_before_retry()
                    continue
                LOGGER.warning("Existence probe failed for %s: %s", url, exc)
                return False

            if status == 404 or status >= 500:
                if attempt < attempts:
                    self._wait_before_retry()
                    continue
                LOGGER.debug("Existence probe for %s ended with HTTP %d", url, status)
                return False

            return 200 <= status < 400

        return False

    def close(self) -> None:
        """Close sessions opened by this fetcher."""

        with self._sessions_lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _wait_before_retry(self) -> None:
        if self.probe_retry_delay > 0:
            time.sleep(self.probe_retry_delay)

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = ["Fetcher"]
