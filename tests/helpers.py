"""Fake HTTP sessions and content extractors shared by the tests."""

from __future__ import annotations

import threading
from typing import Any, Callable

from archivist.errors import ContentExtractionError
from archivist.fetcher import Fetcher
from archivist.types import CrawlSettings
from archivist.url import normalize_url


class FakeResponse:
    def __init__(self, url: str, status_code: int = 200, body: str | bytes = b"", reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.text = self.content.decode("utf-8")
        self.reason = reason
        self.headers = {"Content-Type": "text/html; charset=utf-8"}


Route = Any  # str body, (status, body) tuple, Exception instance, or callable(url) -> Route


class FakeSession:
    """Stand-in for `requests.Session` serving canned pages by URL."""

    def __init__(self, routes: dict[str, Route] | None = None, *, head_routes: dict[str, Route] | None = None) -> None:
        self.routes = {self._key(url): route for url, route in (routes or {}).items()}
        self.head_routes = {self._key(url): route for url, route in (head_routes or {}).items()}
        self.get_calls: list[str] = []
        self.head_calls: list[str] = []
        self.last_get_kwargs: dict[str, Any] = {}
        self.closed = False
        self._lock = threading.Lock()

    @staticmethod
    def _key(url: str) -> str:
        return normalize_url(url) or url

    def _respond(self, url: str, table: dict[str, Route]) -> FakeResponse:
        route = table.get(self._key(url))
        if callable(route) and not isinstance(route, type):
            route = route(url)
        if route is None:
            return FakeResponse(url, 404, "<html><body>Gone</body></html>")
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, tuple):
            status, body = route
            return FakeResponse(url, status, body)
        return FakeResponse(url, 200, route)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.get_calls.append(url)
            self.last_get_kwargs = kwargs
        return self._respond(url, self.routes)

    def head(self, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.head_calls.append(url)
        table = self.head_routes if self._key(url) in self.head_routes else self.routes
        response = self._respond(url, table)
        response.content = b""
        return response

    def close(self) -> None:
        self.closed = True


class FakeExtractor:
    """Content extractor returning canned markdown, or raising per URL."""

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        *,
        failing: set[str] | None = None,
        on_fetch: Callable[[str], None] | None = None,
    ) -> None:
        self.pages = {normalize_url(url) or url: body for url, body in (pages or {}).items()}
        self.failing = {normalize_url(url) or url for url in (failing or set())}
        self.on_fetch = on_fetch
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch_content(self, url: str) -> str:
        with self._lock:
            self.calls.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)
        key = normalize_url(url) or url
        if key in self.failing:
            raise ContentExtractionError("pure.md API error: 500", url=url, status_code=500)
        return self.pages.get(key, "# Archived page\n\nBody text.")


def html_page(*hrefs: str, title: str = "Listing", text: str = "Latest posts") -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><head><title>{title}</title></head><body><p>{text}</p>{anchors}</body></html>"


def make_fetcher(routes: dict[str, Route] | None = None, **kwargs: Any) -> tuple[Fetcher, FakeSession]:
    session = FakeSession(routes, head_routes=kwargs.pop("head_routes", None))
    fetcher = Fetcher(CrawlSettings(delay_seconds=0), session=session, probe_retry_delay=0, **kwargs)
    return fetcher, session

