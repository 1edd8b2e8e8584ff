"""Content extraction through the pure.md markdown service."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
import re
import threading
from typing import Protocol
from urllib.parse import quote, urljoin, urlsplit

import requests

from .constants import (
    DEFAULT_TIMEOUT_SECONDS,
    PURE_API_KEY_ENV,
    PURE_API_KEY_HEADER,
    PURE_MD_BASE_URL,
)
from .errors import ContentExtractionError, RateLimitError

_H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_PLAIN_URL_RE = re.compile(r"(?<!\()https?://[^\s<>\"{}|\\^\[\]`]+")
_EXTENSION_RE = re.compile(r"\.[^.]+$")
_URI_COMPONENT_SAFE = "!~*'()"


class ContentExtractor(Protocol):
    """Anything that turns a URL into markdown text."""

    def fetch_content(self, url: str) -> str:
        ...


@dataclass(slots=True)
class ParsedPage:
    """Title, body and links pulled out of a markdown document."""

    url: str
    title: str
    content: str
    links: list[str] = field(default_factory=list)


class PureMdClient:
    """Minimal client for `GET https://pure.md/<encoded url>`.

    Worker threads each get their own `requests.Session`, as in `Fetcher`.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = PURE_MD_BASE_URL,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key or os.environ.get(PURE_API_KEY_ENV) or None
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._shared_session = session
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {PURE_API_KEY_HEADER: self.api_key}

    def endpoint_for(self, url: str) -> str:
        return f"{self.base_url}/{quote(url, safe=_URI_COMPONENT_SAFE)}"

    def fetch_content(self, url: str) -> str:
        """Return the markdown rendering of `url`.

        Raises `RateLimitError` on HTTP 429 and `ContentExtractionError` on any
        other failure.
        """

        try:
            response = self._session().get(
                self.endpoint_for(url),
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ContentExtractionError(
                f"pure.md request failed for {url}: {exc.__class__.__name__}: {exc}",
                url=url,
            ) from exc

        status = int(response.status_code)
        if status == 429:
            raise RateLimitError(
                "Rate limit exceeded. Please wait before making more requests.",
                url=url,
                status_code=status,
            )
        if not 200 <= status < 300:
            reason = getattr(response, "reason", "") or ""
            raise ContentExtractionError(
                f"pure.md API error: {status} {reason}".rstrip(),
                url=url,
                status_code=status,
            )
        return response.text

    def close(self) -> None:
        """Close sessions opened by this client; an injected session is left open."""

        with self._sessions_lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            session.close()

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


def title_from_url(url: str) -> str:
    """Derive a readable title from the last path segment or hostname."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return "Untitled"

    parts = [part for part in parsed.path.split("/") if part]
    if parts:
        stem = _EXTENSION_RE.sub("", parts[-1])
        words = stem.replace("-", " ").replace("_", " ")
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), words)

    host = (parsed.hostname or "").removeprefix("www.")
    return host or "Untitled"


def markdown_links(markdown: str, base_url: str) -> list[str]:
    """Collect `[text](href)` targets and bare URLs, deduplicated in order."""

    links: list[str] = []
    for match in _MARKDOWN_LINK_RE.finditer(markdown):
        href = match.group(2).strip()
        if not href:
            continue
        if href.startswith(("http://", "https://")):
            links.append(href)
        elif not href.startswith(("#", "mailto:")):
            try:
                links.append(urljoin(base_url, href))
            except ValueError:
                continue

    for match in _PLAIN_URL_RE.finditer(markdown):
        links.append(match.group(0))

    return list(dict.fromkeys(links))


def parse_markdown_content(markdown: str, url: str) -> ParsedPage:
    title_match = _H1_RE.search(markdown)
    title = title_match.group(1).strip() if title_match else ""
    return ParsedPage(
        url=url,
        title=title or title_from_url(url),
        content=markdown.strip(),
        links=markdown_links(markdown, url),
    )


__all__ = [
    "ContentExtractor",
    "ParsedPage",
    "PureMdClient",
    "markdown_links",
    "parse_markdown_content",
    "title_from_url",
]
