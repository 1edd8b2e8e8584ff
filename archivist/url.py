"""URL normalization, depth measurement, and link extraction helpers."""

from __future__ import annotations

import math
from typing import Iterable, Sequence
from urllib.parse import (
    parse_qsl,
    quote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)

from bs4 import BeautifulSoup

from .constants import DEFAULT_LINK_SELECTOR
from .patterns import should_include


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
MALFORMED_HREF_PREFIXES = ("://", "//")


def hostname(url: str) -> str:
    """Return the lowercased hostname of `url`, or an empty string."""

    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_same_host(url_a: str, url_b: str) -> bool:
    host_a = hostname(url_a)
    return bool(host_a) and host_a == hostname(url_b)


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in {scheme.lower() for scheme in allowed_schemes}


def _path_segments(url: str) -> list[str]:
    return [part for part in urlsplit(url).path.split("/") if part]


def relative_depth(url: str, seed_url: str) -> float:
    """Path-segment distance of `url` below `seed_url`.

    Returns `math.inf` when the two URLs are on different hosts. The value can
    be negative for pages shallower than the seed.
    """

    if not is_same_host(url, seed_url):
        return math.inf
    return len(_path_segments(url)) - len(_path_segments(seed_url))


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url, *, strip_default_port: bool) -> str:
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    try:
        port = parsed_url.port
    except ValueError:
        port = None

    if port is None or (strip_default_port and _has_default_port(parsed_url.scheme.lower(), port)):
        return f"{userinfo}{host}"
    return f"{userinfo}{host}:{port}"


def normalize_url(
    url: str,
    *,
    strip_fragment: bool = True,
    strip_default_port: bool = True,
    sort_query_params: bool = False,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Canonicalize an absolute URL for frontier dedup.

    Lowercases scheme and host, drops default ports and the fragment, and
    gives an empty path as `/`. Path and query are otherwise kept verbatim so
    pages that differ only in query order stay distinct unless
    `sort_query_params` is set. Returns `None` for invalid or non-HTTP URLs.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    try:
        parsed = urlsplit(raw)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in {item.lower() for item in allowed_schemes}:
        return None

    netloc = _normalize_netloc(parsed, strip_default_port=strip_default_port)
    if not netloc:
        return None

    query = parsed.query
    if query and sort_query_params:
        query = urlencode(sorted(parse_qsl(query, keep_blank_values=True)), doseq=True)

    fragment = "" if strip_fragment else parsed.fragment
    return urlunsplit((scheme, netloc, parsed.path or "/", query, fragment))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against `base_url`.

    Script, mail, phone, data, fragment-only and malformed hrefs yield `None`.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if lowered.startswith(SKIP_HREF_PREFIXES) or candidate.startswith(MALFORMED_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None
    return normalize_url(absolute)


def extract_links_from_html(
    html: str | bytes,
    *,
    base_url: str,
    selector: str | None = None,
    include_patterns: Iterable[str] | None = None,
    exclude_patterns: Iterable[str] | None = None,
) -> list[str]:
    """Extract absolute links from elements matching a CSS selector.

    Returns links in document order with duplicates removed. When include or
    exclude patterns are given, links are filtered through `should_include`.
    """

    soup = BeautifulSoup(html, "lxml")
    includes = list(include_patterns or ())
    excludes = list(exclude_patterns or ())

    out: list[str] = []
    seen: set[str] = set()

    for element in soup.select(selector or DEFAULT_LINK_SELECTOR):
        href = element.get("href")
        if not href and element.name != "a":
            nested = element.find("a", href=True)
            href = nested.get("href") if nested is not None else None
        if not href:
            continue

        resolved = resolve_url(base_url, str(href))
        if not resolved or resolved in seen:
            continue

        if (includes or excludes) and not should_include(resolved, includes, excludes):
            continue

        seen.add(resolved)
        out.append(resolved)

    return out


def visible_text(html: str | bytes) -> str:
    """Return the human-visible text of an HTML document."""

    soup = BeautifulSoup(html, "lxml")
    for element in soup(["script", "style", "noscript", "template"]):
        element.decompose()
    return " ".join(soup.get_text(separator=" ").split())


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "extract_links_from_html",
    "hostname",
    "is_http_url",
    "is_same_host",
    "normalize_url",
    "relative_depth",
    "resolve_url",
    "visible_text",
]
