"""Include/exclude URL filtering with glob or regex patterns.

Each pattern is classified heuristically: anything that looks like a regular
expression (anchors, escaped metacharacters, `\\d`/`\\w`/`\\s`/`\\b`,
alternation, groups, letter ranges, `+` quantifiers) is searched as a regex;
everything else is treated as a glob. The classifier is best-effort and can
misjudge unusual patterns, so its decision table is pinned by tests.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import urlsplit

LOGGER = logging.getLogger(__name__)

REGEX_INDICATORS = (
    "^",
    "$",
    "\\.",
    "\\w",
    "\\d",
    "\\s",
    "\\/",
    "\\\\",
    "\\b",
    "|",
    "(",
    ")",
)

_LETTER_RANGE_RE = re.compile(r"\[[a-zA-Z]-[a-zA-Z]\]")
_PLUS_QUANTIFIER_RE = re.compile(r"[^*]+\+")
_EXTENSION_BRACES_RE = re.compile(r"\*\.\{([^}]+)\}")
_BRACES_RE = re.compile(r"\{([^}]+)\}")


def is_regex_pattern(pattern: str) -> bool:
    """Return True when `pattern` should be evaluated as a regular expression."""

    if _LETTER_RANGE_RE.search(pattern):
        return True
    if _PLUS_QUANTIFIER_RE.search(pattern):
        return True
    return any(indicator in pattern for indicator in REGEX_INDICATORS)


def _glob_to_regex(pattern: str) -> str:
    """Translate a path-style glob into an anchored regex.

    `*` and `?` stop at `/`, `**` spans segments, `{a,b}` alternates.
    """

    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "{":
            close = pattern.find("}", i)
            if close == -1:
                out.append(re.escape(char))
            else:
                options = pattern[i + 1 : close].split(",")
                out.append("(?:" + "|".join(_glob_to_regex(option) for option in options) + ")")
                i = close + 1
                continue
        elif char == "[":
            close = pattern.find("]", i + 1)
            if close == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = close + 1
                continue
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


def _glob_full_match(url: str, pattern: str) -> bool:
    return re.fullmatch(_glob_to_regex(pattern), url, flags=re.IGNORECASE) is not None


def _glob_path_match(url: str, pattern: str) -> bool:
    parts = urlsplit(url)
    path = parts.path or "/"
    if not pattern.startswith("/"):
        path = path.lstrip("/")
    candidates = [path]
    if parts.query:
        candidates.append(f"{path}?{parts.query}")
    return any(_glob_full_match(candidate, pattern) for candidate in candidates)


def _wildcard_search(url: str, pattern: str) -> bool:
    # Loose translation: only wildcards and braces are rewritten.
    expression = pattern.replace("*", ".*").replace("?", ".")
    expression = _BRACES_RE.sub(lambda m: "(" + "|".join(m.group(1).split(",")) + ")", expression)
    return re.search(expression, url, flags=re.IGNORECASE) is not None


def _extension_match(url: str, pattern: str) -> bool:
    lowered = url.lower()
    if "{" in pattern and "}" in pattern:
        match = _EXTENSION_BRACES_RE.search(pattern)
        if match:
            return any(
                lowered.endswith("." + ext.strip().lower())
                for ext in match.group(1).split(",")
            )
    return lowered.endswith(pattern[1:].lower())


def matches_pattern(url: str, pattern: str) -> bool:
    """Return True when `url` matches a single glob or regex pattern.

    Patterns that fail to compile are logged and treated as non-matching.
    """

    try:
        if is_regex_pattern(pattern):
            return re.search(pattern, url) is not None

        if pattern.startswith(("http://", "https://", "**")):
            return _glob_full_match(url, pattern)
        if "**" in pattern:
            return _glob_path_match(url, pattern)
        if pattern.startswith("*."):
            return _extension_match(url, pattern)
        if "*" in pattern:
            return _wildcard_search(url, pattern)
        return pattern.lower() in url.lower()
    except re.error as exc:
        LOGGER.warning("Invalid pattern %r: %s", pattern, exc)
        return False


def should_include(
    url: str,
    include_patterns: Iterable[str] | None = None,
    exclude_patterns: Iterable[str] | None = None,
) -> bool:
    """Apply exclude patterns first, then require one include match if any."""

    excludes = list(exclude_patterns or ())
    if any(matches_pattern(url, pattern) for pattern in excludes):
        return False

    includes = list(include_patterns or ())
    if includes:
        return any(matches_pattern(url, pattern) for pattern in includes)

    return True


def filter_urls(
    urls: Iterable[str],
    include_patterns: Iterable[str] | None = None,
    exclude_patterns: Iterable[str] | None = None,
) -> list[str]:
    """Keep URLs accepted by `should_include`, preserving order."""

    includes = list(include_patterns or ())
    excludes = list(exclude_patterns or ())
    return [url for url in urls if should_include(url, includes, excludes)]


__all__ = [
    "REGEX_INDICATORS",
    "filter_urls",
    "is_regex_pattern",
    "matches_pattern",
    "should_include",
]
