"""Render crawl results as markdown, JSON or HTML and name their files."""

from __future__ import annotations

import hashlib
import html
import json
import re
from urllib.parse import urlsplit

from .constants import JSON_INDENT, MAX_FILENAME_LENGTH
from .types import CrawlResult, FileNaming, OutputFormat

FILE_EXTENSIONS: dict[OutputFormat, str] = {
    OutputFormat.MARKDOWN: ".md",
    OutputFormat.HTML: ".html",
    OutputFormat.JSON: ".json",
}

_UNSAFE_RE = re.compile(r"[^a-z0-9]+", re.IGNORECASE)


def sanitize_filename(name: str) -> str:
    """Collapse anything but ASCII letters and digits into single dashes."""

    cleaned = _UNSAFE_RE.sub("-", name).strip("-").lower()
    return cleaned[:MAX_FILENAME_LENGTH]


def url_to_filename(url: str) -> str:
    parsed = urlsplit(url)
    host = (parsed.hostname or "").removeprefix("www.")
    parts = [part for part in parsed.path.split("/") if part]
    if not parts:
        return sanitize_filename(host) or "index"
    return sanitize_filename("-".join([host, *parts])) or "index"


def title_to_filename(title: str, url: str) -> str:
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:8]
    return f"{sanitize_filename(title)}-{digest}"


def hash_filename(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def file_stem_for(result: CrawlResult, naming: FileNaming) -> str:
    """File name without extension for `result` under a naming scheme."""

    if naming == FileNaming.TITLE_BASED:
        return title_to_filename(result.title, result.url)
    if naming == FileNaming.HASH_BASED:
        return hash_filename(result.url)
    return url_to_filename(result.url)


def format_markdown(result: CrawlResult) -> str:
    links = "\n".join(f"- {link}" for link in result.links)
    return (
        f"# {result.title}\n"
        "\n"
        f"**URL:** {result.url}  \n"
        f"**Crawled:** {result.crawled_at}  \n"
        f"**Content Length:** {result.content_length} characters  \n"
        f"**Links Found:** {len(result.links)}\n"
        "\n"
        "---\n"
        "\n"
        f"{result.content}\n"
        "\n"
        "---\n"
        "\n"
        "## Links\n"
        "\n"
        f"{links}\n"
    )


def format_json(result: CrawlResult) -> str:
    return json.dumps(result.to_json(), ensure_ascii=False, indent=JSON_INDENT) + "\n"


def format_html(result: CrawlResult) -> str:
    title = html.escape(result.title)
    url = html.escape(result.url, quote=True)
    crawled = html.escape(result.crawled_at, quote=True)
    body = "<br>\n".join(html.escape(line) for line in result.content.split("\n"))
    items = "\n".join(
        f'    <li><a href="{html.escape(link, quote=True)}">{html.escape(link)}</a></li>'
        for link in result.links
    )
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        f"  <title>{title}</title>\n"
        f'  <meta name="source-url" content="{url}">\n'
        f'  <meta name="crawled-at" content="{crawled}">\n'
        "</head>\n"
        "<body>\n"
        f"  <h1>{title}</h1>\n"
        f'  <p><strong>Source:</strong> <a href="{url}">{url}</a></p>\n'
        f"  <p><strong>Crawled:</strong> {crawled}</p>\n"
        "  <hr>\n"
        '  <div class="content">\n'
        f"    {body}\n"
        "  </div>\n"
        "  <hr>\n"
        "  <h2>Links</h2>\n"
        "  <ul>\n"
        f"{items}\n"
        "  </ul>\n"
        "</body>\n"
        "</html>\n"
    )


_FORMATTERS = {
    OutputFormat.MARKDOWN: format_markdown,
    OutputFormat.JSON: format_json,
    OutputFormat.HTML: format_html,
}


def format_result(result: CrawlResult, output_format: OutputFormat) -> str:
    return _FORMATTERS[output_format](result)


__all__ = [
    "FILE_EXTENSIONS",
    "file_stem_for",
    "format_html",
    "format_json",
    "format_markdown",
    "format_result",
    "hash_filename",
    "sanitize_filename",
    "title_to_filename",
    "url_to_filename",
]
