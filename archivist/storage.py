"""Filesystem writer for archive results and manifests.

The writer owns the on-disk layout of one archive's output directory. Other
modules should use this API instead of building paths manually.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Any, Iterable, Mapping

from .constants import COLLECTED_LINKS_FILENAME, JSON_INDENT, METADATA_FILENAME
from .formatting import FILE_EXTENSIONS, file_stem_for, format_result
from .types import CollectedUrls, CrawlResult, OutputConfig, utc_now_iso

LOGGER = logging.getLogger(__name__)


class ResultWriter:
    """Persist crawl results for one archive under `output.directory`."""

    def __init__(self, output: OutputConfig, *, clean: bool = False) -> None:
        self.output = output
        self.output_dir = Path(output.directory)
        self.clean = clean

        self.metadata_path = self.output_dir / METADATA_FILENAME
        self.collected_links_path = self.output_dir / COLLECTED_LINKS_FILENAME

    def prepare(self) -> None:
        """Create the output directory, emptying it first when `clean` is set."""

        if self.clean and self.output_dir.exists():
            LOGGER.info("Cleaning output directory %s", self.output_dir)
            for child in self.output_dir.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, result: CrawlResult, taken: set[str] | None = None) -> Path:
        """Build the file path for `result`, suffixing `-2`, `-3`... on clashes."""

        stem = file_stem_for(result, self.output.file_naming) or "page"
        extension = FILE_EXTENSIONS[self.output.format]
        name = f"{stem}{extension}"
        if taken is not None:
            counter = 2
            while name in taken:
                name = f"{stem}-{counter}{extension}"
                counter += 1
            taken.add(name)
        return self.output_dir / name

    def write_results(
        self,
        results: Iterable[CrawlResult],
        *,
        archive_name: str,
        stats: Mapping[str, Any] | None = None,
    ) -> Path:
        """Write one file per result plus the metadata manifest.

        Returns the manifest path.
        """

        self.output_dir.mkdir(parents=True, exist_ok=True)
        rows = list(results)
        taken: set[str] = set()
        files: list[str] = []

        for result in rows:
            path = self.path_for(result, taken)
            _atomic_write_text(path, format_result(result, self.output.format))
            files.append(path.name)

        metadata: dict[str, Any] = {
            "archive_name": archive_name,
            "crawled_at": utc_now_iso(),
            "total_pages": len(rows),
            "format": self.output.format.value,
            "file_naming": self.output.file_naming.value,
            "results": [
                {
                    "url": result.url,
                    "title": result.title,
                    "file": file_name,
                    "content_length": result.content_length,
                    "links_count": len(result.links),
                    "error": result.error,
                }
                for result, file_name in zip(rows, files)
            ],
        }
        if stats is not None:
            metadata["stats"] = dict(stats)

        _atomic_write_json(self.metadata_path, metadata)
        LOGGER.info("Wrote %d pages for '%s' to %s", len(rows), archive_name, self.output_dir)
        return self.metadata_path

    def write_collected_links(
        self,
        collected: Iterable[CollectedUrls],
        *,
        archive_name: str,
    ) -> Path:
        """Write the URLs each source contributed, read back by `archivist report`."""

        self.output_dir.mkdir(parents=True, exist_ok=True)
        entries = list(collected)
        payload = {
            "timestamp": utc_now_iso(),
            "archive": archive_name,
            "summary": {
                "total_sources": len(entries),
                "total_urls": sum(len(entry.urls) for entry in entries),
                "pagination_pages": sum(
                    entry.pages_discovered for entry in entries if entry.source.strategy == "pagination"
                ),
            },
            "sources": [entry.to_json() for entry in entries],
        }
        _atomic_write_json(self.collected_links_path, payload)
        return self.collected_links_path


def read_collected_links(path: str | Path) -> dict[str, Any]:
    """Load a report written by `ResultWriter.write_collected_links`."""

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict) or "sources" not in payload:
        raise ValueError(f"Not a collected links report: {path}")
    return payload


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=path.name + ".",
        suffix=".tmp",
    )
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    _atomic_write_text(
        path,
        json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n",
    )


__all__ = ["ResultWriter", "read_collected_links"]
