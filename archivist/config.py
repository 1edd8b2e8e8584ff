"""Typed archivist configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_ARCHIVE_NAME,
    DEFAULT_DEBUG,
    DEFAULT_DELAY_SECONDS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_START_PAGE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    MAX_MAX_CONCURRENCY,
    MAX_SOURCE_DEPTH,
    MIN_MAX_CONCURRENCY,
    PURE_API_KEY_ENV,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .errors import ConfigurationError
from .types import (
    Archive,
    CrawlSettings,
    FileNaming,
    JSONDict,
    OutputConfig,
    OutputFormat,
    PaginationConfig,
    Source,
    StopConditions,
    StrategyName,
)
from .url import is_http_url

LOGGER = logging.getLogger(__name__)


def _as_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid float for '{key}': {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid string for '{key}': {value!r}")
    value = value.strip()
    return value or None


def _as_str_tuple(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid list for '{key}': {value!r}")
    return tuple(str(item) for item in value if str(item).strip())


def _coerce_stop_conditions(value: Any) -> StopConditions | None:
    if value is None:
        return None
    if isinstance(value, StopConditions):
        return value
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid stop_conditions: {value!r}")

    defaults = StopConditions()
    empty_pages = _as_int(value.get("consecutive_empty_pages"), "consecutive_empty_pages")
    max_404 = _as_int(value.get("max_404_errors"), "max_404_errors")
    min_new = _as_int(value.get("min_new_links_per_page"), "min_new_links_per_page")

    if empty_pages is not None and empty_pages < 1:
        raise ValueError("consecutive_empty_pages must be >= 1")
    if max_404 is not None and max_404 < 1:
        raise ValueError("max_404_errors must be >= 1")
    if min_new is not None and min_new < 0:
        raise ValueError("min_new_links_per_page must be >= 0")

    keywords = value.get("error_keywords")
    return StopConditions(
        consecutive_empty_pages=defaults.consecutive_empty_pages if empty_pages is None else empty_pages,
        max_404_errors=defaults.max_404_errors if max_404 is None else max_404,
        error_keywords=(
            defaults.error_keywords
            if keywords is None
            else _as_str_tuple(keywords, "error_keywords")
        ),
        min_new_links_per_page=defaults.min_new_links_per_page if min_new is None else min_new,
    )


def _coerce_pagination(value: Any) -> PaginationConfig | None:
    if value is None:
        return None
    if isinstance(value, PaginationConfig):
        return value
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid pagination config: {value!r}")

    start_page = _as_int(value.get("start_page"), "start_page")
    return PaginationConfig(
        start_page=DEFAULT_START_PAGE if start_page is None else start_page,
        max_pages=_as_int(value.get("max_pages"), "max_pages"),
        page_param=_as_str(value.get("page_param"), "page_param"),
        page_pattern=_as_str(value.get("page_pattern"), "page_pattern"),
        next_link_selector=_as_str(value.get("next_link_selector"), "next_link_selector"),
        stop_conditions=_coerce_stop_conditions(value.get("stop_conditions")),
    )


def _coerce_source(value: Any) -> Source:
    if isinstance(value, Source):
        return value

    if isinstance(value, str):
        url = value.strip()
        if not is_http_url(url):
            raise ValueError(f"Source URL must be http(s): {value!r}")
        return Source(url=url, is_simple=True)

    if isinstance(value, Mapping):
        url = _as_str(value.get("url"), "url")
        if url is None or not is_http_url(url):
            raise ValueError(f"Source missing valid 'url': {value!r}")

        depth = _as_int(value.get("depth", 0), "depth") or 0
        if not 0 <= depth <= MAX_SOURCE_DEPTH:
            raise ValueError(f"depth must be between 0 and {MAX_SOURCE_DEPTH}, got {depth}")

        strategy = _as_str(value.get("strategy"), "strategy") or StrategyName.EXPLORER.value

        # Older configs call the link selector `selector`.
        selector = value.get("link_selector", value.get("selector"))

        return Source(
            url=url,
            name=_as_str(value.get("name"), "name"),
            depth=depth,
            link_selector=_as_str(selector, "link_selector"),
            include_patterns=_as_str_tuple(value.get("include_patterns"), "include_patterns"),
            exclude_patterns=_as_str_tuple(value.get("exclude_patterns"), "exclude_patterns"),
            strategy=strategy.lower(),
            pagination=_coerce_pagination(value.get("pagination")),
        )

    raise TypeError(f"Unsupported source value: {type(value)!r}")


def _coerce_sources(value: Any) -> tuple[Source, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, Mapping, Source)):
        return (_coerce_source(value),)
    if isinstance(value, (list, tuple)):
        return tuple(_coerce_source(item) for item in value)
    raise TypeError(f"Unsupported sources value: {type(value)!r}")


def _coerce_output(value: Any) -> OutputConfig:
    if value is None:
        return OutputConfig()
    if isinstance(value, OutputConfig):
        return value
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid output config: {value!r}")

    defaults = OutputConfig()
    directory = _as_str(value.get("directory"), "directory") or defaults.directory
    output_format = value.get("format", defaults.format.value)
    file_naming = value.get("file_naming", defaults.file_naming.value)
    try:
        return OutputConfig(
            directory=directory,
            format=OutputFormat(str(output_format).strip().lower()),
            file_naming=FileNaming(str(file_naming).strip().lower()),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid output config: {exc}") from exc


def _coerce_archive(value: Any) -> Archive:
    if isinstance(value, Archive):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"Unsupported archive value: {type(value)!r}")

    name = _as_str(value.get("name"), "name")
    if name is None:
        raise ValueError(f"Archive missing required key 'name': {value!r}")

    sources = _coerce_sources(value.get("sources"))
    if not sources:
        raise ValueError(f"Archive '{name}' has no sources")

    return Archive(name=name, sources=sources, output=_coerce_output(value.get("output")))


def _coerce_crawl_settings(value: Any) -> CrawlSettings:
    if value is None:
        return CrawlSettings()
    if isinstance(value, CrawlSettings):
        return value
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid crawl config: {value!r}")

    max_concurrency = _as_int(value.get("max_concurrency", DEFAULT_MAX_CONCURRENCY), "max_concurrency")
    delay_seconds = _as_float(value.get("delay_seconds", DEFAULT_DELAY_SECONDS), "delay_seconds")
    timeout_seconds = _as_float(value.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS), "timeout_seconds")
    user_agent = _as_str(value.get("user_agent"), "user_agent") or DEFAULT_USER_AGENT
    debug = _as_bool(value.get("debug", DEFAULT_DEBUG), "debug")

    if max_concurrency is None or not MIN_MAX_CONCURRENCY <= max_concurrency <= MAX_MAX_CONCURRENCY:
        raise ValueError(
            f"max_concurrency must be between {MIN_MAX_CONCURRENCY} and {MAX_MAX_CONCURRENCY}"
        )
    if delay_seconds is None or delay_seconds < 0:
        raise ValueError("delay_seconds must be >= 0")
    if timeout_seconds is None or timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be > 0")

    return CrawlSettings(
        max_concurrency=max_concurrency,
        delay_seconds=delay_seconds,
        timeout_seconds=timeout_seconds,
        user_agent=user_agent,
        debug=debug,
    )


def is_legacy_config(payload: Mapping[str, Any]) -> bool:
    """Single-archive layout: top-level `sources` and `output`, no `archives`."""

    return "archives" not in payload and "sources" in payload and "output" in payload


def migrate_legacy_config(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a single-archive config into the multi-archive layout."""

    LOGGER.info("Migrating legacy single-archive config to '%s'", DEFAULT_ARCHIVE_NAME)
    migrated = {
        key: value for key, value in payload.items() if key not in {"sources", "output"}
    }
    migrated["archives"] = [
        {
            "name": DEFAULT_ARCHIVE_NAME,
            "sources": payload["sources"],
            "output": payload["output"],
        }
    ]
    return migrated


@dataclass(slots=True)
class ArchivistConfig:
    """Top-level configuration: archives plus run-wide crawl settings."""

    archives: list[Archive]
    crawl: CrawlSettings = field(default_factory=CrawlSettings)
    pure_api_key: str | None = None

    def __post_init__(self) -> None:
        if not self.archives:
            raise ValueError("Config requires at least one archive")

    @property
    def total_sources(self) -> int:
        return sum(len(archive.sources) for archive in self.archives)

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and `save_config`."""

        payload: JSONDict = {
            "archives": [archive.to_json() for archive in self.archives],
            "crawl": self.crawl.to_json(),
        }
        if self.pure_api_key:
            payload["pure"] = {"api_key": self.pure_api_key}
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ArchivistConfig":
        """Build config from a parsed dictionary."""

        if is_legacy_config(payload):
            payload = migrate_legacy_config(payload)

        if "archives" not in payload:
            raise ValueError("Config missing required key: 'archives'")

        raw_archives = payload.get("archives") or []
        if not isinstance(raw_archives, list):
            raise ValueError("'archives' must be a list")

        pure = payload.get("pure") or {}
        if not isinstance(pure, Mapping):
            raise ValueError(f"Invalid pure config: {pure!r}")

        return cls(
            archives=[_coerce_archive(item) for item in raw_archives],
            crawl=_coerce_crawl_settings(payload.get("crawl")),
            pure_api_key=_as_str(pure.get("api_key"), "pure.api_key"),
        )


def resolve_pure_api_key(cli_key: str | None, config_key: str | None) -> str | None:
    """CLI key beats config key beats the environment."""

    for candidate in (cli_key, config_key, os.environ.get(PURE_API_KEY_ENV)):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> ArchivistConfig:
    """Load ArchivistConfig from a JSON/YAML path.

    Every failure is reported as `ConfigurationError`.
    """

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigurationError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    try:
        if suffix == ".json":
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        else:
            payload = _load_yaml(config_path)

        if not isinstance(payload, dict):
            raise ValueError(f"Config at {config_path} must be a mapping")

        return ArchivistConfig.from_dict(payload)
    except ConfigurationError:
        raise
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Invalid config {config_path}: {exc}") from exc


def save_config(config: ArchivistConfig | Mapping[str, Any], path: str | Path) -> None:
    """Save config as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigurationError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    payload = config.to_dict() if isinstance(config, ArchivistConfig) else dict(config)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


def example_config() -> dict[str, Any]:
    """Starter config written by `archivist init`."""

    return {
        "archives": [
            {
                "name": "Example Blog",
                "sources": [
                    {
                        "url": "https://example.com/blog",
                        "name": "Blog posts",
                        "depth": 1,
                        "include_patterns": ["*/blog/*"],
                        "exclude_patterns": ["*.pdf"],
                    },
                    {
                        "url": "https://example.com/articles",
                        "name": "Article index",
                        "strategy": StrategyName.PAGINATION.value,
                        "link_selector": "article a",
                        "pagination": {
                            "page_pattern": "https://example.com/articles/page/{page}",
                            "start_page": 1,
                            "max_pages": 10,
                            "stop_conditions": {"consecutive_empty_pages": 3},
                        },
                    },
                    "https://example.com/about",
                ],
                "output": {
                    "directory": "./archive/example",
                    "format": OutputFormat.MARKDOWN.value,
                    "file_naming": FileNaming.URL_BASED.value,
                },
            }
        ],
        "crawl": CrawlSettings().to_json(),
    }


__all__ = [
    "ArchivistConfig",
    "example_config",
    "is_legacy_config",
    "load_config",
    "migrate_legacy_config",
    "resolve_pure_api_key",
    "save_config",
]
