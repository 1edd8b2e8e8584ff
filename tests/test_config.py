import json
import textwrap

import pytest

from archivist.config import (
    ArchivistConfig,
    example_config,
    load_config,
    resolve_pure_api_key,
    save_config,
)
from archivist.constants import DEFAULT_ARCHIVE_NAME, DEFAULT_ERROR_KEYWORDS
from archivist.errors import ConfigurationError
from archivist.types import FileNaming, OutputFormat


YAML_CONFIG = textwrap.dedent(
    """
    archives:
      - name: Engineering Blog
        sources:
          - https://example.com/about
          - url: https://example.com/blog
            name: Blog index
            depth: 2
            link_selector: article a
            include_patterns: ["/blog/"]
            exclude_patterns: "*.pdf"
            strategy: pagination
            pagination:
              page_pattern: "/blog/page/{page}"
              max_pages: 5
              stop_conditions:
                consecutive_empty_pages: 2
        output:
          directory: ./archive/blog
          format: json
          file_naming: title-based
    crawl:
      max_concurrency: 4
      delay_seconds: 0.5
      timeout_seconds: 10
      user_agent: TestBot/1.0
    pure:
      api_key: from-config
    """
)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_yaml_config(tmp_path):
    config = load_config(_write(tmp_path, "archivist.yaml", YAML_CONFIG))

    archive = config.archives[0]
    assert archive.name == "Engineering Blog"
    assert archive.output.format == OutputFormat.JSON
    assert archive.output.file_naming == FileNaming.TITLE_BASED

    simple, blog = archive.sources
    assert simple.is_simple
    assert simple.depth == 0
    assert simple.strategy == "explorer"

    assert blog.name == "Blog index"
    assert blog.depth == 2
    assert blog.link_selector == "article a"
    assert blog.include_patterns == ("/blog/",)
    assert blog.exclude_patterns == ("*.pdf",)
    assert blog.pagination.page_pattern == "/blog/page/{page}"
    assert blog.pagination.max_pages == 5
    assert blog.pagination.start_page == 1
    assert blog.pagination.stop_conditions.consecutive_empty_pages == 2
    assert blog.pagination.stop_conditions.max_404_errors == 2
    assert blog.pagination.stop_conditions.error_keywords == DEFAULT_ERROR_KEYWORDS

    assert config.crawl.max_concurrency == 4
    assert config.crawl.delay_seconds == 0.5
    assert config.crawl.user_agent == "TestBot/1.0"
    assert config.pure_api_key == "from-config"


def test_single_source_object_is_accepted(tmp_path):
    payload = {
        "archives": [
            {"name": "One", "sources": {"url": "https://example.com/"}, "output": {"directory": "out"}}
        ]
    }
    config = load_config(_write(tmp_path, "config.json", json.dumps(payload)))

    assert len(config.archives[0].sources) == 1
    assert config.crawl.max_concurrency == 3


def test_legacy_config_is_migrated(tmp_path):
    payload = {
        "sources": [{"url": "https://example.com/docs", "selector": "main a"}],
        "output": {"directory": "legacy-out", "format": "html"},
        "crawl": {"max_concurrency": 2},
    }
    config = load_config(_write(tmp_path, "legacy.json", json.dumps(payload)))

    archive = config.archives[0]
    assert archive.name == DEFAULT_ARCHIVE_NAME
    assert archive.output.directory == "legacy-out"
    assert archive.output.format == OutputFormat.HTML
    assert archive.sources[0].link_selector == "main a"
    assert config.crawl.max_concurrency == 2


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"archives": [{"name": "x", "sources": [{"url": "https://e.com", "depth": 4}]}]}, "depth"),
        ({"archives": [{"name": "x", "sources": ["https://e.com"]}], "crawl": {"max_concurrency": 11}}, "max_concurrency"),
        ({"archives": [{"name": "x", "sources": ["https://e.com"]}], "crawl": {"delay_seconds": -1}}, "delay_seconds"),
        ({"archives": [{"name": "x", "sources": ["ftp://e.com"]}]}, "http"),
        ({"archives": [{"name": "x", "sources": []}]}, "no sources"),
        ({"archives": [{"sources": ["https://e.com"]}]}, "name"),
        ({"archives": [{"name": "x", "sources": ["https://e.com"], "output": {"format": "pdf"}}]}, "output"),
        ({"archives": []}, "at least one archive"),
        ({"crawl": {}}, "archives"),
    ],
)
def test_invalid_config_raises_configuration_error(tmp_path, payload, message):
    path = _write(tmp_path, "bad.json", json.dumps(payload))

    with pytest.raises(ConfigurationError, match=message):
        load_config(path)


def test_unreadable_files_raise_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="suffix"):
        load_config(_write(tmp_path, "config.toml", "x = 1"))
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, "broken.yaml", "archives: [unclosed"))
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.json")


def test_pure_key_precedence(monkeypatch):
    monkeypatch.setenv("PURE_API_KEY", "env")
    assert resolve_pure_api_key("cli", "config") == "cli"
    assert resolve_pure_api_key(None, "config") == "config"
    assert resolve_pure_api_key(None, None) == "env"

    monkeypatch.delenv("PURE_API_KEY")
    assert resolve_pure_api_key("", None) is None


def test_example_config_saves_and_loads(tmp_path):
    path = tmp_path / "archivist.config.yaml"
    save_config(example_config(), path)

    config = load_config(path)

    assert isinstance(config, ArchivistConfig)
    assert config.total_sources == 3
    assert config.archives[0].sources[1].pagination.page_pattern.endswith("{page}")


def test_save_config_from_loaded_config(tmp_path):
    original = load_config(_write(tmp_path, "in.yaml", YAML_CONFIG))
    out = tmp_path / "out.json"

    save_config(original, out)
    reloaded = load_config(out)

    assert reloaded.archives == original.archives
    assert reloaded.crawl == original.crawl
