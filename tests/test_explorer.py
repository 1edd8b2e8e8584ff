import pytest

from archivist.errors import FetchError, UnknownStrategyError
from archivist.strategies import ExplorerStrategy, StrategyContext, get_strategy, register_strategy
from archivist.strategies.registry import registered_strategies
from archivist.types import Source

from helpers import html_page, make_fetcher

SEED = "https://example.com/"


def test_explorer_filters_and_dedups_links():
    page = html_page("/article/1", "/about", "/article/1", "/article/2")
    fetcher, session = make_fetcher({SEED: page})
    source = Source(url=SEED, include_patterns=("/article/",))

    result = ExplorerStrategy().execute(SEED, source, StrategyContext(fetcher=fetcher))

    assert result.urls == ("https://example.com/article/1", "https://example.com/article/2")
    assert result.pages_discovered == 1
    assert session.get_calls == [SEED]


def test_explorer_respects_link_selector():
    page = '<nav><a href="/home">Home</a></nav><ul class="posts"><li><a href="/p/1">One</a></li></ul>'
    fetcher, _ = make_fetcher({SEED: page})
    source = Source(url=SEED, link_selector="ul.posts a")

    result = ExplorerStrategy().execute(SEED, source, StrategyContext(fetcher=fetcher))

    assert result.urls == ("https://example.com/p/1",)


def test_explorer_raises_when_seed_fails():
    fetcher, _ = make_fetcher({SEED: (500, "boom")})

    with pytest.raises(FetchError):
        ExplorerStrategy().execute(SEED, Source(url=SEED), StrategyContext(fetcher=fetcher))


def test_registry_lookup():
    assert get_strategy(None).name == "explorer"
    assert get_strategy("Pagination").name == "pagination"
    with pytest.raises(UnknownStrategyError, match="sitemap"):
        get_strategy("sitemap")


def test_register_custom_strategy():
    class SeedOnly(ExplorerStrategy):
        name = "seed-only"

    register_strategy("seed-only", SeedOnly())

    assert "seed-only" in registered_strategies()
    assert isinstance(get_strategy("seed-only"), SeedOnly)
