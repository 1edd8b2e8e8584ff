import pytest

from archivist.errors import PaginationConfigError
from archivist.stats import StatsCollector
from archivist.strategies import PaginationMode, PaginationStrategy, StrategyContext, build_page_url, resolve_mode
from archivist.types import PaginationConfig, Source, StopConditions

from helpers import html_page, make_fetcher

SEED = "https://example.com/blog"


def _source(**pagination):
    return Source(url=SEED, strategy="pagination", pagination=PaginationConfig(**pagination))


def _run(source, fetcher, stats=None):
    return PaginationStrategy().execute(source.url, source, StrategyContext(fetcher=fetcher, stats=stats))


def test_pattern_mode_stops_at_first_missing_page():
    routes = {
        SEED: html_page("/post/seed"),
        "https://example.com/p/1": html_page("/post/1a", "/post/1b"),
        "https://example.com/p/2": html_page("/post/2a"),
        "https://example.com/p/3": html_page("/post/3a"),
        "https://example.com/p/4": (404, "<html><body>Gone</body></html>"),
    }
    fetcher, session = make_fetcher(routes)

    result = _run(_source(page_pattern="/p/{page}", start_page=1, max_pages=10), fetcher)

    assert result.urls == (
        "https://example.com/post/seed",
        "https://example.com/post/1a",
        "https://example.com/post/1b",
        "https://example.com/post/2a",
        "https://example.com/post/3a",
    )
    assert result.pages_discovered == 4
    assert session.head_calls == [
        "https://example.com/p/1",
        "https://example.com/p/2",
        "https://example.com/p/3",
        "https://example.com/p/4",
        "https://example.com/p/4",
    ]
    assert "https://example.com/p/4" not in session.get_calls


def test_pattern_mode_respects_max_pages():
    routes = {SEED: html_page("/post/seed")}
    for page in range(1, 6):
        routes[f"https://example.com/p/{page}"] = html_page(f"/post/{page}")
    fetcher, session = make_fetcher(routes)

    result = _run(_source(page_pattern="https://example.com/p/{page}", max_pages=2), fetcher)

    assert result.pages_discovered == 3
    assert session.head_calls == ["https://example.com/p/1", "https://example.com/p/2"]


def test_pattern_page_equal_to_seed_is_not_refetched():
    seed = "https://example.com/p/1"
    routes = {
        seed: html_page("/post/1"),
        "https://example.com/p/2": html_page("/post/2"),
    }
    fetcher, session = make_fetcher(routes)
    source = Source(
        url=seed,
        strategy="pagination",
        pagination=PaginationConfig(page_pattern="/p/{page}", max_pages=3),
    )

    result = _run(source, fetcher)

    assert result.urls == ("https://example.com/post/1", "https://example.com/post/2")
    assert session.get_calls.count(seed) == 1
    assert seed not in session.head_calls


def test_detector_stop_halts_before_next_page_check():
    routes = {SEED: html_page("/post/same")}
    for page in range(1, 6):
        routes[f"https://example.com/p/{page}"] = html_page("/post/same")
    fetcher, session = make_fetcher(routes)
    stats = StatsCollector()

    result = _run(
        _source(
            page_pattern="/p/{page}",
            stop_conditions=StopConditions(consecutive_empty_pages=2),
        ),
        fetcher,
        stats,
    )

    assert result.urls == ("https://example.com/post/same",)
    assert result.stop_reason == "No new links found in 2 consecutive pages"
    assert session.head_calls == ["https://example.com/p/1", "https://example.com/p/2"]
    assert stats.to_json()["pagination_stop_reasons"] == {result.stop_reason: 1}


def test_seed_counts_as_page_zero():
    routes = {
        SEED: '<html><body>Page not found <a href="/post/seed">seed</a></body></html>',
        "https://example.com/p/1": html_page("/post/1"),
    }
    fetcher, session = make_fetcher(routes)

    result = _run(_source(page_pattern="/p/{page}"), fetcher)

    assert result.urls == ("https://example.com/post/seed",)
    assert result.stop_reason == "Found error keyword: 'page not found'"
    assert session.head_calls == []


def test_query_param_mode():
    seed = "https://example.com/archive?sort=new"
    routes = {
        seed: html_page("/item/0"),
        "https://example.com/archive?sort=new&page=1": html_page("/item/1"),
        "https://example.com/archive?sort=new&page=2": html_page("/item/2"),
    }
    fetcher, session = make_fetcher(routes)
    source = Source(
        url=seed,
        strategy="pagination",
        pagination=PaginationConfig(page_param="page", max_pages=2),
    )

    result = _run(source, fetcher)

    assert result.urls == (
        "https://example.com/item/0",
        "https://example.com/item/1",
        "https://example.com/item/2",
    )
    assert session.head_calls == [
        "https://example.com/archive?sort=new&page=1",
        "https://example.com/archive?sort=new&page=2",
    ]


def test_next_link_cycle_back_to_seed_terminates():
    seed = "https://example.com/list"
    routes = {
        seed: '<a href="/item/1">one</a><a class="next" href="/list/2">next</a>',
        "https://example.com/list/2": '<a href="/item/2">two</a><a class="next" href="/list">next</a>',
    }
    fetcher, session = make_fetcher(routes)
    source = Source(
        url=seed,
        strategy="pagination",
        pagination=PaginationConfig(next_link_selector="a.next"),
    )

    result = _run(source, fetcher)

    assert result.pages_discovered == 2
    assert session.get_calls == [seed, "https://example.com/list/2"]
    assert result.urls == ("https://example.com/item/1", "https://example.com/item/2")
    assert session.head_calls == []


def test_next_link_walk_respects_max_pages():
    routes = {
        f"https://example.com/list/{n}": f'<a href="/item/{n}">i</a><a class="next" href="/list/{n + 1}">next</a>'
        for n in range(1, 10)
    }
    fetcher, session = make_fetcher(routes)
    source = Source(
        url="https://example.com/list/1",
        strategy="pagination",
        pagination=PaginationConfig(next_link_selector="a.next", max_pages=3),
    )

    result = _run(source, fetcher)

    assert result.pages_discovered == 3
    assert len(session.get_calls) == 3


def test_without_pagination_config_acts_like_explorer():
    fetcher, session = make_fetcher({SEED: html_page("/post/1", "/post/2")})
    source = Source(url=SEED, strategy="pagination")

    result = _run(source, fetcher)

    assert result.urls == ("https://example.com/post/1", "https://example.com/post/2")
    assert session.head_calls == []


@pytest.mark.parametrize(
    "config, mode",
    [
        (None, PaginationMode.SINGLE_PAGE),
        (PaginationConfig(), PaginationMode.SINGLE_PAGE),
        (PaginationConfig(max_pages=5), PaginationMode.QUERY_PARAM),
        (PaginationConfig(page_param="p"), PaginationMode.QUERY_PARAM),
        (PaginationConfig(next_link_selector="a.next"), PaginationMode.NEXT_LINK),
        (PaginationConfig(next_link_selector="a.next", max_pages=5), PaginationMode.NEXT_LINK),
        (PaginationConfig(next_link_selector="a.next", page_param="p"), PaginationMode.QUERY_PARAM),
        (PaginationConfig(page_pattern="/p/{page}", next_link_selector="a.next"), PaginationMode.PATTERN),
        (PaginationConfig(page_pattern="/p/{page}", page_param="p"), PaginationMode.PATTERN),
    ],
)
def test_mode_precedence(config, mode):
    assert resolve_mode(config) == mode


@pytest.mark.parametrize(
    "config",
    [
        PaginationConfig(page_pattern="/p/"),
        PaginationConfig(page_pattern="/p/{page}", max_pages=0),
        PaginationConfig(page_param="page", start_page=-1),
    ],
)
def test_invalid_config_raises(config):
    fetcher, session = make_fetcher({SEED: html_page("/post/1")})
    source = Source(url=SEED, strategy="pagination", pagination=config)

    with pytest.raises(PaginationConfigError):
        _run(source, fetcher)
    assert session.get_calls == []


def test_build_page_url():
    assert build_page_url(SEED, 2, pattern="/p/{page}") == "https://example.com/p/2"
    assert build_page_url(SEED, 3, pattern="https://example.com/page/{page}/") == "https://example.com/page/3/"
    assert build_page_url("https://example.com/list?sort=new&page=1", 3, page_param="page") == (
        "https://example.com/list?sort=new&page=3"
    )
    assert build_page_url("https://example.com/list", 4) == "https://example.com/list?page=4"
