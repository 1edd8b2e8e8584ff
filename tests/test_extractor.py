import threading

import pytest
import requests

from archivist.constants import PURE_API_KEY_HEADER
from archivist.errors import ContentExtractionError, RateLimitError
from archivist.extractor import PureMdClient, markdown_links, parse_markdown_content, title_from_url

from helpers import FakeSession

PAGE = "https://example.com/blog/post?id=1"


def _client(route, **kwargs):
    session = FakeSession({PureMdClient().endpoint_for(PAGE): route})
    return PureMdClient(session=session, **kwargs), session


def test_endpoint_encodes_target_as_one_path_component():
    client = PureMdClient(api_key="k")
    assert client.endpoint_for("https://example.com/a b?x=1") == (
        "https://pure.md/https%3A%2F%2Fexample.com%2Fa%20b%3Fx%3D1"
    )


def test_fetch_content_sends_api_key(monkeypatch):
    monkeypatch.delenv("PURE_API_KEY", raising=False)
    client, session = _client("# Post\n\nBody", api_key="secret")

    assert client.fetch_content(PAGE) == "# Post\n\nBody"
    assert session.last_get_kwargs["headers"] == {PURE_API_KEY_HEADER: "secret"}


def test_api_key_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("PURE_API_KEY", "from-env")
    assert PureMdClient().api_key == "from-env"

    monkeypatch.delenv("PURE_API_KEY")
    assert PureMdClient().api_key is None


def test_rate_limit_is_reported_separately():
    client, _ = _client((429, "slow down"))

    with pytest.raises(RateLimitError) as excinfo:
        client.fetch_content(PAGE)
    assert excinfo.value.status_code == 429
    assert excinfo.value.url == PAGE


def test_http_error_raises_extraction_error():
    client, _ = _client((502, "bad gateway"))

    with pytest.raises(ContentExtractionError) as excinfo:
        client.fetch_content(PAGE)
    assert not isinstance(excinfo.value, RateLimitError)
    assert excinfo.value.status_code == 502


def test_network_error_raises_extraction_error():
    client, _ = _client(requests.ConnectionError("refused"))

    with pytest.raises(ContentExtractionError, match="ConnectionError"):
        client.fetch_content(PAGE)


def test_each_thread_gets_its_own_session(monkeypatch):
    endpoint = PureMdClient().endpoint_for(PAGE)
    created = []

    def make_session():
        session = FakeSession({endpoint: "# Post\n\nBody"})
        created.append(session)
        return session

    monkeypatch.setattr("archivist.extractor.requests.Session", make_session)
    client = PureMdClient()

    client.fetch_content(PAGE)
    client.fetch_content(PAGE)
    worker = threading.Thread(target=client.fetch_content, args=(PAGE,))
    worker.start()
    worker.join()

    assert len(created) == 2
    assert [len(session.get_calls) for session in created] == [2, 1]

    client.close()
    assert all(session.closed for session in created)


def test_injected_session_is_left_open():
    client, session = _client("# Post")

    client.fetch_content(PAGE)
    client.close()

    assert not session.closed


def test_title_from_url():
    assert title_from_url("https://example.com/blog/my-first_post.html") == "My First Post"
    assert title_from_url("https://www.example.com/") == "example.com"


def test_markdown_links_resolves_and_dedups():
    markdown = (
        "See [intro](/docs/intro) and [intro again](/docs/intro), "
        "[mail](mailto:me@example.com), [top](#top) and https://other.com/page"
    )
    assert markdown_links(markdown, "https://example.com/docs/") == [
        "https://example.com/docs/intro",
        "https://other.com/page",
    ]


def test_parse_markdown_content():
    page = parse_markdown_content("# Hello World\n\nText with [a link](https://example.com/a).\n", PAGE)

    assert page.title == "Hello World"
    assert page.content.startswith("# Hello World")
    assert page.links == ["https://example.com/a"]


def test_parse_markdown_without_heading_uses_url_title():
    page = parse_markdown_content("just text", "https://example.com/guides/getting-started")
    assert page.title == "Getting Started"
    assert page.links == []
