import pytest
import requests

from archivist.types import CrawlSettings

from helpers import html_page, make_fetcher

URL = "https://example.com/p/1"


def test_get_returns_body_and_final_url():
    fetcher, session = make_fetcher({URL: html_page("/a")})

    result = fetcher.get(URL)

    assert result.ok
    assert result.status_code == 200
    assert result.url == URL
    assert b'href="/a"' in result.body
    assert session.last_get_kwargs["headers"]["User-Agent"] == CrawlSettings().user_agent
    assert session.last_get_kwargs["allow_redirects"] is True


def test_get_reports_network_errors_instead_of_raising():
    fetcher, _ = make_fetcher({URL: requests.ConnectionError("refused")})

    result = fetcher.get(URL)

    assert not result.ok
    assert result.status_code is None
    assert result.error.startswith("ConnectionError")


def test_get_marks_http_errors_not_ok():
    fetcher, _ = make_fetcher({URL: (500, "boom")})

    result = fetcher.get(URL)

    assert not result.ok
    assert result.status_code == 500
    assert result.error is None


@pytest.mark.parametrize(
    "route, exists, attempts",
    [
        ("<html></html>", True, 1),
        ((302, ""), True, 1),
        ((404, ""), False, 2),
        ((500, ""), False, 2),
        ((403, ""), False, 1),
        ((410, ""), False, 1),
        (requests.ConnectionError("refused"), False, 2),
        (requests.Timeout("slow"), False, 2),
    ],
)
def test_existence_check_retries_only_transient_failures(route, exists, attempts):
    fetcher, session = make_fetcher(head_routes={URL: route})

    assert fetcher.probe_exists(URL) is exists
    assert session.head_calls == [URL] * attempts


def test_existence_check_recovers_when_retry_succeeds():
    responses = iter([(404, ""), (200, "")])
    fetcher, session = make_fetcher(head_routes={URL: lambda url: next(responses)})

    assert fetcher.probe_exists(URL)
    assert len(session.head_calls) == 2


def test_existence_check_without_retries():
    fetcher, session = make_fetcher(head_routes={URL: (404, "")})

    assert not fetcher.probe_exists(URL, retries=0)
    assert len(session.head_calls) == 1
