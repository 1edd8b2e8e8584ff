import math

from archivist.url import (
    extract_links_from_html,
    is_same_host,
    normalize_url,
    relative_depth,
    resolve_url,
    visible_text,
)


def test_normalize_url_canonical_form():
    assert normalize_url("HTTPS://Example.COM:443/a#frag") == "https://example.com/a"
    assert normalize_url("http://example.com") == "http://example.com/"
    assert normalize_url("http://example.com:8080/x") == "http://example.com:8080/x"


def test_normalize_url_rejects_non_http():
    assert normalize_url("ftp://example.com/file") is None
    assert normalize_url("not a url") is None
    assert normalize_url("") is None


def test_normalize_url_keeps_query_order_unless_asked():
    url = "https://example.com/list?b=1&a=2"
    assert normalize_url(url) == url
    assert normalize_url(url, sort_query_params=True) == "https://example.com/list?a=2&b=1"


def test_relative_depth():
    seed = "https://example.com/blog"
    assert relative_depth("https://example.com/blog/a/b", seed) == 2
    assert relative_depth("https://example.com/blog", seed) == 0
    assert relative_depth("https://example.com/", seed) == -1
    assert relative_depth("https://other.com/blog/a", seed) == math.inf


def test_is_same_host():
    assert is_same_host("https://example.com/a", "http://EXAMPLE.com/b")
    assert not is_same_host("https://www.example.com/a", "https://example.com/a")


def test_resolve_url_skips_unfollowable_hrefs():
    base = "https://example.com/a/b/"
    assert resolve_url(base, "mailto:me@example.com") is None
    assert resolve_url(base, "javascript:void(0)") is None
    assert resolve_url(base, "tel:+123") is None
    assert resolve_url(base, "#top") is None
    assert resolve_url(base, "//cdn.example.com/x.js") is None
    assert resolve_url(base, "") is None


def test_resolve_url_relative_paths():
    base = "https://example.com/a/b/"
    assert resolve_url(base, "/about") == "https://example.com/about"
    assert resolve_url(base, "../x") == "https://example.com/a/x"
    assert resolve_url(base, "c#part") == "https://example.com/a/b/c"


def test_extract_links_dedups_in_document_order():
    html = """
    <html><body>
      <a href="/a">A</a>
      <a href="/a#section">A again</a>
      <a href="https://other.com/b">B</a>
      <a href="mailto:me@example.com">mail</a>
      <a href="/c">C</a>
    </body></html>
    """
    assert extract_links_from_html(html, base_url="https://example.com/") == [
        "https://example.com/a",
        "https://other.com/b",
        "https://example.com/c",
    ]


def test_extract_links_with_selector_and_patterns():
    html = """
    <div class="card"><a href="/post/1">one</a></div>
    <div class="card"><a href="/post/2.pdf">two</a></div>
    <a href="/post/3">outside</a>
    """
    links = extract_links_from_html(
        html,
        base_url="https://example.com/",
        selector=".card",
        exclude_patterns=["*.pdf"],
    )
    assert links == ["https://example.com/post/1"]


def test_visible_text_skips_scripts():
    html = "<html><head><title> My  Page </title><script>var x = 1;</script></head><body><p>Hello   world</p></body></html>"
    text = visible_text(html)
    assert "Hello world" in text
    assert "var x" not in text
