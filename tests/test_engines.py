"""Tests for vsearch.engines (result-page parsing and per-engine discovery).

Parsing tests feed HTML straight into ``extract_links``.  Discovery tests use
``respx`` to serve canned result pages at the transport layer, matching on
host and path so the query-string variations all hit the same route.
"""

from __future__ import annotations

from unittest.mock import patch
from urllib.parse import quote

import httpx
import pytest
import respx

from vsearch.config import settings
from vsearch.engines.base import MIN_RESULT_PAGE_CHARS, query_param
from vsearch.engines.bing import BingEngine, decode_click_url
from vsearch.engines.duckduckgo import DuckDuckGoEngine
from vsearch.engines.google import GoogleEngine

# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

# Result pages under MIN_RESULT_PAGE_CHARS are discarded, so pad every page.
_PAD = "<div class='pad'>" + "lorem ipsum dolor sit amet " * 50 + "</div>"


def _page(body: str) -> str:
    html = f"<html><head><title>results</title></head><body>{body}{_PAD}</body></html>"
    assert len(html) >= MIN_RESULT_PAGE_CHARS
    return html


def _google_redirect(url: str) -> str:
    return f'<a href="/url?q={quote(url, safe="")}&amp;sa=U&amp;ved=x">r</a>'


def _ddg_redirect(url: str, cls: str = "result__a") -> str:
    return f'<a class="{cls}" href="//duckduckgo.com/l/?uddg={quote(url, safe="")}&amp;rut=abc">r</a>'


# base64url("https://delta.net/page") without padding
_DELTA_B64 = "aHR0cHM6Ly9kZWx0YS5uZXQvcGFnZQ"
_BING_CLICK = f"https://www.bing.com/ck/a?!&&p=abc&u=a1{_DELTA_B64}&ntb=1"


@pytest.fixture(autouse=True)
def link_target(monkeypatch):
    monkeypatch.setattr(settings, "engine_link_target", 15)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

class TestQueryParam:
    def test_relative_href(self) -> None:
        assert query_param("/url?q=https%3A%2F%2Fa.com%2F&sa=U", "q", "https://www.google.com") == (
            "https://a.com/"
        )

    def test_missing_param(self) -> None:
        assert query_param("/url?sa=U", "q", "https://www.google.com") is None


# ---------------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------------

class TestGoogleParsing:
    engine = GoogleEngine()

    def test_search_url_variations(self) -> None:
        urls = self.engine.search_urls("rust ownership")
        assert len(urls) == 3
        assert urls[0] == "https://www.google.com/search?q=rust+ownership&num=30"
        assert "tbs=li:1" in urls[1]
        assert "tbs=qdr:y" in urls[2]

    def test_unwrap(self) -> None:
        assert self.engine.unwrap("/url?q=https://beta.com/b&sa=U") == "https://beta.com/b"
        assert self.engine.unwrap("/url?q=https://maps.google.com/x") is None
        assert self.engine.unwrap("/search?q=more") is None

    def test_redirect_links_satisfy_page(self) -> None:
        redirects = "".join(_google_redirect(f"https://site{i}.com/r") for i in range(5))
        container = '<div class="g"><div class="yuRUbf"><a href="https://late.com/x"><h3>t</h3></a></div></div>'
        links = self.engine.extract_links(_page(redirects + container))

        assert links == [f"https://site{i}.com/r" for i in range(5)]

    def test_cascade_fills_from_later_strategies(self) -> None:
        body = (
            _google_redirect("https://alpha.com/a")
            + '<div class="g"><div class="yuRUbf"><a href="https://beta.com/b"><h3>t</h3></a></div></div>'
            + '<div><cite class="iUh30">https://gamma.org › docs › intro</cite></div>'
            + '<a href="https://www.google.com/preferences">settings</a>'
        )
        links = self.engine.extract_links(_page(body))

        assert links[:3] == ["https://alpha.com/a", "https://beta.com/b", "https://gamma.org"]
        assert not any("google.com" in link for link in links)

    def test_cite_text_with_ellipsis_is_ignored(self) -> None:
        body = '<cite class="iUh30">https://gamma.org › docs › ...</cite><cite class="tjvcx">example.net … page</cite>'
        links = self.engine.extract_links(_page(body))
        assert links == ["https://gamma.org"]

    def test_duplicates_are_collapsed(self) -> None:
        body = _google_redirect("https://alpha.com/a") * 3
        assert self.engine.extract_links(_page(body)) == ["https://alpha.com/a"]

    def test_block_detection(self) -> None:
        assert self.engine.is_blocked("Our systems have detected unusual traffic")
        assert not self.engine.is_blocked(_page(""))


class TestGoogleDiscover:
    async def test_stops_once_target_reached(self) -> None:
        body = "".join(_google_redirect(f"https://site{i}.com/") for i in range(16))
        with respx.mock:
            route = respx.get(host="www.google.com", path="/search").mock(
                return_value=httpx.Response(200, text=_page(body))
            )
            links = await GoogleEngine().discover("query")

        assert len(links) == 16
        assert route.call_count == 1

    async def test_merges_variations_and_skips_failures(self) -> None:
        first = "".join(_google_redirect(f"https://a{i}.com/") for i in range(3))
        second = "".join(_google_redirect(f"https://b{i}.com/") for i in range(3))
        with respx.mock:
            route = respx.get(host="www.google.com", path="/search").mock(
                side_effect=[
                    httpx.ReadTimeout("slow"),
                    httpx.Response(200, text=_page(first)),
                    httpx.Response(200, text=_page(first + second)),
                ]
            )
            links = await GoogleEngine().discover("query")

        assert route.call_count == 3
        assert links == [f"https://a{i}.com/" for i in range(3)] + [
            f"https://b{i}.com/" for i in range(3)
        ]

    async def test_blocked_and_small_pages_yield_nothing(self) -> None:
        blocked = _page("<p>Our systems have detected unusual traffic</p>" + _google_redirect("https://a.com/"))
        with respx.mock:
            respx.get(host="www.google.com", path="/search").mock(
                side_effect=[
                    httpx.Response(200, text=blocked),
                    httpx.Response(200, text="<html>tiny</html>"),
                    httpx.Response(404, text=_page("")),
                ]
            )
            links = await GoogleEngine().discover("query")

        assert links == []

    async def test_unexpected_error_degrades_to_empty(self) -> None:
        with patch.object(GoogleEngine, "search_urls", side_effect=RuntimeError("boom")):
            assert await GoogleEngine().discover("query") == []


# ---------------------------------------------------------------------------
# Bing
# ---------------------------------------------------------------------------

class TestBing:
    engine = BingEngine()

    def test_decode_click_url(self) -> None:
        assert decode_click_url(_BING_CLICK) == "https://delta.net/page"
        assert decode_click_url("https://www.bing.com/ck/a?u=zzz") is None
        assert decode_click_url("https://www.bing.com/ck/a?u=a1%%%") is None

    def test_resolve(self) -> None:
        assert self.engine.resolve(_BING_CLICK) == "https://delta.net/page"
        assert self.engine.resolve("https://epsilon.io/") == "https://epsilon.io/"
        assert self.engine.resolve("https://www.bing.com/images") is None
        assert self.engine.resolve(None) is None

    def test_result_caption_and_deep_links(self) -> None:
        body = (
            f'<li class="b_algo"><h2><a href="{_BING_CLICK}">Delta</a></h2>'
            '<div class="b_caption"><cite>delta.net</cite></div></li>'
            '<li class="b_algo"><h2><a href="https://omega.org/a">Omega</a></h2></li>'
            '<ul class="b_deeplinks"><li><a href="https://omega.org/deep">deep</a></li></ul>'
            '<a href="https://go.microsoft.com/fwlink">ms</a>'
        )
        links = self.engine.extract_links(_page(body))

        assert links == [
            "https://delta.net/page",
            "https://omega.org/a",
            "https://omega.org/deep",
        ]

    async def test_discover(self) -> None:
        body = f'<li class="b_algo"><h2><a href="{_BING_CLICK}">Delta</a></h2></li>'
        with respx.mock:
            route = respx.get(host="www.bing.com", path="/search").mock(
                return_value=httpx.Response(200, text=_page(body))
            )
            links = await BingEngine().discover("query")

        assert links == ["https://delta.net/page"]
        assert route.call_count == 3


# ---------------------------------------------------------------------------
# DuckDuckGo
# ---------------------------------------------------------------------------

class TestDuckDuckGo:
    engine = DuckDuckGoEngine()

    def test_search_urls_use_html_endpoint(self) -> None:
        urls = self.engine.search_urls("a b")
        assert urls[0] == "https://html.duckduckgo.com/html/?q=a+b"
        assert urls[1].endswith("&kl=us-en")
        assert urls[2].endswith("&df=y")

    def test_unwrap(self) -> None:
        wrapped = "//duckduckgo.com/l/?uddg=https%3A%2F%2Fepsilon.io%2Fpost&rut=abc"
        assert self.engine.unwrap(wrapped) == "https://epsilon.io/post"
        assert self.engine.unwrap("https://zeta.dev/") == "https://zeta.dev/"
        assert self.engine.unwrap("/about") is None

    def test_result_and_snippet_links(self) -> None:
        body = (
            f'<div class="result">{_ddg_redirect("https://one.io/")}'
            '<a class="result__snippet">snippet</a></div>'
            f'<div class="result">{_ddg_redirect("https://two.io/")}</div>'
        )
        links = self.engine.extract_links(_page(body))
        assert links == ["https://one.io/", "https://two.io/"]

    def test_anchor_carrying_uddg(self) -> None:
        body = _ddg_redirect("https://three.io/", cls="other")
        assert self.engine.extract_links(_page(body)) == ["https://three.io/"]

    async def test_lite_fallback_when_html_endpoint_is_empty(self) -> None:
        lite = (
            "<html><body><table>"
            f'<tr><td>{_ddg_redirect("https://zeta.dev/", cls="result-link")}</td></tr>'
            '<tr><td><a href="https://eta.dev/x">eta</a></td></tr>'
            '<tr><td><a href="https://duckduckgo.com/settings">settings</a></td></tr>'
            "</table></body></html>"
        )
        with respx.mock:
            html_route = respx.get(host="html.duckduckgo.com").mock(
                return_value=httpx.Response(200, text=_page("<p>No results.</p>"))
            )
            lite_route = respx.get(host="lite.duckduckgo.com").mock(
                return_value=httpx.Response(200, text=lite)
            )
            links = await DuckDuckGoEngine().discover("query")

        assert html_route.call_count == 3
        assert lite_route.called
        assert links == ["https://zeta.dev/", "https://eta.dev/x"]

    async def test_lite_fallback_after_anomaly_page(self) -> None:
        anomaly = _page('<div class="anomaly-modal">Unfortunately, bots use DuckDuckGo too.</div>')
        with respx.mock:
            respx.get(host="html.duckduckgo.com").mock(
                return_value=httpx.Response(200, text=anomaly)
            )
            lite_route = respx.get(host="lite.duckduckgo.com").mock(
                return_value=httpx.Response(200, text="<html><body></body></html>")
            )
            links = await DuckDuckGoEngine().discover("query")

        assert lite_route.called
        assert links == []

    async def test_no_lite_request_when_html_endpoint_has_links(self) -> None:
        body = "".join(_ddg_redirect(f"https://r{i}.io/") for i in range(16))
        with respx.mock:
            respx.get(host="html.duckduckgo.com").mock(
                return_value=httpx.Response(200, text=_page(body))
            )
            lite_route = respx.get(host="lite.duckduckgo.com").mock(
                return_value=httpx.Response(200, text="")
            )
            links = await DuckDuckGoEngine().discover("query")

        assert len(links) == 16
        assert not lite_route.called
