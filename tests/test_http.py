"""Tests for vsearch.scraper.http (async fetch client and URL helpers).

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made.
- ``asyncio.sleep`` inside the module is replaced with an ``AsyncMock`` so
  retry backoff costs nothing and its delays can be asserted.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from vsearch.scraper.http import (
    USER_AGENTS,
    FetchAborted,
    FetchHTTPError,
    FetchNetworkError,
    FetchTimeout,
    browser_headers,
    fetch,
    hostname,
    is_valid_url,
    registered_domain,
)

_URL = "https://example.com/article"


@pytest.fixture
def no_sleep():
    with patch("vsearch.scraper.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

class TestUrlHelpers:
    def test_valid_urls(self) -> None:
        assert is_valid_url("https://example.com/a")
        assert is_valid_url("http://example.com")

    def test_invalid_urls(self) -> None:
        assert not is_valid_url("ftp://example.com/file")
        assert not is_valid_url("/relative/path")
        assert not is_valid_url("not a url")
        assert not is_valid_url("https://")

    def test_hostname_is_lowercased(self) -> None:
        assert hostname("https://Docs.Example.COM/x") == "docs.example.com"
        assert hostname("garbage") == ""

    def test_registered_domain_strips_www(self) -> None:
        assert registered_domain("https://www.example.com/a") == "example.com"
        assert registered_domain("https://blog.example.com/a") == "blog.example.com"

    def test_browser_headers_merge_extras(self) -> None:
        headers = browser_headers({"Referer": "https://www.google.com/"})
        assert headers["User-Agent"] in USER_AGENTS
        assert headers["Referer"] == "https://www.google.com/"
        assert "text/html" in headers["Accept"]


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------

class TestFetch:
    async def test_success_returns_fetch_result(self, no_sleep) -> None:
        with respx.mock:
            respx.get(_URL).mock(
                return_value=httpx.Response(
                    200, text="<html>ok</html>", headers={"content-type": "text/html"}
                )
            )
            result = await fetch(_URL)

        assert result.ok
        assert result.status_code == 200
        assert result.url == _URL
        assert result.text == "<html>ok</html>"
        assert "text/html" in result.content_type
        no_sleep.assert_not_awaited()

    async def test_client_errors_are_returned_not_raised(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(return_value=httpx.Response(404, text="Not Found"))
            result = await fetch(_URL)

        assert result.status_code == 404
        assert not result.ok
        assert route.call_count == 1

    async def test_sends_browser_user_agent(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(return_value=httpx.Response(200, text="ok"))
            await fetch(_URL, headers={"Referer": "https://www.google.com/"})

        request = route.calls.last.request
        assert request.headers["User-Agent"] in USER_AGENTS
        assert request.headers["Referer"] == "https://www.google.com/"

    async def test_retries_server_errors_then_succeeds(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(
                side_effect=[
                    httpx.Response(503),
                    httpx.Response(500),
                    httpx.Response(200, text="finally"),
                ]
            )
            result = await fetch(_URL)

        assert result.text == "finally"
        assert route.call_count == 3
        # Exponential backoff: 1 s then 2 s with the default retry delay.
        delays = [c.args[0] for c in no_sleep.await_args_list]
        assert delays == [1.0, 2.0]

    async def test_each_attempt_gets_a_longer_timeout(self, no_sleep) -> None:
        with respx.mock, patch(
            "vsearch.scraper.http.httpx.AsyncClient", wraps=httpx.AsyncClient
        ) as client_cls:
            route = respx.get(_URL).mock(
                side_effect=[
                    httpx.Response(503),
                    httpx.Response(503),
                    httpx.Response(200, text="ok"),
                ]
            )
            result = await fetch(_URL, timeout=15)

        assert result.ok
        assert [c.kwargs["timeout"] for c in client_cls.call_args_list] == [15, 30, 45]
        assert [c.request.extensions["timeout"]["read"] for c in route.calls] == [15, 30, 45]

    async def test_rate_limit_exhausts_retries(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(return_value=httpx.Response(429))
            with pytest.raises(FetchHTTPError) as excinfo:
                await fetch(_URL)

        assert excinfo.value.status_code == 429
        assert route.call_count == 3

    async def test_network_errors_are_retried(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(side_effect=httpx.ConnectError("reset"))
            with pytest.raises(FetchNetworkError):
                await fetch(_URL)

        assert route.call_count == 3

    async def test_timeout_fails_immediately(self, no_sleep) -> None:
        with respx.mock:
            route = respx.get(_URL).mock(side_effect=httpx.ReadTimeout("slow"))
            with pytest.raises(FetchTimeout):
                await fetch(_URL)

        assert route.call_count == 1
        no_sleep.assert_not_awaited()

    async def test_unsupported_scheme_is_aborted(self, no_sleep) -> None:
        with pytest.raises(FetchAborted):
            await fetch("ftp://example.com/file")
        no_sleep.assert_not_awaited()

    async def test_error_carries_url(self, no_sleep) -> None:
        with respx.mock:
            respx.get(_URL).mock(side_effect=httpx.ReadTimeout("slow"))
            with pytest.raises(FetchTimeout) as excinfo:
                await fetch(_URL)
        assert excinfo.value.url == _URL
