"""DuckDuckGo result-page scraping (html endpoint with a lite fallback)."""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from vsearch.engines.base import (
    LinkStrategy,
    SearchEngine,
    add_unique,
    is_own_host,
    query_param,
)
from vsearch.scraper.http import FetchError, fetch

_BASE = "https://duckduckgo.com"
_HTML_ENDPOINT = "https://html.duckduckgo.com/html/"
_LITE_ENDPOINT = "https://lite.duckduckgo.com/lite/"


class DuckDuckGoEngine(SearchEngine):
    """Scrape DuckDuckGo's JavaScript-free result pages."""

    blocked_markers = ("anomaly-modal", "bots use DuckDuckGo too")
    own_domains = ("duckduckgo.com",)
    request_headers = {
        "Referer": f"{_BASE}/",
        "Cache-Control": "max-age=0",
    }

    @property
    def name(self) -> str:
        return "duckduckgo"

    @property
    def label(self) -> str:
        return "DuckDuckGo"

    def search_urls(self, query: str) -> List[str]:
        q = quote_plus(query)
        return [
            f"{_HTML_ENDPOINT}?q={q}",
            f"{_HTML_ENDPOINT}?q={q}&kl=us-en",
            # past year
            f"{_HTML_ENDPOINT}?q={q}&df=y",
        ]

    def lite_url(self, query: str) -> str:
        return f"{_LITE_ENDPOINT}?q={quote_plus(query)}"

    def _strategies(self) -> List[LinkStrategy]:
        return [
            self._result_links,
            self._snippet_links,
            self._redirect_links,
            self.external_anchors,
        ]

    def unwrap(self, href: Optional[str]) -> Optional[str]:
        """Return the destination carried in a ``uddg`` redirect parameter.

        Direct external links are passed through unchanged.
        """
        if not href:
            return None
        target = query_param(href, "uddg", _BASE)
        if target:
            return target
        if href.startswith("http") and not is_own_host(href, self.own_domains):
            return href
        return None

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _result_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            url
            for url in (self.unwrap(a.get("href")) for a in soup.select(".result__a"))
            if url
        ]

    def _snippet_links(self, soup: BeautifulSoup) -> List[str]:
        links: List[str] = []
        for snippet in soup.select(".result__snippet"):
            result = snippet.find_parent(class_="result")
            anchor = result.select_one(".result__a") if result else None
            url = self.unwrap(anchor.get("href")) if anchor else None
            if url:
                links.append(url)
        return links

    def _redirect_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            url
            for url in (self.unwrap(a.get("href")) for a in soup.select("a[href*='uddg=']"))
            if url
        ]

    # ------------------------------------------------------------------
    # Lite fallback
    # ------------------------------------------------------------------

    async def _fallback(self, query: str, links: List[str]) -> List[str]:
        if links:
            return links

        print(f"[{self.label}] Trying DuckDuckGo Lite as fallback")
        try:
            result = await fetch(self.lite_url(query), headers=self.request_headers)
        except FetchError as exc:
            print(f"[{self.label}] Lite fallback failed: {exc}")
            return links
        if not result.ok:
            print(f"[{self.label}] Lite fallback failed: HTTP {result.status_code}")
            return links

        soup = BeautifulSoup(result.text, "html.parser")
        add_unique(links, [self.unwrap(a.get("href")) for a in soup.find_all("a")])
        print(f"[{self.label}] Found {len(links)} link(s) from DuckDuckGo Lite")
        return links
