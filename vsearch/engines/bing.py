"""Bing result-page scraping."""

from __future__ import annotations

import base64
import binascii
from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from vsearch.engines.base import LinkStrategy, SearchEngine, is_own_host, query_param

_BASE = "https://www.bing.com"


def decode_click_url(href: str) -> Optional[str]:
    """Decode a ``bing.com/ck/a?...&u=a1<base64url>`` click-tracking link."""
    encoded = query_param(href, "u", _BASE)
    if not encoded or not encoded.startswith("a1"):
        return None
    payload = encoded[2:]
    try:
        decoded = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return decoded if decoded.startswith("http") else None


class BingEngine(SearchEngine):
    """Scrape ``www.bing.com/search`` result pages."""

    blocked_markers = (
        "unusual traffic from your computer network",
        "Please solve the challenge below",
        "Pardon Our Interruption",
    )
    own_domains = ("bing.com", "microsoft.com", "msn.com")
    request_headers = {
        "Referer": f"{_BASE}/",
        "Cache-Control": "max-age=0",
    }

    @property
    def name(self) -> str:
        return "bing"

    def search_urls(self, query: str) -> List[str]:
        q = quote_plus(query)
        return [
            f"{_BASE}/search?q={q}&count=30",
            f"{_BASE}/search?q={q}&filters=news",
            # freshness
            f'{_BASE}/search?q={q}&filters=ex1%3a"ez5"',
        ]

    def _strategies(self) -> List[LinkStrategy]:
        return [
            self._result_links,
            self._caption_links,
            self._deep_links,
            self.external_anchors,
        ]

    def resolve(self, href: Optional[str]) -> Optional[str]:
        """Map an anchor href to its destination, or ``None``."""
        if not href:
            return None
        if href.startswith("/ck/a") or (
            is_own_host(href, self.own_domains) and "/ck/a" in href
        ):
            return decode_click_url(href)
        if href.startswith("http") and not is_own_host(href, self.own_domains):
            return href
        return None

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _result_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            url
            for url in (self.resolve(a.get("href")) for a in soup.select(".b_algo h2 a"))
            if url
        ]

    def _caption_links(self, soup: BeautifulSoup) -> List[str]:
        links: List[str] = []
        for cite in soup.select(".b_caption cite"):
            result = cite.find_parent(class_="b_algo")
            anchor = result.select_one("h2 a") if result else None
            url = self.resolve(anchor.get("href")) if anchor else None
            if url:
                links.append(url)
        return links

    def _deep_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            url
            for url in (self.resolve(a.get("href")) for a in soup.select(".b_deeplinks a"))
            if url
        ]
