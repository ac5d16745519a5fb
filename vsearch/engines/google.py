"""Google result-page scraping."""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from vsearch.engines.base import LinkStrategy, SearchEngine, is_own_host, query_param

_BASE = "https://www.google.com"

# Organic result anchors across several generations of Google markup.
_RESULT_SELECTORS = (
    ".g .yuRUbf > a, .g .rc > a, .g h3.r > a, .tF2Cxc > div.yuRUbf > a, "
    ".hlcw0c .yuRUbf > a, div.yuRUbf a[href^='http'], a[href^='http']:has(> h3)"
)
_CITE_SELECTORS = ".iUh30, .tjvcx, .qzEoUe"


class GoogleEngine(SearchEngine):
    """Scrape ``www.google.com/search`` result pages."""

    blocked_markers = ("unusual traffic", "CAPTCHA", "detected unusual traffic")
    own_domains = ("google.com", "googleusercontent.com", "gstatic.com", "googleadservices.com")
    request_headers = {
        "Referer": f"{_BASE}/",
        "DNT": "1",
        "Cache-Control": "max-age=0",
        "sec-ch-ua": '"Chromium";v="124", "Google Chrome";v="124", "Not-A.Brand";v="99"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
    }

    @property
    def name(self) -> str:
        return "google"

    def search_urls(self, query: str) -> List[str]:
        q = quote_plus(query)
        return [
            f"{_BASE}/search?q={q}&num=30",
            # verbatim
            f"{_BASE}/search?q={q}&num=20&tbs=li:1",
            # past year
            f"{_BASE}/search?q={q}&num=20&tbs=qdr:y",
        ]

    def _strategies(self) -> List[LinkStrategy]:
        return [
            self._redirect_links,
            self._result_container_links,
            self._cite_links,
            self.external_anchors,
        ]

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def unwrap(self, href: str) -> Optional[str]:
        """Return the destination of a ``/url?q=`` redirect link."""
        if not (href.startswith("/url?") or "google.com/url?" in href):
            return None
        target = query_param(href, "q", _BASE) or query_param(href, "url", _BASE)
        if not target or is_own_host(target, self.own_domains):
            return None
        return target

    def _redirect_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            target
            for target in (self.unwrap(a["href"]) for a in soup.find_all("a", href=True))
            if target
        ]

    def _result_container_links(self, soup: BeautifulSoup) -> List[str]:
        return [
            href
            for href in (a.get("href") for a in soup.select(_RESULT_SELECTORS))
            if href and href.startswith("http") and not is_own_host(href, self.own_domains)
        ]

    def _cite_links(self, soup: BeautifulSoup) -> List[str]:
        links: List[str] = []
        for cite in soup.select(_CITE_SELECTORS):
            anchor = cite.find_parent("a")
            href = anchor.get("href") if anchor else None
            if href and href.startswith("http"):
                links.append(href)
                continue

            # Breadcrumb text such as "https://example.com › docs › page".
            text = cite.get_text(" ", strip=True).split(" › ")[0].strip()
            if not text or " " in text or "..." in text or "…" in text or "." not in text:
                continue
            url = text if text.startswith("http") else f"https://{text}"
            if not is_own_host(url, self.own_domains):
                links.append(url)
        return links
