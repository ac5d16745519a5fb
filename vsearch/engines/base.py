"""Common machinery for scraping a search engine's public result pages.

Every engine shares one interface: ``await engine.discover(query) -> list[str]``.
``discover`` never raises: a failing variation is logged and skipped, and an
unexpected error anywhere else is logged and degrades to ``[]``.

Subclasses provide:

- ``name`` / ``label``: identifiers used in metadata and log lines.
- ``search_urls(query)``: the query variations, tried sequentially.
- ``_strategies()``: the link-extraction cascade for one result page.
- optionally ``blocked_markers``, ``request_headers`` and ``_fallback``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from vsearch.config import settings
from vsearch.scraper.http import FetchError, fetch, hostname, is_valid_url

# Result pages shorter than this are error or consent pages.
MIN_RESULT_PAGE_CHARS = 1000

# A parsing strategy is only consulted while fewer links than this were found.
MIN_LINKS_PER_PAGE = 5

LinkStrategy = Callable[[BeautifulSoup], List[str]]


# ---------------------------------------------------------------------------
# Helpers shared by the engines
# ---------------------------------------------------------------------------

def query_param(href: str, name: str, base: str) -> Optional[str]:
    """Return query parameter *name* of *href* resolved against *base*."""
    try:
        parsed = urlparse(urljoin(base, href))
    except ValueError:
        return None
    values = parse_qs(parsed.query).get(name)
    return values[0] if values else None


def is_own_host(url: str, own_domains: Sequence[str]) -> bool:
    """``True`` if *url*'s host is, or is below, one of *own_domains*."""
    host = hostname(url)
    return any(host == d or host.endswith("." + d) for d in own_domains)


def add_unique(links: List[str], candidates: Sequence[Optional[str]]) -> None:
    """Append valid, not yet seen *candidates* to *links* in order."""
    for candidate in candidates:
        if candidate and is_valid_url(candidate) and candidate not in links:
            links.append(candidate)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchEngine(ABC):
    """Abstract base class for one HTML-scraped search engine."""

    #: Substrings that identify a CAPTCHA or block page.
    blocked_markers: tuple[str, ...] = ()
    #: Hosts belonging to the engine itself; never returned as results.
    own_domains: tuple[str, ...] = ()
    #: Extra headers sent with every result-page request.
    request_headers: dict[str, str] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Machine name used in ``used_engines`` (``"google"``, ...)."""

    @property
    def label(self) -> str:
        """Human-readable engine name for log lines."""
        return self.name.capitalize()

    @abstractmethod
    def search_urls(self, query: str) -> List[str]:
        """Return the result-page URLs to try for *query*, in order."""

    @abstractmethod
    def _strategies(self) -> List[LinkStrategy]:
        """Return the link-extraction cascade; the last entry is the catch-all."""

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def extract_links(self, html: str) -> List[str]:
        """Parse one result page into destination URLs.

        The first strategy always runs; every later one only while fewer
        than ``MIN_LINKS_PER_PAGE`` links have been collected.
        """
        soup = BeautifulSoup(html, "html.parser")
        links: List[str] = []
        for index, strategy in enumerate(self._strategies()):
            if index > 0 and len(links) >= MIN_LINKS_PER_PAGE:
                break
            add_unique(links, strategy(soup))
        return links

    def external_anchors(self, soup: BeautifulSoup) -> List[str]:
        """Last resort: every absolute anchor that leaves the engine."""
        return [
            href
            for href in (a.get("href") for a in soup.select("a[href^='http']"))
            if href and not is_own_host(href, self.own_domains)
        ]

    def is_blocked(self, html: str) -> bool:
        return any(marker in html for marker in self.blocked_markers)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _fetch_page(self, url: str) -> Optional[str]:
        """Fetch a result page and return its HTML if it looks usable."""
        result = await fetch(url, headers=self.request_headers)
        if not result.ok:
            print(f"[{self.label}] {url} failed: HTTP {result.status_code}")
            return None
        if len(result.text) < MIN_RESULT_PAGE_CHARS:
            print(f"[{self.label}] Too small response: {len(result.text)} chars")
            return None
        if self.is_blocked(result.text):
            print(f"[{self.label}] Blocked or served a CAPTCHA")
            return None
        return result.text

    async def _fallback(self, query: str, links: List[str]) -> List[str]:
        """Hook run after all variations; engines may add a last resort."""
        return links

    async def discover(self, query: str) -> List[str]:
        """Return unique result URLs for *query* in discovery order."""
        links: List[str] = []
        try:
            print(f"[{self.label}] Searching for {query!r}")
            for number, url in enumerate(self.search_urls(query), start=1):
                if len(links) >= settings.engine_link_target:
                    print(
                        f"[{self.label}] Already found {len(links)} links, "
                        "skipping remaining variations"
                    )
                    break
                try:
                    html = await self._fetch_page(url)
                except FetchError as exc:
                    print(f"[{self.label}] Variation {number} failed: {exc}")
                    continue
                if html is None:
                    continue

                found = self.extract_links(html)
                print(f"[{self.label}] Variation {number}: {len(found)} link(s)")
                add_unique(links, found)

            links = await self._fallback(query, links)
        except Exception as exc:  # noqa: BLE001
            print(f"[{self.label}] discovery failed: {exc!r}")
            return []

        print(f"[{self.label}] ✓ {len(links)} link(s)")
        return links
