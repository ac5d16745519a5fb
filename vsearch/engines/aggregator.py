"""Fan a query out to the search engines and merge their links.

``aggregate_links`` returns ``(links, used_engines)``; the links are filtered
(deny-listed hosts and paths removed, exact duplicates dropped, capped).
One-per-domain dedup is left to the caller via :func:`dedupe_by_domain`.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Tuple
from urllib.parse import urlparse

from vsearch.config import settings
from vsearch.engines.base import SearchEngine
from vsearch.engines.bing import BingEngine
from vsearch.engines.duckduckgo import DuckDuckGoEngine
from vsearch.engines.google import GoogleEngine
from vsearch.scraper.http import hostname, is_valid_url, registered_domain

# Merge order for "all" mode.
ENGINES: Dict[str, SearchEngine] = {
    "google": GoogleEngine(),
    "bing": BingEngine(),
    "duckduckgo": DuckDuckGoEngine(),
}

SEARCH_MODES = ("all", *ENGINES)

# Search engines, social networks and large platforms rarely make useful sources.
DENIED_DOMAINS = (
    "google.com",
    "bing.com",
    "duckduckgo.com",
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "linkedin.com",
    "pinterest.com",
    "tiktok.com",
    "amazon.com",
    "ebay.com",
    "netflix.com",
    "apple.com",
    "microsoft.com",
)

DENIED_PATH_FRAGMENTS = (
    "/search?",
    "/login",
    "/signin",
    "/signup",
    "/register",
    "/account",
    "/cart",
    "/checkout",
    "/privacy",
    "/terms",
    "/contact",
    "/about",
    "/help",
    "/support",
    "/faq",
    "/download",
    "/subscribe",
    "/membership",
    "/pricing",
)


def _is_denied(url: str) -> bool:
    host = hostname(url)
    if any(host == d or host.endswith("." + d) for d in DENIED_DOMAINS):
        return True
    parsed = urlparse(url)
    # "/search?" only matches when a query string is present.
    path = parsed.path + ("?" if parsed.query else "")
    return any(fragment in path for fragment in DENIED_PATH_FRAGMENTS)


def filter_links(links: Iterable[str]) -> List[str]:
    """Drop invalid, deny-listed and duplicate URLs; cap the result."""
    kept: List[str] = []
    seen: set[str] = set()
    for link in links:
        if link in seen or not is_valid_url(link) or _is_denied(link):
            continue
        seen.add(link)
        kept.append(link)
        if len(kept) >= settings.aggregate_link_cap:
            break
    return kept


def dedupe_by_domain(links: Iterable[str]) -> List[str]:
    """Keep only the first link for each registered domain."""
    kept: List[str] = []
    seen: set[str] = set()
    for link in links:
        domain = registered_domain(link)
        if not domain or domain in seen:
            continue
        seen.add(domain)
        kept.append(link)
    return kept


async def _discover_all(query: str) -> Tuple[List[str], List[str]]:
    results = await asyncio.gather(
        *(engine.discover(query) for engine in ENGINES.values()),
        return_exceptions=True,
    )

    merged: List[str] = []
    used: List[str] = []
    counts = []
    for name, result in zip(ENGINES, results):
        if isinstance(result, BaseException):
            print(f"[aggregate] {name} failed: {result!r}")
            result = []
        counts.append(f"{name}: {len(result)}")
        if result:
            used.append(name)
            merged.extend(result)

    print(f"[aggregate] Found links - {', '.join(counts)}")
    return merged, used


async def _discover_one(query: str, mode: str) -> Tuple[List[str], List[str]]:
    name = mode if mode in ENGINES else "google"
    try:
        links = await ENGINES[name].discover(query)
        print(f"[aggregate] Found {len(links)} link(s) from {name}")
        return links, [name]
    except Exception as exc:  # noqa: BLE001
        print(f"[aggregate] {name} failed: {exc!r}")
        if name == "google":
            return [], []

    print("[aggregate] Trying Google as fallback")
    try:
        return await ENGINES["google"].discover(query), ["google (fallback)"]
    except Exception as exc:  # noqa: BLE001
        print(f"[aggregate] Google fallback failed: {exc!r}")
        return [], []


async def aggregate_links(query: str, mode: str = "all") -> Tuple[List[str], List[str]]:
    """Discover links for *query* with one engine or all of them.

    Args:
        query: The search query.
        mode:  ``"all"``, ``"google"``, ``"bing"`` or ``"duckduckgo"``.
               Unknown names are treated as ``"google"``.

    Returns:
        ``(links, used_engines)``.  *links* are filtered and exact-URL unique.
        In ``"all"`` mode *used_engines* lists only engines that returned at
        least one link; a failed single engine is reported as
        ``"google (fallback)"`` when Google stood in for it.
    """
    if mode == "all":
        links, used = await _discover_all(query)
    else:
        links, used = await _discover_one(query, mode)

    filtered = filter_links(links)
    print(f"[aggregate] {len(filtered)} link(s) after filtering ({len(links)} raw)")
    return filtered, used
