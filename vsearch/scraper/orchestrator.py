"""Concurrent fetch + extract over a prioritised list of links.

``scrape`` drains the priority-sorted links in batches of
``settings.scrape_concurrency``.  Every link in a batch runs its own
technique loop concurrently; each returns a ``Source`` or ``None`` and the
batch results are merged only after ``asyncio.gather`` completes, so no two
pipelines ever write to the same list.  Once the merged results hold
``enough`` sources the remaining links are left untouched.

Techniques
----------
Each link gets up to three fetch techniques.  Technique 0 is a bare fetch;
techniques 1 and 2 add a search-engine ``Referer`` and grow the timeout by
``settings.technique_timeout_step`` seconds each.  The full extraction chain
runs on every response that passes validation.

Overall query deadlines are *not* enforced here; callers wrap ``scrape`` in
their own timeout if they need one.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from vsearch.config import settings
from vsearch.scraper.extractor import (
    MIN_CONTENT_CHARS,
    extract,
    process_extracted_text,
    title_from_url,
)
from vsearch.scraper.http import FetchError, fetch
from vsearch.scraper.models import FetchResult, Source
from vsearch.scraper.ranking import (
    create_fallback_sources,
    prioritize_links,
    rank_sources,
)

TECHNIQUE_COUNT = 3
MIN_BODY_CHARS = 800

_TECHNIQUE_REFERER = "https://www.google.com/"
_ACCEPTED_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")
_SKIP_TO_NEXT_TECHNIQUE = frozenset({403, 429})
_ACCESS_MARKERS = ("captcha", "CAPTCHA", "access denied", "Access Denied", "403 Forbidden")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rejection_reason(result: FetchResult) -> Optional[str]:
    """Explain why *result* cannot be extracted, or ``None`` if it can."""
    content_type = result.content_type.lower()
    if not any(accepted in content_type for accepted in _ACCEPTED_CONTENT_TYPES):
        return f"non-HTML content {result.content_type or '(none)'!r}"
    if len(result.text) < MIN_BODY_CHARS:
        return f"too small response ({len(result.text)} chars)"
    if any(marker in result.text for marker in _ACCESS_MARKERS):
        return "access restriction detected"
    return None


def _favicon_for(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


def _build_source(link: str, title: str, text: str) -> Source:
    return Source(
        url=link,
        text=text,
        title=title or title_from_url(link),
        favicon=_favicon_for(link),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# ---------------------------------------------------------------------------
# Per-link pipeline
# ---------------------------------------------------------------------------

async def scrape_link(link: str) -> Optional[Source]:
    """Fetch and extract a single *link*; ``None`` if every technique fails."""
    last_technique = TECHNIQUE_COUNT - 1

    for technique in range(TECHNIQUE_COUNT):
        label = f"technique {technique + 1}"
        timeout = settings.fetch_timeout + technique * settings.technique_timeout_step
        headers = {"Referer": _TECHNIQUE_REFERER} if technique > 0 else None

        print(f"[scrape] Fetching {link} with {label}")
        try:
            result = await fetch(link, headers=headers, timeout=timeout)
        except FetchError as exc:
            print(f"[scrape] {label} failed for {link}: {exc}")
            continue

        if not result.ok:
            print(f"[scrape] Failed to fetch {link}: HTTP {result.status_code}, {label}")
            if result.status_code in _SKIP_TO_NEXT_TECHNIQUE or technique < last_technique:
                continue
            break

        reason = _rejection_reason(result)
        if reason:
            print(f"[scrape] Skipping {link}: {reason}")
            continue

        content = extract(result.text, link)
        if content is None:
            continue
        text = process_extracted_text(content.text)
        if len(text) < MIN_CONTENT_CHARS:
            print(f"[scrape] Skipping {link}: only {len(text)} chars after cleanup")
            continue

        print(f"[scrape] ✓ Extracted {len(text)} chars from {link}")
        return _build_source(link, content.title, text)

    print(f"[scrape] ✗ All extraction techniques failed for {link}")
    return None


async def _safe_scrape_link(link: str) -> Optional[Source]:
    try:
        return await scrape_link(link)
    except Exception as exc:  # noqa: BLE001
        print(f"[scrape] ✗ Error scraping {link}: {exc!r}")
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def scrape(links: List[str], enough: Optional[int] = None) -> List[Source]:
    """Scrape *links* and return ranked sources (or fallback sources).

    Args:
        links: Candidate URLs, in any order.
        enough: Stop pulling new batches once this many sources were
            extracted.  Defaults to ``settings.scrape_enough_sources``.

    Returns:
        Sources ordered by quality.  When nothing could be extracted from a
        non-empty *links*, placeholder sources built from the first links.
    """
    threshold = settings.scrape_enough_sources if enough is None else enough
    concurrency = max(settings.scrape_concurrency, 1)

    pending = prioritize_links(links)
    print(f"[scrape] Scraping {len(pending)} link(s) in priority order")

    results: List[Source] = []
    for start in range(0, len(pending), concurrency):
        batch = pending[start:start + concurrency]
        print(f"[scrape] Processing batch of {len(batch)} link(s)")

        batch_results = await asyncio.gather(*(_safe_scrape_link(link) for link in batch))
        results.extend(source for source in batch_results if source is not None)

        if len(results) >= threshold:
            print(f"[scrape] Got {len(results)} good result(s), stopping early")
            break

    if not results and links:
        print("[scrape] No valid sources found, creating fallback sources")
        return create_fallback_sources(links)

    return rank_sources(results)
