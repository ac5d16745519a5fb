"""Scoring for candidate links and extracted sources, plus fallback sources.

Two distinct scores live here:

- ``priority_score`` orders *un-fetched* links so the most promising ones
  are scraped first.
- ``quality_score`` orders *extracted* sources before they are returned.

Both are pure functions of their input, and both sorts are stable.
"""

from __future__ import annotations

from typing import Iterable, List
from urllib.parse import urlparse

from vsearch.scraper.http import registered_domain
from vsearch.scraper.models import Source

_QUALITY_DOMAINS = (".edu", ".gov", "wikipedia.org")
_PRIORITY_DOMAINS = _QUALITY_DOMAINS + ("github.com", "stackoverflow.com", "medium.com")
_ACCOUNT_PATH_MARKERS = ("login", "signup", "account")

INVALID_LINK_SCORE = -100.0
MAX_FALLBACK_SOURCES = 3


# ---------------------------------------------------------------------------
# Extracted sources
# ---------------------------------------------------------------------------

def quality_score(source: Source) -> float:
    """Length bonus (capped at 50) + title bonus + reputable-domain bonus."""
    score = min(len(source.text) / 100, 50)
    if source.title:
        score += 10
    try:
        host = (urlparse(source.url).hostname or "").lower()
    except ValueError:
        host = ""
    if any(marker in host for marker in _QUALITY_DOMAINS):
        score += 20
    return score


def rank_sources(sources: Iterable[Source]) -> List[Source]:
    """Return *sources* ordered by descending :func:`quality_score`."""
    return sorted(sources, key=quality_score, reverse=True)


# ---------------------------------------------------------------------------
# Candidate links
# ---------------------------------------------------------------------------

def priority_score(link: str) -> float:
    """Heuristic fetch priority for *link*; malformed URLs sink to the end."""
    try:
        parsed = urlparse(link)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return INVALID_LINK_SCORE
    if parsed.scheme not in ("http", "https") or not host:
        return INVALID_LINK_SCORE

    score = 0.0
    if any(marker in host for marker in _PRIORITY_DOMAINS):
        score += 30

    # Shorter paths tend to be landing/overview pages.
    path = parsed.path or "/"
    score -= len(path.split("/")) * 2

    if parsed.query:
        score -= 5

    if any(marker in path for marker in _ACCOUNT_PATH_MARKERS):
        score -= 20

    return score


def prioritize_links(links: Iterable[str]) -> List[str]:
    """Return *links* ordered by descending :func:`priority_score`."""
    return sorted(links, key=priority_score, reverse=True)


# ---------------------------------------------------------------------------
# Fallback sources
# ---------------------------------------------------------------------------

def create_fallback_sources(links: List[str]) -> List[Source]:
    """Synthesise placeholder sources when nothing could be extracted.

    One source per well-formed link among the first three; if none of them
    parses, a single generic source pointing at ``links[0]``.
    """
    fallback: List[Source] = []

    for link in links[:MAX_FALLBACK_SOURCES]:
        domain = registered_domain(link)
        if not domain:
            continue
        fallback.append(
            Source(
                url=link,
                text=(
                    f"This information is from {domain}. The content could not be "
                    "fully extracted due to website restrictions. Please visit the "
                    "website directly for complete information."
                ),
                title=f"Information from {domain}",
                fallback=True,
            )
        )

    if not fallback and links:
        fallback.append(
            Source(
                url=links[0],
                text=(
                    "Information could not be retrieved from the sources. This might "
                    "be due to website restrictions or technical limitations. Try "
                    "refining your search query or visiting the websites directly."
                ),
                title="Search Results",
                fallback=True,
            )
        )

    return fallback
