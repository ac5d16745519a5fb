"""End-to-end sources query: discover links, scrape them, rank the results.

This is the single entry point shared by the HTTP API and the CLI:

    result = await search_sources("what is rust ownership", "all", 4)
    result.to_dict()   # {"sources": [...], "metadata": {...}}
"""

from __future__ import annotations

import time
from typing import Any, List
from urllib.parse import quote_plus

from vsearch.config import settings
from vsearch.engines.aggregator import SEARCH_MODES, aggregate_links, dedupe_by_domain
from vsearch.scraper.models import SearchMetadata, SearchResultSet, Source
from vsearch.scraper.orchestrator import scrape


class InvalidQueryError(ValueError):
    """The query or the engine selection cannot be served."""


def _validate(query: Any, search_engine: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise InvalidQueryError("Invalid query provided")
    if search_engine not in SEARCH_MODES:
        raise InvalidQueryError(
            f"Unknown search engine {search_engine!r}; "
            f"expected one of {', '.join(SEARCH_MODES)}"
        )
    return query.strip()


def clamp_source_count(source_count: Any) -> int:
    """Coerce *source_count* into ``[1, settings.max_source_count]``."""
    try:
        count = int(source_count)
    except (TypeError, ValueError):
        count = settings.default_source_count
    return max(1, min(count, settings.max_source_count))


def _search_page_source(query: str, used_engines: List[str], total: int) -> Source:
    engines = "+".join(used_engines) or "the selected search engine"
    return Source(
        url=f"https://www.google.com/search?q={quote_plus(query)}",
        title=f"Search results for: {query}",
        text=(
            f"We couldn't extract detailed information from the search results for "
            f'"{query}". This could be due to website restrictions or content '
            "formatting.\n\n"
            "You can try rephrasing your query to be more specific, using a "
            "different search engine, or searching for a related topic.\n\n"
            f"The search was performed using {engines} and found {total} "
            "potential sources."
        ),
        fallback=True,
    )


async def search_sources(
    query: str,
    search_engine: str = "all",
    source_count: int = 4,
) -> SearchResultSet:
    """Run a sources query.

    Args:
        query:         Natural-language query; must be a non-blank string.
        search_engine: ``"all"``, ``"google"``, ``"bing"`` or ``"duckduckgo"``.
        source_count:  Desired number of sources, clamped to ``[1, 8]``.

    Returns:
        A :class:`SearchResultSet`.  Sources are quality-ranked; when nothing
        could be extracted they are fallback sources and
        ``metadata.fallback`` is ``True``.

    Raises:
        InvalidQueryError: before any network call, for a blank or
            non-string query or an unknown engine name.
    """
    query = _validate(query, search_engine)
    count = clamp_source_count(source_count)
    start = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - start) * 1000)

    print(f"[sources] {query!r} engine={search_engine} count={count}")
    links, used_engines = await aggregate_links(query, search_engine)
    engine_label = "+".join(used_engines)

    if not links:
        print("[sources] No links found")
        return SearchResultSet(
            metadata=SearchMetadata(
                engine=engine_label,
                total_results=0,
                search_time=elapsed_ms(),
                filtered_sources=0,
            ),
        )

    candidates = dedupe_by_domain(links)[: count * 2]
    print(f"[sources] Scraping {len(candidates)} of {len(links)} link(s)")
    scraped = await scrape(
        candidates, enough=max(settings.scrape_enough_sources, count)
    )
    sources = scraped[:count]

    if not sources:
        sources = [_search_page_source(query, used_engines, len(links))]

    is_fallback = any(source.fallback for source in sources)
    print(
        f"[sources] ✓ {len(sources)} source(s) in {elapsed_ms()} ms"
        + (" (fallback)" if is_fallback else "")
    )
    return SearchResultSet(
        sources=sources,
        metadata=SearchMetadata(
            engine=engine_label,
            total_results=len(links),
            search_time=elapsed_ms(),
            filtered_sources=len(sources),
            fallback=True if is_fallback else None,
        ),
    )
