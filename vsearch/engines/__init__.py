"""Search-engine link discovery (Google, Bing and DuckDuckGo result pages)."""

from vsearch.engines.aggregator import (
    ENGINES,
    SEARCH_MODES,
    aggregate_links,
    dedupe_by_domain,
    filter_links,
)
from vsearch.engines.base import SearchEngine
from vsearch.engines.bing import BingEngine
from vsearch.engines.duckduckgo import DuckDuckGoEngine
from vsearch.engines.google import GoogleEngine

__all__ = [
    "ENGINES",
    "SEARCH_MODES",
    "aggregate_links",
    "dedupe_by_domain",
    "filter_links",
    "SearchEngine",
    "GoogleEngine",
    "BingEngine",
    "DuckDuckGoEngine",
]
