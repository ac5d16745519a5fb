"""Scraper package: fetching, content extraction, ranking and orchestration."""

from vsearch.scraper.extractor import extract, process_extracted_text, title_from_url
from vsearch.scraper.http import FetchError, fetch
from vsearch.scraper.models import (
    ExtractedContent,
    FetchResult,
    SearchMetadata,
    SearchResultSet,
    Source,
)
from vsearch.scraper.orchestrator import scrape
from vsearch.scraper.ranking import prioritize_links, rank_sources

__all__ = [
    "fetch",
    "FetchError",
    "extract",
    "process_extracted_text",
    "title_from_url",
    "scrape",
    "rank_sources",
    "prioritize_links",
    "FetchResult",
    "ExtractedContent",
    "Source",
    "SearchMetadata",
    "SearchResultSet",
]
