"""Related-query generation and query-expanded source gathering."""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Tuple

from vsearch.pipeline import search_sources
from vsearch.scraper.models import SearchMetadata, Source
from vsearch.synthesis.answer import SynthesisError, _content_of, _get_llm

MAX_RELATED_QUERIES = 3

_QUERY_SYSTEM_PROMPT = "You are a helpful assistant that generates related search queries."

# Leading bullets or numbering such as "- ", "* ", "1. ", "2) ".
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def _strings(value: Any) -> Optional[List[str]]:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    return None


def parse_related_queries(raw: str) -> List[str]:
    """Pull up to three queries out of a model response.

    Accepts ``{"queries": [...]}``, a bare JSON list, or one query per line.
    """
    text = _CODE_FENCE.sub("", raw.strip()).strip()
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    queries = None
    if isinstance(parsed, dict):
        queries = _strings(parsed.get("queries"))
    elif isinstance(parsed, list):
        queries = _strings(parsed)

    if queries is None:
        queries = []
        for line in text.splitlines():
            line = _LIST_MARKER.sub("", line).strip().strip('"').strip()
            if line and line not in ("[", "]", "{", "}"):
                queries.append(line)

    return queries[:MAX_RELATED_QUERIES]


async def generate_related_queries(query: str) -> List[str]:
    """Ask the chat model for up to three search queries related to *query*.

    Raises:
        SynthesisError: the model returned nothing parseable.
    """
    from langchain_core.messages import HumanMessage, SystemMessage

    llm = _get_llm(temperature=0.7, max_tokens=150)
    response = await llm.ainvoke(
        [
            SystemMessage(content=_QUERY_SYSTEM_PROMPT),
            HumanMessage(
                content=(
                    f'Generate up to 3 related search queries for the following topic: '
                    f'"{query}". Return a JSON object of the form '
                    '{"queries": ["...", "..."]}.'
                )
            ),
        ]
    )
    raw = _content_of(response)
    queries = parse_related_queries(raw)
    if not queries:
        raise SynthesisError("Failed to parse generated queries from the model response")
    print(f"[queries] Generated {len(queries)} related queries: {queries}")
    return queries


async def gather_expanded_sources(
    query: str,
    search_engine: str = "all",
    per_query_count: int = 3,
) -> Tuple[List[Source], Optional[SearchMetadata]]:
    """Run a sources query for *query* and each related query.

    Sources are merged in query order and de-duplicated by URL.  The returned
    metadata is that of the first query that produced any source.  A failing
    related-query generation or sub-query is logged and skipped.
    """
    try:
        related = await generate_related_queries(query)
    except Exception as exc:  # noqa: BLE001
        print(f"[queries] Query expansion failed: {exc!r}")
        related = []

    queries = [query] + [q for q in related if q != query]
    merged: dict[str, Source] = {}
    metadata: Optional[SearchMetadata] = None

    for sub_query in queries:
        try:
            result = await search_sources(sub_query, search_engine, per_query_count)
        except Exception as exc:  # noqa: BLE001
            print(f"[queries] Sources for {sub_query!r} failed: {exc!r}")
            continue
        if result.sources and metadata is None:
            metadata = result.metadata
        for source in result.sources:
            merged.setdefault(source.url, source)

    print(f"[queries] {len(merged)} unique source(s) across {len(queries)} queries")
    return list(merged.values()), metadata
