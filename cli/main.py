"""VSearch CLI: entry-point for search, scraping and answer synthesis.

Usage:
    python cli/main.py --help

Commands:
    links     raw link discovery from the search engines
    sources   discover, scrape and rank sources for a query
    scrape    extract readable text from a single URL
    ask       sources plus a cited LLM answer
    history   browse past conversations
    prefs     default engine / source count / history settings
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from vsearch.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import List, Optional

import typer

from cli.commands.history import history_app
from cli.commands.prefs import prefs_app
from cli.store import add_message, find_conversation, load_preferences, save_to_history
from vsearch.engines import SEARCH_MODES, aggregate_links
from vsearch.pipeline import InvalidQueryError, search_sources
from vsearch.scraper.models import SearchMetadata, Source

app = typer.Typer(
    name="vsearch",
    help="VSearch: multi-engine web search with cited answers.",
    no_args_is_help=True,
)
app.add_typer(history_app, name="history")
app.add_typer(prefs_app, name="prefs")

_ENGINE_HELP = f"Search engine: {' | '.join(SEARCH_MODES)} (default from prefs)."


def _echo_metadata(metadata: SearchMetadata) -> None:
    line = (
        f"[sources] engine={metadata.engine}  links={metadata.total_results}  "
        f"sources={metadata.filtered_sources}  time={metadata.search_time} ms"
    )
    if metadata.fallback:
        line += "  (fallback)"
    typer.echo(line)


def _echo_sources(sources: List[Source], preview: int = 200) -> None:
    for i, source in enumerate(sources, start=1):
        typer.echo(f"[{i}] {source.title or 'Untitled'}")
        typer.echo(f"    {source.url}")
        if preview:
            snippet = " ".join(source.text.split())[:preview]
            typer.echo(f"    {snippet}")


def _resolve_defaults(engine: Optional[str], count: Optional[int]) -> tuple[str, int]:
    prefs = load_preferences()
    return engine or prefs.default_search_engine, count or prefs.default_source_count


# ---------------------------------------------------------------------------
# Discovery and scraping
# ---------------------------------------------------------------------------

@app.command("links")
def links(
    query: str = typer.Option(..., "--query", "-q", help="Search query."),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help=_ENGINE_HELP),
) -> None:
    """Print the filtered links the search engines return for a query."""
    engine, _ = _resolve_defaults(engine, None)
    if engine not in SEARCH_MODES:
        typer.echo(f"❌ Unknown engine {engine!r}. Use: {' | '.join(SEARCH_MODES)}")
        raise typer.Exit(code=1)

    found, used = asyncio.run(aggregate_links(query, engine))
    typer.echo(f"[links] {len(found)} link(s) from {'+'.join(used) or 'none'}")
    for link in found:
        typer.echo(f"  {link}")


@app.command("sources")
def sources(
    query: str = typer.Option(..., "--query", "-q", help="Search query."),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help=_ENGINE_HELP),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of sources (1-8)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
) -> None:
    """Discover, scrape and rank sources for a query."""
    engine, count = _resolve_defaults(engine, count)
    try:
        result = asyncio.run(search_sources(query, engine, count))
    except InvalidQueryError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    _echo_metadata(result.metadata)
    if not result.sources:
        typer.echo("[sources] No sources found.")
        return
    _echo_sources(result.sources)


@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL to scrape."),
) -> None:
    """Scrape a URL and print extracted clean text to stdout."""
    from vsearch.scraper.orchestrator import scrape_link

    typer.echo(f"[scrape] Fetching {url!r} …")
    source = asyncio.run(scrape_link(url))
    if source is None:
        typer.echo("[scrape] ❌ No readable content could be extracted.")
        raise typer.Exit(code=1)

    typer.echo(f"[scrape] Title  : {source.title or '(none)'}")
    typer.echo(f"[scrape] Words  : {len(source.text.split())}")
    typer.echo("")
    typer.echo(source.text)


# ---------------------------------------------------------------------------
# Answer synthesis
# ---------------------------------------------------------------------------

async def _stream_answer(prompt: str, history: List[dict]) -> str:
    from vsearch.synthesis import synthesize_stream

    parts: List[str] = []
    async for text in synthesize_stream(prompt, history):
        parts.append(text)
        typer.echo(text, nl=False)
    typer.echo("")
    return "".join(parts)


@app.command("ask")
def ask(
    query: str = typer.Option(..., "--query", "-q", help="Question to answer."),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help=_ENGINE_HELP),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of sources (1-8)."),
    stream: bool = typer.Option(False, "--stream/--no-stream", help="Stream tokens as they arrive."),
    expand: bool = typer.Option(
        False, "--expand", help="Also search related queries suggested by the model."
    ),
    conversation_id: Optional[str] = typer.Option(
        None, "--conversation", "-c", help="Continue a stored conversation (id or unique prefix).",
    ),
) -> None:
    """Answer a question from freshly scraped web sources, with citations."""
    from vsearch.synthesis import (
        build_answer_prompt,
        describe_synthesis_error,
        gather_expanded_sources,
        synthesize,
    )

    engine, count = _resolve_defaults(engine, count)

    conversation = None
    history: List[dict] = []
    if conversation_id:
        conversation = find_conversation(conversation_id)
        if conversation is None:
            typer.echo(f"❌ Conversation '{conversation_id}' not found.")
            raise typer.Exit(code=1)
        history = [
            {"role": m.get("role", "user"), "content": m.get("content", "")}
            for m in conversation.messages
        ]

    try:
        if expand:
            typer.echo("[ask] Expanding query with related searches …")
            found, metadata = asyncio.run(gather_expanded_sources(query, engine))
        else:
            result = asyncio.run(search_sources(query, engine, count))
            found, metadata = result.sources, result.metadata
    except InvalidQueryError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)

    if metadata is not None:
        _echo_metadata(metadata)
    if not found:
        typer.echo("[ask] No relevant sources found. Try a different query or engine.")
        raise typer.Exit(code=1)

    fallback = any(source.fallback for source in found)
    prompt = build_answer_prompt(query, found, fallback=fallback)

    typer.echo("\n" + "=" * 72)
    try:
        if stream:
            answer = asyncio.run(_stream_answer(prompt, history))
        else:
            answer = asyncio.run(synthesize(prompt, history))
            typer.echo(answer)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"❌ {describe_synthesis_error(exc)}")
        raise typer.Exit(code=1)
    typer.echo("=" * 72)

    typer.echo("Sources:")
    _echo_sources(found, preview=0)

    if conversation is not None:
        add_message(conversation.id, "user", query)
        add_message(conversation.id, "assistant", answer)
        typer.echo(f"[ask] Added to conversation {conversation.id[:8]}.")
    elif save_to_history(query, answer) is not None:
        typer.echo("[ask] Saved to history.")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
