"""User preference commands."""

from typing import Optional

import typer

from cli.store import load_preferences, save_preferences
from vsearch.config import settings
from vsearch.engines import SEARCH_MODES

prefs_app = typer.Typer(help="Show or change default search preferences.")


@prefs_app.command("show")
def prefs_show() -> None:
    """Print the current preferences."""
    for key, value in load_preferences().to_dict().items():
        typer.echo(f"{key:<24}{value}")


@prefs_app.command("set")
def prefs_set(
    engine: Optional[str] = typer.Option(
        None, "--engine", help=f"Default search engine: {' | '.join(SEARCH_MODES)}."
    ),
    count: Optional[int] = typer.Option(None, "--count", help="Default number of sources."),
    history: Optional[bool] = typer.Option(
        None, "--history/--no-history", help="Record conversations in history."
    ),
    max_history: Optional[int] = typer.Option(
        None, "--max-history", help="Maximum conversations kept in history."
    ),
) -> None:
    """Update one or more preferences."""
    prefs = load_preferences()

    if engine is not None:
        if engine not in SEARCH_MODES:
            typer.echo(f"❌ Unknown engine {engine!r}. Use: {' | '.join(SEARCH_MODES)}")
            raise typer.Exit(code=1)
        prefs.default_search_engine = engine
    if count is not None:
        if not 1 <= count <= settings.max_source_count:
            typer.echo(f"❌ --count must be between 1 and {settings.max_source_count}.")
            raise typer.Exit(code=1)
        prefs.default_source_count = count
    if history is not None:
        prefs.history_enabled = history
    if max_history is not None:
        if max_history < 0:
            typer.echo("❌ --max-history cannot be negative.")
            raise typer.Exit(code=1)
        prefs.max_history_items = max_history

    save_preferences(prefs)
    typer.echo("✅ Preferences saved.")
