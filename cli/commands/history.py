"""Conversation history commands."""

import typer

from cli.store import clear_history, delete_conversation, find_conversation, get_history

history_app = typer.Typer(help="Browse and manage past conversations.")


@history_app.command("list")
def history_list(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum conversations to show."),
) -> None:
    """List stored conversations, newest first."""
    history = get_history()
    if not history:
        typer.echo("No conversations in history.")
        return

    for conversation in history[:limit]:
        typer.echo(
            f"{conversation.id[:8]}  {conversation.updated_at[:19]}  {conversation.title}"
        )


@history_app.command("show")
def history_show(
    conversation_id: str = typer.Argument(..., help="Conversation id or unique id prefix."),
) -> None:
    """Print every message of one conversation."""
    conversation = find_conversation(conversation_id)
    if conversation is None:
        typer.echo(f"❌ Conversation '{conversation_id}' not found.")
        raise typer.Exit(code=1)

    typer.echo(f"# {conversation.title}  [{conversation.id}]")
    for message in conversation.messages:
        typer.echo("")
        typer.echo(f"{message.get('role', 'user')}:")
        typer.echo(message.get("content", ""))


@history_app.command("delete")
def history_delete(
    conversation_id: str = typer.Argument(..., help="Conversation id or unique id prefix."),
) -> None:
    """Delete one conversation."""
    conversation = find_conversation(conversation_id)
    if conversation is None or not delete_conversation(conversation.id):
        typer.echo(f"❌ Conversation '{conversation_id}' not found.")
        raise typer.Exit(code=1)
    typer.echo(f"🗑️  Deleted conversation: {conversation.title}")


@history_app.command("clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete all stored conversations."""
    if not yes and not typer.confirm("Delete all conversation history?"):
        raise typer.Abort()
    clear_history()
    typer.echo("History cleared.")
