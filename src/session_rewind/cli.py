"""CLI entry point for session-rewind."""

import asyncio
import logging
import sys

import click
import uvicorn

from .core import SessionKey
from .errors import NotFoundError, ParseError
from .history import to_ui_history
from .store import SessionStore


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level.",
)
def main(log_level: str):
    """Browse, resume and prune recorded assistant conversations."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web interface."""
    click.echo(f"Starting session-rewind on http://{host}:{port}")
    uvicorn.run("session_rewind.server:create_app", factory=True, host=host, port=port, reload=False)


@main.command("list")
@click.option("--limit", default=20, help="Maximum sessions to show.")
def list_sessions(limit: int):
    """List recent sessions across all projects."""
    entries = asyncio.run(SessionStore().list_recent())
    if not entries:
        click.echo("No sessions found.")
        return

    for entry in entries[:limit]:
        project = entry.project_path or "(unresolved)"
        click.echo(
            f"{entry.mtime:%Y-%m-%d %H:%M}  {entry.message_count:>4} msgs  "
            f"{entry.display_name}\n    {project}  [{entry.hash}/{entry.file_name}]"
        )


@main.command()
@click.argument("hash")
@click.argument("file_name")
def show(hash: str, file_name: str):
    """Print one session's transcript with display ids."""
    try:
        record = asyncio.run(SessionStore().load(SessionKey(hash, file_name)))
    except (NotFoundError, ParseError) as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    for item in to_ui_history(record.messages):
        if item.type == "tool_group":
            names = ", ".join(t["name"] for t in item.tools)
            click.echo(f"[{item.id}] tools: {names}")
        else:
            click.echo(f"[{item.id}] {item.type}: {item.text}")


@main.command()
@click.argument("hash")
@click.argument("file_name")
@click.confirmation_option(prompt="Delete this session?")
def delete(hash: str, file_name: str):
    """Delete one session file."""
    try:
        asyncio.run(SessionStore().delete(SessionKey(hash, file_name)))
    except (NotFoundError, OSError) as e:
        click.echo(f"Failed to delete session: {e}", err=True)
        sys.exit(1)
    click.echo("Deleted.")
