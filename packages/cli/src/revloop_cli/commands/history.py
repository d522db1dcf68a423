"""history and show commands — read past review sessions from the store."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from revloop_store.base import SessionNotFound

console = Console()

_STATUS_STYLE = {
    "approved": "green",
    "merged": "green",
    "needs_changes": "red",
    "in_progress": "yellow",
    "abandoned": "dim",
}


@click.command("history")
@click.option("--limit", default=5, show_default=True, help="Maximum number of sessions to show.")
@click.pass_context
def history_cmd(ctx, limit: int):
    """Show the most recently created review sessions."""
    store = ctx.obj["store"]

    sessions = store.get_history(limit)
    if not sessions:
        console.print("[yellow]No review sessions found.[/yellow]")
        return

    table = Table(title="Review History", show_header=True, header_style="bold cyan")
    # Only branch and summary wrap; IDs must stay intact.
    table.add_column("Review ID", style="bold", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Rounds", justify="right", no_wrap=True)
    table.add_column("Branch", max_width=24)
    table.add_column("Summary", max_width=48)
    table.add_column("Created At", no_wrap=True)

    for s in sessions:
        style = _STATUS_STYLE.get(s.status, "white")
        table.add_row(
            s.review_id,
            f"[{style}]{s.status}[/{style}]",
            str(len(s.rounds)),
            s.branch or "",
            s.request.summary[:48],
            s.created_at[:16].replace("T", " "),
        )

    console.print(table)


@click.command("show")
@click.argument("review_id", required=False)
@click.pass_context
def show_cmd(ctx, review_id: str | None):
    """Print a review session as JSON (default: the latest one)."""
    store = ctx.obj["store"]

    if review_id is None:
        review_id = store.latest_session_id()
        if review_id is None:
            raise click.ClickException("No review sessions found.")

    try:
        session = store.get_session(review_id)
    except SessionNotFound as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps(session.to_dict(), indent=2))
