"""complete command — close a review session with a final status."""

from __future__ import annotations

import click
from rich.console import Console

from revloop_store.base import SessionNotFound
from revloop_store.models import TERMINAL_STATUSES

console = Console()


@click.command("complete")
@click.argument("review_id")
@click.option("--status", "final_status", type=click.Choice(TERMINAL_STATUSES), required=True, help="Final status.")
@click.option("--notes", default=None, help="Final notes, saved as final-notes.txt.")
@click.pass_context
def complete_cmd(ctx, review_id: str, final_status: str, notes: str | None):
    """Mark a review session as approved, abandoned or merged.

    The final status is kept even if more rounds are added later.
    """
    store = ctx.obj["store"]
    try:
        store.complete(review_id, final_status, notes)
    except SessionNotFound as e:
        raise click.ClickException(str(e))

    console.print(f"[green]Review {review_id} marked as {final_status}[/green]")
