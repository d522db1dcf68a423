"""request command — run one review round on the current changes."""

from __future__ import annotations

import json
import os

import click
from rich.console import Console

from revloop_core.git import GitError
from revloop_core.providers.base import ReviewerError
from revloop_core.reviewer import REVIEWERS, collect_changes, get_reviewer, run_review
from revloop_store.base import SessionNotFound
from revloop_store.models import ReviewRequest, ReviewResult

console = Console()

_ASSESSMENT_STYLE = {"lgtm": "green", "lgtm_with_suggestions": "yellow", "needs_changes": "red"}
_SEVERITY_STYLE = {"critical": "red", "major": "yellow", "minor": "blue", "suggestion": "dim"}


def print_result(result: ReviewResult) -> None:
    """Print a short human-readable account of one round."""
    style = _ASSESSMENT_STYLE.get(result.overall_assessment, "white")
    console.print(
        f"\n[bold]Review {result.review_id}[/bold] round {result.round}: "
        f"[{style}]{result.overall_assessment}[/{style}] ({result.status})"
    )
    s = result.summary
    console.print(
        f"  {s.design_violations} design violation(s) · {s.critical_issues} critical · "
        f"{s.major_issues} major · {s.minor_issues} minor · {s.suggestions} suggestion(s)"
    )
    for v in result.design_compliance.major_violations:
        console.print(f"  [red]VIOLATION[/red] [{v.impact}] {v.issue}: {v.description}")
    for c in result.comments:
        sev_style = _SEVERITY_STYLE.get(c.severity, "white")
        location = f" {c.file}:{c.line}" if c.file and c.line else (f" {c.file}" if c.file else "")
        console.print(f"  [{sev_style}]{c.severity.upper()}[/{sev_style}]{location} {c.comment}")
    for m in result.missing_requirements:
        console.print(f"  [yellow]MISSING[/yellow] [{m.severity}] {m.requirement}")
    tests = result.test_results
    passed = {True: "[green]passed[/green]", False: "[red]failed[/red]", None: "[dim]not run[/dim]"}[tests.passed]
    console.print(f"  Tests: {passed} — {tests.summary}")


@click.command("request")
@click.option("--summary", required=True, help="Summary of the work attempted and completed.")
@click.option("--doc", "docs", multiple=True, help="Relevant design doc or spec (repeatable).")
@click.option("--focus", "focus_areas", multiple=True, help="Area the review should focus on (repeatable).")
@click.option("--previous-review-id", default=None, help="Continue this review session with a new round.")
@click.option("--test-command", default=None, help="Test command the reviewer may run, e.g. 'pytest'.")
@click.option("--reviewer", type=click.Choice(REVIEWERS), default=None, help="Reviewer backend. Overrides config file.")
@click.option("--model", default=None, help="Reviewer model. Overrides config file.")
@click.option("--json", "as_json", is_flag=True, help="Print the review round as JSON.")
@click.pass_context
def request_cmd(
    ctx,
    summary: str,
    docs: tuple[str, ...],
    focus_areas: tuple[str, ...],
    previous_review_id: str | None,
    test_command: str | None,
    reviewer: str | None,
    model: str | None,
    as_json: bool,
):
    """Request a code review of the current git changes.

    Starts a new review session, or adds a round to an existing one with
    --previous-review-id. The round is saved to the review history.
    """
    config = dict(ctx.obj["config"])
    for key, value in {"reviewer": reviewer, "model": model}.items():
        if value is not None:
            config[key] = value
    store = ctx.obj["store"]

    request = ReviewRequest(
        summary=summary,
        relevant_docs=list(docs),
        focus_areas=list(focus_areas),
        previous_review_id=previous_review_id,
        test_command=test_command,
    )

    try:
        # Resolved before any storage write so a misconfigured reviewer leaves no session behind.
        reviewer_impl = get_reviewer(config)
        changes = collect_changes(os.getcwd())

        if previous_review_id:
            # Continue an existing session; its request and diff stay as first recorded.
            prior_rounds = store.get_session(previous_review_id).rounds
            review_id = previous_review_id
        else:
            prior_rounds = []
            review_id = store.create_session(request, branch=changes.branch)
            store.save_diff(review_id, changes.diff)

        if not as_json:
            console.print(f"[cyan]Review {review_id}: requesting round {len(prior_rounds) + 1}...[/cyan]")
        result = run_review(request, changes, config, prior_rounds, reviewer=reviewer_impl)
        stored = store.append_round(review_id, result)
    except (SessionNotFound, ValueError, ReviewerError, GitError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(stored.to_dict(), indent=2))
    else:
        print_result(stored)
