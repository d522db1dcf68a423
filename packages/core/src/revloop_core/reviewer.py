"""Core review orchestration.

Gathers the change set from git, picks the configured reviewer and runs one
review round. Persisting the session is the caller's job (the CLI bridges
this module and revloop_store), so nothing here touches the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from revloop_core.git import get_changed_files, get_current_branch, get_diff, is_git_repository
from revloop_core.providers.anthropic import AnthropicReviewer
from revloop_core.providers.base import BaseReviewer
from revloop_core.providers.claude_cli import ClaudeCLIReviewer
from revloop_core.providers.gemini_cli import GeminiCLIReviewer
from revloop_core.providers.mock import MockReviewer
from revloop_core.providers.openai import OpenAIReviewer

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest, ReviewResult

logger = logging.getLogger(__name__)

REVIEWERS = ("claude", "gemini", "anthropic", "openai", "mock")


@dataclass
class ChangeSet:
    """The working-tree changes a round is reviewing."""

    diff: str
    changed_files: list[str] = field(default_factory=list)
    branch: str | None = None


def get_reviewer(config: dict) -> BaseReviewer:
    name = config.get("reviewer", "claude")
    model = config.get("model")
    timeout = config.get("timeout", 120)
    cli_path = config.get("cli_path")
    if name == "claude":
        return ClaudeCLIReviewer(cli_path=cli_path, model=model, timeout=timeout)
    if name == "gemini":
        return GeminiCLIReviewer(cli_path=cli_path, model=model, timeout=timeout)
    if name == "anthropic":
        if not config.get("anthropic_api_key"):
            raise ValueError("ANTHROPIC_API_KEY environment variable is not set.")
        return AnthropicReviewer(api_key=config["anthropic_api_key"], model=model, timeout=timeout)
    if name == "openai":
        if not config.get("openai_api_key"):
            raise ValueError("OPENAI_API_KEY environment variable is not set.")
        return OpenAIReviewer(api_key=config["openai_api_key"], model=model, timeout=timeout)
    if name == "mock":
        return MockReviewer(model=model, timeout=timeout)
    raise ValueError(f"Unknown reviewer: {name!r}. Choose one of: {', '.join(REVIEWERS)}.")


def collect_changes(cwd: str | None = None) -> ChangeSet:
    """Read the diff, changed files and branch of the repository at cwd."""
    if not is_git_repository(cwd):
        raise ValueError("Not in a git repository")

    diff = get_diff(cwd)
    changed_files = get_changed_files(cwd)
    if not diff and not changed_files:
        raise ValueError("No changes detected to review")

    return ChangeSet(diff=diff, changed_files=changed_files, branch=get_current_branch(cwd))


def run_review(
    request: ReviewRequest,
    changes: ChangeSet,
    config: dict,
    prior_rounds: Sequence[ReviewResult] = (),
    reviewer: BaseReviewer | None = None,
) -> ReviewResult:
    """Run one review round and return its (not yet persisted) result.

    Raises ValueError when the session already used up max_review_rounds, and
    ReviewerError when the reviewer cannot be invoked. Unparseable reviewer
    output never raises; it yields a parse-error result.
    """
    max_rounds = config.get("max_review_rounds")
    if max_rounds and len(prior_rounds) >= max_rounds:
        raise ValueError(
            f"Review already has {len(prior_rounds)} round(s); max_review_rounds is {max_rounds}. "
            "Start a new review or raise the limit in .revloop.yml."
        )

    reviewer = reviewer if reviewer is not None else get_reviewer(config)
    logger.info(
        "Reviewing %d changed file(s) with %s (round %d)",
        len(changes.changed_files),
        reviewer.NAME,
        len(prior_rounds) + 1,
    )
    return reviewer.review(request, changes.diff, changes.changed_files, prior_rounds)
