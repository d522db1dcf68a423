"""Abstract store interface.

The CLI depends on BaseStore, not on a concrete backend, so the on-disk
layout can change without touching CLI code. Implementations re-read state
from durable storage on every call; nothing is cached between operations.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest, ReviewResult, ReviewSession

REVIEW_ID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-\d{3}$")


class SessionNotFound(LookupError):
    """Raised when a review session does not exist (or the ID is malformed)."""

    def __init__(self, review_id: str):
        super().__init__(f"Review session {review_id} not found")
        self.review_id = review_id


def is_valid_review_id(review_id: str) -> bool:
    return bool(REVIEW_ID_RE.match(review_id or ""))


class BaseStore(ABC):
    """Persistence layer for multi-round review sessions."""

    @abstractmethod
    def create_session(self, request: ReviewRequest, branch: str | None = None) -> str:
        """Create an in-progress session for request and return its ID."""

    @abstractmethod
    def append_round(self, review_id: str, result: ReviewResult) -> ReviewResult:
        """Number result as the next round of the session and persist it.

        Returns the stored copy (review_id and round filled in). Raises
        SessionNotFound if the session does not exist.
        """

    @abstractmethod
    def save_diff(self, review_id: str, diff: str) -> None:
        """Archive the change set under review alongside the session."""

    @abstractmethod
    def get_session(self, review_id: str) -> ReviewSession:
        """Return the session or raise SessionNotFound."""

    @abstractmethod
    def get_history(self, limit: int = 5) -> list[ReviewSession]:
        """Return up to limit sessions, most recently created first."""

    @abstractmethod
    def complete(self, review_id: str, status: str, notes: str | None = None) -> None:
        """Move a session to a terminal status and freeze it there."""

    @abstractmethod
    def latest_session_id(self) -> str | None:
        """Return the ID of the most recently touched session, if any."""

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
