"""FileStore: review sessions as a directory tree of pretty-printed JSON.

Layout under the storage root:

  latest.json                         {"review_id": ...}
  sessions/<id>/request.json          the ReviewRequest
  sessions/<id>/session.json          the ReviewSession, rounds inline
  sessions/<id>/changes.diff          raw diff text
  sessions/<id>/round-<n>/review.json the ReviewResult of round n
  sessions/<id>/final-notes.txt       only when complete() gets notes

IDs are YYYY-MM-DD-NNN, NNN being the 1-based count of sessions created that
(UTC) day. Allocating an ID and numbering a round both read the directory
before writing, so every mutating operation holds an exclusive lock on
<root>/.lock for its whole read-modify-write sequence.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from revloop_store.base import BaseStore, SessionNotFound, is_valid_review_id
from revloop_store.locks import file_lock
from revloop_store.models import TERMINAL_STATUSES, ReviewSession, utc_now

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest, ReviewResult

logger = logging.getLogger(__name__)

_LOCK_FILENAME = ".lock"
_LATEST_FILENAME = "latest.json"
_MAX_DAILY_SESSIONS = 999


def _write_json(path: Path, data: dict) -> None:
    """Write data as pretty JSON, atomically replacing any existing file."""
    _write_text(path, json.dumps(data, indent=2, ensure_ascii=False))


def _write_text(path: Path, content: str) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    os.replace(tmp_path, path)


def _read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class FileStore(BaseStore):
    """Stores review sessions under a directory (default: ./.reviews)."""

    def __init__(self, root: str | os.PathLike = ".reviews"):
        self.root = Path(root)
        self.sessions_dir = self.root / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self._lock_path = self.root / _LOCK_FILENAME

    # ------------------------------------------------------------------ #
    # Write operations                                                   #
    # ------------------------------------------------------------------ #

    def create_session(self, request: ReviewRequest, branch: str | None = None) -> str:
        with file_lock(self._lock_path):
            review_id = self._allocate_review_id()
            session_dir = self.sessions_dir / review_id
            now = utc_now()
            session = ReviewSession(
                review_id=review_id,
                created_at=now,
                updated_at=now,
                status="in_progress",
                request=request,
                branch=branch,
            )
            _write_json(session_dir / "request.json", request.to_dict())
            _write_json(session_dir / "session.json", session.to_dict())
            self._update_latest(review_id)

        logger.info("Created review session %s", review_id)
        return review_id

    def append_round(self, review_id: str, result: ReviewResult) -> ReviewResult:
        session_dir = self._session_dir(review_id)
        with file_lock(self._lock_path):
            if not (session_dir / "session.json").exists():
                raise SessionNotFound(review_id)
            session = ReviewSession.from_dict(_read_json(session_dir / "session.json"))

            stored = dataclasses.replace(result, review_id=review_id, round=len(session.rounds) + 1)
            round_dir = session_dir / f"round-{stored.round}"
            round_dir.mkdir(parents=True, exist_ok=True)
            _write_json(round_dir / "review.json", stored.to_dict())

            session.rounds.append(stored)
            session.updated_at = utc_now()
            if session.is_completed:
                logger.info(
                    "Session %s is %s; round %d recorded without changing its status",
                    review_id,
                    session.status,
                    stored.round,
                )
            else:
                session.status = stored.status
            _write_json(session_dir / "session.json", session.to_dict())
            self._update_latest(review_id)

        logger.info("Saved round %d of %s (%s)", stored.round, review_id, stored.status)
        return stored

    def save_diff(self, review_id: str, diff: str) -> None:
        session_dir = self._session_dir(review_id)
        if not session_dir.is_dir():
            raise SessionNotFound(review_id)
        _write_text(session_dir / "changes.diff", diff)

    def complete(self, review_id: str, status: str, notes: str | None = None) -> None:
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Invalid final status {status!r}. Choose one of: {', '.join(TERMINAL_STATUSES)}.")

        session_dir = self._session_dir(review_id)
        with file_lock(self._lock_path):
            session = self.get_session(review_id)
            now = utc_now()
            session.status = status
            session.updated_at = now
            session.completed_at = now
            _write_json(session_dir / "session.json", session.to_dict())
            if notes:
                _write_text(session_dir / "final-notes.txt", notes)

        logger.info("Marked review session %s as %s", review_id, status)

    # ------------------------------------------------------------------ #
    # Read operations                                                    #
    # ------------------------------------------------------------------ #

    def get_session(self, review_id: str) -> ReviewSession:
        session_path = self._session_dir(review_id) / "session.json"
        if not session_path.exists():
            raise SessionNotFound(review_id)
        return ReviewSession.from_dict(_read_json(session_path))

    def get_history(self, limit: int = 5) -> list[ReviewSession]:
        if limit <= 0 or not self.sessions_dir.is_dir():
            return []
        sessions = [
            ReviewSession.from_dict(_read_json(d / "session.json"))
            for d in self.sessions_dir.iterdir()
            if (d / "session.json").is_file()
        ]
        # The ID breaks ties between sessions created within the same instant.
        sessions.sort(key=lambda s: (s.created_at, s.review_id), reverse=True)
        return sessions[:limit]

    def latest_session_id(self) -> str | None:
        latest_path = self.root / _LATEST_FILENAME
        if not latest_path.exists():
            return None
        return _read_json(latest_path).get("review_id")

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    def _session_dir(self, review_id: str) -> Path:
        # Validating the shape also keeps IDs like "../x" from escaping the root.
        if not is_valid_review_id(review_id):
            raise SessionNotFound(review_id)
        return self.sessions_dir / review_id

    def _allocate_review_id(self) -> str:
        """Create the directory of the next free ID for today and return the ID.

        Must be called with the store lock held. The sequence starts at the
        number of same-day sessions plus one; mkdir(exist_ok=False) moves past
        numbers freed up by deleted sessions instead of reusing a directory.
        """
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        existing = [d for d in os.listdir(self.sessions_dir) if d.startswith(date_str)]
        seq = len(existing) + 1
        while seq <= _MAX_DAILY_SESSIONS:
            review_id = f"{date_str}-{seq:03d}"
            try:
                (self.sessions_dir / review_id).mkdir()
            except FileExistsError:
                seq += 1
                continue
            return review_id
        raise RuntimeError(f"No free review ID left for {date_str} in {self.sessions_dir}")

    def _update_latest(self, review_id: str) -> None:
        _write_json(self.root / _LATEST_FILENAME, {"review_id": review_id})
