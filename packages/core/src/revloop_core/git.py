from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 30


class GitError(RuntimeError):
    """Raised when a git command cannot be run or exits non-zero."""


def _git(args: list[str], cwd: str | None = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=_GIT_TIMEOUT,
        )
    except FileNotFoundError:
        raise GitError("git executable not found on PATH.")
    except subprocess.TimeoutExpired:
        raise GitError(f"git {' '.join(args)} timed out after {_GIT_TIMEOUT}s.")
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout


def is_git_repository(cwd: str | None = None) -> bool:
    try:
        return _git(["rev-parse", "--is-inside-work-tree"], cwd).strip() == "true"
    except GitError:
        return False


def get_changed_files(cwd: str | None = None) -> list[str]:
    """Return staged, modified, added and renamed paths, without duplicates.

    Parsed from `git status --porcelain`; for renames only the new path is
    reported. Untracked files are left out, as they are not in the diff.
    """
    files: list[str] = []
    for line in _git(["status", "--porcelain"], cwd).splitlines():
        if len(line) < 4 or line.startswith("??"):
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = path.strip().strip('"')
        if path and path not in files:
            files.append(path)
    return files


def get_diff(cwd: str | None = None, staged_only: bool = False) -> str:
    """Return the diff of the working tree.

    When both staged and unstaged changes exist they are returned under
    separate headers so the reviewer can tell them apart.
    """
    staged = _git(["diff", "--cached"], cwd)
    if staged_only:
        return staged
    unstaged = _git(["diff"], cwd)
    if staged and unstaged:
        return f"=== STAGED CHANGES ===\n{staged}\n\n=== UNSTAGED CHANGES ===\n{unstaged}"
    return staged or unstaged or ""


def get_current_branch(cwd: str | None = None) -> str | None:
    """Return the checked-out branch name, or None (detached HEAD, no repo)."""
    try:
        branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd).strip()
    except GitError as e:
        logger.debug("Could not determine current branch: %s", e)
        return None
    return None if branch in ("", "HEAD") else branch
