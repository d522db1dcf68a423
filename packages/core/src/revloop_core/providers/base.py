"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    review() → invoke() → build_review_prompt() → _call()   ← only this differs
             → extract_review() → normalize_review()

Subclasses implement two things only:
  - __init__: validate and store whatever the provider needs (SDK client, CLI path)
  - _call: hand the prompt to the reviewer once and return its raw text

Invocation failures (missing executable, timeout, non-zero exit, API error)
raise ReviewerError and abort the round. Unparseable output does not: it
becomes a parse-error ReviewResult so the round is still recorded.
"""

from __future__ import annotations

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

from revloop_core.extract import extract_review
from revloop_core.normalizer import normalize_review
from revloop_core.prompt import build_review_prompt

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest, ReviewResult

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 120
_PREVIEW_CHARS = 500


class ReviewerError(RuntimeError):
    """Raised when the external reviewer could not produce any output."""


class BaseReviewer(ABC):
    NAME: str = "reviewer"
    DEFAULT_MODEL: str | None = None

    def __init__(self, model: str | None = None, timeout: int = _DEFAULT_TIMEOUT):
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Public interface                                                   #
    # ------------------------------------------------------------------ #

    def invoke(
        self,
        request: ReviewRequest,
        diff: str,
        changed_files: Sequence[str] = (),
        prior_rounds: Sequence[ReviewResult] = (),
    ) -> str:
        """Run the reviewer once and return its raw, unparsed output."""
        prompt = build_review_prompt(request, diff, changed_files, prior_rounds)
        logger.info(
            "%s: invoking reviewer (model=%s, prompt=%d chars, prior rounds=%d)",
            self.NAME,
            self.model,
            len(prompt),
            len(prior_rounds),
        )
        logger.debug("%s: full prompt:\n%s", self.NAME, prompt)
        started = time.monotonic()
        raw = self._call(prompt, request)
        logger.info("%s: reviewer returned %d chars in %.1fs", self.NAME, len(raw), time.monotonic() - started)
        logger.debug("%s: raw output preview: %s", self.NAME, raw[:_PREVIEW_CHARS])
        return raw

    def review(
        self,
        request: ReviewRequest,
        diff: str,
        changed_files: Sequence[str] = (),
        prior_rounds: Sequence[ReviewResult] = (),
    ) -> ReviewResult:
        """Invoke the reviewer and turn its output into a ReviewResult.

        Concrete here because extraction and normalization are identical for
        every provider. Raises ReviewerError only if invocation itself fails.
        """
        raw = self.invoke(request, diff, changed_files, prior_rounds)
        extraction = extract_review(raw)
        if extraction.ok:
            logger.debug("%s: payload extracted via %s", self.NAME, extraction.strategy)
        else:
            logger.warning(
                "%s: could not extract a review from the response (%s). Raw output (first %d chars): %s",
                self.NAME,
                extraction.error,
                _PREVIEW_CHARS,
                raw[:_PREVIEW_CHARS],
            )
        result = normalize_review(extraction)
        logger.info(
            "%s: review %s (%d violation(s), %d comment(s))",
            self.NAME,
            result.overall_assessment,
            result.summary.design_violations,
            len(result.comments),
        )
        return result

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                              #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call(self, prompt: str, request: ReviewRequest) -> str:
        """Hand prompt to the reviewer once and return the raw text response.

        Should raise ReviewerError on failure. No retries: a failed call
        fails the round.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                             #
    # ------------------------------------------------------------------ #

    def _run_cli(self, args: list[str], stdin_text: str) -> str:
        """Run a reviewer executable with the prompt on stdin and return stdout."""
        logger.info("%s: running %s (timeout %ss)", self.NAME, " ".join(args), self.timeout)
        try:
            result = subprocess.run(
                args,
                input=stdin_text,
                capture_output=True,
                text=True,
                # Undecodable bytes must reach the extractor, not abort the round.
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ReviewerError(f"{self.NAME}: executable {args[0]!r} not found. Install it or set cli_path.")
        except subprocess.TimeoutExpired:
            raise ReviewerError(f"{self.NAME}: reviewer timed out after {self.timeout}s.")

        if result.returncode != 0:
            logger.error(
                "%s: reviewer exited with code %d. stderr: %s",
                self.NAME,
                result.returncode,
                result.stderr.strip()[:_PREVIEW_CHARS],
            )
            raise ReviewerError(
                f"{self.NAME}: reviewer exited with code {result.returncode}: {result.stderr.strip()[:200]}"
            )
        if result.stderr.strip():
            logger.warning("%s: reviewer stderr: %s", self.NAME, result.stderr.strip()[:_PREVIEW_CHARS])
        return result.stdout
