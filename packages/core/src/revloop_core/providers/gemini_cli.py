from __future__ import annotations

from typing import TYPE_CHECKING

from revloop_core.providers.base import BaseReviewer

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest


class GeminiCLIReviewer(BaseReviewer):
    """Runs the `gemini` CLI with the prompt on stdin.

    Gemini has no tool whitelist equivalent, so the test command (if any) is
    only mentioned in the prompt.
    """

    NAME = "gemini"
    DEFAULT_MODEL = "gemini-2.5-pro"

    def __init__(self, cli_path: str | None = None, model: str | None = None, timeout: int = 120):
        super().__init__(model=model, timeout=timeout)
        self.cli_path = cli_path or "gemini"

    def _call(self, prompt: str, request: ReviewRequest) -> str:
        return self._run_cli([self.cli_path, "--model", self.model], prompt)
