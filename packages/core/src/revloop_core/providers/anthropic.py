from __future__ import annotations

from typing import TYPE_CHECKING

from revloop_core.prompt import SYSTEM_PROMPT
from revloop_core.providers.base import BaseReviewer, ReviewerError

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest


class AnthropicReviewer(BaseReviewer):
    """Calls the Anthropic Messages API directly instead of a local CLI.

    The model cannot explore the repository or run tests this way; it sees
    only the prompt (diff, changed files, referenced docs).
    """

    NAME = "anthropic"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    # Low temperature keeps the JSON structure stable across rounds.
    TEMPERATURE = 0.2
    MAX_TOKENS = 8192

    def __init__(self, api_key: str, model: str | None = None, timeout: int = 120):
        super().__init__(model=model, timeout=timeout)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this reviewer. "
                "Install it with: pip install 'revloop[anthropic]'"
            )
        self.client = Anthropic(api_key=api_key, timeout=timeout)

    def _call(self, prompt: str, request: ReviewRequest) -> str:
        # anthropic is an optional extra; __init__ has already imported it.
        from anthropic.types import TextBlock

        try:
            response = self.client.messages.create(
                model=self.model,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.TEMPERATURE,
                max_tokens=self.MAX_TOKENS,
            )
        except Exception as e:
            raise ReviewerError(f"{self.NAME}: API call failed ({type(e).__name__}): {e}") from e
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
