from __future__ import annotations

from typing import TYPE_CHECKING

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from revloop_core.prompt import SYSTEM_PROMPT
from revloop_core.providers.base import BaseReviewer, ReviewerError

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest


class OpenAIReviewer(BaseReviewer):
    NAME = "openai"
    DEFAULT_MODEL = "gpt-4o"
    TEMPERATURE = 0.2
    MAX_TOKENS = 8192

    def __init__(self, api_key: str, model: str | None = None, timeout: int = 120):
        super().__init__(model=model, timeout=timeout)
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this reviewer. " "Install it with: pip install 'revloop[openai]'"
            )
        self.client = _OpenAI(api_key=api_key, timeout=timeout)

    def _call(self, prompt: str, request: ReviewRequest) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.TEMPERATURE,
                max_tokens=self.MAX_TOKENS,
                # Asks the API for a bare JSON object, no prose around it.
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise ReviewerError(f"{self.NAME}: API call failed ({type(e).__name__}): {e}") from e
        return response.choices[0].message.content or ""
