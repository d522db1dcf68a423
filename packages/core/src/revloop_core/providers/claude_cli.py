from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from revloop_core.providers.base import BaseReviewer

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest

logger = logging.getLogger(__name__)

# Read-only exploration tools the reviewer may use while reviewing.
BASE_ALLOWED_TOOLS = "Read(**/*),Grep(**/*),LS(**),Bash(find:*),Bash(grep:*),Bash(rg:*)"

# A test command is only granted to the reviewer if it matches one of these.
_TEST_COMMAND_PATTERNS = [
    re.compile(r"^npm\s+(test|run\s+test(:[a-zA-Z0-9_-]+)?)$"),
    re.compile(r"^yarn\s+(test|run\s+test(:[a-zA-Z0-9_-]+)?)$"),
    re.compile(r"^pnpm\s+(test|run\s+test(:[a-zA-Z0-9_-]+)?)$"),
    re.compile(r"^python\s+-m\s+(pytest|unittest)(\s+[a-zA-Z0-9_./\\-]+)?$"),
    re.compile(r"^pytest(\s+[a-zA-Z0-9_./\\-]+)?$"),
    re.compile(r"^go\s+test(\s+[a-zA-Z0-9_./\\-]+)?$"),
    re.compile(r"^cargo\s+test(\s+[a-zA-Z0-9_-]+)?$"),
    re.compile(r"^dotnet\s+test(\s+[a-zA-Z0-9_./\\-]+)?$"),
    re.compile(r"^gradle\s+test$"),
    re.compile(r"^mvn\s+test$"),
    re.compile(r"^make\s+test$"),
]


def validate_test_command(command: str | None) -> str | None:
    """Return the trimmed command if it is an allowed test invocation, else None."""
    if not command:
        return None
    trimmed = command.strip()
    if any(p.match(trimmed) for p in _TEST_COMMAND_PATTERNS):
        return trimmed
    logger.warning("Test command %r does not match the allowed patterns; tests will not be run.", trimmed)
    return None


class ClaudeCLIReviewer(BaseReviewer):
    """Runs the `claude` CLI in print mode with a restricted tool set.

    --output-format json wraps the answer in a result envelope, which the
    extractor unwraps.
    """

    NAME = "claude"
    DEFAULT_MODEL = "claude-opus-4-20250514"

    def __init__(self, cli_path: str | None = None, model: str | None = None, timeout: int = 120):
        super().__init__(model=model, timeout=timeout)
        self.cli_path = cli_path or "claude"

    def allowed_tools(self, request: ReviewRequest) -> str:
        tools = BASE_ALLOWED_TOOLS
        test_command = validate_test_command(request.test_command)
        if test_command:
            tools += f",Bash({test_command})"
        return tools

    def build_args(self, request: ReviewRequest) -> list[str]:
        return [
            self.cli_path,
            "--print",
            "--output-format",
            "json",
            "--model",
            self.model,
            "--allowedTools",
            self.allowed_tools(request),
        ]

    def _call(self, prompt: str, request: ReviewRequest) -> str:
        return self._run_cli(self.build_args(request), prompt)
