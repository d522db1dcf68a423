"""Tests for reviewer provider implementations.

Shared behaviour (invoke, review, _run_cli) lives in BaseReviewer and is
tested once via a lightweight stub, not duplicated per provider.
Provider-specific tests cover only what differs: CLI arguments, the tool
whitelist and the SDK client calls.
"""

import json
import subprocess
import sys
from unittest.mock import MagicMock

import pytest

from revloop_core.normalizer import PARSE_ERROR_ISSUE
from revloop_core.providers.base import BaseReviewer, ReviewerError
from revloop_core.providers.claude_cli import BASE_ALLOWED_TOOLS, ClaudeCLIReviewer, validate_test_command
from revloop_core.providers.gemini_cli import GeminiCLIReviewer
from revloop_core.providers.mock import MockReviewer
from revloop_core.providers.openai import OpenAIReviewer
from revloop_store.models import ReviewRequest

VALID_JSON = json.dumps(
    {
        "design_compliance": {"follows_architecture": True, "major_violations": []},
        "comments": [{"type": "general", "severity": "minor", "category": "style", "comment": "Rename x"}],
        "overall_assessment": "lgtm_with_suggestions",
    }
)


class _StubReviewer(BaseReviewer):
    """Minimal concrete subclass used to test BaseReviewer shared methods."""

    NAME = "stub"

    def __init__(self, response=VALID_JSON, **kwargs):
        super().__init__(**kwargs)
        self.response = response
        self.prompts = []

    def _call(self, prompt, request):
        self.prompts.append(prompt)
        return self.response


def _request(**kwargs):
    return ReviewRequest(summary="Add pagination", **kwargs)


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub
# ---------------------------------------------------------------------------


class TestBaseReviewerReview:
    def test_invoke_returns_raw_text(self):
        reviewer = _StubReviewer(response="raw output")
        assert reviewer.invoke(_request(), "diff") == "raw output"

    def test_prompt_contains_request_and_diff(self):
        reviewer = _StubReviewer()
        reviewer.invoke(_request(), "+added line", ["src/app.py"])
        prompt = reviewer.prompts[0]
        assert "Add pagination" in prompt
        assert "+added line" in prompt
        assert "src/app.py" in prompt

    def test_review_parses_valid_json(self):
        result = _StubReviewer().review(_request(), "diff")
        assert result.overall_assessment == "lgtm_with_suggestions"
        assert result.status == "needs_changes"
        assert result.summary.minor_issues == 1

    def test_review_with_narration_and_fence(self):
        raw = "Let me look at the code first.\n```json\n" + VALID_JSON + "\n```"
        result = _StubReviewer(response=raw).review(_request(), "diff")
        assert result.comments[0].comment == "Rename x"

    def test_unparseable_output_becomes_parse_error_result(self):
        result = _StubReviewer(response="Sorry, I cannot help.").review(_request(), "diff")
        assert result.design_compliance.major_violations[0].issue == PARSE_ERROR_ISSUE
        assert result.test_results.passed is False

    def test_default_model_used_when_none(self):
        class _WithDefault(_StubReviewer):
            DEFAULT_MODEL = "default-model"

        assert _WithDefault().model == "default-model"
        assert _WithDefault(model="other").model == "other"


class TestRunCli:
    def test_returns_stdout(self, mocker):
        run = mocker.patch("subprocess.run", return_value=_completed(stdout="out"))
        assert _StubReviewer(timeout=7)._run_cli(["tool", "--flag"], "prompt") == "out"
        kwargs = run.call_args.kwargs
        assert kwargs["input"] == "prompt"
        assert kwargs["timeout"] == 7

    def test_missing_executable(self, mocker):
        mocker.patch("subprocess.run", side_effect=FileNotFoundError())
        with pytest.raises(ReviewerError, match="not found"):
            _StubReviewer()._run_cli(["nope"], "prompt")

    def test_timeout(self, mocker):
        mocker.patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="tool", timeout=5))
        with pytest.raises(ReviewerError, match="timed out"):
            _StubReviewer(timeout=5)._run_cli(["tool"], "prompt")

    def test_nonzero_exit(self, mocker):
        mocker.patch("subprocess.run", return_value=_completed(stderr="boom", returncode=2))
        with pytest.raises(ReviewerError, match="code 2"):
            _StubReviewer()._run_cli(["tool"], "prompt")

    def test_called_once_no_retry(self, mocker):
        run = mocker.patch("subprocess.run", return_value=_completed(returncode=1))
        with pytest.raises(ReviewerError):
            _StubReviewer()._run_cli(["tool"], "prompt")
        assert run.call_count == 1

    def test_output_decoded_as_utf8_with_replacement(self, mocker):
        run = mocker.patch("subprocess.run", return_value=_completed(stdout="out"))
        _StubReviewer()._run_cli(["tool"], "prompt")
        kwargs = run.call_args.kwargs
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"

    def test_invalid_utf8_output_does_not_raise(self):
        emit = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe{}')"
        output = _StubReviewer()._run_cli([sys.executable, "-c", emit], "")
        assert output == "\ufffd\ufffd{}"

    def test_invalid_utf8_output_becomes_parse_error_round(self):
        class _GarbledReviewer(BaseReviewer):
            NAME = "garbled"

            def _call(self, prompt, request):
                return self._run_cli([sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'\\xff\\xfe')"], prompt)

        result = _GarbledReviewer().review(_request(), "diff")
        assert result.design_compliance.major_violations[0].issue == PARSE_ERROR_ISSUE


# ---------------------------------------------------------------------------
# Claude CLI
# ---------------------------------------------------------------------------


class TestValidateTestCommand:
    @pytest.mark.parametrize(
        "command",
        ["npm test", "npm run test:unit", "pytest", "pytest tests/unit", "python -m pytest", "go test ./...", "make test"],
    )
    def test_allowed(self, command):
        assert validate_test_command(f"  {command} ") == command

    @pytest.mark.parametrize("command", ["rm -rf /", "pytest; rm -rf /", "npm test && curl evil", "bash"])
    def test_rejected(self, command):
        assert validate_test_command(command) is None

    def test_empty(self):
        assert validate_test_command(None) is None
        assert validate_test_command("") is None


class TestClaudeCLIReviewer:
    def test_build_args(self):
        reviewer = ClaudeCLIReviewer(cli_path="/opt/claude", model="claude-test")
        args = reviewer.build_args(_request())
        assert args == [
            "/opt/claude",
            "--print",
            "--output-format",
            "json",
            "--model",
            "claude-test",
            "--allowedTools",
            BASE_ALLOWED_TOOLS,
        ]

    def test_defaults(self):
        reviewer = ClaudeCLIReviewer()
        assert reviewer.cli_path == "claude"
        assert reviewer.model == ClaudeCLIReviewer.DEFAULT_MODEL

    def test_valid_test_command_added_to_whitelist(self):
        tools = ClaudeCLIReviewer().allowed_tools(_request(test_command="pytest"))
        assert tools.endswith(",Bash(pytest)")

    def test_invalid_test_command_not_whitelisted(self):
        tools = ClaudeCLIReviewer().allowed_tools(_request(test_command="pytest; rm -rf /"))
        assert tools == BASE_ALLOWED_TOOLS

    def test_review_unwraps_result_envelope(self, mocker):
        envelope = json.dumps({"type": "result", "is_error": False, "result": "Done.\n```json\n" + VALID_JSON + "\n```"})
        run = mocker.patch("subprocess.run", return_value=_completed(stdout=envelope))
        result = ClaudeCLIReviewer().review(_request(), "diff", ["a.py"])
        assert result.overall_assessment == "lgtm_with_suggestions"
        assert "Add pagination" in run.call_args.kwargs["input"]


# ---------------------------------------------------------------------------
# Gemini CLI
# ---------------------------------------------------------------------------


class TestGeminiCLIReviewer:
    def test_runs_cli_with_model(self, mocker):
        run = mocker.patch("subprocess.run", return_value=_completed(stdout=VALID_JSON))
        result = GeminiCLIReviewer(model="gemini-test").review(_request(), "diff")
        assert run.call_args.args[0] == ["gemini", "--model", "gemini-test"]
        assert result.summary.minor_issues == 1


# ---------------------------------------------------------------------------
# API providers
# ---------------------------------------------------------------------------


class TestOpenAIReviewer:
    def test_call_returns_message_content(self, mocker):
        client = MagicMock()
        client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content=VALID_JSON))]
        mocker.patch("revloop_core.providers.openai._OpenAI", return_value=client)

        result = OpenAIReviewer(api_key="k").review(_request(), "diff")

        assert result.summary.minor_issues == 1
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_api_error_becomes_reviewer_error(self, mocker):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("rate limited")
        mocker.patch("revloop_core.providers.openai._OpenAI", return_value=client)

        with pytest.raises(ReviewerError, match="rate limited"):
            OpenAIReviewer(api_key="k").review(_request(), "diff")

    def test_missing_package(self, mocker):
        mocker.patch("revloop_core.providers.openai._OpenAI", None)
        with pytest.raises(ImportError, match="revloop\\[openai\\]"):
            OpenAIReviewer(api_key="k")


# ---------------------------------------------------------------------------
# Mock reviewer
# ---------------------------------------------------------------------------


class TestMockReviewer:
    def test_default_review(self):
        result = MockReviewer().review(_request(), "diff")
        assert result.overall_assessment == "lgtm_with_suggestions"
        assert result.status == "needs_changes"
        assert result.summary.suggestions == 1
        assert result.test_results.passed is None

    def test_tests_reported_when_command_given(self):
        result = MockReviewer().review(_request(test_command="pytest"), "diff")
        assert result.test_results.passed is True

    def test_configurable_assessment(self):
        result = MockReviewer(assessment="lgtm").review(_request(), "diff")
        assert result.status == "approved"


class TestAnthropicReviewer:
    def test_call_joins_text_blocks(self, mocker):
        pytest.importorskip("anthropic")
        from anthropic.types import TextBlock

        from revloop_core.providers.anthropic import AnthropicReviewer

        client = MagicMock()
        client.messages.create.return_value.content = [TextBlock(type="text", text=VALID_JSON)]
        mocker.patch("anthropic.Anthropic", return_value=client)

        result = AnthropicReviewer(api_key="k", model="claude-test").review(_request(), "diff")

        assert result.summary.minor_issues == 1
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["messages"][0]["role"] == "user"

    def test_api_error_becomes_reviewer_error(self, mocker):
        pytest.importorskip("anthropic")
        from revloop_core.providers.anthropic import AnthropicReviewer

        client = MagicMock()
        client.messages.create.side_effect = RuntimeError("overloaded")
        mocker.patch("anthropic.Anthropic", return_value=client)

        with pytest.raises(ReviewerError, match="overloaded"):
            AnthropicReviewer(api_key="k").review(_request(), "diff")
