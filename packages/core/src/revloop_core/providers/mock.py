from __future__ import annotations

import json
from typing import TYPE_CHECKING

from revloop_core.providers.base import BaseReviewer

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest


class MockReviewer(BaseReviewer):
    """Offline reviewer returning a fixed review, for dry runs and tests.

    The response goes through the same extraction and normalization as a
    real reviewer's, wrapped in a short preamble like real model output.
    """

    NAME = "mock"
    DEFAULT_MODEL = "mock"

    def __init__(self, model: str | None = None, timeout: int = 120, assessment: str = "lgtm_with_suggestions"):
        super().__init__(model=model, timeout=timeout)
        self.assessment = assessment

    def _call(self, prompt: str, request: ReviewRequest) -> str:
        passed = None if not request.test_command else True
        payload = {
            "design_compliance": {"follows_architecture": True, "major_violations": []},
            "comments": [
                {
                    "type": "general",
                    "severity": "suggestion",
                    "category": "design",
                    "comment": "Consider adding more comprehensive error handling.",
                    "suggested_fix": "Handle failures at the boundaries where external input enters.",
                }
            ],
            "missing_requirements": [],
            "test_results": {
                "passed": passed,
                "summary": "Mock review: tests not executed" if passed is None else "Mock review: all tests passed",
            },
            "overall_assessment": self.assessment,
        }
        return "Mock review complete.\n```json\n" + json.dumps(payload, indent=2) + "\n```\n"
