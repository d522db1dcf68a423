"""Turn an extracted payload into a fully populated ReviewResult.

This is the only place the loosely typed reviewer payload is read. Missing
sections get structural defaults, out-of-vocabulary values are coerced, and
the summary block is always recomputed from comments and violations. When
extraction failed, a diagnostic "parse error" result is produced instead, so
every review round yields a well-formed record.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from revloop_store.models import (
    ASSESSMENTS,
    COMMENT_SEVERITIES,
    IMPACT_LEVELS,
    DesignCompliance,
    DesignViolation,
    MissingRequirement,
    ReviewComment,
    ReviewResult,
    ReviewSummary,
    TestResults,
)

if TYPE_CHECKING:
    from revloop_core.extract import Extraction

logger = logging.getLogger(__name__)

PARSE_ERROR_ISSUE = "Review Parse Error"

_SEVERITY_FIELDS = {
    "critical": "critical_issues",
    "major": "major_issues",
    "minor": "minor_issues",
    "suggestion": "suggestions",
}


def status_for(assessment: str) -> str:
    """Only a clean "lgtm" approves a round; everything else needs changes."""
    return "approved" if assessment == "lgtm" else "needs_changes"


def compute_summary(result: ReviewResult) -> ReviewSummary:
    summary = ReviewSummary(design_violations=len(result.design_compliance.major_violations))
    for comment in result.comments:
        field_name = _SEVERITY_FIELDS.get(comment.severity)
        if field_name:
            setattr(summary, field_name, getattr(summary, field_name) + 1)
    return summary


def _list_of_objects(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> str | None:
    return None if value is None else _text(value)


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _normalize_violation(raw: dict) -> DesignViolation:
    impact = raw.get("impact")
    return DesignViolation(
        issue=_text(raw.get("issue")),
        description=_text(raw.get("description")),
        impact=impact if impact in IMPACT_LEVELS else "major",
        recommendation=_text(raw.get("recommendation")),
    )


def _normalize_design_compliance(raw: Any) -> DesignCompliance:
    if not isinstance(raw, dict):
        return DesignCompliance()
    follows = raw.get("follows_architecture", True)
    return DesignCompliance(
        follows_architecture=follows if isinstance(follows, bool) else True,
        major_violations=[_normalize_violation(v) for v in _list_of_objects(raw.get("major_violations"))],
    )


def _normalize_comment(raw: dict) -> ReviewComment:
    severity = raw.get("severity")
    comment_type = raw.get("type")
    return ReviewComment(
        type=comment_type if comment_type in ("specific", "general") else "general",
        severity=severity if severity in COMMENT_SEVERITIES else "minor",
        category=_text(raw.get("category"), "design") or "design",
        comment=_text(raw.get("comment")),
        file=_optional_text(raw.get("file")),
        line=_optional_int(raw.get("line")),
        suggested_fix=_optional_text(raw.get("suggested_fix")),
    )


def _normalize_requirement(raw: dict) -> MissingRequirement:
    severity = raw.get("severity")
    return MissingRequirement(
        requirement=_text(raw.get("requirement")),
        severity=severity if severity in IMPACT_LEVELS else "major",
        design_doc_reference=_optional_text(raw.get("design_doc_reference")),
    )


def _normalize_test_results(raw: Any) -> TestResults:
    if not isinstance(raw, dict):
        return TestResults(passed=True, summary="No tests run")
    passed = raw.get("passed")
    failing = raw.get("failing_tests")
    return TestResults(
        passed=passed if isinstance(passed, bool) else None,
        summary=_text(raw.get("summary")),
        failing_tests=[_text(t) for t in failing] if isinstance(failing, list) else None,
        coverage=_optional_text(raw.get("coverage")),
    )


def normalize_payload(payload: dict) -> ReviewResult:
    assessment = payload.get("overall_assessment")
    if assessment not in ASSESSMENTS:
        if assessment is not None:
            logger.warning("Unknown overall_assessment %r; treating as needs_changes", assessment)
        assessment = "needs_changes"

    result = ReviewResult(
        status=status_for(assessment),
        design_compliance=_normalize_design_compliance(payload.get("design_compliance")),
        comments=[_normalize_comment(c) for c in _list_of_objects(payload.get("comments"))],
        missing_requirements=[_normalize_requirement(m) for m in _list_of_objects(payload.get("missing_requirements"))],
        test_results=_normalize_test_results(payload.get("test_results")),
        overall_assessment=assessment,
    )
    result.summary = compute_summary(result)
    return result


def parse_error_result(reason: str) -> ReviewResult:
    """Build the diagnostic result recorded when reviewer output was unusable."""
    result = ReviewResult(
        status="needs_changes",
        design_compliance=DesignCompliance(
            follows_architecture=False,
            major_violations=[
                DesignViolation(
                    issue=PARSE_ERROR_ISSUE,
                    description=f"Failed to parse the reviewer response: {reason}",
                    impact="major",
                    recommendation="Check that the reviewer is configured to return a single JSON object.",
                )
            ],
        ),
        comments=[
            ReviewComment(
                type="general",
                severity="major",
                category="design",
                comment="Review could not be parsed. The reviewer did not return valid JSON.",
                suggested_fix="Inspect the raw reviewer output in the logs (run with --verbose) and request the review again.",
            )
        ],
        test_results=TestResults(passed=False, summary="Review parsing failed"),
        overall_assessment="needs_changes",
    )
    result.summary = compute_summary(result)
    return result


def normalize_review(extraction: Extraction) -> ReviewResult:
    if not extraction.ok:
        return parse_error_result(extraction.error or "unknown error")
    return normalize_payload(extraction.payload)
