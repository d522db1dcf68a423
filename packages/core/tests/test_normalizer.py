"""Tests for turning extracted payloads into ReviewResult records."""

from revloop_core.extract import Extraction, extract_review
from revloop_core.normalizer import (
    PARSE_ERROR_ISSUE,
    normalize_payload,
    normalize_review,
    parse_error_result,
    status_for,
)


def _payload(**overrides):
    payload = {
        "design_compliance": {
            "follows_architecture": False,
            "major_violations": [
                {
                    "issue": "Layering",
                    "description": "Store imports CLI code",
                    "impact": "critical",
                    "recommendation": "Invert the dependency",
                }
            ],
        },
        "comments": [
            {"type": "specific", "file": "a.py", "line": 3, "severity": "critical", "category": "bug", "comment": "x"},
            {"type": "general", "severity": "major", "category": "design", "comment": "y"},
            {"type": "general", "severity": "major", "category": "design", "comment": "z"},
            {"type": "general", "severity": "suggestion", "category": "style", "comment": "w"},
        ],
        "missing_requirements": [{"requirement": "Pagination", "severity": "minor"}],
        "test_results": {"passed": False, "summary": "1 failed", "failing_tests": ["test_a"]},
        "overall_assessment": "needs_changes",
    }
    payload.update(overrides)
    return payload


class TestStatusFor:
    def test_only_lgtm_approves(self):
        assert status_for("lgtm") == "approved"
        assert status_for("lgtm_with_suggestions") == "needs_changes"
        assert status_for("needs_changes") == "needs_changes"


class TestNormalizePayload:
    def test_full_payload(self):
        result = normalize_payload(_payload())
        assert result.status == "needs_changes"
        assert result.design_compliance.follows_architecture is False
        assert result.design_compliance.major_violations[0].impact == "critical"
        assert result.comments[0].file == "a.py"
        assert result.comments[0].line == 3
        assert result.missing_requirements[0].severity == "minor"
        assert result.test_results.passed is False
        assert result.test_results.failing_tests == ["test_a"]

    def test_summary_recomputed(self):
        bogus = {"design_violations": 99, "critical_issues": 99, "major_issues": 99, "minor_issues": 99, "suggestions": 99}
        result = normalize_payload(_payload(summary=bogus))
        assert result.summary.design_violations == 1
        assert result.summary.critical_issues == 1
        assert result.summary.major_issues == 2
        assert result.summary.minor_issues == 0
        assert result.summary.suggestions == 1

    def test_lgtm_is_approved(self):
        result = normalize_payload({"overall_assessment": "lgtm"})
        assert result.status == "approved"
        assert result.overall_assessment == "lgtm"

    def test_lgtm_with_suggestions_needs_changes(self):
        result = normalize_payload({"overall_assessment": "lgtm_with_suggestions"})
        assert result.status == "needs_changes"

    def test_missing_sections_get_defaults(self):
        result = normalize_payload({"overall_assessment": "lgtm"})
        assert result.design_compliance.follows_architecture is True
        assert result.design_compliance.major_violations == []
        assert result.comments == []
        assert result.missing_requirements == []
        assert result.test_results.passed is True
        assert result.test_results.summary == "No tests run"
        assert result.summary.design_violations == 0

    def test_missing_assessment_needs_changes(self):
        result = normalize_payload({})
        assert result.overall_assessment == "needs_changes"
        assert result.status == "needs_changes"

    def test_unknown_values_coerced(self):
        result = normalize_payload(
            {
                "overall_assessment": "ship it",
                "design_compliance": {"major_violations": [{"issue": "X", "impact": "catastrophic"}]},
                "comments": [{"type": "inline", "severity": "blocker", "comment": "c"}],
                "missing_requirements": [{"requirement": "R", "severity": "huge"}],
            }
        )
        assert result.overall_assessment == "needs_changes"
        assert result.design_compliance.major_violations[0].impact == "major"
        comment = result.comments[0]
        assert comment.type == "general"
        assert comment.severity == "minor"
        assert comment.category == "design"
        assert result.missing_requirements[0].severity == "major"
        assert result.summary.minor_issues == 1

    def test_non_object_entries_dropped(self):
        result = normalize_payload({"comments": ["not an object", {"severity": "major", "comment": "ok"}]})
        assert len(result.comments) == 1
        assert result.summary.major_issues == 1

    def test_string_line_number_coerced(self):
        result = normalize_payload({"comments": [{"severity": "minor", "comment": "c", "line": "17"}]})
        assert result.comments[0].line == 17

    def test_null_test_result_kept(self):
        result = normalize_payload({"test_results": {"passed": None, "summary": "not run"}})
        assert result.test_results.passed is None

    def test_round_fields_left_for_store(self):
        result = normalize_payload({"overall_assessment": "lgtm"})
        assert result.review_id == ""
        assert result.round == 0
        assert result.timestamp


class TestParseErrorResult:
    def test_shape(self):
        result = parse_error_result("no JSON object found")
        assert result.status == "needs_changes"
        assert result.overall_assessment == "needs_changes"
        assert result.design_compliance.follows_architecture is False
        violation = result.design_compliance.major_violations[0]
        assert violation.issue == PARSE_ERROR_ISSUE
        assert violation.impact == "major"
        assert "no JSON object found" in violation.description
        assert len(result.comments) == 1
        assert result.comments[0].type == "general"
        assert result.comments[0].severity == "major"
        assert result.test_results.passed is False
        assert result.test_results.summary == "Review parsing failed"

    def test_summary_counts(self):
        summary = parse_error_result("x").summary
        assert summary.design_violations == 1
        assert summary.major_issues == 1
        assert summary.critical_issues == 0


class TestNormalizeReview:
    def test_failed_extraction_gives_parse_error(self):
        result = normalize_review(extract_review("I could not review this."))
        assert result.design_compliance.major_violations[0].issue == PARSE_ERROR_ISSUE

    def test_successful_extraction(self):
        result = normalize_review(Extraction.success({"overall_assessment": "lgtm"}, "direct"))
        assert result.status == "approved"


class TestUnrepresentableNumbers:
    def test_infinite_line_number_dropped(self):
        result = normalize_review(extract_review('{"comments":[{"severity":"major","comment":"c","line":1e999}]}'))
        assert result.comments[0].line is None
        assert result.summary.major_issues == 1

    def test_nan_line_number_dropped(self):
        result = normalize_payload({"comments": [{"severity": "minor", "comment": "c", "line": float("nan")}]})
        assert result.comments[0].line is None


class TestEndToEnd:
    def test_fenced_lgtm_is_approved(self):
        raw = 'Here is my review:\n```json\n{"overall_assessment":"lgtm"}\n```'
        extraction = extract_review(raw)
        assert extraction.payload == {"overall_assessment": "lgtm"}
        assert normalize_review(extraction).status == "approved"

    def test_brace_matched_payload_with_trailing_noise(self):
        raw = 'Some analysis text. {"overall_assessment":"needs_changes","comments":[]} trailing noise'
        extraction = extract_review(raw)
        assert extraction.payload == {"overall_assessment": "needs_changes", "comments": []}
        assert normalize_review(extraction).status == "needs_changes"
