"""Review session data models.

Decoupled from revloop_core so the store layer can be used independently.
revloop_core builds these records; the store only persists and reloads them.

Every model round-trips through plain dicts (to_dict / from_dict) because the
on-disk format is pretty-printed JSON that other tools read directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

ASSESSMENTS = ("needs_changes", "lgtm_with_suggestions", "lgtm")
RESULT_STATUSES = ("in_progress", "approved", "needs_changes")
TERMINAL_STATUSES = ("approved", "abandoned", "merged")
SESSION_STATUSES = ("in_progress", "approved", "needs_changes", "abandoned", "merged")
COMMENT_SEVERITIES = ("critical", "major", "minor", "suggestion")
IMPACT_LEVELS = ("critical", "major", "minor")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class ReviewRequest:
    """What the author asked to have reviewed. Never changed after submission."""

    summary: str
    relevant_docs: list[str] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)
    previous_review_id: str | None = None
    test_command: str | None = None

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "summary": self.summary,
                "relevant_docs": list(self.relevant_docs),
                "focus_areas": list(self.focus_areas),
                "previous_review_id": self.previous_review_id,
                "test_command": self.test_command,
            }
        )

    @classmethod
    def from_dict(cls, d: dict) -> ReviewRequest:
        return cls(
            summary=d.get("summary", ""),
            relevant_docs=list(d.get("relevant_docs") or []),
            focus_areas=list(d.get("focus_areas") or []),
            previous_review_id=d.get("previous_review_id"),
            test_command=d.get("test_command"),
        )


@dataclass
class DesignViolation:
    issue: str
    description: str = ""
    impact: str = "major"  # "critical" | "major" | "minor"
    recommendation: str = ""

    def to_dict(self) -> dict:
        return {
            "issue": self.issue,
            "description": self.description,
            "impact": self.impact,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DesignViolation:
        return cls(
            issue=d.get("issue", ""),
            description=d.get("description", ""),
            impact=d.get("impact", "major"),
            recommendation=d.get("recommendation", ""),
        )


@dataclass
class DesignCompliance:
    follows_architecture: bool = True
    major_violations: list[DesignViolation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "follows_architecture": self.follows_architecture,
            "major_violations": [v.to_dict() for v in self.major_violations],
        }

    @classmethod
    def from_dict(cls, d: dict) -> DesignCompliance:
        return cls(
            follows_architecture=d.get("follows_architecture", True),
            major_violations=[DesignViolation.from_dict(v) for v in d.get("major_violations", [])],
        )


@dataclass
class ReviewComment:
    """A single review comment, either pinned to a file/line or general."""

    type: str  # "specific" | "general"
    severity: str  # "critical" | "major" | "minor" | "suggestion"
    category: str
    comment: str
    file: str | None = None
    line: int | None = None
    suggested_fix: str | None = None

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "type": self.type,
                "file": self.file,
                "line": self.line,
                "severity": self.severity,
                "category": self.category,
                "comment": self.comment,
                "suggested_fix": self.suggested_fix,
            }
        )

    @classmethod
    def from_dict(cls, d: dict) -> ReviewComment:
        return cls(
            type=d.get("type", "general"),
            severity=d.get("severity", "minor"),
            category=d.get("category", "design"),
            comment=d.get("comment", ""),
            file=d.get("file"),
            line=d.get("line"),
            suggested_fix=d.get("suggested_fix"),
        )


@dataclass
class MissingRequirement:
    requirement: str
    severity: str = "major"
    design_doc_reference: str | None = None

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "requirement": self.requirement,
                "design_doc_reference": self.design_doc_reference,
                "severity": self.severity,
            }
        )

    @classmethod
    def from_dict(cls, d: dict) -> MissingRequirement:
        return cls(
            requirement=d.get("requirement", ""),
            severity=d.get("severity", "major"),
            design_doc_reference=d.get("design_doc_reference"),
        )


@dataclass
class ReviewSummary:
    """Counts derived from a result. Always recomputed, never read from the reviewer."""

    design_violations: int = 0
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    suggestions: int = 0

    def to_dict(self) -> dict:
        return {
            "design_violations": self.design_violations,
            "critical_issues": self.critical_issues,
            "major_issues": self.major_issues,
            "minor_issues": self.minor_issues,
            "suggestions": self.suggestions,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewSummary:
        return cls(
            design_violations=d.get("design_violations", 0),
            critical_issues=d.get("critical_issues", 0),
            major_issues=d.get("major_issues", 0),
            minor_issues=d.get("minor_issues", 0),
            suggestions=d.get("suggestions", 0),
        )


@dataclass
class TestResults:
    # Not a pytest test class, despite the name.
    __test__ = False

    passed: bool | None = True  # None: no test command was run
    summary: str = "No tests run"
    failing_tests: list[str] | None = None
    coverage: str | None = None

    def to_dict(self) -> dict:
        d: dict = {"passed": self.passed, "summary": self.summary}
        if self.failing_tests is not None:
            d["failing_tests"] = list(self.failing_tests)
        if self.coverage is not None:
            d["coverage"] = self.coverage
        return d

    @classmethod
    def from_dict(cls, d: dict) -> TestResults:
        return cls(
            passed=d.get("passed"),
            summary=d.get("summary", ""),
            failing_tests=d.get("failing_tests"),
            coverage=d.get("coverage"),
        )


@dataclass
class ReviewResult:
    """One review round.

    review_id and round are assigned by the store when the result is appended
    to a session; until then they are "" and 0.
    """

    review_id: str = ""
    timestamp: str = field(default_factory=utc_now)
    status: str = "needs_changes"  # "in_progress" | "approved" | "needs_changes"
    round: int = 0
    design_compliance: DesignCompliance = field(default_factory=DesignCompliance)
    comments: list[ReviewComment] = field(default_factory=list)
    missing_requirements: list[MissingRequirement] = field(default_factory=list)
    summary: ReviewSummary = field(default_factory=ReviewSummary)
    test_results: TestResults = field(default_factory=TestResults)
    overall_assessment: str = "needs_changes"  # "needs_changes" | "lgtm_with_suggestions" | "lgtm"

    def to_dict(self) -> dict:
        return {
            "review_id": self.review_id,
            "timestamp": self.timestamp,
            "status": self.status,
            "round": self.round,
            "design_compliance": self.design_compliance.to_dict(),
            "comments": [c.to_dict() for c in self.comments],
            "missing_requirements": [m.to_dict() for m in self.missing_requirements],
            "summary": self.summary.to_dict(),
            "test_results": self.test_results.to_dict(),
            "overall_assessment": self.overall_assessment,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewResult:
        return cls(
            review_id=d.get("review_id", ""),
            timestamp=d.get("timestamp", ""),
            status=d.get("status", "needs_changes"),
            round=d.get("round", 0),
            design_compliance=DesignCompliance.from_dict(d.get("design_compliance") or {}),
            comments=[ReviewComment.from_dict(c) for c in d.get("comments", [])],
            missing_requirements=[MissingRequirement.from_dict(m) for m in d.get("missing_requirements", [])],
            summary=ReviewSummary.from_dict(d.get("summary") or {}),
            test_results=TestResults.from_dict(d.get("test_results") or {}),
            overall_assessment=d.get("overall_assessment", "needs_changes"),
        )


@dataclass
class ReviewSession:
    """The append-only thread of rounds for one logical review.

    status follows the latest round until complete() sets completed_at, after
    which it no longer changes on append.
    """

    review_id: str
    created_at: str
    updated_at: str
    status: str  # one of SESSION_STATUSES
    request: ReviewRequest
    rounds: list[ReviewResult] = field(default_factory=list)
    branch: str | None = None
    completed_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "review_id": self.review_id,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
                "status": self.status,
                "rounds": [r.to_dict() for r in self.rounds],
                "request": self.request.to_dict(),
                "branch": self.branch,
                "completed_at": self.completed_at,
            }
        )

    @classmethod
    def from_dict(cls, d: dict) -> ReviewSession:
        return cls(
            review_id=d.get("review_id", ""),
            created_at=d.get("created_at", ""),
            updated_at=d.get("updated_at", ""),
            status=d.get("status", "in_progress"),
            request=ReviewRequest.from_dict(d.get("request") or {}),
            rounds=[ReviewResult.from_dict(r) for r in d.get("rounds", [])],
            branch=d.get("branch"),
            completed_at=d.get("completed_at"),
        )
