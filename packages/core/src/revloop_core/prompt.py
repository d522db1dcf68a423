"""Review prompt construction.

Shared by every provider so CLI- and API-based reviewers see the same
instructions and the same JSON output contract.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from revloop_store.models import ReviewRequest, ReviewResult

_DOC_CHAR_LIMIT = 5000

SYSTEM_PROMPT = (
    "You are a senior software engineer conducting a code review. Your primary goal is to "
    "ensure the implementation correctly follows the design documents and architectural decisions."
)

_OUTPUT_CONTRACT = """\
{
  "design_compliance": {
    "follows_architecture": true/false,
    "major_violations": [
      {
        "issue": "Brief issue title",
        "description": "Detailed description",
        "impact": "critical|major|minor",
        "recommendation": "Specific fix recommendation"
      }
    ]
  },
  "comments": [
    {
      "type": "specific|general",
      "file": "path/to/file.py", // optional, for specific comments
      "line": 42, // optional, for specific comments
      "severity": "critical|major|minor|suggestion",
      "category": "architecture|design|bug|performance|style|security|missing_feature",
      "comment": "Detailed review comment",
      "suggested_fix": "Optional code suggestion or architectural guidance"
    }
  ],
  "missing_requirements": [
    {
      "requirement": "Description of missing requirement",
      "design_doc_reference": "design.md#section", // optional
      "severity": "critical|major|minor"
    }
  ],
  "test_results": {
    "passed": true/false/null,
    "summary": "Test execution summary",
    "failing_tests": [], // names of failing tests, if any
    "coverage": "92%" // optional
  },
  "overall_assessment": "needs_changes|lgtm_with_suggestions|lgtm"
}"""


def format_previous_rounds(rounds: Sequence[ReviewResult]) -> str:
    """Summarise earlier rounds so the reviewer can check that issues were addressed."""
    blocks = []
    for index, rnd in enumerate(rounds, 1):
        critical = [c for c in rnd.comments if c.severity == "critical"]
        major = [c for c in rnd.comments if c.severity == "major"]
        violations = rnd.design_compliance.major_violations
        lines = [
            f"### Round {index}",
            f"- Status: {rnd.status}",
            f"- Design Violations: {len(violations)}",
            f"- Critical Issues: {len(critical)}",
            f"- Major Issues: {len(major)}",
            f"- Overall Assessment: {rnd.overall_assessment}",
            "",
            "Key Issues from Previous Round:",
        ]
        lines.extend(f"- {v.issue}: {v.description}" for v in violations)
        lines.extend(f"- {c.comment}" for c in critical + major)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _format_docs(paths: Sequence[str]) -> str:
    sections = []
    for doc in paths:
        p = Path(doc)
        if not p.is_file():
            continue
        try:
            content = p.read_text(encoding="utf-8", errors="replace")
        except OSError:
            sections.append(f"\n### {doc}\n(Unable to read file)\n")
            continue
        truncated = "\n... (truncated)" if len(content) > _DOC_CHAR_LIMIT else ""
        sections.append(f"\n### {doc}\n```\n{content[:_DOC_CHAR_LIMIT]}{truncated}\n```\n")
    if not sections:
        return ""
    return "\n\n## Referenced Documentation Content\n" + "".join(sections)


def build_review_prompt(
    request: ReviewRequest,
    diff: str,
    changed_files: Sequence[str],
    prior_rounds: Sequence[ReviewResult] = (),
) -> str:
    docs = ", ".join(request.relevant_docs) if request.relevant_docs else "No specific documentation referenced"
    focus = "\n".join(request.focus_areas) if request.focus_areas else "No specific focus areas"
    if request.test_command:
        tests = (
            f"Test command available: `{request.test_command}`\n"
            "You should run this command to validate that tests pass."
        )
    else:
        tests = "No test command provided - skip test validation."
    previous = format_previous_rounds(prior_rounds) if prior_rounds else "This is the first review round."

    prompt = f"""{SYSTEM_PROMPT}

## Review Request
{request.summary}

## Relevant Documentation
{docs}

## Changed Files
{chr(10).join(changed_files)}

## Focus Areas
{focus}

## Test Command
{tests}

## Review Priorities (in order of importance)

1. **Design Compliance** (MOST CRITICAL)
   - Does the implementation follow the architecture described in design docs?
   - Are data models and schemas aligned with specifications?
   - Does the code respect the intended boundaries and abstractions?

2. **Missing Requirements**
   - What required fields, methods, or features are missing?
   - Are all specified behaviors implemented?

3. **Structural Issues**
   - Are interfaces and contracts properly defined?
   - Are dependencies flowing in the right direction?

4. **Implementation Quality**
   - Bugs, security issues, and performance problems
   - Test coverage, error handling and edge cases

## Previous Review Rounds
{previous}

## Git Diff
```diff
{diff}
```

## Review Output Format

Focus on high-level architectural issues first. Line-by-line nitpicks are less important than design compliance.

IMPORTANT: Output ONLY a valid JSON object with no other text before or after, with the following structure:
{_OUTPUT_CONTRACT}

Before giving LGTM:
1. If a test command was provided above, run it and include the results in test_results.
2. If no test command was provided, set test_results.passed to null and note that tests were not validated.
3. Verify the implementation follows the design architecture."""

    return prompt + _format_docs(request.relevant_docs)
