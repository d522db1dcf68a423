"""Recover the structured review payload from raw reviewer output.

Reviewers are asked for a bare JSON object but routinely narrate first
("Let me look at the code..."), wrap the object in a ```json fence, or append
commentary after it. Strategies are tried cheapest first:

  1. direct  - the whole text is strict JSON
  2. fence   - the interior of the first ```json fence, relaxed-decoded
  3. braces  - the first balanced {...} span, relaxed-decoded

The claude CLI with --output-format json additionally wraps the answer in a
result envelope ({"type": "result", "result": "..."}); a decoded envelope is
unwrapped and its text goes through the same strategies once more.

extract_review() never raises: failure is reported in the returned
Extraction so the caller can turn it into a diagnostic review.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from revloop_core.utils.relaxed_json import relaxed_loads

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


class _NotAnObject(ValueError):
    pass


@dataclass(frozen=True)
class Extraction:
    """Outcome of extract_review(): a payload, or the reason there is none."""

    payload: dict | None = None
    error: str | None = None
    strategy: str | None = None

    @property
    def ok(self) -> bool:
        return self.payload is not None

    @classmethod
    def success(cls, payload: dict, strategy: str) -> Extraction:
        return cls(payload=payload, strategy=strategy)

    @classmethod
    def failure(cls, error: str) -> Extraction:
        return cls(error=error)


def extract_fenced_json(text: str) -> str | None:
    """Return the interior of the first ```json fenced block, or None."""
    match = _JSON_FENCE_RE.search(text)
    return match.group(1) if match else None


def find_balanced_object(text: str) -> str | None:
    """Return text from the first '{' to the '}' that closes it, or None.

    Braces inside string literals do not count towards nesting. Returns None
    when there is no '{' or the object is never closed (truncated output).
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
        i += 1
    return None


def _as_object(value: Any) -> dict:
    if not isinstance(value, dict):
        raise _NotAnObject(f"expected a JSON object, got {type(value).__name__}")
    return value


def _decode_direct(text: str) -> dict | None:
    return _as_object(json.loads(text))


def _decode_fence(text: str) -> dict | None:
    block = extract_fenced_json(text)
    if block is None:
        return None
    return _as_object(relaxed_loads(block))


def _decode_braces(text: str) -> dict | None:
    candidate = find_balanced_object(text)
    if candidate is None:
        return None
    return _as_object(relaxed_loads(candidate))


_STRATEGIES: tuple[tuple[str, Callable[[str], dict | None]], ...] = (
    ("direct", _decode_direct),
    ("fence", _decode_fence),
    ("braces", _decode_braces),
)


def _is_result_envelope(obj: dict) -> bool:
    return obj.get("type") == "result" and "result" in obj


def _unwrap_envelope(envelope: dict, strategy: str) -> Extraction:
    if envelope.get("is_error"):
        return Extraction.failure(f"reviewer reported an error: {str(envelope.get('result'))[:200]}")
    inner = envelope["result"]
    if isinstance(inner, dict):
        return Extraction.success(inner, f"{strategy}+envelope")
    if isinstance(inner, str):
        unwrapped = _run_strategies(inner, unwrap=False)
        if unwrapped.ok:
            return Extraction.success(unwrapped.payload, f"envelope+{unwrapped.strategy}")
        return Extraction.failure(f"result envelope: {unwrapped.error}")
    return Extraction.failure(f"unexpected result type in envelope: {type(inner).__name__}")


def _run_strategies(text: str, unwrap: bool) -> Extraction:
    text = text.strip()
    if not text:
        return Extraction.failure("empty response")

    last_error = "no JSON object found"
    for name, decode in _STRATEGIES:
        try:
            payload = decode(text)
        except (json.JSONDecodeError, _NotAnObject, RecursionError) as e:
            logger.debug("Extraction strategy %r failed: %s", name, e)
            last_error = f"{name}: {e}"
            continue
        if payload is None:
            continue
        if unwrap and _is_result_envelope(payload):
            return _unwrap_envelope(payload, name)
        return Extraction.success(payload, name)
    return Extraction.failure(last_error)


def extract_review(raw: str | None) -> Extraction:
    """Locate and decode the review payload in raw reviewer output."""
    return _run_strategies(raw or "", unwrap=True)
