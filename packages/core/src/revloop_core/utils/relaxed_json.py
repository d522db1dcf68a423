"""Relaxed JSON decoding for model output.

Reviewers frequently emit JSON that is valid except for two habits borrowed
from JavaScript: comments (// and /* */) and trailing commas before a closing
bracket. strip_relaxed() removes both in a single pass that never touches the
contents of string literals; relaxed_loads() then hands the result to the
strict json decoder.
"""

from __future__ import annotations

import json
from typing import Any

_WHITESPACE = " \t\n\r"


def _skip_string(text: str, i: int) -> int:
    """Return the index just past the string literal starting at text[i] == '"'."""
    n = len(text)
    i += 1
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
        elif ch == '"':
            return i + 1
        else:
            i += 1
    return n


def _skip_line_comment(text: str, i: int) -> int:
    end = text.find("\n", i + 2)
    return len(text) if end == -1 else end


def _skip_block_comment(text: str, i: int) -> int:
    end = text.find("*/", i + 2)
    return len(text) if end == -1 else end + 2


def _next_significant(text: str, i: int) -> int:
    """Return the index of the next character that is not whitespace or comment."""
    n = len(text)
    while i < n:
        if text[i] in _WHITESPACE:
            i += 1
        elif text.startswith("//", i):
            i = _skip_line_comment(text, i)
        elif text.startswith("/*", i):
            i = _skip_block_comment(text, i)
        else:
            break
    return i


def strip_relaxed(text: str) -> str:
    """Remove comments and trailing commas outside of string literals."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = _skip_string(text, i)
            out.append(text[i:end])
            i = end
            continue
        if ch == "/" and text.startswith("//", i):
            i = _skip_line_comment(text, i)
            continue
        if ch == "/" and text.startswith("/*", i):
            i = _skip_block_comment(text, i)
            continue
        if ch == ",":
            j = _next_significant(text, i + 1)
            if j < n and text[j] in "}]":
                # Drop the comma together with the whitespace/comments after it.
                i = j
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def relaxed_loads(text: str) -> Any:
    """Decode near-JSON text. Raises json.JSONDecodeError if it is still invalid."""
    return json.loads(strip_relaxed(text))
