"""
Response Parser — recovers structured JSON from free-form model output.

The model is asked for a JSON array (or, for the final review, an object with
``requirements`` and ``testCases``) followed by a promise tag, but in practice
it wraps the payload in prose, markdown fences, or trailing commentary.

Strategy:
  • strip the ``<promise>…</promise>`` region first
  • find the first top-level balanced ``[...]`` and ``{...}`` independently,
    with a depth counter that skips over JSON string literals
  • pick one candidate by the selection policy in ``parse_response``

Never raises; an unusable response degrades to an empty list.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from prd_automation.exceptions import MalformedResponse
from prd_automation.services.completion_signal import PROMISE_TAG_RE

logger = logging.getLogger(__name__)

Span = tuple[int, int]


def strip_promise(text: str) -> str:
    """Remove every promise tag so its punctuation can't confuse the scan."""
    return PROMISE_TAG_RE.sub("", text or "").strip()


def find_balanced(text: str, open_char: str, close_char: str) -> Span | None:
    """
    Return the (start, end) span of the first top-level balanced region
    opened by *open_char*, or None.

    String literals are only tracked once inside a candidate, so stray quotes
    in the surrounding prose do not swallow the payload.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == open_char:
            if depth == 0:
                start = i
            depth += 1
        elif ch == close_char and depth > 0:
            depth -= 1
            if depth == 0:
                return start, i + 1

    return None


def _load(text: str, span: Span | None, label: str) -> Any:
    if span is None:
        return None
    snippet = text[span[0]:span[1]]
    try:
        return json.loads(snippet)
    except (ValueError, RecursionError) as exc:
        logger.warning(
            f"[PARSER] Failed to parse JSON {label} ({len(snippet)} chars): {exc}"
        )
        return None


def _is_final_review_shape(value: Any) -> bool:
    return isinstance(value, dict) and "requirements" in value and "testCases" in value


def parse_response(text: str, expect_sequence: bool = True) -> Any:
    """
    Recover the payload of one model response.

    Selection policy:
      1. an object with both ``requirements`` and ``testCases`` → returned as-is
      2. an object that is not nested inside the array candidate → the object
         (wrapped in a one-element list when the stage expects a sequence)
      3. otherwise the array candidate, verbatim
      4. nothing parses → ``[]``
    """
    cleaned = strip_promise(text)

    array_span = find_balanced(cleaned, "[", "]")
    object_span = find_balanced(cleaned, "{", "}")

    is_fragment = bool(
        array_span
        and object_span
        and object_span[0] >= array_span[0]
        and object_span[1] <= array_span[1]
    )

    parsed_object = _load(cleaned, object_span, "object")
    if _is_final_review_shape(parsed_object):
        return parsed_object

    if parsed_object is not None and not is_fragment:
        return [parsed_object] if expect_sequence else parsed_object

    parsed_array = _load(cleaned, array_span, "array")
    if parsed_array is not None:
        return parsed_array

    exc = MalformedResponse(
        f"No valid JSON found in response ({len(cleaned)} chars)"
    )
    logger.warning(f"[PARSER] {exc} — falling back to an empty list")
    return []
