"""
Completion signal — the model's explicit "I am done" marker.

Wire convention: the configured phrase wrapped as ``<promise>PHRASE</promise>``
anywhere in the response text.
"""

from __future__ import annotations

import re

PROMISE_TAG_RE = re.compile(r"<promise>(.*?)</promise>", re.DOTALL)


def wrap_phrase(phrase: str) -> str:
    return f"<promise>{phrase}</promise>"


def extract_promise(text: str) -> str | None:
    """Return the content of the first non-empty promise tag, if any."""
    for match in PROMISE_TAG_RE.finditer(text or ""):
        content = match.group(1).strip()
        if content:
            return content
    return None


def has_completion_signal(text: str, phrase: str) -> bool:
    """
    Decide whether a response claims to be final.

    Checked most to least strict, first match wins:
      1. the exact wrapped phrase
      2. the bare phrase anywhere in the text
      3. any non-empty promise tag, whatever it says
    """
    if not text:
        return False
    if phrase and wrap_phrase(phrase) in text:
        return True
    if phrase and phrase in text:
        return True
    # Lenient fallback: the model drifted from the exact phrase but still
    # closed with a promise tag.
    return extract_promise(text) is not None
