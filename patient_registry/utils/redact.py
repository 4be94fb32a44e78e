"""PII redaction utility: strip patient contact details from logs."""

from __future__ import annotations

import re

_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[REDACTED_EMAIL]"),
    # Phone numbers and dates of birth: digit runs with separators
    (re.compile(r"(?<![\w-])\+?\d[\d\s().-]{6,}\d(?![\w-])"), "[REDACTED_NUMBER]"),
]


def redact_text(text: str) -> str:
    """
    Redact contact details from text before it reaches a log record.
    Query text and event payloads both go through this.
    """
    redacted = text
    for pattern, repl in _PATTERNS:
        redacted = pattern.sub(repl, redacted)
    return redacted
