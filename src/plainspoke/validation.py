"""Input text validation, applied before any external call."""

from __future__ import annotations

import re

from plainspoke.errors import InputValidationError

# Script and markup injection patterns rejected outright.
_DENYLIST: tuple[re.Pattern[str], ...] = (
    re.compile(r"<\s*script\b", re.IGNORECASE),
    re.compile(r"<\s*/\s*script\s*>", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"vbscript\s*:", re.IGNORECASE),
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"<\s*(?:iframe|object|embed|svg|link|meta|style)\b", re.IGNORECASE),
    re.compile(r"\bon(?:error|load|click|mouseover|focus|submit)\s*=", re.IGNORECASE),
)


def validate_text(text: object, max_length: int) -> str:
    """Return ``text`` unchanged if it is acceptable input.

    Raises:
        InputValidationError: Not a string, blank, longer than
            ``max_length``, or matching an injection pattern.
    """
    if not isinstance(text, str) or not text.strip():
        raise InputValidationError("Text is required")
    if len(text) > max_length:
        raise InputValidationError(f"Text exceeds maximum length of {max_length} characters")
    for pattern in _DENYLIST:
        if pattern.search(text):
            raise InputValidationError("Text contains disallowed content")
    return text


def split_examples(raw: str | None) -> tuple[str, ...]:
    """Split a free-form examples field into samples on blank lines."""
    if not raw or not raw.strip():
        return ()
    return tuple(part.strip() for part in re.split(r"\n\s*\n", raw) if part.strip())
