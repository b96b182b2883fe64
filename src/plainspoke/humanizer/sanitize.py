"""Post-generation cleanup of model output.

Removes markdown scaffolding the model sometimes wraps around its answer
and folds typographic punctuation to ASCII. Words are never touched.
"""

from __future__ import annotations

import re

_PUNCTUATION = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201a": "'",
        "\u2032": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u201e": '"',
        "\u2033": '"',
        "\u2013": "-",
        "\u2014": " - ",
        "\u2212": "-",
        "\u2026": "...",
        "\u00a0": " ",
        "\u2009": " ",
        "\u202f": " ",
    }
)

_FENCE_LINE_RE = re.compile(r"^[ \t]*(?:```|~~~)[^\n]*(?:\n|$)", re.MULTILINE)
_HEADING_RE = re.compile(r"^[ \t]*(?:#{1,6}[ \t]+)+", re.MULTILINE)
_BOLD_RE = re.compile(r"(?<!\w)\*\*(?=\S)(.+?)(?<=\S)\*\*(?!\w)")
_SPACE_RUN_RE = re.compile(r"[ \t]{2,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")

# Passes after the first only delete characters, so the loop settles in two or three.
_MAX_PASSES = 10


def _sanitize_once(text: str) -> str:
    text = text.translate(_PUNCTUATION)
    text = _BOLD_RE.sub(r"\1", text)
    text = _HEADING_RE.sub("", text)
    text = _FENCE_LINE_RE.sub("", text)
    text = _SPACE_RUN_RE.sub(" ", text)
    text = _TRAILING_SPACE_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def sanitize(text: str) -> str:
    """Strip code fences, heading and bold markers; normalize punctuation.

    Applied until the text stops changing, so ``sanitize(sanitize(t)) ==
    sanitize(t)`` for every input.
    """
    for _ in range(_MAX_PASSES):
        cleaned = _sanitize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned
    return text
