"""Document-type detection from raw input text.

Pure textual heuristics, no I/O. The resulting label selects the
style-rule block used in the stage-1 prompt.
"""

from __future__ import annotations

import re
from enum import Enum


class DocumentType(Enum):
    """Document-type label driving rewrite instructions."""

    EMAIL = "email"
    MEMO = "memo"
    ACADEMIC_PAPER = "academic_paper"
    RESEARCH_PAPER = "research_paper"
    ESSAY = "essay"
    PROPOSAL = "proposal"
    GENERIC = "generic"


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_HEADER_RE = re.compile(r"^\s*(?:to|from|subject)\s*:", re.IGNORECASE | re.MULTILINE)

_SALUTATION_RE = re.compile(
    r"^\s*(?:dear|hi|hello|hey)\b[^\n]{0,60}[,!:]\s*$",
    re.IGNORECASE | re.MULTILINE,
)

_SIGN_OFF_RE = re.compile(
    r"^\s*(?:best regards|kind regards|warm regards|regards|sincerely|yours sincerely"
    r"|yours truly|best wishes|many thanks|thanks|cheers)\s*,?\s*$",
    re.IGNORECASE | re.MULTILINE,
)

_MEMO_RE = re.compile(r"\bmemo(?:randum)?\b", re.IGNORECASE)

_ACADEMIC_KEYWORDS: tuple[str, ...] = (
    "abstract",
    "methodology",
    "hypothesis",
    "literature review",
    "empirical",
    "findings",
    "theoretical framework",
    "et al",
    "peer-reviewed",
    "statistically significant",
    "participants",
    "sample size",
    "research question",
    "data analysis",
    "journal",
)

_ACADEMIC_RES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(rf"\b{re.escape(kw)}\b", re.IGNORECASE) for kw in _ACADEMIC_KEYWORDS
)

ACADEMIC_KEYWORD_MIN = 3

# [3], [1, 4], [2-5] or (Smith, 2019), (Smith et al., 2019), (Lee & Park, 2020a)
_CITATION_RE = re.compile(
    r"\[\d+(?:\s*[,–-]\s*\d+)*\]"
    r"|\([A-Z][A-Za-z'\-]+(?:\s+et al\.?|\s+(?:and|&)\s+[A-Z][A-Za-z'\-]+)?,\s*\d{4}[a-z]?\)"
)

_RESEARCH_RE = re.compile(r"\b(?:thesis|dissertation|experiments?|experimental)\b", re.IGNORECASE)

_ARGUMENT_RE = re.compile(
    r"\b(?:thesis|argue[sd]?|argument|counterargument|this essay|in my opinion|i believe)\b",
    re.IGNORECASE,
)

_CONCLUDING_RE = re.compile(
    r"\b(?:in conclusion|to conclude|in summary|to sum up|to summarize|all in all|in closing)\b",
    re.IGNORECASE,
)

_PROPOSAL_RE = re.compile(r"\b(?:proposal|executive summary)\b", re.IGNORECASE)
_BUDGET_RE = re.compile(r"\bbudget\b", re.IGNORECASE)
_TIMELINE_RE = re.compile(r"\btimeline\b", re.IGNORECASE)

ESSAY_MIN_CHARS = 500
ESSAY_MAX_CHARS = 5000


def _academic_keyword_count(text: str) -> int:
    return sum(1 for pattern in _ACADEMIC_RES if pattern.search(text))


def classify(text: str) -> DocumentType:
    """Assign a document type to ``text``. First matching rule wins.

    Order: memo headers, email markers, academic/research, essay,
    proposal, then generic. Never raises; any string yields a label.
    """
    has_headers = _HEADER_RE.search(text) is not None

    if has_headers and _MEMO_RE.search(text):
        return DocumentType.MEMO

    if has_headers or _SALUTATION_RE.search(text) or _SIGN_OFF_RE.search(text):
        return DocumentType.EMAIL

    if _academic_keyword_count(text) >= ACADEMIC_KEYWORD_MIN or _CITATION_RE.search(text):
        if _RESEARCH_RE.search(text):
            return DocumentType.RESEARCH_PAPER
        return DocumentType.ACADEMIC_PAPER

    if _CONCLUDING_RE.search(text):
        if _ARGUMENT_RE.search(text) or ESSAY_MIN_CHARS <= len(text) <= ESSAY_MAX_CHARS:
            return DocumentType.ESSAY

    if _PROPOSAL_RE.search(text) or (_BUDGET_RE.search(text) and _TIMELINE_RE.search(text)):
        return DocumentType.PROPOSAL

    return DocumentType.GENERIC
