"""Per-document-type style rules for the stage-1 prompt."""

from __future__ import annotations

from types import MappingProxyType

from plainspoke.classifier import DocumentType

_EMAIL = (
    "DOCUMENT TYPE: EMAIL\n"
    "- Keep the greeting and sign-off; adjust only their wording if it sounds canned\n"
    "- Get to the point in the first two sentences\n"
    "- Write the way a colleague types: direct, a little informal, no filler pleasantries\n"
    "- Short paragraphs, one idea each; a one-line paragraph is fine\n"
    "- Keep every date, name, number, and request exactly as given"
)

_MEMO = (
    "DOCUMENT TYPE: MEMO\n"
    "- Keep the To/From/Subject/Date header lines untouched\n"
    "- Lead with the decision or action item, then the background\n"
    "- Plain business register; no marketing adjectives\n"
    "- Lists may stay lists, but vary how each item is phrased\n"
    "- Keep every figure, owner, and deadline exactly as given"
)

_ACADEMIC = (
    "DOCUMENT TYPE: ACADEMIC PAPER\n"
    "- Keep the formal register, but let the author's voice show through occasional first person plural\n"
    "- Preserve every citation marker, figure, statistic, and technical term verbatim\n"
    "- Mix long analytical sentences with short declarative ones\n"
    "- Replace stock academic connectors (Furthermore, Moreover, Additionally) with varied or no connectors\n"
    "- Qualify claims the way researchers do: suggests, appears to, in our sample"
)

_RESEARCH = (
    "DOCUMENT TYPE: RESEARCH PAPER\n"
    "- Keep methods, results, and discussion clearly separated if they already are\n"
    "- Preserve every citation marker, number, unit, and variable name verbatim\n"
    "- Describe procedures in plain past tense; avoid boilerplate like 'it is important to note'\n"
    "- Let limitations sound candid rather than formulaic\n"
    "- Vary sentence openings; do not start consecutive sentences with 'The'"
)

_ESSAY = (
    "DOCUMENT TYPE: ESSAY\n"
    "- Keep the thesis and the order of the main arguments\n"
    "- Sound like a thoughtful student or writer, not a textbook\n"
    "- Allow a rhetorical question or a brief aside where it fits naturally\n"
    "- Rework the conclusion so it does not open with 'In conclusion'\n"
    "- Transitions should come from the ideas themselves, not from stock phrases"
)

_PROPOSAL = (
    "DOCUMENT TYPE: PROPOSAL\n"
    "- Keep the structure: problem, approach, budget, timeline, outcomes\n"
    "- Persuasive but concrete; cut vague superlatives\n"
    "- Keep every amount, milestone, and date exactly as given\n"
    "- Use active voice for who does what\n"
    "- The executive summary, if present, should read like a person pitching, not a template"
)

_GENERIC = (
    "DOCUMENT TYPE: GENERAL TEXT\n"
    "- Match the original register; do not make it more formal or more casual than it is\n"
    "- Write the way a knowledgeable person explains something to a peer\n"
    "- Keep facts, names, and numbers exactly as given\n"
    "- Prefer concrete wording over abstract nouns"
)

STYLE_RULES: MappingProxyType[DocumentType, str] = MappingProxyType(
    {
        DocumentType.EMAIL: _EMAIL,
        DocumentType.MEMO: _MEMO,
        DocumentType.ACADEMIC_PAPER: _ACADEMIC,
        DocumentType.RESEARCH_PAPER: _RESEARCH,
        DocumentType.ESSAY: _ESSAY,
        DocumentType.PROPOSAL: _PROPOSAL,
        DocumentType.GENERIC: _GENERIC,
    }
)
