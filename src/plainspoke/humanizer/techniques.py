"""Rewrite technique sections shared by the stage-1 and stage-2 prompts."""

from __future__ import annotations

from enum import Enum


class Technique(Enum):
    """Technique checklist section, rendered in declaration order."""

    SENTENCE_LENGTH = (
        "SENTENCE LENGTH VARIATION:\n"
        "- Roughly 20% of sentences under 8 words, 20% over 25 words, the rest in between\n"
        "- Never three sentences of similar length in a row\n"
        "- An occasional fragment is fine when it adds emphasis"
    )
    DISCOURSE_MARKERS = (
        "DISCOURSE MARKERS (replace or drop):\n"
        "- Furthermore / Moreover / Additionally -> Also, Plus, On top of that, or nothing\n"
        "- However -> But, Still, That said\n"
        "- Therefore / Thus -> So, Which means\n"
        "- In conclusion -> So, All told, or restate the point directly\n"
        "- It is important to note that -> cut it and state the point"
    )
    CONTRACTIONS = (
        "CONTRACTIONS:\n"
        "- Aim for about one contraction every two or three sentences where the register allows\n"
        "- Keep formal documents lighter on contractions, but not at zero"
    )
    HEDGING = (
        "HEDGING VOCABULARY (use sparingly, where a person would actually hedge):\n"
        "- probably, likely, it seems, in most cases, more or less, as far as we can tell"
    )
    ANTI_PATTERNS = (
        "AVOID:\n"
        "- 'delve', 'tapestry', 'landscape', 'realm', 'pivotal', 'multifaceted', 'leverage' as a verb\n"
        "- Triplet lists in every paragraph\n"
        "- Every paragraph opening with a topic sentence and closing with a summary\n"
        "- Em-dashes, semicolons in every other sentence, and rhetorical 'Not only... but also'\n"
        "- Markdown, headings, bullet formatting, or commentary about the rewrite"
    )

    @property
    def section(self) -> str:
        """Return the rendered prompt section."""
        return self.value


def render_techniques() -> str:
    """All technique sections joined by blank lines."""
    return "\n\n".join(t.section for t in Technique)
