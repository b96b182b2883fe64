"""Prompt construction for the plainspoke humanization pipeline.

Assembles mission statement + document-type rules + technique checklist
+ optional style examples + input text into a complete prompt string.
Every function here is pure string assembly: identical inputs give
identical prompts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from plainspoke.humanizer.style_rules import STYLE_RULES
from plainspoke.humanizer.techniques import render_techniques

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plainspoke.classifier import DocumentType
    from plainspoke.models.results import StageResult

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_STAGE1_MISSION = (
    "You are an experienced human editor. Rewrite the text below so it reads as if a "
    "person wrote it from scratch, while keeping every fact, claim, and the overall "
    "structure intact. Do not add information, do not drop information, and do not "
    "invent sources, numbers, or quotes."
)

_STAGE2_MISSION = (
    "You are an experienced human editor doing a second, targeted pass. An earlier "
    "rewrite of the text below still has sentences that read as machine-written. "
    "Rewrite ONLY the flagged sentences listed below. Leave every other sentence "
    "word-for-word as it is, and make sure each rewritten sentence still connects "
    "smoothly to the sentences around it."
)

_STAGE2_GLOBAL_MISSION = (
    "You are an experienced human editor doing a second, light pass. Detectors still "
    "rate the text below as partly machine-written but did not point to specific "
    "sentences. Make small, scattered edits across the whole text (word choice, "
    "sentence openings, rhythm) without changing its meaning or structure."
)

_OUTPUT_RULES = (
    "OUTPUT RULES:\n"
    "- Return only the rewritten text as plain prose\n"
    "- No preamble, no notes, no quotation marks around the result\n"
    "- Keep paragraph breaks where the original has them"
)

_SIMPLE_BASE = (
    "You are a humanizer. Rewrite the input so it sounds natural, fluent and human. "
    "Keep the original meaning."
)

_SIMPLE_MODE_TONES: dict[str, str] = {
    "soft": "Tone: friendly and casual.",
    "aggressive": "Tone: direct, punchy.",
    "academic": "Tone: formal and academic.",
}

_SIMPLE_LANGUAGES: dict[str, str] = {
    "ar": "Output in modern standard Arabic.",
}

SIMPLE_MODES = frozenset({"default", *_SIMPLE_MODE_TONES})

# ---------------------------------------------------------------------------
# PromptComposer
# ---------------------------------------------------------------------------


class PromptComposer:
    """Compose stage-1, stage-2, and single-pass rewrite prompts.

    Args:
        max_flagged_sentences: Upper bound on flagged sentences embedded in a
            stage-2 prompt (highest scores kept).
    """

    def __init__(self, max_flagged_sentences: int = 15) -> None:
        self._max_flagged = max_flagged_sentences

    def compose_stage1(
        self,
        text: str,
        document_type: DocumentType,
        style_examples: Sequence[str] = (),
    ) -> str:
        """Assemble the initial rewrite prompt.

        Args:
            text: Raw input text.
            document_type: Label from :func:`plainspoke.classifier.classify`.
            style_examples: User-supplied writing samples, embedded verbatim.

        Returns:
            Complete prompt string for the generation client.
        """
        parts: list[str] = [
            _STAGE1_MISSION,
            "",
            STYLE_RULES[document_type],
            "",
            render_techniques(),
        ]

        examples = [ex for ex in style_examples if ex.strip()]
        if examples:
            parts.append("")
            parts.append(
                "STYLE EXAMPLES (match the voice, rhythm, and word choice of these samples; "
                "do not copy their content):"
            )
            for i, example in enumerate(examples, 1):
                parts.append(f"\nExample {i}:\n{example}")

        parts.append("")
        parts.append(_OUTPUT_RULES)
        parts.append("")
        parts.append(f"TEXT:\n{text}")
        return "\n".join(parts)

    def compose_stage2(self, text: str, stage1: StageResult) -> str:
        """Assemble the targeted refinement prompt.

        Embeds the sentences the stage-1 detectors flagged (merged across
        detectors, highest score first). Falls back to a light global pass
        listing per-detector scores when nothing was flagged.

        Args:
            text: Stage-1 output text.
            stage1: Stage-1 text and detector verdicts.

        Returns:
            Complete prompt string for the generation client.
        """
        flagged = stage1.flagged()[: self._max_flagged]

        if flagged:
            parts: list[str] = [_STAGE2_MISSION, "", "FLAGGED SENTENCES (AI-likelihood %):"]
            for i, (sentence, score) in enumerate(flagged, 1):
                parts.append(f"{i}. [{score:.0f}%] {sentence}")
        else:
            parts = [_STAGE2_GLOBAL_MISSION, "", "DETECTOR SCORES (AI-likelihood %):"]
            for name, result in stage1.detections.items():
                if result.score is not None:
                    parts.append(f"- {name}: {result.score:.0f}%")

        parts.append("")
        parts.append(render_techniques())
        parts.append("")
        parts.append(_OUTPUT_RULES)
        parts.append("")
        parts.append(f"TEXT:\n{text}")
        return "\n".join(parts)

    @staticmethod
    def compose_simple(text: str, mode: str = "default", language: str = "en") -> str:
        """Assemble the single-pass prompt used by the credit-charged variant."""
        prompt = _SIMPLE_BASE
        tone = _SIMPLE_MODE_TONES.get(mode)
        if tone:
            prompt += f" {tone}"
        lang_line = _SIMPLE_LANGUAGES.get(language)
        if lang_line:
            prompt += f" {lang_line}"
        return f"{prompt}\n\nInput:\n{text}\n\nOutput:"
