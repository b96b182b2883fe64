"""Result data models for requests, detection, refinement stages, and quota."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from plainspoke.classifier import DocumentType


def _validate_score(value: float, name: str, low: float = 0.0, high: float = 100.0) -> None:
    """Validate that a score falls within the expected range."""
    if not (low <= value <= high):
        raise ValueError(f"{name} must be in [{low}, {high}], got {value}")


class Tier(Enum):
    """Subscription class determining quota ceilings."""

    FREE = "free"
    PAID = "paid"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: object) -> Tier:
        """Map a stored tier value to a Tier; non-strings and unknown values are free."""
        if not isinstance(value, str) or not value:
            return cls.FREE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.FREE


@dataclass(frozen=True, slots=True)
class HumanizationRequest:
    """A single rewrite request after authentication.

    Args:
        text: Raw input text.
        identity: Stable user identifier from the identity service.
        tier: Subscription tier of the identity.
        style_examples: Optional writing samples the rewrite should imitate.
    """

    text: str
    identity: str
    tier: Tier = Tier.FREE
    style_examples: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """One detector's verdict on one text.

    A missing score means "unknown", never "zero": ``error`` is populated
    exactly when ``score`` is None.

    Args:
        detector: Name of the detector that produced the result.
        score: AI-likelihood in [0, 100], or None when the detector failed.
        sentence_scores: Per-sentence (sentence, score) pairs, in text order.
        flagged_sentences: Sentences scoring at or above the detector's flag threshold.
        error: Failure reason when no score is available.
    """

    detector: str
    score: float | None
    sentence_scores: tuple[tuple[str, float], ...] = ()
    flagged_sentences: tuple[str, ...] = ()
    error: str | None = None

    def __post_init__(self) -> None:
        if self.score is None and not self.error:
            raise ValueError("error is required when score is None")
        if self.score is not None:
            if self.error is not None:
                raise ValueError("error must be None when a score is present")
            _validate_score(self.score, "score")
        for sentence, value in self.sentence_scores:
            _validate_score(value, f"sentence score for {sentence[:30]!r}")

    @classmethod
    def failed(cls, detector: str, reason: str) -> DetectionResult:
        """Build a score-less result for a detector that could not answer."""
        return cls(detector=detector, score=None, error=reason)

    @property
    def available(self) -> bool:
        return self.score is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "detector": self.detector,
            "score": self.score,
            "sentenceScores": [
                {"sentence": sentence, "score": value}
                for sentence, value in self.sentence_scores
            ],
            "flaggedSentences": list(self.flagged_sentences),
            "error": self.error,
        }


def aggregate_score(results: Iterable[DetectionResult]) -> float | None:
    """Mean of all present detector scores.

    Detectors without a score are excluded from the mean rather than
    counted as zero. Returns None when no detector produced a score.
    """
    scores = [r.score for r in results if r.score is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


@dataclass(frozen=True, slots=True)
class StageResult:
    """Text produced by one generation stage and its detector verdicts."""

    text: str
    detections: dict[str, DetectionResult] = field(default_factory=dict)

    @property
    def aggregate_score(self) -> float | None:
        return aggregate_score(self.detections.values())

    @property
    def errors(self) -> list[str]:
        """Failure reasons of detectors that produced no score."""
        return [
            f"{name}: {result.error}"
            for name, result in self.detections.items()
            if result.error is not None
        ]

    def flagged(self) -> list[tuple[str, float]]:
        """Flagged sentences across detectors with their highest score, highest first."""
        best: dict[str, float] = {}
        for result in self.detections.values():
            lookup = dict(result.sentence_scores)
            fallback = result.score if result.score is not None else 0.0
            for sentence in result.flagged_sentences:
                value = lookup.get(sentence, fallback)
                if value > best.get(sentence, -1.0):
                    best[sentence] = value
        return sorted(best.items(), key=lambda item: item[1], reverse=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "aggregateScore": self.aggregate_score,
            "detectors": {name: r.to_dict() for name, r in self.detections.items()},
        }


class RefinementOutcome(Enum):
    """Why the final text came from the stage that produced it."""

    SKIPPED_BELOW_THRESHOLD = "skipped_below_threshold"
    SKIPPED_NO_SCORES = "skipped_no_scores"
    SKIPPED_DISABLED = "skipped_disabled"
    IMPROVED = "improved"
    REJECTED_REGRESSION = "rejected_regression"
    REFINEMENT_UNAVAILABLE = "refinement_unavailable"


@dataclass(frozen=True, slots=True)
class PipelineDecision:
    """Accepted final text plus the record of how it was chosen."""

    text: str
    document_type: DocumentType
    stage1: StageResult
    outcome: RefinementOutcome
    stage2: StageResult | None = None

    def __post_init__(self) -> None:
        if self.outcome is RefinementOutcome.IMPROVED:
            if self.stage2 is None or self.text != self.stage2.text:
                raise ValueError("an improved decision must carry the stage-2 text")
        elif self.text != self.stage1.text:
            raise ValueError(f"{self.outcome.value} decision must carry the stage-1 text")

    @property
    def stage2_applied(self) -> bool:
        return self.outcome is RefinementOutcome.IMPROVED

    @property
    def final_stage(self) -> int:
        return 2 if self.stage2_applied else 1

    @property
    def errors(self) -> list[str]:
        """Detector failures from every stage that ran, tagged by stage."""
        errors = [f"stage1 {e}" for e in self.stage1.errors]
        if self.stage2 is not None:
            errors.extend(f"stage2 {e}" for e in self.stage2.errors)
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "text": self.text,
            "documentType": self.document_type.value,
            "outcome": self.outcome.value,
            "finalStage": self.final_stage,
            "stage1": self.stage1.to_dict(),
            "stage2": self.stage2.to_dict() if self.stage2 is not None else None,
            "errors": self.errors or None,
        }


@dataclass(frozen=True, slots=True)
class QuotaStatus:
    """Monthly request usage for one identity."""

    used: int
    limit: int
    tier: Tier

    def __post_init__(self) -> None:
        if self.used < 0:
            raise ValueError(f"used must be >= 0, got {self.used}")
        if self.limit <= 0:
            raise ValueError(f"limit must be > 0, got {self.limit}")

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def within_quota(self) -> bool:
        return self.used < self.limit

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the response ``quota`` block."""
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "tier": self.tier.value,
        }
