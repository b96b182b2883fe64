"""Tests for result data models."""

from __future__ import annotations

import pytest

from plainspoke.classifier import DocumentType
from plainspoke.models.results import (
    DetectionResult,
    PipelineDecision,
    QuotaStatus,
    RefinementOutcome,
    StageResult,
    Tier,
)


class TestTier:
    """Tier.parse() lenient mapping."""

    @pytest.mark.parametrize(
        ("raw", "tier"),
        [
            ("free", Tier.FREE),
            ("PAID", Tier.PAID),
            (" premium ", Tier.PREMIUM),
            ("gold", Tier.FREE),
            (None, Tier.FREE),
            (2, Tier.FREE),
            (["paid"], Tier.FREE),
        ],
    )
    def test_parse(self, raw: object, tier: Tier) -> None:
        assert Tier.parse(raw) is tier


class TestDetectionResult:
    """DetectionResult invariants."""

    def test_error_iff_no_score(self) -> None:
        with pytest.raises(ValueError):
            DetectionResult(detector="a", score=None)
        with pytest.raises(ValueError):
            DetectionResult(detector="a", score=10.0, error="x")

    def test_score_range(self) -> None:
        with pytest.raises(ValueError):
            DetectionResult(detector="a", score=101.0)
        with pytest.raises(ValueError):
            DetectionResult(detector="a", score=5.0, sentence_scores=(("s", -1.0),))

    def test_to_dict(self) -> None:
        result = DetectionResult(
            detector="a", score=12.5, sentence_scores=(("s.", 60.0),), flagged_sentences=("s.",)
        )
        assert result.to_dict() == {
            "detector": "a",
            "score": 12.5,
            "sentenceScores": [{"sentence": "s.", "score": 60.0}],
            "flaggedSentences": ["s."],
            "error": None,
        }


class TestStageResult:
    """StageResult helpers."""

    def test_errors_and_aggregate(self) -> None:
        stage = StageResult(
            text="t",
            detections={
                "a": DetectionResult(detector="a", score=40.0),
                "b": DetectionResult.failed("b", "HTTP 500"),
            },
        )
        assert stage.aggregate_score == 40.0
        assert stage.errors == ["b: HTTP 500"]
        assert stage.to_dict()["aggregateScore"] == 40.0

    def test_flagged_uses_detector_score_without_sentence_score(self) -> None:
        stage = StageResult(
            text="t",
            detections={"a": DetectionResult(detector="a", score=70.0, flagged_sentences=("x.",))},
        )
        assert stage.flagged() == [("x.", 70.0)]


def _stage(text: str, score: float | None = 10.0) -> StageResult:
    result = (
        DetectionResult(detector="a", score=score)
        if score is not None
        else DetectionResult.failed("a", "down")
    )
    return StageResult(text=text, detections={"a": result})


class TestPipelineDecision:
    """PipelineDecision final-text invariant."""

    def test_improved_uses_stage2_text(self) -> None:
        decision = PipelineDecision(
            text="two",
            document_type=DocumentType.GENERIC,
            stage1=_stage("one"),
            outcome=RefinementOutcome.IMPROVED,
            stage2=_stage("two"),
        )
        assert decision.stage2_applied is True
        assert decision.final_stage == 2

    def test_improved_with_stage1_text_rejected(self) -> None:
        with pytest.raises(ValueError):
            PipelineDecision(
                text="one",
                document_type=DocumentType.GENERIC,
                stage1=_stage("one"),
                outcome=RefinementOutcome.IMPROVED,
                stage2=_stage("two"),
            )

    def test_rejected_keeps_stage1(self) -> None:
        with pytest.raises(ValueError):
            PipelineDecision(
                text="two",
                document_type=DocumentType.GENERIC,
                stage1=_stage("one"),
                outcome=RefinementOutcome.REJECTED_REGRESSION,
                stage2=_stage("two"),
            )

    def test_errors_tagged_by_stage(self) -> None:
        decision = PipelineDecision(
            text="one",
            document_type=DocumentType.EMAIL,
            stage1=_stage("one", None),
            outcome=RefinementOutcome.SKIPPED_NO_SCORES,
        )
        assert decision.errors == ["stage1 a: down"]
        payload = decision.to_dict()
        assert payload["documentType"] == "email"
        assert payload["stage2"] is None
        assert payload["finalStage"] == 1


class TestQuotaStatus:
    """QuotaStatus arithmetic."""

    def test_remaining(self) -> None:
        status = QuotaStatus(used=29, limit=30, tier=Tier.FREE)
        assert status.within_quota is True
        assert status.to_dict() == {"used": 29, "limit": 30, "remaining": 1, "tier": "free"}

    def test_exhausted(self) -> None:
        status = QuotaStatus(used=30, limit=30, tier=Tier.FREE)
        assert status.within_quota is False
        assert status.remaining == 0
