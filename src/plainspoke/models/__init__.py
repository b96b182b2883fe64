"""Request, detection, refinement, and quota data models."""

from __future__ import annotations

from plainspoke.models.results import (
    DetectionResult,
    HumanizationRequest,
    PipelineDecision,
    QuotaStatus,
    RefinementOutcome,
    StageResult,
    Tier,
    aggregate_score,
)

__all__ = [
    "DetectionResult",
    "HumanizationRequest",
    "PipelineDecision",
    "QuotaStatus",
    "RefinementOutcome",
    "StageResult",
    "Tier",
    "aggregate_score",
]
