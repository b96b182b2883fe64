"""Request-level flow: guards, pipeline, and usage accounting."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from plainspoke.errors import InputValidationError
from plainspoke.humanizer.prompts import SIMPLE_MODES, PromptComposer
from plainspoke.validation import validate_text

if TYPE_CHECKING:
    from collections.abc import Callable

    from plainspoke.config import LimitsConfig
    from plainspoke.core.protocols import TextGenerator
    from plainspoke.guard import CreditGuard, QuotaGuard, RateGuard
    from plainspoke.models.results import HumanizationRequest, PipelineDecision, QuotaStatus
    from plainspoke.pipeline import RefinementOrchestrator
    from plainspoke.progress import PipelineEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HumanizeOutcome:
    """Everything the two-stage endpoint reports back."""

    decision: PipelineDecision
    quota: QuotaStatus
    processing_time_ms: int
    text_length: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the response body."""
        decision = self.decision
        return {
            "humanizedText": decision.text,
            "documentType": decision.document_type.value,
            "detection": {
                "stage1": decision.stage1.to_dict(),
                "stage2": decision.stage2.to_dict() if decision.stage2 is not None else None,
                "errors": decision.errors or None,
            },
            "metadata": {
                "processingTimeMs": self.processing_time_ms,
                "textLength": self.text_length,
                "outputLength": len(decision.text),
                "stage2Applied": decision.stage2_applied,
                "refinementOutcome": decision.outcome.value,
            },
            "quota": self.quota.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class SimpleOutcome:
    """Result of a single-pass, credit-charged rewrite."""

    output: str
    credits_used: int
    credits_remaining: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output,
            "creditsUsed": self.credits_used,
            "creditsRemaining": self.credits_remaining,
        }


class HumanizeService:
    """Apply every pre-flight check, then run the pipeline and account usage.

    Validation, rate and quota checks all run before any outbound call.
    Usage is recorded only after the pipeline returns, so failed or
    cancelled requests are never counted.

    Args:
        orchestrator: Two-stage refinement pipeline.
        rate_guard: Per-identity burst limiter.
        quota_guard: Monthly per-tier quota.
        limits: Input limits.
        clock: Monotonic clock used for ``processingTimeMs``.
    """

    def __init__(
        self,
        orchestrator: RefinementOrchestrator,
        rate_guard: RateGuard,
        quota_guard: QuotaGuard,
        limits: LimitsConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._orchestrator = orchestrator
        self._rate_guard = rate_guard
        self._quota_guard = quota_guard
        self._limits = limits
        self._clock = clock

    async def humanize(
        self,
        request: HumanizationRequest,
        progress_callback: Callable[[PipelineEvent], None] | None = None,
    ) -> HumanizeOutcome:
        """Run one two-stage request end to end.

        Raises:
            InputValidationError: Text rejected.
            RateLimitError: Burst limit hit.
            QuotaExceededError: Monthly quota used up.
            GenerationError: Stage-1 generation failed.
            StorageError: Quota storage unavailable.
        """
        started = self._clock()
        validate_text(request.text, self._limits.max_text_length)
        self._rate_guard.check(request.identity)
        await self._quota_guard.ensure_within(request.identity, request.tier)

        decision = await self._orchestrator.run(request, progress_callback)

        quota = await self._quota_guard.increment(request.identity, request.tier)
        elapsed_ms = int((self._clock() - started) * 1000)
        logger.info(
            "Humanized %d chars for %s in %dms (%s, quota %d/%d)",
            len(request.text),
            request.identity,
            elapsed_ms,
            decision.outcome.value,
            quota.used,
            quota.limit,
        )
        return HumanizeOutcome(
            decision=decision,
            quota=quota,
            processing_time_ms=elapsed_ms,
            text_length=len(request.text),
        )


class SimpleHumanizeService:
    """Single-pass rewrite charged against the credit ledger.

    Args:
        generator: Text-generation client.
        rate_guard: Per-identity burst limiter.
        credit_guard: Balance check and deduction.
        limits: Input limits.
    """

    def __init__(
        self,
        generator: TextGenerator,
        rate_guard: RateGuard,
        credit_guard: CreditGuard,
        limits: LimitsConfig,
    ) -> None:
        self._generator = generator
        self._rate_guard = rate_guard
        self._credit_guard = credit_guard
        self._limits = limits

    async def humanize(
        self,
        identity: str,
        text: str,
        mode: str = "default",
        language: str = "en",
    ) -> SimpleOutcome:
        """Rewrite ``text`` once and deduct credits on success.

        Raises:
            InputValidationError: Text rejected or unknown mode.
            RateLimitError: Burst limit hit.
            InsufficientCreditsError: Balance below the charge.
            GenerationError: Generation failed (no credits deducted).
        """
        validate_text(text, self._limits.max_text_length)
        if mode not in SIMPLE_MODES:
            raise InputValidationError(f"Unknown mode: {mode}")
        self._rate_guard.check(identity)
        needed = await self._credit_guard.ensure_covered(identity, text)

        output = await self._generator.generate(PromptComposer.compose_simple(text, mode, language))

        remaining = await self._credit_guard.charge(identity, needed)
        return SimpleOutcome(output=output, credits_used=needed, credits_remaining=remaining)
