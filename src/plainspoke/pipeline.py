"""Two-stage refinement orchestrator: generate, detect, refine, decide."""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from plainspoke.classifier import DocumentType, classify
from plainspoke.detector.ensemble import find_regressions
from plainspoke.errors import GenerationError, RefinementFailure
from plainspoke.models.results import PipelineDecision, RefinementOutcome
from plainspoke.progress import PipelineEvent

if TYPE_CHECKING:
    from plainspoke.config import RefinementConfig
    from plainspoke.core.protocols import TextGenerator
    from plainspoke.detector.ensemble import DetectorPanel
    from plainspoke.humanizer.prompts import PromptComposer
    from plainspoke.models.results import HumanizationRequest, StageResult

logger = logging.getLogger(__name__)


class PipelineState(enum.Enum):
    """States of one request's trip through the refinement pipeline."""

    INITIAL = "INITIAL"
    STAGE1_GENERATED = "STAGE1_GENERATED"
    STAGE1_DETECTED = "STAGE1_DETECTED"
    SKIP_STAGE2 = "SKIP_STAGE2"
    STAGE2_GENERATED = "STAGE2_GENERATED"
    STAGE2_DETECTED = "STAGE2_DETECTED"
    FINALIZED = "FINALIZED"
    FAILED = "FAILED"


TRANSITIONS: MappingProxyType[PipelineState, frozenset[PipelineState]] = MappingProxyType(
    {
        PipelineState.INITIAL: frozenset(
            {PipelineState.STAGE1_GENERATED, PipelineState.FAILED}
        ),
        PipelineState.STAGE1_GENERATED: frozenset(
            {PipelineState.STAGE1_DETECTED, PipelineState.FAILED}
        ),
        PipelineState.STAGE1_DETECTED: frozenset(
            {PipelineState.SKIP_STAGE2, PipelineState.STAGE2_GENERATED}
        ),
        PipelineState.SKIP_STAGE2: frozenset({PipelineState.FINALIZED}),
        PipelineState.STAGE2_GENERATED: frozenset(
            {PipelineState.STAGE2_DETECTED, PipelineState.FINALIZED}
        ),
        PipelineState.STAGE2_DETECTED: frozenset({PipelineState.FINALIZED}),
        PipelineState.FINALIZED: frozenset(),
        PipelineState.FAILED: frozenset(),
    }
)


@dataclass(slots=True)
class _Run:
    """Mutable working state for a single request."""

    request: HumanizationRequest
    document_type: DocumentType = DocumentType.GENERIC
    stage1_text: str = ""
    stage1: StageResult | None = None
    stage2_text: str = ""
    stage2: StageResult | None = None
    outcome: RefinementOutcome | None = None
    error: BaseException | None = None


class RefinementOrchestrator:
    """Drive one request through the explicit state machine.

    Each non-terminal state has one handler that performs its step and
    returns the next state; every move is checked against
    :data:`TRANSITIONS`.

    Args:
        generator: Text-generation client.
        panel: Detector panel consulted after each generation stage.
        composer: Prompt builder.
        refinement: Stage-2 policy (enabled flag and threshold).
    """

    def __init__(
        self,
        generator: TextGenerator,
        panel: DetectorPanel,
        composer: PromptComposer,
        refinement: RefinementConfig,
    ) -> None:
        self._generator = generator
        self._panel = panel
        self._composer = composer
        self._refinement = refinement
        self._handlers: dict[PipelineState, Callable[[_Run], Awaitable[PipelineState]]] = {
            PipelineState.INITIAL: self._generate_stage1,
            PipelineState.STAGE1_GENERATED: self._detect_stage1,
            PipelineState.STAGE1_DETECTED: self._decide_refinement,
            PipelineState.SKIP_STAGE2: self._skip_stage2,
            PipelineState.STAGE2_GENERATED: self._detect_stage2,
            PipelineState.STAGE2_DETECTED: self._compare_stages,
        }

    async def run(
        self,
        request: HumanizationRequest,
        progress_callback: Callable[[PipelineEvent], None] | None = None,
    ) -> PipelineDecision:
        """Rewrite ``request.text`` and return the accepted final text.

        Args:
            request: Validated request.
            progress_callback: Optional callback receiving one event per transition.

        Returns:
            PipelineDecision whose text is exactly the stage-1 or stage-2 output.

        Raises:
            GenerationError: Stage-1 generation failed.
        """
        run = _Run(request=request)
        state = PipelineState.INITIAL
        self._emit(progress_callback, state, run, "Classifying and generating")

        while state not in (PipelineState.FINALIZED, PipelineState.FAILED):
            next_state = await self._handlers[state](run)
            if next_state not in TRANSITIONS[state]:
                raise RuntimeError(f"illegal transition {state.value} -> {next_state.value}")
            logger.debug("Pipeline %s -> %s", state.value, next_state.value)
            state = next_state
            self._emit(progress_callback, state, run, self._describe(state, run))

        if state is PipelineState.FAILED:
            assert run.error is not None
            raise run.error

        return self._finalize(run)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _generate_stage1(self, run: _Run) -> PipelineState:
        run.document_type = classify(run.request.text)
        prompt = self._composer.compose_stage1(
            run.request.text, run.document_type, run.request.style_examples
        )
        try:
            run.stage1_text = await self._generator.generate(prompt)
        except GenerationError as exc:
            logger.error("Stage-1 generation failed: %s", exc)
            run.error = exc
            return PipelineState.FAILED
        logger.info(
            "Stage 1 generated %d chars for %s input",
            len(run.stage1_text),
            run.document_type.value,
        )
        return PipelineState.STAGE1_GENERATED

    async def _detect_stage1(self, run: _Run) -> PipelineState:
        try:
            run.stage1 = await self._panel.detect_all(run.stage1_text)
        except Exception as exc:
            logger.error("Stage-1 detection failed", exc_info=True)
            run.error = exc
            return PipelineState.FAILED
        return PipelineState.STAGE1_DETECTED

    async def _decide_refinement(self, run: _Run) -> PipelineState:
        stage1 = run.stage1
        assert stage1 is not None
        aggregate = stage1.aggregate_score

        if aggregate is None:
            logger.warning("No detector produced a score; keeping stage-1 text")
            run.outcome = RefinementOutcome.SKIPPED_NO_SCORES
            return PipelineState.SKIP_STAGE2

        if not self._refinement.enabled:
            logger.info("Refinement disabled; keeping stage-1 text (aggregate %.1f)", aggregate)
            run.outcome = RefinementOutcome.SKIPPED_DISABLED
            return PipelineState.SKIP_STAGE2

        if aggregate <= self._refinement.threshold:
            logger.info(
                "Stage-1 aggregate %.1f within threshold %.1f; skipping refinement",
                aggregate,
                self._refinement.threshold,
            )
            run.outcome = RefinementOutcome.SKIPPED_BELOW_THRESHOLD
            return PipelineState.SKIP_STAGE2

        prompt = self._composer.compose_stage2(run.stage1_text, stage1)
        try:
            run.stage2_text = await self._generator.generate(prompt)
        except GenerationError as exc:
            logger.warning("Refinement unavailable: %s", RefinementFailure(str(exc)))
            run.outcome = RefinementOutcome.REFINEMENT_UNAVAILABLE
            return PipelineState.SKIP_STAGE2
        return PipelineState.STAGE2_GENERATED

    async def _skip_stage2(self, run: _Run) -> PipelineState:
        return PipelineState.FINALIZED

    async def _detect_stage2(self, run: _Run) -> PipelineState:
        try:
            run.stage2 = await self._panel.detect_all(run.stage2_text)
        except Exception as exc:
            logger.warning(
                "Refinement unavailable: %s",
                RefinementFailure(f"stage-2 detection failed: {exc!r}"),
                exc_info=True,
            )
            run.outcome = RefinementOutcome.REFINEMENT_UNAVAILABLE
            return PipelineState.FINALIZED
        return PipelineState.STAGE2_DETECTED

    async def _compare_stages(self, run: _Run) -> PipelineState:
        assert run.stage1 is not None and run.stage2 is not None
        regressed = find_regressions(run.stage1, run.stage2)
        if regressed:
            logger.info("Stage 2 rejected; regression on %s", ", ".join(regressed))
            run.outcome = RefinementOutcome.REJECTED_REGRESSION
        else:
            logger.info("Stage 2 accepted")
            run.outcome = RefinementOutcome.IMPROVED
        return PipelineState.FINALIZED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _finalize(run: _Run) -> PipelineDecision:
        assert run.stage1 is not None and run.outcome is not None
        improved = run.outcome is RefinementOutcome.IMPROVED
        return PipelineDecision(
            text=run.stage2_text if improved else run.stage1_text,
            document_type=run.document_type,
            stage1=run.stage1,
            outcome=run.outcome,
            stage2=run.stage2,
        )

    @staticmethod
    def _describe(state: PipelineState, run: _Run) -> str:
        if state is PipelineState.STAGE1_GENERATED:
            return f"Stage 1 produced {len(run.stage1_text)} chars"
        if state in (PipelineState.SKIP_STAGE2, PipelineState.FINALIZED) and run.outcome:
            return f"Outcome: {run.outcome.value}"
        if state is PipelineState.FAILED:
            return f"Failed: {run.error}"
        return state.value.replace("_", " ").lower()

    @staticmethod
    def _emit(
        callback: Callable[[PipelineEvent], None] | None,
        state: PipelineState,
        run: _Run,
        detail: str,
    ) -> None:
        if callback is None:
            return
        latest = run.stage2 or run.stage1
        callback(
            PipelineEvent(
                state=state.value,
                aggregate_score=latest.aggregate_score if latest is not None else None,
                detail=detail,
            )
        )
