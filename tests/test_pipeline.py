"""Tests for the two-stage refinement orchestrator."""

from __future__ import annotations

import pytest

from plainspoke.config import RefinementConfig
from plainspoke.detector.ensemble import DetectorPanel
from plainspoke.errors import GenerationTimeout, GenerationUnavailable
from plainspoke.humanizer.prompts import PromptComposer
from plainspoke.models.results import HumanizationRequest, RefinementOutcome
from plainspoke.pipeline import TRANSITIONS, PipelineState, RefinementOrchestrator
from plainspoke.progress import PipelineEvent

ESSAY = (
    "I believe public libraries matter more now than ever. They offer quiet space, free "
    "internet and help for people who need it. In conclusion, we should fund them."
)


def _request(text: str = "Some plain input text.") -> HumanizationRequest:
    return HumanizationRequest(text=text, identity="u1")


def _orchestrator(generator, detectors, threshold: float = 3.0, enabled: bool = True):
    return RefinementOrchestrator(
        generator=generator,
        panel=DetectorPanel(detectors),
        composer=PromptComposer(),
        refinement=RefinementConfig(enabled=enabled, threshold=threshold),
    )


class TestTransitions:
    """Transition table shape."""

    def test_terminal_states(self) -> None:
        assert TRANSITIONS[PipelineState.FINALIZED] == frozenset()
        assert TRANSITIONS[PipelineState.FAILED] == frozenset()

    def test_every_state_listed(self) -> None:
        assert set(TRANSITIONS) == set(PipelineState)


class TestSkipStage2:
    """Stage 2 is skipped when stage 1 is already good enough."""

    async def test_below_threshold(self, make_generator, make_detector) -> None:
        """Aggregate at or below the threshold keeps stage-1 text exactly."""
        gen = make_generator("Stage one output.")
        orch = _orchestrator(gen, [make_detector("a", 2.0), make_detector("b", 3.0)])
        decision = await orch.run(_request())
        assert decision.text == "Stage one output."
        assert decision.outcome is RefinementOutcome.SKIPPED_BELOW_THRESHOLD
        assert decision.stage2_applied is False
        assert decision.stage2 is None
        assert len(gen.prompts) == 1

    async def test_aggregate_at_threshold(self, make_generator, make_detector) -> None:
        """A high detector averaged down to the threshold still skips stage 2."""
        gen = make_generator("Stage one output.")
        orch = _orchestrator(gen, [make_detector("a", 6.0), make_detector("b", 0.0)])
        decision = await orch.run(_request())
        assert decision.outcome is RefinementOutcome.SKIPPED_BELOW_THRESHOLD

    async def test_all_detectors_fail(self, make_generator, make_detector) -> None:
        """No scores means no refinement; errors are reported."""
        gen = make_generator("Stage one output.")
        orch = _orchestrator(gen, [make_detector("a", None), make_detector("b", None)])
        decision = await orch.run(_request())
        assert decision.text == "Stage one output."
        assert decision.outcome is RefinementOutcome.SKIPPED_NO_SCORES
        assert decision.errors == ["stage1 a: HTTP 503", "stage1 b: HTTP 503"]

    async def test_refinement_disabled(self, make_generator, make_detector) -> None:
        gen = make_generator("Stage one output.")
        orch = _orchestrator(gen, [make_detector("a", 90.0)], enabled=False)
        decision = await orch.run(_request())
        assert decision.outcome is RefinementOutcome.SKIPPED_DISABLED
        assert len(gen.prompts) == 1

    async def test_relaxed_threshold(self, make_generator, make_detector) -> None:
        gen = make_generator("Stage one output.")
        orch = _orchestrator(gen, [make_detector("a", 7.5)], threshold=8.0)
        decision = await orch.run(_request())
        assert decision.stage2_applied is False


class TestStage2:
    """Stage 2 accept/reject decisions."""

    async def test_improved(self, make_generator, make_detector) -> None:
        gen = make_generator("Stage one.", "Stage two.")
        orch = _orchestrator(gen, [make_detector("a", 40.0, 10.0), make_detector("b", 20.0, 20.0)])
        decision = await orch.run(_request())
        assert decision.text == "Stage two."
        assert decision.outcome is RefinementOutcome.IMPROVED
        assert decision.final_stage == 2
        assert decision.stage2 is not None
        assert decision.stage2.aggregate_score == 15.0

    async def test_regression_rejected(self, make_generator, make_detector) -> None:
        """One detector getting worse rejects stage 2 even if the mean drops."""
        gen = make_generator("Stage one.", "Stage two.")
        orch = _orchestrator(gen, [make_detector("a", 40.0, 1.0), make_detector("b", 20.0, 21.0)])
        decision = await orch.run(_request())
        assert decision.text == "Stage one."
        assert decision.outcome is RefinementOutcome.REJECTED_REGRESSION
        assert decision.stage2 is not None

    async def test_missing_stage2_score_non_blocking(self, make_generator, make_detector) -> None:
        gen = make_generator("Stage one.", "Stage two.")
        orch = _orchestrator(gen, [make_detector("a", 40.0, 5.0), make_detector("b", 20.0, None)])
        decision = await orch.run(_request())
        assert decision.text == "Stage two."
        assert decision.errors == ["stage2 b: HTTP 503"]

    async def test_stage2_prompt_lists_flagged(self, make_generator, make_detector) -> None:
        gen = make_generator("Stage one.", "Stage two.")
        det = make_detector("a", 80.0, 10.0, flagged=[("Stage one.", 80.0)])
        await _orchestrator(gen, [det]).run(_request())
        assert "1. [80%] Stage one." in gen.prompts[1]
        assert gen.prompts[1].endswith("TEXT:\nStage one.")
        assert det.texts == ["Stage one.", "Stage two."]

    async def test_stage2_generation_failure(self, make_generator, make_detector) -> None:
        """A failed refinement keeps stage-1 text and does not raise."""
        gen = make_generator("Stage one.", GenerationTimeout("slow"))
        orch = _orchestrator(gen, [make_detector("a", 50.0)])
        decision = await orch.run(_request())
        assert decision.text == "Stage one."
        assert decision.outcome is RefinementOutcome.REFINEMENT_UNAVAILABLE
        assert decision.stage2 is None

    async def test_stage2_detection_crash(self, make_generator, make_detector) -> None:
        class CrashingPanel(DetectorPanel):
            calls = 0

            async def detect_all(self, text: str):  # type: ignore[override]
                self.calls += 1
                if self.calls == 2:
                    raise RuntimeError("panel exploded")
                return await super().detect_all(text)

        orch = RefinementOrchestrator(
            generator=make_generator("Stage one.", "Stage two."),
            panel=CrashingPanel([make_detector("a", 50.0)]),
            composer=PromptComposer(),
            refinement=RefinementConfig(),
        )
        decision = await orch.run(_request())
        assert decision.text == "Stage one."
        assert decision.outcome is RefinementOutcome.REFINEMENT_UNAVAILABLE


class TestStage1Failure:
    """Stage-1 generation failure is terminal."""

    async def test_propagates(self, make_generator, make_detector) -> None:
        det = make_detector("a", 1.0)
        orch = _orchestrator(make_generator(GenerationUnavailable("down", 429)), [det])
        with pytest.raises(GenerationUnavailable) as exc_info:
            await orch.run(_request())
        assert exc_info.value.status_code == 429
        assert det.texts == []


class TestClassificationAndProgress:
    """Document type selection and progress events."""

    async def test_essay_rules_used(self, make_generator, make_detector) -> None:
        gen = make_generator("Rewritten essay.")
        decision = await _orchestrator(gen, [make_detector("a", 1.0)]).run(_request(ESSAY))
        assert decision.document_type.value == "essay"
        assert "DOCUMENT TYPE: ESSAY" in gen.prompts[0]

    async def test_style_examples_in_prompt(self, make_generator, make_detector) -> None:
        gen = make_generator("Out.")
        request = HumanizationRequest(text="In.", identity="u1", style_examples=("My voice.",))
        await _orchestrator(gen, [make_detector("a", 1.0)]).run(request)
        assert "Example 1:\nMy voice." in gen.prompts[0]

    async def test_events_follow_transitions(self, make_generator, make_detector) -> None:
        events: list[PipelineEvent] = []
        gen = make_generator("One.", "Two.")
        await _orchestrator(gen, [make_detector("a", 40.0, 10.0)]).run(
            _request(), progress_callback=events.append
        )
        states = [PipelineState(e.state) for e in events]
        assert states == [
            PipelineState.INITIAL,
            PipelineState.STAGE1_GENERATED,
            PipelineState.STAGE1_DETECTED,
            PipelineState.STAGE2_GENERATED,
            PipelineState.STAGE2_DETECTED,
            PipelineState.FINALIZED,
        ]
        for prev, nxt in zip(states, states[1:]):
            assert nxt in TRANSITIONS[prev]
        assert events[-1].aggregate_score == 10.0
        assert events[-1].detail == "Outcome: improved"

    async def test_failed_event(self, make_generator, make_detector) -> None:
        events: list[PipelineEvent] = []
        orch = _orchestrator(make_generator(GenerationTimeout("slow")), [make_detector("a", 1.0)])
        with pytest.raises(GenerationTimeout):
            await orch.run(_request(), progress_callback=events.append)
        assert events[-1].state == "FAILED"
