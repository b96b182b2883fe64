"""Concurrent fan-out over detectors and cross-stage score comparison."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any, Self

from plainspoke.models.results import DetectionResult, StageResult, aggregate_score

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plainspoke.core.protocols import Detector

logger = logging.getLogger(__name__)

__all__ = ["DetectorPanel", "aggregate_score", "find_regressions"]


class DetectorPanel:
    """Run every configured detector on a text concurrently.

    A slow or failing detector never blocks the others: each detector
    bounds its own call, and any exception that slips through is
    recorded as that detector's failure.

    Args:
        detectors: Detectors to consult, in reporting order.
    """

    def __init__(self, detectors: Sequence[Detector]) -> None:
        self._detectors = list(detectors)
        self._stack: AsyncExitStack | None = None

    async def __aenter__(self) -> Self:
        stack = AsyncExitStack()
        try:
            for detector in self._detectors:
                if hasattr(detector, "__aenter__"):
                    await stack.enter_async_context(detector)  # type: ignore[arg-type]
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._stack is not None:
            await self._stack.__aexit__(*exc)
            self._stack = None

    @property
    def names(self) -> list[str]:
        return [d.name for d in self._detectors]

    async def detect_all(self, text: str) -> StageResult:
        """Score ``text`` with every detector and collect the verdicts.

        Args:
            text: Candidate text produced by a generation stage.

        Returns:
            StageResult keyed by detector name.
        """
        outcomes = await asyncio.gather(
            *(d.detect(text) for d in self._detectors),
            return_exceptions=True,
        )

        detections: dict[str, DetectionResult] = {}
        for detector, outcome in zip(self._detectors, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(
                    "Detector %s raised instead of reporting: %r", detector.name, outcome
                )
                outcome = DetectionResult.failed(detector.name, f"unexpected error: {outcome!r}")
            detections[detector.name] = outcome

        logger.info(
            "Detection complete: aggregate=%s, failed=%d/%d",
            _fmt(aggregate_score(detections.values())),
            sum(1 for r in detections.values() if r.score is None),
            len(detections),
        )
        return StageResult(text=text, detections=detections)


def find_regressions(stage1: StageResult, stage2: StageResult) -> list[str]:
    """Names of detectors whose stage-2 score is worse than their stage-1 score.

    A detector missing a score in either stage cannot be compared and
    never counts as a regression.
    """
    regressed: list[str] = []
    for name, before in stage1.detections.items():
        after = stage2.detections.get(name)
        if after is None or before.score is None or after.score is None:
            continue
        if after.score > before.score:
            regressed.append(name)
    return regressed


def _fmt(score: float | None) -> str:
    return "unknown" if score is None else f"{score:.1f}"
