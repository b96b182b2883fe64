"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

import pytest

from plainspoke.config import PlainspokeConfig, load_config
from plainspoke.models.results import DetectionResult


@pytest.fixture
def default_config(tmp_path: Any) -> PlainspokeConfig:
    """Load default config (strict profile), ignoring any user config."""
    return load_config(user_config_path=tmp_path / "missing.toml")


@pytest.fixture
def relaxed_config(tmp_path: Any) -> PlainspokeConfig:
    """Load relaxed profile config."""
    return load_config(profile="relaxed", user_config_path=tmp_path / "missing.toml")


class FakeGenerator:
    """Text generator returning queued outputs (or raising queued errors)."""

    def __init__(self, outputs: Iterable[str | BaseException]) -> None:
        self._outputs = list(outputs)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._outputs:
            raise AssertionError("FakeGenerator called more times than expected")
        item = self._outputs.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeDetector:
    """Detector returning one queued score per call; None means failure."""

    def __init__(
        self,
        name: str,
        scores: Sequence[float | None | BaseException],
        flagged: Sequence[tuple[str, float]] = (),
    ) -> None:
        self.name = name
        self._scores = list(scores)
        self._flagged = tuple(flagged)
        self.texts: list[str] = []

    async def detect(self, text: str) -> DetectionResult:
        self.texts.append(text)
        score = self._scores.pop(0)
        if isinstance(score, BaseException):
            raise score
        if score is None:
            return DetectionResult.failed(self.name, "HTTP 503")
        return DetectionResult(
            detector=self.name,
            score=score,
            sentence_scores=self._flagged,
            flagged_sentences=tuple(s for s, _ in self._flagged),
        )


@pytest.fixture
def make_generator() -> Callable[..., FakeGenerator]:
    """Factory for queued fake generators."""

    def _make(*outputs: str | BaseException) -> FakeGenerator:
        return FakeGenerator(outputs)

    return _make


@pytest.fixture
def make_detector() -> Callable[..., FakeDetector]:
    """Factory for fake detectors with per-call scores."""

    def _make(
        name: str,
        *scores: float | None | BaseException,
        flagged: Sequence[tuple[str, float]] = (),
    ) -> FakeDetector:
        return FakeDetector(name, scores, flagged)

    return _make
