"""Sapling AI-content detector."""

from __future__ import annotations

from plainspoke.detector.base import HTTPDetector
from plainspoke.models.results import DetectionResult


class SaplingDetector(HTTPDetector):
    """Score text with Sapling's ``/api/v1/aidetect`` endpoint.

    Sapling takes its key in the request body rather than a header.
    """

    name = "sapling"

    async def _score(self, text: str) -> DetectionResult:
        data = await self._post(
            "/api/v1/aidetect",
            {"key": self._api_key, "text": text},
        )
        sentences = [
            (s["sentence"], s["score"])
            for s in data.get("sentence_scores", [])
            if "sentence" in s and "score" in s
        ]
        return self._build_result(data["score"], sentences)
