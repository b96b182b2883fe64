"""GPTZero text-prediction detector."""

from __future__ import annotations

from typing import Any

from plainspoke.detector.base import HTTPDetector
from plainspoke.errors import DetectionUnavailable
from plainspoke.models.results import DetectionResult


class GPTZeroDetector(HTTPDetector):
    """Score text with GPTZero's ``/v2/predict/text`` endpoint.

    The document-level ``completely_generated_prob`` becomes the score;
    ``sentences[].generated_prob`` become per-sentence scores.
    """

    name = "gptzero"

    async def _score(self, text: str) -> DetectionResult:
        data = await self._post(
            "/v2/predict/text",
            {"document": text},
            headers={"x-api-key": self._api_key},
        )
        documents: list[dict[str, Any]] = data.get("documents") or []
        if not documents:
            raise DetectionUnavailable("response contained no documents")

        doc = documents[0]
        sentences = [
            (s["sentence"], s["generated_prob"])
            for s in doc.get("sentences", [])
            if "sentence" in s and "generated_prob" in s
        ]
        return self._build_result(doc["completely_generated_prob"], sentences)
