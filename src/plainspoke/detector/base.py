"""Shared HTTP plumbing for vendor AI-content detectors.

Every detector satisfies the ``Detector`` protocol from
:mod:`plainspoke.core.protocols`: ``detect(text)`` never raises. Any
failure (missing credential, timeout, non-success status, malformed
body) becomes a score-less :class:`DetectionResult` carrying the reason.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Self

import httpx

from plainspoke.errors import DetectionUnavailable
from plainspoke.models.results import DetectionResult

logger = logging.getLogger(__name__)


def _to_percent(probability: float) -> float:
    """Convert a vendor probability in [0, 1] to a clamped percentage."""
    return min(100.0, max(0.0, float(probability) * 100.0))


class HTTPDetector:
    """Base class for detectors reached over HTTP.

    Subclasses set :attr:`name` and implement :meth:`_score`, which
    performs the vendor request via :meth:`_post` and parses the body
    with :meth:`_build_result`.

    Args:
        api_key: Vendor credential. An empty key short-circuits to a failed result.
        base_url: Vendor API root.
        timeout: Per-call deadline in seconds; the request is cancelled on expiry.
        flag_threshold: Sentence score (0-100) at or above which a sentence is flagged.
        transport: Optional httpx transport (tests inject ``MockTransport``).
    """

    name: str = "detector"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        flag_threshold: float = 50.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._flag_threshold = flag_threshold
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Return the underlying httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(f"{type(self).__name__} must be used as an async context manager")
        return self._client

    async def detect(self, text: str) -> DetectionResult:
        """Score ``text``; failures are returned, never raised.

        Args:
            text: Text to score.

        Returns:
            DetectionResult with a score, or with ``error`` set and no score.
        """
        if not self._api_key:
            return self._fail("missing API credential")

        try:
            return await asyncio.wait_for(self._score(text), self._timeout)
        except (TimeoutError, httpx.TimeoutException):
            return self._fail(f"timed out after {self._timeout:.0f}s")
        except httpx.HTTPStatusError as exc:
            return self._fail(f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            return self._fail(f"transport error: {type(exc).__name__}")
        except DetectionUnavailable as exc:
            return self._fail(str(exc))
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            return self._fail(f"malformed response: {exc}")
        except Exception as exc:
            logger.warning("Detector %s failed unexpectedly", self.name, exc_info=True)
            return self._fail(f"unexpected error: {type(exc).__name__}")

    async def _score(self, text: str) -> DetectionResult:
        raise NotImplementedError

    async def _post(
        self,
        path: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST JSON and return the decoded body, raising on non-success status."""
        resp = await self.client.post(path, json=payload, headers=headers)
        resp.raise_for_status()
        return resp.json()

    def _build_result(
        self,
        probability: float,
        sentences: Iterable[tuple[str, float]] = (),
    ) -> DetectionResult:
        """Build a scored result from vendor probabilities in [0, 1]."""
        sentence_scores = tuple(
            (sentence.strip(), _to_percent(p)) for sentence, p in sentences if sentence.strip()
        )
        flagged = tuple(
            sentence for sentence, score in sentence_scores if score >= self._flag_threshold
        )
        return DetectionResult(
            detector=self.name,
            score=_to_percent(probability),
            sentence_scores=sentence_scores,
            flagged_sentences=flagged,
        )

    def _fail(self, reason: str) -> DetectionResult:
        logger.warning("Detector %s unavailable: %s", self.name, reason)
        return DetectionResult.failed(self.name, reason)
