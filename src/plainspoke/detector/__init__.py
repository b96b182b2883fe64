"""AI content detection clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

from plainspoke.detector.base import HTTPDetector
from plainspoke.detector.ensemble import DetectorPanel, aggregate_score, find_regressions
from plainspoke.detector.gptzero import GPTZeroDetector
from plainspoke.detector.sapling import SaplingDetector

if TYPE_CHECKING:
    import httpx

    from plainspoke.config import DetectionConfig, DetectorEndpointConfig

# Config section name -> implementation. Selection happens here, once, at startup.
DETECTOR_REGISTRY: dict[str, type[HTTPDetector]] = {
    "gptzero": GPTZeroDetector,
    "sapling": SaplingDetector,
}


def build_detectors(
    config: DetectionConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[HTTPDetector]:
    """Instantiate every enabled detector from the ``[detection]`` config section.

    Args:
        config: Detection configuration.
        transport: Optional httpx transport shared by all detectors (tests).

    Returns:
        Detectors in registry order. Disabled vendors are omitted; vendors
        without a credential are still built and report a failed result.
    """
    detectors: list[HTTPDetector] = []
    for name, cls in DETECTOR_REGISTRY.items():
        endpoint: DetectorEndpointConfig = getattr(config, name)
        if not endpoint.enabled:
            continue
        detectors.append(
            cls(
                api_key=endpoint.api_key,
                base_url=endpoint.base_url,
                timeout=endpoint.timeout_seconds,
                flag_threshold=endpoint.flag_threshold,
                transport=transport,
            )
        )
    return detectors


__all__ = [
    "DETECTOR_REGISTRY",
    "DetectorPanel",
    "GPTZeroDetector",
    "HTTPDetector",
    "SaplingDetector",
    "aggregate_score",
    "build_detectors",
    "find_regressions",
]
