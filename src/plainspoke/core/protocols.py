"""Interface contracts for plainspoke's collaborators.

The pipeline and service depend only on these protocols. Vendor clients
and storage backends are chosen once at startup from configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from plainspoke.models.results import DetectionResult, Tier


@runtime_checkable
class TextGenerator(Protocol):
    """Submit a prompt, obtain rewritten text or a GenerationError."""

    async def generate(self, prompt: str) -> str: ...


@runtime_checkable
class Detector(Protocol):
    """Submit text, obtain a score or a recorded failure. Never raises."""

    name: str

    async def detect(self, text: str) -> DetectionResult: ...


@runtime_checkable
class QuotaStore(Protocol):
    """Durable monthly request counter keyed by (identity, period)."""

    async def get_count(self, identity: str, period: str) -> int: ...

    async def increment(self, identity: str, period: str, tier: Tier, limit: int) -> int: ...


@runtime_checkable
class CreditLedger(Protocol):
    """Durable credit balance keyed by identity."""

    async def balance(self, identity: str) -> int: ...

    async def deduct(self, identity: str, credits: int) -> int: ...


@runtime_checkable
class IdentityVerifier(Protocol):
    """Exchange a bearer token for a stable identity."""

    async def verify(self, token: str) -> tuple[str, Tier]: ...
