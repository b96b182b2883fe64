"""Monthly request quota per subscription tier."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from plainspoke.errors import QuotaExceededError
from plainspoke.models.results import QuotaStatus, Tier

if TYPE_CHECKING:
    from plainspoke.core.protocols import QuotaStore

logger = logging.getLogger(__name__)

TIER_LIMITS: MappingProxyType[Tier, int] = MappingProxyType(
    {
        Tier.FREE: 30,
        Tier.PAID: 2000,
        Tier.PREMIUM: 5000,
    }
)


def period_key(now: datetime | None = None) -> str:
    """Calendar-month key (``YYYY-MM``, UTC) under which usage is counted."""
    if now is None:
        now = datetime.now(UTC)
    return now.astimezone(UTC).strftime("%Y-%m")


class QuotaGuard:
    """Read and advance the durable monthly counter for an identity.

    ``check`` never mutates. ``increment`` is called once per fully
    processed request and relies on the store for atomicity.

    Args:
        store: Durable counter backend.
        clock: Source of the current UTC time (selects the period key).
    """

    def __init__(
        self,
        store: QuotaStore,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._store = store
        self._clock = clock

    async def check(self, identity: str, tier: Tier) -> QuotaStatus:
        """Current usage for ``identity`` in this period."""
        used = await self._store.get_count(identity, period_key(self._clock()))
        return QuotaStatus(used=used, limit=TIER_LIMITS[tier], tier=tier)

    async def ensure_within(self, identity: str, tier: Tier) -> QuotaStatus:
        """Return current usage, raising when the tier's ceiling is reached.

        Raises:
            QuotaExceededError: ``used >= limit`` for this period.
        """
        status = await self.check(identity, tier)
        if not status.within_quota:
            logger.info("Quota exhausted for %s: %d/%d", identity, status.used, status.limit)
            raise QuotaExceededError(status)
        return status

    async def increment(self, identity: str, tier: Tier) -> QuotaStatus:
        """Count one completed request and return the updated usage."""
        limit = TIER_LIMITS[tier]
        used = await self._store.increment(identity, period_key(self._clock()), tier, limit)
        return QuotaStatus(used=used, limit=limit, tier=tier)
