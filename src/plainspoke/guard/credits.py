"""Per-character credit charging for the single-pass variant."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from plainspoke.errors import InsufficientCreditsError

if TYPE_CHECKING:
    from plainspoke.core.protocols import CreditLedger

logger = logging.getLogger(__name__)

CHARS_PER_CREDIT = 100


def credits_needed(text: str) -> int:
    """One credit per started block of 100 characters, minimum one."""
    return max(1, math.ceil(len(text) / CHARS_PER_CREDIT))


class CreditGuard:
    """Check and deduct credits around a single-pass rewrite."""

    def __init__(self, ledger: CreditLedger) -> None:
        self._ledger = ledger

    async def ensure_covered(self, identity: str, text: str) -> int:
        """Return the charge for ``text``, raising when the balance is short.

        Raises:
            InsufficientCreditsError: Balance below the charge.
        """
        needed = credits_needed(text)
        balance = await self._ledger.balance(identity)
        if balance < needed:
            raise InsufficientCreditsError(needed, balance)
        return needed

    async def charge(self, identity: str, credits: int) -> int:
        """Deduct ``credits`` atomically; returns the remaining balance."""
        remaining = await self._ledger.deduct(identity, credits)
        logger.info("Charged %s %d credits (%d left)", identity, credits, remaining)
        return remaining
