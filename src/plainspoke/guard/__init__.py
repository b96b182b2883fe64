"""Abuse and billing guards evaluated before any external call."""

from __future__ import annotations

from plainspoke.guard.credits import CreditGuard, credits_needed
from plainspoke.guard.quota import TIER_LIMITS, QuotaGuard, period_key
from plainspoke.guard.rate_limit import RateGuard

__all__ = [
    "TIER_LIMITS",
    "CreditGuard",
    "QuotaGuard",
    "RateGuard",
    "credits_needed",
    "period_key",
]
