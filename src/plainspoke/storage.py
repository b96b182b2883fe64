"""Durable quota and credit storage backends.

The Supabase backends talk to PostgREST over HTTP and rely on stored
procedures for atomic updates (``increment_usage_count`` upserts the
monthly row, ``sp_deduct_credits`` deducts in one statement). The
in-memory backends serve local runs and tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Self

import httpx

from plainspoke.errors import StorageError

if TYPE_CHECKING:
    from plainspoke.models.results import Tier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryQuotaStore:
    """Process-local monthly counters. Lost on restart."""

    def __init__(self) -> None:
        self._counts: dict[tuple[str, str], int] = defaultdict(int)
        self._lock = asyncio.Lock()

    async def get_count(self, identity: str, period: str) -> int:
        return self._counts.get((identity, period), 0)

    async def increment(self, identity: str, period: str, tier: Tier, limit: int) -> int:
        async with self._lock:
            self._counts[(identity, period)] += 1
            return self._counts[(identity, period)]


class InMemoryCreditLedger:
    """Process-local credit balances."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self._lock = asyncio.Lock()

    async def balance(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    async def deduct(self, identity: str, credits: int) -> int:
        async with self._lock:
            current = self._balances.get(identity, 0)
            if current < credits:
                raise StorageError(f"balance {current} below deduction {credits}")
            self._balances[identity] = current - credits
            return self._balances[identity]


# ---------------------------------------------------------------------------
# Supabase (PostgREST)
# ---------------------------------------------------------------------------


class SupabaseClient:
    """Thin async wrapper over Supabase REST with a service-role key.

    Args:
        url: Project URL, e.g. ``https://xyz.supabase.co``.
        service_key: Service-role key (server only).
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject ``MockTransport``).
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._service_key = service_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
            headers={
                "apikey": self._service_key,
                "Authorization": f"Bearer {self._service_key}",
            },
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
            raise RuntimeError("SupabaseClient must be used as an async context manager")
        return self._client

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a stored procedure and return its decoded result."""
        return await self._request("POST", f"/rest/v1/rpc/{function}", json=params)

    async def select(self, table: str, columns: str, **filters: str) -> list[dict[str, Any]]:
        """Select rows matching ``column=eq.value`` filters."""
        params = {"select": columns, **{k: f"eq.{v}" for k, v in filters.items()}}
        rows = await self._request("GET", f"/rest/v1/{table}", params=params)
        if not isinstance(rows, list):
            raise StorageError(f"unexpected {table} response shape")
        return rows

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self.client.request(method, path, **kwargs)
            resp.raise_for_status()
            if not resp.content:
                return None
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Supabase %s %s returned %d: %s",
                method,
                path,
                exc.response.status_code,
                exc.response.text[:300],
            )
            raise StorageError(f"{path} returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("Supabase %s %s failed: %s", method, path, exc)
            raise StorageError(f"{path} unreachable") from exc
        except ValueError as exc:
            raise StorageError(f"{path} returned invalid JSON") from exc


class SupabaseQuotaStore:
    """Monthly counters in the ``usage_tracking`` table.

    The increment procedure derives the month from the database clock;
    ``period`` is used for reads so both sides agree within a month.
    """

    def __init__(self, supabase: SupabaseClient) -> None:
        self._db = supabase

    async def get_count(self, identity: str, period: str) -> int:
        rows = await self._db.select(
            "usage_tracking", "request_count", user_id=identity, month_year=period
        )
        if not rows:
            return 0
        return int(rows[0].get("request_count") or 0)

    async def increment(self, identity: str, period: str, tier: Tier, limit: int) -> int:
        result = await self._db.rpc(
            "increment_usage_count", {"p_user_id": identity, "p_tier": tier.value}
        )
        row = result[0] if isinstance(result, list) and result else result
        try:
            return int(row["current_count"])
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError("increment_usage_count returned no count") from exc


class SupabaseCreditLedger:
    """Credit balances in the ``user_credits`` table."""

    def __init__(self, supabase: SupabaseClient) -> None:
        self._db = supabase

    async def balance(self, identity: str) -> int:
        rows = await self._db.select("user_credits", "current_credits", user_id=identity)
        if not rows:
            return 0
        return int(rows[0].get("current_credits") or 0)

    async def deduct(self, identity: str, credits: int) -> int:
        await self._db.rpc("sp_deduct_credits", {"p_user_id": identity, "p_credits": credits})
        return await self.balance(identity)
