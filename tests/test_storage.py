"""Tests for the quota and credit storage backends."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from plainspoke.errors import StorageError
from plainspoke.models.results import Tier
from plainspoke.storage import (
    InMemoryCreditLedger,
    InMemoryQuotaStore,
    SupabaseClient,
    SupabaseCreditLedger,
    SupabaseQuotaStore,
)


def _supabase(handler) -> SupabaseClient:
    return SupabaseClient(
        "https://proj.supabase.test/", "service-key", transport=httpx.MockTransport(handler)
    )


class TestInMemory:
    """In-memory backends."""

    async def test_quota_concurrent_increments(self) -> None:
        """Concurrent increments never lose an update."""
        store = InMemoryQuotaStore()
        await asyncio.gather(*(store.increment("u1", "2026-03", Tier.FREE, 30) for _ in range(25)))
        assert await store.get_count("u1", "2026-03") == 25
        assert await store.get_count("u1", "2026-04") == 0

    async def test_ledger_deduct(self) -> None:
        ledger = InMemoryCreditLedger({"u1": 3})
        assert await ledger.deduct("u1", 2) == 1
        with pytest.raises(StorageError):
            await ledger.deduct("u1", 2)


class TestSupabaseQuotaStore:
    """SupabaseQuotaStore over PostgREST."""

    async def test_get_count(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["apikey"] = request.headers["apikey"]
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json=[{"request_count": 7}])

        async with _supabase(handler) as db:
            assert await SupabaseQuotaStore(db).get_count("u1", "2026-03") == 7

        assert seen == {
            "path": "/rest/v1/usage_tracking",
            "params": {"select": "request_count", "user_id": "eq.u1", "month_year": "eq.2026-03"},
            "apikey": "service-key",
            "auth": "Bearer service-key",
        }

    async def test_get_count_no_row(self) -> None:
        async with _supabase(lambda _: httpx.Response(200, json=[])) as db:
            assert await SupabaseQuotaStore(db).get_count("u1", "2026-03") == 0

    async def test_increment_rpc(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"current_count": 4, "limit_count": 30}])

        async with _supabase(handler) as db:
            used = await SupabaseQuotaStore(db).increment("u1", "2026-03", Tier.PAID, 2000)

        assert used == 4
        assert seen == {
            "path": "/rest/v1/rpc/increment_usage_count",
            "body": {"p_user_id": "u1", "p_tier": "paid"},
        }

    async def test_increment_bad_body(self) -> None:
        async with _supabase(lambda _: httpx.Response(200, json={})) as db:
            with pytest.raises(StorageError):
                await SupabaseQuotaStore(db).increment("u1", "2026-03", Tier.FREE, 30)

    async def test_http_failure(self) -> None:
        async with _supabase(lambda _: httpx.Response(500, text="boom")) as db:
            with pytest.raises(StorageError) as exc_info:
                await SupabaseQuotaStore(db).get_count("u1", "2026-03")
        assert exc_info.value.status_code == 500
        assert exc_info.value.public_message == "DB error"


class TestSupabaseCreditLedger:
    """SupabaseCreditLedger over PostgREST."""

    async def test_deduct_then_rereads(self) -> None:
        balances = iter([8])
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path == "/rest/v1/rpc/sp_deduct_credits":
                assert json.loads(request.content) == {"p_user_id": "u1", "p_credits": 2}
                return httpx.Response(204)
            return httpx.Response(200, json=[{"current_credits": next(balances)}])

        async with _supabase(handler) as db:
            assert await SupabaseCreditLedger(db).deduct("u1", 2) == 8

        assert calls == ["/rest/v1/rpc/sp_deduct_credits", "/rest/v1/user_credits"]

    async def test_requires_context(self) -> None:
        with pytest.raises(RuntimeError):
            await SupabaseCreditLedger(_supabase(lambda _: httpx.Response(200))).balance("u1")
