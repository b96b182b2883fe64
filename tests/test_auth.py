"""Tests for bearer parsing and identity verification."""

from __future__ import annotations

import httpx
import pytest

from plainspoke.auth import SupabaseIdentityVerifier, parse_bearer
from plainspoke.errors import AuthError
from plainspoke.models.results import Tier
from plainspoke.storage import SupabaseClient


class TestParseBearer:
    """parse_bearer() header handling."""

    def test_valid(self) -> None:
        assert parse_bearer("Bearer abc.def") == "abc.def"
        assert parse_bearer("bearer   tok ") == "tok"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer   "])
    def test_invalid(self, header: str | None) -> None:
        with pytest.raises(AuthError) as exc_info:
            parse_bearer(header)
        assert exc_info.value.reason == "no_token"
        assert exc_info.value.status_code == 401


def _verifier_client(handler) -> SupabaseClient:
    return SupabaseClient("https://proj.supabase.test", "svc", transport=httpx.MockTransport(handler))


class TestSupabaseIdentityVerifier:
    """SupabaseIdentityVerifier.verify()."""

    async def test_valid_token(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(
                200, json={"id": "user-1", "user_metadata": {"tier": "premium"}}
            )

        async with _verifier_client(handler) as db:
            identity, tier = await SupabaseIdentityVerifier(db).verify("user-token")

        assert (identity, tier) == ("user-1", Tier.PREMIUM)
        assert seen == {"path": "/auth/v1/user", "auth": "Bearer user-token"}

    async def test_app_metadata_wins(self) -> None:
        body = {"id": "u", "app_metadata": {"tier": "paid"}, "user_metadata": {"tier": "premium"}}
        async with _verifier_client(lambda _: httpx.Response(200, json=body)) as db:
            _, tier = await SupabaseIdentityVerifier(db).verify("t")
        assert tier is Tier.PAID

    async def test_default_free(self) -> None:
        async with _verifier_client(lambda _: httpx.Response(200, json={"id": "u"})) as db:
            _, tier = await SupabaseIdentityVerifier(db).verify("t")
        assert tier is Tier.FREE

    @pytest.mark.parametrize(
        "body",
        [
            {"id": "u1", "user_metadata": {"tier": 2}},
            {"id": "u1", "app_metadata": "paid", "user_metadata": ["premium"]},
            {"id": "u1", "app_metadata": {"tier": None}, "user_metadata": {"tier": {"x": 1}}},
        ],
    )
    async def test_malformed_tier_is_free(self, body: dict[str, object]) -> None:
        """User-writable metadata of the wrong type never breaks verification."""
        async with _verifier_client(lambda _: httpx.Response(200, json=body)) as db:
            identity, tier = await SupabaseIdentityVerifier(db).verify("t")
        assert (identity, tier) == ("u1", Tier.FREE)

    async def test_bad_app_tier_falls_back_to_user_tier(self) -> None:
        body = {"id": "u1", "app_metadata": {"tier": 7}, "user_metadata": {"tier": "paid"}}
        async with _verifier_client(lambda _: httpx.Response(200, json=body)) as db:
            _, tier = await SupabaseIdentityVerifier(db).verify("t")
        assert tier is Tier.PAID

    async def test_invalid_token(self) -> None:
        async with _verifier_client(lambda _: httpx.Response(401, json={"msg": "bad jwt"})) as db:
            with pytest.raises(AuthError) as exc_info:
                await SupabaseIdentityVerifier(db).verify("t")
        assert exc_info.value.reason == "invalid_token"
        assert exc_info.value.payload() == {"error": "Unauthorized", "reason": "invalid_token"}

    async def test_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down")

        async with _verifier_client(handler) as db:
            with pytest.raises(AuthError) as exc_info:
                await SupabaseIdentityVerifier(db).verify("t")
        assert exc_info.value.reason == "error"

    async def test_missing_id(self) -> None:
        async with _verifier_client(lambda _: httpx.Response(200, json={"email": "x"})) as db:
            with pytest.raises(AuthError, match="no_user_id"):
                await SupabaseIdentityVerifier(db).verify("t")
