"""Bearer token verification against the identity service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from plainspoke.errors import AuthError
from plainspoke.models.results import Tier

if TYPE_CHECKING:
    from plainspoke.storage import SupabaseClient

logger = logging.getLogger(__name__)


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError: Header missing, not a bearer scheme, or token empty.
    """
    if not authorization:
        raise AuthError("no_token")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("no_token")
    return token.strip()


class SupabaseIdentityVerifier:
    """Resolve a user access token through Supabase ``/auth/v1/user``.

    The tier is read from ``app_metadata.tier`` (set server-side), then
    ``user_metadata.tier``; anything else counts as free.
    """

    def __init__(self, supabase: SupabaseClient) -> None:
        self._db = supabase

    async def verify(self, token: str) -> tuple[str, Tier]:
        """Return ``(user_id, tier)`` for a valid token.

        Raises:
            AuthError: Token rejected or the identity service is unreachable.
        """
        try:
            resp = await self._db.client.get(
                "/auth/v1/user", headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as exc:
            logger.warning("Identity service unreachable: %s", exc)
            raise AuthError("error") from exc

        if resp.status_code != 200:
            raise AuthError("invalid_token")

        try:
            user = resp.json()
        except ValueError as exc:
            raise AuthError("error") from exc

        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AuthError("no_user_id")

        tier = Tier.parse(
            _metadata_tier(user, "app_metadata") or _metadata_tier(user, "user_metadata")
        )
        return str(user_id), tier


def _metadata_tier(user: dict[str, object], section: str) -> str | None:
    meta = user.get(section)
    if not isinstance(meta, dict):
        return None
    tier = meta.get("tier")
    return tier if isinstance(tier, str) and tier else None
