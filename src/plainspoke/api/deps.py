"""Request dependencies: service lookup, identity, origin policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from fastapi import Header, Request

from plainspoke.auth import parse_bearer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plainspoke.core.protocols import IdentityVerifier
    from plainspoke.models.results import Tier
    from plainspoke.service import HumanizeService, SimpleHumanizeService


@dataclass(frozen=True, slots=True)
class Services:
    """Collaborators the routes need, built once per application."""

    humanize: HumanizeService
    simple: SimpleHumanizeService
    verifier: IdentityVerifier


@dataclass(frozen=True, slots=True)
class Caller:
    identity: str
    tier: Tier


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return parse_bearer(authorization)


async def resolve_caller(services: Services, token: str) -> Caller:
    """Verify ``token`` with the identity service."""
    identity, tier = await services.verifier.verify(token)
    return Caller(identity=identity, tier=tier)


def _normalize_origin(origin: str) -> str:
    parts = urlsplit(origin.strip())
    if parts.scheme and parts.netloc:
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}"
    return origin.strip().rstrip("/").lower()


def origin_allowed(origin: str, allowed: Iterable[str]) -> bool:
    """Match ``origin`` against an allow-list.

    Entries match exactly, or by host suffix when written ``*.example.com``
    (which admits any subdomain but not the bare domain). A wildcard entry
    that names a scheme or a port only admits origins with the same scheme
    or port; without a port it only admits origins on the default port.
    """
    normalized = _normalize_origin(origin)
    parts = urlsplit(normalized)
    try:
        port = parts.port
    except ValueError:
        return False
    host = parts.hostname or ""
    for entry in allowed:
        entry = entry.strip()
        if not entry:
            continue
        if entry.split("://", 1)[-1].startswith("*."):
            if _wildcard_match(entry, parts.scheme, host, port):
                return True
        elif _normalize_origin(entry) == normalized:
            return True
    return False


def _wildcard_match(entry: str, scheme: str, host: str, port: int | None) -> bool:
    entry_scheme, sep, rest = entry.partition("://")
    if not sep:
        entry_scheme, rest = "", entry
    pattern, _, entry_port = rest.rstrip("/").lower().partition(":")
    if entry_scheme and entry_scheme.lower() != scheme:
        return False
    if entry_port != ("" if port is None else str(port)):
        return False
    return host.endswith(pattern[1:])
