"""Request-level error taxonomy.

Every error a caller can see derives from :class:`PlainspokeError` and
carries the HTTP status it maps to plus a generic, vendor-free message.
Full detail stays in the exception text and the logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from plainspoke.models.results import QuotaStatus


class PlainspokeError(Exception):
    """Base exception for errors surfaced to callers."""

    status_code: int = 500
    public_message: str = "server error"

    def payload(self) -> dict[str, Any]:
        """Response body for this error."""
        return {"error": self.public_message}


class InputValidationError(PlainspokeError):
    """Text is empty, too long, or matches an injection pattern."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class AuthError(PlainspokeError):
    """Missing, invalid, or unverifiable bearer credential."""

    status_code = 401
    public_message = "Unauthorized"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def payload(self) -> dict[str, Any]:
        return {"error": self.public_message, "reason": self.reason}


class OriginError(PlainspokeError):
    """Request origin is not on the allow-list."""

    status_code = 403
    public_message = "Origin not allowed"


class RateLimitError(PlainspokeError):
    """Per-identity request rate exceeded."""

    status_code = 429
    public_message = "Rate limit exceeded"

    def __init__(self, window: str, limit: int, retry_after: float) -> None:
        super().__init__(f"{window} rate limit of {limit} exceeded")
        self.window = window
        self.limit = limit
        self.retry_after = retry_after

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.public_message,
            "window": self.window,
            "limit": self.limit,
            "retryAfter": round(self.retry_after, 1),
        }


class QuotaExceededError(PlainspokeError):
    """Monthly request quota for the identity's tier is used up."""

    status_code = 429
    public_message = "Monthly quota exceeded"

    def __init__(self, status: QuotaStatus) -> None:
        super().__init__(f"quota exhausted: {status.used}/{status.limit}")
        self.status = status

    def payload(self) -> dict[str, Any]:
        return {"error": self.public_message, "quota": self.status.to_dict()}


class InsufficientCreditsError(PlainspokeError):
    """Credit balance does not cover the per-character charge."""

    status_code = 402
    public_message = "Not enough credits"

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(f"need {needed} credits, have {available}")
        self.needed = needed
        self.available = available

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.public_message,
            "creditsNeeded": self.needed,
            "creditsAvailable": self.available,
        }


class StorageError(PlainspokeError):
    """Durable quota or credit storage failed."""

    public_message = "DB error"


# ---------------------------------------------------------------------------
# Generation errors (terminal for a request when raised in stage 1)
# ---------------------------------------------------------------------------

# Upstream statuses forwarded verbatim; everything else becomes 502.
_PASSTHROUGH_STATUSES = frozenset({401, 402, 403, 429})


class GenerationError(PlainspokeError):
    """Base exception for text-generation failures."""

    public_message = "AI provider error"


class GenerationUnavailable(GenerationError):
    """Service returned a non-success status, a malformed body, or no text.

    Attributes:
        upstream_status: HTTP status returned by the provider, if any.
    """

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        if upstream_status is None:
            self.status_code = 500
        elif upstream_status in _PASSTHROUGH_STATUSES:
            self.status_code = upstream_status
        else:
            self.status_code = 502


class GenerationTimeout(GenerationError):
    """Generation exceeded its configured deadline."""

    status_code = 504
    public_message = "AI provider timed out"


# ---------------------------------------------------------------------------
# Internal, never terminal
# ---------------------------------------------------------------------------


class DetectionUnavailable(Exception):
    """A single detector could not produce a score."""


class RefinementFailure(Exception):
    """Stage-2 generation or detection failed; stage-1 output stands."""
