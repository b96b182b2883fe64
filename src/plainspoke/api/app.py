"""FastAPI application: routes, origin policy, and error mapping."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from plainspoke.api.deps import (
    Services,
    get_bearer_token,
    get_services,
    origin_allowed,
    resolve_caller,
)
from plainspoke.api.schemas import (
    HealthResponse,
    HumanizeBody,
    SimpleHumanizeBody,
    SimpleHumanizeResponse,
)
from plainspoke.auth import SupabaseIdentityVerifier
from plainspoke.config import PlainspokeConfig, load_config
from plainspoke.detector import DetectorPanel, build_detectors
from plainspoke.errors import OriginError, PlainspokeError, RateLimitError
from plainspoke.guard import CreditGuard, QuotaGuard, RateGuard
from plainspoke.humanizer import ChatCompletionsGenerator, PromptComposer
from plainspoke.models.results import HumanizationRequest
from plainspoke.pipeline import RefinementOrchestrator
from plainspoke.service import HumanizeService, SimpleHumanizeService
from plainspoke.storage import SupabaseClient, SupabaseCreditLedger, SupabaseQuotaStore
from plainspoke.validation import split_examples, validate_text

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = "authorization, x-client-info, apikey, content-type"
PREFLIGHT_METHODS = "GET, POST, OPTIONS"


async def open_services(
    config: PlainspokeConfig,
    stack: AsyncExitStack,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Build and enter every outbound client, registering cleanup on ``stack``.

    Raises:
        RuntimeError: The identity service URL is not configured.
    """
    if not config.server.supabase_url:
        raise RuntimeError("server.supabase_url must be set to serve requests")

    generator = await stack.enter_async_context(
        ChatCompletionsGenerator.from_config(config.generation, transport=transport)
    )
    panel = await stack.enter_async_context(
        DetectorPanel(build_detectors(config.detection, transport=transport))
    )
    supabase = await stack.enter_async_context(
        SupabaseClient(config.server.supabase_url, config.server.supabase_key, transport=transport)
    )
    logger.info("Detectors enabled: %s", ", ".join(panel.names) or "none")

    rate_guard = RateGuard(config.limits.rate_per_minute, config.limits.rate_per_hour)
    orchestrator = RefinementOrchestrator(
        generator=generator,
        panel=panel,
        composer=PromptComposer(config.prompts.max_flagged_sentences),
        refinement=config.refinement,
    )
    return Services(
        humanize=HumanizeService(
            orchestrator=orchestrator,
            rate_guard=rate_guard,
            quota_guard=QuotaGuard(SupabaseQuotaStore(supabase)),
            limits=config.limits,
        ),
        simple=SimpleHumanizeService(
            generator=generator,
            rate_guard=rate_guard,
            credit_guard=CreditGuard(SupabaseCreditLedger(supabase)),
            limits=config.limits,
        ),
        verifier=SupabaseIdentityVerifier(supabase),
    )


def create_app(
    config: PlainspokeConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Application factory.

    Args:
        config: Resolved configuration; loaded from the default stack when None.
        services: Pre-built collaborators. When None, real clients are
            opened for the application's lifetime.
    """
    if config is None:
        config = load_config()
    allowed_origins = config.server.allowed_origins

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            app.state.services = services or await open_services(config, stack)
            logger.info("plainspoke ready (profile=%s)", config.general.profile)
            yield

    app = FastAPI(title="plainspoke", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    # -- origin policy -------------------------------------------------

    @app.middleware("http")
    async def origin_guard(request: Request, call_next: Any) -> Response:
        origin = request.headers.get("origin")
        if request.method == "OPTIONS":
            return Response(
                status_code=200,
                headers={
                    "Access-Control-Allow-Origin": config.server.preflight_allow_origin,
                    "Access-Control-Allow-Headers": PREFLIGHT_HEADERS,
                    "Access-Control-Allow-Methods": PREFLIGHT_METHODS,
                },
            )
        if origin is not None and not origin_allowed(origin, allowed_origins):
            logger.warning("Rejected request from origin %s", origin)
            return _error_response(OriginError(origin))

        response = await call_next(request)
        if origin is not None:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        return response

    # -- error mapping -------------------------------------------------

    @app.exception_handler(PlainspokeError)
    async def plainspoke_error_handler(_: Request, exc: PlainspokeError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed (%d): %s", exc.status_code, exc)
        else:
            logger.info("Request rejected (%d): %s", exc.status_code, exc)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Malformed request body: %s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "server error"})

    # -- routes --------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/humanize")
    async def humanize(
        body: HumanizeBody,
        token: str = Depends(get_bearer_token),
        svc: Services = Depends(get_services),
    ) -> dict[str, Any]:
        # Reject bad input before the identity lookup.
        validate_text(body.text, config.limits.max_text_length)
        caller = await resolve_caller(svc, token)
        request = HumanizationRequest(
            text=body.text,
            identity=caller.identity,
            tier=caller.tier,
            style_examples=split_examples(body.examples),
        )
        outcome = await svc.humanize.humanize(request)
        return outcome.to_dict()

    @app.post("/humanize/simple", response_model=SimpleHumanizeResponse)
    async def humanize_simple(
        body: SimpleHumanizeBody,
        token: str = Depends(get_bearer_token),
        svc: Services = Depends(get_services),
    ) -> SimpleHumanizeResponse:
        validate_text(body.text, config.limits.max_text_length)
        caller = await resolve_caller(svc, token)
        outcome = await svc.simple.humanize(
            caller.identity, body.text, mode=body.mode, language=body.language
        )
        return SimpleHumanizeResponse(
            output=outcome.output,
            credits_used=outcome.credits_used,
            credits_remaining=outcome.credits_remaining,
        )

    return app


def _error_response(exc: PlainspokeError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(max(1, round(exc.retry_after)))
    return JSONResponse(status_code=exc.status_code, content=exc.payload(), headers=headers)
