import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import Settings, settings as default_settings
from .core.rate_limiter import InMemoryRateLimiter, RateLimitMiddleware
from .core.structured_logging import setup_logging
from .middleware.request_size_limit import RequestSizeLimitMiddleware
from .middleware.security_headers import SecurityHeadersMiddleware
from .models.outcomes import Failed, FailureKind, PipelineState
from .routers import convert, health
from .services.pipeline import ImageSpecPipeline

logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] == "body":
            location = location[1:]
        details.append({
            "path": ".".join(location),
            "kind": str(error.get("type", "invalid")),
            "message": str(error.get("msg", "")),
        })
    return details


def create_app(settings: Optional[Settings] = None, pipeline: Optional[ImageSpecPipeline] = None) -> FastAPI:
    """Build the API from an explicit Settings value.

    ``pipeline`` replaces the default provider-backed pipeline, mainly for tests.
    """
    settings = settings or default_settings
    setup_logging(settings)

    app = FastAPI(
        title=settings.service_name,
        description="Converts natural-language image prompts into validated ImageSpec JSON",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.pipeline = pipeline or ImageSpecPipeline(settings)

    # Starlette runs the last-added middleware first
    if settings.enable_inapp_rate_limit:
        app.state.rate_limiter = InMemoryRateLimiter(
            max_requests=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
        app.add_middleware(
            RateLimitMiddleware,
            limiter=app.state.rate_limiter,
            trust_proxy_headers=settings.trust_proxy_headers,
        )

    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.max_request_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        outcome = Failed(
            kind=FailureKind.INVALID_REQUEST,
            state=PipelineState.RECEIVED,
            context={"details": _validation_details(exc)},
        )
        logger.warning(
            "Rejected malformed request body",
            extra={
                "failure_kind": outcome.kind.value,
                "path": request.url.path,
                "error_count": len(outcome.context["details"]),
            },
        )
        return JSONResponse(status_code=outcome.status_code, content=outcome.to_payload())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception occurred",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "method": request.method,
                "path": request.url.path,
                "error_type": type(exc).__name__,
            },
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Server error"})

    app.include_router(convert.router)
    app.include_router(health.router)

    if not settings.provider_configured:
        logger.warning("Provider API key not configured; /api/convert will answer 500")

    return app


app = create_app()
