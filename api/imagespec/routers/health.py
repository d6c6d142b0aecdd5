from fastapi import APIRouter, Request

from ..models.schemas import HealthResponse
from ..services.provider import ChatCompletionsProvider

router = APIRouter(tags=["Health"])


@router.get("/healthz", response_model=HealthResponse)
async def health(request: Request, deep: bool = False):
    """Liveness plus provider configuration; ``deep=true`` also pings the provider."""
    settings = request.app.state.settings
    configured = settings.provider_configured

    if not deep:
        return HealthResponse(
            ok=True,
            status="healthy" if configured else "degraded",
            provider_configured=configured,
        )

    reachable = await ChatCompletionsProvider(settings).health_check()
    return HealthResponse(
        ok=reachable,
        status="healthy" if reachable else "degraded",
        provider_configured=configured,
        provider_reachable=reachable,
    )
