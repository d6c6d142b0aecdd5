from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..models.schemas import ConvertRequest, ConvertResponse, ErrorResponse
from ..services.pipeline import ImageSpecPipeline


router = APIRouter(
    prefix="/api",
    tags=["Conversion"],
    responses={
        400: {"model": ErrorResponse, "description": "Empty prompt or unsupported engine"},
        413: {"description": "Request body too large"},
        429: {"description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Server misconfigured or internal error"},
        502: {"model": ErrorResponse, "description": "AI provider failed or returned unusable output"},
    },
)


def get_pipeline(request: Request) -> ImageSpecPipeline:
    return request.app.state.pipeline


@router.post(
    "/convert",
    response_model=ConvertResponse,
    summary="Convert a natural-language image prompt to ImageSpec JSON",
)
async def convert(body: ConvertRequest, pipeline: ImageSpecPipeline = Depends(get_pipeline)):
    """Ask the provider for an ImageSpec, validate it and force the requested engine.

    Failures come back as ``{"error": ..., ...context}`` with 400 for caller
    mistakes, 502 for provider or model-output problems and 500 for server
    faults.
    """
    outcome = await pipeline.run(body.prompt, body.engine)
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_payload())
