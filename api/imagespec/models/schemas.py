"""Pydantic models for the HTTP request and response bodies.

The ImageSpec itself is validated against ``guardrails/image_spec.json``;
the models here only describe the envelope around it.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ConvertRequest(BaseModel):
    """Body of ``POST /api/convert``."""

    prompt: Any = Field(
        None,
        description="Natural-language description of the image. Trimmed and capped server-side.",
        examples=["a red fox in snow at dawn, soft light"],
    )
    engine: Optional[str] = Field(
        None,
        description="Preferred rendering engine. Defaults to the server's default engine.",
        examples=["stable"],
    )


class ConvertResponse(BaseModel):
    ok: bool = Field(True, description="Always true on success")
    result: Dict[str, Any] = Field(..., description="Validated ImageSpec with the engine enforced")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Public error message")
    detail: Optional[str] = Field(None, description="Provider error text (ProviderError)")
    raw: Optional[Any] = Field(None, description="Model output that could not be used")
    details: Optional[List[Dict[str, Any]]] = Field(None, description="Schema violations (SchemaViolation)")


class HealthResponse(BaseModel):
    ok: bool
    status: str
    provider_configured: bool
    provider_reachable: Optional[bool] = None
