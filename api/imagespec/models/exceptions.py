"""Custom exception classes for the ImageSpec API.

The provider client raises these; ``ImageSpecPipeline`` turns them into
``Failed`` outcomes, so none of them reach the HTTP layer.
"""

from typing import Any, Dict, Optional


class ImageSpecBaseException(Exception):
    """Base exception for all ImageSpec API errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ProviderException(ImageSpecBaseException):
    """Raised when the LLM provider call fails or answers with a non-success status."""

    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 model: Optional[str] = None,
                 detail: str = ""):
        self.status_code = status_code
        self.model = model
        self.detail = detail
        details: Dict[str, Any] = {"detail": detail}
        if status_code is not None:
            details["provider_status"] = status_code
        if model:
            details["model"] = model
        super().__init__(message, details)


class ProviderNotConfiguredException(ImageSpecBaseException):
    """Raised when no provider credential is available."""

    def __init__(self):
        super().__init__("Server misconfigured: missing OPENAI API key")
