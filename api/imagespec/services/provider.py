"""OpenAI-compatible chat completions client."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import Settings
from ..core.structured_logging import log_external_call
from ..models.exceptions import ProviderException, ProviderNotConfiguredException

logger = logging.getLogger(__name__)


def _headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def _extract_message_text(response: Dict[str, Any]) -> str:
    """Extract text content from a chat completions response.

    Handles plain string content, lists of content parts, and the legacy
    ``choices[0].text`` field. Returns "" when nothing usable is present.
    """
    if not isinstance(response, dict):
        return ""
    choices = response.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    first = choices[0]
    msg = first.get("message") or {}
    content = msg.get("content") if isinstance(msg, dict) else None
    if isinstance(content, str) and content:
        return content
    if isinstance(content, list):
        parts = [p.get("text", "") for p in content if isinstance(p, dict) and "text" in p]
        joined = "\n".join([p for p in parts if isinstance(p, str) and p])
        if joined:
            return joined
    text = first.get("text")
    return text if isinstance(text, str) else ""


class ChatCompletionsProvider:
    """Sends the composed messages to the provider and returns the reply text.

    ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.base_url = settings.provider_base_url.rstrip("/")
        self.model = settings.provider_model
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=float(self.settings.provider_timeout), transport=self.transport)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ) -> str:
        api_key = self.settings.openai_api_key
        if not api_key:
            raise ProviderNotConfiguredException()

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens or self.settings.provider_max_tokens,
        }

        log_external_call(logger, "provider", "chat.completions", model=self.model)
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=_headers(api_key),
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise ProviderException("Provider request timed out", model=self.model, detail=str(e) or "timeout")
        except httpx.HTTPError as e:
            raise ProviderException("Provider request failed", model=self.model, detail=str(e))

        if not response.is_success:
            logger.error(
                "Provider returned non-success status",
                extra={"provider_status": response.status_code, "model": self.model},
            )
            raise ProviderException(
                f"Provider error {response.status_code}",
                status_code=response.status_code,
                model=self.model,
                detail=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            # A 2xx body that is not JSON carries no message content
            logger.warning("Provider returned a non-JSON body", extra={"model": self.model})
            return ""
        return _extract_message_text(data)

    async def health_check(self) -> bool:
        """Check that the provider answers the models listing with our credential."""
        if not self.settings.openai_api_key:
            logger.warning("Provider API key not configured")
            return False
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/models",
                    headers=_headers(self.settings.openai_api_key),
                )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Provider health check failed: {e}")
            return False
