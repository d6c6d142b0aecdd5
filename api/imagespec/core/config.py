from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


def getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    return v


def _env_bool(name: str, default: str) -> bool:
    return (getenv(name, default) or default).lower() == "true"


def _env_int(name: str, default: str) -> int:
    return int(getenv(name, default) or default)


def _env_list(name: str, default: str = "") -> List[str]:
    raw = getenv(name, default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Process configuration, read from the environment when constructed.

    Construct one explicitly and hand it to ``create_app`` or
    ``ImageSpecPipeline``; tests build their own instances instead of
    mutating ``os.environ``.
    """

    # Service
    service_name: str = field(default_factory=lambda: getenv("SERVICE_NAME", "imagespec-api") or "imagespec-api")
    service_env: str = field(default_factory=lambda: getenv("SERVICE_ENV", "dev") or "dev")
    log_level: str = field(default_factory=lambda: getenv("LOG_LEVEL", "INFO") or "INFO")
    port: int = field(default_factory=lambda: _env_int("PORT", "4000"))

    # Provider (OpenAI-compatible chat completions)
    openai_api_key: str | None = field(
        default_factory=lambda: getenv("BACKEND_OPENAI_KEY") or getenv("OPENAI_API_KEY")
    )
    provider_base_url: str = field(
        default_factory=lambda: getenv("PROVIDER_BASE_URL", "https://api.openai.com/v1") or "https://api.openai.com/v1"
    )
    provider_model: str = field(default_factory=lambda: getenv("PROVIDER_MODEL", "gpt-4o-mini") or "gpt-4o-mini")
    provider_timeout: int = field(default_factory=lambda: _env_int("PROVIDER_TIMEOUT", "30"))
    provider_max_tokens: int = field(default_factory=lambda: _env_int("PROVIDER_MAX_TOKENS", "500"))

    # Conversion policy
    max_prompt_chars: int = field(default_factory=lambda: _env_int("MAX_PROMPT_CHARS", "800"))
    default_engine: str = field(default_factory=lambda: getenv("DEFAULT_ENGINE", "stable") or "stable")
    allowed_engines: List[str] = field(default_factory=lambda: _env_list("ALLOWED_ENGINES"))

    # HTTP surface
    cors_allow_origins: List[str] = field(
        default_factory=lambda: _env_list("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )
    max_request_size: int = field(default_factory=lambda: _env_int("MAX_REQUEST_SIZE", "8192"))
    enable_inapp_rate_limit: bool = field(default_factory=lambda: _env_bool("ENABLE_INAPP_RATE_LIMIT", "true"))
    rate_limit_max: int = field(default_factory=lambda: _env_int("RATE_LIMIT_MAX", "60"))
    rate_limit_window_seconds: int = field(default_factory=lambda: _env_int("RATE_LIMIT_WINDOW_SECONDS", "900"))
    trust_proxy_headers: bool = field(default_factory=lambda: _env_bool("TRUST_PROXY_HEADERS", "false"))

    @property
    def is_production(self) -> bool:
        return self.service_env in ["prod", "production"]

    @property
    def provider_configured(self) -> bool:
        return bool(self.openai_api_key)


settings = Settings()
