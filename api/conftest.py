"""Pytest configuration and fixtures for the ImageSpec API."""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Generator, List, Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Add the api directory to Python path
api_dir = Path(__file__).parent
sys.path.insert(0, str(api_dir))

from imagespec.core.config import Settings
from imagespec.main import create_app
from imagespec.services.pipeline import ImageSpecPipeline


FENCED_FOX_RESPONSE = (
    "Here you go:\n```json\n"
    '{"prompt":"red fox in snow, realistic","params":{"engine":"dalle","resolution":"512x512",'
    '"cfg_scale":7,"steps":30,"sampler":"euler","seed":null}}'
    "\n```"
)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake credential and no in-app rate limiting."""
    return replace(
        Settings(),
        service_env="test",
        log_level="DEBUG",
        openai_api_key="test-key",
        provider_base_url="https://provider.test/v1",
        provider_model="gpt-4o-mini",
        default_engine="stable",
        allowed_engines=[],
        max_prompt_chars=800,
        enable_inapp_rate_limit=False,
        trust_proxy_headers=False,
    )


@pytest.fixture
def mock_provider() -> AsyncMock:
    """Provider whose ``complete`` returns the fenced fox response."""
    provider = AsyncMock()
    provider.complete.return_value = FENCED_FOX_RESPONSE
    return provider


@pytest.fixture
def pipeline(test_settings, mock_provider) -> ImageSpecPipeline:
    return ImageSpecPipeline(test_settings, provider=mock_provider)


@pytest.fixture
def client(test_settings, pipeline) -> Generator[TestClient, None, None]:
    """Create a test client for an app wired to the mock provider."""
    app = create_app(test_settings, pipeline=pipeline)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def chat_completion():
    """Build a chat completions response body around ``content``."""
    def _build(content, choices: Optional[List[dict]] = None) -> dict:
        return {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "choices": choices if choices is not None else [
                {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
            ],
            "usage": {"prompt_tokens": 120, "completion_tokens": 60, "total_tokens": 180},
        }
    return _build


@pytest.fixture
def sample_spec() -> dict:
    return {
        "prompt": "red fox in snow, realistic",
        "negative_prompt": "blurry, low quality",
        "style": "photorealistic",
        "lighting": "soft dawn light",
        "camera": "85mm, shallow depth of field",
        "details": {
            "subject": "red fox",
            "background": "snowy forest",
            "mood": "calm",
            "colors": "orange, white, pale blue",
        },
        "params": {
            "engine": "dalle",
            "resolution": "512x512",
            "cfg_scale": 7,
            "steps": 30,
            "sampler": "euler",
            "seed": None,
        },
    }
