"""Unit tests for the conversion pipeline outcomes."""

import logging
from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest

from imagespec.models.exceptions import ProviderException, ProviderNotConfiguredException
from imagespec.models.outcomes import Completed, Failed, FailureKind, FaultClass, PipelineState
from imagespec.services.pipeline import ImageSpecPipeline
from imagespec.services.prompts import IMAGE_SPEC_SYSTEM


def _pipeline(settings, reply=None, side_effect=None):
    provider = AsyncMock()
    provider.complete.return_value = reply
    if side_effect is not None:
        provider.complete.side_effect = side_effect
    return ImageSpecPipeline(settings, provider=provider), provider


class TestPipelineSuccess:
    """Test cases for requests that produce an ImageSpec."""

    @pytest.mark.asyncio
    async def test_fenced_reply_with_engine_override(self, pipeline, mock_provider):
        outcome = await pipeline.run("a red fox in snow at dawn, soft light", "stable")

        assert isinstance(outcome, Completed)
        assert outcome.status_code == 200
        assert outcome.spec == {
            "prompt": "red fox in snow, realistic",
            "params": {
                "engine": "stable",
                "resolution": "512x512",
                "cfg_scale": 7,
                "steps": 30,
                "sampler": "euler",
                "seed": None,
            },
        }
        assert outcome.to_payload() == {"ok": True, "result": outcome.spec}
        mock_provider.complete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_receives_composed_messages(self, pipeline, mock_provider, test_settings):
        await pipeline.run("  a red fox  ", None)

        args, kwargs = mock_provider.complete.call_args
        messages = args[0]
        assert messages[0] == {"role": "system", "content": IMAGE_SPEC_SYSTEM}
        assert messages[1]["content"].startswith("User Prompt: a red fox\n")
        assert "- engine: stable\n" in messages[1]["content"]
        assert kwargs == {"temperature": 0.0, "max_tokens": test_settings.provider_max_tokens}

    @pytest.mark.asyncio
    async def test_default_engine_applied(self, pipeline):
        outcome = await pipeline.run("a red fox", None)
        assert outcome.spec["params"]["engine"] == "stable"

    @pytest.mark.asyncio
    async def test_requested_engine_applied(self, pipeline):
        outcome = await pipeline.run("a red fox", "mid")
        assert outcome.spec["params"]["engine"] == "mid"

    @pytest.mark.asyncio
    async def test_prompt_is_capped_before_composition(self, pipeline, mock_provider):
        await pipeline.run("y" * 2000, None)
        user_message = mock_provider.complete.call_args[0][0][1]["content"]
        assert "y" * 800 + "\n" in user_message
        assert "y" * 801 not in user_message

    @pytest.mark.asyncio
    async def test_extra_fields_preserved(self, test_settings):
        reply = '{"prompt":"fox","params":{"steps":20},"aspect_hint":"portrait"}'
        pipeline, _ = _pipeline(test_settings, reply)
        outcome = await pipeline.run("fox", "dalle")
        assert outcome.spec == {"prompt": "fox", "params": {"steps": 20, "engine": "dalle"}, "aspect_hint": "portrait"}


class TestPipelineFailures:
    """Test cases for every failure kind."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", None, 42, ["fox"]])
    async def test_empty_prompt_skips_provider(self, pipeline, mock_provider, prompt):
        outcome = await pipeline.run(prompt, "stable")

        assert isinstance(outcome, Failed)
        assert outcome.kind is FailureKind.EMPTY_PROMPT
        assert outcome.status_code == 400
        assert outcome.fault is FaultClass.CALLER
        assert outcome.to_payload() == {"error": "Empty prompt"}
        mock_provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_engine(self, test_settings):
        settings = replace(test_settings, allowed_engines=["stable", "mid", "dalle"])
        pipeline, provider = _pipeline(settings, "{}")

        outcome = await pipeline.run("fox", "midjourney")

        assert outcome.kind is FailureKind.UNSUPPORTED_ENGINE
        assert outcome.status_code == 400
        assert outcome.to_payload() == {
            "error": "Unsupported engine",
            "engine": "midjourney",
            "allowed": ["stable", "mid", "dalle"],
        }
        provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_key_is_misconfigured(self, test_settings):
        pipeline, provider = _pipeline(replace(test_settings, openai_api_key=None), "{}")

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.MISCONFIGURED
        assert outcome.status_code == 500
        assert outcome.fault is FaultClass.SERVER
        assert outcome.to_payload() == {"error": "Server misconfigured: missing OPENAI API key"}
        provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_not_configured_raised_late(self, test_settings):
        pipeline, _ = _pipeline(test_settings, side_effect=ProviderNotConfiguredException())
        outcome = await pipeline.run("fox", None)
        assert outcome.kind is FailureKind.MISCONFIGURED

    @pytest.mark.asyncio
    async def test_provider_error_carries_detail(self, test_settings):
        error = ProviderException("Provider error 401", status_code=401, detail="Incorrect API key provided")
        pipeline, _ = _pipeline(test_settings, side_effect=error)

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.PROVIDER_ERROR
        assert outcome.state is PipelineState.AWAITING_PROVIDER
        assert outcome.status_code == 502
        assert outcome.fault is FaultClass.UPSTREAM
        assert outcome.to_payload() == {"error": "AI provider error", "detail": "Incorrect API key provided"}

    @pytest.mark.asyncio
    async def test_provider_error_without_detail_uses_message(self, test_settings):
        pipeline, _ = _pipeline(test_settings, side_effect=ProviderException("Provider request failed"))
        outcome = await pipeline.run("fox", None)
        assert outcome.context == {"detail": "Provider request failed"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["", None])
    async def test_empty_provider_response(self, test_settings, reply):
        pipeline, _ = _pipeline(test_settings, reply)

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.EMPTY_PROVIDER_RESPONSE
        assert outcome.status_code == 502
        assert outcome.to_payload() == {"error": "No response from AI provider"}

    @pytest.mark.asyncio
    async def test_no_json_found(self, test_settings):
        pipeline, _ = _pipeline(test_settings, "I cannot help with that.")

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.NO_JSON_FOUND
        assert outcome.to_payload() == {"error": "AI did not return JSON", "raw": "I cannot help with that."}

    @pytest.mark.asyncio
    async def test_whitespace_reply_is_no_json(self, test_settings):
        pipeline, _ = _pipeline(test_settings, "   ")
        outcome = await pipeline.run("fox", None)
        assert outcome.kind is FailureKind.NO_JSON_FOUND

    @pytest.mark.asyncio
    async def test_invalid_json(self, test_settings):
        pipeline, _ = _pipeline(test_settings, 'Result: {"prompt": "fox", "params": {},}')

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.INVALID_JSON
        assert outcome.state is PipelineState.EXTRACTED
        assert outcome.to_payload() == {
            "error": "AI returned invalid JSON",
            "raw": '{"prompt": "fox", "params": {},}',
        }

    @pytest.mark.asyncio
    async def test_schema_violation_missing_params(self, test_settings):
        pipeline, _ = _pipeline(test_settings, '{"prompt":"a fox"}')

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.SCHEMA_VIOLATION
        assert outcome.state is PipelineState.PARSED
        payload = outcome.to_payload()
        assert payload["error"] == "Generated JSON failed validation"
        assert payload["raw"] == {"prompt": "a fox"}
        assert [(d["path"], d["kind"]) for d in payload["details"]] == [("params", "missing_required")]

    @pytest.mark.asyncio
    async def test_schema_violation_reports_every_problem(self, test_settings):
        reply = '{"params":{"cfg_scale":"high"},"details":{}}'
        pipeline, _ = _pipeline(test_settings, reply)

        outcome = await pipeline.run("fox", None)

        assert [(d["path"], d["kind"]) for d in outcome.context["details"]] == [
            ("details.subject", "missing_required"),
            ("params.cfg_scale", "wrong_type"),
            ("prompt", "missing_required"),
        ]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self, test_settings):
        pipeline, _ = _pipeline(test_settings, side_effect=RuntimeError("secret internals"))

        outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.INTERNAL_ERROR
        assert outcome.status_code == 500
        assert outcome.to_payload() == {"error": "Server error"}

    @pytest.mark.asyncio
    async def test_internal_error_records_provider_state(self, test_settings, caplog):
        pipeline, _ = _pipeline(test_settings, side_effect=RuntimeError("boom"))

        with caplog.at_level(logging.ERROR, logger="imagespec.services.pipeline"):
            outcome = await pipeline.run("fox", None)

        assert outcome.state is PipelineState.AWAITING_PROVIDER
        record = caplog.records[-1]
        assert record.pipeline_state == "AwaitingProvider"
        assert record.exc_info is not None

    @pytest.mark.asyncio
    async def test_internal_error_during_validation(self, pipeline):
        with patch("imagespec.services.pipeline.check_contract", side_effect=RuntimeError("schema io")):
            outcome = await pipeline.run("fox", None)

        assert outcome.kind is FailureKind.INTERNAL_ERROR
        assert outcome.state is PipelineState.PARSED

    @pytest.mark.asyncio
    async def test_internal_error_during_enforcement(self, pipeline):
        with patch("imagespec.services.pipeline.enforce_engine", side_effect=RuntimeError("copy failed")):
            outcome = await pipeline.run("fox", "stable")

        assert outcome.kind is FailureKind.INTERNAL_ERROR
        assert outcome.state is PipelineState.VALIDATED

    @pytest.mark.asyncio
    async def test_states_are_not_shared_between_runs(self, test_settings):
        pipeline, provider = _pipeline(test_settings, side_effect=[RuntimeError("first"), "no json here"])

        first = await pipeline.run("fox", None)
        second = await pipeline.run("", None)

        assert first.state is PipelineState.AWAITING_PROVIDER
        assert second.state is PipelineState.SANITIZED


class TestFailureTable:

    @pytest.mark.parametrize(
        "kind,status,fault",
        [
            (FailureKind.EMPTY_PROMPT, 400, FaultClass.CALLER),
            (FailureKind.UNSUPPORTED_ENGINE, 400, FaultClass.CALLER),
            (FailureKind.MISCONFIGURED, 500, FaultClass.SERVER),
            (FailureKind.PROVIDER_ERROR, 502, FaultClass.UPSTREAM),
            (FailureKind.EMPTY_PROVIDER_RESPONSE, 502, FaultClass.UPSTREAM),
            (FailureKind.NO_JSON_FOUND, 502, FaultClass.UPSTREAM),
            (FailureKind.INVALID_JSON, 502, FaultClass.UPSTREAM),
            (FailureKind.SCHEMA_VIOLATION, 502, FaultClass.UPSTREAM),
            (FailureKind.INTERNAL_ERROR, 500, FaultClass.SERVER),
            (FailureKind.INVALID_REQUEST, 400, FaultClass.CALLER),
        ],
    )
    def test_status_and_fault(self, kind, status, fault):
        assert kind.status_code == status
        assert kind.fault is fault
