"""Natural-language prompt to validated ImageSpec.

The pipeline runs the pure steps (sanitize, compose, extract, parse,
validate, enforce) around a single provider call and folds every failure
into one ``Failed`` outcome. Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from ..core.config import Settings
from ..models.exceptions import ProviderException, ProviderNotConfiguredException
from ..models.outcomes import Completed, Failed, FailureKind, Outcome, PipelineState
from .guardrails import IMAGE_SPEC_CONTRACT, check_contract
from .json_extract import extract_json_object, parse_json_object
from .policy import enforce_engine, resolve_engine
from .prompts import build_messages
from .provider import ChatCompletionsProvider
from .sanitizer import sanitize_input

logger = logging.getLogger(__name__)


class Provider(Protocol):
    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ) -> str: ...


class _Progress:
    """Furthest state one ``run`` has reached."""

    __slots__ = ("state",)

    def __init__(self) -> None:
        self.state = PipelineState.RECEIVED


class ImageSpecPipeline:
    def __init__(self, settings: Settings, provider: Optional[Provider] = None):
        self.settings = settings
        self.provider = provider if provider is not None else ChatCompletionsProvider(settings)

    def _fail(self, kind: FailureKind, state: PipelineState, **context: Any) -> Failed:
        logger.warning(
            f"Conversion failed: {kind.value}",
            extra={"failure_kind": kind.value, "pipeline_state": state.value, "fault": kind.fault.value},
        )
        return Failed(kind=kind, state=state, context=context)

    async def run(self, raw_prompt: Any, engine: Any = None) -> Outcome:
        progress = _Progress()
        try:
            return await self._run(raw_prompt, engine, progress)
        except Exception:
            logger.exception(
                "Unexpected error in conversion pipeline",
                extra={"pipeline_state": progress.state.value},
            )
            return Failed(kind=FailureKind.INTERNAL_ERROR, state=progress.state)

    async def _run(self, raw_prompt: Any, engine: Any, progress: _Progress) -> Outcome:
        prompt = sanitize_input(raw_prompt, self.settings.max_prompt_chars)
        progress.state = PipelineState.SANITIZED
        if not prompt:
            return self._fail(FailureKind.EMPTY_PROMPT, progress.state)

        accepted_engine = resolve_engine(engine, self.settings.default_engine, self.settings.allowed_engines)
        if accepted_engine is None:
            return self._fail(
                FailureKind.UNSUPPORTED_ENGINE,
                progress.state,
                engine=engine,
                allowed=list(self.settings.allowed_engines),
            )

        messages = build_messages(prompt, accepted_engine)
        progress.state = PipelineState.COMPOSED
        if not self.settings.provider_configured:
            return self._fail(FailureKind.MISCONFIGURED, progress.state)

        progress.state = PipelineState.AWAITING_PROVIDER
        logger.info(
            "Requesting ImageSpec from provider",
            extra={"prompt_length": len(prompt), "engine": accepted_engine},
        )
        try:
            raw_text = await self.provider.complete(
                messages,
                temperature=0.0,
                max_tokens=self.settings.provider_max_tokens,
            )
        except ProviderNotConfiguredException:
            return self._fail(FailureKind.MISCONFIGURED, progress.state)
        except ProviderException as e:
            return self._fail(FailureKind.PROVIDER_ERROR, progress.state, detail=e.detail or e.message)

        progress.state = PipelineState.RESPONSE_RECEIVED
        if not raw_text:
            return self._fail(FailureKind.EMPTY_PROVIDER_RESPONSE, progress.state)

        candidate = extract_json_object(raw_text)
        if candidate is None:
            return self._fail(FailureKind.NO_JSON_FOUND, progress.state, raw=raw_text)
        progress.state = PipelineState.EXTRACTED

        try:
            spec = parse_json_object(candidate)
        except ValueError:
            return self._fail(FailureKind.INVALID_JSON, progress.state, raw=candidate)
        progress.state = PipelineState.PARSED

        violations = check_contract(IMAGE_SPEC_CONTRACT, spec)
        if violations:
            return self._fail(
                FailureKind.SCHEMA_VIOLATION,
                progress.state,
                details=[v.to_dict() for v in violations],
                raw=spec,
            )
        progress.state = PipelineState.VALIDATED

        result = enforce_engine(spec, accepted_engine)
        progress.state = PipelineState.ENFORCED
        progress.state = PipelineState.COMPLETED
        logger.info(
            "ImageSpec completed",
            extra={"engine": accepted_engine, "pipeline_state": progress.state.value},
        )
        return Completed(spec=result)
