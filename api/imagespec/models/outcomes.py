"""Tagged results of one conversion request.

``ImageSpecPipeline.run`` returns exactly one of ``Completed`` or ``Failed``.
Each ``FailureKind`` fixes its fault class, HTTP status and public error
message, so the HTTP layer only has to render the outcome. A request body
that does not match ``ConvertRequest`` never reaches the pipeline; the app
renders it as an ``InvalidRequest`` failure in state ``Received``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union


class PipelineState(str, Enum):
    RECEIVED = "Received"
    SANITIZED = "Sanitized"
    COMPOSED = "Composed"
    AWAITING_PROVIDER = "AwaitingProvider"
    RESPONSE_RECEIVED = "ResponseReceived"
    EXTRACTED = "Extracted"
    PARSED = "Parsed"
    VALIDATED = "Validated"
    ENFORCED = "Enforced"
    COMPLETED = "Completed"


class FaultClass(str, Enum):
    CALLER = "caller"
    UPSTREAM = "upstream"
    SERVER = "server"


class FailureKind(str, Enum):
    EMPTY_PROMPT = "EmptyPrompt"
    UNSUPPORTED_ENGINE = "UnsupportedEngine"
    MISCONFIGURED = "Misconfigured"
    PROVIDER_ERROR = "ProviderError"
    EMPTY_PROVIDER_RESPONSE = "EmptyProviderResponse"
    NO_JSON_FOUND = "NoJSONFound"
    INVALID_JSON = "InvalidJSON"
    SCHEMA_VIOLATION = "SchemaViolation"
    INTERNAL_ERROR = "InternalError"
    INVALID_REQUEST = "InvalidRequest"

    @property
    def fault(self) -> FaultClass:
        return _FAILURE_TABLE[self][0]

    @property
    def status_code(self) -> int:
        return _FAILURE_TABLE[self][1]

    @property
    def message(self) -> str:
        return _FAILURE_TABLE[self][2]


_FAILURE_TABLE = {
    FailureKind.EMPTY_PROMPT: (FaultClass.CALLER, 400, "Empty prompt"),
    FailureKind.UNSUPPORTED_ENGINE: (FaultClass.CALLER, 400, "Unsupported engine"),
    FailureKind.MISCONFIGURED: (FaultClass.SERVER, 500, "Server misconfigured: missing OPENAI API key"),
    FailureKind.PROVIDER_ERROR: (FaultClass.UPSTREAM, 502, "AI provider error"),
    FailureKind.EMPTY_PROVIDER_RESPONSE: (FaultClass.UPSTREAM, 502, "No response from AI provider"),
    FailureKind.NO_JSON_FOUND: (FaultClass.UPSTREAM, 502, "AI did not return JSON"),
    FailureKind.INVALID_JSON: (FaultClass.UPSTREAM, 502, "AI returned invalid JSON"),
    FailureKind.SCHEMA_VIOLATION: (FaultClass.UPSTREAM, 502, "Generated JSON failed validation"),
    FailureKind.INTERNAL_ERROR: (FaultClass.SERVER, 500, "Server error"),
    FailureKind.INVALID_REQUEST: (FaultClass.CALLER, 400, "Invalid request"),
}


@dataclass(frozen=True)
class Completed:
    spec: Dict[str, Any]

    status_code = 200

    def to_payload(self) -> Dict[str, Any]:
        return {"ok": True, "result": self.spec}


@dataclass(frozen=True)
class Failed:
    kind: FailureKind
    state: PipelineState
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @property
    def fault(self) -> FaultClass:
        return self.kind.fault

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.kind.message, **self.context}


Outcome = Union[Completed, Failed]
