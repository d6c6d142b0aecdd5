from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as SchemaError

IMAGE_SPEC_CONTRACT = "image_spec.json"

_SCHEMA_CACHE: Dict[str, Draft7Validator] = {}
_GUARDRAILS_DIR = Path(__file__).resolve().parent.parent / "guardrails"


@dataclass(frozen=True)
class Violation:
    """One schema problem: dotted field path, kind of mismatch, readable message."""

    path: str
    kind: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _load_schema(name: str) -> Draft7Validator:
    if name in _SCHEMA_CACHE:
        return _SCHEMA_CACHE[name]

    with open(_GUARDRAILS_DIR / name, "r", encoding="utf-8") as f:
        schema = json.load(f)
    Draft7Validator.check_schema(schema)
    validator = Draft7Validator(schema)
    _SCHEMA_CACHE[name] = validator
    return validator


def _join(parts: List[Any]) -> str:
    return ".".join(str(p) for p in parts)


def _to_violations(error: SchemaError) -> List[Violation]:
    location = list(error.absolute_path)

    if error.validator == "required":
        instance = error.instance if isinstance(error.instance, dict) else {}
        return [
            Violation(
                path=_join(location + [field]),
                kind="missing_required",
                message=f"'{field}' is a required property",
            )
            for field in error.validator_value
            if field not in instance
        ]

    if error.validator == "type":
        expected = error.validator_value
        kind = "wrong_shape" if expected in ("object", "array") else "wrong_type"
        return [Violation(path=_join(location), kind=kind, message=error.message)]

    return [Violation(path=_join(location), kind=str(error.validator), message=error.message)]


def check_contract(name: str, payload: Any) -> List[Violation]:
    """Validate ``payload`` against the named schema and list every violation.

    An empty list means the payload conforms. Draft 7 reports one ``required``
    error per missing property, so duplicates are collapsed.
    """
    validator = _load_schema(name)
    seen = set()
    violations: List[Violation] = []
    for error in validator.iter_errors(payload):
        for violation in _to_violations(error):
            key = (violation.path, violation.kind)
            if key in seen:
                continue
            seen.add(key)
            violations.append(violation)
    return sorted(violations, key=lambda v: (v.path, v.kind))
