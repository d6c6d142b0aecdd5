"""Locate and parse the JSON object embedded in a model response.

Models wrap their JSON in prose or markdown fences despite being told not
to. ``extract_json_object`` finds the first brace-balanced object and
returns its text; ``parse_json_object`` turns that text into a dict.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def extract_json_object(text: Any) -> Optional[str]:
    """Return the first brace-balanced ``{...}`` substring of ``text``, or None.

    Braces inside string literals are ignored. A quote preceded by a single
    backslash does not open or close a string; longer backslash runs are not
    interpreted, so ``"\\\\"`` can confuse the scan.
    """
    if not isinstance(text, str):
        return None

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    for i in range(start, len(text)):
        ch = text[i]
        if ch == '"' and (i == 0 or text[i - 1] != "\\"):
            in_string = not in_string
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if depth == 0:
            return text[start:i + 1]

    return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_json_object(candidate: str) -> Dict[str, Any]:
    """Strict ``json.loads`` for an extracted candidate.

    NaN and Infinity are rejected. Raises ValueError (json.JSONDecodeError
    included) when the text does not hold a JSON object.
    """
    value = json.loads(candidate, parse_constant=_reject_constant)
    if not isinstance(value, dict):
        raise ValueError("Expected a JSON object")
    return value
