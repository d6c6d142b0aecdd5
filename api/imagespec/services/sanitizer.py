"""User prompt clean-up.

Trimming and the length cap follow JavaScript string semantics, which is
what browser clients count with: the whitespace set is that of
``String.prototype.trim`` (U+FEFF included, U+001C..U+001F and U+0085 not)
and the cap is measured in UTF-16 code units.
"""

from __future__ import annotations

import re
from typing import Any

MAX_PROMPT_CHARS = 800

_WHITESPACE = "\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
_TRIM_RE = re.compile(f"^[{_WHITESPACE}]+|[{_WHITESPACE}]+\\Z")


def _cap_utf16(text: str, max_units: int) -> str:
    encoded = text.encode("utf-16-le", "surrogatepass")
    if len(encoded) <= max_units * 2:
        return text
    # A surrogate pair split by the cap loses its dangling half
    return encoded[:max_units * 2].decode("utf-16-le", "ignore")


def sanitize_input(value: Any, max_length: int = MAX_PROMPT_CHARS) -> str:
    """Trim user text and cap it at ``max_length`` UTF-16 code units.

    Anything that is not a non-empty string becomes ``""``.
    """
    if not value or not isinstance(value, str):
        return ""
    return _cap_utf16(_TRIM_RE.sub("", value), max_length)
