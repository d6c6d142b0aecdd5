"""Server-side policy applied to model output.

The model never decides which engine renders the image: whatever it wrote
into ``params.engine`` is replaced by the engine the server accepted for
the request.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


def resolve_engine(requested: Any, default: str, allowed: Sequence[str] = ()) -> Optional[str]:
    """Pick the engine for a request.

    Blank or missing preferences fall back to ``default``. With an empty
    ``allowed`` list every engine is accepted; otherwise an engine outside
    the list yields None.
    """
    engine = requested.strip() if isinstance(requested, str) else ""
    if not engine:
        engine = default
    if allowed and engine not in allowed:
        return None
    return engine


def enforce_engine(spec: Dict[str, Any], engine: str) -> Dict[str, Any]:
    """Return a copy of ``spec`` with ``params.engine`` set to ``engine``."""
    params = spec.get("params")
    params = dict(params) if isinstance(params, dict) else {}
    params["engine"] = engine
    return {**spec, "params": params}
