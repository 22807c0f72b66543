"""Completion body parsing."""

from typing import Any, Optional


def extract_resource_id(body: Any) -> Optional[str]:
    """Pull the resource identifier out of a 200/201 completion body.

    Accepts ``{"id": ...}``, ``{"uid": ...}`` and the same keys nested under
    ``result``. Returns None when no non-empty identifier is present.
    """
    if not isinstance(body, dict):
        return None

    candidates = [body]
    if isinstance(body.get("result"), dict):
        candidates.append(body["result"])

    for candidate in candidates:
        for key in ("id", "uid"):
            value = candidate.get(key)
            if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
                return str(value)
    return None
