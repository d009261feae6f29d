"""Structured-output parsing for model responses."""
from __future__ import annotations

import json

from .errors import ResponseParseError


def parse_ai_json(text: str) -> dict:
    """Extract the JSON object from a model response.

    Code fences and any prose around the object are dropped by taking the
    span from the first ``{`` to the last ``}``.
    """
    clean = (text or "").replace("```json", "").replace("```", "")
    first = clean.find("{")
    last = clean.rfind("}")
    if first == -1 or last <= first:
        raise ResponseParseError(f"Failed to parse AI response: no JSON object in {text[:200]!r}")
    try:
        data = json.loads(clean[first:last + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Failed to parse AI response: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("Failed to parse AI response: top-level value is not an object")
    return data
