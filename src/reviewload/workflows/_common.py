"""Helpers shared by the workflow drivers."""

from __future__ import annotations

import json
from typing import Any

from reviewload._internal.logging import get_logger

logger = get_logger("workflows")

OK = 200
CONFLICT = 409

# Latency bound used by the per-call duration checks.
CHECK_DURATION_MS = 300.0

_BODY_PREVIEW = 200


def parse_json(text: str) -> Any:
    """Return the decoded JSON body, or None if it is not valid JSON."""
    try:
        return json.loads(text)
    except ValueError:
        return None


def nested(data: Any, *keys: str) -> Any:
    """Walk *keys* through nested dicts, returning None on any miss."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def preview(body: str) -> str:
    return body[:_BODY_PREVIEW]
