"""JSON helpers for the node payload column."""

import json
from typing import Any


def parse_json_or_none(raw: str | dict | list | None) -> dict | list | None:
    """Parse a JSON string or return structured value as-is, None on failure.

    Accepts dicts and lists as-is without re-parsing.
    Returns None for: None, empty string, invalid JSON, JSON scalars.
    """
    if raw is None:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, str):
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return None
        if isinstance(parsed, (dict, list)):
            return parsed
    return None


def json_column(value: dict[str, Any] | list[Any] | None) -> str | None:
    """Serialize a payload for a TEXT column. NULL for None."""
    if value is None:
        return None
    return json.dumps(value, sort_keys=True)
