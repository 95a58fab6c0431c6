"""Pure helper functions shared across the relay.

Contains:
- JSON helpers that never raise
- Text truncation for user-facing error snippets
- Vendor error message extraction
"""

from __future__ import annotations

import json
from typing import Any, Optional


# -----------------------------------------------------------------------------
# JSON Helpers
# -----------------------------------------------------------------------------

def _pretty_json(value: Any) -> str:
    """Return a human-readable JSON string or an empty string when not applicable."""
    if value is None:
        return ""
    if isinstance(value, (str, bytes)):
        text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        return text.strip()
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _safe_json_loads(payload: Optional[str]) -> Any:
    """Return parsed JSON or None without raising."""
    if not payload:
        return None
    try:
        return json.loads(payload)
    except ValueError:
        return None


# -----------------------------------------------------------------------------
# Text Helpers
# -----------------------------------------------------------------------------

def _truncate(text: str, limit: int) -> str:
    """Clip ``text`` to at most ``limit`` characters."""
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3] + "..."


def _extract_vendor_error_message(error_value: Any) -> str:
    """Return the vendor's message for an ``error`` value found in a response body.

    Objects with a string ``message`` yield that message. Anything else is
    rendered whole: strings verbatim, other values as compact JSON.
    """
    if isinstance(error_value, dict):
        message = error_value.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error_value, str):
        return error_value
    return _pretty_json(error_value)
