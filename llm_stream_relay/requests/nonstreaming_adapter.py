"""Fallback decoding for vendors that answer with a complete JSON body.

Some OpenAI-compatible servers ignore ``stream: true`` and some proxies strip
the event-stream framing. In both cases the transport reads the whole body and
hands it here instead of to the line framer.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..api.gateway import get_adapter
from ..api.gateway.base import StreamAdapter
from ..core.errors import VendorError
from ..core.utils import _extract_vendor_error_message, _safe_json_loads

LOGGER = logging.getLogger(__name__)


def _raise_for_vendor_error(document: Any, body_text: str) -> None:
    """Raise VendorError when ``document`` carries a non-null top-level ``error``."""
    if not isinstance(document, dict):
        return
    error_value = document.get("error")
    if error_value is None:
        return
    raise VendorError(_extract_vendor_error_message(error_value), raw_body=body_text)


def decode_fallback_body(
    kind: str,
    body_text: str,
    *,
    adapter: Optional[StreamAdapter] = None,
) -> list[str]:
    """Extract the text fragments of a non-streamed success body.

    Args:
        kind: Provider kind of the request that produced the body.
        body_text: Complete response body, already decoded to text.
        adapter: Adapter to walk the success shape with (resolved from ``kind``
            when omitted).

    Returns:
        list[str]: Fragments in document order. When the body is not JSON or
        holds no recognizable text, the raw body is the single fragment.

    Raises:
        VendorError: The body is a JSON object with a top-level ``error``.
        UnsupportedProviderError: ``kind`` names no known vendor.
    """
    document = _safe_json_loads(body_text)
    _raise_for_vendor_error(document, body_text)

    walker = adapter or get_adapter(kind)
    fragments = [text for text in walker.extract_fallback_text(document) if text]
    if fragments:
        return fragments

    LOGGER.debug("No text found in %s fallback body; relaying it verbatim (%d chars)", kind, len(body_text))
    return [body_text]
