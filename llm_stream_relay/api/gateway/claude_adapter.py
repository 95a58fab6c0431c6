"""Anthropic Messages API adapter.

Claude streams typed events (``event: <type>`` followed by ``data: {...}``).
Only the ``data:`` half reaches this adapter; the ``type`` field inside the
JSON is authoritative.
"""

from __future__ import annotations

from typing import Any, Optional

from ...core.config import CLAUDE_MAX_TOKENS, DEFAULT_ANTHROPIC_VERSION, PROBE_MAX_TOKENS
from ...core.errors import ParseError
from ...requests.descriptor import RequestDescriptor
from .base import BuiltRequest, ProviderKind, StreamAdapter, VendorChunk

_TEXT_DELTA_EVENT = "content_block_delta"
_STOP_EVENT = "message_stop"


class ClaudeAdapter(StreamAdapter):
    """Adapter for ``POST {base}/v1/messages``."""

    kind = ProviderKind.CLAUDE

    def _headers(self, descriptor: RequestDescriptor) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": descriptor.api_key,
            "anthropic-version": descriptor.api_version or DEFAULT_ANTHROPIC_VERSION,
        }

    def build(self, descriptor: RequestDescriptor) -> BuiltRequest:
        body: dict[str, Any] = {
            "model": descriptor.model,
            "max_tokens": CLAUDE_MAX_TOKENS,
            "messages": [{"role": "user", "content": descriptor.prompt}],
            "stream": True,
        }
        if descriptor.system_prompt:
            body["system"] = descriptor.system_prompt
        return BuiltRequest(
            url=f"{self.base_url(descriptor)}/v1/messages",
            headers=self._headers(descriptor),
            body=body,
        )

    def build_probe(self, descriptor: RequestDescriptor) -> BuiltRequest:
        request = self.build(descriptor)
        body = dict(request.body, stream=False, max_tokens=PROBE_MAX_TOKENS)
        return BuiltRequest(url=request.url, headers=request.headers, body=body)

    def decode_line(self, payload: str) -> Optional[VendorChunk]:
        document = self._load_object(payload)
        event_type = document.get("type")
        if not isinstance(event_type, str):
            raise ParseError("Event has no type", payload=payload)

        if event_type == _TEXT_DELTA_EVENT:
            delta = document.get("delta")
            text = delta.get("text") if isinstance(delta, dict) else None
            if isinstance(text, str) and text:
                return VendorChunk(deltas=(text,))
            return None
        if event_type == _STOP_EVENT:
            return VendorChunk(terminal=True)
        return None

    def extract_fallback_text(self, document: Any) -> list[str]:
        if not isinstance(document, dict):
            return []
        blocks = document.get("content")
        if not isinstance(blocks, list):
            return []
        fragments: list[str] = []
        for block in blocks:
            if not isinstance(block, dict) or block.get("type") != "text":
                continue
            text = block.get("text")
            if isinstance(text, str) and text:
                fragments.append(text)
        return fragments
