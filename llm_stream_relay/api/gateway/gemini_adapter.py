"""Google Gemini ``generateContent`` adapter.

Gemini has no end-of-stream sentinel line: the stream ends when the body
does, and the core synthesizes the terminal event.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional
from urllib.parse import quote

from ...core.config import DEFAULT_TEMPERATURE, PROBE_MAX_TOKENS
from ...core.errors import ParseError
from ...requests.descriptor import RequestDescriptor
from .base import BuiltRequest, ProviderKind, StreamAdapter, VendorChunk


def _iter_candidate_texts(document: dict[str, Any]) -> Iterator[str]:
    """Yield ``candidates[].content.parts[].text`` in document order."""
    candidates = document.get("candidates")
    if not isinstance(candidates, list):
        return
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict):
            continue
        parts = content.get("parts")
        if not isinstance(parts, list):
            continue
        for part in parts:
            if not isinstance(part, dict):
                continue
            text = part.get("text")
            if isinstance(text, str) and text:
                yield text


class GeminiAdapter(StreamAdapter):
    """Adapter for ``POST {base}/v1beta/models/{model}:streamGenerateContent``."""

    kind = ProviderKind.GEMINI

    def _url(self, descriptor: RequestDescriptor, method: str, *, sse: bool) -> str:
        url = (
            f"{self.base_url(descriptor)}/v1beta/models/{descriptor.model}:{method}"
            f"?key={quote(descriptor.api_key or '', safe='')}"
        )
        if sse:
            url += "&alt=sse"
        return url

    def _body(self, descriptor: RequestDescriptor, generation_config: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": descriptor.prompt}]}],
            "generationConfig": generation_config,
        }
        if descriptor.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": descriptor.system_prompt}]}
        return body

    def build(self, descriptor: RequestDescriptor) -> BuiltRequest:
        return BuiltRequest(
            url=self._url(descriptor, "streamGenerateContent", sse=True),
            headers={"Content-Type": "application/json"},
            body=self._body(descriptor, {"temperature": DEFAULT_TEMPERATURE}),
        )

    def build_probe(self, descriptor: RequestDescriptor) -> BuiltRequest:
        return BuiltRequest(
            url=self._url(descriptor, "generateContent", sse=False),
            headers={"Content-Type": "application/json"},
            body=self._body(
                descriptor,
                {"temperature": DEFAULT_TEMPERATURE, "maxOutputTokens": PROBE_MAX_TOKENS},
            ),
        )

    def decode_line(self, payload: str) -> Optional[VendorChunk]:
        document = self._load_object(payload)
        candidates = document.get("candidates")
        if candidates is None:
            return None
        if not isinstance(candidates, list):
            raise ParseError("candidates is not a list", payload=payload)
        deltas = tuple(_iter_candidate_texts(document))
        if not deltas:
            return None
        return VendorChunk(deltas=deltas)

    def extract_fallback_text(self, document: Any) -> list[str]:
        if not isinstance(document, dict):
            return []
        return list(_iter_candidate_texts(document))
