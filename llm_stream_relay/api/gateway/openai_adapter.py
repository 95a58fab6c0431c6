"""OpenAI-compatible chat completions adapter.

Covers OpenAI itself and the many servers speaking the same wire format
(Ollama, DeepSeek, Moonshot, vLLM, ...). Local servers often run without a
key, so the ``Authorization`` header is only sent when a key is configured.
"""

from __future__ import annotations

from typing import Any, Optional

from ...core.config import DEFAULT_TEMPERATURE, PROBE_MAX_TOKENS
from ...core.errors import ParseError
from ...requests.descriptor import RequestDescriptor
from .base import BuiltRequest, ProviderKind, StreamAdapter, VendorChunk

_DONE_SENTINEL = "[DONE]"


def _extract_message_text(message: Any) -> str:
    """Return the text of a non-streamed ``choices[].message``."""
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        fragments: list[str] = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                text_val = part.get("text")
                if isinstance(text_val, str):
                    fragments.append(text_val)
        return "".join(fragments)
    return ""


class OpenAIAdapter(StreamAdapter):
    """Adapter for ``POST {base}/chat/completions``."""

    kind = ProviderKind.OPENAI

    def _headers(self, descriptor: RequestDescriptor) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if descriptor.api_key:
            headers["Authorization"] = f"Bearer {descriptor.api_key}"
        return headers

    def build(self, descriptor: RequestDescriptor) -> BuiltRequest:
        messages: list[dict[str, str]] = []
        if descriptor.system_prompt:
            messages.append({"role": "system", "content": descriptor.system_prompt})
        messages.append({"role": "user", "content": descriptor.prompt})
        body: dict[str, Any] = {
            "model": descriptor.model,
            "messages": messages,
            "stream": True,
            "temperature": DEFAULT_TEMPERATURE,
        }
        return BuiltRequest(
            url=f"{self.base_url(descriptor)}/chat/completions",
            headers=self._headers(descriptor),
            body=body,
        )

    def build_probe(self, descriptor: RequestDescriptor) -> BuiltRequest:
        request = self.build(descriptor)
        body = dict(request.body, stream=False, max_tokens=PROBE_MAX_TOKENS)
        return BuiltRequest(url=request.url, headers=request.headers, body=body)

    def decode_line(self, payload: str) -> Optional[VendorChunk]:
        if payload.strip() == _DONE_SENTINEL:
            return VendorChunk(terminal=True)

        document = self._load_object(payload)
        choices = document.get("choices")
        if not isinstance(choices, list):
            raise ParseError("Chunk has no choices list", payload=payload)

        deltas: list[str] = []
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta")
            if isinstance(delta, dict):
                content = delta.get("content")
                if isinstance(content, str) and content:
                    deltas.append(content)
            # Any finish_reason ends the stream; later choices are not read.
            if choice.get("finish_reason") is not None:
                return VendorChunk(deltas=tuple(deltas), terminal=True)

        if not deltas:
            return None
        return VendorChunk(deltas=tuple(deltas))

    def extract_fallback_text(self, document: Any) -> list[str]:
        if not isinstance(document, dict):
            return []
        fragments: list[str] = []
        choices = document.get("choices")
        if isinstance(choices, list):
            for choice in choices:
                if not isinstance(choice, dict):
                    continue
                text = _extract_message_text(choice.get("message"))
                if not text:
                    legacy = choice.get("text")
                    text = legacy if isinstance(legacy, str) else ""
                if text:
                    fragments.append(text)
        if fragments:
            return fragments

        # Cloudflare Workers AI style: {"result": {"response": "..."}}
        result = document.get("result")
        if isinstance(result, dict):
            response = result.get("response")
            if isinstance(response, str) and response:
                return [response]
        return []
