"""Vendor adapter contract.

Each supported vendor implements ``StreamAdapter``:
- build(): URL, headers and JSON body of the streaming request
- build_probe(): the minimal non-streaming request used by the connection test
- decode_line(): one SSE ``data:`` payload -> VendorChunk (or nothing)
- extract_fallback_text(): text fragments of a complete, non-streamed JSON body
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional

from ...core.config import RelaySettings
from ...core.errors import ParseError
from ...requests.descriptor import RequestDescriptor


class ProviderKind(str, Enum):
    """Closed set of vendors the relay can talk to."""

    OPENAI = "openai"
    GEMINI = "gemini"
    CLAUDE = "claude"


@dataclass(frozen=True, slots=True)
class BuiltRequest:
    """Outbound HTTP request produced by an adapter."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    method: str = "POST"


@dataclass(frozen=True, slots=True)
class VendorChunk:
    """Decoded payload of a single SSE line.

    ``deltas`` are the text fragments carried by the line, in encounter order.
    ``terminal`` is set when the line is the vendor's end-of-stream signal.
    """

    deltas: tuple[str, ...] = field(default_factory=tuple)
    terminal: bool = False


class StreamAdapter(ABC):
    """Vendor-specific request construction and line decoding."""

    kind: ClassVar[ProviderKind]

    def __init__(self, settings: Optional[RelaySettings] = None) -> None:
        self.settings = settings or RelaySettings()

    @abstractmethod
    def build(self, descriptor: RequestDescriptor) -> BuiltRequest:
        """Return the streaming request for ``descriptor``."""

    @abstractmethod
    def build_probe(self, descriptor: RequestDescriptor) -> BuiltRequest:
        """Return a minimal (at most one output token) non-streaming request."""

    @abstractmethod
    def decode_line(self, payload: str) -> Optional[VendorChunk]:
        """Decode one SSE payload (the text after ``data: ``).

        Returns:
            A VendorChunk, or ``None`` when the line carries nothing of interest.

        Raises:
            ParseError: The payload does not match the vendor's streaming shape.
        """

    @abstractmethod
    def extract_fallback_text(self, document: Any) -> list[str]:
        """Return text fragments of a complete JSON success body, in document order."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def base_url(descriptor: RequestDescriptor) -> str:
        """Return the descriptor's base URL without surrounding whitespace or a trailing slash."""
        return (descriptor.base_url or "").strip().rstrip("/")

    @staticmethod
    def _load_object(payload: str) -> dict[str, Any]:
        """Parse ``payload`` as a JSON object or raise ParseError."""
        try:
            document = json.loads(payload)
        except ValueError as exc:
            raise ParseError(f"Invalid JSON payload: {exc}", payload=payload) from exc
        if not isinstance(document, dict):
            raise ParseError("Payload is not a JSON object", payload=payload)
        return document
