"""Vendor adapters (OpenAI-compatible, Gemini, Claude) and their lookup."""

from __future__ import annotations

from typing import Optional

from ...core.config import RelaySettings
from ...core.errors import UnsupportedProviderError
from .base import BuiltRequest, ProviderKind, StreamAdapter, VendorChunk
from .claude_adapter import ClaudeAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter

_ADAPTERS: dict[ProviderKind, type[StreamAdapter]] = {
    ProviderKind.OPENAI: OpenAIAdapter,
    ProviderKind.GEMINI: GeminiAdapter,
    ProviderKind.CLAUDE: ClaudeAdapter,
}


def resolve_provider_kind(provider_kind: str) -> ProviderKind:
    """Map a descriptor's provider string onto the closed ProviderKind set.

    Raises:
        UnsupportedProviderError: ``provider_kind`` names no known vendor.
    """
    normalized = (provider_kind or "").strip().lower()
    try:
        return ProviderKind(normalized)
    except ValueError:
        raise UnsupportedProviderError(provider_kind) from None


def get_adapter(provider_kind: str, settings: Optional[RelaySettings] = None) -> StreamAdapter:
    """Return a fresh adapter instance for ``provider_kind``."""
    return _ADAPTERS[resolve_provider_kind(provider_kind)](settings)


__all__ = [
    "BuiltRequest",
    "ProviderKind",
    "StreamAdapter",
    "VendorChunk",
    "OpenAIAdapter",
    "GeminiAdapter",
    "ClaudeAdapter",
    "get_adapter",
    "resolve_provider_kind",
]
