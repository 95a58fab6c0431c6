"""Request handling subsystem.

- descriptor: the immutable RequestDescriptor handed to the launcher
- nonstreaming_adapter: fallback decoding of complete JSON bodies
- connection_test: one-shot non-streaming probe of a provider
"""

from __future__ import annotations

from .descriptor import RequestDescriptor

__all__ = ["RequestDescriptor"]
