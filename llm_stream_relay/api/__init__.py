"""Vendor-facing API layer.

- gateway: per-vendor request builders and line decoders
"""

from .gateway import get_adapter, resolve_provider_kind

__all__ = ["get_adapter", "resolve_provider_kind"]
