"""Core infrastructure module.

Foundation services required by all subsystems:
- Configuration schemas (RelaySettings, ProviderConfig, AppConfig)
- Error taxonomy
- Per-stream logging context
- Pure utility functions
"""

from .config import (
    AppConfig,
    ProviderConfig,
    RelaySettings,
    default_app_config,
    load_app_config,
)
from .errors import (
    HttpStatusError,
    NetworkError,
    ParseError,
    RelayError,
    UnsupportedProviderError,
    VendorError,
)
from .logging_system import StreamLogContext, configure_logging

__all__ = [
    "AppConfig",
    "ProviderConfig",
    "RelaySettings",
    "default_app_config",
    "load_app_config",
    "HttpStatusError",
    "NetworkError",
    "ParseError",
    "RelayError",
    "UnsupportedProviderError",
    "VendorError",
    "StreamLogContext",
    "configure_logging",
]
