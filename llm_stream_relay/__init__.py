"""Multi-vendor LLM streaming relay.

Normalizes the streamed output of OpenAI-compatible, Gemini and Claude APIs
into one event contract, ``{stream_id, delta, done, error?}``, published on a
host event bus:
- relay: StreamRelay, the launcher and stream registry
- api.gateway: per-vendor request builders and line decoders
- streaming: SSE framing, the transport loop and event emission
- requests: request descriptor, fallback decoding, connection test
- core: configuration, errors, logging, utilities
"""

try:
    from importlib.metadata import PackageNotFoundError, version as _get_version
    __version__ = _get_version("llm-stream-relay")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback if not installed as package

from .core.config import AppConfig, ProviderConfig, RelaySettings, default_app_config, load_app_config
from .core.errors import (
    HttpStatusError,
    NetworkError,
    ParseError,
    RelayError,
    UnsupportedProviderError,
    VendorError,
)
from .core.logging_system import StreamLogContext, configure_logging
from .relay import StreamRelay
from .requests.connection_test import ConnectionTestResult, test_connection
from .requests.descriptor import RequestDescriptor
from .requests.nonstreaming_adapter import decode_fallback_body
from .streaming.event_emitter import (
    CallbackEventBus,
    CanonicalEvent,
    EventBus,
    QueueEventBus,
    StreamEmitter,
)

__all__ = [
    "__version__",
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
    "StreamRelay",
    "ConnectionTestResult",
    "test_connection",
    "RequestDescriptor",
    "decode_fallback_body",
    "CallbackEventBus",
    "CanonicalEvent",
    "EventBus",
    "QueueEventBus",
    "StreamEmitter",
]
