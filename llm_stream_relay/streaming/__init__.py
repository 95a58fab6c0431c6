"""Streaming response processing subsystem.

This package contains streaming-related functionality:
- streaming_core: request/response cycle of one stream
- sse_parser: byte chunks -> lines -> ``data:`` payloads
- event_emitter: canonical events, event buses and per-stream emission
"""

from .event_emitter import (
    CallbackEventBus,
    CanonicalEvent,
    EventBus,
    QueueEventBus,
    StreamEmitter,
    StreamState,
    StreamStats,
    Subscription,
)
from .sse_parser import SSELineFramer, extract_data_payload
from .streaming_core import StreamingHandler

__all__ = [
    "CallbackEventBus",
    "CanonicalEvent",
    "EventBus",
    "QueueEventBus",
    "StreamEmitter",
    "StreamState",
    "StreamStats",
    "Subscription",
    "SSELineFramer",
    "extract_data_payload",
    "StreamingHandler",
]
