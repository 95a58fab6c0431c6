"""Canonical event emission.

Handles the one-way push of normalized events to the host:
- CanonicalEvent: the ``{stream_id, delta, done, error}`` contract
- EventBus implementations (queue fan-out, plain callback)
- StreamEmitter: per-stream guard enforcing the event invariants

Invariants enforced by StreamEmitter:
- a non-terminal event always carries a non-empty delta
- exactly one terminal (``done=True``) event per stream, and nothing after it
- an error is only ever reported on the terminal event
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, model_validator

from ..api.gateway.base import VendorChunk

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Event Contract
# -----------------------------------------------------------------------------

class CanonicalEvent(BaseModel):
    """Vendor-independent streaming event delivered to the host."""

    model_config = ConfigDict(frozen=True)

    stream_id: str
    delta: str = ""
    done: bool = False
    error: Optional[str] = None

    @model_validator(mode="after")
    def _error_implies_done(self) -> "CanonicalEvent":
        if self.error is not None and not self.done:
            raise ValueError("an event carrying an error must be terminal (done=True)")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Return the wire dict; ``error`` is omitted when absent."""
        return self.model_dump(exclude_none=True)


class EventBus(Protocol):
    """Host event bus. Fire-and-forget: no acknowledgement, no backpressure."""

    def publish(self, topic: str, event: CanonicalEvent) -> None:
        ...


# -----------------------------------------------------------------------------
# Event Bus Implementations
# -----------------------------------------------------------------------------

class Subscription:
    """Unbounded queue of events for one consumer of a QueueEventBus."""

    def __init__(self, bus: "QueueEventBus", topic: Optional[str]) -> None:
        self._bus = bus
        self.topic = topic
        self._queue: asyncio.Queue[CanonicalEvent] = asyncio.Queue()

    def _offer(self, topic: str, event: CanonicalEvent) -> None:
        if self.topic is None or self.topic == topic:
            self._queue.put_nowait(event)

    async def get(self) -> CanonicalEvent:
        return await self._queue.get()

    def get_nowait(self) -> CanonicalEvent:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    def __aiter__(self) -> AsyncIterator[CanonicalEvent]:
        return self

    async def __anext__(self) -> CanonicalEvent:
        return await self._queue.get()

    async def iter_stream(self, stream_id: str) -> AsyncIterator[CanonicalEvent]:
        """Yield the events of one stream until (and including) its terminal event.

        Events of other streams received meanwhile are discarded.
        """
        while True:
            event = await self._queue.get()
            if event.stream_id != stream_id:
                continue
            yield event
            if event.done:
                return

    def close(self) -> None:
        self._bus._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class QueueEventBus:
    """In-process fan-out bus backed by unbounded asyncio queues.

    ``publish`` never awaits, so a slow subscriber cannot stall producers.
    All publishers must run on the loop that owns the subscriptions.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscription] = []

    def subscribe(self, topic: Optional[str] = None) -> Subscription:
        """Register a consumer. ``topic=None`` receives every topic."""
        subscription = Subscription(self, topic)
        self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            pass

    def publish(self, topic: str, event: CanonicalEvent) -> None:
        for subscription in list(self._subscribers):
            subscription._offer(topic, event)


class CallbackEventBus:
    """Adapts a plain ``callback(topic, payload_dict)`` into an EventBus."""

    def __init__(self, callback: Callable[[str, dict[str, Any]], Any]) -> None:
        self._callback = callback

    def publish(self, topic: str, event: CanonicalEvent) -> None:
        self._callback(topic, event.to_payload())


# -----------------------------------------------------------------------------
# Per-stream Emission
# -----------------------------------------------------------------------------

class StreamState(str, enum.Enum):
    """Lifecycle of one stream. DONE and ERROR are absorbing."""

    LAUNCHED = "launched"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BATCH_PARSING = "batch_parsing"
    DONE = "done"
    ERROR = "error"


_TERMINAL_STATES = frozenset({StreamState.DONE, StreamState.ERROR})


@dataclass(slots=True)
class StreamStats:
    """Counters kept for one stream, logged when it terminates."""

    lines: int = 0
    data_lines: int = 0
    dropped_lines: int = 0
    deltas: int = 0


class StreamEmitter:
    """Publishes the canonical events of a single stream.

    Args:
        stream_id: Identity minted by the launcher.
        bus: Host event bus shared by every stream.
        topic: Fixed topic all events are published under.
        logger: Logger for diagnostics (default: module logger).
    """

    def __init__(
        self,
        stream_id: str,
        bus: EventBus,
        topic: str,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.stream_id = stream_id
        self._bus = bus
        self._topic = topic
        self.logger = logger or LOGGER
        self.state = StreamState.LAUNCHED
        self.stats = StreamStats()

    @property
    def terminated(self) -> bool:
        return self.state in _TERMINAL_STATES

    def transition(self, state: StreamState) -> None:
        """Move to a non-terminal state; ignored once the stream has terminated."""
        if self.terminated:
            return
        self.logger.debug("Stream %s: %s -> %s", self.stream_id, self.state.value, state.value)
        self.state = state

    def emit_delta(self, text: str) -> bool:
        """Publish ``text`` as a delta. Returns False when nothing was published."""
        if not text:
            return False
        if self.terminated:
            self.logger.debug("Dropping delta after terminal event (stream=%s)", self.stream_id)
            return False
        self._publish(CanonicalEvent(stream_id=self.stream_id, delta=text))
        self.stats.deltas += 1
        return True

    def emit_chunk(self, chunk: VendorChunk) -> bool:
        """Publish a decoded vendor chunk. Returns True when it ended the stream."""
        for text in chunk.deltas:
            self.emit_delta(text)
        if chunk.terminal:
            self.finish()
            return True
        return False

    def finish(self) -> None:
        """Publish the successful terminal event (once)."""
        if self.terminated:
            return
        self.state = StreamState.DONE
        self._publish(CanonicalEvent(stream_id=self.stream_id, done=True))
        self.logger.info(
            "Stream %s done (deltas=%d lines=%d data_lines=%d dropped=%d)",
            self.stream_id,
            self.stats.deltas,
            self.stats.lines,
            self.stats.data_lines,
            self.stats.dropped_lines,
        )

    def fail(self, message: str) -> None:
        """Publish the terminal error event (once)."""
        if self.terminated:
            self.logger.debug("Ignoring error after terminal event (stream=%s): %s", self.stream_id, message)
            return
        self.state = StreamState.ERROR
        self._publish(
            CanonicalEvent(stream_id=self.stream_id, done=True, error=message or "Unknown error")
        )
        self.logger.warning("Stream %s failed: %s", self.stream_id, message)

    def _publish(self, event: CanonicalEvent) -> None:
        try:
            self._bus.publish(self._topic, event)
        except Exception:
            # The sink is one-way; a failing host handler must not kill the stream.
            self.logger.error(
                "Event bus rejected event for stream %s", self.stream_id, exc_info=True
            )
