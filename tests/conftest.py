"""Shared fixtures and fakes for the relay tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest

from llm_stream_relay.core.config import RelaySettings
from llm_stream_relay.requests.descriptor import RequestDescriptor
from llm_stream_relay.streaming.event_emitter import CanonicalEvent, QueueEventBus, Subscription


# -----------------------------------------------------------------------------
# Event buses
# -----------------------------------------------------------------------------

class RecordingBus:
    """EventBus that keeps every (topic, event) pair in publish order."""

    def __init__(self) -> None:
        self.published: list[tuple[str, CanonicalEvent]] = []

    def publish(self, topic: str, event: CanonicalEvent) -> None:
        self.published.append((topic, event))

    @property
    def events(self) -> list[CanonicalEvent]:
        return [event for _topic, event in self.published]

    def events_for(self, stream_id: str) -> list[CanonicalEvent]:
        return [event for event in self.events if event.stream_id == stream_id]


@pytest.fixture
def recording_bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def queue_bus() -> QueueEventBus:
    return QueueEventBus()


@pytest.fixture
def collect_events() -> Callable[[Subscription], list[CanonicalEvent]]:
    """Return a helper that empties a subscription without waiting."""

    def _collect(subscription: Subscription) -> list[CanonicalEvent]:
        events: list[CanonicalEvent] = []
        while subscription.qsize():
            events.append(subscription.get_nowait())
        return events

    return _collect


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------

@pytest.fixture
def settings() -> RelaySettings:
    return RelaySettings()


@pytest.fixture
def make_descriptor() -> Callable[..., RequestDescriptor]:
    defaults: dict[str, dict[str, Any]] = {
        "openai": {"base_url": "https://api.openai.test/v1", "model": "gpt-4o"},
        "gemini": {"base_url": "https://gemini.test", "model": "gemini-1.5-flash"},
        "claude": {"base_url": "https://claude.test", "model": "claude-sonnet-4-20250514"},
    }

    def _make(provider_kind: str = "openai", **overrides: Any) -> RequestDescriptor:
        fields: dict[str, Any] = {
            "provider_kind": provider_kind,
            "base_url": "https://unknown.test",
            "model": "some-model",
            "api_key": "sk-test",
            "prompt": "Hello",
        }
        fields.update(defaults.get(provider_kind, {}))
        fields.update(overrides)
        return RequestDescriptor(**fields)

    return _make


# -----------------------------------------------------------------------------
# Fake aiohttp objects
# -----------------------------------------------------------------------------

class FakeContent:
    """Fake aiohttp response content yielding pre-set chunks."""

    def __init__(
        self,
        chunks: list[bytes],
        *,
        raise_after: Optional[int] = None,
        exception: Optional[BaseException] = None,
        block: Optional[asyncio.Event] = None,
    ) -> None:
        self._chunks = chunks
        self._raise_after = raise_after
        self._exception = exception or RuntimeError("Simulated stream error")
        self._block = block
        self.chunks_read = 0
        self.requested_sizes: list[int] = []

    async def iter_chunked(self, size: int):
        self.requested_sizes.append(size)
        for idx, chunk in enumerate(self._chunks):
            if self._raise_after is not None and idx >= self._raise_after:
                raise self._exception
            await asyncio.sleep(0)
            self.chunks_read += 1
            yield chunk
        if self._raise_after is not None and self._raise_after >= len(self._chunks):
            raise self._exception
        if self._block is not None:
            await self._block.wait()


class FakeResponse:
    """Fake aiohttp response usable as ``async with`` target."""

    def __init__(
        self,
        chunks: Optional[list[bytes]] = None,
        *,
        status: int = 200,
        reason: Optional[str] = "OK",
        content_type: str = "text/event-stream",
        body: bytes = b"",
        **content_kwargs: Any,
    ) -> None:
        self.status = status
        self.reason = reason
        self.headers = {"Content-Type": content_type}
        self.content = FakeContent(list(chunks or []), **content_kwargs)
        self._body = body
        self.released = False

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.released = True
        return False


class FakeSession:
    """Fake ClientSession returning one canned response (or raising)."""

    def __init__(
        self,
        response: Optional[FakeResponse] = None,
        *,
        exception: Optional[BaseException] = None,
    ) -> None:
        self.response = response or FakeResponse()
        self.exception = exception
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exception is not None:
            raise self.exception
        return self.response

    async def close(self) -> None:
        self.closed = True


def sse(*payloads: str) -> bytes:
    """Encode payloads as ``data:`` lines separated by blank lines."""
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode("utf-8")
