"""Stream launcher.

StreamRelay is the entry point a host talks to. ``launch`` returns a fresh
stream id immediately; the request itself runs in its own task and reports
exclusively through the host event bus.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Coroutine, Optional

import aiohttp

from .core.config import RelaySettings
from .core.logging_system import StreamLogContext
from .requests.descriptor import RequestDescriptor
from .streaming.event_emitter import EventBus, StreamEmitter
from .streaming.streaming_core import StreamingHandler

LOGGER = logging.getLogger(__name__)

SpawnFn = Callable[[Coroutine[Any, Any, None]], Awaitable[None]]


class StreamRelay:
    """Launches independent streams and tracks them until they terminate.

    Args:
        event_bus: Host bus every canonical event is published to.
        settings: Runtime settings (default: ``RelaySettings()``).
        session: Host-owned ClientSession shared by all streams. When omitted,
            each stream opens and closes its own session. An injected session
            is never closed by the relay.
        spawn: Host scheduling primitive (default: ``asyncio.create_task``).
            Must schedule the coroutine without awaiting it.
    """

    def __init__(
        self,
        event_bus: EventBus,
        settings: Optional[RelaySettings] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        spawn: Optional[SpawnFn] = None,
    ) -> None:
        self.settings = settings or RelaySettings()
        self._event_bus = event_bus
        self._session = session
        self._spawn: SpawnFn = spawn or asyncio.create_task
        self._handler = StreamingHandler(self.settings)
        self._streams: dict[str, asyncio.Future[None]] = {}

    # ------------------------------------------------------------------
    # Launching
    # ------------------------------------------------------------------

    def launch(self, descriptor: RequestDescriptor) -> str:
        """Schedule one stream for ``descriptor`` and return its id.

        Performs no network I/O. Every outcome, including an unknown provider
        kind, is reported as events on the bus.
        """
        stream_id = str(uuid.uuid4())
        emitter = StreamEmitter(stream_id, self._event_bus, self.settings.EVENT_TOPIC)
        scheduled = self._spawn(self._run_stream(descriptor, emitter))
        if isinstance(scheduled, asyncio.Future):
            self._streams[stream_id] = scheduled
            scheduled.add_done_callback(lambda _fut, sid=stream_id: self._streams.pop(sid, None))
        LOGGER.info(
            "Launched stream %s (provider=%s model=%s)",
            stream_id,
            descriptor.provider_kind,
            descriptor.model,
        )
        return stream_id

    async def _run_stream(self, descriptor: RequestDescriptor, emitter: StreamEmitter) -> None:
        with StreamLogContext.bind(emitter.stream_id):
            if self._session is not None:
                await self._handler.run(descriptor, emitter, self._session)
                return
            session = self._handler.create_http_session()
            try:
                await self._handler.run(descriptor, emitter, session)
            finally:
                await session.close()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def active_stream_ids(self) -> list[str]:
        """Ids of streams whose task has not finished yet."""
        return [stream_id for stream_id, task in self._streams.items() if not task.done()]

    async def drain(self) -> None:
        """Wait until every stream launched so far has terminated."""
        while self._streams:
            await asyncio.gather(*list(self._streams.values()), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel in-flight streams. Cancelled streams emit no further events."""
        pending = [task for task in self._streams.values() if not task.done()]
        if pending:
            LOGGER.info("Cancelling %d in-flight stream(s)", len(pending))
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._streams.clear()

    async def __aenter__(self) -> "StreamRelay":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
