"""Core streaming loop and response handling.

This module provides StreamingHandler, which drives one stream from request to
terminal event:
- resolve the vendor adapter and build the request
- perform the HTTP exchange (no retries)
- route the body to the SSE line loop or to the fallback decoder
- translate every failure into the stream's single terminal error event
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from ..api.gateway import get_adapter
from ..api.gateway.base import StreamAdapter
from ..core.config import SSE_CONTENT_TYPE, RelaySettings
from ..core.errors import (
    TRANSPORT_ERRORS,
    HttpStatusError,
    ParseError,
    RelayError,
    _wrap_transport_error,
)
from ..core.utils import _truncate
from ..requests.descriptor import RequestDescriptor
from ..requests.nonstreaming_adapter import decode_fallback_body
from .event_emitter import StreamEmitter, StreamState
from .sse_parser import SSELineFramer, extract_data_payload

LOGGER = logging.getLogger(__name__)

_DEBUG_PAYLOAD_CHARS = 500


class StreamingHandler:
    """Runs the request/response cycle of individual streams.

    One handler can serve any number of concurrent streams; all per-stream
    state lives in the StreamEmitter and the local framer.

    Args:
        settings: Runtime settings (chunk size, optional streaming timeouts).
        logger: Logger for diagnostic output (default: module logger).
    """

    def __init__(
        self,
        settings: Optional[RelaySettings] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or RelaySettings()
        self.logger = logger or LOGGER

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def stream_timeout(self) -> aiohttp.ClientTimeout:
        """Timeout for streaming requests: unlimited unless opted in via settings."""
        return aiohttp.ClientTimeout(
            total=None,
            connect=self.settings.STREAM_CONNECT_TIMEOUT_SECONDS,
            sock_read=self.settings.STREAM_SOCK_READ_TIMEOUT_SECONDS,
        )

    def create_http_session(self) -> aiohttp.ClientSession:
        """Return a fresh ClientSession for a single stream."""
        timeout = self.stream_timeout()
        self.logger.debug(
            "HTTP timeouts: connect=%s sock_read=%s",
            timeout.connect if timeout.connect is not None else "disabled",
            timeout.sock_read if timeout.sock_read is not None else "disabled",
        )
        return aiohttp.ClientSession(timeout=timeout, json_serialize=json.dumps)

    # ------------------------------------------------------------------
    # Stream lifecycle
    # ------------------------------------------------------------------

    async def run(
        self,
        descriptor: RequestDescriptor,
        emitter: StreamEmitter,
        session: aiohttp.ClientSession,
    ) -> None:
        """Drive one stream until its terminal event has been emitted.

        Only cancellation propagates; every other failure is reported through
        ``emitter.fail``. When the body ends without a vendor terminal signal
        the done event is synthesized here.
        """
        try:
            await self._exchange(descriptor, emitter, session)
        except RelayError as exc:
            emitter.fail(str(exc))
        except asyncio.CancelledError:
            self.logger.debug("Stream %s cancelled in state %s", emitter.stream_id, emitter.state.value)
            raise
        except Exception as exc:
            self.logger.error("Unexpected failure in stream %s", emitter.stream_id, exc_info=True)
            emitter.fail(f"Internal error: {exc}")
        else:
            emitter.finish()

    async def _exchange(
        self,
        descriptor: RequestDescriptor,
        emitter: StreamEmitter,
        session: aiohttp.ClientSession,
    ) -> None:
        adapter = get_adapter(descriptor.provider_kind, self.settings)
        request = adapter.build(descriptor)

        emitter.transition(StreamState.CONNECTING)
        self.logger.debug("POST %s (provider=%s model=%s)", adapter.base_url(descriptor), adapter.kind.value, descriptor.model)
        try:
            async with session.request(
                request.method,
                request.url,
                json=request.body,
                headers=request.headers,
                timeout=self.stream_timeout(),
            ) as resp:
                if not 200 <= resp.status < 300:
                    body_bytes = await resp.read()
                    raise HttpStatusError(
                        status=resp.status,
                        reason=resp.reason,
                        body=body_bytes.decode("utf-8", errors="replace"),
                    )

                content_type = (resp.headers.get("Content-Type") or "").lower()
                if SSE_CONTENT_TYPE not in content_type:
                    emitter.transition(StreamState.BATCH_PARSING)
                    body_bytes = await resp.read()
                    self._emit_fallback(adapter, body_bytes.decode("utf-8", errors="replace"), emitter)
                    return

                emitter.transition(StreamState.STREAMING)
                await self._consume_event_stream(resp, adapter, emitter)
        except TRANSPORT_ERRORS as exc:
            raise _wrap_transport_error(exc) from exc

    # ------------------------------------------------------------------
    # Body handling
    # ------------------------------------------------------------------

    async def _consume_event_stream(
        self,
        resp: aiohttp.ClientResponse,
        adapter: StreamAdapter,
        emitter: StreamEmitter,
    ) -> None:
        """Frame the body into lines and feed each ``data:`` payload to the adapter."""
        framer = SSELineFramer()
        async for chunk in resp.content.iter_chunked(self.settings.CHUNK_SIZE):
            for line in framer.feed(chunk):
                if self._handle_line(line, adapter, emitter):
                    return

        remainder = framer.close()
        if remainder.strip():
            self.logger.debug("Discarding unterminated trailing line (%d chars)", len(remainder))

    def _handle_line(self, line: str, adapter: StreamAdapter, emitter: StreamEmitter) -> bool:
        """Process one framed line. Returns True when the vendor ended the stream."""
        stats = emitter.stats
        stats.lines += 1
        payload = extract_data_payload(line)
        if payload is None:
            return False
        stats.data_lines += 1

        try:
            chunk = adapter.decode_line(payload)
        except ParseError as exc:
            stats.dropped_lines += 1
            self.logger.debug("Dropping unparsable line (%s): %s", exc, _truncate(payload, _DEBUG_PAYLOAD_CHARS))
            return False
        if chunk is None:
            return False
        return emitter.emit_chunk(chunk)

    def _emit_fallback(self, adapter: StreamAdapter, body_text: str, emitter: StreamEmitter) -> None:
        for fragment in decode_fallback_body(adapter.kind.value, body_text, adapter=adapter):
            emitter.emit_delta(fragment)
