"""Error taxonomy for the streaming relay.

Every failure that can end a stream is one of these classes:
- NetworkError: connect/transport/timeout failure
- HttpStatusError: non-2xx response, carries status, reason and body
- ParseError: a single line does not match the vendor's shape
- VendorError: well-formed error object inside a 2xx body
- UnsupportedProviderError: unknown provider kind at launch

ParseError is the only one handled locally (the line is dropped). All others
end the stream with a single terminal error event.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import aiohttp


class RelayError(RuntimeError):
    """Base class for failures raised inside a stream task."""


class NetworkError(RelayError):
    """Connection, transport or timeout failure talking to the vendor."""

    def __init__(self, detail: str, *, cause: Optional[BaseException] = None) -> None:
        self.detail = detail
        self.cause = cause
        super().__init__(f"Network error: {detail}")


class HttpStatusError(RelayError):
    """Vendor answered with a non-2xx status."""

    def __init__(self, *, status: int, reason: Optional[str] = None, body: str = "") -> None:
        self.status = status
        self.reason = (reason or "").strip() or None
        self.body = body or ""
        status_label = f"{self.status} {self.reason}" if self.reason else str(self.status)
        super().__init__(f"HTTP {status_label}: {self.body}")


class ParseError(RelayError):
    """A single SSE payload could not be decoded into the vendor's shape."""

    def __init__(self, message: str, *, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)


class VendorError(RelayError):
    """The vendor reported an error inside an otherwise successful response."""

    def __init__(self, message: str, *, raw_body: str = "") -> None:
        self.vendor_message = message
        self.raw_body = raw_body
        super().__init__(message)


class UnsupportedProviderError(RelayError):
    """The request named a provider kind the relay has no adapter for."""

    def __init__(self, provider_kind: str) -> None:
        self.provider_kind = provider_kind
        super().__init__(f"Unsupported provider type: {provider_kind}")


def _wrap_transport_error(exc: BaseException) -> NetworkError:
    """Convert an aiohttp/asyncio transport exception into a NetworkError."""
    if isinstance(exc, asyncio.TimeoutError):
        return NetworkError("request timed out", cause=exc)
    if isinstance(exc, aiohttp.ClientError):
        detail = str(exc) or exc.__class__.__name__
        return NetworkError(detail, cause=exc)
    return NetworkError(str(exc) or exc.__class__.__name__, cause=exc)


TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (aiohttp.ClientError, asyncio.TimeoutError)
