"""Server-Sent Events (SSE) line framing.

This module turns an HTTP body delivered as arbitrary byte chunks into
complete lines:
- Incremental UTF-8 decoding (invalid bytes replaced, split characters rejoined)
- Line accumulation across chunk boundaries
- ``data: `` payload extraction, skipping blank and comment lines

Framing is identical for every vendor; only the interpretation of the payload
after the ``data: `` prefix differs, and that lives in the adapters.
"""

from __future__ import annotations

import codecs
from typing import Optional

from ..core.config import SSE_DATA_PREFIX


class SSELineFramer:
    """Stateful accumulator producing trimmed lines from byte chunks.

    One instance belongs to exactly one response body. Text after the last
    newline is held back until the next chunk arrives, even mid-line.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self.lines_emitted = 0

    def feed(self, chunk: bytes) -> list[str]:
        """Append ``chunk`` and return every line it completed.

        Args:
            chunk: Raw bytes as received from the transport.

        Returns:
            Complete lines, stripped of surrounding whitespace, in order. Blank
            lines are included so that callers see one entry per newline.
        """
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)

        lines: list[str] = []
        start_idx = 0
        while True:
            newline_idx = self._buffer.find("\n", start_idx)
            if newline_idx == -1:
                break
            lines.append(self._buffer[start_idx:newline_idx].strip())
            start_idx = newline_idx + 1

        # Clear processed text from buffer
        if start_idx > 0:
            self._buffer = self._buffer[start_idx:]
        self.lines_emitted += len(lines)
        return lines

    def close(self) -> str:
        """Flush the decoder and return (and drop) any unterminated remainder."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return remainder

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer


def extract_data_payload(line: str) -> Optional[str]:
    """Return the payload of a ``data: `` line, or None for anything else.

    Blank lines and ``:`` comment lines carry nothing. Lines without the
    ``data: `` prefix (``event:``, ``id:``, ``retry:``) are ignored here.
    """
    if not line or line.startswith(":"):
        return None
    if line.startswith(SSE_DATA_PREFIX):
        return line[len(SSE_DATA_PREFIX):]
    return None
