"""Logging setup with per-stream context.

Every stream task runs inside its own ``contextvars`` context, so a
``ContextVar`` holding the stream id is enough to tag every log record the
task produces, including records from shared modules such as the framer.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from contextvars import ContextVar
from typing import Iterator, Optional, Union

LOGGER = logging.getLogger(__name__)

_ROOT_LOGGER_NAME = "llm_stream_relay"


class StreamLogContext:
    """Holds the stream id of the task currently logging.

    Attributes:
        stream_id: ContextVar storing the active stream id (``None`` outside a stream).
    """

    stream_id: ContextVar[Optional[str]] = ContextVar("stream_id", default=None)
    _console_formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d [stream=%(stream_id)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    @classmethod
    @contextlib.contextmanager
    def bind(cls, stream_id: str) -> Iterator[None]:
        """Tag log records emitted inside the block with ``stream_id``."""
        token = cls.stream_id.set(stream_id)
        try:
            yield
        finally:
            cls.stream_id.reset(token)

    @classmethod
    def current(cls) -> Optional[str]:
        return cls.stream_id.get()


class _StreamIdFilter(logging.Filter):
    """Attach the current stream id to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "stream_id"):
            record.stream_id = StreamLogContext.current() or "-"
        return True


def configure_logging(level: Union[int, str, None] = None) -> logging.Logger:
    """Install a console handler on the package logger.

    Idempotent: calling it again only updates the level.

    Args:
        level: Logging level name or number. Defaults to ``INFO``.

    Returns:
        logging.Logger: The package root logger.
    """
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    resolved = level if level is not None else logging.INFO
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            LOGGER.warning("Unknown log level %r; falling back to INFO", level)
            resolved = logging.INFO
    logger.setLevel(resolved)

    if not any(getattr(h, "_llm_stream_relay", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StreamLogContext._console_formatter)
        handler.addFilter(_StreamIdFilter())
        handler._llm_stream_relay = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def install_stream_id_filter(logger: logging.Logger) -> None:
    """Add the stream id filter to ``logger`` (used by hosts with their own handlers)."""
    if not any(isinstance(f, _StreamIdFilter) for f in logger.filters):
        logger.addFilter(_StreamIdFilter())
