"""Command-line entry point.

Usage:
    python -m llm_stream_relay stream [--config PATH] [--provider NAME] [--system TEXT] PROMPT
    python -m llm_stream_relay test [--config PATH] [--provider NAME]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence, TextIO

from .core.config import AppConfig, ProviderConfig, RelaySettings, load_app_config
from .core.logging_system import configure_logging
from .relay import StreamRelay
from .requests.connection_test import test_connection
from .streaming.event_emitter import QueueEventBus

LOGGER = logging.getLogger("llm_stream_relay.cli")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="llm_stream_relay",
        description="Stream a prompt through a configured LLM provider",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LLM_RELAY_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _add_provider_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", help="Path to a TOML provider table (default: built-in providers)")
        sub.add_argument("--provider", help="Provider name from the table (default: the table's default)")

    stream_parser = subparsers.add_parser("stream", help="Stream a single prompt to stdout")
    _add_provider_options(stream_parser)
    stream_parser.add_argument("--system", help="Optional system prompt")
    stream_parser.add_argument("prompt", help="User prompt")

    test_parser = subparsers.add_parser("test", help="Check that the provider answers")
    _add_provider_options(test_parser)
    return parser.parse_args(argv)


def _select_provider(args: argparse.Namespace) -> ProviderConfig:
    config: AppConfig = load_app_config(args.config)
    return config.provider(args.provider)


async def _run_stream(
    provider: ProviderConfig,
    prompt: str,
    system_prompt: Optional[str],
    settings: RelaySettings,
    out: TextIO,
) -> int:
    bus = QueueEventBus()
    exit_code = 0
    with bus.subscribe(settings.EVENT_TOPIC) as subscription:
        async with StreamRelay(bus, settings) as relay:
            stream_id = relay.launch(provider.to_descriptor(prompt, system_prompt))
            async for event in subscription.iter_stream(stream_id):
                if event.delta:
                    out.write(event.delta)
                    out.flush()
                if event.error:
                    LOGGER.error("%s", event.error)
                    exit_code = 1
            await relay.drain()
    out.write("\n")
    return exit_code


async def _run_test(provider: ProviderConfig, settings: RelaySettings, out: TextIO) -> int:
    result = await test_connection(
        provider.provider_type,
        provider.base_url,
        provider.api_key,
        provider.model,
        provider.api_version,
        settings=settings,
    )
    out.write(("OK: " if result.ok else "FAILED: ") + result.message + "\n")
    return 0 if result.ok else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = RelaySettings()
    configure_logging(args.log_level or settings.LOG_LEVEL)

    try:
        provider = _select_provider(args)
    except (KeyError, ValueError) as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 2

    try:
        if args.command == "stream":
            return asyncio.run(_run_stream(provider, args.prompt, args.system, settings, sys.stdout))
        return asyncio.run(_run_test(provider, settings, sys.stdout))
    except KeyboardInterrupt:
        LOGGER.info("Shutting down.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
