"""Configuration for the streaming relay.

This module contains configuration schemas and wire constants:
- RelaySettings: runtime knobs (event topic, chunk size, timeouts, log level)
- ProviderConfig / AppConfig: the named provider table a host keeps on disk
- Vendor wire constants shared by the adapters
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..requests.descriptor import RequestDescriptor

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

DEFAULT_EVENT_TOPIC = "llm-stream"
DEFAULT_ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_TEMPERATURE = 0.3
CLAUDE_MAX_TOKENS = 4096
PROBE_MAX_TOKENS = 1
ERROR_SNIPPET_MAX_CHARS = 200
SSE_CONTENT_TYPE = "text/event-stream"
SSE_DATA_PREFIX = "data: "
DEFAULT_CHUNK_SIZE = 4096


def _env_optional_float(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s=%r", name, raw)
        return None
    return value if value > 0 else None


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r", name, raw)
        return default


# -----------------------------------------------------------------------------
# Runtime Settings
# -----------------------------------------------------------------------------

class RelaySettings(BaseModel):
    """Runtime configuration passed explicitly into the relay and its adapters."""

    model_config = ConfigDict(frozen=True)

    EVENT_TOPIC: str = Field(
        default=((os.getenv("LLM_RELAY_EVENT_TOPIC") or "").strip() or DEFAULT_EVENT_TOPIC),
        description="Topic every canonical event is published under on the host event bus.",
    )
    CHUNK_SIZE: int = Field(
        default=_env_int("LLM_RELAY_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        ge=1,
        description="Maximum bytes read from the response body per iteration.",
    )
    STREAM_CONNECT_TIMEOUT_SECONDS: Optional[float] = Field(
        default=_env_optional_float("LLM_RELAY_STREAM_CONNECT_TIMEOUT"),
        gt=0,
        description=(
            "Optional connect timeout for streaming requests. Unset by default: "
            "a streaming request waits for the vendor indefinitely."
        ),
    )
    STREAM_SOCK_READ_TIMEOUT_SECONDS: Optional[float] = Field(
        default=_env_optional_float("LLM_RELAY_STREAM_SOCK_READ_TIMEOUT"),
        gt=0,
        description="Optional idle read timeout between chunks of a streaming response. Unset by default.",
    )
    TEST_CONNECTION_TIMEOUT_SECONDS: float = Field(
        default=_env_optional_float("LLM_RELAY_TEST_CONNECTION_TIMEOUT") or 30.0,
        gt=0,
        description="Wall-clock limit for the non-streaming connection test.",
    )
    LOG_LEVEL: str = Field(
        default=((os.getenv("LLM_RELAY_LOG_LEVEL") or "").strip().upper() or "INFO"),
        description="Log level used by configure_logging() when no explicit level is given.",
    )


# -----------------------------------------------------------------------------
# Provider Table
# -----------------------------------------------------------------------------

class ProviderConfig(BaseModel):
    """One named provider entry: which vendor, where, and with which model."""

    model_config = ConfigDict(populate_by_name=True)

    provider_type: str = Field(alias="type", description="openai | claude | gemini")
    base_url: str
    api_key: str = ""
    model: str
    context_window: Optional[int] = None
    api_version: Optional[str] = None

    def to_descriptor(self, prompt: str, system_prompt: Optional[str] = None) -> RequestDescriptor:
        """Build a RequestDescriptor for this provider."""
        return RequestDescriptor(
            provider_kind=self.provider_type,
            base_url=self.base_url,
            api_key=self.api_key,
            model=self.model,
            prompt=prompt,
            system_prompt=system_prompt,
            api_version=self.api_version,
        )


class AppConfig(BaseModel):
    """Provider table plus the name of the provider used by default."""

    default: str
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _default_must_exist(self) -> "AppConfig":
        if self.providers and self.default not in self.providers:
            raise ValueError(f"Provider '{self.default}' not found in config")
        return self

    def active_provider(self) -> Optional[ProviderConfig]:
        return self.providers.get(self.default)

    def provider(self, name: Optional[str] = None) -> ProviderConfig:
        """Return the named provider, or the default one when ``name`` is empty."""
        key = name or self.default
        try:
            return self.providers[key]
        except KeyError:
            raise KeyError(f"Provider '{key}' not found in config") from None


def default_app_config() -> AppConfig:
    """Return the built-in provider table used when no config file exists."""
    return AppConfig(
        default="openai",
        providers={
            "openai": ProviderConfig(
                provider_type="openai",
                base_url="https://api.openai.com/v1",
                model="gpt-4o",
                context_window=128000,
            ),
            "claude": ProviderConfig(
                provider_type="claude",
                base_url="https://api.anthropic.com",
                model="claude-sonnet-4-20250514",
                context_window=200000,
                api_version=DEFAULT_ANTHROPIC_VERSION,
            ),
            "gemini": ProviderConfig(
                provider_type="gemini",
                base_url="https://generativelanguage.googleapis.com",
                model="gemini-1.5-flash",
                context_window=1000000,
            ),
        },
    )


def load_app_config(path: Union[str, Path, None]) -> AppConfig:
    """Read a TOML provider table, falling back to the defaults when absent.

    Args:
        path: Location of the TOML file. ``None`` means "use defaults".

    Returns:
        AppConfig: The parsed table.

    Raises:
        ValueError: The file exists but is not valid TOML or does not match the schema.
    """
    if path is None:
        return default_app_config()
    config_path = Path(path)
    if not config_path.exists():
        LOGGER.info("Config file %s not found; using built-in provider defaults", config_path)
        return default_app_config()
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse config file: {exc}") from exc
    return AppConfig.model_validate(raw)
