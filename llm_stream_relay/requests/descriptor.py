"""Request descriptor consumed once by the launcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """Everything needed to issue one streaming request.

    ``provider_kind`` is a free string. An unknown kind surfaces as the
    stream's terminal error event, not as a failure at construction time.
    """

    provider_kind: str
    base_url: str
    api_key: str
    model: str
    prompt: str
    system_prompt: Optional[str] = None
    api_version: Optional[str] = None

    def __repr__(self) -> str:
        # Never leak the key into logs.
        masked = "***" if self.api_key else ""
        system = "set" if self.system_prompt else None
        return (
            f"RequestDescriptor(provider_kind={self.provider_kind!r}, base_url={self.base_url!r}, "
            f"model={self.model!r}, api_key={masked!r}, system_prompt={system!r})"
        )
