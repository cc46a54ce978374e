"""Telemetry Event — one moderation outcome report for POST {base}/v1/events."""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class TelemetryEvent(BaseModel):
    """Ephemeral: built, sent once, discarded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    decision: str
    meta: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)
    timestamp_ms: int = Field(default_factory=_now_ms, alias="ts")

    def to_payload(self) -> dict[str, Any]:
        """Wire shape: {type, decision, meta, extra, ts}."""
        return self.model_dump(by_alias=True, mode="json")
