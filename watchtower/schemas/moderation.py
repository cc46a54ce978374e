"""Moderation Result — decision, score and reason codes for one image check.

Invariants:
    - reasons preserves order; local enforcement only appends
    - nsfw_score is a real number or None (bools and strings are discarded)
    - Fallback constructors build a fresh instance per call (no shared mutable lists)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from watchtower.core.domain_types import (
    Decision,
    REASON_CLOUD_UNAVAILABLE,
    REASON_SDK_NETWORK_ERROR,
)
from watchtower.core.errors import MalformedResponseError


class ModerationResult(BaseModel):
    """Outcome of check_image_jpeg."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    decision: Decision
    nsfw_score: float | None = None
    reasons: list[str] = Field(default_factory=list)

    @classmethod
    def network_error(cls) -> "ModerationResult":
        """Total failure — the service never produced a decision."""
        return cls(decision=Decision.ALLOW, reasons=[REASON_SDK_NETWORK_ERROR])

    @classmethod
    def cloud_unavailable(cls) -> "ModerationResult":
        """The service answered, but with a non-2xx status."""
        return cls(decision=Decision.ALLOW, reasons=[REASON_CLOUD_UNAVAILABLE])

    @classmethod
    def from_payload(cls, payload: Any) -> "ModerationResult":
        """Lenient parse of {decision, nsfwScore, reasons}."""
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"image body must be a JSON object, got {type(payload).__name__}",
            )

        raw_decision = payload.get("decision") or Decision.ALLOW.value
        try:
            decision = Decision(raw_decision)
        except ValueError as e:
            raise MalformedResponseError(f"unknown decision {raw_decision!r}") from e

        score = payload.get("nsfwScore")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            score = None

        reasons = payload.get("reasons")
        reasons = [str(r) for r in reasons] if isinstance(reasons, list) else []

        return cls(decision=decision, nsfw_score=score, reasons=reasons)
