"""Policy — immutable snapshot of moderation thresholds and feature toggles.

Invariants:
    - Frozen: a refresh replaces the snapshot wholesale, never mutates it
    - Thresholds are numbers in [0, 1]; toggles are booleans
    - Missing or null fields take their per-field default (toggles True, thresholds 0.85)
    - Anything that cannot be coerced raises MalformedResponseError

Design Decisions:
    - camelCase aliases: parsed straight from the /v1/policy JSON body
    - Defaults declared per field, not as one shared constant: the reference
      policy service serves sexualThreshold=0.9 while the client default is 0.85
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from watchtower.core.errors import MalformedResponseError


DEFAULT_TOXICITY_THRESHOLD = 0.85
DEFAULT_SEXUAL_THRESHOLD = 0.85
DEFAULT_NSFW_THRESHOLD = 0.85


def _threshold(default: float):
    return Field(default=default, ge=0.0, le=1.0, allow_inf_nan=False)


class Policy(BaseModel):
    """Moderation policy as served by GET {base}/v1/policy."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True,
    )

    block_toxicity: bool = True
    block_sexual: bool = True
    block_nsfw_images: bool = True
    toxicity_threshold: float = _threshold(DEFAULT_TOXICITY_THRESHOLD)
    sexual_threshold: float = _threshold(DEFAULT_SEXUAL_THRESHOLD)
    nsfw_threshold: float = _threshold(DEFAULT_NSFW_THRESHOLD)

    @classmethod
    def from_payload(cls, payload: Any) -> "Policy":
        """Validate and coerce a policy body. Null fields fall back to defaults."""
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"policy body must be a JSON object, got {type(payload).__name__}",
            )
        present = {k: v for k, v in payload.items() if v is not None}
        try:
            return cls.model_validate(present)
        except ValidationError as e:
            raise MalformedResponseError(f"invalid policy: {e.error_count()} field error(s)") from e


DEFAULT_POLICY = Policy()
