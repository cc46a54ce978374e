"""Domain Types — enums and caller metadata shared across the codebase.

Invariants:
    - Decisions only escalate: ALLOW < FLAG < BLOCK (see DECISION_SEVERITY)
    - All valid states encoded as Enums — no raw string matching
    - ContentMeta is opaque: passed through verbatim, never interpreted

Design Decisions:
    - str Enums: serialize to JSON without custom encoders (wire format is JSON)
    - ContentMeta as TypedDict (total=False): documents known keys, still a plain dict
"""

from enum import Enum
from typing import TypedDict


# ─── Enums ───────────────────────────────────────────────────────

class Decision(str, Enum):
    """Moderation outcome for a piece of content."""
    ALLOW = "ALLOW"
    FLAG = "FLAG"
    BLOCK = "BLOCK"


class ModerationMode(str, Enum):
    """Where classification is expected to run. Carried in config only."""
    ON_DEVICE_ONLY = "ON_DEVICE_ONLY"
    CLOUD_ONLY = "CLOUD_ONLY"
    HYBRID = "HYBRID"


class CheckStage(str, Enum):
    """Per-call progress of a check — surfaced as the `stage` log field."""
    PENDING = "pending"
    POLICY_FRESH = "policy_fresh"
    POLICY_REFRESHING = "policy_refreshing"
    REMOTE_CALL = "remote_call"
    LOCAL_ENFORCEMENT = "local_enforcement"
    RESOLVED = "resolved"
    FAILED_OPEN = "failed_open"


DECISION_SEVERITY: dict[Decision, int] = {
    Decision.ALLOW: 0,
    Decision.FLAG: 1,
    Decision.BLOCK: 2,
}


# ─── Reason Codes ────────────────────────────────────────────────

REASON_SDK_NETWORK_ERROR = "sdk_network_error"    # never reached a decision
REASON_CLOUD_UNAVAILABLE = "cloud_unavailable"    # server answered non-2xx
REASON_POLICY_NSFW = "policy_nsfw"                # local enforcement escalated


# ─── Caller Metadata ─────────────────────────────────────────────

class ContentMeta(TypedDict, total=False):
    """Caller-supplied context for a check. All keys optional."""
    userId: str | None
    sessionId: str | None
    contentId: str | None
    locale: str | None
    channel: str | None
