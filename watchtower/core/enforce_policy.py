"""Local Policy Enforcement — applies cached thresholds to a remote image score.

Invariants:
    - apply_image_policy is PURE: returns a new result, never mutates its input
    - Decisions only escalate toward BLOCK; a remote BLOCK is never relaxed
    - "policy_nsfw" appended iff blockNsfwImages and nsfwScore >= nsfwThreshold
    - A missing score never triggers enforcement

Design Decisions:
    - Runs as the final step after the remote call: the service cannot bypass it
    - Lives in core/ (no IO) so every score/threshold combination is unit-testable
"""

from watchtower.core.domain_types import (
    Decision,
    DECISION_SEVERITY,
    REASON_POLICY_NSFW,
)
from watchtower.schemas.moderation import ModerationResult
from watchtower.schemas.policy import Policy


def escalate(current: Decision, proposed: Decision) -> Decision:
    """Return whichever decision is stricter."""
    if DECISION_SEVERITY[proposed] > DECISION_SEVERITY[current]:
        return proposed
    return current


def violates_nsfw_policy(score: float | None, policy: Policy) -> bool:
    return (
        policy.block_nsfw_images
        and score is not None
        and score >= policy.nsfw_threshold
    )


def apply_image_policy(result: ModerationResult, policy: Policy) -> ModerationResult:
    """Force BLOCK when the NSFW score crosses the cached threshold."""
    if not violates_nsfw_policy(result.nsfw_score, policy):
        return result
    return result.model_copy(update={
        "decision": escalate(result.decision, Decision.BLOCK),
        "reasons": [*result.reasons, REASON_POLICY_NSFW],
    })
