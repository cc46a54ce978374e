"""Policy Schema — validation, coercion and per-field defaults of /v1/policy bodies.

Tests cover:
    - camelCase payloads parse into snake_case fields
    - missing/null fields fall back to per-field defaults
    - numeric strings and ints are coerced; out-of-range or junk is malformed
    - snapshots are immutable
"""

import pydantic
import pytest

from watchtower.core.errors import MalformedResponseError
from watchtower.schemas.policy import DEFAULT_POLICY, Policy


def test_full_payload_parsed():
    policy = Policy.from_payload({
        "blockToxicity": False,
        "blockSexual": True,
        "blockNsfwImages": True,
        "toxicityThreshold": 0.7,
        "sexualThreshold": 0.9,
        "nsfwThreshold": 0.85,
    })
    assert policy.block_toxicity is False
    assert policy.sexual_threshold == 0.9
    assert policy.nsfw_threshold == 0.85


def test_empty_payload_uses_defaults():
    policy = Policy.from_payload({})
    assert policy == DEFAULT_POLICY
    assert policy.block_toxicity is True
    assert policy.block_sexual is True
    assert policy.block_nsfw_images is True
    assert policy.toxicity_threshold == 0.85
    assert policy.sexual_threshold == 0.85
    assert policy.nsfw_threshold == 0.85


def test_null_fields_use_defaults():
    policy = Policy.from_payload({"blockNsfwImages": None, "nsfwThreshold": None})
    assert policy.block_nsfw_images is True
    assert policy.nsfw_threshold == 0.85


def test_explicit_false_is_kept():
    assert Policy.from_payload({"blockNsfwImages": False}).block_nsfw_images is False


def test_numeric_coercion():
    policy = Policy.from_payload({"nsfwThreshold": "0.6", "toxicityThreshold": 1})
    assert policy.nsfw_threshold == 0.6
    assert policy.toxicity_threshold == 1.0


def test_unknown_fields_ignored():
    policy = Policy.from_payload({"nsfwThreshold": 0.5, "version": 7})
    assert policy.nsfw_threshold == 0.5


@pytest.mark.parametrize("payload", [
    {"nsfwThreshold": "high"},
    {"nsfwThreshold": 1.5},
    {"toxicityThreshold": -0.1},
    {"blockSexual": "sometimes"},
])
def test_invalid_values_are_malformed(payload):
    with pytest.raises(MalformedResponseError):
        Policy.from_payload(payload)


@pytest.mark.parametrize("payload", [None, [], "policy", 0.85])
def test_non_object_body_is_malformed(payload):
    with pytest.raises(MalformedResponseError):
        Policy.from_payload(payload)


def test_policy_is_immutable():
    policy = Policy()
    with pytest.raises(pydantic.ValidationError):
        policy.nsfw_threshold = 0.1
