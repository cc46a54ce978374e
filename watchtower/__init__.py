"""Watchtower — fail-open content moderation gateway client.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
      (e.g. `from watchtower.services.moderation_client import ModerationClient`)
"""
