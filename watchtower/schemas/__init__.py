"""Schemas — immutable pydantic models exchanged with the moderation service."""
