"""Services Layer — stateful orchestration (policy cache, telemetry, client facade)."""
