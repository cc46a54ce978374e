"""Telemetry Emitter — fire-and-forget reporting of moderation outcomes.

Invariants:
    - emit() returns immediately; callers never await delivery
    - A failed emission is swallowed (FailOpenExecutor, fallback None) — it never
      reaches the moderation decision or the caller
    - Event construction runs inside that boundary: unserializable caller meta
      is a telemetry failure, not a check failure
    - Each emission's deadline is min(client timeout, 5000ms)
    - Pending tasks are strongly referenced until done, then released

Design Decisions:
    - asyncio.Task per event: independent of the originating check, not joined by it
    - drain() lets close() flush events already dispatched; delivery stays
      best-effort
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

from watchtower.infrastructure.fail_open import FailOpenExecutor
from watchtower.schemas.telemetry import TelemetryEvent

logger = logging.getLogger(__name__)

TELEMETRY_TIMEOUT_CEILING_MS = 5_000

Sender = Callable[[dict[str, Any], int], Awaitable[None]]


class TelemetryEmitter:
    """Dispatches TelemetryEvents without blocking the decision path."""

    def __init__(self, send: Sender, timeout_ms: int, executor: FailOpenExecutor):
        self._send = send
        self.timeout_ms = min(timeout_ms, TELEMETRY_TIMEOUT_CEILING_MS)
        self._executor = executor
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def emit(
        self,
        type: str,
        decision: str,
        meta: Mapping[str, Any] | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> asyncio.Task:
        """Schedule an event and return its task. Never raises for bad fields or delivery."""
        task = asyncio.get_running_loop().create_task(
            self._executor.run(
                "emit_event", None,
                lambda: self._build_and_send(type, decision, meta, extra),
            ),
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _build_and_send(
        self,
        type: str,
        decision: str,
        meta: Mapping[str, Any] | None,
        extra: Mapping[str, Any] | None,
    ) -> None:
        # Opaque caller meta is validated only here, inside the emit_event boundary
        event = TelemetryEvent(
            type=type, decision=decision, meta=dict(meta or {}), extra=dict(extra or {}),
        )
        await self._deliver(event)

    async def _deliver(self, event: TelemetryEvent) -> None:
        await self._send(event.to_payload(), self.timeout_ms)
        logger.debug(
            f"Telemetry event {event.type} delivered",
            extra={"event_type": event.type},
        )

    async def drain(self) -> None:
        """Wait for every in-flight event to finish (each bounded by its deadline)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
