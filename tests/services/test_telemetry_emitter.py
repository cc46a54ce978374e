"""Telemetry Emitter — fire-and-forget dispatch, bounded deadline, swallowed failures."""

import asyncio

from watchtower.core.errors import RemoteServiceError
from watchtower.infrastructure.fail_open import FailOpenExecutor
from watchtower.services.telemetry_emitter import (
    TELEMETRY_TIMEOUT_CEILING_MS,
    TelemetryEmitter,
)


class _Sender:
    def __init__(self, error=None, delay=0.0):
        self.sent = []
        self.error = error
        self.delay = delay

    async def __call__(self, payload, timeout_ms):
        self.sent.append((payload, timeout_ms))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error


def test_timeout_capped_at_ceiling():
    executor = FailOpenExecutor()
    assert TelemetryEmitter(_Sender(), 20_000, executor).timeout_ms == TELEMETRY_TIMEOUT_CEILING_MS
    assert TelemetryEmitter(_Sender(), 800, executor).timeout_ms == 800


async def test_emit_returns_before_delivery():
    sender = _Sender(delay=0.05)
    emitter = TelemetryEmitter(sender, 1000, FailOpenExecutor())

    task = emitter.emit("text_moderated", "ALLOW", {"userId": "u1"}, {"isTextPermitted": "true"})
    assert not task.done()
    assert emitter.pending == 1

    await emitter.drain()
    assert emitter.pending == 0
    payload, timeout_ms = sender.sent[0]
    assert payload["type"] == "text_moderated"
    assert payload["decision"] == "ALLOW"
    assert payload["meta"] == {"userId": "u1"}
    assert payload["extra"] == {"isTextPermitted": "true"}
    assert isinstance(payload["ts"], int)
    assert timeout_ms == 1000


async def test_failure_swallowed_and_counted():
    executor = FailOpenExecutor()
    emitter = TelemetryEmitter(_Sender(error=RemoteServiceError(500, "/v1/events")), 1000, executor)

    task = emitter.emit("image_moderated", "BLOCK")
    await emitter.drain()

    assert task.exception() is None
    assert task.result() is None
    assert executor.failures["emit_event"] == 1


async def test_unexpected_error_swallowed():
    emitter = TelemetryEmitter(_Sender(error=ValueError("bad")), 1000, FailOpenExecutor())
    task = emitter.emit("image_moderated", "ALLOW")
    await emitter.drain()
    assert task.exception() is None


async def test_drain_without_pending_is_noop():
    emitter = TelemetryEmitter(_Sender(), 1000, FailOpenExecutor())
    await emitter.drain()
    assert emitter.pending == 0
