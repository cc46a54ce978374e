"""Fail-Open Executor — fallback substitution, logging, and pass-through of results."""

import asyncio
import logging

import pytest

from watchtower.core.errors import DeadlineExceededError, RemoteServiceError
from watchtower.infrastructure.fail_open import FailOpenExecutor


async def test_success_returns_operation_result():
    executor = FailOpenExecutor()

    async def op():
        return "ok"

    assert await executor.run("label", "fallback", op) == "ok"
    assert executor.failures["label"] == 0


async def test_failure_returns_fallback_verbatim():
    executor = FailOpenExecutor()
    fallback = {"decision": "ALLOW"}

    async def op():
        raise RuntimeError("down")

    assert await executor.run("check", fallback, op) is fallback
    assert executor.failures["check"] == 1


async def test_watchtower_error_logged_with_label_and_code(caplog):
    executor = FailOpenExecutor()

    async def op():
        raise RemoteServiceError(503, "/v1/policy")

    with caplog.at_level(logging.WARNING, logger="watchtower.infrastructure.fail_open"):
        await executor.run("refresh_policy", None, op)

    record = caplog.records[-1]
    assert record.label == "refresh_policy"
    assert record.error_code == "REMOTE_SERVICE_ERROR"
    assert record.status_code == 503
    assert "refresh_policy" in record.getMessage()


async def test_deadline_failure_logged_with_timeout(caplog):
    executor = FailOpenExecutor()

    async def op():
        raise DeadlineExceededError(50)

    with caplog.at_level(logging.WARNING, logger="watchtower.infrastructure.fail_open"):
        assert await executor.run("check_text", True, op) is True
    assert caplog.records[-1].timeout_ms == 50


async def test_never_retries():
    executor = FailOpenExecutor()
    calls = []

    async def op():
        calls.append(1)
        raise ConnectionError("refused")

    await executor.run("x", None, op)
    assert calls == [1]


async def test_task_cancellation_propagates():
    executor = FailOpenExecutor()

    async def op():
        await asyncio.sleep(10)

    task = asyncio.ensure_future(executor.run("x", None, op))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
