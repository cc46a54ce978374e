"""Fail-Open Executor — runs a fallible operation, substitutes a default on failure.

Invariants:
    - run() never raises an Exception and never retries
    - On failure the fallback is returned verbatim (same object)
    - Every substitution is logged at WARNING with the operation label and error code
    - asyncio.CancelledError (BaseException) passes through uncaught

Design Decisions:
    - The single mechanism for permissive defaults: policy refresh, classification
      calls and telemetry all go through one executor instance per client
    - Caller-misuse errors are raised before an operation enters run(), so the
      executor does not need to know about them
    - Per-label failure counters: lets operators (and tests) see which boundary
      failed open without parsing logs
"""

import logging
from collections import Counter
from typing import Awaitable, Callable, TypeVar

from watchtower.core.errors import WatchtowerError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailOpenExecutor:
    """Wraps async operations with a fail-open boundary."""

    def __init__(self) -> None:
        self.failures: Counter[str] = Counter()

    async def run(
        self,
        label: str,
        fallback: T,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            return await operation()
        except Exception as e:
            self._record_failure(label, e)
            return fallback

    def _record_failure(self, label: str, error: Exception) -> None:
        self.failures[label] += 1
        if isinstance(error, WatchtowerError):
            logger.warning(
                f"Fail-open during {label}: {error.message}",
                extra={
                    "label": label,
                    "error_code": error.code,
                    "endpoint": error.context.endpoint,
                    "status_code": error.context.status_code,
                    "timeout_ms": error.context.timeout_ms,
                },
            )
            return
        logger.warning(
            f"Fail-open during {label}: unexpected {type(error).__name__}: {error}",
            extra={"label": label, "error_code": "UNEXPECTED_ERROR"},
            exc_info=True,
        )
