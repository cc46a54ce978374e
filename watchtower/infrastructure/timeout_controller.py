"""Timeout Controller — per-attempt deadlines and cancel signals for network calls.

Invariants:
    - with_timeout(ms) returns a signal that cancels itself after `ms` milliseconds
    - An external signal that is already cancelled cancels the new one immediately;
      one that cancels later propagates its reason
    - cleanup() releases the timer and the external listener; it is idempotent and
      must be called on every exit path
    - guard() never lets the wrapped call outlive the signal: the call is cancelled
      and the signal's reason is raised

Design Decisions:
    - asyncio.Event + loop.call_later: the deadline lives on the running loop, no threads
    - Deadlines are the only cancellation source: no request ever cancels another
    - httpx's own timeout is disabled by the gateway so two clocks never race
"""

import asyncio
from typing import Awaitable, Callable, NamedTuple, TypeVar

from watchtower.core.errors import DeadlineExceededError, RequestCancelledError

T = TypeVar("T")

CancelCallback = Callable[[RequestCancelledError], None]


class CancelSignal:
    """One-shot cancellation flag with a reason and listeners."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._listeners: list[CancelCallback] = []
        self.reason: RequestCancelledError | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: RequestCancelledError | None = None) -> None:
        """Cancel once. Later calls are ignored (first reason wins)."""
        if self.cancelled:
            return
        self.reason = reason or RequestCancelledError()
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(self.reason)

    def add_listener(self, listener: CancelCallback) -> None:
        if self.cancelled:
            listener(self.reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: CancelCallback) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def wait(self) -> RequestCancelledError:
        await self._event.wait()
        return self.reason

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Race `awaitable` against this signal.

        Returns the awaitable's result, re-raises its exception, or — if the
        signal fires first — cancels it and raises the cancel reason.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self.reason

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            raise
        waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise self.reason


class TimeoutHandle(NamedTuple):
    """Unpacks as `signal, cleanup = with_timeout(ms)`."""
    signal: CancelSignal
    cleanup: Callable[[], None]


def with_timeout(ms: int, external: CancelSignal | None = None) -> TimeoutHandle:
    """Create a signal that fires after `ms` ms or when `external` cancels.

    Must be called from inside a running event loop.
    """
    loop = asyncio.get_running_loop()
    signal = CancelSignal()
    timer = loop.call_later(ms / 1000, signal.cancel, DeadlineExceededError(ms))

    def _forward(reason: RequestCancelledError) -> None:
        signal.cancel(reason)

    if external is not None:
        external.add_listener(_forward)

    def cleanup() -> None:
        timer.cancel()
        if external is not None:
            external.remove_listener(_forward)

    return TimeoutHandle(signal, cleanup)
