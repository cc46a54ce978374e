"""Single-Flight — concurrent callers for the same key share one in-progress call.

Invariants:
    - At most one in-flight task per key
    - Every caller that arrives while a task is in flight receives that task's
      result (or exception) — the identical object
    - The handle is cleared when the task completes, on every exit path, before
      any waiting caller resumes
    - Cancelling one waiting caller never cancels the shared task

Design Decisions:
    - asyncio.Task + asyncio.shield: the task owns the work, callers only observe it
    - Cleared from a done-callback registered at creation: runs before the callers'
      wake-ups, so the next stale access after completion starts a fresh call
"""

import asyncio
from typing import Any, Awaitable, Callable, Hashable


class SingleFlight:
    """Keyed request coalescing on a single event loop."""

    def __init__(self) -> None:
        self._in_flight: dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[Any]]) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
