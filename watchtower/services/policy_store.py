"""Policy Store — cached moderation policy with a freshness window and single-flight refresh.

Invariants:
    - Fresh (age <= refresh window): zero network calls, cached snapshot returned
    - Stale: exactly one refresh in flight; every concurrent caller gets its result
    - Successful refresh replaces the snapshot wholesale and sets last_fetch_ms = now
    - Failed refresh (non-2xx, timeout, transport, malformed) keeps the previous
      snapshot AND the previous last_fetch_ms — the next stale access retries
    - The in-flight handle is cleared on every exit path (SingleFlight)

Design Decisions:
    - Refresh wrapped in FailOpenExecutor with the previous snapshot as fallback:
      a refresh never raises, so a check call always proceeds with some policy
    - Monotonic clock in milliseconds; a store that has never fetched is stale
    - Fetch function injected (ModerationGateway.fetch_policy in production)
"""

import logging
import time
from typing import Any, Awaitable, Callable

from watchtower.infrastructure.fail_open import FailOpenExecutor
from watchtower.infrastructure.single_flight import SingleFlight
from watchtower.schemas.policy import DEFAULT_POLICY, Policy

logger = logging.getLogger(__name__)

_REFRESH_KEY = "policy"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class PolicyStore:
    """Owns the cached Policy, its fetch time, and the in-flight refresh handle."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        refresh_seconds: float,
        executor: FailOpenExecutor,
        initial: Policy = DEFAULT_POLICY,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self._fetch = fetch
        self._refresh_ms = refresh_seconds * 1000
        self._executor = executor
        self._clock = clock
        self._flight = SingleFlight()
        self._cached = initial
        self._last_fetch_ms: float | None = None

    @property
    def current(self) -> Policy:
        return self._cached

    @property
    def last_fetch_ms(self) -> float | None:
        return self._last_fetch_ms

    @property
    def refreshing(self) -> bool:
        return self._flight.in_flight(_REFRESH_KEY)

    def is_stale(self) -> bool:
        if self._last_fetch_ms is None:
            return True
        return self._clock() - self._last_fetch_ms > self._refresh_ms

    async def get_current_or_refresh(self) -> Policy:
        if self.is_stale():
            return await self.refresh()
        return self._cached

    async def refresh(self) -> Policy:
        """Refresh now, joining a refresh that is already in flight."""
        return await self._flight.do(_REFRESH_KEY, self._refresh_once)

    async def _refresh_once(self) -> Policy:
        return await self._executor.run(
            "refresh_policy", self._cached, self._fetch_and_store,
        )

    async def _fetch_and_store(self) -> Policy:
        policy = Policy.from_payload(await self._fetch())
        self._cached = policy
        self._last_fetch_ms = self._clock()
        logger.info(
            "Policy refreshed",
            extra={"label": "refresh_policy"},
        )
        return policy
