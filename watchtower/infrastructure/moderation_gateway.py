"""Moderation Gateway — the four HTTP endpoints of the remote moderation service.

Invariants:
    - Every request carries `Authorization: Bearer <api key>`
    - Every request runs under its own deadline (with_timeout) and releases it on exit
    - Exactly one attempt per call — no retry, no backoff
    - Cancellation errors are raised fresh per attempt, tagged with its endpoint
    - All failures mapped to WatchtowerError subclasses (core/errors.py):
      deadline → DeadlineExceededError, httpx.RequestError → TransportError,
      non-2xx → RemoteServiceError, undecodable body → MalformedResponseError

Design Decisions:
    - Wrapper over a shared httpx.AsyncClient: isolates wire details and error
      mapping from the services layer
    - Returns decoded JSON (Any), never schemas: interpretation of the body
      (defaults, coercion, fail-open reason codes) belongs to the callers
"""

import logging
from typing import Any, Callable

import httpx

from watchtower.core.errors import (
    DeadlineExceededError,
    ErrorContext,
    MalformedResponseError,
    RemoteServiceError,
    RequestCancelledError,
    TransportError,
)
from watchtower.infrastructure.timeout_controller import CancelSignal, with_timeout

logger = logging.getLogger(__name__)

POLICY_PATH = "/v1/policy"
CHECK_TEXT_PATH = "/checkText"
MODERATE_IMAGE_PATH = "/v1/moderate/image"
EVENTS_PATH = "/v1/events"


class ModerationGateway:
    """Single-attempt, deadline-bounded calls to the moderation service."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_ms: int,
        http_client: Callable[[], httpx.AsyncClient],
    ):
        self._api_key = api_key
        self.base_url = base_url
        self.timeout_ms = timeout_ms
        # Resolved per request: the client may be opened after the gateway is built
        self._http_client = http_client

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}", **(extra or {})}

    async def fetch_policy(self, cancel: CancelSignal | None = None) -> Any:
        """GET {base}/v1/policy."""
        return await self._request("GET", POLICY_PATH, cancel=cancel)

    async def check_text(
        self, text: str, meta: dict[str, Any], cancel: CancelSignal | None = None,
    ) -> Any:
        """POST {base}/checkText with {text, meta}."""
        return await self._request(
            "POST", CHECK_TEXT_PATH, json={"text": text, "meta": meta}, cancel=cancel,
        )

    async def moderate_image(self, jpeg: bytes, cancel: CancelSignal | None = None) -> Any:
        """POST {base}/v1/moderate/image with the raw JPEG body."""
        return await self._request(
            "POST", MODERATE_IMAGE_PATH,
            content=jpeg, headers={"Content-Type": "image/jpeg"}, cancel=cancel,
        )

    async def post_event(self, payload: dict[str, Any], timeout_ms: int) -> None:
        """POST {base}/v1/events. The response body is ignored."""
        await self._request(
            "POST", EVENTS_PATH, json=payload, timeout_ms=timeout_ms, decode=False,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout_ms: int | None = None,
        cancel: CancelSignal | None = None,
        decode: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        deadline_ms = timeout_ms or self.timeout_ms
        signal, cleanup = with_timeout(deadline_ms, cancel)
        try:
            response = await signal.guard(self._http_client().request(
                method, url,
                json=json, content=content, headers=self._headers(headers),
            ))
        except DeadlineExceededError as e:
            raise DeadlineExceededError(e.timeout_ms, ErrorContext(endpoint=path)) from e
        except RequestCancelledError as e:
            # External signals hand one reason object to every request they cover
            raise RequestCancelledError(
                e.message, e.code, e.category, ErrorContext(endpoint=path),
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"{type(e).__name__}: {e}", context=ErrorContext(endpoint=path),
            ) from e
        finally:
            cleanup()

        if not response.is_success:
            raise RemoteServiceError(response.status_code, path)
        if not decode:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{path} returned non-JSON body", context=ErrorContext(endpoint=path),
            ) from e
