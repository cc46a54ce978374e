"""Moderation Client — fail-open facade for text and image moderation.

Invariants:
    - Infrastructure failures never reach the caller: check_text falls back to True,
      check_image_jpeg to ALLOW + "sdk_network_error"
    - A non-2xx image response yields ALLOW + "cloud_unavailable" (distinct reason)
    - Caller misuse raises: not opened (ClientNotInitializedError), unsupported
      image input (UnsupportedImageInputError), empty API key (ClientConfigurationError)
    - A supported image reader that fails mid-read fails open like any I/O failure
    - Policy refresh failure never aborts a check; the call proceeds on cached policy
    - Local NSFW enforcement is the final step and only escalates toward BLOCK
    - Telemetry is dispatched, never awaited; image events carry the remote decision

Design Decisions:
    - Explicit instance, no module-level singleton: construct once per process,
      pass it where needed, open() before use, close() on shutdown
    - One FailOpenExecutor, PolicyStore, TelemetryEmitter per client
    - httpx.AsyncClient(timeout=None): per-call deadlines come from timeout_controller
    - ClientConfig.mode is reported but does not branch the flow (no on-device models)
"""

import logging
from typing import Any, Callable, Mapping

import httpx

from watchtower.config import ClientConfig, Settings, get_settings
from watchtower.core.domain_types import CheckStage, Decision, ModerationMode
from watchtower.core.enforce_policy import apply_image_policy
from watchtower.core.errors import (
    ClientConfigurationError,
    ClientNotInitializedError,
    RemoteServiceError,
)
from watchtower.core.image_bytes import image_reader
from watchtower.infrastructure.fail_open import FailOpenExecutor
from watchtower.infrastructure.moderation_gateway import ModerationGateway
from watchtower.schemas.moderation import ModerationResult
from watchtower.schemas.policy import Policy
from watchtower.services.policy_store import PolicyStore
from watchtower.services.telemetry_emitter import TelemetryEmitter

logger = logging.getLogger(__name__)


class ModerationClient:
    """Client-side moderation gateway. Construct once, open, use from many tasks."""

    def __init__(
        self,
        api_key: str,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ClientConfigurationError("An API key is required to build a ModerationClient")
        self.config = config or ClientConfig()
        self._injected_http = http_client
        self._http: httpx.AsyncClient | None = None

        self.executor = FailOpenExecutor()
        self._gateway = ModerationGateway(
            api_key, self.config.api_base_url, self.config.timeout_ms, self._require_http,
        )
        self.policy_store = PolicyStore(
            self._gateway.fetch_policy, self.config.policy_refresh_seconds, self.executor,
        )
        self.telemetry = TelemetryEmitter(
            self._gateway.post_event, self.config.timeout_ms, self.executor,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "ModerationClient":
        settings = settings or get_settings()
        return cls(settings.api_key, settings.to_client_config(), **kwargs)

    # ─── Lifecycle ──────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._http is not None

    @property
    def mode(self) -> ModerationMode:
        return self.config.mode

    @property
    def policy(self) -> Policy:
        return self.policy_store.current

    async def open(self) -> "ModerationClient":
        if self._http is None:
            self._http = self._injected_http or httpx.AsyncClient(timeout=None)
            logger.info(
                f"Watchtower client opened against {self.config.api_base_url} "
                f"(mode={self.config.mode.value})",
            )
        return self

    async def close(self) -> None:
        """Flush dispatched telemetry, then release the owned HTTP client."""
        if self._http is None:
            return
        await self.telemetry.drain()
        if self._injected_http is None:
            await self._http.aclose()
        self._http = None
        logger.info("Watchtower client closed")

    async def __aenter__(self) -> "ModerationClient":
        return await self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _require_http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise ClientNotInitializedError("request")
        return self._http

    def _require_open(self, operation: str) -> None:
        if self._http is None:
            raise ClientNotInitializedError(operation)

    # ─── Public API ─────────────────────────────────────────────

    async def refresh_policy(self) -> Policy:
        """Force a policy refresh (joins one already in flight). Never raises on failure."""
        self._require_open("refresh_policy")
        return await self.policy_store.refresh()

    async def check_text(self, text: str, meta: Mapping[str, Any] | None = None) -> bool:
        """Return whether `text` may pass. Falls back to True on any infrastructure failure."""
        self._require_open("check_text")
        meta = dict(meta or {})
        return await self.executor.run(
            "check_text", True, lambda: self._check_text(text, meta),
        )

    async def check_image_jpeg(
        self, jpeg: Any, meta: Mapping[str, Any] | None = None,
    ) -> ModerationResult:
        """Moderate a JPEG given as bytes, bytearray, memoryview or a binary reader."""
        self._require_open("check_image_jpeg")
        read_body = image_reader(jpeg)
        meta = dict(meta or {})
        return await self.executor.run(
            "check_image_jpeg",
            ModerationResult.network_error(),
            lambda: self._check_image(read_body, meta),
        )

    # ─── Check Flows ────────────────────────────────────────────

    def _stage(self, label: str, stage: CheckStage) -> None:
        logger.debug(f"{label}: {stage.value}", extra={"label": label, "stage": stage.value})

    async def _ensure_policy(self, label: str) -> Policy:
        self._stage(label, CheckStage.PENDING)
        self._stage(
            label,
            CheckStage.POLICY_REFRESHING if self.policy_store.is_stale() else CheckStage.POLICY_FRESH,
        )
        return await self.policy_store.get_current_or_refresh()

    async def _check_text(self, text: str, meta: dict[str, Any]) -> bool:
        await self._ensure_policy("check_text")

        self._stage("check_text", CheckStage.REMOTE_CALL)
        body = await self._gateway.check_text(text, meta)
        permitted = body.get("isTextPermitted") if isinstance(body, dict) else None
        if not isinstance(permitted, bool):
            permitted = True

        if self.config.send_events:
            self.telemetry.emit(
                "text_moderated",
                (Decision.ALLOW if permitted else Decision.BLOCK).value,
                meta,
                {"isTextPermitted": "true" if permitted else "false"},
            )
        self._stage("check_text", CheckStage.RESOLVED)
        return permitted

    async def _check_image(
        self, read_body: Callable[[], bytes], meta: dict[str, Any],
    ) -> ModerationResult:
        jpeg = read_body()
        policy = await self._ensure_policy("check_image_jpeg")

        self._stage("check_image_jpeg", CheckStage.REMOTE_CALL)
        try:
            body = await self._gateway.moderate_image(jpeg)
        except RemoteServiceError as e:
            logger.warning(
                f"Image moderation unavailable: HTTP {e.status_code}",
                extra={
                    "label": "check_image_jpeg",
                    "error_code": e.code,
                    "status_code": e.status_code,
                    "stage": CheckStage.FAILED_OPEN.value,
                },
            )
            return ModerationResult.cloud_unavailable()

        result = ModerationResult.from_payload(body)

        if self.config.send_events:
            self.telemetry.emit(
                "image_moderated",
                result.decision.value,
                meta,
                {"nsfwScore": None if result.nsfw_score is None else str(result.nsfw_score)},
            )

        self._stage("check_image_jpeg", CheckStage.LOCAL_ENFORCEMENT)
        final = apply_image_policy(result, policy)
        if final.decision != result.decision:
            logger.info(
                f"Local policy escalated {result.decision.value} to {final.decision.value}",
                extra={"label": "check_image_jpeg", "stage": CheckStage.LOCAL_ENFORCEMENT.value},
            )
        self._stage("check_image_jpeg", CheckStage.RESOLVED)
        return final
