"""Client Configuration — immutable ClientConfig plus environment-driven Settings.

Invariants:
    - ClientConfig is frozen: immutable after the client is constructed
    - api_base_url never ends with "/" (endpoint paths are appended verbatim)
    - The API key comes from the caller or WATCHTOWER_API_KEY (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults mirror the reference SDK: localhost:8080, events on, 60s refresh,
      HYBRID mode, 20s deadline
"""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from watchtower.core.domain_types import ModerationMode


DEFAULT_API_BASE_URL = "http://localhost:8080"
DEFAULT_POLICY_REFRESH_SECONDS = 60
DEFAULT_TIMEOUT_MS = 20_000


def _strip_trailing_slash(v: str) -> str:
    return v.rstrip("/") if isinstance(v, str) else v


class ClientConfig(BaseModel):
    """Per-client configuration. Frozen after construction."""

    model_config = ConfigDict(frozen=True)

    api_base_url: str = DEFAULT_API_BASE_URL
    send_events: bool = True
    policy_refresh_seconds: float = Field(default=DEFAULT_POLICY_REFRESH_SECONDS, ge=0)
    mode: ModerationMode = ModerationMode.HYBRID
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)

    @field_validator("api_base_url", mode="before")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Endpoints are joined as f"{base}/v1/...", so drop a trailing slash."""
        return _strip_trailing_slash(v)


class Settings(BaseSettings):
    """Watchtower settings from WATCHTOWER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WATCHTOWER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str = ""

    # Client
    api_base_url: str = DEFAULT_API_BASE_URL
    send_events: bool = True
    policy_refresh_seconds: float = DEFAULT_POLICY_REFRESH_SECONDS
    mode: ModerationMode = ModerationMode.HYBRID
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def to_client_config(self) -> ClientConfig:
        return ClientConfig(
            api_base_url=self.api_base_url,
            send_events=self.send_events,
            policy_refresh_seconds=self.policy_refresh_seconds,
            mode=self.mode,
            timeout_ms=self.timeout_ms,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
