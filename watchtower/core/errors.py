"""Error Hierarchy — typed, categorized exceptions for all Watchtower failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - CONFIGURATION errors are caller misuse: raised to the caller, never failed open
    - TRANSPORT and REMOTE errors are infrastructure: absorbed by FailOpenExecutor
    - to_dict() produces the structured shape used in log records

Design Decisions:
    - Single hierarchy with WatchtowerError base: one `except` at every fail-open boundary
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DeadlineExceededError subclasses RequestCancelledError: a deadline is one kind of cancel
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    REMOTE = "remote"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    label: str | None = None
    endpoint: str | None = None
    status_code: int | None = None
    timeout_ms: int | None = None
    debug_info: dict[str, Any] | None = None


class WatchtowerError(Exception):
    """Base exception for all Watchtower errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def is_configuration_error(self) -> bool:
        return self.category == ErrorCategory.CONFIGURATION

    def to_dict(self) -> dict:
        """Convert to structured error shape."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "label": self.context.label,
                "endpoint": self.context.endpoint,
                "status_code": self.context.status_code,
                "timeout_ms": self.context.timeout_ms,
            },
        }


# ─── Configuration Errors (caller misuse) ───────────────────────

class ClientConfigurationError(WatchtowerError):
    """Client constructed with invalid arguments (e.g. empty API key)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CLIENT_CONFIGURATION", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context,
        )


class ClientNotInitializedError(WatchtowerError):
    """A check was called before open() or after close()."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Watchtower client not initialized: call `await client.open()` "
            f"(or use `async with client:`) before {operation}().",
            "CLIENT_NOT_INITIALIZED", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context,
        )
        self.operation = operation


class UnsupportedImageInputError(WatchtowerError):
    """Image passed in a representation that is not bytes-like or a binary reader."""
    def __init__(self, received_type: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unsupported image input ({received_type}). "
            "Use bytes, bytearray, memoryview, or a binary file-like object.",
            "UNSUPPORTED_IMAGE_INPUT", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, context,
        )
        self.received_type = received_type


# ─── Infrastructure Errors (failed open) ────────────────────────

class RequestCancelledError(WatchtowerError):
    """Network attempt aborted through its cancel signal."""
    def __init__(
        self,
        message: str = "Request cancelled",
        code: str = "REQUEST_CANCELLED",
        category: ErrorCategory = ErrorCategory.TRANSPORT,
        context: ErrorContext | None = None,
    ):
        super().__init__(message, code, category, ErrorSeverity.WARNING, context)


class DeadlineExceededError(RequestCancelledError):
    """The per-call deadline fired before the response arrived."""
    def __init__(self, timeout_ms: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.timeout_ms = timeout_ms
        super().__init__(
            f"Deadline of {timeout_ms}ms exceeded",
            "DEADLINE_EXCEEDED", ErrorCategory.TIMEOUT, ctx,
        )
        self.timeout_ms = timeout_ms


class TransportError(WatchtowerError):
    """DNS failure, refused connection, reset — no HTTP response at all."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Transport error: {message}",
            "TRANSPORT_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context,
        )


class ImageReadError(WatchtowerError):
    """A supported binary reader failed while producing the image body."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Image read failed: {message}",
            "IMAGE_READ_FAILED", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context,
        )


class RemoteServiceError(WatchtowerError):
    """Moderation service answered with a non-2xx status."""
    def __init__(self, status_code: int, endpoint: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.status_code = status_code
        ctx.endpoint = endpoint
        super().__init__(
            f"Moderation service returned HTTP {status_code} for {endpoint}",
            "REMOTE_SERVICE_ERROR", ErrorCategory.REMOTE,
            ErrorSeverity.WARNING, ctx,
        )
        self.status_code = status_code
        self.endpoint = endpoint


class MalformedResponseError(WatchtowerError):
    """Body was not JSON, had the wrong shape, or carried invalid values."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Malformed response: {message}",
            "MALFORMED_RESPONSE", ErrorCategory.REMOTE,
            ErrorSeverity.WARNING, context,
        )
