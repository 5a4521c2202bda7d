"""Error Hierarchy — typed, categorized exceptions for all relay failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable notices; infrastructure errors
      (500-level) are critical
    - to_response() produces the REST envelope; to_notice() produces the plain
      text sent back to a WebSocket sender
    - Only AuthenticationError ends a connection; every other error leaves the
      sender's connection open
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with RelayError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - DeliveryError never reaches a client: the engine recovers by queueing
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone

from relay.core.format_messages import (
    POLICY_DENIED_NOTICE,
    SERVICE_UNAVAILABLE_NOTICE,
    format_invalid_message_notice,
    format_unknown_target_notice,
)


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    TRANSPORT = "transport"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity: str | None = None
    target: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class RelayError(Exception):
    """Base exception for all relay errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "identity": self.context.identity,
                    "target": self.context.target,
                },
            }
        }

    def to_notice(self) -> str:
        """Plain-text notice for the sender's own connection."""
        return self.context.user_message or self.message


# ─── Domain Errors (400-level) ──────────────────────────────────

class AuthenticationError(RelayError):
    """Credential missing, malformed, expired, or carrying no usable identity."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_FAILED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class EnvelopeValidationError(RelayError):
    """Inbound frame could not be turned into a typed envelope."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.user_message = format_invalid_message_notice(reason)
        super().__init__(
            f"Invalid envelope: {reason}", "INVALID_ENVELOPE",
            ErrorCategory.VALIDATION, ErrorSeverity.INFO, ctx, 400,
        )
        self.reason = reason


class UnknownTargetError(RelayError):
    """Target identity does not resolve to any role."""
    def __init__(self, target: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.target = target
        ctx.user_message = format_unknown_target_notice(target)
        super().__init__(
            f"Target '{target}' not found", "UNKNOWN_TARGET",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.INFO, ctx, 404,
        )
        self.target = target


class PolicyDeniedError(RelayError):
    """Role pairing is not allowed to communicate."""
    def __init__(
        self, sender_role: str, target_role: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.user_message = POLICY_DENIED_NOTICE
        super().__init__(
            f"Communication {sender_role} → {target_role} denied by policy",
            "POLICY_DENIED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.INFO, ctx, 403,
        )
        self.sender_role = sender_role
        self.target_role = target_role


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DeliveryError(RelayError):
    """Send over a live connection failed (peer gone, timed out, or closing)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DELIVERY_FAILED", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context, 503,
        )


class DatabaseError(RelayError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.user_message = ctx.user_message or SERVICE_UNAVAILABLE_NOTICE
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation
