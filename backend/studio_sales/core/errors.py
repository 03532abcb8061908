"""Error Hierarchy: typed, categorized exceptions for all studio sales failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - VALIDATION errors are raised before any write happens
    - WRITE_FAILURE errors always name the reconciler step that failed
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with StudioSalesError base: FastAPI global handler catches all
    - AMBIGUOUS_RESOLUTION and INVARIANT_VIOLATION are categories, not exceptions:
      they are reported as flags and audit results, never fatal to a live operation
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    WRITE_FAILURE = "write_failure"
    AMBIGUOUS_RESOLUTION = "ambiguous_resolution"
    INVARIANT_VIOLATION = "invariant_violation"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    booking_id: str | None = None
    step: str | None = None
    check_id: str | None = None
    acting_staff: str | None = None
    debug_info: dict[str, Any] | None = None


class StudioSalesError(Exception):
    """Base exception for all studio sales errors."""

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
                    "booking_id": self.context.booking_id,
                    "step": self.context.step,
                    "check_id": self.context.check_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class SalesEventValidationError(StudioSalesError):
    """Sale event is not actionable as submitted (e.g. no tier selected)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class LockedOwnerError(StudioSalesError):
    """Locked intro owner changed without an override reason."""
    def __init__(self, booking_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Intro owner on booking '{booking_id}' is locked; an override reason is required",
            "INTRO_OWNER_LOCKED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class ResourceNotFoundError(StudioSalesError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class UnknownCheckError(StudioSalesError):
    """Audit check id is not registered."""
    def __init__(self, check_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.check_id = check_id
        super().__init__(
            f"Audit check '{check_id}' does not exist",
            "UNKNOWN_CHECK", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.check_id = check_id


# ─── Write Path Errors ──────────────────────────────────────────

class StepWriteError(StudioSalesError):
    """A single reconciler step failed to write. Earlier steps stay committed."""
    def __init__(self, step: str, message: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.step = step
        super().__init__(
            f"Step {step} failed: {message}",
            "WRITE_FAILURE", ErrorCategory.WRITE_FAILURE,
            ErrorSeverity.ERROR, ctx, 500,
        )
        self.step = step


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(StudioSalesError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
