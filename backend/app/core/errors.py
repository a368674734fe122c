"""Error Hierarchy — typed, categorized exceptions for all ledger failure modes.

Invariants:
    - Each error class fixes its code, category, severity and HTTP status as
      class attributes; only StateConflictError takes a per-raise code
    - Client mistakes map to 4xx, store outages to 503, and only those are CRITICAL
    - to_response() produces the REST envelope; messages never carry SQL or driver text

Design Decisions:
    - Single LedgerError base: one FastAPI handler renders every failure (ADR: uniform error shape)
    - ErrorContext travels with the error so handlers can log group/user and set Retry-After
    - Settling zero splits is a normal result, not an error
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"


@dataclass
class ErrorContext:
    """Who and where, for logs and the response envelope."""
    group_id: str | None = None
    user_id: str | None = None
    retry_after_ms: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    code = "LEDGER_ERROR"
    category = ErrorCategory.BUSINESS_RULE
    severity = ErrorSeverity.ERROR
    http_status = 500

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message)
        self.message = message
        self.context = context if context is not None else ErrorContext()

    def to_response(self) -> dict:
        ctx = self.context
        return {"error": {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": ctx.timestamp.isoformat(),
            "context": {
                "group_id": ctx.group_id,
                "user_id": ctx.user_id,
                "retry_after_ms": ctx.retry_after_ms,
            },
        }}


# Client errors

class ValidationError(LedgerError):
    """Request data violates an amount or shape rule."""
    code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION
    http_status = 400

    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(message, context)
        self.field = field


class MembershipError(LedgerError):
    """A referenced user is not a member of the group."""
    code = "NOT_A_MEMBER"
    http_status = 422

    def __init__(self, user_id: str, group_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"User '{user_id}' is not a member of group '{group_id}'", context,
        )
        self.user_id = user_id
        self.group_id = group_id


class AuthenticationError(LedgerError):
    """No verified identity accompanied the request."""
    code = "UNAUTHENTICATED"
    category = ErrorCategory.AUTHORIZATION
    http_status = 401

    def __init__(self, message: str = "Verified identity required"):
        super().__init__(message)


class AuthorizationError(LedgerError):
    code = "FORBIDDEN"
    category = ErrorCategory.AUTHORIZATION
    http_status = 403


class NotFoundError(LedgerError):
    code = "RESOURCE_NOT_FOUND"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    http_status = 404

    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(f"{resource_type} '{resource_id}' not found", context)
        self.resource_type = resource_type


class StateConflictError(LedgerError):
    """Operation is invalid for the resource's current state.

    The code names the state: INVITATION_EXPIRED, INVITATION_NOT_PENDING,
    ALREADY_MEMBER, INVITATION_EXISTS, OWNER_CANNOT_LEAVE.
    """
    category = ErrorCategory.CONFLICT
    http_status = 409

    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(message, context)
        self.code = code


class ConcurrencyConflictError(LedgerError):
    """Lock contention outlasted the bounded retry budget."""
    code = "CONCURRENCY_CONFLICT"
    category = ErrorCategory.CONFLICT
    http_status = 409


# Store errors

class DatabaseError(LedgerError):
    code = "DATABASE_ERROR"
    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(f"Database {operation} failed: {message}", context)
        self.operation = operation
