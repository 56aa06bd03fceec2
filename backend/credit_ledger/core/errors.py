"""Error Hierarchy — typed, categorized exceptions for every ledger failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Declines (400/404-level) never mutate state; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No storage-level detail leaked in user-facing messages

Design Decisions:
    - Single hierarchy with LedgerError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - details carries actionable numbers (required/available) for declines only
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
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    account_id: int | None = None
    item_id: int | None = None
    transaction_id: int | None = None
    details: dict[str, Any] | None = None


class LedgerError(Exception):
    """Base exception for all ledger errors."""

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
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "details": self.context.details or {},
            },
        }


# ─── Authentication (401) ───────────────────────────────────────

class UnauthenticatedError(LedgerError):
    """Credential missing, unknown, or expired."""
    def __init__(self, message: str = "User not authenticated", context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


# ─── Authorization (403) ────────────────────────────────────────

class NotEntitledError(LedgerError):
    """Caller is authenticated but does not own the item."""
    def __init__(self, item_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_id = item_id
        super().__init__(
            "You do not own this item.",
            "NOT_ENTITLED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, ctx, 403,
        )
        self.item_id = item_id


# ─── Purchase Declines (400/404) ────────────────────────────────

class ItemUnavailableError(LedgerError):
    """Item does not exist, is unpublished, or has no valid price."""
    def __init__(self, item_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_id = item_id
        super().__init__(
            f"Item {item_id} is not available.",
            "ITEM_UNAVAILABLE", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, ctx, 404,
        )
        self.item_id = item_id


class AlreadyOwnedError(LedgerError):
    """Account already holds an entitlement for the item."""
    def __init__(self, item_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_id = item_id
        super().__init__(
            "You already own this item.",
            "ALREADY_OWNED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 400,
        )
        self.item_id = item_id


class InsufficientFundsError(LedgerError):
    """Balance lower than the item price."""
    def __init__(self, required: int, available: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.details = {
            "required": required,
            "available": available,
            "shortfall": required - available,
        }
        super().__init__(
            f"Insufficient credits. You need {required} but only have {available}.",
            "INSUFFICIENT_FUNDS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 400,
        )
        self.required = required
        self.available = available


class PurchaseFailedError(LedgerError):
    """Purchase aborted after debit and compensated. Message is deliberately generic."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "The purchase could not be completed. No credits were charged.",
            "INTERNAL_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Validation (400) ───────────────────────────────────────────

class InvalidAmountError(LedgerError):
    """Credit or money amount outside the accepted range."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class InvalidStatusTransitionError(LedgerError):
    """Transaction status change not permitted (only pending top-ups may move)."""
    def __init__(self, transaction_id: int, current: str, requested: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} cannot move from '{current}' to '{requested}'.",
            "INVALID_STATUS_TRANSITION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )


class ResourceNotFoundError(LedgerError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class AccountNotFoundError(ResourceNotFoundError):
    """Ledger has no row for the account."""
    def __init__(self, account_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.account_id = account_id
        super().__init__("Account", str(account_id), ctx)


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(LedgerError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
