# Overview: Error taxonomy shared by services and routes.

"""
ShopLedger error taxonomy

- ValidationError / AuthorizationError: recoverable by the caller. Fix the
  input or the role and submit again from scratch.
- PersistenceError: the store rejected a write before anything was applied.
- PartialSettlementError: the outcome of a settlement is not known to be
  all-or-nothing. NOT safely retryable as-is; an operator reconciles it
  (resubmitting with the same idempotency key is safe).
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all service-level errors."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """400-level input problem (empty order, bad quantity, stock shortfall)."""
    status_code = 400


class NotFoundError(ValidationError):
    """Referenced product, counterparty, or order does not exist."""
    status_code = 404


class ConflictError(ValidationError):
    """409-level business rule conflict (duplicate SKU, stale write)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds stock on hand."""

    def __init__(self, items: list[dict]):
        super().__init__("Insufficient stock", details={"items": items})


class IdempotencyConflictError(ConflictError):
    """Idempotency key already used for a different order request."""


class AuthenticationError(LedgerError):
    """Missing, invalid, or expired credentials."""
    status_code = 401


class AuthorizationError(LedgerError):
    """Caller's role does not permit the operation."""
    status_code = 403

    def __init__(self, role: str | None, table: str, operation: str):
        super().__init__(
            f"Role {role!r} may not {operation} {table}",
            details={"role": role, "table": table, "operation": operation},
        )
        self.role = role
        self.table = table
        self.operation = operation


class PersistenceError(LedgerError):
    """Store write failed; nothing was applied."""
    status_code = 503

    def __init__(self, message: str = "The operation could not be completed", *, failed_at: str | None = None,
                 cause: Exception | None = None):
        super().__init__(message, details={"failed_at": failed_at} if failed_at else None)
        self.failed_at = failed_at
        self.cause = cause


class PartialSettlementError(LedgerError):
    """
    Settlement outcome is not known to be all-or-nothing.

    Distinguishable from clean failures: requires_reconciliation is always True.
    """
    status_code = 500
    requires_reconciliation = True

    def __init__(self, message: str, *, completed_steps: list[str], idempotency_key: str | None = None):
        super().__init__(
            message,
            details={
                "completed_steps": list(completed_steps),
                "idempotency_key": idempotency_key,
                "requires_reconciliation": True,
            },
        )
        self.completed_steps = list(completed_steps)
        self.idempotency_key = idempotency_key
