# Overview: Service-layer operations for the cash book; payments, cash transactions and cash flow totals.

"""
Cash book

Payments and cash transactions are plain records. Recording one has no
effect on stock or on any debt balance: debt moves only through order
settlement (total - paid at the time of the order).
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import case, func

from ..extensions import db
from ..errors import ValidationError, NotFoundError
from ..models import (
    Payment,
    CashTransaction,
    PurchaseOrder,
    SalesOrder,
    PAYMENT_TYPES,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
)
from ..permissions import Operation
from ..values import ZERO, to_decimal, money, money_str, parse_iso_datetime, utcnow
from . import permission_service

logger = logging.getLogger(__name__)

# Categories offered by default; any short label is accepted
CASH_CATEGORIES = ("sales", "purchase", "other", "salary", "rent", "utilities", "marketing")


def _positive_amount(value) -> Decimal:
    amount = to_decimal(value, "amount", allow_negative=False)
    if amount == ZERO:
        raise ValidationError("amount must be positive")
    return amount


def record_payment(
    *,
    actor,
    payment_type: str,
    amount,
    payment_method: str = "cash",
    reference_id: int | None = None,
    payment_date=None,
    notes: str | None = None,
) -> Payment:
    permission_service.require(actor, "payments", Operation.INSERT)

    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of {', '.join(PAYMENT_TYPES)}")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    amount = _positive_amount(amount)

    if reference_id is not None:
        order_model = PurchaseOrder if payment_type == "purchase" else SalesOrder
        if db.session.get(order_model, reference_id) is None:
            raise NotFoundError(
                f"{order_model.__name__} {reference_id} not found",
                details={"reference_id": reference_id},
            )

    payment = Payment(
        payment_type=payment_type,
        reference_id=reference_id,
        amount=amount,
        payment_method=payment_method,
        payment_date=parse_iso_datetime(payment_date, "payment_date") or utcnow(),
        notes=notes,
        created_by=getattr(actor, "id", None),
    )
    db.session.add(payment)
    db.session.commit()

    logger.info("Recorded %s payment %s amount=%s", payment_type, payment.id, money_str(amount))
    return payment


def list_payments(*, actor, payment_type: str | None = None, reference_id: int | None = None) -> list[Payment]:
    permission_service.require(actor, "payments", Operation.READ)

    query = db.session.query(Payment)
    if payment_type is not None:
        if payment_type not in PAYMENT_TYPES:
            raise ValidationError(f"payment_type must be one of {', '.join(PAYMENT_TYPES)}")
        query = query.filter(Payment.payment_type == payment_type)
    if reference_id is not None:
        query = query.filter(Payment.reference_id == reference_id)
    return query.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()


def record_cash_transaction(
    *,
    actor,
    transaction_type: str,
    amount,
    category: str = "other",
    description: str | None = None,
    transaction_date=None,
) -> CashTransaction:
    permission_service.require(actor, "cash_transactions", Operation.INSERT)

    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}")
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("category is required")
    if len(category.strip()) > 64:
        raise ValidationError("category must be at most 64 characters")
    amount = _positive_amount(amount)

    txn = CashTransaction(
        transaction_type=transaction_type,
        category=category.strip(),
        amount=amount,
        description=description,
        transaction_date=parse_iso_datetime(transaction_date, "transaction_date") or utcnow(),
        created_by=getattr(actor, "id", None),
    )
    db.session.add(txn)
    db.session.commit()
    return txn


def list_cash_transactions(*, actor, start=None, end=None, transaction_type: str | None = None) -> list[CashTransaction]:
    permission_service.require(actor, "cash_transactions", Operation.READ)

    query = _in_range(db.session.query(CashTransaction), start, end)
    if transaction_type is not None:
        if transaction_type not in TRANSACTION_TYPES:
            raise ValidationError(f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}")
        query = query.filter(CashTransaction.transaction_type == transaction_type)
    return query.order_by(CashTransaction.transaction_date.desc(), CashTransaction.id.desc()).all()


def _in_range(query, start, end):
    start_dt = parse_iso_datetime(start, "start")
    end_dt = parse_iso_datetime(end, "end")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must not be after end")
    if start_dt:
        query = query.filter(CashTransaction.transaction_date >= start_dt)
    if end_dt:
        query = query.filter(CashTransaction.transaction_date <= end_dt)
    return query


def cash_flow_summary(start=None, end=None, *, actor=None) -> dict:
    """Income, expense and balance over an optional date range (one statement)."""
    if actor is not None:
        permission_service.require(actor, "cash_transactions", Operation.READ)

    query = db.session.query(
        func.coalesce(
            func.sum(case((CashTransaction.transaction_type == "income", CashTransaction.amount), else_=0)),
            0,
        ),
        func.coalesce(
            func.sum(case((CashTransaction.transaction_type == "expense", CashTransaction.amount), else_=0)),
            0,
        ),
    )
    income, expense = _in_range(query, start, end).one()
    income, expense = money(income), money(expense)
    return {
        "income": money_str(income),
        "expense": money_str(expense),
        "balance": money_str(income - expense),
    }
