# Overview: Service-layer operations for order settlement; one transaction per order, at most once per key.

"""
Settlement Engine

settle_order() writes an OrderDraft to the store:

    DRAFT -> PERSISTED -> LINES_PERSISTED -> STOCK_ADJUSTED -> DEBT_ADJUSTED -> SETTLED

All steps run in ONE database transaction and are committed together.

FAILURE MODEL:
- Anything that goes wrong before commit rolls the whole transaction back.
  The caller gets the validation error that caused it, or a PersistenceError
  naming the last state reached. Nothing is left behind.
- A failure DURING commit (or a rollback that itself fails) leaves the
  outcome unknown. That is a PartialSettlementError and is never retried
  here; the caller resubmits with the same idempotency key, which either
  replays the committed order or settles it for the first time.

IDEMPOTENCY:
The idempotency key is a unique column on the order header. A second
submission with the same key returns the stored order (replayed=True) and
writes nothing. A submission whose request fingerprint differs from the
stored one is an IdempotencyConflictError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import (
    LedgerError,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    IdempotencyConflictError,
    PersistenceError,
    PartialSettlementError,
)
from ..permissions import Operation
from ..values import ZERO, to_decimal, money_str, utcnow
from . import catalog_store, permission_service
from .order_composer import OrderDraft, OrderKind, request_fingerprint

logger = logging.getLogger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 128


class SettlementState(str, Enum):
    DRAFT = "DRAFT"
    PERSISTED = "PERSISTED"
    LINES_PERSISTED = "LINES_PERSISTED"
    STOCK_ADJUSTED = "STOCK_ADJUSTED"
    DEBT_ADJUSTED = "DEBT_ADJUSTED"
    SETTLED = "SETTLED"
    FAILED = "FAILED"


@dataclass
class SettledOrder:
    order: object
    state: SettlementState
    completed_steps: tuple = ()
    replayed: bool = False

    def to_dict(self) -> dict:
        data = self.order.to_dict(include_items=True)
        data["settlement_state"] = self.state.value
        data["replayed"] = self.replayed
        return data


def _validate_key(idempotency_key) -> str:
    if not isinstance(idempotency_key, str) or not idempotency_key.strip():
        raise ValidationError("Idempotency key is required")
    key = idempotency_key.strip()
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(f"Idempotency key must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters")
    return key


def lookup_settlement(kind, idempotency_key: str):
    """Return the order already settled under this key, or None."""
    kind = OrderKind.parse(kind)
    model = kind.order_model
    return db.session.query(model).filter(model.idempotency_key == idempotency_key.strip()).first()


def _replay(existing, fingerprint: str, key: str) -> SettledOrder:
    if existing.request_fingerprint != fingerprint:
        raise IdempotencyConflictError(
            "Idempotency key was already used for a different order",
            details={"idempotency_key": key, "order_number": existing.order_number},
        )
    logger.info("Replaying settled order %s for key %s", existing.order_number, key)
    return SettledOrder(order=existing, state=SettlementState.SETTLED, replayed=True)


def replay_if_settled(kind, idempotency_key: str, fingerprint: str) -> SettledOrder | None:
    """Replay of the order settled under this key, or None if the key is unused."""
    key = _validate_key(idempotency_key)
    existing = lookup_settlement(kind, key)
    if existing is None:
        return None
    return _replay(existing, fingerprint, key)


def _rollback(completed: list, key: str) -> None:
    """Roll back the open settlement; a failed rollback leaves the outcome unknown."""
    try:
        db.session.rollback()
    except SQLAlchemyError as exc:
        logger.exception("Rollback failed during settlement key=%s steps=%s", key, completed)
        raise PartialSettlementError(
            "Settlement rollback failed; outcome unknown",
            completed_steps=completed,
            idempotency_key=key,
        ) from exc


def _adjust_stock(draft: OrderDraft) -> None:
    shortfalls = []
    for product_id, quantity in draft.quantities_by_product().items():
        delta = quantity * draft.kind.stock_sign
        if catalog_store.adjust_stock(product_id, delta, guard_available=draft.kind is OrderKind.SALES):
            continue

        available = catalog_store.current_stock(product_id)
        if available is None:
            raise NotFoundError("Product not found", details={"product_ids": [product_id]})
        shortfalls.append({
            "product_id": product_id,
            "requested": money_str(quantity),
            "available": money_str(available),
        })

    if shortfalls:
        raise InsufficientStockError(shortfalls)


def _adjust_debt(draft: OrderDraft, paid: Decimal) -> None:
    # Walk-in sales carry no counterparty and no receivable
    if draft.counterparty_id is None:
        return
    delta = draft.total_amount - paid
    if delta == ZERO:
        return
    model = draft.kind.counterparty_model
    if not catalog_store.adjust_debt(model, draft.counterparty_id, delta):
        raise NotFoundError(
            f"{model.__name__} {draft.counterparty_id} not found",
            details={draft.kind.counterparty_field: draft.counterparty_id},
        )


def settle_order(
    draft: OrderDraft,
    paid_amount,
    *,
    actor,
    idempotency_key: str,
    order_date: datetime | None = None,
) -> SettledOrder:
    """
    Persist an order and apply its stock and debt effects atomically.

    Raises:
        AuthorizationError: actor may not insert the order or its lines
        ValidationError: bad paid amount or key; InsufficientStockError and
            NotFoundError when the store disagrees with the draft
        IdempotencyConflictError: key reused for a different request
        PersistenceError: store failure before commit (nothing applied)
        PartialSettlementError: commit outcome unknown
    """
    if not isinstance(draft, OrderDraft):
        raise ValidationError("settle_order requires an OrderDraft")

    kind = draft.kind
    paid = to_decimal(paid_amount if paid_amount is not None else 0, "paid_amount", allow_negative=False)
    key = _validate_key(idempotency_key)

    permission_service.require(actor, kind.order_table, Operation.INSERT)
    permission_service.require(actor, kind.item_table, Operation.INSERT)

    fingerprint = request_fingerprint(draft, paid)
    existing = lookup_settlement(kind, key)
    if existing is not None:
        return _replay(existing, fingerprint, key)

    state = SettlementState.DRAFT
    completed: list[str] = []

    def _advance(new_state: SettlementState) -> None:
        nonlocal state
        state = new_state
        completed.append(new_state.value)

    order = kind.order_model(
        order_number=draft.order_number,
        order_date=order_date or draft.order_date or utcnow(),
        total_amount=draft.total_amount,
        paid_amount=paid,
        status="completed",
        notes=draft.notes,
        created_by=getattr(actor, "id", None),
        idempotency_key=key,
        request_fingerprint=fingerprint,
    )
    setattr(order, kind.counterparty_field, draft.counterparty_id)
    if kind is OrderKind.SALES:
        order.discount = draft.discount

    try:
        db.session.add(order)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race to a concurrent submission with the same key
            _rollback(completed, key)
            winner = lookup_settlement(kind, key)
            if winner is not None:
                return _replay(winner, fingerprint, key)
            raise
        _advance(SettlementState.PERSISTED)

        db.session.add_all([
            kind.item_model(
                **{kind.order_fk: order.id},
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
            for line in draft.lines
        ])
        db.session.flush()
        _advance(SettlementState.LINES_PERSISTED)

        _adjust_stock(draft)
        _advance(SettlementState.STOCK_ADJUSTED)

        _adjust_debt(draft, paid)
        _advance(SettlementState.DEBT_ADJUSTED)
    except LedgerError as exc:
        _rollback(completed, key)
        logger.info(
            "Settlement of %s rejected at %s: %s", draft.order_number, state.value, exc.message,
        )
        raise
    except SQLAlchemyError as exc:
        _rollback(completed, key)
        logger.error(
            "Settlement of %s failed at %s: %s", draft.order_number, state.value, exc,
        )
        raise PersistenceError(failed_at=state.value, cause=exc) from exc

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        logger.exception("Commit failed for settlement %s (key=%s)", draft.order_number, key)
        try:
            db.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after failed commit also failed (key=%s)", key)
        raise PartialSettlementError(
            "Settlement commit failed; outcome unknown",
            completed_steps=completed,
            idempotency_key=key,
        ) from exc

    _advance(SettlementState.SETTLED)
    logger.info(
        "Settled %s order %s: total=%s paid=%s counterparty=%s lines=%d",
        kind.value, order.order_number, money_str(draft.total_amount), money_str(paid),
        draft.counterparty_id, len(draft.lines),
    )
    return SettledOrder(order=order, state=state, completed_steps=tuple(completed))
