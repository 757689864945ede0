# Overview: Service-layer primitives over catalog rows; the only code that writes stock and debt.

"""
Catalog Store

Row primitives keyed by id. Every mutating primitive re-checks the access
matrix (defense in depth); a denial here surfaces as AuthorizationError even
if the calling service forgot to check.

STOCK / DEBT INVARIANTS (authoritative):
- stock_quantity and debt_balance are never read-modified-written in Python.
- adjust_stock / adjust_debt issue a single UPDATE ... SET col = round(col + :delta, 2),
  so concurrent settlements against the same row cannot lose updates and the
  stored value stays on whole cents.
- Every adjustment bumps version_id, so an administrative edit holding an
  older copy of the row fails with StaleDataError instead of overwriting.
- adjust_stock with guard_available refuses (rowcount 0) to take more stock
  than is on hand; the guard is evaluated by the same UPDATE.
- Primitives flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import NotFoundError, ConflictError
from ..models import Product, Supplier, Customer
from ..permissions import Operation
from . import permission_service

# SQLite keeps NUMERIC as REAL; comparisons allow for binary representation error
HALF_CENT = Decimal("0.005")


def _table(model) -> str:
    return model.__tablename__


def get_row(model, row_id: int, *, actor=None, lock: bool = False):
    """Fetch a row by id or raise NotFoundError. Checks read access when actor is given."""
    if actor is not None:
        permission_service.require(actor, _table(model), Operation.READ, audit=False)

    query = db.session.query(model).filter_by(id=row_id)
    if lock:
        query = query.with_for_update()
    row = query.first()
    if row is None:
        raise NotFoundError(f"{model.__name__} {row_id} not found", details={"id": row_id})
    return row


def insert_row(actor, model, **values):
    permission_service.require(actor, _table(model), Operation.INSERT, audit=False)
    row = model(**values)
    db.session.add(row)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"{model.__name__} violates a uniqueness or reference constraint") from exc
    return row


def update_row(actor, model, row_id: int, values: dict, *, expected_version: int | None = None):
    """
    Apply values to a row.

    expected_version: the version_id the client last read. A mismatch means
    somebody else (or a settlement) changed the row since, and the write is
    refused rather than silently overwriting it.
    """
    permission_service.require(actor, _table(model), Operation.UPDATE, audit=False)
    row = get_row(model, row_id)

    if expected_version is not None and getattr(row, "version_id", None) != expected_version:
        raise ConflictError(
            f"{model.__name__} {row_id} was modified concurrently",
            details={"expected_version": expected_version, "current_version": row.version_id},
        )

    for key, value in values.items():
        setattr(row, key, value)

    try:
        db.session.flush()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError(f"{model.__name__} {row_id} was modified concurrently") from exc
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"{model.__name__} violates a uniqueness or reference constraint") from exc
    return row


def delete_row(actor, model, row_id: int) -> None:
    permission_service.require(actor, _table(model), Operation.DELETE, audit=False)
    row = get_row(model, row_id)
    db.session.delete(row)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"{model.__name__} {row_id} is still referenced") from exc


def adjust_stock(product_id: int, delta: Decimal, *, guard_available: bool = False) -> bool:
    """
    Atomically add delta to a product's stock.

    Returns False when the product does not exist, or when guard_available is
    set and stock_quantity + delta would go below zero.
    """
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=func.round(Product.stock_quantity + delta, 2),
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if guard_available and delta < 0:
        stmt = stmt.where(Product.stock_quantity + delta >= -HALF_CENT)

    result = db.session.execute(stmt)
    return result.rowcount == 1


def adjust_debt(model, counterparty_id: int, delta: Decimal) -> bool:
    """Atomically add delta to a supplier's or customer's debt_balance."""
    if model not in (Supplier, Customer):
        raise ValueError(f"{model.__name__} carries no debt balance")

    stmt = (
        update(model)
        .where(model.id == counterparty_id)
        .values(
            debt_balance=func.round(model.debt_balance + delta, 2),
            version_id=model.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def current_stock(product_id: int) -> Decimal | None:
    """Stock as committed in the store (bypasses the identity map)."""
    return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()
