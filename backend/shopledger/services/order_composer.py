# Overview: Service-layer operations for order composition; validates input into an immutable draft.

"""
Order Composer

compose_order() turns client input into an OrderDraft: a frozen value object
with exact Decimal totals. Nothing is written until every check has passed;
the order number is allocated last.

The stock check for sales here is advisory (a snapshot read). The Settlement
Engine re-checks atomically with the stock UPDATE itself.
"""

from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ValidationError, NotFoundError, InsufficientStockError
from ..models import (
    Product,
    Supplier,
    Customer,
    PurchaseOrder,
    PurchaseOrderItem,
    SalesOrder,
    SalesOrderItem,
    OrderSequence,
)
from ..values import CENT, ZERO, to_decimal, money_str, parse_iso_datetime, to_utc_z
from .concurrency import run_with_retry


class OrderKind(str, Enum):
    PURCHASE = "purchase"
    SALES = "sales"

    @classmethod
    def parse(cls, value) -> "OrderKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise NotFoundError(f"Unknown order kind: {value!r}")

    @property
    def prefix(self) -> str:
        return "PO" if self is OrderKind.PURCHASE else "SO"

    @property
    def order_model(self):
        return PurchaseOrder if self is OrderKind.PURCHASE else SalesOrder

    @property
    def item_model(self):
        return PurchaseOrderItem if self is OrderKind.PURCHASE else SalesOrderItem

    @property
    def counterparty_model(self):
        return Supplier if self is OrderKind.PURCHASE else Customer

    @property
    def counterparty_field(self) -> str:
        return "supplier_id" if self is OrderKind.PURCHASE else "customer_id"

    @property
    def order_fk(self) -> str:
        return "purchase_order_id" if self is OrderKind.PURCHASE else "sales_order_id"

    @property
    def order_table(self) -> str:
        return self.order_model.__tablename__

    @property
    def item_table(self) -> str:
        return self.item_model.__tablename__

    @property
    def stock_sign(self) -> int:
        # Purchases bring stock in, sales take it out
        return 1 if self is OrderKind.PURCHASE else -1


@dataclass(frozen=True)
class DraftLine:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": money_str(self.quantity),
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
        }


@dataclass(frozen=True)
class OrderDraft:
    kind: OrderKind
    order_number: str
    lines: tuple
    subtotal: Decimal
    total_amount: Decimal
    counterparty_id: int | None = None
    discount: Decimal = ZERO
    notes: str | None = None
    order_date: datetime | None = None

    def quantities_by_product(self) -> "OrderedDict[int, Decimal]":
        """Total requested quantity per product, in first-seen line order."""
        totals: OrderedDict[int, Decimal] = OrderedDict()
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, ZERO) + line.quantity
        return totals

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "order_number": self.order_number,
            "counterparty_id": self.counterparty_id,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": money_str(self.subtotal),
            "discount": money_str(self.discount),
            "total_amount": money_str(self.total_amount),
            "notes": self.notes,
            "order_date": to_utc_z(self.order_date),
        }


def _parse_id(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, float) and value != parsed:
        raise ValidationError(f"{field_name} must be an integer")
    return parsed


def _parse_lines(lines) -> list[tuple[int, Decimal, Decimal]]:
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError("Order must have at least one line")

    parsed = []
    for index, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"lines[{index}] must be an object")

        product_id = _parse_id(line.get("product_id"), f"lines[{index}].product_id")
        quantity = to_decimal(line.get("quantity"), f"lines[{index}].quantity")
        unit_price = to_decimal(line.get("unit_price"), f"lines[{index}].unit_price")

        if quantity <= 0:
            raise ValidationError(f"lines[{index}].quantity must be positive")
        if unit_price < 0:
            raise ValidationError(f"lines[{index}].unit_price must not be negative")

        parsed.append((product_id, quantity, unit_price))
    return parsed


def next_order_number(prefix: str) -> str:
    """
    Atomically allocate the next order number for a prefix.

    Commits the counter on its own: a number handed out is never handed out
    again, even if the order that claimed it is later rejected (gaps are
    acceptable, duplicates are not).
    """
    def _op() -> str:
        stmt = (
            update(OrderSequence)
            .where(OrderSequence.prefix == prefix)
            .values(next_number=OrderSequence.next_number + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            current = (
                db.session.query(OrderSequence.next_number)
                .filter_by(prefix=prefix)
                .scalar()
            )
            next_num = current - 1
        else:
            db.session.add(OrderSequence(prefix=prefix, next_number=2))
            try:
                db.session.flush()
                next_num = 1
            except IntegrityError:
                # Another writer created the row first
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                current = (
                    db.session.query(OrderSequence.next_number)
                    .filter_by(prefix=prefix)
                    .scalar()
                )
                next_num = current - 1

        db.session.commit()
        return f"{prefix}-{next_num:06d}"

    return run_with_retry(_op)


def compose_order(
    kind,
    lines,
    counterparty_id=None,
    discount=0,
    notes: str | None = None,
    order_date=None,
) -> OrderDraft:
    """
    Validate an order request and build its draft.

    Raises:
        ValidationError: empty lines, non-positive quantity, negative price,
            bad discount, or (sales) more quantity than stock on hand
        NotFoundError: unknown product or counterparty
    """
    kind = OrderKind.parse(kind)
    parsed = _parse_lines(lines)

    discount = to_decimal(discount if discount is not None else 0, "discount")
    if discount < 0:
        raise ValidationError("discount must not be negative")
    if kind is OrderKind.PURCHASE and discount != ZERO:
        raise ValidationError("Purchase orders do not take a discount")

    if counterparty_id is not None:
        counterparty_id = _parse_id(counterparty_id, kind.counterparty_field)
        if db.session.get(kind.counterparty_model, counterparty_id) is None:
            raise NotFoundError(
                f"{kind.counterparty_model.__name__} {counterparty_id} not found",
                details={kind.counterparty_field: counterparty_id},
            )

    product_ids = sorted({product_id for product_id, _, _ in parsed})
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise NotFoundError("Product not found", details={"product_ids": missing})

    draft_lines = tuple(
        DraftLine(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=(quantity * unit_price).quantize(CENT, rounding=ROUND_HALF_UP),
        )
        for product_id, quantity, unit_price in parsed
    )
    subtotal = sum((line.total_price for line in draft_lines), ZERO)

    if discount > subtotal:
        raise ValidationError(
            "discount exceeds subtotal",
            details={"discount": money_str(discount), "subtotal": money_str(subtotal)},
        )

    if kind is OrderKind.SALES:
        requested = {}
        for line in draft_lines:
            requested[line.product_id] = requested.get(line.product_id, ZERO) + line.quantity
        shortfalls = [
            {
                "product_id": pid,
                "sku": products[pid].sku,
                "requested": money_str(qty),
                "available": money_str(products[pid].stock_quantity),
            }
            for pid, qty in requested.items()
            if qty > products[pid].stock_quantity
        ]
        if shortfalls:
            raise InsufficientStockError(shortfalls)

    parsed_date = parse_iso_datetime(order_date, "order_date") if order_date is not None else None
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")

    return OrderDraft(
        kind=kind,
        order_number=next_order_number(kind.prefix),
        lines=draft_lines,
        subtotal=subtotal,
        total_amount=subtotal - discount,
        counterparty_id=counterparty_id,
        discount=discount,
        notes=notes,
        order_date=parsed_date,
    )


def _digest(kind: OrderKind, counterparty_id, lines, discount: Decimal, paid_amount: Decimal) -> str:
    payload = {
        "kind": kind.value,
        "counterparty_id": counterparty_id,
        "lines": [[product_id, money_str(quantity), money_str(unit_price)] for product_id, quantity, unit_price in lines],
        "discount": money_str(discount),
        "paid_amount": money_str(paid_amount),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def request_fingerprint(draft: OrderDraft, paid_amount: Decimal) -> str:
    """
    Stable digest of what the client asked for.

    Excludes the order number (allocated per composition), the order date and
    free-text notes, so a resubmission of the same request matches.
    """
    return _digest(
        draft.kind,
        draft.counterparty_id,
        [(line.product_id, line.quantity, line.unit_price) for line in draft.lines],
        draft.discount,
        paid_amount,
    )


def fingerprint_request(kind, lines, counterparty_id=None, discount=0, paid_amount=0) -> str:
    """
    Fingerprint raw request input without composing a draft.

    Lets a resubmitted request be matched against a settled order without
    re-running the stock check or allocating another order number.
    """
    kind = OrderKind.parse(kind)
    parsed = _parse_lines(lines)
    if counterparty_id is not None:
        counterparty_id = _parse_id(counterparty_id, kind.counterparty_field)
    discount = to_decimal(discount if discount is not None else 0, "discount")
    paid = to_decimal(paid_amount if paid_amount is not None else 0, "paid_amount", allow_negative=False)
    return _digest(kind, counterparty_id, parsed, discount, paid)
