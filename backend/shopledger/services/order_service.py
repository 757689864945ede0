# Overview: Service-layer operations for settled orders; listing, lookup and cancellation.

from __future__ import annotations

import logging

from ..extensions import db
from ..errors import ValidationError, NotFoundError
from ..models import ORDER_STATUSES
from ..permissions import Operation
from ..values import utcnow
from . import permission_service
from .order_composer import OrderKind

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


def list_orders(kind, *, actor, status: str | None = None, limit: int = 50, offset: int = 0) -> dict:
    kind = OrderKind.parse(kind)
    permission_service.require(actor, kind.order_table, Operation.READ)

    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must not be negative")

    model = kind.order_model
    query = db.session.query(model)
    if status is not None:
        query = query.filter(model.status == status)

    total = query.count()
    orders = query.order_by(model.created_at.desc(), model.id.desc()).limit(limit).offset(offset).all()
    return {
        "items": [o.to_dict() for o in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    }


def get_order(kind, order_id: int, *, actor):
    kind = OrderKind.parse(kind)
    permission_service.require(actor, kind.order_table, Operation.READ)
    permission_service.require(actor, kind.item_table, Operation.READ)

    order = db.session.get(kind.order_model, order_id)
    if order is None:
        raise NotFoundError(f"{kind.value.capitalize()} order {order_id} not found", details={"id": order_id})
    return order


def cancel_order(kind, order_id: int, *, actor, reason: str | None = None):
    """
    Mark an order cancelled.

    Cancellation is a status flag only: stock and debt effects of the
    settlement stay in place. Reversing them is a new, opposite order.
    """
    kind = OrderKind.parse(kind)
    permission_service.require(actor, kind.order_table, Operation.UPDATE)

    order = db.session.get(kind.order_model, order_id)
    if order is None:
        raise NotFoundError(f"{kind.value.capitalize()} order {order_id} not found", details={"id": order_id})
    if order.status == "cancelled":
        raise ValidationError(f"Order {order.order_number} is already cancelled")
    if reason is not None and len(reason) > 255:
        raise ValidationError("reason must be at most 255 characters")

    order.status = "cancelled"
    order.cancelled_at = utcnow()
    order.cancel_reason = reason
    db.session.commit()

    logger.info("Cancelled %s order %s by profile=%s", kind.value, order.order_number, getattr(actor, "id", None))
    return order
