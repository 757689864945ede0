# Overview: Flask API routes for purchase and sales orders; parses input and returns JSON responses.

"""
Order Routes

POST /api/orders/<purchase|sales> composes and settles an order in one
request. The Idempotency-Key header is required: resubmitting the same
request with the same key returns the order already settled (200) instead
of creating a second one (201).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import json_body, require_auth
from ..errors import ValidationError
from ..permissions import Operation
from ..services import order_service, permission_service, settlement_service
from ..services.order_composer import OrderKind, compose_order, fingerprint_request


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _counterparty_from(data: dict, kind: OrderKind):
    if kind.counterparty_field in data:
        return data.get(kind.counterparty_field)
    return data.get("counterparty_id")


@orders_bp.post("/<kind>")
@require_auth
def create_order_route(kind: str):
    """
    Compose and settle an order.

    Headers:
        Idempotency-Key: client-generated token, unique per intended order

    Request body:
    {
        "supplier_id" | "customer_id": 1,   // optional for walk-in sales
        "lines": [{"product_id": 1, "quantity": "2", "unit_price": "10.00"}],
        "discount": "0",                     // sales only
        "paid_amount": "20.00",
        "notes": "...",
        "order_date": "2024-01-31"
    }
    """
    kind = OrderKind.parse(kind)
    actor = g.current_profile

    key = request.headers.get("Idempotency-Key")
    if not key or not key.strip():
        raise ValidationError("Idempotency-Key header is required")

    permission_service.require(actor, kind.order_table, Operation.INSERT)
    permission_service.require(actor, kind.item_table, Operation.INSERT)

    data = json_body()
    counterparty_id = _counterparty_from(data, kind)
    lines = data.get("lines")
    discount = data.get("discount", 0)
    paid_amount = data.get("paid_amount", 0)

    # A resubmission must not re-run the stock check or take a new number
    fingerprint = fingerprint_request(kind, lines, counterparty_id, discount, paid_amount)
    replay = settlement_service.replay_if_settled(kind, key, fingerprint)
    if replay is not None:
        return jsonify(replay.to_dict()), 200

    draft = compose_order(
        kind,
        lines,
        counterparty_id=counterparty_id,
        discount=discount,
        notes=data.get("notes"),
        order_date=data.get("order_date"),
    )
    settled = settlement_service.settle_order(
        draft,
        paid_amount,
        actor=actor,
        idempotency_key=key,
    )

    if not settled.replayed:
        current_app.logger.info(
            "Order %s settled by profile %s", settled.order.order_number, actor.id,
        )
    return jsonify(settled.to_dict()), 200 if settled.replayed else 201


@orders_bp.get("/<kind>")
@require_auth
def list_orders_route(kind: str):
    """
    Query parameters:
    - status: pending | completed | cancelled
    - limit: Maximum results (default: 50)
    - offset: Pagination offset (default: 0)
    """
    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)

    result = order_service.list_orders(
        kind,
        actor=g.current_profile,
        status=request.args.get("status"),
        limit=limit,
        offset=offset,
    )
    return jsonify(result)


@orders_bp.get("/<kind>/<int:order_id>")
@require_auth
def get_order_route(kind: str, order_id: int):
    order = order_service.get_order(kind, order_id, actor=g.current_profile)
    return jsonify(order.to_dict(include_items=True))


@orders_bp.post("/<kind>/<int:order_id>/cancel")
@require_auth
def cancel_order_route(kind: str, order_id: int):
    """Flag an order cancelled. Stock and debt are not reversed."""
    data = json_body()
    order = order_service.cancel_order(kind, order_id, actor=g.current_profile, reason=data.get("reason"))
    return jsonify(order.to_dict(include_items=True))
