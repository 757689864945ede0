# Overview: Flask API routes for ledger reporting; read-only dashboard and debts views.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import ledger_query_service


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/summary")
@require_auth
def ledger_summary_route():
    """
    Dashboard aggregates.

    Query parameters:
    - recent_limit: number of recent orders per kind (default: RECENT_ORDERS_LIMIT)
    - status: order status the totals are computed over (default: completed)
    """
    summary = ledger_query_service.ledger_summary(
        request.args.get("recent_limit", type=int),
        actor=g.current_profile,
        status=request.args.get("status", "completed"),
    )
    return jsonify(summary)


@ledger_bp.get("/debts")
@require_auth
def debts_route():
    return jsonify(ledger_query_service.debts_view(actor=g.current_profile))


@ledger_bp.get("/low-stock")
@require_auth
def low_stock_route():
    items = ledger_query_service.low_stock_products(actor=g.current_profile)
    return jsonify({"items": items, "count": len(items)})
