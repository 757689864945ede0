# Overview: Flask API routes for payments and cash transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import json_body, require_auth, require_table_access
from ..permissions import Operation
from ..services import cash_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")
cash_bp = Blueprint("cash_transactions", __name__, url_prefix="/api/cash-transactions")


@payments_bp.get("")
@require_auth
@require_table_access("payments", Operation.READ)
def list_payments_route():
    payments = cash_service.list_payments(
        actor=g.current_profile,
        payment_type=request.args.get("payment_type"),
        reference_id=request.args.get("reference_id", type=int),
    )
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


@payments_bp.post("")
@require_auth
@require_table_access("payments", Operation.INSERT)
def record_payment_route():
    """
    Record a payment against an order.

    Request body:
    {
        "payment_type": "purchase" | "sale",
        "reference_id": 1,           // optional order id
        "amount": "50.00",
        "payment_method": "cash" | "bank_transfer" | "card",
        "payment_date": "2024-01-31",
        "notes": "..."
    }
    """
    data = json_body()
    payment = cash_service.record_payment(
        actor=g.current_profile,
        payment_type=data.get("payment_type"),
        amount=data.get("amount"),
        payment_method=data.get("payment_method", "cash"),
        reference_id=data.get("reference_id"),
        payment_date=data.get("payment_date"),
        notes=data.get("notes"),
    )
    return jsonify(payment.to_dict()), 201


@cash_bp.get("")
@require_auth
@require_table_access("cash_transactions", Operation.READ)
def list_cash_transactions_route():
    txns = cash_service.list_cash_transactions(
        actor=g.current_profile,
        start=request.args.get("start"),
        end=request.args.get("end"),
        transaction_type=request.args.get("transaction_type"),
    )
    return jsonify({"items": [t.to_dict() for t in txns], "count": len(txns)})


@cash_bp.post("")
@require_auth
@require_table_access("cash_transactions", Operation.INSERT)
def record_cash_transaction_route():
    data = json_body()
    txn = cash_service.record_cash_transaction(
        actor=g.current_profile,
        transaction_type=data.get("transaction_type"),
        amount=data.get("amount"),
        category=data.get("category", "other"),
        description=data.get("description"),
        transaction_date=data.get("transaction_date"),
    )
    return jsonify(txn.to_dict()), 201


@cash_bp.get("/summary")
@require_auth
@require_table_access("cash_transactions", Operation.READ)
def cash_summary_route():
    """Income, expense and balance; optional ?start=&end= (ISO dates)."""
    summary = cash_service.cash_flow_summary(
        request.args.get("start"),
        request.args.get("end"),
        actor=g.current_profile,
    )
    return jsonify(summary)
