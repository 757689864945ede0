# Overview: Service-layer read models for reporting; dashboard aggregates and the debts view.

"""
Ledger Query Service

Read-only. Each aggregate is computed by a single SQL statement so that it
reflects one snapshot of the store, never a mix of values from before and
after a concurrent settlement. Different aggregates in one summary may come
from different snapshots (read committed).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..errors import ValidationError
from ..models import Product, Supplier, Customer, PurchaseOrder, SalesOrder, ORDER_STATUSES
from ..permissions import Operation
from ..values import money, money_str
from . import permission_service


def _require_reads(actor, tables) -> None:
    if actor is None:
        return
    for table in tables:
        permission_service.require(actor, table, Operation.READ)


def product_stats() -> dict:
    total, low = db.session.query(
        func.count(Product.id),
        func.coalesce(
            func.sum(case((Product.stock_quantity < Product.min_stock_level, 1), else_=0)),
            0,
        ),
    ).one()
    return {"total_products": int(total), "low_stock_products": int(low)}


def order_stats(model, status: str = "completed") -> dict:
    count, total, paid = db.session.query(
        func.count(model.id),
        func.coalesce(func.sum(model.total_amount), 0),
        func.coalesce(func.sum(model.paid_amount), 0),
    ).filter(model.status == status).one()
    return {"count": int(count), "total_amount": money(total), "paid_amount": money(paid)}


def debt_stats(model) -> dict:
    count, owed = db.session.query(
        func.count(model.id),
        func.coalesce(func.sum(model.debt_balance), 0),
    ).one()
    return {"count": int(count), "total_debt": money(owed)}


def recent_orders(model, limit: int) -> list[dict]:
    orders = (
        db.session.query(model)
        .order_by(model.created_at.desc(), model.id.desc())
        .limit(limit)
        .all()
    )
    return [o.to_dict() for o in orders]


def ledger_summary(recent_limit: int | None = None, *, actor=None, status: str = "completed") -> dict:
    """
    Dashboard aggregates.

    Debt totals are net: a counterparty in credit (negative balance) offsets
    the others. debts_view() lists only positive balances.
    """
    _require_reads(actor, ("products", "customers", "suppliers", "sales_orders", "purchase_orders"))

    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")
    if recent_limit is None:
        recent_limit = current_app.config.get("RECENT_ORDERS_LIMIT", 5)
    if recent_limit < 0:
        raise ValidationError("recent_limit must not be negative")

    products = product_stats()
    sales = order_stats(SalesOrder, status)
    purchases = order_stats(PurchaseOrder, status)
    customers = debt_stats(Customer)
    suppliers = debt_stats(Supplier)

    return {
        "total_products": products["total_products"],
        "low_stock_products": products["low_stock_products"],
        "total_customers": customers["count"],
        "total_suppliers": suppliers["count"],
        "status_filter": status,
        "sales_count": sales["count"],
        "total_sales": money_str(sales["total_amount"]),
        "total_sales_paid": money_str(sales["paid_amount"]),
        "purchases_count": purchases["count"],
        "total_purchases": money_str(purchases["total_amount"]),
        "total_purchases_paid": money_str(purchases["paid_amount"]),
        "customer_debt": money_str(customers["total_debt"]),
        "supplier_debt": money_str(suppliers["total_debt"]),
        "recent_sales": recent_orders(SalesOrder, recent_limit) if recent_limit else [],
        "recent_purchases": recent_orders(PurchaseOrder, recent_limit) if recent_limit else [],
    }


def _debtors(model) -> list[dict]:
    rows = (
        db.session.query(model)
        .filter(model.debt_balance > 0)
        .order_by(model.debt_balance.desc(), model.id)
        .all()
    )
    return [
        {"id": r.id, "name": r.name, "phone": r.phone, "debt_balance": money_str(r.debt_balance)}
        for r in rows
    ]


def debts_view(*, actor=None) -> dict:
    """Counterparties with outstanding debt, largest first."""
    _require_reads(actor, ("customers", "suppliers"))

    customers = _debtors(Customer)
    suppliers = _debtors(Supplier)
    return {
        "customers": customers,
        "suppliers": suppliers,
        "customer_total": money_str(sum((money(c["debt_balance"]) for c in customers), money(0))),
        "supplier_total": money_str(sum((money(s["debt_balance"]) for s in suppliers), money(0))),
    }


def low_stock_products(*, actor=None) -> list[dict]:
    _require_reads(actor, ("products",))
    rows = (
        db.session.query(Product)
        .filter(Product.stock_quantity < Product.min_stock_level)
        .order_by(Product.name, Product.id)
        .all()
    )
    return [p.to_dict() for p in rows]
