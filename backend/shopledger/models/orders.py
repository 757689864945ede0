from __future__ import annotations

from ..extensions import db
from ..values import to_utc_z, money_str


ORDER_STATUSES = ("pending", "completed", "cancelled")
_STATUS_CHECK = "status IN ('pending', 'completed', 'cancelled')"


def _order_dict(order, counterparty_key: str, counterparty) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        counterparty_key: getattr(order, counterparty_key),
        "counterparty_name": counterparty.name if counterparty else None,
        "order_date": to_utc_z(order.order_date),
        "total_amount": money_str(order.total_amount),
        "paid_amount": money_str(order.paid_amount),
        "status": order.status,
        "notes": order.notes,
        "created_by": order.created_by,
        "idempotency_key": order.idempotency_key,
        "created_at": to_utc_z(order.created_at),
    }


def _item_dict(item, order_key: str) -> dict:
    return {
        "id": item.id,
        order_key: getattr(item, order_key),
        "product_id": item.product_id,
        "quantity": money_str(item.quantity),
        "unit_price": money_str(item.unit_price),
        "total_price": money_str(item.total_price),
    }


class PurchaseOrder(db.Model):
    """
    Purchase order header (stock in, debt owed to supplier).

    Immutable once settled; cancellation only flips status.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.CheckConstraint(_STATUS_CHECK, name="ck_purchase_orders_status"),
        db.Index("ix_purchase_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)

    # At-most-once settlement per client token
    idempotency_key = db.Column(db.String(128), nullable=False, unique=True)
    request_fingerprint = db.Column(db.String(64), nullable=False)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="order",
        lazy=True,
        order_by="PurchaseOrderItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def counterparty_id(self):
        return self.supplier_id

    def to_dict(self, include_items: bool = False) -> dict:
        data = _order_dict(self, "supplier_id", self.supplier)
        data["kind"] = "purchase"
        data["cancelled_at"] = to_utc_z(self.cancelled_at)
        data["cancel_reason"] = self.cancel_reason
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity"),
        db.CheckConstraint("unit_price >= 0", name="ck_purchase_order_items_unit_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(
        db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(15, 2), nullable=False)
    unit_price = db.Column(db.Numeric(15, 2), nullable=False)
    total_price = db.Column(db.Numeric(15, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return _item_dict(self, "purchase_order_id")


class SalesOrder(db.Model):
    """
    Sales order header (stock out, debt owed by customer).

    customer_id is NULL for walk-in sales.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.CheckConstraint(_STATUS_CHECK, name="ck_sales_orders_status"),
        db.CheckConstraint("discount >= 0", name="ck_sales_orders_discount"),
        db.Index("ix_sales_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)

    idempotency_key = db.Column(db.String(128), nullable=False, unique=True)
    request_fingerprint = db.Column(db.String(64), nullable=False)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))
    items = db.relationship(
        "SalesOrderItem",
        backref="order",
        lazy=True,
        order_by="SalesOrderItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def counterparty_id(self):
        return self.customer_id

    def to_dict(self, include_items: bool = False) -> dict:
        data = _order_dict(self, "customer_id", self.customer)
        data["kind"] = "sales"
        data["discount"] = money_str(self.discount)
        data["cancelled_at"] = to_utc_z(self.cancelled_at)
        data["cancel_reason"] = self.cancel_reason
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesOrderItem(db.Model):
    __tablename__ = "sales_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_order_items_quantity"),
        db.CheckConstraint("unit_price >= 0", name="ck_sales_order_items_unit_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(
        db.Integer, db.ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(15, 2), nullable=False)
    unit_price = db.Column(db.Numeric(15, 2), nullable=False)
    total_price = db.Column(db.Numeric(15, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return _item_dict(self, "sales_order_id")


class OrderSequence(db.Model):
    """
    Atomic per-prefix order number counter.

    WHY: Timestamp-derived numbers collide under concurrent submissions.
    """
    __tablename__ = "order_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(8), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
