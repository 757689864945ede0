from __future__ import annotations

from ..extensions import db
from ..values import to_utc_z, money_str


PAYMENT_TYPES = ("purchase", "sale")
PAYMENT_METHODS = ("cash", "bank_transfer", "card")
TRANSACTION_TYPES = ("income", "expense")


class Payment(db.Model):
    """
    Payment against a purchase or sales order.

    Independent of settlement: reference_id points at the order but no
    stock or debt effect follows from recording one.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("payment_type IN ('purchase', 'sale')", name="ck_payments_type"),
        db.CheckConstraint("payment_method IN ('cash', 'bank_transfer', 'card')", name="ck_payments_method"),
        db.Index("ix_payments_type_reference", "payment_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_type = db.Column(db.String(16), nullable=False)
    reference_id = db.Column(db.Integer, nullable=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_type": self.payment_type,
            "reference_id": self.reference_id,
            "amount": money_str(self.amount),
            "payment_method": self.payment_method,
            "payment_date": to_utc_z(self.payment_date),
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class CashTransaction(db.Model):
    __tablename__ = "cash_transactions"
    __table_args__ = (
        db.CheckConstraint("transaction_type IN ('income', 'expense')", name="ck_cash_transactions_type"),
        db.CheckConstraint("amount >= 0", name="ck_cash_transactions_amount"),
        db.Index("ix_cash_transactions_date", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_type = db.Column(db.String(16), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="other")
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "category": self.category,
            "amount": money_str(self.amount),
            "description": self.description,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
