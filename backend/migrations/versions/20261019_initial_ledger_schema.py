"""Initial ledger schema: profiles, catalog, orders, cash book

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def _money(name, nullable=False, default="0"):
    return sa.Column(name, sa.Numeric(15, 2), nullable=nullable, server_default=sa.text(default) if default else None)


def _order_header(table, counterparty_col, counterparty_table, extra_columns=(), extra_constraints=()):
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column(counterparty_col, sa.Integer(), nullable=True),
        sa.Column("order_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        _money("total_amount"),
        _money("paid_amount"),
        *extra_columns,
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("idempotency_key", sa.String(128), nullable=False),
        sa.Column("request_fingerprint", sa.String(64), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint([counterparty_col], [f"{counterparty_table}.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number", name=f"uq_{table}_order_number"),
        sa.UniqueConstraint("idempotency_key", name=f"uq_{table}_idempotency_key"),
        sa.CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name=f"ck_{table}_status"),
        *extra_constraints,
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table(table, schema=None) as batch_op:
        batch_op.create_index(f"ix_{table}_{counterparty_col}", [counterparty_col], unique=False)
        batch_op.create_index(f"ix_{table}_status_created", ["status", "created_at"], unique=False)


def _order_items(table, order_col, order_table):
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(order_col, sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        _money("quantity", default=None),
        _money("unit_price", default=None),
        _money("total_price", default=None),
        sa.ForeignKeyConstraint([order_col], [f"{order_table}.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name=f"ck_{table}_quantity"),
        sa.CheckConstraint("unit_price >= 0", name=f"ck_{table}_unit_price"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table(table, schema=None) as batch_op:
        batch_op.create_index(f"ix_{table}_{order_col}", [order_col], unique=False)
        batch_op.create_index(f"ix_{table}_product_id", ["product_id"], unique=False)


def upgrade():
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="staff"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('admin', 'manager', 'staff')", name="ck_profiles_role"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("profiles", schema=None) as batch_op:
        batch_op.create_index("ix_profiles_email", ["email"], unique=True)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("profile_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash", name="uq_session_tokens_token_hash"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_profile_id", ["profile_id"], unique=False)
        batch_op.create_index("ix_session_tokens_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_session_tokens_is_revoked", ["is_revoked"], unique=False)
        batch_op.create_index("ix_session_tokens_profile_active", ["profile_id", "is_revoked"], unique=False)

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("profile_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(16), nullable=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("table_name", sa.String(64), nullable=True),
        sa.Column("operation", sa.String(16), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("security_events", schema=None) as batch_op:
        batch_op.create_index("ix_security_events_profile_id", ["profile_id"], unique=False)
        batch_op.create_index("ix_security_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_security_events_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_security_events_profile_occurred", ["profile_id", "occurred_at"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(32), nullable=False, server_default="unit"),
        _money("cost_price"),
        _money("selling_price"),
        _money("stock_quantity"),
        _money("min_stock_level"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_name", ["name"], unique=False)
        batch_op.create_index("ix_products_category_id", ["category_id"], unique=False)

    for table, has_contact in (("suppliers", True), ("customers", False)):
        columns = [
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
        ]
        if has_contact:
            columns.append(sa.Column("contact_person", sa.String(255), nullable=True))
        columns += [
            sa.Column("phone", sa.String(32), nullable=True),
            sa.Column("email", sa.String(255), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            _money("debt_balance"),
            sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
            sa.PrimaryKeyConstraint("id"),
        ]
        op.create_table(table, *columns, sqlite_autoincrement=True)
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table}_name", ["name"], unique=False)

    _order_header("purchase_orders", "supplier_id", "suppliers")
    _order_items("purchase_order_items", "purchase_order_id", "purchase_orders")

    _order_header(
        "sales_orders",
        "customer_id",
        "customers",
        extra_columns=(_money("discount"),),
        extra_constraints=(sa.CheckConstraint("discount >= 0", name="ck_sales_orders_discount"),),
    )
    _order_items("sales_order_items", "sales_order_id", "sales_orders")

    op.create_table(
        "order_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prefix", sa.String(8), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prefix", name="uq_order_sequences_prefix"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("payment_type", sa.String(16), nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        _money("amount", default=None),
        sa.Column("payment_method", sa.String(16), nullable=False, server_default="cash"),
        sa.Column("payment_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("payment_type IN ('purchase', 'sale')", name="ck_payments_type"),
        sa.CheckConstraint("payment_method IN ('cash', 'bank_transfer', 'card')", name="ck_payments_method"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("payments", schema=None) as batch_op:
        batch_op.create_index("ix_payments_type_reference", ["payment_type", "reference_id"], unique=False)

    op.create_table(
        "cash_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        sa.Column("category", sa.String(64), nullable=False, server_default="other"),
        _money("amount", default=None),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("transaction_type IN ('income', 'expense')", name="ck_cash_transactions_type"),
        sa.CheckConstraint("amount >= 0", name="ck_cash_transactions_amount"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cash_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_cash_transactions_date", ["transaction_date"], unique=False)


def downgrade():
    for table in (
        "cash_transactions",
        "payments",
        "order_sequences",
        "sales_order_items",
        "sales_orders",
        "purchase_order_items",
        "purchase_orders",
        "customers",
        "suppliers",
        "products",
        "categories",
        "security_events",
        "session_tokens",
        "profiles",
    ):
        op.drop_table(table)
