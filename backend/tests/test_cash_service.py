"""
Cash book tests.

Verifies:
- Payments are recorded without touching debt
- Cash transactions and the income / expense summary
- Date range filtering
"""

from decimal import Decimal

import pytest

from shopledger.errors import AuthorizationError, NotFoundError, ValidationError
from shopledger.models import Payment
from shopledger.services import cash_service
from shopledger.services.order_composer import compose_order
from shopledger.services.settlement_service import settle_order

from conftest import reload


# =============================================================================
# PAYMENTS
# =============================================================================


class TestPayments:

    def test_payment_against_order_leaves_debt_alone(self, db_session, manager, product, supplier):
        draft = compose_order(
            "purchase",
            [{"product_id": product.id, "quantity": 10, "unit_price": 5}],
            counterparty_id=supplier.id,
        )
        order = settle_order(draft, 0, actor=manager, idempotency_key="po").order

        payment = cash_service.record_payment(
            actor=manager,
            payment_type="purchase",
            amount="20",
            payment_method="bank_transfer",
            reference_id=order.id,
        )

        assert reload(payment).amount == Decimal("20.00")
        assert reload(supplier).debt_balance == Decimal("50.00")

    def test_unknown_reference_rejected(self, db_session, manager):
        with pytest.raises(NotFoundError):
            cash_service.record_payment(actor=manager, payment_type="sale", amount=5, reference_id=77)
        assert db_session.query(Payment).count() == 0

    @pytest.mark.parametrize("amount", [0, "-1", "abc"])
    def test_amount_must_be_positive(self, db_session, manager, amount):
        with pytest.raises(ValidationError):
            cash_service.record_payment(actor=manager, payment_type="sale", amount=amount)

    def test_bad_method_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.record_payment(actor=manager, payment_type="sale", amount=1, payment_method="barter")

    def test_staff_cannot_record_payment(self, db_session, staff):
        with pytest.raises(AuthorizationError):
            cash_service.record_payment(actor=staff, payment_type="sale", amount=1)

    def test_list_filters_by_type(self, db_session, manager):
        cash_service.record_payment(actor=manager, payment_type="sale", amount=1)
        cash_service.record_payment(actor=manager, payment_type="purchase", amount=2)

        rows = cash_service.list_payments(actor=manager, payment_type="purchase")
        assert [p.amount for p in rows] == [Decimal("2.00")]


# =============================================================================
# CASH TRANSACTIONS
# =============================================================================


class TestCashTransactions:

    def test_summary_balances_income_and_expense(self, db_session, manager):
        cash_service.record_cash_transaction(actor=manager, transaction_type="income", amount="150.25", category="sales")
        cash_service.record_cash_transaction(actor=manager, transaction_type="expense", amount="50.10", category="rent")

        assert cash_service.cash_flow_summary(actor=manager) == {
            "income": "150.25",
            "expense": "50.10",
            "balance": "100.15",
        }

    def test_date_range(self, db_session, manager):
        cash_service.record_cash_transaction(
            actor=manager, transaction_type="income", amount=10, transaction_date="2026-01-05",
        )
        cash_service.record_cash_transaction(
            actor=manager, transaction_type="income", amount=20, transaction_date="2026-02-05",
        )

        january = cash_service.cash_flow_summary("2026-01-01", "2026-01-31")
        assert january["income"] == "10.00"

        rows = cash_service.list_cash_transactions(actor=manager, start="2026-02-01")
        assert len(rows) == 1

    def test_inverted_range_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.cash_flow_summary("2026-03-01", "2026-01-01", actor=manager)

    def test_bad_date_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.record_cash_transaction(
                actor=manager, transaction_type="expense", amount=1, transaction_date="yesterday",
            )

    def test_unknown_type_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.record_cash_transaction(actor=manager, transaction_type="transfer", amount=1)

    def test_sub_cent_amount_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.record_cash_transaction(actor=manager, transaction_type="income", amount="10.005")
        assert cash_service.cash_flow_summary()["income"] == "0.00"

    def test_empty_category_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            cash_service.record_cash_transaction(
                actor=manager, transaction_type="expense", amount=1, category="  ",
            )
