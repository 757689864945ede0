"""
Order composition tests.

Verifies:
- Totals are exact to the cent
- Input validation (empty, quantity, price, discount)
- Unknown product / counterparty
- Advisory stock check for sales, summed across duplicate lines
- Order numbers come from the store-side sequence
"""

import dataclasses
from decimal import Decimal

import pytest

from shopledger.errors import ValidationError, NotFoundError, InsufficientStockError
from shopledger.models import OrderSequence, SalesOrder
from shopledger.services.order_composer import (
    OrderKind,
    compose_order,
    next_order_number,
    request_fingerprint,
    fingerprint_request,
)


def line(product, quantity, unit_price):
    return {"product_id": product.id, "quantity": quantity, "unit_price": unit_price}


# =============================================================================
# TOTALS
# =============================================================================


class TestTotals:

    def test_purchase_total_is_sum_of_lines(self, db_session, product, second_product, supplier):
        draft = compose_order(
            "purchase",
            [line(product, "3", "4.10"), line(second_product, "2.5", "1.99")],
            counterparty_id=supplier.id,
        )

        assert draft.kind is OrderKind.PURCHASE
        assert draft.lines[0].total_price == Decimal("12.30")
        assert draft.lines[1].total_price == Decimal("4.98")
        assert draft.subtotal == Decimal("17.28")
        assert draft.total_amount == Decimal("17.28")
        assert draft.discount == Decimal("0.00")

    def test_sales_total_subtracts_discount(self, db_session, product, customer):
        draft = compose_order(
            "sales",
            [line(product, 3, "10.00")],
            counterparty_id=customer.id,
            discount="5.50",
        )
        assert draft.subtotal == Decimal("30.00")
        assert draft.total_amount == Decimal("24.50")

    def test_float_input_does_not_drift(self, db_session, product, supplier):
        draft = compose_order("purchase", [line(product, 3, 0.1)], counterparty_id=supplier.id)
        assert draft.total_amount == Decimal("0.30")

    def test_draft_is_frozen(self, db_session, product, supplier):
        draft = compose_order("purchase", [line(product, 1, 1)], counterparty_id=supplier.id)
        with pytest.raises(dataclasses.FrozenInstanceError):
            draft.total_amount = Decimal("0")

    def test_duplicate_lines_are_summed_per_product(self, db_session, product, supplier):
        draft = compose_order(
            "purchase",
            [line(product, 2, 1), line(product, 3, 1)],
            counterparty_id=supplier.id,
        )
        assert draft.quantities_by_product() == {product.id: Decimal("5.00")}


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidation:

    def test_empty_lines_rejected(self, db_session, supplier):
        with pytest.raises(ValidationError):
            compose_order("purchase", [], counterparty_id=supplier.id)

    @pytest.mark.parametrize("quantity", [0, -1, "0.00"])
    def test_non_positive_quantity_rejected(self, db_session, product, supplier, quantity):
        with pytest.raises(ValidationError):
            compose_order("purchase", [line(product, quantity, 1)], counterparty_id=supplier.id)

    def test_negative_price_rejected(self, db_session, product, supplier):
        with pytest.raises(ValidationError):
            compose_order("purchase", [line(product, 1, "-0.01")], counterparty_id=supplier.id)

    @pytest.mark.parametrize("bad", [None, True, "abc", "NaN", "Infinity"])
    def test_non_numeric_quantity_rejected(self, db_session, product, supplier, bad):
        with pytest.raises(ValidationError):
            compose_order("purchase", [line(product, bad, 1)], counterparty_id=supplier.id)

    @pytest.mark.parametrize("price", ["1.005", 1.005, "0.001"])
    def test_sub_cent_price_rejected(self, db_session, product, supplier, price):
        with pytest.raises(ValidationError) as exc:
            compose_order("purchase", [line(product, 1, price)], counterparty_id=supplier.id)
        assert "2 decimal places" in exc.value.message

    def test_trailing_zeros_accepted(self, db_session, product, supplier):
        draft = compose_order("purchase", [line(product, "2.500", "1.10")], counterparty_id=supplier.id)
        assert draft.lines[0].quantity == Decimal("2.50")
        assert draft.total_amount == Decimal("2.75")

    def test_discount_above_subtotal_rejected(self, db_session, product, customer):
        with pytest.raises(ValidationError):
            compose_order("sales", [line(product, 1, 10)], counterparty_id=customer.id, discount="10.01")

    def test_negative_discount_rejected(self, db_session, product, customer):
        with pytest.raises(ValidationError):
            compose_order("sales", [line(product, 1, 10)], counterparty_id=customer.id, discount=-1)

    def test_discount_on_purchase_rejected(self, db_session, product, supplier):
        with pytest.raises(ValidationError):
            compose_order("purchase", [line(product, 1, 10)], counterparty_id=supplier.id, discount=1)

    def test_unknown_product_is_not_found(self, db_session, supplier):
        with pytest.raises(NotFoundError) as exc:
            compose_order(
                "purchase",
                [{"product_id": 9999, "quantity": 1, "unit_price": 1}],
                counterparty_id=supplier.id,
            )
        assert exc.value.details["product_ids"] == [9999]

    def test_unknown_counterparty_is_not_found(self, db_session, product):
        with pytest.raises(NotFoundError):
            compose_order("sales", [line(product, 1, 10)], counterparty_id=4242)

    def test_not_found_is_a_validation_error(self):
        assert issubclass(NotFoundError, ValidationError)

    def test_unknown_kind_rejected(self, db_session, product):
        with pytest.raises(NotFoundError):
            compose_order("refund", [line(product, 1, 10)])

    def test_rejected_composition_allocates_no_number(self, db_session, product, supplier):
        with pytest.raises(ValidationError):
            compose_order("purchase", [line(product, 0, 1)], counterparty_id=supplier.id)
        assert db_session.query(OrderSequence).count() == 0


# =============================================================================
# STOCK CHECK (SALES)
# =============================================================================


class TestAdvisoryStockCheck:

    def test_exact_stock_is_allowed(self, db_session, product, customer):
        draft = compose_order("sales", [line(product, 10, 10)], counterparty_id=customer.id)
        assert draft.total_amount == Decimal("100.00")

    def test_excess_quantity_rejected(self, db_session, product, customer):
        with pytest.raises(InsufficientStockError) as exc:
            compose_order("sales", [line(product, 11, 10)], counterparty_id=customer.id)
        assert exc.value.details["items"][0]["product_id"] == product.id

    def test_duplicate_lines_checked_against_combined_quantity(self, db_session, product, customer):
        # 6 + 6 > 10 even though each line alone fits
        with pytest.raises(InsufficientStockError):
            compose_order("sales", [line(product, 6, 10), line(product, 6, 10)], counterparty_id=customer.id)

    def test_purchase_ignores_stock(self, db_session, second_product, supplier):
        draft = compose_order("purchase", [line(second_product, 500, 1)], counterparty_id=supplier.id)
        assert draft.quantities_by_product()[second_product.id] == Decimal("500.00")

    def test_walk_in_sale_without_customer(self, db_session, product):
        draft = compose_order("sales", [line(product, 1, 10)])
        assert draft.counterparty_id is None

    def test_composition_writes_no_order(self, db_session, product, customer):
        compose_order("sales", [line(product, 1, 10)], counterparty_id=customer.id)
        assert db_session.query(SalesOrder).count() == 0


# =============================================================================
# ORDER NUMBERS & FINGERPRINTS
# =============================================================================


class TestOrderNumbers:

    def test_numbers_are_sequential_per_prefix(self, db_session):
        assert next_order_number("PO") == "PO-000001"
        assert next_order_number("PO") == "PO-000002"
        assert next_order_number("SO") == "SO-000001"

    def test_each_draft_gets_a_distinct_number(self, db_session, product, supplier):
        first = compose_order("purchase", [line(product, 1, 1)], counterparty_id=supplier.id)
        second = compose_order("purchase", [line(product, 1, 1)], counterparty_id=supplier.id)
        assert first.order_number != second.order_number
        assert first.order_number.startswith("PO-")


class TestFingerprint:

    def test_draft_and_raw_request_fingerprints_match(self, db_session, product, customer):
        lines = [line(product, "2", "10")]
        draft = compose_order("sales", lines, counterparty_id=customer.id, discount="1")

        assert request_fingerprint(draft, Decimal("5")) == fingerprint_request(
            "sales", lines, customer.id, "1.00", "5.00"
        )

    def test_fingerprint_ignores_order_number(self, db_session, product, supplier):
        lines = [line(product, 1, 1)]
        first = compose_order("purchase", lines, counterparty_id=supplier.id)
        second = compose_order("purchase", lines, counterparty_id=supplier.id)
        assert request_fingerprint(first, Decimal("0")) == request_fingerprint(second, Decimal("0"))

    def test_fingerprint_changes_with_paid_amount(self, db_session, product, supplier):
        draft = compose_order("purchase", [line(product, 1, 1)], counterparty_id=supplier.id)
        assert request_fingerprint(draft, Decimal("0")) != request_fingerprint(draft, Decimal("1"))
