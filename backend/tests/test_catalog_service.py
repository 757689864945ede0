"""
Catalog service tests.

Verifies:
- Create / update / delete for master-data resources
- Role enforcement with no row written on deny
- Unique SKU and optimistic version checks
- Products referenced by orders cannot be deleted
"""

from decimal import Decimal

import pytest

from shopledger.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from shopledger.models import Category, Product, SecurityEvent, Supplier
from shopledger.services import catalog_service
from shopledger.services.order_composer import compose_order
from shopledger.services.settlement_service import settle_order

from conftest import reload


# =============================================================================
# CREATE
# =============================================================================


class TestCreate:

    def test_manager_creates_product(self, db_session, manager, category):
        row = catalog_service.create_record(manager, "products", {
            "name": "Oolong",
            "sku": "tea-002",
            "category_id": category.id,
            "selling_price": "12.50",
        })

        assert row.id is not None
        assert row.sku == "TEA-002"
        assert reload(row).selling_price == Decimal("12.50")
        assert reload(row).stock_quantity == Decimal("0.00")

    def test_staff_cannot_create_supplier(self, db_session, staff):
        with pytest.raises(AuthorizationError):
            catalog_service.create_record(staff, "suppliers", {"name": "Sneaky Supplies"})

        assert db_session.query(Supplier).count() == 0
        event = db_session.query(SecurityEvent).one()
        assert event.table_name == "suppliers"
        assert event.operation == "insert"

    def test_staff_can_create_customer(self, db_session, staff):
        row = catalog_service.create_record(staff, "customers", {"name": "Walk-up Regular", "phone": "0911"})
        assert row.debt_balance == Decimal("0")

    def test_duplicate_sku_conflicts(self, db_session, manager, product):
        with pytest.raises(ConflictError):
            catalog_service.create_record(manager, "products", {"name": "Copy", "sku": "tea-001"})
        assert db_session.query(Product).count() == 1

    def test_missing_name_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            catalog_service.create_record(manager, "categories", {"description": "no name"})

    def test_unknown_field_rejected(self, db_session, manager):
        with pytest.raises(ValidationError) as exc:
            catalog_service.create_record(manager, "categories", {"name": "Snacks", "colour": "red"})
        assert exc.value.details["fields"] == ["colour"]

    def test_negative_price_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            catalog_service.create_record(manager, "products", {"name": "X", "sku": "X-1", "cost_price": -1})

    def test_sub_cent_amount_rejected(self, db_session, manager):
        with pytest.raises(ValidationError):
            catalog_service.create_record(manager, "products", {"name": "X", "sku": "X-1", "selling_price": "9.999"})
        assert db_session.query(Product).count() == 0

    def test_unknown_category_rejected(self, db_session, manager):
        with pytest.raises(NotFoundError):
            catalog_service.create_record(manager, "products", {"name": "X", "sku": "X-1", "category_id": 999})

    def test_unknown_resource_rejected(self, db_session, admin):
        with pytest.raises(NotFoundError):
            catalog_service.create_record(admin, "profiles", {"name": "x"})


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdate:

    def test_partial_update(self, db_session, manager, product):
        catalog_service.update_record(manager, "products", product.id, {"selling_price": "11.00"})

        fresh = reload(product)
        assert fresh.selling_price == Decimal("11.00")
        assert fresh.name == "Green Tea"

    def test_staff_cannot_update(self, db_session, staff, customer):
        with pytest.raises(AuthorizationError):
            catalog_service.update_record(staff, "customers", customer.id, {"name": "Renamed"})
        assert reload(customer).name == "Corner Cafe"

    def test_stale_version_conflicts(self, db_session, manager, product, supplier):
        read_version = reload(product).version_id

        # A settlement bumps the version in between
        draft = compose_order("purchase", [{"product_id": product.id, "quantity": 5, "unit_price": 1}],
                              counterparty_id=supplier.id)
        settle_order(draft, 5, actor=manager, idempotency_key="bump")

        with pytest.raises(ConflictError):
            catalog_service.update_record(
                manager, "products", product.id, {"stock_quantity": "0", "version_id": read_version},
            )
        assert reload(product).stock_quantity == Decimal("15.00")

    def test_current_version_accepted(self, db_session, manager, supplier):
        version = reload(supplier).version_id
        catalog_service.update_record(
            manager, "suppliers", supplier.id, {"debt_balance": "-20", "version_id": version},
        )
        assert reload(supplier).debt_balance == Decimal("-20.00")

    def test_empty_update_rejected(self, db_session, manager, product):
        with pytest.raises(ValidationError):
            catalog_service.update_record(manager, "products", product.id, {})

    def test_sku_taken_by_other_product(self, db_session, manager, product, second_product):
        with pytest.raises(ConflictError):
            catalog_service.update_record(manager, "products", second_product.id, {"sku": "TEA-001"})

    def test_missing_row(self, db_session, manager):
        with pytest.raises(NotFoundError):
            catalog_service.update_record(manager, "categories", 4242, {"name": "Ghost"})


# =============================================================================
# DELETE
# =============================================================================


class TestDelete:

    def test_admin_deletes_unreferenced_product(self, db_session, admin, second_product):
        catalog_service.delete_record(admin, "products", second_product.id)
        assert db_session.query(Product).count() == 0

    def test_manager_cannot_delete(self, db_session, manager, second_product):
        with pytest.raises(AuthorizationError):
            catalog_service.delete_record(manager, "products", second_product.id)
        assert db_session.query(Product).count() == 1

    def test_referenced_product_cannot_be_deleted(self, db_session, admin, product, customer):
        draft = compose_order("sales", [{"product_id": product.id, "quantity": 1, "unit_price": 10}],
                              counterparty_id=customer.id)
        settle_order(draft, 10, actor=admin, idempotency_key="keep-me")

        with pytest.raises(ConflictError):
            catalog_service.delete_record(admin, "products", product.id)
        assert reload(product) is not None

    def test_deleting_category_clears_product_reference(self, db_session, admin, product, category):
        catalog_service.delete_record(admin, "categories", category.id)

        assert db_session.query(Category).count() == 0
        assert reload(product).category_id is None


# =============================================================================
# LIST
# =============================================================================


class TestList:

    def test_search_matches_name_or_sku(self, db_session, staff, product, second_product):
        by_name = catalog_service.list_records(staff, "products", search="coffee")
        by_sku = catalog_service.list_records(staff, "products", search="tea-0")

        assert [p.sku for p in by_name] == ["COF-001"]
        assert [p.sku for p in by_sku] == ["TEA-001"]

    def test_low_stock_filter(self, db_session, staff, product, second_product):
        rows = catalog_service.list_records(staff, "products", low_stock=True)
        assert [p.id for p in rows] == [second_product.id]

    def test_anonymous_cannot_list(self, db_session, product):
        with pytest.raises(AuthorizationError):
            catalog_service.list_records(None, "products")
