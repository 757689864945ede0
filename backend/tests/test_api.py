"""
HTTP API tests.

Verifies:
- Authentication (login, me, logout, missing token)
- Role enforcement surfaces as 403 with no row written
- Order submission with Idempotency-Key (201, replay 200, missing key 400)
- Error responses are JSON
"""

from decimal import Decimal

import pytest

from shopledger.models import Product, SalesOrder, SecurityEvent

from conftest import TEST_PASSWORD, auth_headers, get_auth_token, reload


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_protected_route_requires_token(self, client, db_session):
        response = client.get('/api/products')
        assert response.status_code == 401
        assert 'error' in response.json

    def test_login_and_me(self, client, manager):
        token = get_auth_token(client, manager.email)
        assert token is not None

        response = client.get('/api/auth/me', headers=auth_headers(token))
        assert response.status_code == 200
        assert response.json['profile']['role'] == 'manager'

    def test_wrong_password_is_logged(self, client, db_session, manager):
        response = client.post('/api/auth/login', json={'email': manager.email, 'password': 'nope'})

        assert response.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type='LOGIN_FAILED').count() == 1

    def test_inactive_profile_cannot_login(self, client, inactive_manager):
        assert get_auth_token(client, inactive_manager.email, TEST_PASSWORD) is None

    def test_logout_revokes_token(self, client, staff):
        token = get_auth_token(client, staff.email)
        headers = auth_headers(token)

        assert client.post('/api/auth/logout', headers=headers).status_code == 200
        assert client.get('/api/auth/me', headers=headers).status_code == 401

    def test_garbage_token_rejected(self, client, db_session):
        response = client.get('/api/auth/me', headers=auth_headers('not-a-token'))
        assert response.status_code == 401


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalogRoutes:

    def test_staff_cannot_create_product(self, client, db_session, staff_headers):
        response = client.post('/api/products', json={'name': 'X', 'sku': 'X-1'}, headers=staff_headers)

        assert response.status_code == 403
        assert response.json['details']['table'] == 'products'
        assert db_session.query(Product).count() == 0

    def test_staff_cannot_create_supplier(self, client, db_session, staff_headers):
        response = client.post('/api/suppliers', json={'name': 'Nope'}, headers=staff_headers)
        assert response.status_code == 403

    def test_manager_creates_and_reads_product(self, client, db_session, manager_headers):
        created = client.post(
            '/api/products',
            json={'name': 'Matcha', 'sku': 'mat-1', 'selling_price': '25.5'},
            headers=manager_headers,
        )
        assert created.status_code == 201
        assert created.json['sku'] == 'MAT-1'
        assert created.json['selling_price'] == '25.50'

        fetched = client.get(f"/api/products/{created.json['id']}", headers=manager_headers)
        assert fetched.status_code == 200
        assert fetched.json['name'] == 'Matcha'

    def test_validation_error_is_400(self, client, db_session, manager_headers):
        response = client.post('/api/categories', json={}, headers=manager_headers)
        assert response.status_code == 400
        assert 'error' in response.json

    def test_missing_row_is_404(self, client, db_session, staff_headers):
        response = client.get('/api/customers/999', headers=staff_headers)
        assert response.status_code == 404

    def test_stale_version_is_409(self, client, db_session, manager_headers, product):
        version = reload(product).version_id
        first = client.patch(
            f'/api/products/{product.id}',
            json={'selling_price': '11', 'version_id': version},
            headers=manager_headers,
        )
        assert first.status_code == 200

        second = client.patch(
            f'/api/products/{product.id}',
            json={'selling_price': '12', 'version_id': version},
            headers=manager_headers,
        )
        assert second.status_code == 409


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderRoutes:

    def _body(self, product, customer, quantity=2):
        return {
            'customer_id': customer.id,
            'lines': [{'product_id': product.id, 'quantity': quantity, 'unit_price': '10.00'}],
            'discount': '1.00',
            'paid_amount': '15.00',
        }

    def test_sale_is_created_then_replayed(self, client, db_session, staff_headers, product, customer):
        headers = {**staff_headers, 'Idempotency-Key': 'till-1-0001'}

        first = client.post('/api/orders/sales', json=self._body(product, customer), headers=headers)
        assert first.status_code == 201
        assert first.json['total_amount'] == '19.00'
        assert first.json['replayed'] is False
        assert first.json['order_number'].startswith('SO-')
        assert len(first.json['items']) == 1

        second = client.post('/api/orders/sales', json=self._body(product, customer), headers=headers)
        assert second.status_code == 200
        assert second.json['replayed'] is True
        assert second.json['id'] == first.json['id']

        assert db_session.query(SalesOrder).count() == 1
        assert reload(product).stock_quantity == Decimal('8.00')
        assert reload(customer).debt_balance == Decimal('4.00')

    def test_key_reuse_with_different_body_is_409(self, client, db_session, staff_headers, product, customer):
        headers = {**staff_headers, 'Idempotency-Key': 'till-1-0002'}
        client.post('/api/orders/sales', json=self._body(product, customer), headers=headers)

        response = client.post('/api/orders/sales', json=self._body(product, customer, 3), headers=headers)
        assert response.status_code == 409

    def test_missing_idempotency_key_is_400(self, client, db_session, staff_headers, product, customer):
        response = client.post('/api/orders/sales', json=self._body(product, customer), headers=staff_headers)

        assert response.status_code == 400
        assert db_session.query(SalesOrder).count() == 0

    def test_insufficient_stock_is_409(self, client, db_session, staff_headers, product, customer):
        headers = {**staff_headers, 'Idempotency-Key': 'too-many'}
        response = client.post('/api/orders/sales', json=self._body(product, customer, 11), headers=headers)

        assert response.status_code == 409
        assert response.json['details']['items'][0]['product_id'] == product.id
        assert reload(product).stock_quantity == Decimal('10.00')

    def test_staff_cannot_submit_purchase(self, client, db_session, staff_headers, product, supplier):
        headers = {**staff_headers, 'Idempotency-Key': 'po-by-staff'}
        response = client.post(
            '/api/orders/purchase',
            json={'supplier_id': supplier.id, 'lines': [{'product_id': product.id, 'quantity': 1, 'unit_price': 1}]},
            headers=headers,
        )
        assert response.status_code == 403

    def test_unknown_kind_is_404(self, client, db_session, staff_headers):
        response = client.get('/api/orders/refunds', headers=staff_headers)
        assert response.status_code == 404

    def test_cancel_route(self, client, db_session, manager_headers, product, customer):
        headers = {**manager_headers, 'Idempotency-Key': 'to-cancel'}
        created = client.post('/api/orders/sales', json=self._body(product, customer), headers=headers)

        response = client.post(
            f"/api/orders/sales/{created.json['id']}/cancel",
            json={'reason': 'Entered twice'},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json['status'] == 'cancelled'
        assert reload(product).stock_quantity == Decimal('8.00')


# =============================================================================
# REQUEST BODIES
# =============================================================================


class TestRequestBodies:

    @pytest.mark.parametrize("body", [[1], "text", 42])
    @pytest.mark.parametrize("method, path", [
        ("post", "/api/orders/sales"),
        ("post", "/api/products"),
        ("post", "/api/customers"),
        ("post", "/api/payments"),
        ("post", "/api/cash-transactions"),
    ])
    def test_non_object_json_is_400(self, client, db_session, manager_headers, method, path, body):
        headers = {**manager_headers, 'Idempotency-Key': 'body-check'}
        response = getattr(client, method)(path, json=body, headers=headers)

        assert response.status_code == 400
        assert response.json['error'] == 'Request body must be an object'

    def test_non_object_patch_is_400(self, client, db_session, manager_headers, product):
        response = client.patch(f'/api/products/{product.id}', json=[{'name': 'x'}], headers=manager_headers)
        assert response.status_code == 400
        assert reload(product).name == 'Green Tea'

    def test_non_object_cancel_is_400(self, client, db_session, manager_headers):
        response = client.post('/api/orders/sales/1/cancel', json=["reason"], headers=manager_headers)
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [["a@b.c", "pw"], {"email": 5, "password": "pw"}])
    def test_malformed_login_is_400(self, client, db_session, body):
        response = client.post('/api/auth/login', json=body)
        assert response.status_code == 400

    def test_missing_body_still_validated(self, client, db_session, manager_headers):
        response = client.post('/api/categories', headers=manager_headers)
        assert response.status_code == 400
        assert response.json['error'] == 'name is required'


# =============================================================================
# LEDGER & SYSTEM
# =============================================================================


class TestLedgerRoutes:

    def test_summary(self, client, db_session, staff_headers, product):
        response = client.get('/api/ledger/summary', headers=staff_headers)
        assert response.status_code == 200
        assert response.json['total_products'] == 1

    def test_debts(self, client, db_session, staff_headers, customer):
        response = client.get('/api/ledger/debts', headers=staff_headers)
        assert response.status_code == 200
        assert response.json['customers'] == []

    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.json['checks']['database']['status'] == 'healthy'
