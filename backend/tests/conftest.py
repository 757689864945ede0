"""
Pytest fixtures for ShopLedger backend tests.

Provides an in-memory database, per-test table clearing, profiles for each
role, a small catalog, and test client helpers.
"""

from decimal import Decimal

import pytest
from shopledger import create_app
from shopledger.config import TestConfig
from shopledger.extensions import db
from shopledger.models import Profile, Product, Category, Supplier, Customer
from shopledger.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test (schema is kept)."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by all fixture profiles (hashing is slow by design)."""
    return hash_password(TEST_PASSWORD)


def _make_profile(email: str, role: str, password_hash: str, is_active: bool = True) -> Profile:
    profile = Profile(
        email=email,
        full_name=email.split("@")[0].title(),
        role=role,
        password_hash=password_hash,
        is_active=is_active,
    )
    db.session.add(profile)
    db.session.commit()
    return profile


@pytest.fixture(scope='function')
def admin(db_session, password_hash):
    return _make_profile("admin@shop.test", "admin", password_hash)


@pytest.fixture(scope='function')
def manager(db_session, password_hash):
    return _make_profile("manager@shop.test", "manager", password_hash)


@pytest.fixture(scope='function')
def staff(db_session, password_hash):
    return _make_profile("staff@shop.test", "staff", password_hash)


@pytest.fixture(scope='function')
def inactive_manager(db_session, password_hash):
    return _make_profile("former@shop.test", "manager", password_hash, is_active=False)


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Beverages")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def product(db_session, category):
    """Product with 10 units on hand."""
    p = Product(
        name="Green Tea",
        sku="TEA-001",
        category_id=category.id,
        cost_price=Decimal("6.00"),
        selling_price=Decimal("10.00"),
        stock_quantity=Decimal("10"),
        min_stock_level=Decimal("2"),
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def second_product(db_session):
    """Product with 3 units on hand."""
    p = Product(
        name="Coffee Beans",
        sku="COF-001",
        cost_price=Decimal("12.00"),
        selling_price=Decimal("20.00"),
        stock_quantity=Decimal("3"),
        min_stock_level=Decimal("5"),
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Leaf Traders", contact_person="Lan", phone="0900000001")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Corner Cafe", phone="0900000002")
    db_session.add(c)
    db_session.commit()
    return c


def reload(instance):
    """Re-read a row from the database, discarding cached state."""
    db.session.expire_all()
    return db.session.get(type(instance), instance.id)


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a profile."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff):
    return auth_headers(get_auth_token(client, staff.email))
