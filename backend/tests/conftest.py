# Overview: Pytest fixtures for the retail API: app, client, per-role users and catalog factories.

"""
Pytest configuration and fixtures.

One in-memory SQLite app is shared by the whole session; every test starts
from empty tables. Users are created directly in the database and
authenticated through real session tokens.
"""

import pytest

from retail import create_app
from retail.extensions import db
from retail.models import Customer, Product, User
from retail.services.auth_service import hash_password
from retail.services.session_service import create_session


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "EXCHANGE_RATE_UGX_PER_USD": 3700,
        "RECONCILE_STOCK_ON_ORDER_EDIT": False,
        "PROTECTED_ADMIN_EMAILS": [],
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Empty every table before each test."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    yield db.session
    db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    # bcrypt at cost 12 is slow; hash once per run
    return hash_password(PASSWORD)


@pytest.fixture
def make_user(db_session, password_hash):
    """Factory: make_user(role, username=None) -> User."""
    def _make(role, username=None, email=None):
        username = username or f"{role}_user"
        user = User(
            username=username,
            email=email or f"{username}@retail.test",
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


def auth_headers(user) -> dict:
    """Open a session for the user and build Authorization headers."""
    _, token = create_session(user_id=user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(make_user):
    return make_user("admin")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def manager_headers(make_user):
    return auth_headers(make_user("manager"))


@pytest.fixture
def sales_headers(make_user):
    return auth_headers(make_user("sales"))


@pytest.fixture
def viewer_headers(make_user):
    return auth_headers(make_user("viewer"))


@pytest.fixture
def make_product(db_session):
    """Factory: prices are major UGX units, stored as cents."""
    counter = {"n": 0}

    def _make(name=None, price=1000, cost_price=600, quantity=10, low_stock_threshold=5, sku=None):
        counter["n"] += 1
        product = Product(
            sku=sku or f"SKU-{counter['n']:03d}",
            name=name or f"Product {counter['n']}",
            price_cents=int(price * 100),
            cost_price_cents=int(cost_price * 100),
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_customer(db_session):
    def _make(name="Jane Buyer", phone="0700000001", email=None):
        customer = Customer(name=name, phone=phone, email=email)
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


def stock_of(product_id: int) -> int:
    """Current on-hand quantity straight from the database."""
    db.session.expire_all()
    return db.session.get(Product, product_id).quantity


@pytest.fixture
def place_order(client, sales_headers):
    """POST /api/sales and return the order JSON (asserts 201)."""
    def _place(items, currency="UGX", customer_name="Walk-in", customer_phone="0700000001", headers=None):
        resp = client.post("/api/sales", json={
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "currency": currency,
            "items": items,
        }, headers=headers or sales_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["order"]
    return _place
