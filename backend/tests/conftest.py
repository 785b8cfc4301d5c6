"""
Pytest fixtures for shopcart backend tests.

Provides test database setup, user/product factories, and test client.
"""

from decimal import Decimal

import pytest

from shopcart import create_app
from shopcart.extensions import db
from shopcart.models import Product
from shopcart.services import auth_service

PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: register a user with the shared test password."""
    def _make(username, *, is_admin=False, **profile):
        return auth_service.register_user(
            username,
            f"{username}@example.com",
            PASSWORD,
            is_admin=is_admin,
            **profile,
        )
    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("john", first_name="John", last_name="Doe")


@pytest.fixture(scope='function')
def other_customer(make_user):
    return make_user("alice", first_name="Alice", last_name="Smith")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", is_admin=True)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: active product with sensible defaults."""
    def _make(name, price_cents=1000, stock=10, **fields):
        fields.setdefault("rating", Decimal("0"))
        fields.setdefault("review_count", 0)
        product = Product(name=name, price_cents=price_cents, stock=stock, is_active=True, **fields)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def catalog(make_product):
    """Small multi-category catalog keyed by short name."""
    return {
        "iphone": make_product(
            "iPhone 15 Pro", 129900, 50, category="Electronics", brand="Apple",
            description="Apple flagship phone", rating=Decimal("4.8"), review_count=256,
        ),
        "galaxy": make_product(
            "Samsung Galaxy S24", 119900, 30, category="Electronics", brand="Samsung",
            description="Samsung flagship smartphone", rating=Decimal("4.6"), review_count=189,
        ),
        "macbook": make_product(
            "MacBook Air M3", 159900, 25, category="Electronics", brand="Apple",
            description="Apple laptop", rating=Decimal("4.9"), review_count=342,
        ),
        "nike": make_product(
            "Nike Air Max 270", 15900, 100, category="Clothing", brand="Nike",
            description="Breathable sneakers", rating=Decimal("4.4"), review_count=567,
        ),
        "desk": make_product(
            "IKEA Desk", 19900, 3, category="Home", brand="IKEA",
            description="Modern desk", rating=Decimal("4.1"), review_count=234,
        ),
        "book": make_product(
            "Core Java", 8900, 90, category="Books", brand="China Machine Press",
            description="Java programming reference", rating=Decimal("4.9"), review_count=156,
        ),
    }


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.username))


@pytest.fixture(scope='function')
def other_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))
