"""
Pytest fixtures for StockDesk backend tests.

Provides an in-memory database, a test client, signed-in users and small
factories for master data.
"""

import pytest

from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.services import product_service, contact_service, session_service
from stockdesk.services.auth_service import create_user
from stockdesk.services.change_feed import clear_subscribers


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
        clear_subscribers()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        clear_subscribers()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user(email="admin@stockdesk.test", password=TEST_PASSWORD, name="Admin", role="admin")


@pytest.fixture(scope='function')
def regular_user(db_session):
    return create_user(email="ana@stockdesk.test", password=TEST_PASSWORD, name="Ana", role="user")


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def user_headers(regular_user):
    _, token = session_service.create_session(regular_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(code, stock=..., min_stock=..., ...)."""
    def _make(code="P-001", *, name=None, stock=0, min_stock=0, category=None,
              purchase_price_cents=500, sale_price_cents=1000):
        return product_service.create_product(patch={
            "code": code,
            "name": name or f"Product {code}",
            "category": category,
            "purchase_price_cents": purchase_price_cents,
            "sale_price_cents": sale_price_cents,
            "current_stock": stock,
            "min_stock": min_stock,
        })
    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    """A client record (named to avoid clashing with the Flask test client)."""
    return contact_service.create_contact("clients", patch={"name": "Loja Central", "email": "loja@example.com"})


@pytest.fixture(scope='function')
def supplier(db_session):
    return contact_service.create_contact("suppliers", patch={"name": "Fornecedor Norte", "payment_terms": "30 days"})


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def stock_of(product_id: str) -> int:
    """Current stock straight from the database."""
    from stockdesk.models import Product
    return db.session.query(Product.current_stock).filter(Product.id == product_id).scalar()
