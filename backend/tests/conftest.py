"""
Pytest fixtures for Stockroom backend tests.

Provides test database setup, user/catalog factories, a suppressed mailer,
and authenticated test clients.
"""

import pytest
from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Category
from stockroom.principal import Principal, ROLE_ADMIN, ROLE_CLIENT
from stockroom.services.auth_service import create_user
from stockroom.services.mail_service import Mailer
from stockroom.services.products_service import create_product
from stockroom.services.session_service import create_session

PASSWORD = "Passw0rd!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'MAIL_SUPPRESS_SEND': True,
        'LOW_STOCK_DEFAULT_THRESHOLD': 100,
        'BUNDLE_DISCOUNT_PERCENT': 10,
        'CORS_ALLOWED_ORIGINS': ['http://localhost:3000'],
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
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def mailer(app, db_session):
    """Fresh in-memory mailer; deliveries land in mailer.outbox."""
    mailer = Mailer(suppress_send=True, sender="stockroom@test.local")
    app.extensions["mailer"] = mailer
    yield mailer
    app.extensions.pop("mailer", None)


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create an admin subscribed to low-stock alerts."""
    return create_user(
        "Ada Admin",
        "admin@stockroom.test",
        PASSWORD,
        role=ROLE_ADMIN,
        address="1 Warehouse Way",
        notification_preferences={"receive_low_stock_alerts": True},
    )


@pytest.fixture(scope='function')
def client_user(db_session):
    """Create a client account."""
    return create_user(
        "Carl Client",
        "client@stockroom.test",
        PASSWORD,
        role=ROLE_CLIENT,
        address="22 Market Street",
    )


@pytest.fixture(scope='function')
def other_client(db_session):
    return create_user("Olga Other", "other@stockroom.test", PASSWORD, role=ROLE_CLIENT)


@pytest.fixture(scope='function')
def admin(admin_user):
    return Principal.from_user(admin_user)


@pytest.fixture(scope='function')
def client_principal(client_user):
    return Principal.from_user(client_user)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="tools", description="Hand tools", default_low_stock_threshold=5)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(admin):
    """Factory creating a simple product through the service layer."""
    def _make(name, stock=0, price_cents=0, **fields):
        payload = {"name": name, "stock": stock, "price_cents": price_cents}
        payload.update(fields)
        return create_product(admin, payload)
    return _make


@pytest.fixture(scope='function')
def make_bundle(admin):
    """Factory creating a bundle from [(product, quantity), ...]."""
    def _make(name, components, **fields):
        payload = {
            "name": name,
            "is_bundle": True,
            "bundle_components": [
                {"product_id": product.id, "quantity": quantity}
                for product, quantity in components
            ],
        }
        payload.update(fields)
        return create_product(admin, payload)
    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def client_headers(client_user):
    _, token = create_session(client_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_client):
    _, token = create_session(other_client.id)
    return auth_headers(token)
