"""
Pytest fixtures for the cashier backend tests.

Provides an in-memory database, a fresh schema per test, default settings,
a product factory and a test client.
"""

import pytest

from cashier import create_app
from cashier.extensions import db
from cashier.models import Product, Setting
from cashier.services import settings_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SQLALCHEMY_ENGINE_OPTIONS': {},
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
    """Empty every table, then seed the default settings rows."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        settings_service.ensure_default_settings()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def store_settings(db_session):
    """Store identity and a 10% tax rate."""
    return settings_service.update_settings({
        "store_name": "Corner Shop",
        "store_address": "1 Market Street",
        "store_phone": "555-0100",
        "tax_percentage": "10",
        "invoice_prefix": "INV",
    })


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, price_cents, stock) -> Product."""
    def _make(name="Product", price_cents=1000, stock=10):
        product = Product(name=name, price_cents=price_cents, stock=stock)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def set_setting(key: str, value: str) -> None:
    """Write a settings row directly, bypassing validation."""
    row = db.session.query(Setting).filter_by(key=key).first()
    if row is None:
        db.session.add(Setting(key=key, value=value))
    else:
        row.value = value
    db.session.commit()


def stock_of(product_id: int) -> int:
    return db.session.query(Product.stock).filter_by(id=product_id).scalar()
