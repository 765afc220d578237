"""
Pytest fixtures for Shopstock backend tests.

Every test gets its own app on a fresh in-memory SQLite database, an
admin/manager/user trio, and bearer headers for each of them.
"""

from decimal import Decimal

import pytest

from shopstock import create_app
from shopstock.extensions import db
from shopstock.models import InventoryItem, ItemStatus, Sale
from shopstock.services import session_service
from shopstock.services.auth_service import create_user
from shopstock.time_utils import utcnow


PASSWORD = "Password123"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
        'BCRYPT_ROUNDS': 4,
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


@pytest.fixture(scope='function')
def admin(app):
    return create_user(username="admin", email="admin@shop.local", password=PASSWORD, role="admin")


@pytest.fixture(scope='function')
def manager(app):
    return create_user(username="manager", email="manager@shop.local", password=PASSWORD, role="manager")


@pytest.fixture(scope='function')
def user(app):
    return create_user(username="clerk", email="clerk@shop.local", password=PASSWORD, role="user")


@pytest.fixture(scope='function')
def other_user(app):
    return create_user(username="other", email="other@shop.local", password=PASSWORD, role="user")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    _, token = session_service.create_session(user_id=user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture(scope='function')
def user_headers(user):
    return headers_for(user)


@pytest.fixture(scope='function')
def make_item(app):
    """Factory for inventory items, bypassing the create workflow."""
    def _make_item(owner, *, quantity=10, unit_price="15.00", status=ItemStatus.APPROVED, **fields):
        now = utcnow()
        item = InventoryItem(
            product_name=fields.pop("product_name", "Widget"),
            quantity=quantity,
            unit_price=Decimal(unit_price) if unit_price is not None else None,
            status=status.value,
            created_by=owner.id,
            created_at=fields.pop("created_at", now),
            updated_at=now,
            **fields,
        )
        db.session.add(item)
        db.session.commit()
        return item
    return _make_item


def record_sale(item, seller, quantity, unit_price, created_at):
    """Insert a historical sale row directly (no stock debit)."""
    price = Decimal(unit_price)
    sale = Sale(
        inventory_item_id=item.id,
        quantity_sold=quantity,
        unit_price=price,
        total_amount=price * quantity,
        sold_by=seller.id,
        created_at=created_at,
    )
    db.session.add(sale)
    db.session.commit()
    return sale
