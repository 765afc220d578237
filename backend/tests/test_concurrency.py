"""
Concurrency tests for the sales engine.

Runs against a file-backed SQLite database so every worker thread gets
its own connection and the BEGIN IMMEDIATE write lock is really contended.

Verifies:
- Concurrent sales never oversell
- Concurrent sales and deletes keep item.quantity + sum(quantity_sold) constant
"""

import threading

import pytest

from shopstock import create_app
from shopstock.errors import InsufficientStockError, SaleNotFoundError
from shopstock.extensions import db
from shopstock.models import InventoryItem, ItemStatus, Sale, User
from shopstock.services import sales_service
from shopstock.services.auth_service import create_user
from shopstock.time_utils import utcnow

from conftest import PASSWORD


INITIAL_QUANTITY = 20


@pytest.fixture(scope='function')
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        admin = create_user(username="admin", email="admin@shop.local", password=PASSWORD, role="admin")
        clerk = create_user(username="clerk", email="clerk@shop.local", password=PASSWORD, role="user")
        now = utcnow()
        item = InventoryItem(
            product_name="Contended Widget",
            quantity=INITIAL_QUANTITY,
            status=ItemStatus.APPROVED.value,
            created_by=admin.id,
            created_at=now,
            updated_at=now,
        )
        db.session.add(item)
        db.session.commit()
        app.config["TEST_IDS"] = {"admin": admin.id, "clerk": clerk.id, "item": item.id}
        db.session.remove()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _run_threads(targets):
    threads = [threading.Thread(target=t) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def _stock_and_sold(app, item_id):
    with app.app_context():
        quantity = db.session.get(InventoryItem, item_id).quantity
        sold = db.session.query(db.func.coalesce(db.func.sum(Sale.quantity_sold), 0)).filter(
            Sale.inventory_item_id == item_id
        ).scalar()
        db.session.remove()
    return quantity, sold


class TestConcurrentSales:

    def test_concurrent_sales_never_oversell(self, file_app):
        ids = file_app.config["TEST_IDS"]
        results = []
        lock = threading.Lock()

        def seller():
            for _ in range(5):
                with file_app.app_context():
                    try:
                        actor = db.session.get(User, ids["clerk"])
                        sales_service.create_sale(
                            {"inventory_item_id": ids["item"], "quantity_sold": 1, "unit_price": "2.50"}, actor,
                        )
                        with lock:
                            results.append("sold")
                    except InsufficientStockError:
                        with lock:
                            results.append("out_of_stock")
                    except Exception as exc:
                        with lock:
                            results.append(exc)
                    finally:
                        db.session.remove()

        _run_threads([seller] * 8)

        errors = [r for r in results if isinstance(r, Exception)]
        assert errors == []
        assert results.count("sold") == INITIAL_QUANTITY
        assert results.count("out_of_stock") == 8 * 5 - INITIAL_QUANTITY

        quantity, sold = _stock_and_sold(file_app, ids["item"])
        assert quantity == 0
        assert sold == INITIAL_QUANTITY

    def test_sales_and_deletes_conserve_stock(self, file_app):
        ids = file_app.config["TEST_IDS"]
        outcomes = {"sold": 0, "out_of_stock": 0, "deleted": 0, "nothing_to_delete": 0}
        errors = []
        lock = threading.Lock()

        def record(key, amount=1):
            with lock:
                outcomes[key] += amount

        def seller():
            for _ in range(6):
                with file_app.app_context():
                    try:
                        actor = db.session.get(User, ids["clerk"])
                        sales_service.create_sale(
                            {"inventory_item_id": ids["item"], "quantity_sold": 2, "unit_price": "1.00"}, actor,
                        )
                        record("sold")
                    except InsufficientStockError:
                        record("out_of_stock")
                    except Exception as exc:
                        with lock:
                            errors.append(exc)
                    finally:
                        db.session.remove()

        def bulk_deleter():
            for _ in range(6):
                with file_app.app_context():
                    try:
                        actor = db.session.get(User, ids["admin"])
                        sale_ids = [row.id for row in db.session.query(Sale.id).order_by(Sale.id).limit(3)]
                        if not sale_ids:
                            record("nothing_to_delete")
                            continue
                        result = sales_service.bulk_delete_sales(sale_ids, actor)
                        record("deleted", result["deletedCount"])
                    except SaleNotFoundError:
                        record("nothing_to_delete")
                    except Exception as exc:
                        with lock:
                            errors.append(exc)
                    finally:
                        db.session.remove()

        def single_deleter():
            for _ in range(6):
                with file_app.app_context():
                    try:
                        actor = db.session.get(User, ids["admin"])
                        newest = db.session.query(Sale.id).order_by(Sale.id.desc()).first()
                        if newest is None:
                            record("nothing_to_delete")
                            continue
                        sales_service.delete_sale(newest.id, actor)
                        record("deleted")
                    except SaleNotFoundError:
                        record("nothing_to_delete")
                    except Exception as exc:
                        with lock:
                            errors.append(exc)
                    finally:
                        db.session.remove()

        _run_threads([seller] * 6 + [bulk_deleter] * 2 + [single_deleter] * 2)

        assert errors == []

        quantity, sold = _stock_and_sold(file_app, ids["item"])
        assert quantity >= 0
        assert quantity + sold == INITIAL_QUANTITY

        with file_app.app_context():
            remaining = db.session.query(Sale).count()
            db.session.remove()
        assert outcomes["sold"] - outcomes["deleted"] == remaining
        assert sold == remaining * 2
