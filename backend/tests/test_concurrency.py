"""
Concurrent checkouts against a file-backed SQLite database.

Each worker thread runs in its own app context (and so its own session and
connection). The in-memory database used elsewhere is a single shared
connection and cannot show these races.
"""

import threading

import pytest

from tillbook import create_app
from tillbook.errors import InsufficientStockError
from tillbook.extensions import db
from tillbook.models import InventoryRecord, Product, SalesTransaction, Store, User
from tillbook.services import sales_service
from tillbook.services.locations import StoreLocation
from tillbook.services.sales_service import CartItem


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'BCRYPT_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(stock: int):
    store = Store(name="Race Street", code="RACE")
    db.session.add(store)
    db.session.flush()

    product = Product(sku="HOT-1", name="Limited Edition Bed", price_cents=4999)
    user = User(username="racer", email="racer@tillbook.test", password_hash="x", store_id=store.id)
    db.session.add_all([product, user])
    db.session.flush()

    location = StoreLocation(store.id)
    record = InventoryRecord(
        product_id=product.id,
        quantity=stock,
        location_type=location.location_type,
        store_id=store.id,
        location_key=location.key,
    )
    db.session.add(record)
    db.session.commit()
    return store.id, product.id, user.id, record.id


def _run_workers(app, count, target):
    start = threading.Barrier(count)
    results = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            start.wait()
            outcome = target()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_last_unit_sold_once(file_app):
    """Five units, ten buyers: exactly five sales, stock ends at zero."""
    store_id, product_id, user_id, record_id = _seed(stock=5)

    def buy():
        try:
            txn = sales_service.checkout([CartItem(product_id, 1)], "cash", user_id, store_id=store_id)
            return ("ok", txn.invoice_number)
        except InsufficientStockError as e:
            return ("short", e.available)

    results = _run_workers(file_app, 10, buy)

    sold = [r[1] for r in results if r[0] == "ok"]
    short = [r for r in results if r[0] == "short"]
    assert len(sold) == 5
    assert len(short) == 5
    assert all(available == 0 for _, available in short)

    db.session.expire_all()
    assert db.session.get(InventoryRecord, record_id).quantity == 0
    assert db.session.query(SalesTransaction).count() == 5


def test_invoice_numbers_are_distinct(file_app):
    store_id, product_id, user_id, _ = _seed(stock=100)

    def buy():
        return sales_service.checkout([CartItem(product_id, 1)], "card", user_id, store_id=store_id).invoice_number

    numbers = _run_workers(file_app, 8, buy)

    assert len(numbers) == 8
    assert len(set(numbers)) == 8
    assert sorted(int(n.rsplit("-", 1)[1]) for n in numbers) == list(range(1, 9))
