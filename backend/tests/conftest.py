"""
Pytest fixtures for stockpos ledger tests.

Provides the test app, a clean database per test, two warehouses, a small
catalog, one user per role and a helper for receiving dated batches.
"""

from datetime import timedelta

import pytest

from stockpos import create_app
from stockpos.extensions import db
from stockpos.models import Customer, Product, User, Warehouse
from stockpos.services.access_service import (
    ROLE_CASHIER,
    ROLE_SUPERADMIN,
    ROLE_WAREHOUSE,
    Actor,
)
from stockpos.services.receive_service import receive_stock
from stockpos.time_utils import utcnow


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'STOCKPOS_RETRY_BACKOFF': 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def main_warehouse(db_session):
    """Storage site (Gudang Utama)."""
    warehouse = Warehouse(name="Gudang Utama", code="MAIN")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def branch_warehouse(db_session):
    """Shop floor (Toko Cabang)."""
    warehouse = Warehouse(name="Toko Cabang", code="BRANCH")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def coffee(db_session):
    product = Product(sku="SKU-001", name="Kopi Bubuk", sell_price_cents=2000, low_stock_threshold=5)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def tea(db_session):
    product = Product(sku="SKU-002", name="Teh Celup", sell_price_cents=1500, low_stock_threshold=3)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Budi", phone="08123456789")
    db_session.add(customer)
    db_session.commit()
    return customer


def _make_user(db_session, username, role, warehouse_id=None):
    user = User(username=username, full_name=username.title(), role=role, warehouse_id=warehouse_id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", ROLE_SUPERADMIN)


@pytest.fixture(scope='function')
def gudang_user(db_session, main_warehouse):
    """Warehouse staff pinned to the main warehouse."""
    return _make_user(db_session, "gudang", ROLE_WAREHOUSE, main_warehouse.id)


@pytest.fixture(scope='function')
def kasir_user(db_session, main_warehouse):
    """Cashier pinned to the main warehouse."""
    return _make_user(db_session, "kasir", ROLE_CASHIER, main_warehouse.id)


@pytest.fixture(scope='function')
def admin(admin_user):
    return Actor(user_id=admin_user.id, role=ROLE_SUPERADMIN)


@pytest.fixture(scope='function')
def gudang(gudang_user):
    return Actor(user_id=gudang_user.id, role=ROLE_WAREHOUSE, warehouse_id=gudang_user.warehouse_id)


@pytest.fixture(scope='function')
def kasir(kasir_user):
    return Actor(user_id=kasir_user.id, role=ROLE_CASHIER, warehouse_id=kasir_user.warehouse_id)


@pytest.fixture(scope='function')
def receive(admin):
    """
    Receive a batch as the superadmin, dated days_ago days in the past.

    Usage: receive(product, warehouse, quantity, unit_cost_cents, days_ago=3)
    """
    def _receive(product, warehouse, quantity, unit_cost_cents, *, days_ago=1, received_at=None):
        if received_at is None:
            received_at = utcnow() - timedelta(days=days_ago)
        return receive_stock(
            admin,
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            received_at=received_at,
        )
    return _receive


@pytest.fixture(scope='function')
def ledger_balance(db_session):
    """
    Per (product, warehouse): (sum of movement quantities, sum of batch remaining).

    The two must always match; tests assert equality after each operation.
    """
    from sqlalchemy import func
    from stockpos.models import InventoryBatch, StockMovement

    def _balance(product_id, warehouse_id):
        moved = db_session.query(func.coalesce(func.sum(StockMovement.quantity), 0)).filter(
            StockMovement.product_id == product_id,
            StockMovement.warehouse_id == warehouse_id,
        ).scalar()
        remaining = db_session.query(func.coalesce(func.sum(InventoryBatch.quantity_remaining), 0)).filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.warehouse_id == warehouse_id,
        ).scalar()
        return int(moved), int(remaining)
    return _balance
