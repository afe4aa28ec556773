# Overview: Flask CLI command groups for bootstrap and stock operations.

# backend/stockpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app stockpos <group> <command> [options]
#
# System bootstrap:
# - python -m flask --app stockpos system init-db
#   Create all tables (idempotent).
# - python -m flask --app stockpos system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask --app stockpos system seed-demo
#   Idempotent demo data: two warehouses, three users (one per role), two products.
#
# Stock operations (the acting user is given by --user <username>):
# - python -m flask --app stockpos stock receive --user admin --product SKU-001 --warehouse 1 --quantity 10 --unit-cost 1000
# - python -m flask --app stockpos stock transfer --user admin --product SKU-001 --from 1 --to 2 --quantity 3
# - python -m flask --app stockpos stock opname --user gudang --product SKU-001 --warehouse 1 --actual 7 --notes "shelf count"
# - python -m flask --app stockpos stock on-hand --product SKU-001 [--warehouse 1]
# - python -m flask --app stockpos stock batches --product SKU-001 [--warehouse 1] [--all]
# - python -m flask --app stockpos stock low [--warehouse 1]
# - python -m flask --app stockpos stock movements [--product SKU-001] [--warehouse 1] [--limit 50]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User, Warehouse
from .services.access_service import (
    ROLE_CASHIER,
    ROLE_SUPERADMIN,
    ROLE_WAREHOUSE,
    actor_for_user,
)
from .services import inventory_service, movement_service
from .services.opname_service import record_opname
from .services.receive_service import receive_stock
from .services.transfer_service import transfer_stock
from .validation import LedgerError


def _fail(message: str):
    click.echo(f"FAIL {message}")
    click.get_current_context().exit(1)


def _actor(username: str):
    user = db.session.query(User).filter_by(username=username).first()
    if user is None:
        _fail(f"User '{username}' not found")
    try:
        return actor_for_user(user.id)
    except LedgerError as e:
        _fail(e.message)


def _product(sku: str) -> Product:
    product = db.session.query(Product).filter_by(sku=sku).first()
    if product is None:
        _fail(f"Product with SKU '{sku}' not found")
    return product


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        _fail("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed demo data (idempotent).

    Creates:
    - Warehouses: Gudang Utama (MAIN), Toko Cabang (BRANCH)
    - Users: admin (superadmin), gudang (warehouse staff @ MAIN), kasir (cashier @ BRANCH)
    - Products: SKU-001, SKU-002
    """
    click.echo("START Seeding demo data...")

    warehouses = {}
    for code, name in (("MAIN", "Gudang Utama"), ("BRANCH", "Toko Cabang")):
        warehouse = db.session.query(Warehouse).filter_by(code=code).first()
        if warehouse is None:
            warehouse = Warehouse(name=name, code=code)
            db.session.add(warehouse)
            db.session.flush()
            click.echo(f"PASS Created warehouse: {name} (ID: {warehouse.id})")
        else:
            click.echo(f"WARN  Warehouse '{code}' already exists, skipping...")
        warehouses[code] = warehouse

    default_users = [
        ("admin", "Administrator", ROLE_SUPERADMIN, None),
        ("gudang", "Warehouse Staff", ROLE_WAREHOUSE, warehouses["MAIN"].id),
        ("kasir", "Cashier", ROLE_CASHIER, warehouses["BRANCH"].id),
    ]
    for username, full_name, role, warehouse_id in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        db.session.add(User(username=username, full_name=full_name, role=role, warehouse_id=warehouse_id))
        click.echo(f"PASS Created user: {username} with role '{role}'")

    default_products = [
        ("SKU-001", "Kopi Bubuk 200g", 2500000, 10),
        ("SKU-002", "Teh Celup 25s", 1200000, 5),
    ]
    for sku, name, price_cents, threshold in default_products:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"WARN  Product '{sku}' already exists, skipping...")
            continue
        db.session.add(Product(sku=sku, name=name, sell_price_cents=price_cents, low_stock_threshold=threshold))
        click.echo(f"PASS Created product: {sku} {name}")

    db.session.commit()
    click.echo("DONE Demo data ready")


@click.group('stock')
def stock_group():
    """Stock operations and inspection."""


@stock_group.command('receive')
@click.option('--user', 'username', required=True, help='Acting username')
@click.option('--product', 'sku', required=True, help='Product SKU')
@click.option('--warehouse', 'warehouse_id', required=True, type=int)
@click.option('--quantity', required=True, type=int)
@click.option('--unit-cost', 'unit_cost_cents', required=True, type=int, help='Unit cost in cents')
@click.option('--note', default=None)
@with_appcontext
def receive_cli(username, sku, warehouse_id, quantity, unit_cost_cents, note):
    """Receive a new batch."""
    actor = _actor(username)
    product = _product(sku)
    try:
        batch = receive_stock(
            actor,
            product_id=product.id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            note=note,
        )
    except LedgerError as e:
        _fail(e.message)
    click.echo(f"PASS Batch {batch.id}: {batch.original_quantity} x {sku} @ {batch.unit_cost_cents}")


@stock_group.command('transfer')
@click.option('--user', 'username', required=True, help='Acting username')
@click.option('--product', 'sku', required=True, help='Product SKU')
@click.option('--from', 'from_warehouse_id', required=True, type=int)
@click.option('--to', 'to_warehouse_id', required=True, type=int)
@click.option('--quantity', required=True, type=int)
@click.option('--note', default=None)
@with_appcontext
def transfer_cli(username, sku, from_warehouse_id, to_warehouse_id, quantity, note):
    """Transfer stock between warehouses (FIFO, cost preserved)."""
    actor = _actor(username)
    product = _product(sku)
    try:
        transfer = transfer_stock(
            actor,
            product_id=product.id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            note=note,
        )
    except LedgerError as e:
        _fail(e.message)
    click.echo(
        f"PASS Transfer {transfer.id}: {transfer.quantity} x {sku} "
        f"{from_warehouse_id} -> {to_warehouse_id} (cost {transfer.total_cost_cents})"
    )


@stock_group.command('opname')
@click.option('--user', 'username', required=True, help='Acting username')
@click.option('--product', 'sku', required=True, help='Product SKU')
@click.option('--warehouse', 'warehouse_id', required=True, type=int)
@click.option('--actual', 'actual_stock', required=True, type=int, help='Physically counted units')
@click.option('--notes', default=None)
@with_appcontext
def opname_cli(username, sku, warehouse_id, actual_stock, notes):
    """Record a physical count (audit only, no stock change)."""
    actor = _actor(username)
    product = _product(sku)
    try:
        opname = record_opname(
            actor,
            warehouse_id=warehouse_id,
            product_id=product.id,
            actual_stock=actual_stock,
            notes=notes,
        )
    except LedgerError as e:
        _fail(e.message)
    click.echo(
        f"PASS Opname {opname.id}: system {opname.system_stock}, "
        f"counted {opname.actual_stock}, difference {opname.difference:+d}"
    )


@stock_group.command('on-hand')
@click.option('--product', 'sku', required=True, help='Product SKU')
@click.option('--warehouse', 'warehouse_id', type=int, default=None)
@with_appcontext
def on_hand_cli(sku, warehouse_id):
    """Show stock-on-hand for a product."""
    product = _product(sku)
    qty = inventory_service.get_stock_on_hand(product.id, warehouse_id)
    value = inventory_service.get_inventory_value_cents(product.id, warehouse_id)
    scope = f"warehouse {warehouse_id}" if warehouse_id else "all warehouses"
    click.echo(f"{sku} {product.name}: {qty} on hand in {scope} (FIFO value {value})")


@stock_group.command('batches')
@click.option('--product', 'sku', required=True, help='Product SKU')
@click.option('--warehouse', 'warehouse_id', type=int, default=None)
@click.option('--all', 'include_empty', is_flag=True, help='Include exhausted batches')
@with_appcontext
def batches_cli(sku, warehouse_id, include_empty):
    """List batches in FIFO order."""
    product = _product(sku)
    batches = inventory_service.list_batches(
        product_id=product.id,
        warehouse_id=warehouse_id,
        include_empty=include_empty,
    )
    if not batches:
        click.echo("No batches found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'WH':<5} {'Received':<22} {'Remaining':<12} {'Original':<10} {'Unit cost':<12} {'Source'}")
    click.echo("="*80)
    for b in batches:
        received = b.received_at.strftime("%Y-%m-%d %H:%M:%S")
        click.echo(
            f"{b.id:<6} {b.warehouse_id:<5} {received:<22} {b.quantity_remaining:<12} "
            f"{b.original_quantity:<10} {b.unit_cost_cents:<12} {b.source_type}"
        )
    click.echo("="*80 + "\n")


@stock_group.command('low')
@click.option('--warehouse', 'warehouse_id', type=int, default=None)
@with_appcontext
def low_stock_cli(warehouse_id):
    """List products at or below their low-stock threshold."""
    rows = inventory_service.list_low_stock(warehouse_id=warehouse_id)
    if not rows:
        click.echo("No low-stock products.")
        return
    for row in rows:
        click.echo(
            f"WARN  {row['sku']:<12} {row['name']:<30} "
            f"on hand {row['quantity_on_hand']} (threshold {row['low_stock_threshold']})"
        )


@stock_group.command('movements')
@click.option('--product', 'sku', default=None, help='Product SKU')
@click.option('--warehouse', 'warehouse_id', type=int, default=None)
@click.option('--type', 'movement_type', default=None, help='in, out, transfer_in, transfer_out, adjustment')
@click.option('--limit', default=50, type=int)
@with_appcontext
def movements_cli(sku, warehouse_id, movement_type, limit):
    """Show recent stock movements, newest first."""
    product_id = _product(sku).id if sku else None
    try:
        movements = movement_service.list_movements(
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_type=movement_type,
            limit=limit,
        )
    except LedgerError as e:
        _fail(e.message)
    for m in movements:
        click.echo(
            f"{m.id:<6} {m.type:<13} product {m.product_id:<5} wh {m.warehouse_id:<4} "
            f"batch {m.batch_id:<6} {m.quantity:+d} {m.notes or ''}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
