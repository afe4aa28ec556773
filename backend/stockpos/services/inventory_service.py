# Overview: Stock-on-hand queries and the admin batch correction.

# backend/stockpos/services/inventory_service.py

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import InventoryBatch, Product, Warehouse
from ..models.inventory import MOVEMENT_ADJUSTMENT
from ..validation import InvalidInput, clean_note, require_non_negative_quantity
from .access_service import Actor, CORRECT_BATCH, require_permission
from .concurrency import run_atomic
from .movement_service import append_movement
"""
Stock Invariants (authoritative)

Inventory model:
- Stock is batch-derived: stock-on-hand for (product, warehouse) is
  SUM(inventory_batches.quantity_remaining).
- A batch's unit_cost_cents is its FIFO cost basis and never changes.
- FIFO inventory value is SUM(quantity_remaining * unit_cost_cents).

Business invariants:
- quantity_remaining may never go negative nor exceed original_quantity.
- Only the FIFO allocator decrements batches; correct_batch() is the single
  admin override and always leaves an adjustment movement behind.

Time semantics:
- All internal datetimes are UTC-naive (tzinfo=None).
- Responses serialize datetimes as ISO-8601 'Z' strings.
"""


def ensure_product(product_id: int, *, require_active: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise InvalidInput(f"Product {product_id} not found")
    if require_active and not product.is_active:
        raise InvalidInput(f"Product {product.name} is inactive")
    return product


def ensure_warehouse(warehouse_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise InvalidInput(f"Warehouse {warehouse_id} not found")
    return warehouse


def get_stock_on_hand(product_id: int, warehouse_id: int | None = None) -> int:
    """Stock-on-hand for a product, in one warehouse or across all of them."""
    q = db.session.query(
        func.coalesce(func.sum(InventoryBatch.quantity_remaining), 0)
    ).filter(InventoryBatch.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(InventoryBatch.warehouse_id == warehouse_id)
    return int(q.scalar() or 0)


def get_inventory_value_cents(product_id: int, warehouse_id: int | None = None) -> int:
    q = db.session.query(
        func.coalesce(
            func.sum(InventoryBatch.quantity_remaining * InventoryBatch.unit_cost_cents),
            0,
        )
    ).filter(InventoryBatch.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(InventoryBatch.warehouse_id == warehouse_id)
    return int(q.scalar() or 0)


def get_inventory_summary(*, product_id: int, warehouse_id: int) -> dict:
    ensure_product(product_id)
    ensure_warehouse(warehouse_id)

    open_batches = list_batches(product_id=product_id, warehouse_id=warehouse_id)
    qty = sum(b.quantity_remaining for b in open_batches)
    value = sum(b.quantity_remaining * b.unit_cost_cents for b in open_batches)

    return {
        "product_id": product_id,
        "warehouse_id": warehouse_id,
        "quantity_on_hand": qty,
        "inventory_value_cents": value,
        "open_batch_count": len(open_batches),
        # Next lot FIFO will draw from
        "oldest_open_batch": open_batches[0].to_dict() if open_batches else None,
    }


def list_batches(
    *,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    include_empty: bool = False,
    limit: int | None = None,
) -> list[InventoryBatch]:
    """Batches in FIFO order; exhausted batches only when include_empty."""
    q = db.session.query(InventoryBatch)
    if product_id is not None:
        q = q.filter(InventoryBatch.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(InventoryBatch.warehouse_id == warehouse_id)
    if not include_empty:
        q = q.filter(InventoryBatch.quantity_remaining > 0)

    q = q.order_by(InventoryBatch.received_at.asc(), InventoryBatch.id.asc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def list_low_stock(*, warehouse_id: int | None = None) -> list[dict]:
    """
    Active products whose stock-on-hand is at or below low_stock_threshold.

    Scoped to one warehouse when warehouse_id is given, else summed across
    warehouses. Products with no batches count as zero stock.
    """
    stock_q = db.session.query(
        InventoryBatch.product_id.label("product_id"),
        func.sum(InventoryBatch.quantity_remaining).label("on_hand"),
    )
    if warehouse_id is not None:
        stock_q = stock_q.filter(InventoryBatch.warehouse_id == warehouse_id)
    stock = stock_q.group_by(InventoryBatch.product_id).subquery()

    on_hand = func.coalesce(stock.c.on_hand, 0)
    rows = (
        db.session.query(Product, on_hand.label("on_hand"))
        .outerjoin(stock, stock.c.product_id == Product.id)
        .filter(Product.is_active.is_(True))
        .filter(on_hand <= Product.low_stock_threshold)
        .order_by(on_hand.asc(), Product.name.asc())
        .all()
    )

    return [
        {
            "product_id": product.id,
            "sku": product.sku,
            "name": product.name,
            "warehouse_id": warehouse_id,
            "quantity_on_hand": int(qty),
            "low_stock_threshold": product.low_stock_threshold,
        }
        for product, qty in rows
    ]


def correct_batch(
    actor: Actor,
    *,
    batch_id: int,
    quantity_remaining,
    note: str | None = None,
) -> InventoryBatch:
    """
    Admin override of a batch's remaining quantity (bypasses FIFO).

    Used to reconcile after an opname or fix data-entry mistakes. The new
    value must stay within 0..original_quantity. The signed delta is written
    as an adjustment movement so the movement ledger still balances.
    """
    require_permission(actor, CORRECT_BATCH)
    new_remaining = require_non_negative_quantity(quantity_remaining, "quantity_remaining")
    note = clean_note(note)
    if not note:
        raise InvalidInput("A correction note is required")

    def _op():
        batch = db.session.get(InventoryBatch, batch_id, with_for_update=True)
        if batch is None:
            raise InvalidInput(f"Batch {batch_id} not found")
        if new_remaining > batch.original_quantity:
            raise InvalidInput(
                f"quantity_remaining cannot exceed original quantity ({batch.original_quantity})"
            )

        delta = new_remaining - batch.quantity_remaining
        if delta == 0:
            return batch

        # ORM update: the version_id check rejects a concurrent allocation
        batch.quantity_remaining = new_remaining
        db.session.flush()

        append_movement(
            movement_type=MOVEMENT_ADJUSTMENT,
            product_id=batch.product_id,
            warehouse_id=batch.warehouse_id,
            batch_id=batch.id,
            quantity=delta,
            unit_cost_cents=batch.unit_cost_cents,
            reference_type="batch",
            reference_id=batch.id,
            user_id=actor.user_id,
            notes=note,
        )
        return batch

    return run_atomic(_op)
