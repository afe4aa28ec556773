# backend/stockpos/services/opname_service.py
"""
Stock opname (physical count) service.

WHY: Regular physical counts show how far the ledger has drifted from the
shelf. An opname snapshots the system figure, stores the counted figure and
the signed difference (actual - system).

AUDIT ONLY: recording an opname never changes a batch. Reconciling the shelf
and the ledger is a separate, explicit correct_batch() by a superadmin.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import StockOpname
from ..validation import clean_note, require_id, require_non_negative_quantity
from .access_service import Actor, RECORD_OPNAME, require_warehouse_access
from .concurrency import run_atomic
from .fifo_service import get_available_batches
from .inventory_service import ensure_product, ensure_warehouse


def record_opname(
    actor: Actor,
    *,
    warehouse_id,
    product_id,
    actual_stock,
    notes: str | None = None,
) -> StockOpname:
    """
    Record a physical count for a product in a warehouse.

    The system figure is read under the same write lock the allocator uses,
    so it is a consistent snapshot even while sales are running.

    Args:
        actor: Acting user (superadmin, or warehouse staff of warehouse_id)
        warehouse_id: Counted warehouse
        product_id: Counted product
        actual_stock: Units physically counted (>= 0)
        notes: Free-text justification for the difference

    Returns:
        StockOpname: The audit record

    Raises:
        Unauthorized: Actor may not audit this warehouse
        InvalidInput: Validation failed
    """
    warehouse_id = require_id(warehouse_id, "warehouse_id")
    product_id = require_id(product_id, "product_id")
    require_warehouse_access(actor, warehouse_id, RECORD_OPNAME)

    actual_stock = require_non_negative_quantity(actual_stock, "actual_stock")
    notes = clean_note(notes, max_length=2000)

    def _op():
        ensure_product(product_id)
        ensure_warehouse(warehouse_id)

        batches = get_available_batches(product_id, warehouse_id, lock=True)
        system_stock = sum(b.quantity_remaining for b in batches)

        opname = StockOpname(
            warehouse_id=warehouse_id,
            product_id=product_id,
            system_stock=system_stock,
            actual_stock=actual_stock,
            difference=actual_stock - system_stock,
            notes=notes,
            user_id=actor.user_id,
        )
        db.session.add(opname)
        db.session.flush()
        return opname

    opname = run_atomic(_op)
    if opname.difference:
        current_app.logger.warning(
            "Opname %d: product %d in warehouse %d differs by %+d (system %d, counted %d)",
            opname.id, product_id, warehouse_id, opname.difference,
            opname.system_stock, opname.actual_stock,
        )
    return opname


def list_opnames(
    *,
    warehouse_id: int | None = None,
    product_id: int | None = None,
    limit: int = 100,
) -> list[StockOpname]:
    q = db.session.query(StockOpname)
    if warehouse_id is not None:
        q = q.filter(StockOpname.warehouse_id == warehouse_id)
    if product_id is not None:
        q = q.filter(StockOpname.product_id == product_id)
    return q.order_by(
        StockOpname.created_at.desc(),
        StockOpname.id.desc(),
    ).limit(limit).all()
