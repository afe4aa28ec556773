# Overview: Append-only stock movement history written alongside every batch mutation.

from __future__ import annotations

from ..extensions import db
from ..models import StockMovement
from ..models.inventory import MOVEMENT_TYPES
from ..validation import InvalidInput
"""
Movement invariants (authoritative)

- One row per batch quantity change, written in the same DB transaction.
- Signed quantity; for every (product, warehouse):
    SUM(stock_movements.quantity) == SUM(inventory_batches.quantity_remaining)
- No updates/deletes.
"""


def append_movement(
    *,
    movement_type: str,
    product_id: int,
    warehouse_id: int,
    batch_id: int,
    quantity: int,
    unit_cost_cents: int | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    user_id: int | None = None,
    notes: str | None = None,
) -> StockMovement:
    """
    Append a movement row. No commit; the caller owns the unit of work.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise InvalidInput(f"Invalid movement type: {movement_type}")

    movement = StockMovement(
        type=movement_type,
        product_id=product_id,
        warehouse_id=warehouse_id,
        batch_id=batch_id,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=user_id,
        notes=notes,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def list_movements(
    *,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    movement_type: str | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise InvalidInput(f"Invalid movement type: {movement_type}")

    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(StockMovement.warehouse_id == warehouse_id)
    if movement_type is not None:
        q = q.filter(StockMovement.type == movement_type)

    return q.order_by(
        StockMovement.created_at.desc(),
        StockMovement.id.desc(),
    ).limit(limit).all()
