# backend/stockpos/services/transfer_service.py
"""
Warehouse-to-warehouse transfer service.

WHY: Moving stock must carry its cost basis along. The source is consumed
FIFO and every consumed lot re-appears at the destination as a new batch at
the SAME unit cost, so COGS stays accurate however many hops the stock makes.

ATOMICITY: source decrements, destination batches, movements and the single
StockTransfer log row are one DB transaction. If the log row cannot be
written the stock does not move.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import InventoryBatch, StockMovement, StockTransfer
from ..models.inventory import BATCH_SOURCE_TRANSFER, MOVEMENT_TRANSFER_IN, MOVEMENT_TRANSFER_OUT
from ..time_utils import utcnow
from ..validation import (
    InsufficientStock,
    InvalidInput,
    clean_note,
    require_id,
    require_positive_quantity,
)
from .access_service import Actor, TRANSFER_STOCK, require_warehouse_access
from .concurrency import run_atomic
from .fifo_service import allocate, allocation_cost
from .inventory_service import ensure_product, ensure_warehouse
from .movement_service import append_movement


def transfer_stock(
    actor: Actor,
    *,
    product_id,
    from_warehouse_id,
    to_warehouse_id,
    quantity,
    note: str | None = None,
) -> StockTransfer:
    """
    Move quantity units of a product between warehouses.

    Args:
        actor: Acting user (superadmin, or warehouse staff of the source)
        product_id: Product to move
        from_warehouse_id: Source warehouse (consumed FIFO)
        to_warehouse_id: Destination warehouse (receives new batches)
        quantity: Units to move (> 0)
        note: Optional reason

    Returns:
        StockTransfer: The transfer log row

    Raises:
        Unauthorized: Actor may not move stock out of the source
        InvalidInput: Same warehouses, bad quantity, unknown product/warehouse
        InsufficientStock: Source holds less than quantity; nothing moved
    """
    from_warehouse_id = require_id(from_warehouse_id, "from_warehouse_id")
    to_warehouse_id = require_id(to_warehouse_id, "to_warehouse_id")
    product_id = require_id(product_id, "product_id")
    require_warehouse_access(actor, from_warehouse_id, TRANSFER_STOCK)

    if from_warehouse_id == to_warehouse_id:
        raise InvalidInput("Cannot transfer to the same warehouse")
    quantity = require_positive_quantity(quantity, "quantity")
    note = clean_note(note)

    def _op():
        ensure_product(product_id)
        source = ensure_warehouse(from_warehouse_id)
        destination = ensure_warehouse(to_warehouse_id)

        allocations = allocate(product_id, from_warehouse_id, quantity)

        transfer = StockTransfer(
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            total_cost_cents=allocation_cost(allocations),
            user_id=actor.user_id,
            note=note,
        )
        db.session.add(transfer)
        db.session.flush()  # Get ID

        # Stock is new to the destination for FIFO purposes there
        arrived_at = utcnow()
        for allocation in allocations:
            append_movement(
                movement_type=MOVEMENT_TRANSFER_OUT,
                product_id=product_id,
                warehouse_id=from_warehouse_id,
                batch_id=allocation.batch_id,
                quantity=-allocation.quantity,
                unit_cost_cents=allocation.unit_cost_cents,
                reference_type="transfer",
                reference_id=transfer.id,
                user_id=actor.user_id,
                notes=f"Transfer to {destination.name}",
            )

            new_batch = InventoryBatch(
                product_id=product_id,
                warehouse_id=to_warehouse_id,
                original_quantity=allocation.quantity,
                quantity_remaining=allocation.quantity,
                unit_cost_cents=allocation.unit_cost_cents,
                received_at=arrived_at,
                source_type=BATCH_SOURCE_TRANSFER,
                source_batch_id=allocation.batch_id,
                received_by_user_id=actor.user_id,
                note=f"Transfer #{transfer.id} from {source.name}",
            )
            db.session.add(new_batch)
            db.session.flush()

            append_movement(
                movement_type=MOVEMENT_TRANSFER_IN,
                product_id=product_id,
                warehouse_id=to_warehouse_id,
                batch_id=new_batch.id,
                quantity=allocation.quantity,
                unit_cost_cents=allocation.unit_cost_cents,
                reference_type="transfer",
                reference_id=transfer.id,
                user_id=actor.user_id,
                notes=f"Transfer from {source.name}",
            )

        return transfer

    try:
        transfer = run_atomic(_op)
    except InsufficientStock as exc:
        current_app.logger.warning(
            "Transfer rejected from warehouse %s to %s: %s",
            from_warehouse_id, to_warehouse_id, exc.message,
        )
        raise

    current_app.logger.info(
        "Transfer %d: %d units of product %d from warehouse %d to %d",
        transfer.id, quantity, product_id, from_warehouse_id, to_warehouse_id,
    )
    return transfer


def get_transfer_summary(transfer_id: int) -> dict:
    """
    Transfer log row with the destination batches it created.

    Raises:
        InvalidInput: Transfer not found
    """
    transfer = db.session.get(StockTransfer, transfer_id)
    if transfer is None:
        raise InvalidInput(f"Transfer {transfer_id} not found")

    batch_ids = [
        m.batch_id for m in transfer_movements(transfer.id)
        if m.type == MOVEMENT_TRANSFER_IN
    ]
    batches = (
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.id.in_(batch_ids))
        .order_by(InventoryBatch.id.asc())
        .all()
    ) if batch_ids else []

    return {
        **transfer.to_dict(),
        "destination_batches": [b.to_dict() for b in batches],
    }


def transfer_movements(transfer_id: int):
    return (
        db.session.query(StockMovement)
        .filter_by(reference_type="transfer", reference_id=transfer_id)
        .order_by(StockMovement.id.asc())
        .all()
    )
