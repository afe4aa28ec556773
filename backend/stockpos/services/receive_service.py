# backend/stockpos/services/receive_service.py
"""
Stock receiving service.

WHY: Receiving is the only way new cost basis enters the ledger. Each receive
creates exactly one InventoryBatch (a lot) with its own unit cost; existing
batches are never touched, so receiving is a pure append.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import InventoryBatch
from ..models.inventory import BATCH_SOURCE_RECEIVE, MOVEMENT_IN
from ..time_utils import is_in_future, normalize_datetime
from ..validation import (
    InvalidInput,
    clean_note,
    require_id,
    require_positive_quantity,
    require_price_cents,
)
from .access_service import Actor, RECEIVE_STOCK, require_warehouse_access
from .concurrency import run_atomic
from .inventory_service import ensure_product, ensure_warehouse
from .movement_service import append_movement


def receive_stock(
    actor: Actor,
    *,
    product_id,
    warehouse_id,
    quantity,
    unit_cost_cents,
    received_at=None,
    note: str | None = None,
) -> InventoryBatch:
    """
    Receive stock into a warehouse as a new batch.

    Args:
        actor: Acting user (superadmin, or warehouse staff of warehouse_id)
        product_id: Product received
        warehouse_id: Receiving warehouse
        quantity: Units received (> 0)
        unit_cost_cents: Buy price per unit in cents (>= 0)
        received_at: Optional business time (datetime or ISO string); defaults to now
        note: Optional free text (supplier, invoice number, ...)

    Returns:
        InventoryBatch: The new batch (original = remaining = quantity)

    Raises:
        Unauthorized: Actor may not receive into this warehouse
        InvalidInput: Validation failed
    """
    warehouse_id = require_id(warehouse_id, "warehouse_id")
    product_id = require_id(product_id, "product_id")
    require_warehouse_access(actor, warehouse_id, RECEIVE_STOCK)

    quantity = require_positive_quantity(quantity, "quantity")
    unit_cost_cents = require_price_cents(unit_cost_cents, "unit_cost_cents")
    note = clean_note(note)

    try:
        received_dt = normalize_datetime(received_at)
    except ValueError:
        raise InvalidInput("received_at must be an ISO-8601 datetime")
    tolerance = current_app.config.get("STOCKPOS_FUTURE_TOLERANCE_MINUTES", 2)
    if is_in_future(received_dt, tolerance_minutes=tolerance):
        raise InvalidInput("received_at cannot be in the future")

    def _op():
        ensure_product(product_id, require_active=True)
        ensure_warehouse(warehouse_id)

        batch = InventoryBatch(
            product_id=product_id,
            warehouse_id=warehouse_id,
            original_quantity=quantity,
            quantity_remaining=quantity,
            unit_cost_cents=unit_cost_cents,
            received_at=received_dt,
            source_type=BATCH_SOURCE_RECEIVE,
            received_by_user_id=actor.user_id,
            note=note,
        )
        db.session.add(batch)
        db.session.flush()

        append_movement(
            movement_type=MOVEMENT_IN,
            product_id=product_id,
            warehouse_id=warehouse_id,
            batch_id=batch.id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            reference_type="batch",
            reference_id=batch.id,
            user_id=actor.user_id,
            notes=note,
        )
        return batch

    batch = run_atomic(_op)
    current_app.logger.info(
        "Received %d units of product %d into warehouse %d (batch %d)",
        quantity, product_id, warehouse_id, batch.id,
    )
    return batch
