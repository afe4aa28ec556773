# Overview: FIFO batch allocator shared by checkout and transfer.

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import InventoryBatch, Product
from ..validation import InsufficientStock, require_positive_quantity
from .concurrency import lock_for_update
"""
FIFO allocation invariants (authoritative)

- Candidate batches: same product + warehouse, quantity_remaining > 0,
  ordered by received_at ASC, id ASC (oldest lot first, insertion order on ties).
- Availability is summed BEFORE any decrement; a short request raises
  InsufficientStock and mutates nothing.
- Each decrement is a conditional UPDATE (quantity_remaining >= take) that
  also bumps version_id. A decrement that matches no row means another writer
  got there first: StaleDataError, and the enclosing unit of work retries.
- allocate() never commits. Callers run it inside run_atomic() so a failure
  anywhere in the walk rolls back every batch it touched.
"""


@dataclass(frozen=True)
class Allocation:
    """Units taken from one batch, at that batch's cost basis."""
    batch_id: int
    quantity: int
    unit_cost_cents: int

    @property
    def cost_cents(self) -> int:
        return self.quantity * self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "cost_cents": self.cost_cents,
        }


def get_available_batches(
    product_id: int,
    warehouse_id: int,
    *,
    lock: bool = False,
) -> list[InventoryBatch]:
    """Open batches for a (product, warehouse) pair in FIFO order."""
    q = db.session.query(InventoryBatch).filter(
        InventoryBatch.product_id == product_id,
        InventoryBatch.warehouse_id == warehouse_id,
        InventoryBatch.quantity_remaining > 0,
    ).order_by(
        InventoryBatch.received_at.asc(),
        InventoryBatch.id.asc(),
    )
    if lock:
        q = lock_for_update(q)
    return q.all()


def allocation_cost(allocations: list[Allocation]) -> int:
    return sum(a.cost_cents for a in allocations)


def _consume_batch(batch: InventoryBatch, take: int) -> None:
    stmt = (
        update(InventoryBatch)
        .where(
            InventoryBatch.id == batch.id,
            InventoryBatch.quantity_remaining >= take,
        )
        .values(
            quantity_remaining=InventoryBatch.quantity_remaining - take,
            version_id=InventoryBatch.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise StaleDataError(
            f"Batch {batch.id} changed during allocation (wanted {take} units)"
        )
    db.session.refresh(batch)


def allocate(product_id: int, warehouse_id: int, quantity_needed) -> list[Allocation]:
    """
    Consume quantity_needed units of a product from a warehouse, oldest batch first.

    Returns one Allocation per batch touched, in consumption order.

    Raises:
        InvalidInput: quantity_needed is not a positive integer
        InsufficientStock: open batches hold less than quantity_needed
        StaleDataError: a batch was consumed concurrently (retry the unit)
    """
    quantity_needed = require_positive_quantity(quantity_needed, "quantity")

    batches = get_available_batches(product_id, warehouse_id, lock=True)
    available = sum(b.quantity_remaining for b in batches)
    if available < quantity_needed:
        product = db.session.get(Product, product_id)
        raise InsufficientStock(
            product_id=product_id,
            product_name=product.name if product else None,
            available=available,
            requested=quantity_needed,
        )

    allocations: list[Allocation] = []
    still_needed = quantity_needed
    for batch in batches:
        if still_needed == 0:
            break
        take = min(batch.quantity_remaining, still_needed)
        _consume_batch(batch, take)
        allocations.append(
            Allocation(batch_id=batch.id, quantity=take, unit_cost_cents=batch.unit_cost_cents)
        )
        still_needed -= take

    return allocations
