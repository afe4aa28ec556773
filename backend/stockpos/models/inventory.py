from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


# Batch origins
BATCH_SOURCE_RECEIVE = "RECEIVE"
BATCH_SOURCE_TRANSFER = "TRANSFER"

# Movement types
MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TRANSFER_IN = "transfer_in"
MOVEMENT_TRANSFER_OUT = "transfer_out"
MOVEMENT_ADJUSTMENT = "adjustment"

MOVEMENT_TYPES = (
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
    MOVEMENT_ADJUSTMENT,
)


class InventoryBatch(db.Model):
    """
    One lot of a product received into one warehouse at one unit cost.

    The batch table is the single source of truth for stock: stock-on-hand for
    a (product, warehouse) pair is SUM(quantity_remaining) over its batches.

    INVARIANTS:
    - original_quantity and unit_cost_cents never change after insert
    - 0 <= quantity_remaining <= original_quantity (also enforced by CHECKs)
    - received_at is the FIFO key; id breaks ties
    - Exhausted batches (quantity_remaining = 0) are kept as history

    MUTATION:
    - Only the FIFO allocator decrements quantity_remaining, through a
      conditional UPDATE that also bumps version_id.
    - correct_batch() is the admin override and goes through the ORM, so the
      version_id check rejects it if an allocation touched the row meanwhile.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = (
        db.CheckConstraint("original_quantity > 0", name="ck_batches_original_positive"),
        db.CheckConstraint("quantity_remaining >= 0", name="ck_batches_remaining_nonneg"),
        db.CheckConstraint(
            "quantity_remaining <= original_quantity", name="ck_batches_remaining_le_original"
        ),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_batches_cost_nonneg"),
        # FIFO scan: open batches for a pair ordered by age
        db.Index(
            "ix_batches_product_warehouse_received",
            "product_id", "warehouse_id", "received_at", "id",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    original_quantity = db.Column(db.Integer, nullable=False)
    quantity_remaining = db.Column(db.Integer, nullable=False)

    # Cost basis for FIFO COGS, in cents
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # RECEIVE or TRANSFER; transfer lots remember the source lot they were cut from
    source_type = db.Column(db.String(16), nullable=False, default=BATCH_SOURCE_RECEIVE)
    source_batch_id = db.Column(db.Integer, db.ForeignKey("inventory_batches.id"), nullable=True)

    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("batches", lazy=True))
    source_batch = db.relationship("InventoryBatch", remote_side=[id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<InventoryBatch id={self.id} product_id={self.product_id} "
            f"warehouse_id={self.warehouse_id} remaining={self.quantity_remaining}/{self.original_quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "original_quantity": self.original_quantity,
            "quantity_remaining": self.quantity_remaining,
            "unit_cost_cents": self.unit_cost_cents,
            "received_at": to_utc_z(self.received_at),
            "source_type": self.source_type,
            "source_batch_id": self.source_batch_id,
            "received_by_user_id": self.received_by_user_id,
            "note": self.note,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Append-only per-batch movement history.

    Every change to a batch's quantity_remaining writes exactly one row here in
    the same DB transaction, so for any (product, warehouse):
        SUM(stock_movements.quantity) == SUM(inventory_batches.quantity_remaining)

    quantity is signed: positive for in/transfer_in, negative for
    out/transfer_out, either sign for adjustment.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_movements_product_warehouse_created", "product_id", "warehouse_id", "created_at"),
        db.Index("ix_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("inventory_batches.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    # What caused the movement: transaction, transfer or batch (receive/correction)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")
    batch = db.relationship("InventoryBatch", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
