from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


class StockTransfer(db.Model):
    """
    Warehouse-to-warehouse transfer log.

    One row per transfer operation regardless of how many source batches were
    consumed; the per-lot detail lives in the destination batches
    (source_batch_id) and in stock_movements.
    Written in the same DB transaction as the stock it moved.
    """
    __tablename__ = "stock_transfers"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfers_qty_positive"),
        db.CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_transfers_distinct_warehouses"),
        db.Index("ix_transfers_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    # FIFO cost basis carried across, in cents
    total_cost_cents = db.Column(db.BigInteger, nullable=False, default=0)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")
    from_warehouse = db.relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = db.relationship("Warehouse", foreign_keys=[to_warehouse_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "from_warehouse_id": self.from_warehouse_id,
            "to_warehouse_id": self.to_warehouse_id,
            "quantity": self.quantity,
            "total_cost_cents": self.total_cost_cents,
            "user_id": self.user_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class StockOpname(db.Model):
    """
    Physical stock count (audit record).

    Records the system figure at the moment of the count, the counted figure
    and the signed difference (actual - system). Does not adjust any batch;
    reconciliation is a separate, explicit batch correction.
    """
    __tablename__ = "stock_opnames"
    __table_args__ = (
        db.CheckConstraint("actual_stock >= 0", name="ck_opnames_actual_nonneg"),
        db.Index("ix_opnames_warehouse_product_created", "warehouse_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    system_stock = db.Column(db.Integer, nullable=False)
    actual_stock = db.Column(db.Integer, nullable=False)
    difference = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "product_id": self.product_id,
            "system_stock": self.system_stock,
            "actual_stock": self.actual_stock,
            "difference": self.difference,
            "notes": self.notes,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-warehouse document sequences.

    WHY: Prevent race conditions when generating document numbers.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("warehouse_id", "document_type", name="uq_doc_sequences_warehouse_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
