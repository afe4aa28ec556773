from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


TRANSACTION_STATUS_COMPLETED = "COMPLETED"


class Transaction(db.Model):
    """
    Completed point-of-sale transaction.

    Created together with its items and their batch allocations in one DB
    transaction by checkout(); never mutated afterwards (append-only ledger).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("warehouse_id", "document_number", name="uq_transactions_warehouse_docnum"),
        db.Index("ix_transactions_warehouse_status_created", "warehouse_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Human-readable document number (e.g., "S-000042"), unique per warehouse
    document_number = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=TRANSACTION_STATUS_COMPLETED, index=True)

    # Revenue and FIFO cost of goods sold, in cents
    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    total_cogs_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    warehouse = db.relationship("Warehouse", backref=db.backref("transactions", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        backref="transaction",
        lazy=True,
        order_by="TransactionItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "customer_id": self.customer_id,
            "document_number": self.document_number,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "total_cogs_cents": self.total_cogs_cents,
            "gross_profit_cents": self.total_amount_cents - self.total_cogs_cents,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionItem(db.Model):
    """
    One cart line of a transaction.

    sell_price_cents is the price charged at time of sale.
    buy_price_total_cents is the FIFO COGS for the line:
        SUM(allocation.quantity * allocation.unit_cost_cents)
    over however many batches the allocator drew from.
    """
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    sell_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)
    buy_price_total_cents = db.Column(db.BigInteger, nullable=False)

    product = db.relationship("Product")
    allocations = db.relationship(
        "TransactionItemAllocation",
        backref="item",
        lazy=True,
        order_by="TransactionItemAllocation.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "sell_price_cents": self.sell_price_cents,
            "line_total_cents": self.line_total_cents,
            "buy_price_total_cents": self.buy_price_total_cents,
        }


class TransactionItemAllocation(db.Model):
    """Which receiving lot supplied how many units of a transaction line, at what cost."""
    __tablename__ = "transaction_item_allocations"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_item_allocations_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_item_id = db.Column(
        db.Integer, db.ForeignKey("transaction_items.id"), nullable=False, index=True
    )
    batch_id = db.Column(db.Integer, db.ForeignKey("inventory_batches.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    batch = db.relationship("InventoryBatch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_item_id": self.transaction_item_id,
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
        }
