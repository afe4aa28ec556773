"""Initial schema: warehouses, catalog, batches, movements, sales, transfers, opnames

Revision ID: a0c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a0c1e2d3f4b5"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name="created_at"):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP"))


def upgrade():
    # Master data
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=True),
        _timestamp(),
        sa.UniqueConstraint("name", name="uq_warehouses_name"),
        sa.UniqueConstraint("code", name="uq_warehouses_code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sell_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
        _timestamp("updated_at"),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sa.CheckConstraint("sell_price_cents >= 0", name="ck_products_sell_price_nonneg"),
        sa.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_name", "products", ["name"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        _timestamp(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_customers_name", "customers", ["name"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_warehouse_id", "users", ["warehouse_id"], unique=False)

    # Stock ledger
    op.create_table(
        "inventory_batches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("original_quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_remaining", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False, server_default="RECEIVE"),
        sa.Column("source_batch_id", sa.Integer(), nullable=True),
        sa.Column("received_by_user_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _timestamp(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["source_batch_id"], ["inventory_batches.id"]),
        sa.ForeignKeyConstraint(["received_by_user_id"], ["users.id"]),
        sa.CheckConstraint("original_quantity > 0", name="ck_batches_original_positive"),
        sa.CheckConstraint("quantity_remaining >= 0", name="ck_batches_remaining_nonneg"),
        sa.CheckConstraint("quantity_remaining <= original_quantity", name="ck_batches_remaining_le_original"),
        sa.CheckConstraint("unit_cost_cents >= 0", name="ck_batches_cost_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_batches_product_id", "inventory_batches", ["product_id"], unique=False)
    op.create_index("ix_inventory_batches_warehouse_id", "inventory_batches", ["warehouse_id"], unique=False)
    op.create_index("ix_inventory_batches_received_at", "inventory_batches", ["received_at"], unique=False)
    op.create_index(
        "ix_batches_product_warehouse_received",
        "inventory_batches",
        ["product_id", "warehouse_id", "received_at", "id"],
        unique=False,
    )

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=True),
        sa.Column("reference_type", sa.String(length=32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(length=255), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["inventory_batches.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_movements_type", "stock_movements", ["type"], unique=False)
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"], unique=False)
    op.create_index("ix_stock_movements_warehouse_id", "stock_movements", ["warehouse_id"], unique=False)
    op.create_index("ix_stock_movements_batch_id", "stock_movements", ["batch_id"], unique=False)
    op.create_index("ix_stock_movements_user_id", "stock_movements", ["user_id"], unique=False)
    op.create_index("ix_stock_movements_created_at", "stock_movements", ["created_at"], unique=False)
    op.create_index(
        "ix_movements_product_warehouse_created",
        "stock_movements",
        ["product_id", "warehouse_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_movements_reference", "stock_movements", ["reference_type", "reference_id"], unique=False)

    # Sales
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("document_number", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="COMPLETED"),
        sa.Column("total_amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("total_cogs_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.UniqueConstraint("warehouse_id", "document_number", name="uq_transactions_warehouse_docnum"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transactions_warehouse_id", "transactions", ["warehouse_id"], unique=False)
    op.create_index("ix_transactions_customer_id", "transactions", ["customer_id"], unique=False)
    op.create_index("ix_transactions_status", "transactions", ["status"], unique=False)
    op.create_index("ix_transactions_created_by_user_id", "transactions", ["created_by_user_id"], unique=False)
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"], unique=False)
    op.create_index(
        "ix_transactions_warehouse_status_created",
        "transactions",
        ["warehouse_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "transaction_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sell_price_cents", sa.Integer(), nullable=False),
        sa.Column("line_total_cents", sa.BigInteger(), nullable=False),
        sa.Column("buy_price_total_cents", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.CheckConstraint("quantity > 0", name="ck_transaction_items_qty_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transaction_items_transaction_id", "transaction_items", ["transaction_id"], unique=False)
    op.create_index("ix_transaction_items_product_id", "transaction_items", ["product_id"], unique=False)

    op.create_table(
        "transaction_item_allocations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_item_id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["transaction_item_id"], ["transaction_items.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["inventory_batches.id"]),
        sa.CheckConstraint("quantity > 0", name="ck_item_allocations_qty_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_transaction_item_allocations_transaction_item_id",
        "transaction_item_allocations",
        ["transaction_item_id"],
        unique=False,
    )
    op.create_index(
        "ix_transaction_item_allocations_batch_id",
        "transaction_item_allocations",
        ["batch_id"],
        unique=False,
    )

    # Transfers and counts
    op.create_table(
        "stock_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("from_warehouse_id", sa.Integer(), nullable=False),
        sa.Column("to_warehouse_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_cost_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["from_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["to_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.CheckConstraint("quantity > 0", name="ck_transfers_qty_positive"),
        sa.CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_transfers_distinct_warehouses"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_transfers_product_id", "stock_transfers", ["product_id"], unique=False)
    op.create_index("ix_stock_transfers_from_warehouse_id", "stock_transfers", ["from_warehouse_id"], unique=False)
    op.create_index("ix_stock_transfers_to_warehouse_id", "stock_transfers", ["to_warehouse_id"], unique=False)
    op.create_index("ix_stock_transfers_user_id", "stock_transfers", ["user_id"], unique=False)
    op.create_index("ix_stock_transfers_created_at", "stock_transfers", ["created_at"], unique=False)
    op.create_index("ix_transfers_product_created", "stock_transfers", ["product_id", "created_at"], unique=False)

    op.create_table(
        "stock_opnames",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("system_stock", sa.Integer(), nullable=False),
        sa.Column("actual_stock", sa.Integer(), nullable=False),
        sa.Column("difference", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.CheckConstraint("actual_stock >= 0", name="ck_opnames_actual_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_opnames_warehouse_id", "stock_opnames", ["warehouse_id"], unique=False)
    op.create_index("ix_stock_opnames_product_id", "stock_opnames", ["product_id"], unique=False)
    op.create_index("ix_stock_opnames_user_id", "stock_opnames", ["user_id"], unique=False)
    op.create_index("ix_stock_opnames_created_at", "stock_opnames", ["created_at"], unique=False)
    op.create_index(
        "ix_opnames_warehouse_product_created",
        "stock_opnames",
        ["warehouse_id", "product_id", "created_at"],
        unique=False,
    )

    # Document sequences
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.UniqueConstraint("warehouse_id", "document_type", name="uq_doc_sequences_warehouse_type"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_warehouse_id", "document_sequences", ["warehouse_id"], unique=False)
    op.create_index("ix_document_sequences_document_type", "document_sequences", ["document_type"], unique=False)


def downgrade():
    op.drop_table("document_sequences")
    op.drop_table("stock_opnames")
    op.drop_table("stock_transfers")
    op.drop_table("transaction_item_allocations")
    op.drop_table("transaction_items")
    op.drop_table("transactions")
    op.drop_table("stock_movements")
    op.drop_table("inventory_batches")
    op.drop_table("users")
    op.drop_table("customers")
    op.drop_table("products")
    op.drop_table("warehouses")
