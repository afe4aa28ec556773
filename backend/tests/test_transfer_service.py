# Overview: Pytest coverage for warehouse transfers that carry cost basis along.

import pytest
from sqlalchemy.exc import OperationalError

from stockpos.models import InventoryBatch, StockMovement, StockTransfer
from stockpos.models.inventory import BATCH_SOURCE_TRANSFER, MOVEMENT_TRANSFER_IN, MOVEMENT_TRANSFER_OUT
from stockpos.services import inventory_service, transfer_service
from stockpos.services.checkout_service import checkout
from stockpos.services.transfer_service import get_transfer_summary, transfer_movements, transfer_stock
from stockpos.validation import InsufficientStock, InvalidInput, StoreFailure, Unauthorized


class TestTransferStock:
    def test_cost_basis_follows_each_lot(
        self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive, ledger_balance
    ):
        cheap = receive(coffee, main_warehouse, 5, 1000, days_ago=5)
        dear = receive(coffee, main_warehouse, 10, 1200, days_ago=2)

        transfer = transfer_stock(
            admin,
            product_id=coffee.id,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=branch_warehouse.id,
            quantity=8,
            note="restock shop",
        )

        assert transfer.quantity == 8
        assert transfer.total_cost_cents == 5 * 1000 + 3 * 1200
        assert transfer.user_id == admin.user_id

        arrived = inventory_service.list_batches(product_id=coffee.id, warehouse_id=branch_warehouse.id)
        assert [(b.original_quantity, b.unit_cost_cents, b.source_batch_id) for b in arrived] == [
            (5, 1000, cheap.id),
            (3, 1200, dear.id),
        ]
        assert all(b.source_type == BATCH_SOURCE_TRANSFER for b in arrived)
        assert all(b.quantity_remaining == b.original_quantity for b in arrived)

        assert db_session.get(InventoryBatch, cheap.id).quantity_remaining == 0
        assert db_session.get(InventoryBatch, dear.id).quantity_remaining == 7

        # Units and value are conserved across the two warehouses
        assert inventory_service.get_stock_on_hand(coffee.id) == 15
        assert inventory_service.get_inventory_value_cents(coffee.id) == 5 * 1000 + 10 * 1200

        assert ledger_balance(coffee.id, main_warehouse.id) == (7, 7)
        assert ledger_balance(coffee.id, branch_warehouse.id) == (8, 8)

    def test_writes_paired_movements(self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive):
        receive(coffee, main_warehouse, 4, 500)

        transfer = transfer_stock(
            admin,
            product_id=coffee.id,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=branch_warehouse.id,
            quantity=4,
        )

        moves = transfer_movements(transfer.id)
        assert [(m.type, m.warehouse_id, m.quantity) for m in moves] == [
            (MOVEMENT_TRANSFER_OUT, main_warehouse.id, -4),
            (MOVEMENT_TRANSFER_IN, branch_warehouse.id, 4),
        ]

    def test_destination_sale_uses_transferred_cost(
        self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive
    ):
        receive(coffee, branch_warehouse, 2, 900, days_ago=10)
        receive(coffee, main_warehouse, 5, 1000, days_ago=3)
        transfer_stock(
            admin,
            product_id=coffee.id,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=branch_warehouse.id,
            quantity=5,
        )

        txn = checkout(admin, warehouse_id=branch_warehouse.id, lines=[{"product_id": coffee.id, "quantity": 4}])

        # The older local lot goes first, then the transferred lot at its original cost
        assert txn.total_cogs_cents == 2 * 900 + 2 * 1000

    def test_warehouse_staff_transfers_out_of_own_warehouse(
        self, db_session, gudang, main_warehouse, branch_warehouse, coffee, receive
    ):
        receive(coffee, main_warehouse, 3, 100)
        transfer = transfer_stock(
            gudang,
            product_id=coffee.id,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=branch_warehouse.id,
            quantity=3,
        )
        assert transfer.from_warehouse_id == main_warehouse.id

    def test_summary_lists_destination_batches(
        self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive
    ):
        receive(coffee, main_warehouse, 2, 100, days_ago=2)
        receive(coffee, main_warehouse, 2, 200, days_ago=1)
        transfer = transfer_stock(
            admin,
            product_id=coffee.id,
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=branch_warehouse.id,
            quantity=3,
        )

        summary = get_transfer_summary(transfer.id)

        assert summary["total_cost_cents"] == 400
        assert [b["unit_cost_cents"] for b in summary["destination_batches"]] == [100, 200]
        assert all(b["warehouse_id"] == branch_warehouse.id for b in summary["destination_batches"])


class TestTransferFailures:
    def test_same_warehouse_rejected(self, db_session, admin, main_warehouse, coffee, receive):
        receive(coffee, main_warehouse, 3, 100)
        with pytest.raises(InvalidInput, match="same warehouse"):
            transfer_stock(
                admin,
                product_id=coffee.id,
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=main_warehouse.id,
                quantity=1,
            )

    def test_insufficient_source_moves_nothing(
        self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive
    ):
        batch = receive(coffee, main_warehouse, 3, 100)

        with pytest.raises(InsufficientStock):
            transfer_stock(
                admin,
                product_id=coffee.id,
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=branch_warehouse.id,
                quantity=4,
            )

        assert db_session.get(InventoryBatch, batch.id).quantity_remaining == 3
        assert db_session.query(StockTransfer).count() == 0
        assert inventory_service.get_stock_on_hand(coffee.id, branch_warehouse.id) == 0

    def test_unknown_destination(self, db_session, admin, main_warehouse, coffee, receive):
        receive(coffee, main_warehouse, 3, 100)
        with pytest.raises(InvalidInput, match="not found"):
            transfer_stock(
                admin,
                product_id=coffee.id,
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=99999,
                quantity=1,
            )
        assert inventory_service.get_stock_on_hand(coffee.id, main_warehouse.id) == 3

    def test_store_failure_mid_transfer_rolls_back(
        self, db_session, admin, main_warehouse, branch_warehouse, coffee, receive, monkeypatch
    ):
        """If the transfer record cannot be completed the source keeps its stock."""
        batch = receive(coffee, main_warehouse, 5, 100)
        movements_before = db_session.query(StockMovement).count()

        def broken_append(**kwargs):
            raise OperationalError("INSERT INTO stock_movements", {}, Exception("disk I/O error"))

        monkeypatch.setattr(transfer_service, "append_movement", broken_append)

        with pytest.raises(StoreFailure):
            transfer_stock(
                admin,
                product_id=coffee.id,
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=branch_warehouse.id,
                quantity=2,
            )

        assert db_session.get(InventoryBatch, batch.id).quantity_remaining == 5
        assert db_session.query(StockTransfer).count() == 0
        assert db_session.query(InventoryBatch).filter_by(warehouse_id=branch_warehouse.id).count() == 0
        assert db_session.query(StockMovement).count() == movements_before


class TestTransferAuthorization:
    def test_cashier_cannot_transfer(self, db_session, kasir, main_warehouse, branch_warehouse, coffee, receive):
        receive(coffee, main_warehouse, 3, 100)
        with pytest.raises(Unauthorized):
            transfer_stock(
                kasir,
                product_id=coffee.id,
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=branch_warehouse.id,
                quantity=1,
            )

    def test_warehouse_staff_cannot_pull_from_other_warehouse(
        self, db_session, gudang, main_warehouse, branch_warehouse, coffee, receive
    ):
        receive(coffee, branch_warehouse, 3, 100)
        with pytest.raises(Unauthorized):
            transfer_stock(
                gudang,
                product_id=coffee.id,
                from_warehouse_id=branch_warehouse.id,
                to_warehouse_id=main_warehouse.id,
                quantity=1,
            )
        assert inventory_service.get_stock_on_hand(coffee.id, branch_warehouse.id) == 3


def test_transfer_keeps_source_cost_not_destination_cost(
    db_session, admin, main_warehouse, branch_warehouse, coffee, receive
):
    """The destination already holds the product at another cost; the new lot keeps the source cost."""
    receive(coffee, branch_warehouse, 10, 1500)
    source = receive(coffee, main_warehouse, 5, 1000)

    transfer_stock(
        admin,
        product_id=coffee.id,
        from_warehouse_id=main_warehouse.id,
        to_warehouse_id=branch_warehouse.id,
        quantity=3,
    )

    [new_lot] = db_session.query(InventoryBatch).filter_by(source_batch_id=source.id).all()
    assert new_lot.warehouse_id == branch_warehouse.id
    assert new_lot.unit_cost_cents == 1000
    assert new_lot.unit_cost_cents != coffee.sell_price_cents
