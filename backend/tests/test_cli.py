# Overview: Pytest coverage for the Flask CLI command groups.

from stockpos.models import InventoryBatch, Product, StockOpname, StockTransfer, User, Warehouse


def _warehouse_id(db_session, code):
    return db_session.query(Warehouse).filter_by(code=code).one().id


class TestSystemCommands:
    def test_seed_demo_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "seed-demo"])
        second = runner.invoke(args=["system", "seed-demo"])

        assert first.exit_code == 0, first.output
        assert "DONE" in first.output
        assert second.exit_code == 0
        assert "already exists" in second.output
        assert db_session.query(Warehouse).count() == 2
        assert db_session.query(User).count() == 3
        assert db_session.query(Product).count() == 2

    def test_reset_requires_confirmation(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "reset-db"])
        assert result.exit_code == 1
        assert "FAIL" in result.output


class TestStockCommands:
    def test_receive_transfer_and_inspect(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])
        main_id = _warehouse_id(db_session, "MAIN")
        branch_id = _warehouse_id(db_session, "BRANCH")

        received = runner.invoke(args=[
            "stock", "receive", "--user", "gudang", "--product", "SKU-001",
            "--warehouse", str(main_id), "--quantity", "10", "--unit-cost", "1500",
        ])
        assert received.exit_code == 0, received.output
        assert received.output.startswith("PASS Batch")

        moved = runner.invoke(args=[
            "stock", "transfer", "--user", "gudang", "--product", "SKU-001",
            "--from", str(main_id), "--to", str(branch_id), "--quantity", "4",
        ])
        assert moved.exit_code == 0, moved.output
        assert "(cost 6000)" in moved.output
        assert db_session.query(StockTransfer).count() == 1

        on_hand = runner.invoke(args=["stock", "on-hand", "--product", "SKU-001", "--warehouse", str(main_id)])
        assert "6 on hand" in on_hand.output

        batches = runner.invoke(args=["stock", "batches", "--product", "SKU-001", "--all"])
        assert batches.exit_code == 0
        assert "TRANSFER" in batches.output

        movements = runner.invoke(args=["stock", "movements", "--product", "SKU-001"])
        assert "transfer_in" in movements.output
        assert "transfer_out" in movements.output

    def test_opname_reports_difference(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])
        main_id = _warehouse_id(db_session, "MAIN")
        runner.invoke(args=[
            "stock", "receive", "--user", "admin", "--product", "SKU-002",
            "--warehouse", str(main_id), "--quantity", "5", "--unit-cost", "800",
        ])

        result = runner.invoke(args=[
            "stock", "opname", "--user", "gudang", "--product", "SKU-002",
            "--warehouse", str(main_id), "--actual", "3", "--notes", "shelf count",
        ])

        assert result.exit_code == 0, result.output
        assert "difference -2" in result.output
        assert db_session.query(StockOpname).count() == 1
        assert db_session.query(InventoryBatch).one().quantity_remaining == 5

    def test_low_stock_lists_unstocked_products(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])

        result = runner.invoke(args=["stock", "low"])

        assert "SKU-001" in result.output
        assert "SKU-002" in result.output

    def test_ledger_errors_fail_cleanly(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])
        main_id = _warehouse_id(db_session, "MAIN")

        result = runner.invoke(args=[
            "stock", "transfer", "--user", "admin", "--product", "SKU-001",
            "--from", str(main_id), "--to", str(_warehouse_id(db_session, "BRANCH")), "--quantity", "1",
        ])

        assert result.exit_code == 1
        assert "FAIL Insufficient stock for Kopi Bubuk 200g" in result.output

    def test_cashier_cannot_receive_via_cli(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])
        branch_id = _warehouse_id(db_session, "BRANCH")

        result = runner.invoke(args=[
            "stock", "receive", "--user", "kasir", "--product", "SKU-001",
            "--warehouse", str(branch_id), "--quantity", "1", "--unit-cost", "1",
        ])

        assert result.exit_code == 1
        assert "FAIL Permission denied" in result.output

    def test_unknown_user(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "stock", "receive", "--user", "ghost", "--product", "SKU-001",
            "--warehouse", "1", "--quantity", "1", "--unit-cost", "1",
        ])
        assert result.exit_code == 1
        assert "FAIL User 'ghost' not found" in result.output
