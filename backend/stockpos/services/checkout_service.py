"""
Checkout Service - atomic point-of-sale posting

WHY: A sale either happens completely or not at all. The transaction header,
every item, every FIFO batch decrement and every movement row are written in
one DB transaction; a short line anywhere in the cart rolls all of it back.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Transaction, TransactionItem, TransactionItemAllocation
from ..models.inventory import MOVEMENT_OUT
from ..models.sales import TRANSACTION_STATUS_COMPLETED
from ..validation import (
    InsufficientStock,
    InvalidInput,
    require_id,
    require_positive_quantity,
    require_price_cents,
)
from .access_service import Actor, CHECKOUT, require_warehouse_access
from .concurrency import run_atomic
from .document_service import next_document_number
from .fifo_service import allocate, allocation_cost, get_available_batches
from .inventory_service import ensure_product, ensure_warehouse
from .movement_service import append_movement


def _normalize_lines(lines) -> list[dict]:
    if not lines:
        raise InvalidInput("Cart is empty")

    normalized = []
    for index, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise InvalidInput(f"Line {index} is malformed")
        product_id = require_id(line.get("product_id"), f"lines[{index}].product_id")
        quantity = require_positive_quantity(line.get("quantity"), f"lines[{index}].quantity")
        sell_price = line.get("sell_price_cents")
        if sell_price is not None:
            sell_price = require_price_cents(sell_price, f"lines[{index}].sell_price_cents")
        normalized.append({
            "product_id": product_id,
            "quantity": quantity,
            "sell_price_cents": sell_price,
        })
    return normalized


def _validate_on_hand(warehouse_id: int, lines: list[dict], products: dict) -> None:
    """
    Compare per-product cart totals with locked stock and report every short
    product in one failure, so the cashier can fix the whole cart at once.
    """
    product_totals: dict[int, int] = {}
    for line in lines:
        product_totals[line["product_id"]] = product_totals.get(line["product_id"], 0) + line["quantity"]

    insufficient = []
    for product_id, qty in product_totals.items():
        batches = get_available_batches(product_id, warehouse_id, lock=True)
        available = sum(b.quantity_remaining for b in batches)
        if available < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "available": available,
                "requested": qty,
            })

    if insufficient:
        if len(insufficient) == 1:
            item = insufficient[0]
            raise InsufficientStock(
                product_id=item["product_id"],
                product_name=item["product_name"],
                available=item["available"],
                requested=item["requested"],
            )
        raise InsufficientStock(items=insufficient)


def checkout(
    actor: Actor,
    *,
    warehouse_id,
    lines,
    customer_id=None,
) -> Transaction:
    """
    Sell a cart from one warehouse.

    Args:
        actor: Acting user (superadmin, or cashier of warehouse_id)
        warehouse_id: Selling warehouse
        lines: [{"product_id", "quantity", "sell_price_cents"?}, ...]; a line
            without sell_price_cents is charged the product's list price
        customer_id: Optional customer

    Returns:
        Transaction: The completed transaction (items and allocations attached)

    Raises:
        Unauthorized: Actor may not sell from this warehouse
        InvalidInput: Empty cart, bad quantity/price, unknown product/customer
        InsufficientStock: At least one product is short; nothing was written
    """
    warehouse_id = require_id(warehouse_id, "warehouse_id")
    require_warehouse_access(actor, warehouse_id, CHECKOUT)

    lines = _normalize_lines(lines)
    if customer_id is not None:
        customer_id = require_id(customer_id, "customer_id")

    def _op():
        ensure_warehouse(warehouse_id)
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise InvalidInput(f"Customer {customer_id} not found")

        products = {}
        for line in lines:
            if line["product_id"] not in products:
                products[line["product_id"]] = ensure_product(line["product_id"], require_active=True)

        priced = []
        for line in lines:
            price = line["sell_price_cents"]
            if price is None:
                price = products[line["product_id"]].sell_price_cents
            priced.append({**line, "sell_price_cents": price})

        _validate_on_hand(warehouse_id, priced, products)

        total_amount = sum(line["quantity"] * line["sell_price_cents"] for line in priced)

        txn = Transaction(
            warehouse_id=warehouse_id,
            customer_id=customer_id,
            document_number=next_document_number(
                warehouse_id=warehouse_id,
                document_type="SALE",
                prefix="S",
            ),
            status=TRANSACTION_STATUS_COMPLETED,
            total_amount_cents=total_amount,
            total_cogs_cents=0,
            created_by_user_id=actor.user_id,
        )
        db.session.add(txn)
        db.session.flush()  # Get ID

        total_cogs = 0
        for line in priced:
            allocations = allocate(line["product_id"], warehouse_id, line["quantity"])
            line_cogs = allocation_cost(allocations)
            total_cogs += line_cogs

            item = TransactionItem(
                transaction_id=txn.id,
                product_id=line["product_id"],
                quantity=line["quantity"],
                sell_price_cents=line["sell_price_cents"],
                line_total_cents=line["quantity"] * line["sell_price_cents"],
                buy_price_total_cents=line_cogs,
            )
            db.session.add(item)
            db.session.flush()

            for allocation in allocations:
                db.session.add(TransactionItemAllocation(
                    transaction_item_id=item.id,
                    batch_id=allocation.batch_id,
                    quantity=allocation.quantity,
                    unit_cost_cents=allocation.unit_cost_cents,
                ))
                append_movement(
                    movement_type=MOVEMENT_OUT,
                    product_id=line["product_id"],
                    warehouse_id=warehouse_id,
                    batch_id=allocation.batch_id,
                    quantity=-allocation.quantity,
                    unit_cost_cents=allocation.unit_cost_cents,
                    reference_type="transaction",
                    reference_id=txn.id,
                    user_id=actor.user_id,
                    notes=f"Sale {txn.document_number}",
                )

        txn.total_cogs_cents = total_cogs
        db.session.flush()
        return txn

    try:
        txn = run_atomic(_op)
    except InsufficientStock as exc:
        current_app.logger.warning("Checkout rejected in warehouse %s: %s", warehouse_id, exc.message)
        raise

    current_app.logger.info(
        "Checkout %s completed in warehouse %d: %d lines, total %d cents",
        txn.document_number, warehouse_id, len(lines), txn.total_amount_cents,
    )
    return txn


def get_transaction_summary(transaction_id: int) -> dict:
    """
    Transaction with items and the batches each item drew from.

    Raises:
        InvalidInput: Transaction not found
    """
    txn = db.session.get(Transaction, transaction_id)
    if txn is None:
        raise InvalidInput(f"Transaction {transaction_id} not found")

    return {
        **txn.to_dict(),
        "items": [
            {
                **item.to_dict(),
                "allocations": [a.to_dict() for a in item.allocations],
            }
            for item in txn.items
        ],
    }
