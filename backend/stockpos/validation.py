from __future__ import annotations

from typing import Any


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Maximum units per batch, line, transfer or count.
# Keeps quantity x price well inside a 64-bit money column.
MAX_QUANTITY = 1_000_000


class LedgerError(Exception):
    """
    Base for every failure the ledger reports to its callers.

    The presentation layer renders to_dict() (toast / error banner); details
    carries structured context such as the short products of a cart.
    """
    code = "LEDGER_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class InvalidInput(LedgerError, ValueError):
    """400-level input problem, rejected before any store mutation."""
    code = "INVALID_INPUT"


class InsufficientStock(LedgerError):
    """Requested quantity exceeds what the open batches hold."""
    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        *,
        product_id: int | None = None,
        product_name: str | None = None,
        available: int = 0,
        requested: int = 0,
        items: list[dict] | None = None,
    ):
        self.product_id = product_id
        self.available = available
        self.requested = requested

        if items:
            names = ", ".join(
                f"{item.get('product_name') or item['product_id']} (available: {item['available']})"
                for item in items
            )
            message = f"Insufficient stock for {names}"
            details = {"items": items}
        else:
            label = product_name or f"product {product_id}"
            message = f"Insufficient stock for {label}; available: {available}, requested: {requested}"
            details = {
                "items": [{
                    "product_id": product_id,
                    "product_name": product_name,
                    "available": available,
                    "requested": requested,
                }]
            }
        super().__init__(message, details=details)


class Unauthorized(LedgerError):
    """Acting user missing, or lacking the role/warehouse needed for the operation."""
    code = "UNAUTHORIZED"


class StoreFailure(LedgerError):
    """Persistence failed; the unit of work was rolled back."""
    code = "STORE_FAILURE"


def require_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: accepts ints and plain digit strings,
    rejects bools, floats, decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidInput(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
        if "e" in stripped.lower() or "." in stripped:
            raise InvalidInput(f"{field} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise InvalidInput(f"{field} must be an integer")
    raise InvalidInput(f"{field} must be an integer")


def require_positive_quantity(value: Any, field: str = "quantity") -> int:
    quantity = require_int(value, field)
    if quantity <= 0:
        raise InvalidInput(f"{field} must be positive")
    if quantity > MAX_QUANTITY:
        raise InvalidInput(f"{field} exceeds maximum of {MAX_QUANTITY}")
    return quantity


def require_non_negative_quantity(value: Any, field: str) -> int:
    quantity = require_int(value, field)
    if quantity < 0:
        raise InvalidInput(f"{field} cannot be negative")
    if quantity > MAX_QUANTITY:
        raise InvalidInput(f"{field} exceeds maximum of {MAX_QUANTITY}")
    return quantity


def require_price_cents(value: Any, field: str = "price_cents") -> int:
    cents = require_int(value, field)
    if cents < 0:
        raise InvalidInput(f"{field} cannot be negative")
    if cents > MAX_PRICE_CENTS:
        raise InvalidInput(f"{field} exceeds maximum of {MAX_PRICE_CENTS}")
    return cents


def require_id(value: Any, field: str) -> int:
    if value is None or value == "":
        raise InvalidInput(f"{field} is required")
    ident = require_int(value, field)
    if ident <= 0:
        raise InvalidInput(f"{field} is invalid")
    return ident


def clean_note(value: Any, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise InvalidInput(f"note exceeds {max_length} characters")
    return text
