# Overview: Role and warehouse scoping checks run before any stock logic.

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import User
from ..validation import Unauthorized


ROLE_SUPERADMIN = "superadmin"
ROLE_WAREHOUSE = "gudang"
ROLE_CASHIER = "kasir"

ROLES = (ROLE_SUPERADMIN, ROLE_WAREHOUSE, ROLE_CASHIER)

# Permission codes
RECEIVE_STOCK = "RECEIVE_STOCK"
CHECKOUT = "CHECKOUT"
TRANSFER_STOCK = "TRANSFER_STOCK"
RECORD_OPNAME = "RECORD_OPNAME"
CORRECT_BATCH = "CORRECT_BATCH"

ROLE_PERMISSIONS = {
    ROLE_SUPERADMIN: {
        RECEIVE_STOCK,
        CHECKOUT,
        TRANSFER_STOCK,
        RECORD_OPNAME,
        CORRECT_BATCH,
    },
    ROLE_WAREHOUSE: {
        RECEIVE_STOCK,
        TRANSFER_STOCK,
        RECORD_OPNAME,
    },
    ROLE_CASHIER: {
        CHECKOUT,
    },
}


@dataclass(frozen=True)
class Actor:
    """
    The acting user as vouched for by the identity provider.

    warehouse_id is the single warehouse a non-admin user is pinned to; the
    ledger trusts it as given and only compares it with the warehouse an
    operation targets.
    """
    user_id: int
    role: str
    warehouse_id: int | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN


def actor_for_user(user_id: int) -> Actor:
    """Build an Actor from the users table. Raises Unauthorized for unknown or inactive users."""
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise Unauthorized("Unknown or inactive user")
    return Actor(user_id=user.id, role=user.role, warehouse_id=user.warehouse_id)


def has_permission(actor: Actor, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(actor.role, set())


def require_permission(actor: Actor | None, permission_code: str) -> Actor:
    if actor is None:
        raise Unauthorized("Authentication required")
    if actor.role not in ROLE_PERMISSIONS:
        raise Unauthorized(f"Unknown role: {actor.role}")
    if not has_permission(actor, permission_code):
        raise Unauthorized(
            "Permission denied",
            details={"required_permission": permission_code, "role": actor.role},
        )
    return actor


def require_warehouse_access(actor: Actor | None, warehouse_id: int, permission_code: str) -> Actor:
    """
    Require permission_code and, for non-admin roles, that warehouse_id is the
    actor's home warehouse.
    """
    actor = require_permission(actor, permission_code)
    if actor.is_superadmin:
        return actor
    if actor.warehouse_id is None:
        raise Unauthorized("No warehouse assigned")
    if actor.warehouse_id != warehouse_id:
        raise Unauthorized(
            "Warehouse not accessible",
            details={"warehouse_id": warehouse_id, "assigned_warehouse_id": actor.warehouse_id},
        )
    return actor
