# Overview: Pytest coverage for role and warehouse authorization.

"""
Authorization Tests

SECURITY TESTS: Prove that each role reaches exactly the operations and
warehouses it is entitled to, and that denial happens before any stock logic.
"""

import pytest

from stockpos.services.access_service import (
    CHECKOUT,
    CORRECT_BATCH,
    RECEIVE_STOCK,
    RECORD_OPNAME,
    ROLE_CASHIER,
    ROLE_SUPERADMIN,
    ROLE_WAREHOUSE,
    TRANSFER_STOCK,
    Actor,
    actor_for_user,
    has_permission,
    require_permission,
    require_warehouse_access,
)
from stockpos.validation import Unauthorized


@pytest.mark.parametrize("role,permission,allowed", [
    (ROLE_SUPERADMIN, RECEIVE_STOCK, True),
    (ROLE_SUPERADMIN, CHECKOUT, True),
    (ROLE_SUPERADMIN, TRANSFER_STOCK, True),
    (ROLE_SUPERADMIN, RECORD_OPNAME, True),
    (ROLE_SUPERADMIN, CORRECT_BATCH, True),
    (ROLE_WAREHOUSE, RECEIVE_STOCK, True),
    (ROLE_WAREHOUSE, TRANSFER_STOCK, True),
    (ROLE_WAREHOUSE, RECORD_OPNAME, True),
    (ROLE_WAREHOUSE, CHECKOUT, False),
    (ROLE_WAREHOUSE, CORRECT_BATCH, False),
    (ROLE_CASHIER, CHECKOUT, True),
    (ROLE_CASHIER, RECEIVE_STOCK, False),
    (ROLE_CASHIER, TRANSFER_STOCK, False),
    (ROLE_CASHIER, RECORD_OPNAME, False),
    (ROLE_CASHIER, CORRECT_BATCH, False),
])
def test_role_permission_matrix(role, permission, allowed):
    assert has_permission(Actor(user_id=1, role=role, warehouse_id=1), permission) is allowed


class TestRequirePermission:
    def test_missing_actor(self):
        with pytest.raises(Unauthorized, match="Authentication required"):
            require_permission(None, CHECKOUT)

    def test_unknown_role(self):
        with pytest.raises(Unauthorized, match="Unknown role"):
            require_permission(Actor(user_id=1, role="owner"), CHECKOUT)

    def test_denial_carries_details(self):
        with pytest.raises(Unauthorized) as exc_info:
            require_permission(Actor(user_id=1, role=ROLE_CASHIER, warehouse_id=1), RECEIVE_STOCK)
        payload = exc_info.value.to_dict()
        assert payload["code"] == "UNAUTHORIZED"
        assert payload["details"] == {"required_permission": RECEIVE_STOCK, "role": ROLE_CASHIER}


class TestRequireWarehouseAccess:
    def test_superadmin_reaches_every_warehouse(self):
        actor = Actor(user_id=1, role=ROLE_SUPERADMIN)
        assert require_warehouse_access(actor, 7, TRANSFER_STOCK) is actor

    def test_pinned_user_in_home_warehouse(self):
        actor = Actor(user_id=2, role=ROLE_CASHIER, warehouse_id=3)
        assert require_warehouse_access(actor, 3, CHECKOUT) is actor

    def test_pinned_user_elsewhere(self):
        actor = Actor(user_id=2, role=ROLE_CASHIER, warehouse_id=3)
        with pytest.raises(Unauthorized, match="not accessible"):
            require_warehouse_access(actor, 4, CHECKOUT)

    def test_non_admin_without_warehouse(self):
        actor = Actor(user_id=2, role=ROLE_WAREHOUSE)
        with pytest.raises(Unauthorized, match="No warehouse"):
            require_warehouse_access(actor, 1, RECEIVE_STOCK)


class TestActorForUser:
    def test_builds_actor_from_user(self, db_session, gudang_user, main_warehouse):
        actor = actor_for_user(gudang_user.id)
        assert actor == Actor(user_id=gudang_user.id, role=ROLE_WAREHOUSE, warehouse_id=main_warehouse.id)
        assert not actor.is_superadmin

    def test_inactive_user_rejected(self, db_session, kasir_user):
        kasir_user.is_active = False
        db_session.commit()
        with pytest.raises(Unauthorized):
            actor_for_user(kasir_user.id)

    def test_unknown_user_rejected(self, db_session):
        with pytest.raises(Unauthorized):
            actor_for_user(99999)
