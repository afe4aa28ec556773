from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


class User(db.Model):
    """
    Identity record for staff.

    Authentication and sessions are owned by the identity provider; this table
    only carries what the ledger needs: who acted, in which role, and which
    warehouse a non-admin user is pinned to.

    ROLES:
    - superadmin: every warehouse, every operation
    - gudang: warehouse staff (receive, transfer out, opname)
    - kasir: cashier (checkout)
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False)
    full_name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False, index=True)

    # Home warehouse; NULL only for superadmin
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    warehouse = db.relationship("Warehouse", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "warehouse_id": self.warehouse_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
