from __future__ import annotations

from ..extensions import db
from tillbook.time_utils import to_utc_z


class Store(db.Model):
    """
    Physical storefront.

    Distribution-center stock is not a store: it lives in inventory rows
    with store_id=NULL and location_key="DC".
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_stores_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, index=True)

    # Optional short code printed on invoices (defaults to STR{id:03d})
    invoice_prefix = db.Column(db.String(20), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "invoice_prefix": self.invoice_prefix,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
