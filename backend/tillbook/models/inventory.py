from __future__ import annotations

from ..extensions import db
from tillbook.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    Stock on hand for one product at one location.

    LOCATION: store_id is NULL for distribution-center stock. location_key
    ("STORE:<id>" or "DC") carries the uniqueness constraint because SQL
    treats NULL store ids as distinct.

    INVARIANT: quantity >= 0. Sales never read-then-write this column; they
    use a conditional UPDATE (see inventory_service.debit).
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "location_key", name="uq_inventory_product_location"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.Index("ix_inventory_location_key", "location_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    location_type = db.Column(db.String(10), nullable=False, default="STORE")  # STORE, DC
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    location_key = db.Column(db.String(32), nullable=False)

    # Optional sourcing metadata
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory_records", lazy=True))
    store = db.relationship("Store", backref=db.backref("inventory_records", lazy=True))
    supplier = db.relationship("Supplier")

    def __repr__(self) -> str:
        return f"<InventoryRecord id={self.id} product_id={self.product_id} location={self.location_key} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "location_type": self.location_type,
            "store_id": self.store_id,
            "location_key": self.location_key,
            "supplier_id": self.supplier_id,
            "batch_number": self.batch_number,
            "updated_at": to_utc_z(self.updated_at),
        }
