from __future__ import annotations

from ..extensions import db
from tillbook.time_utils import to_utc_z


class CustomerProfile(db.Model):
    """
    Customer looked up at the register by phone number.

    Optional on a sale; linking one lets receipts and purchase history be
    retrieved per customer.
    """
    __tablename__ = "customer_profiles"
    __table_args__ = (
        db.UniqueConstraint("phone_number", name="uq_customer_profiles_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    pet_type = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone_number": self.phone_number,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "pet_type": self.pet_type,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
