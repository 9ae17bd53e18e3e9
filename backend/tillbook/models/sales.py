from __future__ import annotations

from ..extensions import db
from tillbook.time_utils import to_utc_z

SALE_STATUSES = ("completed", "cancelled", "refunded", "pending")
PAYMENT_METHODS = ("cash", "card", "digital")


class SalesTransaction(db.Model):
    """
    A completed checkout.

    Created in 'completed' status with its invoice number, line items and a
    'created' action, all in one database transaction. Moves to 'cancelled'
    or 'refunded' exactly once; after that only actions may be appended.

    Amounts are cents. subtotal/tax/total are persisted so receipts never
    have to recompute them.
    """
    __tablename__ = "sales_transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_transactions_invoice_number"),
        db.Index("ix_sales_transactions_store_status_date", "store_id", "status", "transaction_date"),
        db.Index("ix_sales_transactions_location_key", "location_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number printed on the receipt (e.g., "STR001-20241210-0001")
    invoice_number = db.Column(db.String(50), nullable=False)

    # NULL for distribution-center sales
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    location_key = db.Column(db.String(32), nullable=False)
    transaction_type = db.Column(db.String(20), nullable=False)  # STORE_SALE, DC_SALE

    cashier_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_profile_id = db.Column(db.Integer, db.ForeignKey("customer_profiles.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    refunded_amount_cents = db.Column(db.Integer, nullable=True)

    payment_method = db.Column(db.String(20), nullable=False)  # cash, card, digital
    status = db.Column(db.String(20), nullable=False, default="completed", index=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("sales_transactions", lazy=True))
    cashier = db.relationship("User", backref=db.backref("sales_transactions", lazy=True))
    customer_profile = db.relationship("CustomerProfile", backref=db.backref("sales_transactions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<SalesTransaction id={self.id} invoice={self.invoice_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "store_id": self.store_id,
            "location_key": self.location_key,
            "transaction_type": self.transaction_type,
            "cashier_user_id": self.cashier_user_id,
            "customer_profile_id": self.customer_profile_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_amount_cents": self.total_amount_cents,
            "refunded_amount_cents": self.refunded_amount_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesTransactionItem(db.Model):
    """
    One cart line as sold.

    unit_price_cents, line_total_cents and product_name are snapshots taken
    at checkout; inventory_id is the exact stock row that was debited and
    is the row a cancel credits back.
    """
    __tablename__ = "sales_transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship(
        "SalesTransaction",
        backref=db.backref("items", lazy=True, order_by="SalesTransactionItem.id"),
    )
    product = db.relationship("Product")
    inventory_record = db.relationship("InventoryRecord")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_transaction_id": self.sales_transaction_id,
            "product_id": self.product_id,
            "inventory_id": self.inventory_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class SalesTransactionAction(db.Model):
    """
    Append-only audit trail for a sales transaction.

    ACTION TYPES: created, cancelled, refunded
    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "sales_transaction_actions"
    __table_args__ = (
        db.Index("ix_sales_txn_actions_txn_performed", "sales_transaction_id", "performed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)
    action_data = db.Column(db.JSON, nullable=True)
    performed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    performed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship(
        "SalesTransaction",
        backref=db.backref("actions", lazy=True, order_by="SalesTransactionAction.id"),
    )
    performed_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_transaction_id": self.sales_transaction_id,
            "action_type": self.action_type,
            "action_data": self.action_data,
            "performed_by_user_id": self.performed_by_user_id,
            "performed_at": to_utc_z(self.performed_at),
        }


class InvoiceCounter(db.Model):
    """
    Atomic per-location invoice sequence.

    One row per location_key ("STORE:<id>" or "DC"). Only
    invoice_service mutates current_number, and only through a single
    UPDATE ... SET current_number = current_number + 1.
    """
    __tablename__ = "invoice_counters"
    __table_args__ = (
        db.UniqueConstraint("location_key", name="uq_invoice_counters_location_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    counter_type = db.Column(db.String(10), nullable=False)  # STORE, DC
    location_key = db.Column(db.String(32), nullable=False)
    current_number = db.Column(db.Integer, nullable=False, default=0)
    prefix = db.Column(db.String(20), nullable=False)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("invoice_counters", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "counter_type": self.counter_type,
            "location_key": self.location_key,
            "current_number": self.current_number,
            "prefix": self.prefix,
            "last_updated": to_utc_z(self.last_updated),
        }
