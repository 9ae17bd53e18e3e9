# Overview: Error taxonomy for the sale core; routes map these onto HTTP responses.

from __future__ import annotations


class SaleError(Exception):
    """Base class for sale, inventory and reversal errors."""

    kind = "sale_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind, "details": self.details}


class ValidationError(SaleError):
    """400-level input problem."""

    kind = "validation_error"


class NotFoundError(SaleError):
    """Referenced row (transaction, store, product, customer) does not exist."""

    kind = "not_found"
    status_code = 404


class EmptyCartError(SaleError):
    kind = "empty_cart"

    def __init__(self, message: str = "Cart has no items"):
        super().__init__(message)


class NoInventoryRecordError(SaleError):
    """No stock row exists for the product at the selling location."""

    kind = "no_inventory_record"
    status_code = 404

    def __init__(self, product_id: int, location_key: str, inventory_id: int | None = None):
        details = {"product_id": product_id, "location": location_key}
        if inventory_id is not None:
            details["inventory_id"] = inventory_id
        super().__init__(
            f"No inventory record for product {product_id} at {location_key}",
            details=details,
        )
        self.product_id = product_id
        self.location_key = location_key


class InsufficientStockError(SaleError):
    """
    Conditional debit affected no rows.

    Carries enough detail for the register to tell the cashier which
    product is short and by how much.
    """

    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: int, line: int | None = None):
        details = {
            "product_id": product_id,
            "requested": requested,
            "available": available,
            "shortfall": requested - available,
        }
        if line is not None:
            details["line"] = line
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details=details,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class InvalidStateTransitionError(SaleError):
    kind = "invalid_state_transition"
    status_code = 409

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Cannot move transaction from {from_status} to {to_status}",
            details={"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class InvalidRefundAmountError(SaleError):
    kind = "invalid_refund_amount"


class StorageError(SaleError):
    """Transient persistence failure; safe for the caller to resubmit."""

    kind = "storage_error"
    status_code = 503
