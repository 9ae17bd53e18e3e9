"""
Sales Service - checkout of a cart into a persisted sale.

WHY: A sale is one unit of work. Every line's stock debit, the invoice
number, the transaction row, its items and its 'created' action commit
together or not at all. An InsufficientStockError on line 3 leaves lines
1 and 2 untouched in the database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from flask import current_app

from ..extensions import db
from ..errors import (
    EmptyCartError,
    NoInventoryRecordError,
    NotFoundError,
    ValidationError,
)
from ..models import (
    CustomerProfile,
    InventoryRecord,
    Product,
    SalesTransaction,
    SalesTransactionAction,
    SalesTransactionItem,
    Store,
    User,
)
from ..models.sales import PAYMENT_METHODS, SALE_STATUSES
from tillbook.time_utils import utcnow
from . import inventory_service
from .concurrency import begin_write_unit, run_atomic
from .invoice_service import next_invoice_number
from .locations import Location, TRANSACTION_TYPES, location_for_sale

DEFAULT_TAX_RATE_BPS = 1000  # 10%

MAX_PAGE_SIZE = 500

# Signed 64-bit INTEGER column range
MIN_DB_INT = -(2 ** 63)
MAX_DB_INT = 2 ** 63 - 1

INTEGER_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int
    inventory_id: int | None = None


def _pick(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_int(value: Any, field: str, *, positive: bool = False) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str) and INTEGER_RE.fullmatch(value.strip()):
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", details={field: value})
    if not MIN_DB_INT <= value <= MAX_DB_INT:
        raise ValidationError(f"{field} is out of range", details={field: str(value)})
    if positive and value <= 0:
        raise ValidationError(f"{field} must be positive", details={field: value})
    return value


def _as_quantity(value: Any) -> int:
    quantity = _as_int(value, "quantity", positive=True)
    if quantity > inventory_service.MAX_LINE_QUANTITY:
        raise ValidationError(
            f"quantity must be at most {inventory_service.MAX_LINE_QUANTITY}",
            details={"quantity": quantity},
        )
    return quantity


def parse_cart_items(raw_items: Iterable[Any] | None) -> list[CartItem]:
    """
    Normalize cart lines from API payloads or callers.

    Accepts CartItem instances or dicts keyed productId/product_id,
    quantity, inventoryId/inventory_id. An empty cart raises EmptyCartError.
    """
    if not raw_items:
        raise EmptyCartError()

    items: list[CartItem] = []
    for index, raw in enumerate(raw_items, start=1):
        if isinstance(raw, CartItem):
            raw = {"product_id": raw.product_id, "quantity": raw.quantity, "inventory_id": raw.inventory_id}
        if not isinstance(raw, dict):
            raise ValidationError(f"Cart line {index} must be an object", details={"line": index})

        product_id = _pick(raw, "productId", "product_id")
        quantity = _pick(raw, "quantity")
        inventory_id = _pick(raw, "inventoryId", "inventory_id")
        if product_id is None or quantity is None:
            raise ValidationError(
                f"Cart line {index} requires productId and quantity",
                details={"line": index},
            )

        items.append(
            CartItem(
                product_id=_as_int(product_id, "productId"),
                quantity=_as_quantity(quantity),
                inventory_id=_as_int(inventory_id, "inventoryId") if inventory_id is not None else None,
            )
        )
    return items


def normalize_payment_method(payment_method: str | None) -> str:
    method = (payment_method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )
    return method


def compute_tax_cents(subtotal_cents: int, tax_rate_bps: int) -> int:
    """Tax on a subtotal, rounded half-up to the cent."""
    return (subtotal_cents * tax_rate_bps + 5000) // 10000


def compute_totals(lines: Iterable[tuple[int, int]], tax_rate_bps: int) -> tuple[int, int, int]:
    """
    (subtotal, tax, total) in cents for (unit_price_cents, quantity) pairs.

    >>> compute_totals([(1000, 2)], 1000)
    (2000, 200, 2200)
    """
    subtotal = sum(unit_price * quantity for unit_price, quantity in lines)
    tax = compute_tax_cents(subtotal, tax_rate_bps)
    return subtotal, tax, subtotal + tax


def _ensure_references(location: Location, cashier_id: int, customer_profile_id: int | None) -> None:
    if db.session.get(User, cashier_id) is None:
        raise NotFoundError("Cashier not found", details={"cashier_user_id": cashier_id})
    if location.store_id is not None and db.session.get(Store, location.store_id) is None:
        raise NotFoundError("Store not found", details={"store_id": location.store_id})
    if customer_profile_id is not None and db.session.get(CustomerProfile, customer_profile_id) is None:
        raise NotFoundError(
            "Customer profile not found",
            details={"customer_profile_id": customer_profile_id},
        )


def _resolve_lines(items: list[CartItem], location: Location) -> list[tuple[CartItem, InventoryRecord, Product]]:
    """Find every line's stock row and product before anything is debited."""
    resolved = []
    for index, item in enumerate(items, start=1):
        record = inventory_service.find_record(item.product_id, location)
        if record is None:
            raise NoInventoryRecordError(item.product_id, location.key)
        if item.inventory_id is not None and item.inventory_id != record.id:
            raise NoInventoryRecordError(item.product_id, location.key, inventory_id=item.inventory_id)

        product = db.session.get(Product, item.product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": item.product_id, "line": index})
        if not product.is_active:
            raise ValidationError("Product is inactive", details={"product_id": product.id, "line": index})
        if product.price_cents is None:
            raise ValidationError("Product has no price", details={"product_id": product.id, "line": index})

        resolved.append((item, record, product))
    return resolved


def checkout(
    cart_items: Iterable[Any],
    payment_method: str,
    cashier_id: int,
    store_id: int | None = None,
    customer_profile_id: int | None = None,
    *,
    transaction_type: str | None = None,
    tax_rate_bps: int | None = None,
    now: datetime | None = None,
) -> SalesTransaction:
    """
    Turn a cart into a completed, stock-consistent sale.

    store_id=None with transaction_type="DC_SALE" sells from the
    distribution center. Raises EmptyCartError, ValidationError,
    NotFoundError, NoInventoryRecordError, InsufficientStockError or
    StorageError; on any of them nothing has been written.
    """
    items = parse_cart_items(cart_items)
    method = normalize_payment_method(payment_method)
    location = location_for_sale(store_id, transaction_type)
    if customer_profile_id is not None:
        customer_profile_id = _as_int(customer_profile_id, "customerProfileId")
    if tax_rate_bps is None:
        tax_rate_bps = current_app.config.get("TAX_RATE_BPS", DEFAULT_TAX_RATE_BPS)

    def _op() -> SalesTransaction:
        begin_write_unit()
        _ensure_references(location, cashier_id, customer_profile_id)
        resolved = _resolve_lines(items, location)

        for index, (item, record, _product) in enumerate(resolved, start=1):
            inventory_service.debit(
                item.product_id,
                location,
                item.quantity,
                record_id=record.id,
                line=index,
            )

        subtotal, tax, total = compute_totals(
            ((product.price_cents, item.quantity) for item, _record, product in resolved),
            tax_rate_bps,
        )

        occurred_at = now or utcnow()
        invoice_number = next_invoice_number(location, now=occurred_at)

        txn = SalesTransaction(
            invoice_number=invoice_number,
            store_id=location.store_id,
            location_key=location.key,
            transaction_type=location.transaction_type,
            cashier_user_id=cashier_id,
            customer_profile_id=customer_profile_id,
            subtotal_cents=subtotal,
            tax_rate_bps=tax_rate_bps,
            tax_cents=tax,
            total_amount_cents=total,
            payment_method=method,
            status="completed",
            transaction_date=occurred_at,
            created_at=occurred_at,
            updated_at=occurred_at,
        )
        db.session.add(txn)

        for item, record, product in resolved:
            db.session.add(
                SalesTransactionItem(
                    transaction=txn,
                    product_id=product.id,
                    inventory_id=record.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    unit_price_cents=product.price_cents,
                    line_total_cents=product.price_cents * item.quantity,
                )
            )

        db.session.add(
            SalesTransactionAction(
                transaction=txn,
                action_type="created",
                action_data={
                    "invoice_number": invoice_number,
                    "total_amount_cents": total,
                    "line_count": len(resolved),
                },
                performed_by_user_id=cashier_id,
                performed_at=occurred_at,
            )
        )

        db.session.commit()
        return txn

    return run_atomic(_op)


def get_transaction(transaction_id: int) -> SalesTransaction:
    txn = db.session.get(SalesTransaction, transaction_id)
    if txn is None:
        raise NotFoundError("Sales transaction not found", details={"id": transaction_id})
    return txn


def get_transaction_by_invoice(invoice_number: str) -> SalesTransaction:
    txn = db.session.query(SalesTransaction).filter_by(invoice_number=invoice_number).first()
    if txn is None:
        raise NotFoundError("Sales transaction not found", details={"invoice_number": invoice_number})
    return txn


def list_transactions(
    *,
    store_id: int | None = None,
    status: str | None = None,
    transaction_type: str | None = None,
    cashier_user_id: int | None = None,
    customer_profile_id: int | None = None,
    invoice_number: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[SalesTransaction], int]:
    """
    Search sales, newest first.

    invoice_number matches as a prefix, so "STR001-20241210" finds the
    whole day at store 1. Date bounds are inclusive.
    """
    if status is not None and status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(SALE_STATUSES)}")
    if transaction_type is not None and transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}")

    query = db.session.query(SalesTransaction)

    if store_id is not None:
        query = query.filter(SalesTransaction.store_id == store_id)
    if status:
        query = query.filter(SalesTransaction.status == status)
    if transaction_type:
        query = query.filter(SalesTransaction.transaction_type == transaction_type)
    if cashier_user_id is not None:
        query = query.filter(SalesTransaction.cashier_user_id == cashier_user_id)
    if customer_profile_id is not None:
        query = query.filter(SalesTransaction.customer_profile_id == customer_profile_id)
    if invoice_number:
        query = query.filter(SalesTransaction.invoice_number.startswith(invoice_number, autoescape=True))
    if from_date:
        query = query.filter(SalesTransaction.transaction_date >= from_date)
    if to_date:
        query = query.filter(SalesTransaction.transaction_date <= to_date)

    total = query.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > MAX_PAGE_SIZE:
        limit = MAX_PAGE_SIZE

    rows = (
        query.order_by(SalesTransaction.transaction_date.desc(), SalesTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total
