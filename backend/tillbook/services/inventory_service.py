# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory ledger: stock on hand per (product, location).

Invariants:
- InventoryRecord.quantity never goes negative. debit() is a single
  conditional UPDATE (quantity = quantity - q WHERE id = :id AND
  quantity >= q); an affected-row count other than 1 means the stock was
  not there, whatever an earlier read said.
- One record per (product, location_key).

Transactions:
- Functions here flush but never commit. Checkout and reversal wrap every
  debit/credit of one cart in a single database transaction, so a failed
  line undoes the lines before it.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStockError, NoInventoryRecordError, ValidationError
from ..models import InventoryRecord, Product
from tillbook.time_utils import utcnow
from .locations import Location

MAX_LINE_QUANTITY = 1_000_000


def _require_positive(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer", details={"quantity": quantity})
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError(
            f"quantity must be at most {MAX_LINE_QUANTITY}",
            details={"quantity": str(quantity)},
        )
    return quantity


def find_record(product_id: int, location: Location) -> InventoryRecord | None:
    return (
        db.session.query(InventoryRecord)
        .filter_by(product_id=product_id, location_key=location.key)
        .first()
    )


def _resolve_record(product_id: int, location: Location, record_id: int | None) -> InventoryRecord:
    """
    Find the record to mutate.

    When record_id is given (a line's original stock row) it must belong to
    the product; otherwise look up by (product, location).
    """
    if record_id is not None:
        record = db.session.get(InventoryRecord, record_id)
        if record is None or record.product_id != product_id:
            raise NoInventoryRecordError(product_id, location.key, inventory_id=record_id)
        return record

    record = find_record(product_id, location)
    if record is None:
        raise NoInventoryRecordError(product_id, location.key)
    return record


def get_available(product_id: int, location: Location) -> int:
    """Current stock; 0 when the product has no record at the location."""
    quantity = (
        db.session.query(InventoryRecord.quantity)
        .filter_by(product_id=product_id, location_key=location.key)
        .scalar()
    )
    return int(quantity or 0)


def _current_quantity(record_id: int) -> int:
    quantity = (
        db.session.query(InventoryRecord.quantity)
        .filter(InventoryRecord.id == record_id)
        .scalar()
    )
    return int(quantity or 0)


def debit(
    product_id: int,
    location: Location,
    quantity: int,
    *,
    record_id: int | None = None,
    line: int | None = None,
) -> InventoryRecord:
    """
    Decrement stock by quantity.

    Raises InsufficientStockError when the conditional update matches no
    row; the record is left untouched in that case.
    """
    quantity = _require_positive(quantity)
    record = _resolve_record(product_id, location, record_id)

    stmt = (
        update(InventoryRecord)
        .where(
            InventoryRecord.id == record.id,
            InventoryRecord.quantity >= quantity,
        )
        .values(
            quantity=InventoryRecord.quantity - quantity,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != 1:
        raise InsufficientStockError(
            product_id=product_id,
            requested=quantity,
            available=_current_quantity(record.id),
            line=line,
        )

    db.session.refresh(record)
    return record


def credit(
    product_id: int,
    location: Location,
    quantity: int,
    *,
    record_id: int | None = None,
) -> InventoryRecord:
    """Increment stock by quantity (reversal of a debit)."""
    quantity = _require_positive(quantity)
    record = _resolve_record(product_id, location, record_id)

    stmt = (
        update(InventoryRecord)
        .where(InventoryRecord.id == record.id)
        .values(
            quantity=InventoryRecord.quantity + quantity,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    db.session.execute(stmt)

    db.session.refresh(record)
    return record


def list_low_stock(location: Location | None = None) -> list[InventoryRecord]:
    """Records at or below their product's min_stock threshold, lowest first."""
    query = (
        db.session.query(InventoryRecord)
        .join(Product, Product.id == InventoryRecord.product_id)
        .filter(Product.is_active.is_(True))
        .filter(InventoryRecord.quantity <= Product.min_stock)
    )
    if location is not None:
        query = query.filter(InventoryRecord.location_key == location.key)

    return query.order_by(InventoryRecord.quantity.asc(), InventoryRecord.id.asc()).all()
