# Overview: Service-layer operations for invoice numbering; encapsulates business logic and database work.

"""
Per-location invoice numbers.

Format: {prefix}-{YYYYMMDD}-{sequence:04d}, e.g. STR001-20241210-0001 or
DC-20241210-0042. The sequence is per location and never resets; the date
is informational.

The increment runs in the caller's database transaction. Checkout draws its
number inside the same unit of work as the stock debits, so a rolled-back
checkout also rolls back its number (no gap). Gaps can still appear if a
caller commits a number and later discards it; they are acceptable,
duplicates are not.
"""

from __future__ import annotations

import re
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..extensions import db
from ..errors import StorageError
from ..models import InvoiceCounter, Store
from tillbook.time_utils import utcnow, business_date
from .locations import Location, location_for

INVOICE_NUMBER_RE = re.compile(r"^(STR\d{3,}|DC|[A-Z0-9]{2,20})-\d{8}-\d{4,}$")


def invoice_prefix_for(location: Location) -> str:
    """Store-configured prefix when set, else STR{id:03d} / DC."""
    if location.store_id is not None:
        store = db.session.get(Store, location.store_id)
        if store is not None and store.invoice_prefix:
            return store.invoice_prefix.upper()
    return location.default_invoice_prefix()


def format_invoice_number(prefix: str, sequence: int, when: datetime | None = None) -> str:
    return f"{prefix}-{business_date(when)}-{sequence:04d}"


def validate_invoice_number(invoice_number: str) -> bool:
    return bool(INVOICE_NUMBER_RE.match(invoice_number or ""))


def _increment(location: Location) -> tuple[int, str] | None:
    stmt = (
        update(InvoiceCounter)
        .where(InvoiceCounter.location_key == location.key)
        .values(
            current_number=InvoiceCounter.current_number + 1,
            last_updated=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None

    row = (
        db.session.query(InvoiceCounter.current_number, InvoiceCounter.prefix)
        .filter_by(location_key=location.key)
        .one()
    )
    return row.current_number, row.prefix


def _create_counter(location: Location) -> tuple[int, str] | None:
    """
    Lazily insert the counter row already at 1.

    Runs in a savepoint so a concurrent creator's unique-key win only
    discards this insert, not the caller's debits.
    """
    prefix = invoice_prefix_for(location)
    try:
        with db.session.begin_nested():
            db.session.add(
                InvoiceCounter(
                    store_id=location.store_id,
                    counter_type=location.counter_type,
                    location_key=location.key,
                    current_number=1,
                    prefix=prefix,
                    last_updated=utcnow(),
                )
            )
    except IntegrityError:
        return None
    return 1, prefix


def next_invoice_number(location: Location, *, now: datetime | None = None) -> str:
    """
    Atomically allocate the next invoice number for a location.

    Does not commit; the caller's commit makes the number durable together
    with whatever it is numbering.
    """
    try:
        allocated = _increment(location)
        if allocated is None:
            allocated = _create_counter(location)
        if allocated is None:
            # Lost the creation race; the row exists now.
            allocated = _increment(location)
        if allocated is None:
            raise StorageError(
                "Invoice counter could not be allocated",
                details={"location": location.key},
            )
    except OperationalError:
        # Lock contention; the caller's retry loop handles it.
        raise
    except SQLAlchemyError as exc:
        raise StorageError(
            "Invoice counter unavailable",
            details={"location": location.key},
        ) from exc

    sequence, prefix = allocated
    return format_invoice_number(prefix, sequence, now)


def get_current_counter(location: Location) -> int:
    current = (
        db.session.query(InvoiceCounter.current_number)
        .filter_by(location_key=location.key)
        .scalar()
    )
    return current or 0


def reset_counter(location: Location, new_value: int = 0) -> InvoiceCounter | None:
    """
    Admin-only: set a location's sequence.

    Lowering the value can re-issue numbers that already exist; the unique
    constraint on sales_transactions.invoice_number will then reject those
    checkouts.
    """
    if new_value < 0:
        raise ValueError("counter value must be >= 0")

    counter = db.session.query(InvoiceCounter).filter_by(location_key=location.key).first()
    if counter is None:
        return None

    counter.current_number = new_value
    counter.last_updated = utcnow()
    db.session.commit()
    return counter


def list_counters() -> list[InvoiceCounter]:
    return (
        db.session.query(InvoiceCounter)
        .order_by(InvoiceCounter.counter_type, InvoiceCounter.store_id)
        .all()
    )


def initialize_store_counter(store_id: int) -> InvoiceCounter:
    """Create a store's counter at 0 ahead of its first sale."""
    location = location_for(store_id)
    counter = db.session.query(InvoiceCounter).filter_by(location_key=location.key).first()
    if counter is not None:
        return counter

    counter = InvoiceCounter(
        store_id=location.store_id,
        counter_type=location.counter_type,
        location_key=location.key,
        current_number=0,
        prefix=invoice_prefix_for(location),
        last_updated=utcnow(),
    )
    db.session.add(counter)
    db.session.commit()
    return counter
