# Overview: Locking and retry helpers shared by the sale, reversal and numbering services.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import SaleError, StorageError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_unit() -> None:
    """
    Start the unit of work with the write lock already held.

    SQLite has no row locks, so take the database write lock up front
    (BEGIN IMMEDIATE). Concurrent checkouts then queue on the busy timeout
    instead of failing halfway through. Other dialects rely on the
    conditional UPDATEs and FOR UPDATE row locks.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Business errors propagate untouched.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_atomic(func, *, attempts: int = 3):
    """
    Run one unit of work (checkout, cancel, refund) all-or-nothing.

    func must commit on success. Any failure rolls the whole session back;
    persistence failures surface as StorageError so callers can show an
    opaque "try again" message.
    """
    try:
        return run_with_retry(func, attempts=attempts)
    except SaleError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError("Storage unavailable, please try again") from exc
    except Exception:
        db.session.rollback()
        raise
