"""
Reversal Service - cancel and refund completed sales.

POLICY:
- cancel: full reversal. Every line's quantity is credited back to the
  exact inventory row it was debited from. Allowed from completed or
  pending.
- refund: monetary only. Stock is NOT restored (goods returned to the
  shelf go through cancel, or a separate restock). Allowed from completed;
  the amount may be partial but never more than the sale total.

Both are single units of work: credits, status change and the audit action
commit together.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import (
    InvalidRefundAmountError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from ..models import SalesTransaction, SalesTransactionAction, User
from tillbook.time_utils import utcnow
from . import inventory_service
from .concurrency import begin_write_unit, lock_for_update, run_atomic
from .locations import location_for

CANCELLABLE_STATUSES = ("completed", "pending")
REFUNDABLE_STATUSES = ("completed",)


def _load_for_update(transaction_id: int) -> SalesTransaction:
    txn = lock_for_update(
        db.session.query(SalesTransaction).filter_by(id=transaction_id)
    ).first()
    if txn is None:
        raise NotFoundError("Sales transaction not found", details={"id": transaction_id})
    return txn


def _ensure_user(user_id: int) -> None:
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found", details={"user_id": user_id})


def cancel(transaction_id: int, reason: str, user_id: int) -> SalesTransaction:
    """Cancel a sale and return every line's stock to its original row."""
    if not reason or not str(reason).strip():
        raise ValidationError("reason required")
    reason = str(reason).strip()

    def _op() -> SalesTransaction:
        begin_write_unit()
        txn = _load_for_update(transaction_id)
        _ensure_user(user_id)

        if txn.status not in CANCELLABLE_STATUSES:
            raise InvalidStateTransitionError(txn.status, "cancelled")

        location = location_for(txn.store_id)
        restocked = []
        for item in txn.items:
            record = inventory_service.credit(
                item.product_id,
                location,
                item.quantity,
                record_id=item.inventory_id,
            )
            restocked.append({
                "product_id": item.product_id,
                "inventory_id": record.id,
                "quantity": item.quantity,
            })

        now = utcnow()
        txn.status = "cancelled"
        txn.updated_at = now

        db.session.add(
            SalesTransactionAction(
                transaction=txn,
                action_type="cancelled",
                action_data={"reason": reason, "restocked": restocked},
                performed_by_user_id=user_id,
                performed_at=now,
            )
        )

        db.session.commit()
        return txn

    return run_atomic(_op)


def refund(
    transaction_id: int,
    user_id: int,
    refund_amount_cents: int | None = None,
    reason: str | None = None,
) -> SalesTransaction:
    """
    Refund a completed sale, fully (amount omitted) or partially.

    Inventory is left as is.
    """
    if refund_amount_cents is not None and (
        isinstance(refund_amount_cents, bool) or not isinstance(refund_amount_cents, int)
    ):
        raise InvalidRefundAmountError(
            "Refund amount must be a whole number of cents",
            details={"refund_amount_cents": refund_amount_cents},
        )

    def _op() -> SalesTransaction:
        begin_write_unit()
        txn = _load_for_update(transaction_id)
        _ensure_user(user_id)

        if txn.status not in REFUNDABLE_STATUSES:
            raise InvalidStateTransitionError(txn.status, "refunded")

        amount = txn.total_amount_cents if refund_amount_cents is None else refund_amount_cents
        if amount <= 0 or amount > txn.total_amount_cents:
            raise InvalidRefundAmountError(
                "Refund amount must be greater than zero and at most the transaction total",
                details={
                    "refund_amount_cents": amount,
                    "total_amount_cents": txn.total_amount_cents,
                },
            )

        now = utcnow()
        txn.status = "refunded"
        txn.refunded_amount_cents = amount
        txn.updated_at = now

        db.session.add(
            SalesTransactionAction(
                transaction=txn,
                action_type="refunded",
                action_data={
                    "amount_cents": amount,
                    "full_refund": amount == txn.total_amount_cents,
                    "reason": reason,
                },
                performed_by_user_id=user_id,
                performed_at=now,
            )
        )

        db.session.commit()
        return txn

    return run_atomic(_op)
