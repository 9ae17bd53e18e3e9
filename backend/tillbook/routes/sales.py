# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

"""Sales transaction API routes with permission enforcement"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import Blueprint, request, jsonify, g, current_app, Response

from ..errors import SaleError, StorageError, InvalidRefundAmountError, ValidationError
from ..services import sales_service, reversal_service, receipt_service, invoice_service
from ..decorators import require_auth, require_permission
from tillbook.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales-transactions")


def _error_response(e: SaleError):
    if isinstance(e, StorageError):
        current_app.logger.warning("Storage failure on %s: %s", request.path, e.details)
    return jsonify(e.to_dict()), e.status_code


def _receipt_for(txn) -> dict:
    label = current_app.config.get("DC_LABEL") or receipt_service.DC_LABEL
    return receipt_service.to_receipt(txn, dc_label=label).to_dict()


def _refund_cents(data: dict) -> int | None:
    """refundAmount is a decimal currency amount; refundAmountCents is exact."""
    if data.get("refundAmountCents") is not None:
        cents = data["refundAmountCents"]
        if isinstance(cents, bool) or not isinstance(cents, int):
            raise InvalidRefundAmountError(
                "refundAmountCents must be an integer",
                details={"refundAmountCents": cents},
            )
        return cents

    amount = data.get("refundAmount")
    if amount is None:
        return None
    if isinstance(amount, bool):
        raise InvalidRefundAmountError("refundAmount must be a number")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidRefundAmountError("refundAmount must be a number", details={"refundAmount": amount})
    if not value.is_finite():
        raise InvalidRefundAmountError("refundAmount must be a number", details={"refundAmount": amount})
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={name: raw})
    if not sales_service.MIN_DB_INT <= value <= sales_service.MAX_DB_INT:
        raise ValidationError(f"{name} is out of range", details={name: raw})
    return value


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime", details={name: raw})


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def checkout_route():
    """
    Check out a cart.

    Requires: CREATE_SALE permission
    Available to: admin, manager, cashier
    """
    try:
        data = request.get_json(silent=True) or {}
        store_id = data.get("storeId", data.get("store_id"))
        if store_id is None:
            store_id = g.store_id

        txn = sales_service.checkout(
            data.get("items"),
            data.get("paymentMethod", data.get("payment_method")),
            g.current_user.id,
            store_id=store_id,
            customer_profile_id=data.get("customerProfileId", data.get("customer_profile_id")),
            transaction_type=data.get("transactionType", data.get("transaction_type")),
        )

        current_app.logger.info(
            "Sale %s completed by user %s, total %s cents",
            txn.invoice_number, g.current_user.id, txn.total_amount_cents,
        )
        return jsonify({
            "transaction": txn.to_dict(include_items=True),
            "receipt": _receipt_for(txn),
        }), 201

    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check out sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:transaction_id>/cancel")
@require_auth
@require_permission("CANCEL_SALE")
def cancel_route(transaction_id: int):
    """
    Cancel a sale and restock its lines.

    Requires: CANCEL_SALE permission
    Available to: admin, manager
    """
    try:
        data = request.get_json(silent=True) or {}
        txn = reversal_service.cancel(transaction_id, data.get("reason"), g.current_user.id)

        current_app.logger.info("Sale %s cancelled by user %s", txn.invoice_number, g.current_user.id)
        return jsonify({"transaction": txn.to_dict(include_items=True)}), 200

    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:transaction_id>/refund")
@require_auth
@require_permission("REFUND_SALE")
def refund_route(transaction_id: int):
    """
    Refund a sale (money only, stock is not restored).

    Requires: REFUND_SALE permission
    Available to: admin, manager
    """
    try:
        data = request.get_json(silent=True) or {}
        txn = reversal_service.refund(
            transaction_id,
            g.current_user.id,
            refund_amount_cents=_refund_cents(data),
            reason=data.get("reason"),
        )

        current_app.logger.info(
            "Sale %s refunded %s cents by user %s",
            txn.invoice_number, txn.refunded_amount_cents, g.current_user.id,
        )
        return jsonify({"transaction": txn.to_dict(include_items=True)}), 200

    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to refund sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_route():
    """
    Search sales, newest first.

    Query params: store_id, status, transaction_type, cashier_user_id,
    customer_profile_id, invoice_number (prefix), from, to, limit, offset.
    """
    try:
        limit = _int_arg("limit")
        offset = _int_arg("offset")
        rows, total = sales_service.list_transactions(
            store_id=_int_arg("store_id"),
            status=request.args.get("status") or None,
            transaction_type=request.args.get("transaction_type") or None,
            cashier_user_id=_int_arg("cashier_user_id"),
            customer_profile_id=_int_arg("customer_profile_id"),
            invoice_number=request.args.get("invoice_number") or None,
            from_date=_date_arg("from"),
            to_date=_date_arg("to"),
            limit=50 if limit is None else limit,
            offset=0 if offset is None else offset,
        )
        return jsonify({
            "transactions": [t.to_dict() for t in rows],
            "count": len(rows),
            "total": total,
        }), 200

    except SaleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_route(transaction_id: int):
    try:
        txn = sales_service.get_transaction(transaction_id)
        data = txn.to_dict(include_items=True)
        data["actions"] = [a.to_dict() for a in txn.actions]
        return jsonify({"transaction": data}), 200
    except SaleError as e:
        return _error_response(e)


@sales_bp.get("/<int:transaction_id>/receipt")
@require_auth
@require_permission("VIEW_SALES")
def receipt_route(transaction_id: int):
    try:
        txn = sales_service.get_transaction(transaction_id)
        return jsonify({"receipt": _receipt_for(txn)}), 200
    except SaleError as e:
        return _error_response(e)


@sales_bp.get("/<int:transaction_id>/receipt.txt")
@require_auth
@require_permission("VIEW_SALES")
def receipt_text_route(transaction_id: int):
    """Plain-text receipt, served as a download."""
    try:
        txn = sales_service.get_transaction(transaction_id)
    except SaleError as e:
        return _error_response(e)

    label = current_app.config.get("DC_LABEL") or receipt_service.DC_LABEL
    body = receipt_service.render_text(receipt_service.to_receipt(txn, dc_label=label))
    return Response(
        body,
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="receipt-{txn.invoice_number}.txt"'},
    )


@sales_bp.get("/invoice/<invoice_number>")
@require_auth
@require_permission("VIEW_SALES")
def get_by_invoice_route(invoice_number: str):
    try:
        if not invoice_service.validate_invoice_number(invoice_number):
            raise ValidationError("Malformed invoice number", details={"invoice_number": invoice_number})
        txn = sales_service.get_transaction_by_invoice(invoice_number)
        return jsonify({
            "transaction": txn.to_dict(include_items=True),
            "receipt": _receipt_for(txn),
        }), 200
    except SaleError as e:
        return _error_response(e)
