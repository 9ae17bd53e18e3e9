# Overview: Read-only view of the per-location invoice counters.

from flask import Blueprint, jsonify

from ..services import invoice_service
from ..decorators import require_auth, require_permission


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoice-counters")


@invoices_bp.get("")
@require_auth
@require_permission("MANAGE_INVOICE_COUNTERS")
def list_counters_route():
    counters = invoice_service.list_counters()
    return jsonify({"counters": [c.to_dict() for c in counters]}), 200
