# backend/tillbook/routes/inventory.py
"""
Inventory read routes used by the POS screen.

SECURITY: All routes require authentication and VIEW_INVENTORY.
Stock only changes through checkout and cancel.
"""
from flask import Blueprint, request, jsonify, g

from ..errors import SaleError, ValidationError
from ..services import inventory_service
from ..services.sales_service import MAX_DB_INT
from ..services.locations import DISTRIBUTION_CENTER, location_for
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _location_from_args(required: bool):
    """dc=1 selects the distribution center; otherwise store_id (default: session store)."""
    if request.args.get("dc") in ("1", "true", "yes"):
        return DISTRIBUTION_CENTER

    raw = request.args.get("store_id")
    if raw in (None, ""):
        if g.store_id is not None:
            return location_for(g.store_id)
        if required:
            raise ValidationError("store_id or dc=1 required")
        return None
    try:
        store_id = int(raw)
    except ValueError:
        raise ValidationError("store_id must be an integer", details={"store_id": raw})
    if not 0 < store_id <= MAX_DB_INT:
        raise ValidationError("store_id is out of range", details={"store_id": raw})
    return location_for(store_id)


@inventory_bp.get("/available")
@require_auth
@require_permission("VIEW_INVENTORY")
def available_route():
    try:
        raw_product = request.args.get("product_id")
        if not raw_product:
            raise ValidationError("product_id required")
        try:
            product_id = int(raw_product)
        except ValueError:
            raise ValidationError("product_id must be an integer", details={"product_id": raw_product})
        if not 0 < product_id <= MAX_DB_INT:
            raise ValidationError("product_id is out of range", details={"product_id": raw_product})

        location = _location_from_args(required=True)
        return jsonify({
            "product_id": product_id,
            "location_key": location.key,
            "available": inventory_service.get_available(product_id, location),
        }), 200
    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    try:
        location = _location_from_args(required=False)
        records = inventory_service.list_low_stock(location)
        return jsonify({"items": [r.to_dict() for r in records], "count": len(records)}), 200
    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
