# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory item routes.

SECURITY: All routes require authentication.
- Listing and reading require can_view_inventory
- Creating requires can_add_inventory (items always start pending)
- Edit/delete: admin, or the owner while the item is pending
- Approve/reject and the pending queue are admin-only
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth, require_permission
from ..errors import ShopError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _error_response(e: ShopError):
    return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("")
@require_auth
@require_permission("can_view_inventory")
def list_inventory_route():
    """
    List items visible to the caller.

    Query params: status (pending|approved|rejected), search (substring of
    product_name, brand or sku, case-insensitive).
    """
    try:
        items = inventory_service.list_items(
            g.current_user,
            status=request.args.get("status"),
            search=request.args.get("search"),
        )
        return jsonify([item.to_dict() for item in items]), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/pending")
@require_auth
@require_admin
def list_pending_route():
    try:
        items = inventory_service.list_pending()
        return jsonify([item.to_dict() for item in items]), 200
    except Exception:
        current_app.logger.exception("Failed to list pending inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_permission("can_view_inventory")
def get_inventory_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id, g.current_user)
        return jsonify(item.to_dict()), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("")
@require_auth
@require_permission("can_add_inventory")
def create_inventory_item_route():
    """
    Create an inventory item. Status is always pending.

    Required: product_name, quantity.
    Optional: category, brand, sku, description, unit_price.
    """
    try:
        payload = request.get_json(silent=True) or {}
        item = inventory_service.create_item(payload, g.current_user)
        return jsonify(item.to_dict()), 201
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/<int:item_id>")
@require_auth
def update_inventory_item_route(item_id: int):
    """
    Partial update. Admins may also send "status" as an explicit override.
    """
    try:
        payload = request.get_json(silent=True) or {}
        item = inventory_service.update_item(item_id, payload, g.current_user)
        return jsonify(item.to_dict()), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
@require_auth
def delete_inventory_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id, g.current_user)
        return jsonify({"message": "Item deleted successfully"}), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:item_id>/approve")
@require_auth
@require_admin
def approve_inventory_item_route(item_id: int):
    try:
        item = inventory_service.approve_item(item_id, g.current_user)
        return jsonify(item.to_dict()), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:item_id>/reject")
@require_auth
@require_admin
def reject_inventory_item_route(item_id: int):
    try:
        item = inventory_service.reject_item(item_id, g.current_user)
        return jsonify({"message": "Item rejected", "item": item.to_dict()}), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject inventory item %s", item_id)
        return jsonify({"error": "Internal server error"}), 500
