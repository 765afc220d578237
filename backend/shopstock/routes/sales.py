# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

SECURITY: All routes require authentication. Deleting sales (single or
bulk) is admin-only because it writes stock back to inventory.

Route order matters: /recent, /stats and /bulk are registered before the
/<int:sale_id> routes.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..errors import ShopError
from ..services import reporting_service, sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error_response(e: ShopError):
    return jsonify(e.to_dict()), e.status_code


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Sales in creation order.

    Query params: startDate, endDate (inclusive, YYYY-MM-DD or ISO-8601),
    limit (default 50).
    """
    try:
        sales = sales_service.list_sales(
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            limit=request.args.get("limit"),
        )
        return jsonify([sale.to_dict() for sale in sales]), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/recent")
@require_auth
def recent_sales_route():
    try:
        sales = sales_service.list_recent_sales(request.args.get("limit"))
        return jsonify([sale.to_dict() for sale in sales]), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list recent sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/stats")
@require_auth
def sales_stats_route():
    """
    Aggregated sales figures.

    Query params: period (today|yesterday|week|month|all) or
    startDate/endDate, which take priority.
    """
    try:
        stats = reporting_service.sales_stats(
            period=request.args.get("period"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
        )
        return jsonify(stats), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute sales stats")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale and debit stock.

    Body: {inventory_item_id, quantity_sold, unit_price,
           customer_name?, payment_method?, notes?}
    """
    try:
        payload = request.get_json(silent=True)
        sale = sales_service.create_sale(payload, g.current_user)
        return jsonify(sale.to_dict()), 201
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/bulk")
@require_auth
@require_admin
def bulk_delete_sales_route():
    """
    Delete many sales at once, restoring stock for each.

    ids come from the JSON body {"ids": [...]} or the ?ids=1,2,3 query
    string, as a list or a comma-separated string.
    """
    try:
        payload = request.get_json(silent=True) or {}
        raw_ids = payload.get("ids") if isinstance(payload, dict) else None
        if raw_ids is None:
            raw_ids = request.args.get("ids")
        result = sales_service.bulk_delete_sales(raw_ids, g.current_user)
        return jsonify(result), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to bulk delete sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify(sale.to_dict()), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def delete_sale_route(sale_id: int):
    try:
        result = sales_service.delete_sale(sale_id, g.current_user)
        return jsonify(result), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500
