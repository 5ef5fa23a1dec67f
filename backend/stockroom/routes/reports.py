# Overview: Flask API routes for low-stock reporting, alerts and the activity feed.

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_role, handle_errors
from ..principal import ROLE_ADMIN
from ..services import activity_service, low_stock_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/low-stock")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("list low stock items")
def low_stock_route():
    items = low_stock_service.list_low_stock_items()
    return jsonify({"items": items, "count": len(items)})


@reports_bp.get("/low-stock-count")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("count low stock items")
def low_stock_count_route():
    return jsonify({"count": low_stock_service.low_stock_count()})


@reports_bp.post("/send-all-low-stock-alerts")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("send low stock alerts")
def send_all_alerts_route():
    """Run the daily alert job on demand."""
    return jsonify(low_stock_service.send_low_stock_alerts())


@reports_bp.post("/low-stock/alert/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("send product low stock alert")
def send_product_alert_route(product_id: int):
    return jsonify(low_stock_service.send_product_alert(product_id))


@reports_bp.get("/recent-activities")
@require_auth
@require_role(ROLE_ADMIN)
@handle_errors("fetch recent activities")
def recent_activities_route():
    activities = activity_service.recent_activities()
    return jsonify({"activities": activities, "count": len(activities)})
