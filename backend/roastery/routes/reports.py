# Overview: Flask API routes for analytics and reports; read-only.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError
from ..decorators import require_auth, require_capability
from ..services import reporting_service
from .responses import domain_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


def _range_args():
    return request.args.get("fromDate"), request.args.get("toDate")


@reports_bp.get("/analytics/inventory")
@require_auth
@require_capability("analytics.read")
def inventory_analytics_route():
    start, end = _range_args()
    try:
        rows = reporting_service.inventory_analytics(actor=g.current_user, start=start, end=end)
        return jsonify({"rows": rows}), 200
    except DomainError as e:
        return domain_error(e)


@reports_bp.get("/analytics/orders")
@require_auth
@require_capability("analytics.read")
def order_analytics_route():
    start, end = _range_args()
    try:
        rows = reporting_service.order_analytics(actor=g.current_user, start=start, end=end)
        return jsonify({"rows": rows}), 200
    except DomainError as e:
        return domain_error(e)


@reports_bp.get("/analytics/roasting")
@require_auth
@require_capability("analytics.read")
def roasting_analytics_route():
    start, end = _range_args()
    try:
        rows = reporting_service.roasting_analytics(start=start, end=end)
        return jsonify({"rows": rows}), 200
    except DomainError as e:
        return domain_error(e)


@reports_bp.get("/reports/inventory-status")
@require_auth
@require_capability("reports.read")
def inventory_status_route():
    return jsonify(reporting_service.inventory_status_report(actor=g.current_user)), 200


@reports_bp.get("/reports/shop-performance")
@require_auth
@require_capability("reports.read")
def shop_performance_route():
    return jsonify(reporting_service.shop_performance_report(actor=g.current_user)), 200


@reports_bp.get("/reports/coffee-consumption")
@require_auth
@require_capability("reports.read")
def coffee_consumption_route():
    return jsonify(reporting_service.coffee_consumption_report(actor=g.current_user)), 200
