# Overview: Flask API routes for billing cycles.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError, ValidationError
from ..decorators import require_auth, require_capability
from ..services import billing_service
from .responses import domain_error, unexpected_error


billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


@billing_bp.get("/quantities")
@require_auth
@require_capability("billing.read")
def unbilled_quantities_route():
    """Unbilled delivered bags per grade, the cycle start and the last event."""
    try:
        return jsonify(billing_service.get_unbilled_quantities()), 200
    except Exception:
        return unexpected_error("Failed to aggregate billing quantities")


@billing_bp.post("/events")
@require_auth
@require_capability("billing.write")
def create_event_route():
    """
    Freeze a billing cycle.

    Request body:
    {
        "primarySplitPercentage": number,
        "secondarySplitPercentage": number,
        "quantities": [{"grade": str, "smallBagsQuantity": int, "largeBagsQuantity": int}],
        "cycleStartDate": ISO-8601,
        "cycleEndDate": ISO-8601
    }
    """
    data = request.get_json(silent=True)
    try:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        event = billing_service.create_billing_event(
            primary_split_percentage=data.get("primarySplitPercentage"),
            secondary_split_percentage=data.get("secondarySplitPercentage"),
            quantities=data.get("quantities"),
            cycle_start_date=data.get("cycleStartDate"),
            cycle_end_date=data.get("cycleEndDate"),
            actor=g.current_user,
        )
        return jsonify({"event": billing_service.serialize_event(event)}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create billing event")


@billing_bp.get("/history")
@require_auth
@require_capability("billing.read")
def history_route():
    events = billing_service.get_billing_history()
    return jsonify({"events": [billing_service.serialize_event(e) for e in events]}), 200


@billing_bp.get("/events/<int:event_id>/details")
@require_auth
@require_capability("billing.read")
def event_details_route(event_id: int):
    try:
        details = billing_service.get_billing_event_details(event_id)
        return jsonify({"details": [d.to_dict() for d in details]}), 200
    except DomainError as e:
        return domain_error(e)
