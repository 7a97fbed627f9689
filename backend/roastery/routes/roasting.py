# Overview: Flask API routes for roasting batches.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError
from ..decorators import require_auth, require_capability
from ..services import coffee_service
from ..validation import coerce_int
from .responses import domain_error, unexpected_error


roasting_bp = Blueprint("roasting", __name__, url_prefix="/api/roasting-batches")


@roasting_bp.get("")
@require_auth
@require_capability("roasting.write")
def list_batches_route():
    """Newest first; ?greenCoffeeId= narrows to one lot."""
    try:
        raw = request.args.get("greenCoffeeId")
        coffee_id = coerce_int("greenCoffeeId", raw) if raw else None
        batches = coffee_service.list_roasting_batches(green_coffee_id=coffee_id)
        return jsonify({"batches": [b.to_dict() for b in batches]}), 200
    except DomainError as e:
        return domain_error(e)


@roasting_bp.post("")
@require_auth
@require_capability("roasting.write")
def create_batch_route():
    """
    Record a completed roast and consume green coffee.

    Request body:
    {
        "greenCoffeeId": int,
        "plannedAmount": number (kg),
        "roastedAmount": number?, "roastingLoss": number?,
        "smallBagsProduced": int?, "largeBagsProduced": int?
    }

    Returns:
        201: Batch created, stock decremented
        400: ValidationError / InsufficientStock
        404: Coffee not found
    """
    try:
        batch = coffee_service.create_roasting_batch(request.get_json(silent=True), roaster=g.current_user)
        data = batch.to_dict()
        data["greenCoffee"] = batch.green_coffee.to_dict()
        return jsonify({"batch": data}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create roasting batch")
