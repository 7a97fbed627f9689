# Overview: Flask API routes for green coffee lots.

from flask import Blueprint, request, jsonify

from ..errors import DomainError, ValidationError
from ..decorators import require_auth, require_capability
from ..services import coffee_service
from .responses import domain_error, unexpected_error


green_coffee_bp = Blueprint("green_coffee", __name__, url_prefix="/api/green-coffee")


@green_coffee_bp.get("")
@require_auth
def list_green_coffee_route():
    """
    Coffee catalogue; every signed-in role needs it to place orders.

    Query: ?includeInactive=true, ?grade=Premium
    """
    include_inactive = request.args.get("includeInactive", "").lower() == "true"
    coffees = coffee_service.list_green_coffee(
        include_inactive=include_inactive,
        grade=request.args.get("grade"),
    )
    return jsonify({"greenCoffee": [c.to_dict() for c in coffees]}), 200


@green_coffee_bp.post("")
@require_auth
@require_capability("greenCoffee.write")
def create_green_coffee_route():
    """
    Request body:
    {
        "name": str, "producer": str, "country": str,
        "altitude": str?, "cuppingNotes": str?,
        "currentStock": number?, "minThreshold": number?,
        "grade": "Specialty" | "Premium" | "Rarity"
    }
    """
    try:
        coffee = coffee_service.create_green_coffee(request.get_json(silent=True))
        return jsonify({"greenCoffee": coffee.to_dict()}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create green coffee")


@green_coffee_bp.get("/<int:coffee_id>")
@require_auth
def get_green_coffee_route(coffee_id: int):
    try:
        coffee = coffee_service.get_green_coffee(coffee_id)
        return jsonify({"greenCoffee": coffee.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)


@green_coffee_bp.patch("/<int:coffee_id>")
@require_auth
@require_capability("greenCoffee.write")
def update_green_coffee_route(coffee_id: int):
    try:
        coffee = coffee_service.update_green_coffee(coffee_id, request.get_json(silent=True))
        return jsonify({"greenCoffee": coffee.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to update green coffee")


@green_coffee_bp.put("/<int:coffee_id>/stock")
@require_auth
@require_capability("greenCoffee.write")
def set_green_coffee_stock_route(coffee_id: int):
    """Manual stock edit. Request body: {"currentStock": number}"""
    data = request.get_json(silent=True)
    try:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        coffee = coffee_service.set_green_coffee_stock(coffee_id, data.get("currentStock"))
        return jsonify({"greenCoffee": coffee.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to set green coffee stock")
