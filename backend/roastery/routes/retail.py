# Overview: Flask API routes for retail inventory, arrivals and discrepancies.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError, ValidationError
from ..decorators import require_auth, require_capability, resolve_shop_id
from ..services import retail_inventory_service
from ..validation import coerce_int
from .responses import domain_error, unexpected_error


retail_bp = Blueprint("retail", __name__, url_prefix="/api")


@retail_bp.post("/retail-inventory")
@require_auth
@require_capability("retail.write")
def set_inventory_route():
    """
    Manual inventory count; overwrites the snapshot and appends history.

    Request body:
    {
        "shopId": int,
        "greenCoffeeId": int,
        "smallBags": int,
        "largeBags": int,
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        shop_id = resolve_shop_id()
        if shop_id is None:
            raise ValidationError("shopId is required")
        if data.get("greenCoffeeId") is None:
            raise ValidationError("greenCoffeeId is required")

        inventory = retail_inventory_service.set_manual_inventory(
            shop_id=shop_id,
            green_coffee_id=coerce_int("greenCoffeeId", data["greenCoffeeId"]),
            small_bags=data.get("smallBags"),
            large_bags=data.get("largeBags"),
            actor=g.current_user,
            notes=data.get("notes"),
        )
        return jsonify({"inventory": inventory.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to update retail inventory")


@retail_bp.get("/retail-inventory")
@require_auth
@require_capability("retail.read")
def list_inventory_route():
    """?shopId= selects one shop; otherwise every shop the caller can see."""
    try:
        rows = retail_inventory_service.list_inventory(g.current_user, resolve_shop_id())
        return jsonify({"inventory": rows}), 200
    except DomainError as e:
        return domain_error(e)


@retail_bp.get("/retail-inventory/history")
@require_auth
@require_capability("retail.read")
def list_history_route():
    try:
        shop_id = resolve_shop_id()
        if shop_id is None:
            raise ValidationError("shopId is required")
        history = retail_inventory_service.list_history(g.current_user, shop_id)
        return jsonify({"history": [h.to_dict() for h in history]}), 200
    except DomainError as e:
        return domain_error(e)


@retail_bp.get("/dispatch-confirmations")
@require_auth
@require_capability("retail.read")
def list_confirmations_route():
    """Pending arrivals for ?shopId=."""
    try:
        shop_id = resolve_shop_id()
        if shop_id is None:
            raise ValidationError("shopId is required")
        confirmations = retail_inventory_service.list_pending_confirmations(g.current_user, shop_id)
        return jsonify({"confirmations": [c.to_dict() for c in confirmations]}), 200
    except DomainError as e:
        return domain_error(e)


@retail_bp.get("/inventory-discrepancies")
@require_auth
@require_capability("retail.read")
def list_discrepancies_route():
    """Query: ?shopId=, ?status=open|resolved"""
    try:
        discrepancies = retail_inventory_service.list_discrepancies(
            g.current_user,
            shop_id=resolve_shop_id(),
            status=request.args.get("status") or None,
        )
        return jsonify({"discrepancies": [d.to_dict() for d in discrepancies]}), 200
    except DomainError as e:
        return domain_error(e)


@retail_bp.post("/inventory-discrepancies/<int:discrepancy_id>/resolve")
@require_auth
@require_capability("discrepancy.resolve")
def resolve_discrepancy_route(discrepancy_id: int):
    data = request.get_json(silent=True) or {}
    try:
        discrepancy = retail_inventory_service.resolve_discrepancy(
            discrepancy_id,
            actor=g.current_user,
            notes=data.get("notes"),
        )
        return jsonify({"discrepancy": discrepancy.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to resolve discrepancy")
