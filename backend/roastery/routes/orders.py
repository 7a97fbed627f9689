# Overview: Flask API routes for the order lifecycle.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError, ValidationError
from ..decorators import require_auth, require_capability, resolve_shop_id
from ..services import order_service
from ..validation import coerce_int
from .responses import domain_error, unexpected_error


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@orders_bp.post("")
@require_auth
@require_capability("orders.write")
def create_order_route():
    """
    Place an order for a shop.

    Request body:
    {
        "shopId": int,
        "greenCoffeeId": int,
        "smallBags": int,
        "largeBags": int
    }

    Returns:
        201: Order created (status pending)
        400: Validation error
        403: No access to the shop
        404: Shop or coffee not found
    """
    try:
        data = _json_body()
        shop_id = resolve_shop_id(required=True)
        if shop_id is None:
            raise ValidationError("shopId is required")
        if data.get("greenCoffeeId") is None:
            raise ValidationError("greenCoffeeId is required")

        order = order_service.create_order(
            shop_id=shop_id,
            green_coffee_id=coerce_int("greenCoffeeId", data["greenCoffeeId"]),
            small_bags=data.get("smallBags"),
            large_bags=data.get("largeBags"),
            requested_by=g.current_user,
        )
        return jsonify({"order": order_service.serialize_order(order, g.current_user)}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create order")


@orders_bp.get("")
@require_auth
@require_capability("orders.read")
def list_orders_route():
    """Query: ?shopId=, ?status="""
    try:
        orders = order_service.list_orders(
            g.current_user,
            shop_id=resolve_shop_id(),
            status=request.args.get("status") or None,
        )
        return jsonify({"orders": [order_service.serialize_order(o, g.current_user) for o in orders]}), 200
    except DomainError as e:
        return domain_error(e)


@orders_bp.get("/<int:order_id>")
@require_auth
@require_capability("orders.read")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id, g.current_user)
        data = order_service.serialize_order(order, g.current_user)
        confirmation = order.dispatch_confirmation
        data["dispatchConfirmation"] = confirmation.to_dict() if confirmation else None
        return jsonify({"order": data}), 200
    except DomainError as e:
        return domain_error(e)


@orders_bp.patch("/<int:order_id>/status")
@require_auth
def update_order_status_route(order_id: int):
    """
    Move an order forward.

    Request body:
    {
        "status": "roasted" | "dispatched" | "delivered",
        "smallBags": int (optional, roastery side only),
        "largeBags": int (optional, roastery side only)
    }

    Returns:
        200: Updated order
        400: Validation error
        403: InvalidTransition / Forbidden
        404: Order not found
        500: SideEffectFailure (nothing changed)
    """
    try:
        data = _json_body()
        new_status = data.get("status")
        if not new_status:
            raise ValidationError("status is required")

        order = order_service.update_order_status(
            order_id,
            new_status,
            actor=g.current_user,
            small_bags=data.get("smallBags"),
            large_bags=data.get("largeBags"),
        )
        return jsonify({"order": order_service.serialize_order(order, g.current_user)}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to update order status")


@orders_bp.post("/<int:order_id>/receipt")
@require_auth
@require_capability("retail.write")
def confirm_receipt_route(order_id: int):
    """
    Shop confirms what arrived for a dispatched order.

    Request body:
    {
        "receivedSmallBags": int,
        "receivedLargeBags": int,
        "notes": str (optional)
    }

    Returns:
        200: Order delivered; discrepancy included when counts differ
        400: Received more than dispatched / negative counts
        403: Not dispatched (InvalidTransition) or no access (Forbidden)
    """
    try:
        data = _json_body()
        for key in ("receivedSmallBags", "receivedLargeBags"):
            if data.get(key) is None:
                raise ValidationError(f"{key} is required")

        order, discrepancy = order_service.confirm_receipt(
            order_id,
            received_small_bags=data["receivedSmallBags"],
            received_large_bags=data["receivedLargeBags"],
            actor=g.current_user,
            notes=data.get("notes"),
        )
        return jsonify({
            "order": order_service.serialize_order(order, g.current_user),
            "discrepancy": discrepancy.to_dict() if discrepancy else None,
        }), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to confirm receipt")
