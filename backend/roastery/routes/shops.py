# Overview: Flask API routes for shops and per-coffee large-bag targets.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError, Forbidden
from ..decorators import require_auth, require_capability
from ..services import access_service, retail_inventory_service, shop_service
from .responses import domain_error, unexpected_error


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("")
@require_auth
def list_shops_route():
    """
    Shops visible to the caller. Admins may pass ?includeInactive=true.
    """
    include_inactive = request.args.get("includeInactive", "").lower() == "true"
    shops = shop_service.list_shops(g.current_user, include_inactive=include_inactive)
    return jsonify({"shops": [s.to_dict() for s in shops]}), 200


@shops_bp.post("")
@require_auth
@require_capability("shop.manage")
def create_shop_route():
    """
    Request body:
    {
        "name": str,
        "location": str,
        "desiredSmallBags": int (optional),
        "desiredLargeBags": int (optional),
        "defaultOrderQuantity": int (optional)
    }
    """
    try:
        shop = shop_service.create_shop(request.get_json(silent=True))
        return jsonify({"shop": shop.to_dict()}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create shop")


@shops_bp.get("/<int:shop_id>")
@require_auth
def get_shop_route(shop_id: int):
    try:
        if not access_service.has_shop_access(g.current_user, shop_id):
            raise Forbidden("No access to this shop")
        shop = shop_service.get_shop(shop_id, include_inactive=access_service.is_admin(g.current_user))
        return jsonify({"shop": shop.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)


@shops_bp.patch("/<int:shop_id>")
@require_auth
@require_capability("shop.manage")
def update_shop_route(shop_id: int):
    try:
        shop = shop_service.update_shop(shop_id, request.get_json(silent=True))
        return jsonify({"shop": shop.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to update shop")


@shops_bp.delete("/<int:shop_id>")
@require_auth
@require_capability("shop.manage")
def deactivate_shop_route(shop_id: int):
    """Soft delete: the shop is marked inactive."""
    try:
        shop = shop_service.deactivate_shop(shop_id)
        return jsonify({"shop": shop.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to deactivate shop")


@shops_bp.get("/<int:shop_id>/large-bag-targets")
@require_auth
@require_capability("retail.read")
def list_large_bag_targets_route(shop_id: int):
    try:
        targets = retail_inventory_service.get_large_bag_targets(g.current_user, shop_id)
        return jsonify({"targets": [t.to_dict() for t in targets]}), 200
    except DomainError as e:
        return domain_error(e)


@shops_bp.put("/<int:shop_id>/large-bag-targets")
@require_auth
@require_capability("retail.write")
def set_large_bag_target_route(shop_id: int):
    """
    Request body: {"greenCoffeeId": int, "desiredLargeBags": int}
    """
    data = request.get_json(silent=True) or {}
    try:
        target = retail_inventory_service.set_large_bag_target(
            g.current_user,
            shop_id,
            data.get("greenCoffeeId"),
            data.get("desiredLargeBags"),
        )
        return jsonify({"target": target.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to set large-bag target")
