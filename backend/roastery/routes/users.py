# Overview: Flask API routes for user administration, shop assignments and capability grants.

from flask import Blueprint, request, jsonify, g

from ..errors import DomainError, ValidationError
from ..decorators import require_auth, require_capability
from ..permissions import (
    ROLE_OWNER,
    ROLE_ROASTERY_OWNER,
    get_all_capability_codes,
    get_capability_definition,
)
from ..services import access_service, auth_service, shop_service
from .responses import domain_error, unexpected_error


users_bp = Blueprint("users", __name__, url_prefix="/api/users")

# Permanent deletion is narrower than the admin role set.
PERMANENT_DELETE_ROLES = {ROLE_ROASTERY_OWNER, ROLE_OWNER}


@users_bp.get("")
@require_auth
@require_capability("user.manage")
def list_users_route():
    """
    List users. ?pending=true limits the list to accounts awaiting approval.
    """
    pending_only = request.args.get("pending", "").lower() == "true"
    users = auth_service.list_users(pending_only=pending_only)
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.post("")
@require_auth
@require_capability("user.manage")
def create_user_route():
    """
    Admin-created user; active immediately.

    Request body: {"username", "password", "role", "defaultShopId"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("username"),
            data.get("password"),
            data.get("role"),
            default_shop_id=data.get("defaultShopId"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to create user")


@users_bp.patch("/<int:user_id>")
@require_auth
@require_capability("user.manage")
def update_user_route(user_id: int):
    data = request.get_json(silent=True)
    try:
        if not isinstance(data, dict) or not data:
            raise ValidationError("Request body must be a non-empty object")
        user = auth_service.update_user(user_id, data, actor=g.current_user)
        return jsonify({"user": user.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to update user")


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user_route(user_id: int):
    """Permanent delete (roasteryOwner only)."""
    if g.current_user.role not in PERMANENT_DELETE_ROLES:
        return jsonify({"error": "Forbidden", "message": "Only a roastery owner can delete users"}), 403
    try:
        auth_service.delete_user(user_id, actor=g.current_user)
        return jsonify({"message": "User deleted"}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to delete user")


@users_bp.post("/<int:user_id>/approve")
@require_auth
@require_capability("user.manage")
def approve_user_route(user_id: int):
    try:
        user = auth_service.approve_user(user_id)
        return jsonify({"user": user.to_dict()}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to approve user")


@users_bp.get("/<int:user_id>/shops")
@require_auth
def get_user_shops_route(user_id: int):
    """Users may read their own assignments; anyone else needs user.manage."""
    if user_id != g.current_user.id and "user.manage" not in g.capabilities:
        return jsonify({"error": "Forbidden", "message": "Missing capability: user.manage"}), 403
    try:
        user = auth_service.get_user(user_id)
        return jsonify({
            "userId": user.id,
            "shopIds": shop_service.get_assigned_shop_ids(user.id),
            "shops": [shop.to_dict() for shop in access_service.get_user_shops(user)],
        }), 200
    except DomainError as e:
        return domain_error(e)


@users_bp.put("/<int:user_id>/shops")
@require_auth
@require_capability("user.manage")
def set_user_shops_route(user_id: int):
    """
    Replace a user's shop assignments.

    Request body: {"shopIds": [int, ...]}
    """
    data = request.get_json(silent=True) or {}
    try:
        shop_ids = shop_service.set_user_shops(user_id, data.get("shopIds"))
        return jsonify({"userId": user_id, "shopIds": shop_ids}), 200
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to set user shops")


@users_bp.get("/capability-catalog")
@require_auth
@require_capability("user.manage")
def capability_catalog_route():
    """Every grantable capability with its name, description and category."""
    return jsonify({
        "capabilities": [get_capability_definition(code) for code in get_all_capability_codes()],
    }), 200


@users_bp.get("/<int:user_id>/capabilities")
@require_auth
@require_capability("user.manage")
def list_capabilities_route(user_id: int):
    try:
        user = auth_service.get_user(user_id)
        return jsonify({
            "userId": user.id,
            "effective": sorted(access_service.get_user_capabilities(user)),
            "grants": [grant.to_dict() for grant in shop_service.list_capability_grants(user.id)],
        }), 200
    except DomainError as e:
        return domain_error(e)


@users_bp.post("/<int:user_id>/capabilities")
@require_auth
@require_capability("user.manage")
def grant_capability_route(user_id: int):
    """Request body: {"capability": "billing.read"}"""
    data = request.get_json(silent=True) or {}
    try:
        grant = shop_service.grant_capability(user_id, data.get("capability"), granted_by=g.current_user)
        return jsonify({"grant": grant.to_dict()}), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to grant capability")


@users_bp.delete("/<int:user_id>/capabilities/<string:capability>")
@require_auth
@require_capability("user.manage")
def revoke_capability_route(user_id: int, capability: str):
    try:
        if not shop_service.revoke_capability(user_id, capability):
            return jsonify({"error": "NotFound", "message": "Grant not found"}), 404
        return jsonify({"message": "Capability revoked"}), 200
    except Exception:
        return unexpected_error("Failed to revoke capability")
