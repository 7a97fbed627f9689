# Overview: Service-layer operations for shops, shop assignments and capability grants.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import Shop, User, UserShop, UserCapabilityGrant
from ..permissions import ADMIN_ROLES, validate_capability_code
from ..validation import ModelValidationPolicy, enforce_rules_shop, validate_payload
from . import access_service


SHOP_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "location",
        "is_active",
        "desired_small_bags",
        "desired_large_bags",
        "default_order_quantity",
    },
    required_on_create={"name", "location"},
)


def get_shop(shop_id: int, *, include_inactive: bool = False) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if not shop or (not shop.is_active and not include_inactive):
        raise NotFound("Shop not found")
    return shop


def list_shops(user: User, *, include_inactive: bool = False) -> list[Shop]:
    """Admins may list inactive shops; everyone else sees their active shops."""
    if include_inactive and access_service.is_admin(user):
        return db.session.query(Shop).order_by(Shop.name.asc()).all()
    return access_service.get_user_shops(user)


def create_shop(payload: dict) -> Shop:
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=False)
    enforce_rules_shop(patch)

    shop = Shop(**patch)
    db.session.add(shop)
    db.session.commit()

    current_app.logger.info("Shop created: id=%s name=%s", shop.id, shop.name)
    return shop


def update_shop(shop_id: int, payload: dict) -> Shop:
    shop = get_shop(shop_id, include_inactive=True)
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=True)
    enforce_rules_shop(patch)

    for key, value in patch.items():
        setattr(shop, key, value)

    db.session.commit()
    return shop


def deactivate_shop(shop_id: int) -> Shop:
    """Soft delete; orders and inventory history are kept."""
    shop = get_shop(shop_id, include_inactive=True)
    shop.is_active = False
    db.session.commit()

    current_app.logger.info("Shop deactivated: id=%s", shop.id)
    return shop


def get_assigned_shop_ids(user_id: int) -> list[int]:
    rows = (
        db.session.query(UserShop.shop_id)
        .filter(UserShop.user_id == user_id)
        .order_by(UserShop.shop_id.asc())
        .all()
    )
    return [row[0] for row in rows]


def assign_user_to_shop(user_id: int, shop_id: int) -> UserShop:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    get_shop(shop_id)

    existing = db.session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()
    if existing:
        return existing

    assignment = UserShop(user_id=user_id, shop_id=shop_id)
    db.session.add(assignment)
    db.session.commit()
    return assignment


def set_user_shops(user_id: int, shop_ids: list) -> list[int]:
    """
    Replace a user's shop assignments with exactly shop_ids.

    Admin roles see every shop regardless, so assignments for them are
    rejected rather than silently stored.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    if user.role in ADMIN_ROLES:
        raise ValidationError("Admin roles have access to every shop")

    if not isinstance(shop_ids, list) or not all(
        isinstance(s, int) and not isinstance(s, bool) for s in shop_ids
    ):
        raise ValidationError("shopIds must be a list of integers")

    wanted = set(shop_ids)
    for shop_id in wanted:
        get_shop(shop_id)

    current = {a.shop_id: a for a in db.session.query(UserShop).filter_by(user_id=user_id).all()}
    for shop_id, assignment in current.items():
        if shop_id not in wanted:
            db.session.delete(assignment)
    for shop_id in wanted - set(current):
        db.session.add(UserShop(user_id=user_id, shop_id=shop_id))

    if user.default_shop_id is not None and user.default_shop_id not in wanted:
        user.default_shop_id = None

    db.session.commit()
    current_app.logger.info("Shop assignments replaced: user=%s shops=%s", user_id, sorted(wanted))
    return sorted(wanted)


def list_capability_grants(user_id: int) -> list[UserCapabilityGrant]:
    return (
        db.session.query(UserCapabilityGrant)
        .filter_by(user_id=user_id)
        .order_by(UserCapabilityGrant.capability.asc())
        .all()
    )


def grant_capability(user_id: int, capability: str, *, granted_by: User) -> UserCapabilityGrant:
    if not validate_capability_code(capability):
        raise ValidationError(f"Unknown capability: {capability}")
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    existing = db.session.query(UserCapabilityGrant).filter_by(user_id=user_id, capability=capability).first()
    if existing:
        return existing

    grant = UserCapabilityGrant(user_id=user_id, capability=capability, granted_by_id=granted_by.id)
    db.session.add(grant)
    db.session.commit()

    current_app.logger.info("Capability granted: user=%s capability=%s by=%s", user_id, capability, granted_by.id)
    return grant


def revoke_capability(user_id: int, capability: str) -> bool:
    grant = db.session.query(UserCapabilityGrant).filter_by(user_id=user_id, capability=capability).first()
    if not grant:
        return False

    db.session.delete(grant)
    db.session.commit()
    return True
