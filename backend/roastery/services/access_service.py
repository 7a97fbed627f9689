# Overview: Service-layer access policy; shop scope and effective capabilities.

"""
Access Control Policy

Two independent checks guard every business operation:

- Capability: what a user may do. Each role implies a capability set
  (roastery.permissions.DEFAULT_ROLE_CAPABILITIES); explicit
  UserCapabilityGrant rows are unioned on top. Admin roles imply every
  capability, so there is no separate bypass path.
- Shop scope: where a user may do it. Admin roles see every shop; other
  roles need a UserShop row for an active shop.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Forbidden
from ..models import Shop, User, UserShop, UserCapabilityGrant
from ..permissions import ADMIN_ROLES, implied_capabilities


def is_admin(user: User | None) -> bool:
    return user is not None and user.role in ADMIN_ROLES


def get_user_capabilities(user: User) -> set[str]:
    """Role-implied capabilities plus explicit grants."""
    capabilities = implied_capabilities(user.role)
    rows = (
        db.session.query(UserCapabilityGrant.capability)
        .filter(UserCapabilityGrant.user_id == user.id)
        .all()
    )
    capabilities.update(row[0] for row in rows)
    return capabilities


def user_has_capability(user: User, capability: str, capabilities: set[str] | None = None) -> bool:
    if capabilities is None:
        capabilities = get_user_capabilities(user)
    return capability in capabilities


def require_capability(user: User, capability: str, capabilities: set[str] | None = None) -> None:
    if not user_has_capability(user, capability, capabilities):
        current_app.logger.warning(
            "Capability denied: user=%s role=%s capability=%s", user.id, user.role, capability
        )
        raise Forbidden(f"Missing capability: {capability}")


def has_shop_access(user: User, shop_id: int | None) -> bool:
    if user is None or shop_id is None:
        return False
    if is_admin(user):
        return True

    row = (
        db.session.query(UserShop.id)
        .join(Shop, Shop.id == UserShop.shop_id)
        .filter(
            UserShop.user_id == user.id,
            UserShop.shop_id == shop_id,
            Shop.is_active.is_(True),
        )
        .first()
    )
    return row is not None


def require_shop_access(user: User, shop_id: int | None) -> None:
    if not has_shop_access(user, shop_id):
        current_app.logger.warning("Shop access denied: user=%s shop=%s", user.id, shop_id)
        raise Forbidden("No access to this shop")


def accessible_shop_ids(user: User) -> set[int] | None:
    """
    Shop ids the user may see.

    Returns None for admin roles, meaning "every shop".
    """
    if is_admin(user):
        return None
    rows = (
        db.session.query(UserShop.shop_id)
        .join(Shop, Shop.id == UserShop.shop_id)
        .filter(UserShop.user_id == user.id, Shop.is_active.is_(True))
        .all()
    )
    return {row[0] for row in rows}


def get_user_shops(user: User) -> list[Shop]:
    """Active shops visible to the user, ordered by name."""
    query = db.session.query(Shop).filter(Shop.is_active.is_(True))
    if not is_admin(user):
        query = query.join(UserShop, UserShop.shop_id == Shop.id).filter(UserShop.user_id == user.id)
    return query.order_by(Shop.name.asc()).all()
