# Overview: Service-layer operations for users and authentication.

"""
Authentication and User Management Service

Every action in the roastery is attributable to a user. Passwords are
hashed with bcrypt (work factor from BCRYPT_ROUNDS) and must pass the
strength rules below.

Self-registered accounts wait for approval by an admin unless they
register as roasteryOwner. Deactivation is the normal way to remove a
user; permanent deletion is refused while the user still authored
business records.
"""

import bcrypt
import re

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, NotFound, ValidationError
from ..models import (
    BillingEvent,
    Order,
    RetailInventoryHistory,
    RoastingBatch,
    Shop,
    User,
)
from ..permissions import ROLE_ROASTERY_OWNER, USER_ROLES
from . import session_service
from roastery.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes never verify."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username.strip()):
        raise ValidationError("Username must be 3-64 characters of letters, digits, '.', '_' or '-'")
    return username.strip()


def _validate_role(role) -> str:
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
    return role


def _validate_default_shop(shop_id) -> int | None:
    if shop_id is None:
        return None
    shop = db.session.get(Shop, shop_id)
    if not shop or not shop.is_active:
        raise NotFound("Shop not found")
    return shop.id


def create_user(
    username: str,
    password: str,
    role: str,
    *,
    default_shop_id: int | None = None,
    pending_approval: bool = False,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for a bad username, role or password and
    ConflictError if the username is taken.
    """
    username = _validate_username(username)
    role = _validate_role(role)

    existing = db.session.query(User).filter(db.func.lower(User.username) == username.lower()).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        is_pending_approval=pending_approval,
        is_active=not pending_approval,
        default_shop_id=_validate_default_shop(default_shop_id),
    )

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User created: id=%s username=%s role=%s pending=%s",
                            user.id, user.username, user.role, pending_approval)
    return user


def register_user(username: str, password: str, role: str) -> User:
    """
    Self-registration.

    Accounts wait for admin approval unless the role is roasteryOwner.
    """
    return create_user(
        username,
        password,
        role,
        pending_approval=(role != ROLE_ROASTERY_OWNER),
    )


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns None for unknown users, bad passwords, and accounts that are
    inactive or still pending approval. Updates last_login_at on success.
    """
    if not username or not password:
        return None

    user = db.session.query(User).filter(
        db.func.lower(User.username) == str(username).strip().lower()
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    if user.is_pending_approval or not user.is_active:
        current_app.logger.warning("Login refused for inactive user: id=%s", user.id)
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def list_users(*, pending_only: bool = False) -> list[User]:
    query = db.session.query(User)
    if pending_only:
        query = query.filter(User.is_pending_approval.is_(True))
    return query.order_by(User.username.asc()).all()


def approve_user(user_id: int) -> User:
    user = get_user(user_id)
    if not user.is_pending_approval:
        raise ValidationError("User is not pending approval")

    user.is_pending_approval = False
    user.is_active = True
    db.session.commit()

    current_app.logger.info("User approved: id=%s", user.id)
    return user


def update_user(user_id: int, patch: dict, *, actor: User) -> User:
    """
    Apply an admin edit: role, isActive, defaultShopId or password.

    Deactivating a user revokes their sessions. Admins cannot deactivate
    themselves.
    """
    user = get_user(user_id)
    allowed = {"role", "isActive", "defaultShopId", "password"}
    unknown = set(patch) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if "role" in patch:
        user.role = _validate_role(patch["role"])

    if "defaultShopId" in patch:
        user.default_shop_id = _validate_default_shop(patch["defaultShopId"])

    if "password" in patch:
        user.password_hash = hash_password(patch["password"])

    deactivated = False
    if "isActive" in patch:
        is_active = patch["isActive"]
        if not isinstance(is_active, bool):
            raise ValidationError("isActive must be a boolean")
        if not is_active and user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account")
        deactivated = user.is_active and not is_active
        user.is_active = is_active
        if is_active:
            user.is_pending_approval = False

    db.session.commit()

    if deactivated:
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated")
        current_app.logger.info("User deactivated: id=%s by=%s", user.id, actor.id)

    return user


def delete_user(user_id: int, *, actor: User) -> None:
    """
    Permanently delete a user.

    Refused while the user authored orders, roasting batches, inventory
    updates or billing events; deactivate such users instead.
    """
    user = get_user(user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot delete your own account")

    authored = (
        db.session.query(Order.id).filter(
            db.or_(Order.created_by_id == user.id, Order.updated_by_id == user.id)
        ).first()
        or db.session.query(RoastingBatch.id).filter(RoastingBatch.roaster_id == user.id).first()
        or db.session.query(RetailInventoryHistory.id).filter(
            RetailInventoryHistory.updated_by_id == user.id
        ).first()
        or db.session.query(BillingEvent.id).filter(BillingEvent.created_by_id == user.id).first()
    )
    if authored:
        raise ConflictError("User has recorded activity; deactivate the account instead")

    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User deleted: id=%s by=%s", user_id, actor.id)
