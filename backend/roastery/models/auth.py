from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Roles: retailOwner, roasteryOwner, roaster, shopManager, barista.
    Self-registered users wait for approval unless they register as
    roasteryOwner. Users are deactivated rather than deleted; permanent
    deletion is an explicit roasteryOwner action.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_active", "role", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_pending_approval = db.Column(db.Boolean, nullable=False, default=False)

    default_shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    default_shop = db.relationship("Shop", foreign_keys=[default_shop_id])

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "isActive": self.is_active,
            "isPendingApproval": self.is_pending_approval,
            "defaultShopId": self.default_shop_id,
            "createdAt": to_utc_z(self.created_at),
            "lastLoginAt": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class UserShop(db.Model):
    """
    Explicit user -> shop assignment.

    Only consulted for roles that are not implicitly granted every shop.
    """
    __tablename__ = "user_shops"
    __table_args__ = (
        db.UniqueConstraint("user_id", "shop_id", name="uq_user_shops_user_shop"),
        db.Index("ix_user_shops_shop", "shop_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("shop_assignments", lazy=True, cascade="all, delete-orphan"))
    shop = db.relationship("Shop", backref=db.backref("user_assignments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "shopId": self.shop_id,
            "createdAt": to_utc_z(self.created_at),
        }


class UserCapabilityGrant(db.Model):
    """
    Explicit capability granted to a single user on top of the role's
    implied capabilities.
    """
    __tablename__ = "user_capability_grants"
    __table_args__ = (
        db.UniqueConstraint("user_id", "capability", name="uq_user_capability_grants"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    capability = db.Column(db.String(64), nullable=False)
    granted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("capability_grants", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "capability": self.capability,
            "grantedById": self.granted_by_id,
            "grantedAt": to_utc_z(self.granted_at),
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    The plaintext token is only ever returned to the client at login;
    the table stores its SHA-256 hash.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
            "isRevoked": self.is_revoked,
        }
