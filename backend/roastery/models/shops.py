from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


class Shop(db.Model):
    """
    Retail shop supplied by the roastery.

    desired_small_bags / desired_large_bags are stock targets used for
    low-stock warnings, never hard limits. Shops are soft-deleted via
    is_active=False.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    desired_small_bags = db.Column(db.Integer, nullable=False, default=20)
    desired_large_bags = db.Column(db.Integer, nullable=False, default=10)
    default_order_quantity = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "isActive": self.is_active,
            "desiredSmallBags": self.desired_small_bags,
            "desiredLargeBags": self.desired_large_bags,
            "defaultOrderQuantity": self.default_order_quantity,
            "createdAt": to_utc_z(self.created_at),
        }


class CoffeeLargeBagTarget(db.Model):
    """Per-coffee override of a shop's desired large-bag level (display only)."""
    __tablename__ = "coffee_large_bag_targets"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "green_coffee_id", name="uq_large_bag_targets_shop_coffee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)
    desired_large_bags = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "greenCoffeeId": self.green_coffee_id,
            "desiredLargeBags": self.desired_large_bags,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
