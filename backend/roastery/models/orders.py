from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


class Order(db.Model):
    """
    Shop order for roasted coffee.

    Status moves strictly forward: pending -> roasted -> dispatched ->
    delivered. billing_event_id is set once the order has been captured
    by a billing event.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_shop_status", "shop_id", "status"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)

    small_bags = db.Column(db.Integer, nullable=False, default=0)
    large_bags = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending")

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    billing_event_id = db.Column(db.Integer, db.ForeignKey("billing_events.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shop = db.relationship("Shop")
    green_coffee = db.relationship("GreenCoffee")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    updated_by = db.relationship("User", foreign_keys=[updated_by_id])

    def __repr__(self) -> str:
        return f"<Order id={self.id} shop_id={self.shop_id} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "greenCoffeeId": self.green_coffee_id,
            "smallBags": self.small_bags,
            "largeBags": self.large_bags,
            "status": self.status,
            "createdById": self.created_by_id,
            "updatedById": self.updated_by_id,
            "billingEventId": self.billing_event_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at) if self.updated_at else None,
        }
