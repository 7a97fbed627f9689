from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


UPDATE_TYPE_MANUAL = "manual"
UPDATE_TYPE_DISPATCH = "dispatch"


class RetailInventory(db.Model):
    """
    Current retail stock for one (shop, coffee) pair.

    This row is a cache of the latest value; RetailInventoryHistory is the
    audit record and receives one row per change.
    """
    __tablename__ = "retail_inventory"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "green_coffee_id", name="uq_retail_inventory_shop_coffee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)

    small_bags = db.Column(db.Integer, nullable=False, default=0)
    large_bags = db.Column(db.Integer, nullable=False, default=0)

    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    update_type = db.Column(db.String(16), nullable=False, default=UPDATE_TYPE_MANUAL)
    notes = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop")
    green_coffee = db.relationship("GreenCoffee")
    updated_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "greenCoffeeId": self.green_coffee_id,
            "greenCoffeeName": self.green_coffee.name if self.green_coffee else None,
            "smallBags": self.small_bags,
            "largeBags": self.large_bags,
            "updatedById": self.updated_by_id,
            "updateType": self.update_type,
            "notes": self.notes,
            "updatedAt": to_utc_z(self.updated_at),
        }


class RetailInventoryHistory(db.Model):
    """Append-only audit log of RetailInventory changes."""
    __tablename__ = "retail_inventory_history"
    __table_args__ = (
        db.Index("ix_retail_inventory_history_shop_updated", "shop_id", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    retail_inventory_id = db.Column(db.Integer, db.ForeignKey("retail_inventory.id"), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)

    previous_small_bags = db.Column(db.Integer, nullable=False, default=0)
    previous_large_bags = db.Column(db.Integer, nullable=False, default=0)
    new_small_bags = db.Column(db.Integer, nullable=False)
    new_large_bags = db.Column(db.Integer, nullable=False)

    update_type = db.Column(db.String(16), nullable=False)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    green_coffee = db.relationship("GreenCoffee")
    updated_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "retailInventoryId": self.retail_inventory_id,
            "shopId": self.shop_id,
            "greenCoffeeId": self.green_coffee_id,
            "greenCoffeeName": self.green_coffee.name if self.green_coffee else None,
            "previousSmallBags": self.previous_small_bags,
            "previousLargeBags": self.previous_large_bags,
            "newSmallBags": self.new_small_bags,
            "newLargeBags": self.new_large_bags,
            "updateType": self.update_type,
            "updatedById": self.updated_by_id,
            "updatedByUsername": self.updated_by.username if self.updated_by else None,
            "notes": self.notes,
            "updatedAt": to_utc_z(self.updated_at),
        }


class DispatchConfirmation(db.Model):
    """
    Shop-side receipt record for a dispatched order.

    Opened (pending) when the roastery dispatches the order and closed when
    the shop confirms what actually arrived.
    """
    __tablename__ = "dispatch_confirmations"
    __table_args__ = (
        db.Index("ix_dispatch_confirmations_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)

    dispatched_small_bags = db.Column(db.Integer, nullable=False)
    dispatched_large_bags = db.Column(db.Integer, nullable=False)
    received_small_bags = db.Column(db.Integer, nullable=True)
    received_large_bags = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="pending")
    confirmed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("dispatch_confirmation", uselist=False))
    green_coffee = db.relationship("GreenCoffee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "shopId": self.shop_id,
            "greenCoffeeId": self.green_coffee_id,
            "greenCoffeeName": self.green_coffee.name if self.green_coffee else None,
            "dispatchedSmallBags": self.dispatched_small_bags,
            "dispatchedLargeBags": self.dispatched_large_bags,
            "receivedSmallBags": self.received_small_bags,
            "receivedLargeBags": self.received_large_bags,
            "status": self.status,
            "confirmedById": self.confirmed_by_id,
            "confirmedAt": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "createdAt": to_utc_z(self.created_at),
        }


class InventoryDiscrepancy(db.Model):
    """
    Difference between what was dispatched and what a shop confirmed.

    Differences are received minus dispatched, so a short delivery is
    negative.
    """
    __tablename__ = "inventory_discrepancies"
    __table_args__ = (
        db.Index("ix_inventory_discrepancies_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    confirmation_id = db.Column(db.Integer, db.ForeignKey("dispatch_confirmations.id"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)

    dispatched_small_bags = db.Column(db.Integer, nullable=False)
    dispatched_large_bags = db.Column(db.Integer, nullable=False)
    received_small_bags = db.Column(db.Integer, nullable=False)
    received_large_bags = db.Column(db.Integer, nullable=False)
    small_bags_difference = db.Column(db.Integer, nullable=False)
    large_bags_difference = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="open")
    notes = db.Column(db.Text, nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    resolved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    confirmation = db.relationship("DispatchConfirmation", backref=db.backref("discrepancies", lazy=True))
    shop = db.relationship("Shop")
    green_coffee = db.relationship("GreenCoffee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "confirmationId": self.confirmation_id,
            "orderId": self.order_id,
            "shopId": self.shop_id,
            "shopName": self.shop.name if self.shop else None,
            "greenCoffeeId": self.green_coffee_id,
            "greenCoffeeName": self.green_coffee.name if self.green_coffee else None,
            "dispatchedSmallBags": self.dispatched_small_bags,
            "dispatchedLargeBags": self.dispatched_large_bags,
            "receivedSmallBags": self.received_small_bags,
            "receivedLargeBags": self.received_large_bags,
            "smallBagsDifference": self.small_bags_difference,
            "largeBagsDifference": self.large_bags_difference,
            "status": self.status,
            "notes": self.notes,
            "confirmedAt": to_utc_z(self.confirmed_at),
            "resolvedById": self.resolved_by_id,
            "resolvedAt": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "createdAt": to_utc_z(self.created_at),
        }
