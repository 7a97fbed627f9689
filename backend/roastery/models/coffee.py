from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


COFFEE_GRADES = ("Specialty", "Premium", "Rarity")

BATCH_STATUS_PLANNED = "planned"
BATCH_STATUS_IN_PROGRESS = "in_progress"
BATCH_STATUS_COMPLETED = "completed"
BATCH_STATUSES = (BATCH_STATUS_PLANNED, BATCH_STATUS_IN_PROGRESS, BATCH_STATUS_COMPLETED)


def kg(value) -> float | None:
    """Serialize a Numeric kilogram column for JSON."""
    if value is None:
        return None
    return float(value)


class GreenCoffee(db.Model):
    """
    Green (unroasted) coffee lot held at the roastery.

    current_stock is in kilograms. It changes only through a manual stock
    edit or when a roasting batch consumes it, and a batch may never drive
    it below zero.
    """
    __tablename__ = "green_coffee"
    __table_args__ = (
        db.Index("ix_green_coffee_grade_active", "grade", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    producer = db.Column(db.String(255), nullable=False)
    country = db.Column(db.String(120), nullable=False)
    altitude = db.Column(db.String(64), nullable=True)
    cupping_notes = db.Column(db.Text, nullable=True)

    current_stock = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    min_threshold = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    grade = db.Column(db.String(32), nullable=False, default="Specialty")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<GreenCoffee id={self.id} name={self.name!r} stock={self.current_stock}>"

    @property
    def is_below_threshold(self) -> bool:
        return self.current_stock is not None and self.current_stock <= self.min_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "producer": self.producer,
            "country": self.country,
            "altitude": self.altitude,
            "cuppingNotes": self.cupping_notes,
            "currentStock": kg(self.current_stock),
            "minThreshold": kg(self.min_threshold),
            "grade": self.grade,
            "isActive": self.is_active,
            "isBelowThreshold": self.is_below_threshold,
            "createdAt": to_utc_z(self.created_at),
        }


class RoastingBatch(db.Model):
    """
    A roast of one green coffee lot.

    Batches are recorded as completed; creating one consumes planned_amount
    kilograms of the parent lot in the same transaction.
    """
    __tablename__ = "roasting_batches"
    __table_args__ = (
        db.Index("ix_roasting_batches_coffee_created", "green_coffee_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    green_coffee_id = db.Column(db.Integer, db.ForeignKey("green_coffee.id"), nullable=False)
    roaster_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=BATCH_STATUS_COMPLETED)

    planned_amount = db.Column(db.Numeric(10, 2), nullable=False)
    roasted_amount = db.Column(db.Numeric(10, 2), nullable=True)
    roasting_loss = db.Column(db.Numeric(10, 2), nullable=True)

    small_bags_produced = db.Column(db.Integer, nullable=False, default=0)
    large_bags_produced = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    green_coffee = db.relationship("GreenCoffee", backref=db.backref("roasting_batches", lazy=True))
    roaster = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "greenCoffeeId": self.green_coffee_id,
            "roasterId": self.roaster_id,
            "status": self.status,
            "plannedAmount": kg(self.planned_amount),
            "roastedAmount": kg(self.roasted_amount),
            "roastingLoss": kg(self.roasting_loss),
            "smallBagsProduced": self.small_bags_produced,
            "largeBagsProduced": self.large_bags_produced,
            "createdAt": to_utc_z(self.created_at),
        }
