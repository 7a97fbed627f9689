from __future__ import annotations

from ..extensions import db
from roastery.time_utils import to_utc_z


class BillingEvent(db.Model):
    """
    A closed billing cycle.

    The split percentages are stored as entered; per-party bag counts are
    derived at read time (see billing_service.calculate_split).
    """
    __tablename__ = "billing_events"
    __table_args__ = (
        db.Index("ix_billing_events_cycle_end", "cycle_end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cycle_start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    cycle_end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    primary_split_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    secondary_split_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    details = db.relationship(
        "BillingEventDetail",
        backref="billing_event",
        lazy=True,
        order_by="BillingEventDetail.grade",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cycleStartDate": to_utc_z(self.cycle_start_date),
            "cycleEndDate": to_utc_z(self.cycle_end_date),
            "primarySplitPercentage": float(self.primary_split_percentage),
            "secondarySplitPercentage": float(self.secondary_split_percentage),
            "createdById": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
        }


class BillingEventDetail(db.Model):
    """Per-grade quantities frozen into a billing event."""
    __tablename__ = "billing_event_details"
    __table_args__ = (
        db.UniqueConstraint("billing_event_id", "grade", name="uq_billing_event_details_event_grade"),
        db.Index("ix_billing_event_details_grade", "grade"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    billing_event_id = db.Column(db.Integer, db.ForeignKey("billing_events.id"), nullable=False)
    grade = db.Column(db.String(32), nullable=False)
    small_bags_quantity = db.Column(db.Integer, nullable=False, default=0)
    large_bags_quantity = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "billingEventId": self.billing_event_id,
            "grade": self.grade,
            "smallBagsQuantity": self.small_bags_quantity,
            "largeBagsQuantity": self.large_bags_quantity,
        }
