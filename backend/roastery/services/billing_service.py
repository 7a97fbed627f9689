# Overview: Service-layer operations for billing cycles; unbilled aggregation, events and splits.

"""
Billing Aggregation

Delivered orders are summed per coffee grade. A billing event freezes
those per-grade quantities together with the split percentages between
the primary and secondary party.

Which orders count as "unbilled" depends on BILLING_EXCLUSION_MODE:
- "grade" (default): a grade that appears in any earlier billing event
  detail is never aggregated again.
- "order": orders not yet tagged with a billing_event_id are aggregated.

Orders of the captured grades are tagged with the new event's id in both
modes, so the event can always be traced back to its orders.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import BillingEvent, BillingEventDetail, GreenCoffee, Order, User
from ..models.coffee import COFFEE_GRADES
from ..validation import coerce_decimal
from .order_service import ORDER_STATUS_DELIVERED
from .retail_inventory_service import parse_bag_count
from roastery.time_utils import parse_iso_datetime, to_utc_z


EXCLUSION_MODE_GRADE = "grade"
EXCLUSION_MODE_ORDER = "order"

_HUNDRED = Decimal(100)


def _exclusion_mode() -> str:
    mode = current_app.config.get("BILLING_EXCLUSION_MODE", EXCLUSION_MODE_GRADE)
    if mode not in (EXCLUSION_MODE_GRADE, EXCLUSION_MODE_ORDER):
        raise ValueError(f"Unsupported BILLING_EXCLUSION_MODE: {mode}")
    return mode


def calculate_split(total: int, percentage) -> int:
    """round_half_up(total * percentage / 100); each party is rounded on its own."""
    value = Decimal(total) * Decimal(str(percentage)) / _HUNDRED
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def billed_grades() -> set[str]:
    rows = db.session.query(BillingEventDetail.grade).distinct().all()
    return {row[0] for row in rows}


def _unbilled_orders_query(mode: str, excluded_grades: set[str]):
    query = (
        db.session.query(Order)
        .join(GreenCoffee, GreenCoffee.id == Order.green_coffee_id)
        .filter(Order.status == ORDER_STATUS_DELIVERED)
    )
    if mode == EXCLUSION_MODE_ORDER:
        query = query.filter(Order.billing_event_id.is_(None))
    elif excluded_grades:
        query = query.filter(GreenCoffee.grade.notin_(excluded_grades))
    return query


def get_last_billing_event() -> BillingEvent | None:
    return (
        db.session.query(BillingEvent)
        .order_by(BillingEvent.created_at.desc(), BillingEvent.id.desc())
        .first()
    )


def get_unbilled_quantities() -> dict:
    """
    Per-grade totals of delivered, not yet billed orders.

    Every grade still eligible for billing is listed, zero-filled. Also
    returns the cycle start (earliest created_at among the included
    orders) and the last billing event.
    """
    mode = _exclusion_mode()
    excluded = billed_grades() if mode == EXCLUSION_MODE_GRADE else set()
    grades = [g for g in COFFEE_GRADES if g not in excluded]

    rows = (
        _unbilled_orders_query(mode, excluded)
        .with_entities(
            GreenCoffee.grade,
            db.func.coalesce(db.func.sum(Order.small_bags), 0),
            db.func.coalesce(db.func.sum(Order.large_bags), 0),
            db.func.min(Order.created_at),
        )
        .group_by(GreenCoffee.grade)
        .all()
    )

    totals = {grade: (0, 0) for grade in grades}
    cycle_start = None
    for grade, small, large, earliest in rows:
        if grade not in totals:
            continue
        totals[grade] = (int(small), int(large))
        if earliest is not None and (cycle_start is None or earliest < cycle_start):
            cycle_start = earliest

    last_event = get_last_billing_event()
    return {
        "quantities": [
            {"grade": grade, "smallBagsQuantity": small, "largeBagsQuantity": large}
            for grade, (small, large) in totals.items()
        ],
        "cycleStartDate": to_utc_z(cycle_start),
        "lastBillingEvent": last_event.to_dict() if last_event else None,
    }


def _parse_percentage(key: str, value) -> Decimal:
    if value is None:
        raise ValidationError(f"{key} is required")
    percentage = coerce_decimal(key, value)
    if percentage < 0 or percentage > _HUNDRED:
        raise ValidationError(f"{key} must be between 0 and 100")
    return percentage


def _parse_cycle_date(key: str, value):
    if not isinstance(value, str):
        raise ValidationError(f"{key} is required")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 date")
    return parsed


def _parse_quantities(quantities) -> list[dict]:
    if not isinstance(quantities, list) or not quantities:
        raise ValidationError("quantities must be a non-empty list")

    seen: set[str] = set()
    parsed = []
    for item in quantities:
        if not isinstance(item, dict):
            raise ValidationError("Each quantity must be an object")
        grade = item.get("grade")
        if grade not in COFFEE_GRADES:
            raise ValidationError(f"grade must be one of: {', '.join(COFFEE_GRADES)}")
        if grade in seen:
            raise ValidationError(f"Duplicate grade: {grade}")
        seen.add(grade)
        parsed.append({
            "grade": grade,
            "small_bags_quantity": parse_bag_count("smallBagsQuantity", item.get("smallBagsQuantity")),
            "large_bags_quantity": parse_bag_count("largeBagsQuantity", item.get("largeBagsQuantity")),
        })
    return parsed


def create_billing_event(
    *,
    primary_split_percentage,
    secondary_split_percentage,
    quantities,
    cycle_start_date,
    cycle_end_date,
    actor: User,
) -> BillingEvent:
    """
    Freeze a billing cycle.

    Percentages must each be within 0..100 and sum to 100. In grade
    exclusion mode a grade can be billed only once. The event, one
    detail row per grade and the order tags are written in one commit.
    """
    primary = _parse_percentage("primarySplitPercentage", primary_split_percentage)
    secondary = _parse_percentage("secondarySplitPercentage", secondary_split_percentage)
    if primary + secondary != _HUNDRED:
        raise ValidationError("Split percentages must sum to 100")

    details = _parse_quantities(quantities)

    start = _parse_cycle_date("cycleStartDate", cycle_start_date)
    end = _parse_cycle_date("cycleEndDate", cycle_end_date)
    if end < start:
        raise ValidationError("cycleEndDate cannot be before cycleStartDate")

    mode = _exclusion_mode()
    excluded = billed_grades() if mode == EXCLUSION_MODE_GRADE else set()
    already_billed = sorted(d["grade"] for d in details if d["grade"] in excluded)
    if already_billed:
        raise ValidationError(f"Grade already billed: {', '.join(already_billed)}")

    event = BillingEvent(
        cycle_start_date=start,
        cycle_end_date=end,
        primary_split_percentage=primary,
        secondary_split_percentage=secondary,
        created_by_id=actor.id,
    )
    db.session.add(event)
    db.session.flush()

    for detail in details:
        db.session.add(BillingEventDetail(billing_event_id=event.id, **detail))

    captured = [d["grade"] for d in details]
    orders = (
        _unbilled_orders_query(mode, excluded)
        .filter(GreenCoffee.grade.in_(captured), Order.billing_event_id.is_(None))
        .all()
    )
    for order in orders:
        order.billing_event_id = event.id

    db.session.commit()

    current_app.logger.info(
        "Billing event created: id=%s grades=%s split=%s/%s orders_tagged=%s by=%s",
        event.id, captured, primary, secondary, len(orders), actor.id,
    )
    return event


def serialize_event(event: BillingEvent) -> dict:
    """Event with its details and the computed per-party bag counts."""
    data = event.to_dict()
    primary = event.primary_split_percentage
    secondary = event.secondary_split_percentage
    data["details"] = []
    for detail in event.details:
        item = detail.to_dict()
        item["primarySmallBags"] = calculate_split(detail.small_bags_quantity, primary)
        item["primaryLargeBags"] = calculate_split(detail.large_bags_quantity, primary)
        item["secondarySmallBags"] = calculate_split(detail.small_bags_quantity, secondary)
        item["secondaryLargeBags"] = calculate_split(detail.large_bags_quantity, secondary)
        data["details"].append(item)
    return data


def get_billing_history() -> list[BillingEvent]:
    """Newest cycle first."""
    return (
        db.session.query(BillingEvent)
        .order_by(
            BillingEvent.cycle_end_date.desc(),
            BillingEvent.created_at.desc(),
            BillingEvent.id.desc(),
        )
        .all()
    )


def get_billing_event_details(event_id: int) -> list[BillingEventDetail]:
    event = db.session.get(BillingEvent, event_id)
    if not event:
        raise NotFound("Billing event not found")
    return list(event.details)
