# Overview: Service-layer operations for green coffee lots and roasting batches.

"""
Green Coffee and Roasting Service

GreenCoffee.current_stock (kg) changes in exactly two ways:
- a manual stock edit (set_green_coffee_stock)
- consumption by a roasting batch (create_roasting_batch)

A batch reads the lot under a row lock, refuses to overdraw it, and
writes the batch and the decremented stock in one commit. Either both
rows land or neither does.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStock, NotFound, ValidationError
from ..models import GreenCoffee, RoastingBatch, User
from ..models.coffee import BATCH_STATUS_COMPLETED
from ..validation import (
    ModelValidationPolicy,
    coerce_decimal,
    enforce_rules_green_coffee,
    enforce_rules_roasting_batch,
    validate_payload,
)
from .concurrency import lock_for_update


GREEN_COFFEE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "producer",
        "country",
        "altitude",
        "cupping_notes",
        "current_stock",
        "min_threshold",
        "grade",
        "is_active",
    },
    required_on_create={"name", "producer", "country"},
)

ROASTING_BATCH_POLICY = ModelValidationPolicy(
    writable_fields={
        "green_coffee_id",
        "planned_amount",
        "roasted_amount",
        "roasting_loss",
        "small_bags_produced",
        "large_bags_produced",
    },
    required_on_create={"green_coffee_id", "planned_amount"},
)


def get_green_coffee(coffee_id: int) -> GreenCoffee:
    coffee = db.session.get(GreenCoffee, coffee_id)
    if not coffee:
        raise NotFound("Green coffee not found")
    return coffee


def list_green_coffee(*, include_inactive: bool = False, grade: str | None = None) -> list[GreenCoffee]:
    query = db.session.query(GreenCoffee)
    if not include_inactive:
        query = query.filter(GreenCoffee.is_active.is_(True))
    if grade:
        query = query.filter(GreenCoffee.grade == grade)
    return query.order_by(GreenCoffee.name.asc()).all()


def create_green_coffee(payload: dict) -> GreenCoffee:
    patch = validate_payload(model=GreenCoffee, payload=payload, policy=GREEN_COFFEE_POLICY, partial=False)
    enforce_rules_green_coffee(patch)

    coffee = GreenCoffee(**patch)
    db.session.add(coffee)
    db.session.commit()

    current_app.logger.info("Green coffee created: id=%s name=%s", coffee.id, coffee.name)
    return coffee


def update_green_coffee(coffee_id: int, payload: dict) -> GreenCoffee:
    coffee = get_green_coffee(coffee_id)
    patch = validate_payload(model=GreenCoffee, payload=payload, policy=GREEN_COFFEE_POLICY, partial=True)
    enforce_rules_green_coffee(patch)

    for key, value in patch.items():
        setattr(coffee, key, value)

    db.session.commit()
    return coffee


def set_green_coffee_stock(coffee_id: int, current_stock) -> GreenCoffee:
    """Manual stock edit: overwrite current_stock with a non-negative amount."""
    if current_stock is None:
        raise ValidationError("currentStock is required")
    amount = coerce_decimal("currentStock", current_stock)
    if amount < 0:
        raise ValidationError("currentStock must be >= 0")

    coffee = lock_for_update(db.session.query(GreenCoffee).filter_by(id=coffee_id)).first()
    if not coffee:
        raise NotFound("Green coffee not found")

    previous = coffee.current_stock
    coffee.current_stock = amount
    db.session.commit()

    current_app.logger.info("Green coffee stock set: id=%s %s -> %s", coffee.id, previous, amount)
    return coffee


def create_roasting_batch(payload: dict, *, roaster: User) -> RoastingBatch:
    """
    Record a completed roast and consume its green coffee.

    Raises InsufficientStock when planned_amount exceeds the lot's
    current stock; nothing is written in that case.
    """
    patch = validate_payload(model=RoastingBatch, payload=payload, policy=ROASTING_BATCH_POLICY, partial=False)
    enforce_rules_roasting_batch(patch)

    coffee = lock_for_update(
        db.session.query(GreenCoffee).filter_by(id=patch["green_coffee_id"])
    ).first()
    if not coffee or not coffee.is_active:
        raise NotFound("Green coffee not found")

    planned = patch["planned_amount"]
    available = Decimal(coffee.current_stock or 0)
    if planned > available:
        current_app.logger.warning(
            "Roasting batch refused: coffee=%s planned=%s available=%s", coffee.id, planned, available
        )
        raise InsufficientStock(
            f"Insufficient stock for {coffee.name}: {available} kg available, {planned} kg requested"
        )

    coffee.current_stock = available - planned

    batch = RoastingBatch(
        green_coffee_id=coffee.id,
        roaster_id=roaster.id,
        status=BATCH_STATUS_COMPLETED,
        planned_amount=planned,
        roasted_amount=patch.get("roasted_amount"),
        roasting_loss=patch.get("roasting_loss"),
        small_bags_produced=patch.get("small_bags_produced") or 0,
        large_bags_produced=patch.get("large_bags_produced") or 0,
    )
    db.session.add(batch)
    db.session.commit()

    current_app.logger.info(
        "Roasting batch created: id=%s coffee=%s planned=%s stock_after=%s",
        batch.id, coffee.id, planned, coffee.current_stock,
    )
    return batch


def list_roasting_batches(*, green_coffee_id: int | None = None) -> list[RoastingBatch]:
    query = db.session.query(RoastingBatch)
    if green_coffee_id is not None:
        query = query.filter(RoastingBatch.green_coffee_id == green_coffee_id)
    return query.order_by(RoastingBatch.created_at.desc(), RoastingBatch.id.desc()).all()
