# Overview: Service-layer operations for retail inventory, receipt confirmations and discrepancies.

"""
Retail Inventory Reconciliation

RetailInventory holds the current bag counts per (shop, coffee); it is a
cache of the latest value. RetailInventoryHistory is the audit record:
every write, manual or dispatch, appends exactly one history row in the
same transaction as the snapshot change.

Two write paths:
- manual: a shop user overwrites the counts (update_type="manual")
- dispatch: delivered bags are added on top (update_type="dispatch")

Discrepancies are raised by order_service.confirm_receipt when a shop
reports receiving fewer bags than were dispatched.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import (
    CoffeeLargeBagTarget,
    DispatchConfirmation,
    GreenCoffee,
    InventoryDiscrepancy,
    RetailInventory,
    RetailInventoryHistory,
    Shop,
    User,
)
from ..models.retail import UPDATE_TYPE_DISPATCH, UPDATE_TYPE_MANUAL
from ..validation import MAX_BAG_COUNT, coerce_int
from . import access_service
from .concurrency import lock_for_update
from roastery.time_utils import utcnow


DISCREPANCY_OPEN = "open"
DISCREPANCY_RESOLVED = "resolved"
DISCREPANCY_STATUSES = (DISCREPANCY_OPEN, DISCREPANCY_RESOLVED)

CONFIRMATION_PENDING = "pending"
CONFIRMATION_CONFIRMED = "confirmed"
CONFIRMATION_DISCREPANCY = "discrepancy_reported"


def parse_bag_count(key: str, value) -> int:
    """Non-negative integer bag count; missing means zero."""
    if value is None:
        return 0
    count = coerce_int(key, value)
    if count < 0:
        raise ValidationError(f"{key} must be >= 0")
    if count > MAX_BAG_COUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_BAG_COUNT}")
    return count


def _require_shop_and_coffee(shop_id: int, green_coffee_id: int) -> tuple[Shop, GreenCoffee]:
    shop = db.session.get(Shop, shop_id)
    if not shop or not shop.is_active:
        raise NotFound("Shop not found")
    coffee = db.session.get(GreenCoffee, green_coffee_id)
    if not coffee:
        raise NotFound("Green coffee not found")
    return shop, coffee


def _write_inventory_inner(
    *,
    shop_id: int,
    green_coffee_id: int,
    small_bags: int,
    large_bags: int,
    additive: bool,
    update_type: str,
    actor_id: int | None,
    notes: str | None,
) -> tuple[RetailInventory, RetailInventoryHistory]:
    """
    Core upsert without validation or commit.

    Locks the snapshot row, applies the change and appends the matching
    history row. Shared by the manual path and the delivery side effect.
    """
    inventory = lock_for_update(
        db.session.query(RetailInventory).filter_by(shop_id=shop_id, green_coffee_id=green_coffee_id)
    ).first()

    now = utcnow()
    if inventory is None:
        inventory = RetailInventory(
            shop_id=shop_id,
            green_coffee_id=green_coffee_id,
            small_bags=0,
            large_bags=0,
        )
        db.session.add(inventory)

    previous_small = inventory.small_bags or 0
    previous_large = inventory.large_bags or 0

    if additive:
        new_small = previous_small + small_bags
        new_large = previous_large + large_bags
    else:
        new_small = small_bags
        new_large = large_bags

    inventory.small_bags = new_small
    inventory.large_bags = new_large
    inventory.update_type = update_type
    inventory.updated_by_id = actor_id
    inventory.notes = notes
    inventory.updated_at = now
    db.session.flush()

    history = RetailInventoryHistory(
        retail_inventory_id=inventory.id,
        shop_id=shop_id,
        green_coffee_id=green_coffee_id,
        previous_small_bags=previous_small,
        previous_large_bags=previous_large,
        new_small_bags=new_small,
        new_large_bags=new_large,
        update_type=update_type,
        updated_by_id=actor_id,
        notes=notes,
        updated_at=now,
    )
    db.session.add(history)
    db.session.flush()
    return inventory, history


def set_manual_inventory(
    *,
    shop_id: int,
    green_coffee_id: int,
    small_bags,
    large_bags,
    actor: User,
    notes: str | None = None,
) -> RetailInventory:
    """Overwrite the counts for (shop, coffee)."""
    small = parse_bag_count("smallBags", small_bags)
    large = parse_bag_count("largeBags", large_bags)

    access_service.require_shop_access(actor, shop_id)
    _require_shop_and_coffee(shop_id, green_coffee_id)

    inventory, _ = _write_inventory_inner(
        shop_id=shop_id,
        green_coffee_id=green_coffee_id,
        small_bags=small,
        large_bags=large,
        additive=False,
        update_type=UPDATE_TYPE_MANUAL,
        actor_id=actor.id,
        notes=notes,
    )
    db.session.commit()

    current_app.logger.info(
        "Retail inventory set: shop=%s coffee=%s small=%s large=%s by=%s",
        shop_id, green_coffee_id, small, large, actor.id,
    )
    return inventory


def apply_dispatch(
    *,
    shop_id: int,
    green_coffee_id: int,
    small_bags: int,
    large_bags: int,
    actor: User,
    notes: str | None = None,
    commit: bool = True,
) -> RetailInventory:
    """
    Add delivered bags to (shop, coffee).

    With commit=False the caller owns the transaction; the order
    lifecycle uses this so the status change and the increment land
    together.
    """
    small = parse_bag_count("smallBags", small_bags)
    large = parse_bag_count("largeBags", large_bags)

    inventory, _ = _write_inventory_inner(
        shop_id=shop_id,
        green_coffee_id=green_coffee_id,
        small_bags=small,
        large_bags=large,
        additive=True,
        update_type=UPDATE_TYPE_DISPATCH,
        actor_id=actor.id,
        notes=notes,
    )

    if commit:
        db.session.commit()
    return inventory


def _targets_by_coffee(shop_id: int) -> dict[int, int]:
    rows = db.session.query(CoffeeLargeBagTarget).filter_by(shop_id=shop_id).all()
    return {row.green_coffee_id: row.desired_large_bags for row in rows}


def stock_status(inventory: RetailInventory, shop: Shop, large_targets: dict[int, int]) -> dict:
    """Low-stock flags against the shop's targets (display only)."""
    target_small = shop.desired_small_bags
    target_large = large_targets.get(inventory.green_coffee_id, shop.desired_large_bags)
    is_low_small = inventory.small_bags < target_small
    is_low_large = inventory.large_bags < target_large
    return {
        "targetSmallBags": target_small,
        "targetLargeBags": target_large,
        "isLowSmallBags": is_low_small,
        "isLowLargeBags": is_low_large,
        "isLowStock": is_low_small or is_low_large,
    }


def list_inventory(actor: User, shop_id: int | None = None) -> list[dict]:
    """
    Snapshot rows with stock warnings.

    Without shop_id, admins get every shop and other roles get the shops
    they are assigned to.
    """
    query = db.session.query(RetailInventory).join(Shop, Shop.id == RetailInventory.shop_id)
    if shop_id is not None:
        access_service.require_shop_access(actor, shop_id)
        query = query.filter(RetailInventory.shop_id == shop_id)
    else:
        allowed = access_service.accessible_shop_ids(actor)
        if allowed is not None:
            query = query.filter(RetailInventory.shop_id.in_(allowed or [-1]))
        query = query.filter(Shop.is_active.is_(True))

    rows = query.order_by(RetailInventory.shop_id.asc(), RetailInventory.green_coffee_id.asc()).all()

    targets_cache: dict[int, dict[int, int]] = {}
    result = []
    for row in rows:
        if row.shop_id not in targets_cache:
            targets_cache[row.shop_id] = _targets_by_coffee(row.shop_id)
        item = row.to_dict()
        item["stockStatus"] = stock_status(row, row.shop, targets_cache[row.shop_id])
        result.append(item)
    return result


def list_history(actor: User, shop_id: int, *, limit: int = 500) -> list[RetailInventoryHistory]:
    access_service.require_shop_access(actor, shop_id)
    return (
        db.session.query(RetailInventoryHistory)
        .filter(RetailInventoryHistory.shop_id == shop_id)
        .order_by(RetailInventoryHistory.updated_at.desc(), RetailInventoryHistory.id.desc())
        .limit(limit)
        .all()
    )


def list_pending_confirmations(actor: User, shop_id: int) -> list[DispatchConfirmation]:
    """Dispatched orders still waiting for the shop to confirm receipt."""
    access_service.require_shop_access(actor, shop_id)
    return (
        db.session.query(DispatchConfirmation)
        .filter(
            DispatchConfirmation.shop_id == shop_id,
            DispatchConfirmation.status == CONFIRMATION_PENDING,
        )
        .order_by(DispatchConfirmation.created_at.asc(), DispatchConfirmation.id.asc())
        .all()
    )


def record_discrepancy_inner(
    *,
    confirmation: DispatchConfirmation,
    received_small: int,
    received_large: int,
    notes: str | None,
    confirmed_at,
) -> InventoryDiscrepancy:
    """Append a discrepancy row; differences are received minus dispatched."""
    discrepancy = InventoryDiscrepancy(
        confirmation_id=confirmation.id,
        order_id=confirmation.order_id,
        shop_id=confirmation.shop_id,
        green_coffee_id=confirmation.green_coffee_id,
        dispatched_small_bags=confirmation.dispatched_small_bags,
        dispatched_large_bags=confirmation.dispatched_large_bags,
        received_small_bags=received_small,
        received_large_bags=received_large,
        small_bags_difference=received_small - confirmation.dispatched_small_bags,
        large_bags_difference=received_large - confirmation.dispatched_large_bags,
        status=DISCREPANCY_OPEN,
        notes=notes,
        confirmed_at=confirmed_at,
    )
    db.session.add(discrepancy)
    db.session.flush()

    current_app.logger.warning(
        "Inventory discrepancy recorded: order=%s shop=%s small=%+d large=%+d",
        confirmation.order_id, confirmation.shop_id,
        discrepancy.small_bags_difference, discrepancy.large_bags_difference,
    )
    return discrepancy


def list_discrepancies(
    actor: User,
    shop_id: int | None = None,
    status: str | None = None,
) -> list[InventoryDiscrepancy]:
    """Newest first; non-admin roles only see their shops."""
    if status is not None and status not in DISCREPANCY_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(DISCREPANCY_STATUSES)}")

    query = db.session.query(InventoryDiscrepancy)
    if shop_id is not None:
        access_service.require_shop_access(actor, shop_id)
        query = query.filter(InventoryDiscrepancy.shop_id == shop_id)
    else:
        allowed = access_service.accessible_shop_ids(actor)
        if allowed is not None:
            query = query.filter(InventoryDiscrepancy.shop_id.in_(allowed or [-1]))

    if status is not None:
        query = query.filter(InventoryDiscrepancy.status == status)

    return query.order_by(InventoryDiscrepancy.created_at.desc(), InventoryDiscrepancy.id.desc()).all()


def resolve_discrepancy(discrepancy_id: int, *, actor: User, notes: str | None = None) -> InventoryDiscrepancy:
    discrepancy = lock_for_update(
        db.session.query(InventoryDiscrepancy).filter_by(id=discrepancy_id)
    ).first()
    if not discrepancy:
        raise NotFound("Discrepancy not found")
    if discrepancy.status == DISCREPANCY_RESOLVED:
        raise ValidationError("Discrepancy is already resolved")

    discrepancy.status = DISCREPANCY_RESOLVED
    discrepancy.resolved_by_id = actor.id
    discrepancy.resolved_at = utcnow()
    if notes:
        discrepancy.notes = f"{discrepancy.notes}\n{notes}" if discrepancy.notes else notes
    db.session.commit()

    current_app.logger.info("Inventory discrepancy resolved: id=%s by=%s", discrepancy.id, actor.id)
    return discrepancy


def get_large_bag_targets(actor: User, shop_id: int) -> list[CoffeeLargeBagTarget]:
    access_service.require_shop_access(actor, shop_id)
    return (
        db.session.query(CoffeeLargeBagTarget)
        .filter_by(shop_id=shop_id)
        .order_by(CoffeeLargeBagTarget.green_coffee_id.asc())
        .all()
    )


def set_large_bag_target(actor: User, shop_id: int, green_coffee_id: int, desired_large_bags) -> CoffeeLargeBagTarget:
    desired = parse_bag_count("desiredLargeBags", desired_large_bags)
    access_service.require_shop_access(actor, shop_id)
    _require_shop_and_coffee(shop_id, green_coffee_id)

    target = db.session.query(CoffeeLargeBagTarget).filter_by(
        shop_id=shop_id, green_coffee_id=green_coffee_id
    ).first()
    if target is None:
        target = CoffeeLargeBagTarget(shop_id=shop_id, green_coffee_id=green_coffee_id)
        db.session.add(target)

    target.desired_large_bags = desired
    target.updated_at = utcnow()
    db.session.commit()
    return target
