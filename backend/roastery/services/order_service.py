# Overview: Service-layer operations for the order lifecycle state machine.

"""
Order Lifecycle Engine

Orders move strictly forward through:

    pending -> roasted -> dispatched -> delivered

Two checks run on every status change, in this order:
1. Sequence: the target must be a known status strictly later than the
   current one, otherwise InvalidTransition.
2. Role table: the actor's role must allow (current -> target), otherwise
   Forbidden. Shop roles also need access to the order's shop.

Side effects:
- reaching "dispatched" opens a DispatchConfirmation for the shop
- reaching "delivered" adds the order's bags to the shop's retail
  inventory (update_type="dispatch") and closes the confirmation

The status write and its side effects share one transaction with the
order row locked, so a delivered order can never be incremented twice.
If a side effect fails the whole change is rolled back and reported as
SideEffectFailure.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import (
    DomainError,
    Forbidden,
    InvalidTransition,
    NotFound,
    SideEffectFailure,
    ValidationError,
)
from ..models import DispatchConfirmation, GreenCoffee, Order, Shop, User
from ..permissions import (
    ADMIN_ROLES,
    ROLE_BARISTA,
    ROLE_ROASTER,
    ROLE_SHOP_MANAGER,
)
from . import access_service, retail_inventory_service
from .concurrency import lock_for_update
from .retail_inventory_service import (
    CONFIRMATION_CONFIRMED,
    CONFIRMATION_DISCREPANCY,
    CONFIRMATION_PENDING,
    parse_bag_count,
)
from roastery.time_utils import utcnow


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_ROASTED = "roasted"
ORDER_STATUS_DISPATCHED = "dispatched"
ORDER_STATUS_DELIVERED = "delivered"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_ROASTED,
    ORDER_STATUS_DISPATCHED,
    ORDER_STATUS_DELIVERED,
)

# Non-admin roles: current status -> statuses the role may set.
ROLE_TRANSITIONS = {
    ROLE_ROASTER: {
        ORDER_STATUS_PENDING: (ORDER_STATUS_ROASTED,),
        ORDER_STATUS_ROASTED: (ORDER_STATUS_DISPATCHED,),
    },
    ROLE_SHOP_MANAGER: {
        ORDER_STATUS_DISPATCHED: (ORDER_STATUS_DELIVERED,),
    },
    ROLE_BARISTA: {
        ORDER_STATUS_DISPATCHED: (ORDER_STATUS_DELIVERED,),
    },
}

SHOP_SIDE_ROLES = frozenset({ROLE_SHOP_MANAGER, ROLE_BARISTA})

# Capability that lets a role see and fulfil orders for every shop.
FULFIL_CAPABILITY = "orders.fulfil"


def status_index(status: str) -> int:
    return ORDER_STATUSES.index(status)


def allowed_next_statuses(role: str, current: str) -> list[str]:
    """Statuses `role` may move an order to from `current`."""
    if current not in ORDER_STATUSES:
        return []
    if role in ADMIN_ROLES:
        return list(ORDER_STATUSES[status_index(current) + 1:])
    return list(ROLE_TRANSITIONS.get(role, {}).get(current, ()))


def serialize_order(order: Order, actor: User) -> dict:
    data = order.to_dict()
    data["shopName"] = order.shop.name if order.shop else None
    data["greenCoffeeName"] = order.green_coffee.name if order.green_coffee else None
    data["grade"] = order.green_coffee.grade if order.green_coffee else None
    data["createdByUsername"] = order.created_by.username if order.created_by else None
    data["updatedByUsername"] = order.updated_by.username if order.updated_by else None
    data["allowedNextStatuses"] = allowed_next_statuses(actor.role, order.status)
    return data


def _has_roastery_wide_view(actor: User) -> bool:
    return access_service.user_has_capability(actor, FULFIL_CAPABILITY)


def _check_order_visible(order: Order, actor: User) -> None:
    if _has_roastery_wide_view(actor):
        return
    access_service.require_shop_access(actor, order.shop_id)


def create_order(
    *,
    shop_id: int,
    green_coffee_id: int,
    small_bags,
    large_bags,
    requested_by: User,
) -> Order:
    """
    Place a pending order. No stock is reserved.

    Both bag counts zero is rejected; an empty order has no meaning.
    """
    small = parse_bag_count("smallBags", small_bags)
    large = parse_bag_count("largeBags", large_bags)
    if small == 0 and large == 0:
        raise ValidationError("Order must contain at least one bag")

    access_service.require_shop_access(requested_by, shop_id)

    shop = db.session.get(Shop, shop_id)
    if not shop or not shop.is_active:
        raise NotFound("Shop not found")
    coffee = db.session.get(GreenCoffee, green_coffee_id)
    if not coffee or not coffee.is_active:
        raise NotFound("Green coffee not found")

    order = Order(
        shop_id=shop.id,
        green_coffee_id=coffee.id,
        small_bags=small,
        large_bags=large,
        status=ORDER_STATUS_PENDING,
        created_by_id=requested_by.id,
    )
    db.session.add(order)
    db.session.commit()

    current_app.logger.info(
        "Order created: id=%s shop=%s coffee=%s small=%s large=%s by=%s",
        order.id, shop.id, coffee.id, small, large, requested_by.id,
    )
    return order


def get_order(order_id: int, actor: User) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")
    _check_order_visible(order, actor)
    return order


def list_orders(
    actor: User,
    shop_id: int | None = None,
    status: str | None = None,
) -> list[Order]:
    """
    Newest first. Roles without roastery-wide visibility only see orders
    for their shops.
    """
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    query = db.session.query(Order)
    if shop_id is not None:
        if not _has_roastery_wide_view(actor):
            access_service.require_shop_access(actor, shop_id)
        query = query.filter(Order.shop_id == shop_id)
    elif not _has_roastery_wide_view(actor):
        allowed = access_service.accessible_shop_ids(actor)
        if allowed is not None:
            query = query.filter(Order.shop_id.in_(allowed or [-1]))

    if status is not None:
        query = query.filter(Order.status == status)

    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def _lock_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise NotFound("Order not found")
    return order


def _check_transition(order: Order, new_status: str, actor: User) -> None:
    if new_status not in ORDER_STATUSES:
        raise InvalidTransition(f"Unknown status: {new_status}")
    if status_index(new_status) <= status_index(order.status):
        raise InvalidTransition(f"Cannot change status from {order.status} to {new_status}")

    if new_status not in allowed_next_statuses(actor.role, order.status):
        current_app.logger.warning(
            "Order transition denied: order=%s user=%s role=%s %s -> %s",
            order.id, actor.id, actor.role, order.status, new_status,
        )
        raise Forbidden(f"Role {actor.role} cannot change status from {order.status} to {new_status}")

    if actor.role in SHOP_SIDE_ROLES:
        access_service.require_shop_access(actor, order.shop_id)


def _open_confirmation_inner(order: Order) -> DispatchConfirmation:
    confirmation = order.dispatch_confirmation
    if confirmation is None:
        confirmation = DispatchConfirmation(
            order=order,
            shop_id=order.shop_id,
            green_coffee_id=order.green_coffee_id,
            dispatched_small_bags=order.small_bags,
            dispatched_large_bags=order.large_bags,
            status=CONFIRMATION_PENDING,
        )
        db.session.add(confirmation)
        db.session.flush()
    return confirmation


def _deliver_inner(
    order: Order,
    *,
    actor: User,
    received_small: int,
    received_large: int,
    notes: str | None,
):
    """
    Delivery side effect without commit: inventory increment, history row,
    confirmation close and, when counts differ, one discrepancy.
    """
    confirmation = _open_confirmation_inner(order)
    now = utcnow()

    note = f"Delivery of order #{order.id}"
    if notes:
        note = f"{note}: {notes}"

    retail_inventory_service.apply_dispatch(
        shop_id=order.shop_id,
        green_coffee_id=order.green_coffee_id,
        small_bags=received_small,
        large_bags=received_large,
        actor=actor,
        notes=note,
        commit=False,
    )

    confirmation.received_small_bags = received_small
    confirmation.received_large_bags = received_large
    confirmation.confirmed_by_id = actor.id
    confirmation.confirmed_at = now

    discrepancy = None
    if (received_small, received_large) != (
        confirmation.dispatched_small_bags,
        confirmation.dispatched_large_bags,
    ):
        confirmation.status = CONFIRMATION_DISCREPANCY
        discrepancy = retail_inventory_service.record_discrepancy_inner(
            confirmation=confirmation,
            received_small=received_small,
            received_large=received_large,
            notes=notes,
            confirmed_at=now,
        )
    else:
        confirmation.status = CONFIRMATION_CONFIRMED

    return discrepancy


def _run_side_effect(order: Order, fn, **kwargs):
    """Run a side effect; on failure roll the whole transition back."""
    try:
        return fn(order, **kwargs)
    except DomainError:
        raise
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Order side effect failed: order=%s", order.id)
        raise SideEffectFailure(f"Inventory update for order {order.id} failed; status unchanged") from exc


def update_order_status(
    order_id: int,
    new_status: str,
    *,
    actor: User,
    small_bags=None,
    large_bags=None,
) -> Order:
    """
    Move an order forward.

    small_bags / large_bags optionally adjust the quantities on a
    roastery-side transition; shop roles may not adjust. Quantities are
    frozen once the order is dispatched.
    """
    order = _lock_order(order_id)
    _check_transition(order, new_status, actor)

    if small_bags is not None or large_bags is not None:
        if actor.role in SHOP_SIDE_ROLES:
            raise Forbidden("Shop roles cannot adjust order quantities")
        if status_index(order.status) >= status_index(ORDER_STATUS_DISPATCHED):
            raise ValidationError(
                "Quantities cannot change after dispatch; confirm the receipt instead"
            )
        small = parse_bag_count("smallBags", order.small_bags if small_bags is None else small_bags)
        large = parse_bag_count("largeBags", order.large_bags if large_bags is None else large_bags)
        if small == 0 and large == 0:
            raise ValidationError("Order must contain at least one bag")
        order.small_bags = small
        order.large_bags = large

    previous = order.status
    order.status = new_status
    order.updated_by_id = actor.id
    order.updated_at = utcnow()

    if status_index(new_status) >= status_index(ORDER_STATUS_DISPATCHED):
        _run_side_effect(order, _open_confirmation_inner)

    if new_status == ORDER_STATUS_DELIVERED:
        _run_side_effect(
            order,
            _deliver_inner,
            actor=actor,
            received_small=order.small_bags,
            received_large=order.large_bags,
            notes=None,
        )

    db.session.commit()

    current_app.logger.info(
        "Order status changed: id=%s %s -> %s by=%s", order.id, previous, new_status, actor.id
    )
    return order


def confirm_receipt(
    order_id: int,
    *,
    received_small_bags,
    received_large_bags,
    actor: User,
    notes: str | None = None,
):
    """
    Shop-side receipt of a dispatched order.

    Received counts must be within 0..dispatched per size; over-receipt is
    invalid input. The order becomes delivered, inventory grows by what
    actually arrived, and a short delivery records one discrepancy.

    Returns (order, discrepancy_or_None).
    """
    received_small = parse_bag_count("receivedSmallBags", received_small_bags)
    received_large = parse_bag_count("receivedLargeBags", received_large_bags)

    order = _lock_order(order_id)
    if order.status != ORDER_STATUS_DISPATCHED:
        raise InvalidTransition(f"Order is {order.status}; only dispatched orders can be received")
    _check_transition(order, ORDER_STATUS_DELIVERED, actor)

    confirmation = order.dispatch_confirmation
    dispatched_small = confirmation.dispatched_small_bags if confirmation else order.small_bags
    dispatched_large = confirmation.dispatched_large_bags if confirmation else order.large_bags

    if received_small > dispatched_small:
        raise ValidationError(f"receivedSmallBags cannot exceed dispatched quantity ({dispatched_small})")
    if received_large > dispatched_large:
        raise ValidationError(f"receivedLargeBags cannot exceed dispatched quantity ({dispatched_large})")

    order.status = ORDER_STATUS_DELIVERED
    order.updated_by_id = actor.id
    order.updated_at = utcnow()

    discrepancy = _run_side_effect(
        order,
        _deliver_inner,
        actor=actor,
        received_small=received_small,
        received_large=received_large,
        notes=notes,
    )

    db.session.commit()

    current_app.logger.info(
        "Order receipt confirmed: id=%s received=(%s, %s) discrepancy=%s by=%s",
        order.id, received_small, received_large, discrepancy is not None, actor.id,
    )
    return order, discrepancy
