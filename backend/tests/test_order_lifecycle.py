"""
Order lifecycle tests.

Verifies:
- Status only moves forward (InvalidTransition otherwise)
- The role table decides who may make each move (Forbidden otherwise)
- Dispatch opens a receipt confirmation; delivery adds bags to the shop
- A failing side effect leaves the order and inventory untouched
"""

import pytest

from roastery.errors import Forbidden, InvalidTransition, NotFound, SideEffectFailure, ValidationError
from roastery.extensions import db
from roastery.models import (
    DispatchConfirmation,
    InventoryDiscrepancy,
    Order,
    RetailInventory,
    RetailInventoryHistory,
)
from roastery.services import order_service, retail_inventory_service


@pytest.fixture
def pending_order(manager, shop_a, yirgacheffe):
    return order_service.create_order(
        shop_id=shop_a.id,
        green_coffee_id=yirgacheffe.id,
        small_bags=10,
        large_bags=2,
        requested_by=manager,
    )


def _advance(order, *statuses, actor):
    for status in statuses:
        order = order_service.update_order_status(order.id, status, actor=actor)
    return order


def _inventory(shop, coffee):
    return db.session.query(RetailInventory).filter_by(shop_id=shop.id, green_coffee_id=coffee.id).first()


class TestCreateOrder:

    def test_new_order_is_pending(self, pending_order, manager):
        assert pending_order.status == "pending"
        assert pending_order.created_by_id == manager.id
        assert pending_order.billing_event_id is None

    def test_empty_order_rejected(self, manager, shop_a, yirgacheffe):
        with pytest.raises(ValidationError):
            order_service.create_order(
                shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
                small_bags=0, large_bags=0, requested_by=manager,
            )

    def test_negative_bags_rejected(self, manager, shop_a, yirgacheffe):
        with pytest.raises(ValidationError):
            order_service.create_order(
                shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
                small_bags=-1, large_bags=3, requested_by=manager,
            )

    def test_other_shop_forbidden(self, barista_b, shop_a, yirgacheffe):
        with pytest.raises(Forbidden):
            order_service.create_order(
                shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
                small_bags=1, large_bags=0, requested_by=barista_b,
            )

    def test_unknown_coffee(self, manager, shop_a):
        with pytest.raises(NotFound):
            order_service.create_order(
                shop_id=shop_a.id, green_coffee_id=9999,
                small_bags=1, large_bags=0, requested_by=manager,
            )

    def test_creating_order_reserves_no_stock(self, pending_order, yirgacheffe):
        db.session.refresh(yirgacheffe)
        assert float(yirgacheffe.current_stock) == 10.0


class TestTransitions:

    def test_roaster_moves_pending_to_dispatched(self, pending_order, roaster):
        order = _advance(pending_order, "roasted", "dispatched", actor=roaster)
        assert order.status == "dispatched"
        assert order.updated_by_id == roaster.id
        assert order.updated_at is not None

    def test_roaster_cannot_skip_roasted(self, pending_order, roaster):
        with pytest.raises(Forbidden):
            order_service.update_order_status(pending_order.id, "dispatched", actor=roaster)

    def test_roaster_cannot_deliver(self, pending_order, roaster):
        order = _advance(pending_order, "roasted", "dispatched", actor=roaster)
        with pytest.raises(Forbidden):
            order_service.update_order_status(order.id, "delivered", actor=roaster)

    def test_barista_cannot_roast(self, pending_order, barista):
        with pytest.raises(Forbidden):
            order_service.update_order_status(pending_order.id, "roasted", actor=barista)

    def test_backward_move_is_invalid(self, pending_order, roaster, owner):
        order = _advance(pending_order, "roasted", actor=roaster)
        with pytest.raises(InvalidTransition):
            order_service.update_order_status(order.id, "pending", actor=owner)

    def test_same_status_is_invalid(self, pending_order, owner):
        with pytest.raises(InvalidTransition):
            order_service.update_order_status(pending_order.id, "pending", actor=owner)

    def test_unknown_status_is_invalid(self, pending_order, owner):
        with pytest.raises(InvalidTransition):
            order_service.update_order_status(pending_order.id, "lost", actor=owner)

    def test_sequence_checked_before_role(self, pending_order, barista):
        # A barista moving backwards gets InvalidTransition, not Forbidden
        with pytest.raises(InvalidTransition):
            order_service.update_order_status(pending_order.id, "pending", actor=barista)

    def test_barista_of_other_shop_cannot_deliver(self, pending_order, roaster, barista_b):
        order = _advance(pending_order, "roasted", "dispatched", actor=roaster)
        with pytest.raises(Forbidden):
            order_service.update_order_status(order.id, "delivered", actor=barista_b)

    def test_admin_may_skip_ahead(self, pending_order, owner):
        order = order_service.update_order_status(pending_order.id, "delivered", actor=owner)
        assert order.status == "delivered"

    def test_unknown_order(self, owner):
        with pytest.raises(NotFound):
            order_service.update_order_status(12345, "roasted", actor=owner)

    def test_allowed_next_statuses(self):
        assert order_service.allowed_next_statuses("roaster", "pending") == ["roasted"]
        assert order_service.allowed_next_statuses("barista", "dispatched") == ["delivered"]
        assert order_service.allowed_next_statuses("barista", "pending") == []
        assert order_service.allowed_next_statuses("roasteryOwner", "roasted") == ["dispatched", "delivered"]
        assert order_service.allowed_next_statuses("roasteryOwner", "delivered") == []


class TestQuantityAdjustment:

    def test_roaster_adjusts_on_dispatch(self, pending_order, roaster):
        _advance(pending_order, "roasted", actor=roaster)
        order = order_service.update_order_status(
            pending_order.id, "dispatched", actor=roaster, small_bags=8, large_bags=2,
        )
        assert (order.small_bags, order.large_bags) == (8, 2)
        assert order.dispatch_confirmation.dispatched_small_bags == 8

    def test_shop_role_cannot_adjust(self, pending_order, roaster, barista):
        _advance(pending_order, "roasted", "dispatched", actor=roaster)
        with pytest.raises(Forbidden):
            order_service.update_order_status(pending_order.id, "delivered", actor=barista, small_bags=1)

    def test_quantities_frozen_after_dispatch(self, pending_order, roaster, owner, shop_a, yirgacheffe):
        _advance(pending_order, "roasted", "dispatched", actor=roaster)

        with pytest.raises(ValidationError):
            order_service.update_order_status(pending_order.id, "delivered", actor=owner, small_bags=15)
        db.session.rollback()

        order = db.session.get(Order, pending_order.id)
        assert order.status == "dispatched"
        assert (order.small_bags, order.large_bags) == (10, 2)
        assert _inventory(shop_a, yirgacheffe) is None
        assert db.session.query(InventoryDiscrepancy).count() == 0

    def test_admin_skip_with_adjustment_matches_confirmation(self, pending_order, owner, shop_a, yirgacheffe):
        order_service.update_order_status(pending_order.id, "delivered", actor=owner, small_bags=12)

        confirmation = db.session.query(DispatchConfirmation).filter_by(order_id=pending_order.id).one()
        assert (confirmation.dispatched_small_bags, confirmation.received_small_bags) == (12, 12)
        assert confirmation.status == "confirmed"
        assert db.session.query(InventoryDiscrepancy).count() == 0
        assert _inventory(shop_a, yirgacheffe).small_bags == 12


class TestSideEffects:

    def test_dispatch_opens_confirmation(self, pending_order, roaster, shop_a):
        _advance(pending_order, "roasted", "dispatched", actor=roaster)
        confirmation = db.session.query(DispatchConfirmation).filter_by(order_id=pending_order.id).one()
        assert confirmation.status == "pending"
        assert confirmation.shop_id == shop_a.id
        assert (confirmation.dispatched_small_bags, confirmation.dispatched_large_bags) == (10, 2)

    def test_delivery_increments_inventory_once(self, pending_order, roaster, barista, shop_a, yirgacheffe):
        retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=3, large_bags=1, actor=barista,
        )
        _advance(pending_order, "roasted", "dispatched", actor=roaster)
        order_service.update_order_status(pending_order.id, "delivered", actor=barista)

        inventory = _inventory(shop_a, yirgacheffe)
        assert (inventory.small_bags, inventory.large_bags) == (13, 3)
        assert inventory.update_type == "dispatch"

        with pytest.raises(InvalidTransition):
            order_service.update_order_status(pending_order.id, "delivered", actor=barista)

        db.session.refresh(inventory)
        assert (inventory.small_bags, inventory.large_bags) == (13, 3)

        history = db.session.query(RetailInventoryHistory).filter_by(update_type="dispatch").all()
        assert len(history) == 1
        assert (history[0].previous_small_bags, history[0].new_small_bags) == (3, 13)

    def test_delivery_closes_confirmation(self, pending_order, roaster, manager):
        _advance(pending_order, "roasted", "dispatched", actor=roaster)
        order_service.update_order_status(pending_order.id, "delivered", actor=manager)
        confirmation = db.session.query(DispatchConfirmation).filter_by(order_id=pending_order.id).one()
        assert confirmation.status == "confirmed"
        assert confirmation.confirmed_by_id == manager.id

    def test_admin_skip_to_delivered_still_runs_side_effects(self, pending_order, owner, shop_a, yirgacheffe):
        order_service.update_order_status(pending_order.id, "delivered", actor=owner)
        inventory = _inventory(shop_a, yirgacheffe)
        assert (inventory.small_bags, inventory.large_bags) == (10, 2)
        assert db.session.query(DispatchConfirmation).filter_by(order_id=pending_order.id).count() == 1

    def test_failed_side_effect_rolls_back(self, monkeypatch, pending_order, roaster, barista, shop_a, yirgacheffe):
        _advance(pending_order, "roasted", "dispatched", actor=roaster)

        def broken(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(retail_inventory_service, "apply_dispatch", broken)

        with pytest.raises(SideEffectFailure):
            order_service.update_order_status(pending_order.id, "delivered", actor=barista)

        order = db.session.get(Order, pending_order.id)
        assert order.status == "dispatched"
        assert _inventory(shop_a, yirgacheffe) is None
        assert db.session.query(DispatchConfirmation).filter_by(order_id=order.id).one().status == "pending"


class TestListing:

    def test_shop_roles_see_only_their_orders(self, pending_order, barista, barista_b):
        assert [o.id for o in order_service.list_orders(barista)] == [pending_order.id]
        assert order_service.list_orders(barista_b) == []

    def test_roaster_sees_every_shop(self, pending_order, owner, shop_b, yirgacheffe, roaster):
        other = order_service.create_order(
            shop_id=shop_b.id, green_coffee_id=yirgacheffe.id,
            small_bags=1, large_bags=0, requested_by=owner,
        )
        ids = {o.id for o in order_service.list_orders(roaster)}
        assert ids == {pending_order.id, other.id}

    def test_status_filter(self, pending_order, roaster, owner):
        _advance(pending_order, "roasted", actor=roaster)
        assert order_service.list_orders(owner, status="pending") == []
        assert len(order_service.list_orders(owner, status="roasted")) == 1

    def test_bad_status_filter(self, owner):
        with pytest.raises(ValidationError):
            order_service.list_orders(owner, status="shipped")

    def test_get_order_of_other_shop_forbidden(self, pending_order, barista_b):
        with pytest.raises(Forbidden):
            order_service.get_order(pending_order.id, barista_b)

    def test_serialize_order_lists_next_statuses(self, pending_order, roaster, barista):
        assert order_service.serialize_order(pending_order, roaster)["allowedNextStatuses"] == ["roasted"]
        data = order_service.serialize_order(pending_order, barista)
        assert data["allowedNextStatuses"] == []
        assert data["grade"] == "Specialty"
        assert data["shopName"] == "Old Town"
