"""
Retail inventory reconciliation tests.

Verifies:
- Manual counts overwrite the snapshot and append one history row
- Receipt confirmation adds what arrived and records short deliveries
- Discrepancies can be listed per shop and resolved once
"""

import pytest

from roastery.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from roastery.extensions import db
from roastery.models import DispatchConfirmation, InventoryDiscrepancy, RetailInventory, RetailInventoryHistory
from roastery.services import order_service, retail_inventory_service


@pytest.fixture
def dispatched_order(manager, roaster, shop_a, yirgacheffe):
    order = order_service.create_order(
        shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
        small_bags=5, large_bags=2, requested_by=manager,
    )
    order_service.update_order_status(order.id, "roasted", actor=roaster)
    return order_service.update_order_status(order.id, "dispatched", actor=roaster)


class TestManualInventory:

    def test_manual_set_overwrites_and_logs(self, barista, shop_a, yirgacheffe):
        retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=4, large_bags=1, actor=barista, notes="Monday count",
        )
        inventory = retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=2, large_bags=0, actor=barista,
        )
        assert (inventory.small_bags, inventory.large_bags) == (2, 0)
        assert inventory.update_type == "manual"
        assert db.session.query(RetailInventory).count() == 1

        history = retail_inventory_service.list_history(barista, shop_a.id)
        assert len(history) == 2
        latest = history[0]
        assert (latest.previous_small_bags, latest.new_small_bags) == (4, 2)
        assert latest.updated_by_id == barista.id

    def test_missing_counts_default_to_zero(self, barista, shop_a, yirgacheffe):
        inventory = retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=None, large_bags=3, actor=barista,
        )
        assert (inventory.small_bags, inventory.large_bags) == (0, 3)

    @pytest.mark.parametrize("value", [-1, "abc", 1.5, True])
    def test_bad_counts_rejected(self, barista, shop_a, yirgacheffe, value):
        with pytest.raises(ValidationError):
            retail_inventory_service.set_manual_inventory(
                shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
                small_bags=value, large_bags=0, actor=barista,
            )
        assert db.session.query(RetailInventoryHistory).count() == 0

    def test_other_shop_forbidden(self, barista_b, shop_a, yirgacheffe):
        with pytest.raises(Forbidden):
            retail_inventory_service.set_manual_inventory(
                shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
                small_bags=1, large_bags=1, actor=barista_b,
            )

    def test_unknown_coffee(self, owner, shop_a):
        with pytest.raises(NotFound):
            retail_inventory_service.set_manual_inventory(
                shop_id=shop_a.id, green_coffee_id=4242,
                small_bags=1, large_bags=1, actor=owner,
            )

    def test_apply_dispatch_is_additive(self, owner, shop_a, yirgacheffe):
        retail_inventory_service.apply_dispatch(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id, small_bags=3, large_bags=1, actor=owner,
        )
        inventory = retail_inventory_service.apply_dispatch(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id, small_bags=2, large_bags=0, actor=owner,
        )
        assert (inventory.small_bags, inventory.large_bags) == (5, 1)
        assert db.session.query(RetailInventoryHistory).filter_by(update_type="dispatch").count() == 2


class TestStockStatus:

    def test_low_stock_against_shop_targets(self, barista, shop_a, yirgacheffe):
        retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=25, large_bags=4, actor=barista,
        )
        rows = retail_inventory_service.list_inventory(barista, shop_a.id)
        status = rows[0]["stockStatus"]
        assert status["isLowSmallBags"] is False
        assert status["isLowLargeBags"] is True
        assert status["isLowStock"] is True

    def test_per_coffee_large_bag_target(self, barista, shop_a, yirgacheffe):
        retail_inventory_service.set_large_bag_target(barista, shop_a.id, yirgacheffe.id, 3)
        retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=25, large_bags=4, actor=barista,
        )
        status = retail_inventory_service.list_inventory(barista, shop_a.id)[0]["stockStatus"]
        assert status["targetLargeBags"] == 3
        assert status["isLowStock"] is False

    def test_listing_is_scoped_to_shop_access(self, owner, barista_b, shop_a, yirgacheffe):
        retail_inventory_service.set_manual_inventory(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=1, large_bags=1, actor=owner,
        )
        assert retail_inventory_service.list_inventory(barista_b) == []
        assert len(retail_inventory_service.list_inventory(owner)) == 1


class TestReceiptConfirmation:

    def test_pending_confirmation_listed(self, dispatched_order, barista, shop_a):
        confirmations = retail_inventory_service.list_pending_confirmations(barista, shop_a.id)
        assert [c.order_id for c in confirmations] == [dispatched_order.id]

    def test_full_receipt_has_no_discrepancy(self, dispatched_order, barista, shop_a, yirgacheffe):
        order, discrepancy = order_service.confirm_receipt(
            dispatched_order.id, received_small_bags=5, received_large_bags=2, actor=barista,
        )
        assert discrepancy is None
        assert order.status == "delivered"
        assert order.dispatch_confirmation.status == "confirmed"
        assert retail_inventory_service.list_pending_confirmations(barista, shop_a.id) == []

    def test_short_receipt_records_discrepancy(self, dispatched_order, barista, shop_a, yirgacheffe):
        order, discrepancy = order_service.confirm_receipt(
            dispatched_order.id, received_small_bags=3, received_large_bags=2,
            actor=barista, notes="Two bags torn",
        )
        assert order.status == "delivered"
        assert discrepancy.small_bags_difference == -2
        assert discrepancy.large_bags_difference == 0
        assert discrepancy.status == "open"

        inventory = db.session.query(RetailInventory).filter_by(shop_id=shop_a.id).one()
        assert (inventory.small_bags, inventory.large_bags) == (3, 2)

        confirmation = db.session.query(DispatchConfirmation).filter_by(order_id=order.id).one()
        assert confirmation.status == "discrepancy_reported"
        assert (confirmation.received_small_bags, confirmation.received_large_bags) == (3, 2)

    def test_over_receipt_rejected(self, dispatched_order, barista):
        with pytest.raises(ValidationError):
            order_service.confirm_receipt(
                dispatched_order.id, received_small_bags=6, received_large_bags=2, actor=barista,
            )
        assert db.session.query(InventoryDiscrepancy).count() == 0

    def test_receipt_requires_dispatched_order(self, manager, barista, shop_a, yirgacheffe):
        order = order_service.create_order(
            shop_id=shop_a.id, green_coffee_id=yirgacheffe.id,
            small_bags=1, large_bags=0, requested_by=manager,
        )
        with pytest.raises(InvalidTransition):
            order_service.confirm_receipt(order.id, received_small_bags=1, received_large_bags=0, actor=barista)

    def test_receipt_by_other_shop_forbidden(self, dispatched_order, barista_b):
        with pytest.raises(Forbidden):
            order_service.confirm_receipt(
                dispatched_order.id, received_small_bags=5, received_large_bags=2, actor=barista_b,
            )


class TestDiscrepancies:

    @pytest.fixture
    def discrepancy(self, dispatched_order, barista):
        _, discrepancy = order_service.confirm_receipt(
            dispatched_order.id, received_small_bags=5, received_large_bags=1, actor=barista,
        )
        return discrepancy

    def test_listing_by_shop_and_status(self, discrepancy, owner, barista, barista_b, shop_a):
        assert [d.id for d in retail_inventory_service.list_discrepancies(barista)] == [discrepancy.id]
        assert retail_inventory_service.list_discrepancies(barista_b) == []
        assert retail_inventory_service.list_discrepancies(owner, shop_id=shop_a.id, status="resolved") == []

    def test_bad_status_filter(self, owner):
        with pytest.raises(ValidationError):
            retail_inventory_service.list_discrepancies(owner, status="closed")

    def test_resolve_once(self, discrepancy, owner):
        resolved = retail_inventory_service.resolve_discrepancy(discrepancy.id, actor=owner, notes="Credited")
        assert resolved.status == "resolved"
        assert resolved.resolved_by_id == owner.id
        assert resolved.resolved_at is not None

        with pytest.raises(ValidationError):
            retail_inventory_service.resolve_discrepancy(discrepancy.id, actor=owner)

    def test_resolve_unknown(self, owner):
        with pytest.raises(NotFound):
            retail_inventory_service.resolve_discrepancy(777, actor=owner)
