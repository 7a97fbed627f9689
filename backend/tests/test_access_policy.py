"""
Access policy tests.

Verifies:
- Role-implied capabilities and explicit grants are unioned
- Admin roles see every active shop
- Shop-scoped roles only reach assigned, active shops
"""

import pytest

from roastery.errors import Forbidden, ValidationError
from roastery.permissions import implied_capabilities, validate_capability_code
from roastery.services import access_service, shop_service


class TestCapabilities:

    def test_barista_has_shop_capabilities_only(self, barista):
        caps = access_service.get_user_capabilities(barista)
        assert {"orders.read", "orders.write", "retail.read", "retail.write"} <= caps
        assert "billing.read" not in caps
        assert "discrepancy.resolve" not in caps

    def test_roaster_can_fulfil_and_roast(self, roaster):
        caps = access_service.get_user_capabilities(roaster)
        assert "orders.fulfil" in caps
        assert "roasting.write" in caps
        assert "billing.write" not in caps

    def test_admin_roles_imply_everything(self, owner, retail_owner):
        for user in (owner, retail_owner):
            caps = access_service.get_user_capabilities(user)
            assert {"billing.read", "billing.write", "user.manage", "discrepancy.resolve"} <= caps

    def test_legacy_owner_alias_implies_everything(self):
        assert "billing.write" in implied_capabilities("owner")

    def test_unknown_role_implies_nothing(self):
        assert implied_capabilities("janitor") == set()

    def test_grant_is_added_to_role_capabilities(self, barista, owner):
        shop_service.grant_capability(barista.id, "billing.read", granted_by=owner)
        assert access_service.user_has_capability(barista, "billing.read")

        assert shop_service.revoke_capability(barista.id, "billing.read") is True
        assert not access_service.user_has_capability(barista, "billing.read")

    def test_grant_rejects_unknown_capability(self, barista, owner):
        with pytest.raises(ValidationError):
            shop_service.grant_capability(barista.id, "coffee.drink", granted_by=owner)

    def test_validate_capability_code(self):
        assert validate_capability_code("orders.read") is True
        assert validate_capability_code("orders.delete") is False

    def test_require_capability_raises_forbidden(self, barista):
        with pytest.raises(Forbidden):
            access_service.require_capability(barista, "billing.write")


class TestShopScope:

    def test_admin_sees_every_shop(self, owner, shop_a, shop_b):
        assert access_service.has_shop_access(owner, shop_a.id)
        assert access_service.has_shop_access(owner, shop_b.id)
        assert access_service.accessible_shop_ids(owner) is None

    def test_barista_limited_to_assigned_shop(self, barista, shop_a, shop_b):
        assert access_service.has_shop_access(barista, shop_a.id)
        assert not access_service.has_shop_access(barista, shop_b.id)
        assert access_service.accessible_shop_ids(barista) == {shop_a.id}

    def test_deactivated_shop_is_not_accessible(self, barista, shop_a):
        shop_service.deactivate_shop(shop_a.id)
        assert not access_service.has_shop_access(barista, shop_a.id)
        assert access_service.get_user_shops(barista) == []

    def test_require_shop_access_raises_forbidden(self, barista, shop_b):
        with pytest.raises(Forbidden):
            access_service.require_shop_access(barista, shop_b.id)

    def test_none_shop_is_never_accessible(self, barista):
        assert not access_service.has_shop_access(barista, None)

    def test_set_user_shops_replaces_assignments(self, barista, shop_a, shop_b):
        assert shop_service.set_user_shops(barista.id, [shop_b.id]) == [shop_b.id]
        assert access_service.accessible_shop_ids(barista) == {shop_b.id}

    def test_set_user_shops_rejects_admin(self, owner, shop_a):
        with pytest.raises(ValidationError):
            shop_service.set_user_shops(owner.id, [shop_a.id])
