"""
HTTP surface tests.

Verifies:
- Unauthenticated requests return 401
- Capability and shop checks return 403 with an error code
- Domain errors map onto their status codes
"""

import pytest

from roastery.extensions import db
from roastery.models import GreenCoffee, RoastingBatch
from roastery.services import coffee_service

from .conftest import login


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/shops"),
            ("GET", "/api/green-coffee"),
            ("POST", "/api/roasting-batches"),
            ("GET", "/api/orders"),
            ("PATCH", "/api/orders/1/status"),
            ("POST", "/api/orders/1/receipt"),
            ("GET", "/api/retail-inventory"),
            ("GET", "/api/dispatch-confirmations"),
            ("GET", "/api/inventory-discrepancies"),
            ("GET", "/api/billing/quantities"),
            ("POST", "/api/billing/events"),
            ("GET", "/api/analytics/orders"),
            ("GET", "/api/reports/inventory-status"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/orders", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestBaristaDenied:
    """Shop roles cannot reach roastery or billing operations."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/billing/quantities"),
            ("POST", "/api/billing/events"),
            ("GET", "/api/billing/history"),
            ("POST", "/api/roasting-batches"),
            ("POST", "/api/green-coffee"),
            ("GET", "/api/users"),
            ("POST", "/api/shops"),
            ("POST", "/api/inventory-discrepancies/1/resolve"),
            ("GET", "/api/analytics/inventory"),
        ],
    )
    def test_denied(self, client, barista_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=barista_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Forbidden"

    def test_other_shop_inventory_forbidden(self, client, barista_headers, shop_b):
        resp = client.get(f"/api/retail-inventory?shopId={shop_b.id}", headers=barista_headers)
        assert resp.status_code == 403

    def test_history_requires_shop_id(self, client, barista_headers):
        resp = client.get("/api/retail-inventory/history", headers=barista_headers)
        assert resp.status_code == 400


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"

    def test_cors_allowed_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_cors_unknown_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestOrderRoutes:

    def _create(self, client, headers, shop, coffee, small=10, large=2):
        return client.post(
            "/api/orders",
            json={"shopId": shop.id, "greenCoffeeId": coffee.id, "smallBags": small, "largeBags": large},
            headers=headers,
        )

    def test_create_and_list(self, client, manager_headers, shop_a, yirgacheffe):
        resp = self._create(client, manager_headers, shop_a, yirgacheffe)
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["status"] == "pending"
        assert order["allowedNextStatuses"] == []

        listed = client.get(f"/api/orders?shopId={shop_a.id}", headers=manager_headers).get_json()["orders"]
        assert [o["id"] for o in listed] == [order["id"]]

    def test_create_without_shop(self, client, manager_headers, yirgacheffe):
        resp = client.post(
            "/api/orders",
            json={"greenCoffeeId": yirgacheffe.id, "smallBags": 1},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_invalid_transition_is_403(self, client, manager_headers, owner_headers, shop_a, yirgacheffe):
        order_id = self._create(client, manager_headers, shop_a, yirgacheffe).get_json()["order"]["id"]
        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "pending"}, headers=owner_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "InvalidTransition"

    def test_forbidden_transition_is_403(self, client, manager_headers, shop_a, yirgacheffe):
        order_id = self._create(client, manager_headers, shop_a, yirgacheffe).get_json()["order"]["id"]
        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "roasted"}, headers=manager_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Forbidden"

    def test_status_required(self, client, owner_headers, manager_headers, shop_a, yirgacheffe):
        order_id = self._create(client, manager_headers, shop_a, yirgacheffe).get_json()["order"]["id"]
        resp = client.patch(f"/api/orders/{order_id}/status", json={}, headers=owner_headers)
        assert resp.status_code == 400

    def test_unknown_order_is_404(self, client, owner_headers):
        resp = client.get("/api/orders/999", headers=owner_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "NotFound"

    def test_side_effect_failure_is_500(
        self, client, monkeypatch, manager_headers, roaster_headers, barista_headers, shop_a, yirgacheffe,
    ):
        from roastery.services import retail_inventory_service

        order_id = self._create(client, manager_headers, shop_a, yirgacheffe).get_json()["order"]["id"]
        for status in ("roasted", "dispatched"):
            resp = client.patch(f"/api/orders/{order_id}/status", json={"status": status}, headers=roaster_headers)
            assert resp.status_code == 200

        def broken(**kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(retail_inventory_service, "apply_dispatch", broken)

        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=barista_headers)
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "SideEffectFailure"

        order = client.get(f"/api/orders/{order_id}", headers=barista_headers).get_json()["order"]
        assert order["status"] == "dispatched"
        assert client.get(
            f"/api/retail-inventory?shopId={shop_a.id}", headers=barista_headers
        ).get_json()["inventory"] == []


class TestRoastingRoutes:

    def test_insufficient_stock_is_400(self, client, roaster_headers, yirgacheffe):
        resp = client.post(
            "/api/roasting-batches",
            json={"greenCoffeeId": yirgacheffe.id, "plannedAmount": 11},
            headers=roaster_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "InsufficientStock"

    def test_batch_write_failure_leaves_stock(self, client, monkeypatch, roaster_headers, yirgacheffe):
        def broken(instance):
            raise RuntimeError("insert failed")

        # Fails after the lot has been decremented in the session
        monkeypatch.setattr(coffee_service.db.session, "add", broken)

        resp = client.post(
            "/api/roasting-batches",
            json={"greenCoffeeId": yirgacheffe.id, "plannedAmount": 4},
            headers=roaster_headers,
        )
        assert resp.status_code == 500

        db.session.expire_all()
        assert float(db.session.get(GreenCoffee, yirgacheffe.id).current_stock) == 10.0
        assert db.session.query(RoastingBatch).count() == 0


class TestBillingRoutes:

    def test_bad_split_is_400(self, client, owner_headers):
        resp = client.post(
            "/api/billing/events",
            json={
                "primarySplitPercentage": 60,
                "secondarySplitPercentage": 30,
                "quantities": [{"grade": "Premium", "smallBagsQuantity": 1, "largeBagsQuantity": 0}],
                "cycleStartDate": "2026-01-01",
                "cycleEndDate": "2026-01-31",
            },
            headers=owner_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "ValidationError"

    def test_granted_capability_opens_billing(self, client, owner_headers, barista, barista_headers):
        resp = client.post(
            f"/api/users/{barista.id}/capabilities",
            json={"capability": "billing.read"},
            headers=owner_headers,
        )
        assert resp.status_code == 201
        assert client.get("/api/billing/quantities", headers=barista_headers).status_code == 200

        resp = client.delete(f"/api/users/{barista.id}/capabilities/billing.read", headers=owner_headers)
        assert resp.status_code == 200
        assert client.get("/api/billing/quantities", headers=barista_headers).status_code == 403


class TestUserRoutes:

    def test_duplicate_username_is_409(self, client, owner_headers, barista):
        resp = client.post(
            "/api/users",
            json={"username": barista.username, "password": "Password123!", "role": "barista"},
            headers=owner_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Conflict"

    def test_retail_owner_cannot_delete_users(self, client, retail_owner, barista):
        headers = login(client, retail_owner.username)
        assert client.delete(f"/api/users/{barista.id}", headers=headers).status_code == 403

    def test_user_reads_own_shops(self, client, barista, barista_headers, shop_a):
        resp = client.get(f"/api/users/{barista.id}/shops", headers=barista_headers)
        assert resp.status_code == 200
        assert resp.get_json()["shopIds"] == [shop_a.id]

    def test_user_cannot_read_other_shops(self, client, manager, barista_headers):
        assert client.get(f"/api/users/{manager.id}/shops", headers=barista_headers).status_code == 403

    def test_capability_catalog(self, client, owner_headers):
        resp = client.get("/api/users/capability-catalog", headers=owner_headers)
        assert resp.status_code == 200
        by_code = {c["code"]: c for c in resp.get_json()["capabilities"]}
        assert by_code["billing.write"]["category"] == "BILLING"
        assert "discrepancy.resolve" in by_code
