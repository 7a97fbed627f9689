"""
End-to-end scenarios over the HTTP API.

Each test walks a realistic day at the roastery: roast, order, dispatch,
receive, reconcile and bill.
"""

from decimal import Decimal

from roastery.extensions import db
from roastery.models import GreenCoffee


def test_roast_consumes_green_coffee(client, roaster_headers, yirgacheffe):
    resp = client.post(
        "/api/roasting-batches",
        json={"greenCoffeeId": yirgacheffe.id, "plannedAmount": 4, "smallBagsProduced": 12},
        headers=roaster_headers,
    )
    assert resp.status_code == 201
    batch = resp.get_json()["batch"]
    assert batch["plannedAmount"] == 4.0
    assert batch["greenCoffee"]["currentStock"] == 6.0

    db.session.expire_all()
    assert db.session.get(GreenCoffee, yirgacheffe.id).current_stock == Decimal("6.00")

    batches = client.get("/api/roasting-batches", headers=roaster_headers).get_json()["batches"]
    assert len(batches) == 1


def test_short_delivery_is_reconciled(
    client, manager_headers, roaster_headers, barista_headers, owner_headers, shop_a, yirgacheffe,
):
    resp = client.post(
        "/api/orders",
        json={"shopId": shop_a.id, "greenCoffeeId": yirgacheffe.id, "smallBags": 5, "largeBags": 0},
        headers=manager_headers,
    )
    order_id = resp.get_json()["order"]["id"]

    for status in ("roasted", "dispatched"):
        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": status}, headers=roaster_headers)
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == status

    pending = client.get(f"/api/dispatch-confirmations?shopId={shop_a.id}", headers=barista_headers)
    assert [c["orderId"] for c in pending.get_json()["confirmations"]] == [order_id]

    resp = client.post(
        f"/api/orders/{order_id}/receipt",
        json={"receivedSmallBags": 3, "receivedLargeBags": 0, "notes": "Two bags missing"},
        headers=barista_headers,
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["order"]["status"] == "delivered"
    assert body["discrepancy"]["smallBagsDifference"] == -2
    assert body["discrepancy"]["largeBagsDifference"] == 0

    inventory = client.get(f"/api/retail-inventory?shopId={shop_a.id}", headers=barista_headers).get_json()
    assert [(row["smallBags"], row["largeBags"]) for row in inventory["inventory"]] == [(3, 0)]

    history = client.get(
        f"/api/retail-inventory/history?shopId={shop_a.id}", headers=barista_headers
    ).get_json()["history"]
    assert history[0]["updateType"] == "dispatch"

    discrepancies = client.get(
        "/api/inventory-discrepancies?status=open", headers=owner_headers
    ).get_json()["discrepancies"]
    assert len(discrepancies) == 1

    resp = client.post(
        f"/api/inventory-discrepancies/{discrepancies[0]['id']}/resolve",
        json={"notes": "Credited on next invoice"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["discrepancy"]["status"] == "resolved"

    # A second receipt for the same order is not a valid transition
    resp = client.post(
        f"/api/orders/{order_id}/receipt",
        json={"receivedSmallBags": 5, "receivedLargeBags": 0},
        headers=barista_headers,
    )
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "InvalidTransition"


def test_over_receipt_is_rejected(client, manager_headers, owner_headers, barista_headers, shop_a, yirgacheffe):
    order_id = client.post(
        "/api/orders",
        json={"shopId": shop_a.id, "greenCoffeeId": yirgacheffe.id, "smallBags": 2},
        headers=manager_headers,
    ).get_json()["order"]["id"]
    client.patch(f"/api/orders/{order_id}/status", json={"status": "dispatched"}, headers=owner_headers)

    resp = client.post(
        f"/api/orders/{order_id}/receipt",
        json={"receivedSmallBags": 3, "receivedLargeBags": 0},
        headers=barista_headers,
    )
    assert resp.status_code == 400
    order = client.get(f"/api/orders/{order_id}", headers=barista_headers).get_json()["order"]
    assert order["status"] == "dispatched"
    assert order["dispatchConfirmation"]["status"] == "pending"


def test_billing_cycle(client, owner_headers, manager_headers, barista_headers, shop_a, santos):
    order_id = client.post(
        "/api/orders",
        json={"shopId": shop_a.id, "greenCoffeeId": santos.id, "smallBags": 20, "largeBags": 10},
        headers=manager_headers,
    ).get_json()["order"]["id"]
    client.patch(f"/api/orders/{order_id}/status", json={"status": "dispatched"}, headers=owner_headers)
    resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=barista_headers)
    assert resp.status_code == 200

    unbilled = client.get("/api/billing/quantities", headers=owner_headers).get_json()
    premium = next(q for q in unbilled["quantities"] if q["grade"] == "Premium")
    assert (premium["smallBagsQuantity"], premium["largeBagsQuantity"]) == (20, 10)

    resp = client.post(
        "/api/billing/events",
        json={
            "primarySplitPercentage": 70,
            "secondarySplitPercentage": 30,
            "quantities": [premium],
            "cycleStartDate": unbilled["cycleStartDate"],
            "cycleEndDate": "2030-01-01T00:00:00Z",
        },
        headers=owner_headers,
    )
    assert resp.status_code == 201
    event = resp.get_json()["event"]
    detail = event["details"][0]
    assert (detail["primarySmallBags"], detail["primaryLargeBags"]) == (14, 7)
    assert (detail["secondarySmallBags"], detail["secondaryLargeBags"]) == (6, 3)

    order = client.get(f"/api/orders/{order_id}", headers=owner_headers).get_json()["order"]
    assert order["billingEventId"] == event["id"]

    history = client.get("/api/billing/history", headers=owner_headers).get_json()["events"]
    assert [e["id"] for e in history] == [event["id"]]

    details = client.get(f"/api/billing/events/{event['id']}/details", headers=owner_headers).get_json()
    assert details["details"][0]["grade"] == "Premium"

    after = client.get("/api/billing/quantities", headers=owner_headers).get_json()
    assert "Premium" not in {q["grade"] for q in after["quantities"]}
    assert after["lastBillingEvent"]["id"] == event["id"]


def test_reports_are_scoped(client, owner_headers, manager_headers, shop_a, yirgacheffe):
    client.post(
        "/api/orders",
        json={"shopId": shop_a.id, "greenCoffeeId": yirgacheffe.id, "smallBags": 1},
        headers=manager_headers,
    )

    rows = client.get("/api/analytics/orders", headers=manager_headers).get_json()["rows"]
    assert [r["shopName"] for r in rows] == ["Old Town"]

    report = client.get("/api/reports/shop-performance", headers=owner_headers).get_json()
    assert report["shopOrders"][0]["ordersCount"] == 1

    resp = client.get("/api/analytics/orders?fromDate=2026-02-01&toDate=2026-01-01", headers=owner_headers)
    assert resp.status_code == 400

    status = client.get("/api/reports/inventory-status", headers=owner_headers).get_json()
    assert status["greenCoffeeStatus"][0]["name"] == "Ethiopia Yirgacheffe"
