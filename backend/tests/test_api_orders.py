"""
Orders and reports API tests.
"""

import pytest

from stockroom.extensions import db
from stockroom.models import Product


@pytest.fixture
def stocked(make_product, make_bundle, category):
    hammer = make_product("Hammer", stock=8, price_cents=1500, category_id=category.id)
    nails = make_product("Nails", stock=200, price_cents=5)
    kit = make_bundle("Fix Kit", [(hammer, 1), (nails, 20)])
    return {"hammer": hammer, "nails": nails, "kit": kit}


def _place(client, headers, items, **extra):
    body = {"items": items}
    body.update(extra)
    return client.post("/api/orders/place", headers=headers, json=body)


class TestOrdersApi:

    def test_place_and_fetch(self, client, client_headers, stocked):
        resp = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 2},
            {"productId": stocked["kit"].id, "quantity": 1},
        ], client_name="Carl at Work")
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["status"] == "PENDING"
        assert order["client_name"] == "Carl at Work"
        assert order["items"][0]["category"]["name"] == "tools"
        assert order["items"][1]["is_bundle"] is True

        fetched = client.get(f"/api/orders/{order['id']}", headers=client_headers)
        assert fetched.get_json()["order"]["total_cents"] == order["total_cents"]

    def test_place_unknown_product(self, client, client_headers, stocked):
        resp = _place(client, client_headers, [{"product_id": 99999, "quantity": 1}])
        assert resp.status_code == 404

    def test_place_requires_items(self, client, client_headers, db_session):
        assert _place(client, client_headers, []).status_code == 400

    def test_place_non_string_client_name(self, client, client_headers, stocked):
        resp = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 1},
        ], client_name=5)
        assert resp.status_code == 400
        assert "client_name" in resp.get_json()["error"]

    def test_admin_ships_and_cancels(self, client, client_headers, admin_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["kit"].id, "quantity": 2},
        ]).get_json()["order"]

        resp = client.put(f"/api/orders/{order['id']}", headers=admin_headers, json={"status": "shipped"})
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == "SHIPPED"
        assert db.session.get(Product, stocked["hammer"].id).stock == 6
        assert db.session.get(Product, stocked["nails"].id).stock == 160

        client.put(f"/api/orders/{order['id']}", headers=admin_headers, json={"status": "CANCELLED"})
        assert db.session.get(Product, stocked["hammer"].id).stock == 8
        assert db.session.get(Product, stocked["nails"].id).stock == 200

    def test_shortage_returns_409(self, client, client_headers, admin_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 9},
        ]).get_json()["order"]
        resp = client.put(f"/api/orders/{order['id']}", headers=admin_headers, json={"status": "DELIVERED"})
        assert resp.status_code == 409
        assert resp.get_json()["details"]["available"] == 8

    def test_client_cannot_set_status(self, client, client_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 1},
        ]).get_json()["order"]
        resp = client.put(f"/api/orders/{order['id']}", headers=client_headers, json={"status": "SHIPPED"})
        assert resp.status_code == 403

    def test_other_client_cannot_see_order(self, client, client_headers, other_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 1},
        ]).get_json()["order"]
        assert client.get(f"/api/orders/{order['id']}", headers=other_headers).status_code == 403
        assert client.delete(f"/api/orders/{order['id']}", headers=other_headers).status_code == 403
        assert client.get("/api/orders", headers=other_headers).get_json()["count"] == 0

    def test_delete_order(self, client, client_headers, admin_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 3},
        ]).get_json()["order"]
        client.put(f"/api/orders/{order['id']}", headers=admin_headers, json={"status": "SHIPPED"})

        assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404
        assert db.session.get(Product, stocked["hammer"].id).stock == 8

    def test_dashboard_counters(self, client, client_headers, admin_headers, stocked):
        order = _place(client, client_headers, [
            {"product_id": stocked["hammer"].id, "quantity": 2},
        ]).get_json()["order"]
        _place(client, client_headers, [{"product_id": stocked["nails"].id, "quantity": 1}])
        client.put(f"/api/orders/{order['id']}", headers=admin_headers, json={"status": "DELIVERED"})

        assert client.get("/api/orders/today-count", headers=admin_headers).get_json()["count"] == 2
        assert client.get("/api/orders/pending-count", headers=admin_headers).get_json()["count"] == 1
        revenue = client.get("/api/orders/today-revenue", headers=admin_headers).get_json()
        assert revenue["revenue_cents"] == 3000


class TestReportsApi:

    def test_low_stock_report(self, client, admin_headers, stocked):
        resp = client.get("/api/reports/low-stock", headers=admin_headers)
        names = [item["name"] for item in resp.get_json()["items"]]
        # hammer is above its category threshold; the uncategorised kit falls back to 100
        assert names == ["fix kit"]
        assert client.get("/api/reports/low-stock-count", headers=admin_headers).get_json()["count"] == 1

    def test_send_all_alerts(self, client, admin_headers, mailer, stocked):
        resp = client.post("/api/reports/send-all-low-stock-alerts", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sent_count"] == 1
        assert len(mailer.outbox) == 1

    def test_single_alert_unknown_product(self, client, admin_headers, mailer):
        resp = client.post("/api/reports/low-stock/alert/98765", headers=admin_headers)
        assert resp.status_code == 404

    def test_recent_activities(self, client, admin_headers, stocked):
        resp = client.get("/api/reports/recent-activities", headers=admin_headers)
        activities = resp.get_json()["activities"]
        assert 0 < len(activities) <= 15
        assert {"id", "type", "message", "time", "timestamp"} <= set(activities[0])


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"

    def test_cors_allow_list(self, client, db_session):
        allowed = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

        denied = client.get("/api/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in denied.headers
