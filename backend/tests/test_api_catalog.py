"""
Catalog API tests: categories, products, bundles and suppliers.
"""

import pytest


def _create_product(client, headers, **fields):
    payload = {"name": "Widget", "stock": 10, "price_cents": 250}
    payload.update(fields)
    return client.post("/api/products", headers=headers, json=payload)


class TestCategories:

    def test_create_normalizes_and_lists_by_name(self, client, admin_headers):
        client.post("/api/categories", headers=admin_headers, json={"name": "  Tools "})
        client.post("/api/categories", headers=admin_headers, json={"name": "Electrical"})

        resp = client.get("/api/categories", headers=admin_headers)
        names = [c["name"] for c in resp.get_json()["categories"]]
        assert names == ["electrical", "tools"]

    def test_default_threshold_is_global_default(self, client, admin_headers):
        resp = client.post("/api/categories", headers=admin_headers, json={"name": "Paint"})
        assert resp.status_code == 201
        assert resp.get_json()["category"]["default_low_stock_threshold"] == 100

    def test_duplicate_after_normalization(self, client, admin_headers):
        client.post("/api/categories", headers=admin_headers, json={"name": "Tools"})
        resp = client.post("/api/categories", headers=admin_headers, json={"name": "TOOLS "})
        assert resp.status_code == 409

    def test_negative_threshold_rejected(self, client, admin_headers):
        resp = client.post("/api/categories", headers=admin_headers, json={
            "name": "Paint", "default_low_stock_threshold": -1,
        })
        assert resp.status_code == 400

    def test_delete_uncategorises_products(self, client, admin_headers, category):
        product = _create_product(client, admin_headers, category_id=category.id).get_json()["product"]
        assert client.delete(f"/api/categories/{category.id}", headers=admin_headers).status_code == 200

        resp = client.get(f"/api/products/{product['id']}", headers=admin_headers)
        assert resp.get_json()["product"]["category"] is None


class TestProducts:

    def test_create_and_get(self, client, admin_headers, category):
        resp = _create_product(
            client, admin_headers,
            name=" Big Widget ", sku="bw-1", category_id=category.id, custom_fields={"color": "red"},
        )
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["name"] == "big widget"
        assert product["sku"] == "BW-1"
        assert product["bin_location"] == "Main"
        assert product["category"]["name"] == "tools"
        assert product["custom_fields"] == {"color": "red"}
        assert product["bundle_components"] == []

        fetched = client.get(f"/api/products/{product['id']}", headers=admin_headers)
        assert fetched.get_json()["product"]["id"] == product["id"]

    def test_sku_defaults(self, client, admin_headers):
        product = _create_product(client, admin_headers).get_json()["product"]
        assert product["sku"] == "N/A"

    @pytest.mark.parametrize(
        "fields",
        [
            {"stock": -1},
            {"price_cents": -5},
            {"price_cents": 12.5},
            {"stock": "ten"},
            {"is_active": True},
            {"custom_fields": ["not", "an", "object"]},
        ],
    )
    def test_invalid_payloads(self, client, admin_headers, fields):
        assert _create_product(client, admin_headers, **fields).status_code == 400

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={"name": "Lonely"})
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    def test_unknown_category(self, client, admin_headers):
        assert _create_product(client, admin_headers, category_id=999).status_code == 404

    def test_duplicate_name(self, client, admin_headers):
        _create_product(client, admin_headers)
        assert _create_product(client, admin_headers, name="WIDGET").status_code == 409

    def test_count_and_total_stock(self, client, admin_headers):
        _create_product(client, admin_headers, name="A", stock=4)
        _create_product(client, admin_headers, name="B", stock=6)
        assert client.get("/api/products/count", headers=admin_headers).get_json()["count"] == 2
        assert client.get("/api/products/total-stock", headers=admin_headers).get_json()["total_stock"] == 10

    def test_update_and_delete(self, client, admin_headers):
        product = _create_product(client, admin_headers).get_json()["product"]
        resp = client.put(f"/api/products/{product['id']}", headers=admin_headers, json={"stock": 3})
        assert resp.get_json()["product"]["stock"] == 3

        assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/products/{product['id']}", headers=admin_headers).status_code == 404


class TestBundlesApi:

    def test_bundle_roundtrip(self, client, admin_headers):
        pen = _create_product(client, admin_headers, name="Pen", stock=10, price_cents=500).get_json()["product"]
        pad = _create_product(client, admin_headers, name="Pad", stock=3, price_cents=1000).get_json()["product"]

        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Desk Kit",
            "is_bundle": True,
            "stock": 1000,
            "bundle_components": [
                {"product_id": pen["id"], "quantity": 2},
                {"product": pad["id"], "quantity": 1},
            ],
        })
        assert resp.status_code == 201
        kit = resp.get_json()["product"]
        assert kit["stock"] == 3
        assert kit["price_cents"] == 1800
        assert [c["product"]["name"] for c in kit["bundle_components"]] == ["pen", "pad"]

        client.put(f"/api/products/{pad['id']}", headers=admin_headers, json={"stock": 0})
        refreshed = client.get(f"/api/products/{kit['id']}", headers=admin_headers).get_json()["product"]
        assert refreshed["stock"] == 0

    def test_deleting_component_refused(self, client, admin_headers):
        pen = _create_product(client, admin_headers, name="Pen").get_json()["product"]
        client.post("/api/products", headers=admin_headers, json={
            "name": "Pen Pack",
            "is_bundle": True,
            "bundle_components": [{"product_id": pen["id"], "quantity": 3}],
        })
        resp = client.delete(f"/api/products/{pen['id']}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["details"]["bundles"][0]["name"] == "pen pack"

    def test_bundle_with_unknown_component(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Ghost Kit",
            "is_bundle": True,
            "bundle_components": [{"product_id": 4242, "quantity": 1}],
        })
        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"product_id": 4242}


class TestSuppliers:

    def test_owner_scoping(self, client, client_headers, other_headers, admin_headers):
        created = client.post("/api/suppliers", headers=client_headers, json={
            "name": "Acme Supply", "email": "sales@acme.test",
        })
        assert created.status_code == 201
        supplier_id = created.get_json()["supplier"]["id"]

        assert client.get("/api/suppliers", headers=other_headers).get_json()["count"] == 0
        assert client.get(f"/api/suppliers/{supplier_id}", headers=other_headers).status_code == 403
        assert client.get("/api/suppliers", headers=admin_headers).get_json()["count"] == 1

    def test_names_unique_per_owner(self, client, client_headers, other_headers):
        client.post("/api/suppliers", headers=client_headers, json={"name": "Acme"})
        assert client.post("/api/suppliers", headers=client_headers, json={"name": "Acme"}).status_code == 409
        assert client.post("/api/suppliers", headers=other_headers, json={"name": "Acme"}).status_code == 201

    def test_admin_write_checks_all_owners(self, client, client_headers, admin_headers):
        client.post("/api/suppliers", headers=client_headers, json={"name": "Acme"})
        assert client.post("/api/suppliers", headers=admin_headers, json={"name": "Acme"}).status_code == 409

    def test_update_and_delete(self, client, client_headers):
        supplier_id = client.post(
            "/api/suppliers", headers=client_headers, json={"name": "Acme"},
        ).get_json()["supplier"]["id"]

        resp = client.put(f"/api/suppliers/{supplier_id}", headers=client_headers, json={"phone": "555-0100"})
        assert resp.get_json()["supplier"]["phone"] == "555-0100"
        assert client.delete(f"/api/suppliers/{supplier_id}", headers=client_headers).status_code == 200
        assert client.get(f"/api/suppliers/{supplier_id}", headers=client_headers).status_code == 404
