# Overview: Pytest coverage for the product catalog API.

import pytest

from conftest import stock_of


class TestCreateProduct:

    def test_create_product_stores_cents_and_returns_major_units(self, client, manager_headers):
        resp = client.post("/api/products", json={
            "sku": "SOAP-1",
            "name": "Bar Soap",
            "price": "2,500.50",
            "cost_price": 1500,
            "quantity": 40,
        }, headers=manager_headers)

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["price"] == 2500.5
        assert data["cost_price"] == 1500
        assert data["profit"] == 1000.5
        assert data["quantity"] == 40
        assert data["is_low_stock"] is False

    def test_missing_required_fields(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "No SKU"}, headers=manager_headers)
        assert resp.status_code == 400
        assert "price" in resp.get_json()["error"]
        assert "sku" in resp.get_json()["error"]

    def test_negative_quantity_rejected(self, client, manager_headers):
        resp = client.post("/api/products", json={
            "sku": "NEG", "name": "Negative", "price": 10, "quantity": -1,
        }, headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, manager_headers):
        resp = client.post("/api/products", json={
            "sku": "X", "name": "X", "price": 10, "price_cents": 1,
        }, headers=manager_headers)
        assert resp.status_code == 400
        assert "not allowed" in resp.get_json()["error"]

    def test_duplicate_sku_conflict(self, client, manager_headers, make_product):
        make_product(sku="DUP-1")
        resp = client.post("/api/products", json={
            "sku": "DUP-1", "name": "Again", "price": 10,
        }, headers=manager_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("price", ["abc", "1e", True])
    def test_non_numeric_price_rejected(self, client, manager_headers, price):
        resp = client.post("/api/products", json={
            "sku": "BAD", "name": "Bad", "price": price,
        }, headers=manager_headers)
        assert resp.status_code == 400


class TestReadProducts:

    def test_search_matches_name_and_sku(self, client, viewer_headers, make_product):
        make_product(name="Blue Pen", sku="PEN-B")
        make_product(name="Notebook", sku="NB-1")

        resp = client.get("/api/products?search=pen", headers=viewer_headers)
        assert resp.status_code == 200
        names = [p["name"] for p in resp.get_json()["items"]]
        assert names == ["Blue Pen"]

        resp = client.get("/api/products?search=NB-", headers=viewer_headers)
        assert [p["sku"] for p in resp.get_json()["items"]] == ["NB-1"]

    def test_pagination_block(self, client, viewer_headers, make_product):
        for _ in range(5):
            make_product()

        resp = client.get("/api/products?page=2&per_page=2", headers=viewer_headers)
        data = resp.get_json()
        assert data["count"] == 2
        assert data["pagination"] == {
            "page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    @pytest.mark.parametrize("per_page", [-1, 0])
    def test_non_positive_per_page_uses_a_valid_page_size(self, client, viewer_headers, make_product, per_page):
        for _ in range(3):
            make_product()

        data = client.get(f"/api/products?page=1&per_page={per_page}", headers=viewer_headers).get_json()

        assert data["pagination"]["per_page"] >= 1
        assert data["pagination"]["total_pages"] >= 1
        assert data["count"] == min(3, data["pagination"]["per_page"])

    def test_get_missing_product(self, client, viewer_headers):
        resp = client.get("/api/products/9999", headers=viewer_headers)
        assert resp.status_code == 404

    def test_low_stock_flag(self, client, viewer_headers, make_product):
        p = make_product(quantity=3, low_stock_threshold=5)
        resp = client.get(f"/api/products/{p.id}", headers=viewer_headers)
        assert resp.get_json()["is_low_stock"] is True


class TestUpdateDeleteProduct:

    def test_partial_update(self, client, manager_headers, make_product):
        p = make_product(price=1000)
        resp = client.put(f"/api/products/{p.id}", json={"price": 1200}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["price"] == 1200
        assert resp.get_json()["name"] == p.name

    def test_update_to_taken_sku_conflicts(self, client, manager_headers, make_product):
        make_product(sku="A-1")
        b = make_product(sku="B-1")
        resp = client.put(f"/api/products/{b.id}", json={"sku": "A-1"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_manual_quantity_edit_sets_stock(self, client, manager_headers, make_product):
        p = make_product(quantity=10)
        resp = client.put(f"/api/products/{p.id}", json={"quantity": 25}, headers=manager_headers)
        assert resp.status_code == 200
        assert stock_of(p.id) == 25

    def test_manager_cannot_delete(self, client, manager_headers, make_product):
        p = make_product()
        resp = client.delete(f"/api/products/{p.id}", headers=manager_headers)
        assert resp.status_code == 403

    def test_admin_delete_keeps_order_history(self, client, admin_headers, place_order, make_product):
        p = make_product(quantity=5)
        product_id, product_name = p.id, p.name
        order = place_order([{"product_id": p.id, "quantity": 2}])

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/sales/{order['id']}", headers=admin_headers)
        assert resp.status_code == 200
        line = resp.get_json()["order"]["items"][0]
        assert line["product_id"] == product_id
        assert line["product_name"] == product_name


class TestStockTransactions:

    def test_sale_and_return_are_recorded(self, client, admin_headers, place_order, make_product):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 3}])

        resp = client.post("/api/returns", json={
            "sales_order_id": order["id"],
            "items": [{"product_id": p.id, "quantity": 1}],
        }, headers=admin_headers)
        return_id = resp.get_json()["return"]["id"]
        client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        resp = client.get(f"/api/products/{p.id}/stock-transactions", headers=admin_headers)
        items = resp.get_json()["items"]
        deltas = sorted((t["transaction_type"], t["quantity_delta"]) for t in items)
        assert deltas == [("return", 1), ("sale", -3)]


class TestProductDemand:

    def test_demand_levels_relative_to_average(self, client, viewer_headers, place_order, make_product):
        hot = make_product(name="Hot", quantity=100)
        mid = make_product(name="Mid", quantity=100)
        cold = make_product(name="Cold", quantity=100)
        idle = make_product(name="Idle", quantity=100)

        place_order([
            {"product_id": hot.id, "quantity": 20},
            {"product_id": mid.id, "quantity": 8},
            {"product_id": cold.id, "quantity": 2},
        ])

        resp = client.get("/api/products/demand", headers=viewer_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        levels = {row["name"]: row["demand_level"] for row in data["items"]}
        # average over products with sales = 10
        assert levels == {"Hot": "high", "Mid": "medium", "Cold": "low", "Idle": "none"}
        assert data["statistics"]["products_with_sales"] == 3
        assert data["statistics"]["average_sales"] == 10
        assert data["statistics"]["max_sales"] == 20
        assert [row["name"] for row in data["no_demand"]] == [idle.name]
