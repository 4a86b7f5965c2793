# Overview: Pytest coverage for the return lifecycle (create, approve, reject, delete).

import pytest

from conftest import stock_of
from retail.extensions import db
from retail.models import StockTransaction


@pytest.fixture
def create_return(client, admin_headers):
    def _create(order_id, items, headers=None, **extra):
        payload = dict(extra, sales_order_id=order_id, items=items)
        return client.post("/api/returns", json=payload, headers=headers or admin_headers)
    return _create


def _order(client, headers, order_id):
    return client.get(f"/api/sales/{order_id}", headers=headers).get_json()["order"]


class TestCreateReturn:

    def test_pending_return_has_no_side_effects(self, client, admin_headers, place_order, make_product,
                                                create_return):
        p = make_product(price=1000, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 3}])

        resp = create_return(order["id"], [{"product_id": p.id, "quantity": 2}], reason="Damaged")

        assert resp.status_code == 201
        ret = resp.get_json()["return"]
        assert ret["status"] == "pending"
        assert ret["total_refund_amount"] == 2000
        assert ret["currency"] == "UGX"
        assert ret["refund_method"] == "cash"
        assert ret["reason"] == "Damaged"

        assert stock_of(p.id) == 7
        assert _order(client, admin_headers, order["id"])["total_amount"] == 3000

    def test_refund_uses_sale_price_not_current_price(self, client, manager_headers, place_order,
                                                      make_product, create_return):
        p = make_product(price=1000, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])

        client.put(f"/api/products/{p.id}", json={"price": 5000}, headers=manager_headers)

        resp = create_return(order["id"], [{"product_id": p.id, "quantity": 1}])
        assert resp.get_json()["return"]["total_refund_amount"] == 1000

    def test_usd_refund_in_order_currency(self, place_order, make_product, create_return):
        p = make_product(price=3700, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}], currency="USD")

        ret = create_return(order["id"], [{"product_id": p.id, "quantity": 2}]).get_json()["return"]
        assert ret["currency"] == "USD"
        assert ret["total_refund_amount"] == 2

    def test_accepts_order_id_alias(self, client, admin_headers, place_order, make_product):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 1}])

        resp = client.post("/api/returns", json={
            "order_id": order["id"],
            "items": [{"product_id": p.id, "quantity": 1}],
        }, headers=admin_headers)
        assert resp.status_code == 201

    def test_more_than_ordered_conflicts(self, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])

        resp = create_return(order["id"], [{"product_id": p.id, "quantity": 3}])

        assert resp.status_code == 409
        assert resp.get_json()["details"] == {"product_id": p.id, "requested": 3, "ordered": 2}

    def test_product_not_in_order(self, place_order, make_product, create_return):
        p = make_product(quantity=10)
        other = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])

        resp = create_return(order["id"], [{"product_id": other.id, "quantity": 1}])
        assert resp.status_code == 400

    def test_missing_order(self, create_return):
        resp = create_return(98765, [{"product_id": 1, "quantity": 1}])
        assert resp.status_code == 404

    def test_order_id_required(self, client, admin_headers):
        resp = client.post("/api/returns", json={"items": [{"product_id": 1, "quantity": 1}]},
                           headers=admin_headers)
        assert resp.status_code == 400


class TestApproveReturn:

    def test_approval_restocks_and_revises_order(self, client, admin_headers, place_order, make_product,
                                                 create_return):
        p = make_product(price=1000, cost_price=600, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 3}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 2}]).get_json()["return"]["id"]

        resp = client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        assert resp.status_code == 200
        ret = resp.get_json()["return"]
        assert ret["status"] == "approved"
        assert ret["approved_by_username"] == "admin_user"
        assert ret["approved_at"] is not None

        assert stock_of(p.id) == 9

        revised = _order(client, admin_headers, order["id"])
        line = revised["items"][0]
        assert line["quantity"] == 1
        assert line["returned_quantity"] == 2
        assert line["item_total"] == 1000
        assert line["item_profit"] == 400
        assert revised["total_amount"] == 1000
        assert revised["total_profit"] == 400
        assert revised["has_returns"] is True
        assert revised["total_refunded"] == 2000

        txn = db.session.query(StockTransaction).filter_by(return_id=return_id).one()
        assert txn.transaction_type == "return"
        assert txn.quantity_delta == 2

    def test_fully_returned_line_is_removed(self, client, admin_headers, place_order, make_product,
                                            create_return):
        keep = make_product(price=500, quantity=10)
        gone = make_product(price=800, quantity=10)
        order = place_order([
            {"product_id": keep.id, "quantity": 1},
            {"product_id": gone.id, "quantity": 2},
        ])
        return_id = create_return(order["id"], [{"product_id": gone.id, "quantity": 2}]).get_json()["return"]["id"]

        client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        revised = _order(client, admin_headers, order["id"])
        assert [i["product_id"] for i in revised["items"]] == [keep.id]
        assert revised["total_amount"] == 500
        assert stock_of(gone.id) == 10

    def test_refund_matches_lines_at_different_prices(self, client, admin_headers, place_order, make_product,
                                                      create_return):
        p = make_product(price=10000, quantity=10)
        order = place_order([
            {"product_id": p.id, "quantity": 1, "custom_price": 5000},
            {"product_id": p.id, "quantity": 1},
        ])
        assert order["total_amount"] == 15000

        ret = create_return(order["id"], [{"product_id": p.id, "quantity": 2}]).get_json()["return"]
        assert ret["total_refund_amount"] == 15000

        resp = client.put(f"/api/returns/{ret['id']}/approve", headers=admin_headers)
        assert resp.get_json()["return"]["total_refund_amount"] == 15000

        revised = _order(client, admin_headers, order["id"])
        assert revised["total_amount"] == 0
        assert revised["total_refunded"] == 15000

    def test_partial_refund_takes_first_line_price(self, client, admin_headers, place_order, make_product,
                                                   create_return):
        p = make_product(price=10000, quantity=10)
        order = place_order([
            {"product_id": p.id, "quantity": 1, "custom_price": 5000},
            {"product_id": p.id, "quantity": 1},
        ])
        ret = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]
        assert ret["total_refund_amount"] == 5000

        client.put(f"/api/returns/{ret['id']}/approve", headers=admin_headers)

        revised = _order(client, admin_headers, order["id"])
        assert revised["total_amount"] == 10000
        assert order["total_amount"] - revised["total_amount"] == revised["total_refunded"]

    def test_cannot_approve_twice(self, client, admin_headers, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        assert client.put(f"/api/returns/{return_id}/approve", headers=admin_headers).status_code == 200
        resp = client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        assert resp.status_code == 409
        assert stock_of(p.id) == 9

    def test_second_return_cannot_exceed_remaining(self, client, admin_headers, place_order, make_product,
                                                   create_return):
        p = make_product(price=1000, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 3}])

        first = create_return(order["id"], [{"product_id": p.id, "quantity": 2}]).get_json()["return"]["id"]
        second = create_return(order["id"], [{"product_id": p.id, "quantity": 2}]).get_json()["return"]["id"]

        assert client.put(f"/api/returns/{first}/approve", headers=admin_headers).status_code == 200
        resp = client.put(f"/api/returns/{second}/approve", headers=admin_headers)

        assert resp.status_code == 409
        assert resp.get_json()["details"]["remaining"] == 1
        assert stock_of(p.id) == 9
        assert _order(client, admin_headers, order["id"])["items"][0]["quantity"] == 1

        status = client.get(f"/api/returns/{second}", headers=admin_headers).get_json()["return"]["status"]
        assert status == "pending"

    def test_deleted_product_not_restocked_but_order_revised(self, client, admin_headers, place_order,
                                                             make_product, create_return):
        p = make_product(price=1000, quantity=10)
        product_id = p.id
        order = place_order([{"product_id": product_id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": product_id, "quantity": 1}]).get_json()["return"]["id"]

        client.delete(f"/api/products/{product_id}", headers=admin_headers)
        resp = client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        assert resp.status_code == 200
        assert _order(client, admin_headers, order["id"])["total_amount"] == 1000
        assert db.session.query(StockTransaction).filter_by(return_id=return_id).count() == 0

    def test_order_deleted_before_approval(self, client, admin_headers, place_order, make_product,
                                           create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        client.delete(f"/api/sales/{order['id']}", headers=admin_headers)
        resp = client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        assert resp.status_code == 404
        assert stock_of(p.id) == 8

    def test_sales_role_cannot_approve(self, client, sales_headers, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        resp = client.put(f"/api/returns/{return_id}/approve", headers=sales_headers)
        assert resp.status_code == 403

    def test_manager_can_approve(self, client, manager_headers, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        resp = client.put(f"/api/returns/{return_id}/approve", headers=manager_headers)
        assert resp.status_code == 200


class TestRejectReturn:

    def test_reason_required(self, client, admin_headers, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        resp = client.put(f"/api/returns/{return_id}/reject", json={"reason": "  "}, headers=admin_headers)
        assert resp.status_code == 400

    def test_reject_has_no_side_effects_and_is_terminal(self, client, admin_headers, place_order,
                                                       make_product, create_return):
        p = make_product(price=1000, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        resp = client.put(f"/api/returns/{return_id}/reject", json={"rejection_reason": "Used item"},
                          headers=admin_headers)

        assert resp.status_code == 200
        ret = resp.get_json()["return"]
        assert ret["status"] == "rejected"
        assert ret["rejection_reason"] == "Used item"
        assert ret["rejected_by_username"] == "admin_user"

        assert stock_of(p.id) == 8
        assert _order(client, admin_headers, order["id"])["total_amount"] == 2000

        assert client.put(f"/api/returns/{return_id}/approve", headers=admin_headers).status_code == 409
        resp = client.put(f"/api/returns/{return_id}/reject", json={"reason": "again"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_reject_approved_return_without_reason_conflicts(self, client, admin_headers, place_order,
                                                            make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]
        client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        resp = client.put(f"/api/returns/{return_id}/reject", json={}, headers=admin_headers)

        assert resp.status_code == 409
        assert resp.get_json()["details"] == {"status": "approved"}


class TestListDeleteReturns:

    def test_filter_by_status_and_order(self, client, admin_headers, place_order, make_product, create_return):
        p = make_product(quantity=20)
        order_a = place_order([{"product_id": p.id, "quantity": 2}])
        order_b = place_order([{"product_id": p.id, "quantity": 2}])
        create_return(order_a["id"], [{"product_id": p.id, "quantity": 1}])
        rid = create_return(order_b["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]
        client.put(f"/api/returns/{rid}/approve", headers=admin_headers)

        resp = client.get("/api/returns?status=approved", headers=admin_headers)
        assert [r["id"] for r in resp.get_json()["items"]] == [rid]

        resp = client.get(f"/api/returns?order_id={order_a['id']}", headers=admin_headers)
        assert resp.get_json()["count"] == 1

        resp = client.get("/api/returns?status=lost", headers=admin_headers)
        assert resp.status_code == 400

    def test_deleting_approved_return_keeps_its_effects(self, client, admin_headers, place_order,
                                                        make_product, create_return):
        p = make_product(price=1000, quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 3}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]
        client.put(f"/api/returns/{return_id}/approve", headers=admin_headers)

        resp = client.delete(f"/api/returns/{return_id}", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "approved"
        assert body["effects_reversed"] is False

        assert stock_of(p.id) == 8
        revised = _order(client, admin_headers, order["id"])
        assert revised["total_amount"] == 2000
        assert revised["has_returns"] is True
        assert client.get(f"/api/returns/{return_id}", headers=admin_headers).status_code == 404

    def test_manager_cannot_delete(self, client, manager_headers, place_order, make_product, create_return):
        p = make_product(quantity=10)
        order = place_order([{"product_id": p.id, "quantity": 2}])
        return_id = create_return(order["id"], [{"product_id": p.id, "quantity": 1}]).get_json()["return"]["id"]

        assert client.delete(f"/api/returns/{return_id}", headers=manager_headers).status_code == 403
