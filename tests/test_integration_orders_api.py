"""Integration tests: the Order Ledger over HTTP."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import admin_token, bearer, list_product, login, register

LAMP = {"product_id": "lamp", "quantity": 2}


@pytest.fixture()
def admin(client) -> dict[str, str]:
    return bearer(admin_token(client))


@pytest.fixture()
def catalog(client, admin) -> None:
    token = admin["Authorization"].removeprefix("Bearer ")
    list_product(client, token, "lamp", 50_000)
    list_product(client, token, "pen", 1_000)
    list_product(client, token, "bike", 125_000)


@pytest.fixture()
def customer(client, catalog) -> dict[str, str]:
    return bearer(register(client, "eve@example.com")["access_token"])


def _place(client, headers: dict[str, str], **overrides) -> dict:  # type: ignore[no-untyped-def]
    payload = {"items": [LAMP], "payment_method": "credit_card", **overrides}
    resp = client.post("/orders", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _set_status(client, headers: dict[str, str], number: str, status: str):  # type: ignore[no-untyped-def]
    return client.post(f"/orders/{number}/status", json={"status": status}, headers=headers)


@pytest.mark.integration
class TestPlaceOrder:
    def test_place_order(self, client, customer) -> None:
        order = _place(client, customer, note="Leave at the door")
        assert order["order_number"] == "2026-03-0001"
        assert order["status"] == "pending"
        assert order["totals"] == {
            "subtotal": 100_000,
            "tax": 19_000,
            "shipping": 25_000,
            "discount": 0,
            "total": 144_000,
        }
        assert order["items"][0]["name"] == "Product lamp"
        assert order["items"][0]["unit_price"] == 50_000
        assert order["items"][0]["line_total"] == 100_000
        assert order["total_items"] == 2
        assert order["unique_products"] == 1
        assert order["can_be_cancelled"] is True
        assert order["estimated_delivery_days"] == 5
        assert order["customer_note"] == "Leave at the door"
        assert [h["status"] for h in order["status_history"]] == ["pending"]
        assert order["status_history"][0]["note"] == "Order placed"

    def test_free_shipping_with_admin_discount(self, client, customer, admin) -> None:
        bike = {"product_id": "bike", "quantity": 2}
        order = _place(client, customer, items=[bike], shipping_method="express")
        assert order["totals"]["shipping"] == 0
        assert order["totals"]["total"] == 297_500
        resp = client.put(
            f"/orders/{order['order_number']}/discount", json={"discount": 10_000}, headers=admin
        )
        assert resp.json()["totals"]["total"] == 287_500

    def test_customer_discount_rejected(self, client, customer) -> None:
        payload = {"items": [LAMP], "payment_method": "credit_card", "discount": 144_000}
        resp = client.post("/orders", json=payload, headers=customer)
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "REQUEST_VALIDATION_ERROR"
        order = _place(client, customer)
        assert order["order_number"] == "2026-03-0001"
        assert order["totals"]["discount"] == 0

    def test_client_supplied_price_rejected(self, client, customer) -> None:
        item = {**LAMP, "name": "Desk lamp", "unit_price": 1}
        resp = client.post(
            "/orders", json={"items": [item], "payment_method": "pse"}, headers=customer
        )
        assert resp.status_code == 422

    def test_unknown_product(self, client, customer) -> None:
        item = {"product_id": "ghost", "quantity": 1}
        resp = client.post(
            "/orders", json={"items": [item], "payment_method": "pse"}, headers=customer
        )
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "PRODUCT_NOT_FOUND"

    def test_out_of_stock_product(self, client, customer, admin) -> None:
        client.put("/products/pen", json={"stock": 0}, headers=admin)
        item = {"product_id": "pen", "quantity": 1}
        resp = client.post(
            "/orders", json={"items": [item], "payment_method": "pse"}, headers=customer
        )
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "PRODUCT_OUT_OF_STOCK"

    def test_numbers_increment_and_restart_monthly(self, client, customer, clock) -> None:
        assert _place(client, customer)["order_number"] == "2026-03-0001"
        assert _place(client, customer)["order_number"] == "2026-03-0002"
        clock.set(datetime(2026, 4, 1, 8, 0, tzinfo=UTC))
        fresh = bearer(login(client, "eve@example.com", "Passw0rdOk")["access_token"])
        assert _place(client, fresh)["order_number"] == "2026-04-0001"

    def test_requires_credential(self, client) -> None:
        resp = client.post("/orders", json={"items": [LAMP], "payment_method": "pse"})
        assert resp.status_code == 401

    def test_empty_cart_rejected(self, client, customer) -> None:
        resp = client.post("/orders", json={"items": [], "payment_method": "pse"}, headers=customer)
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "REQUEST_VALIDATION_ERROR"

    def test_quantity_over_limit_rejected(self, client, customer) -> None:
        item = {**LAMP, "quantity": 101}
        resp = client.post(
            "/orders", json={"items": [item], "payment_method": "pse"}, headers=customer
        )
        assert resp.status_code == 422


@pytest.mark.integration
class TestCatalogPriceChanges:
    def test_price_change_does_not_rewrite_placed_orders(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.put("/products/lamp", json={"price": 80_000}, headers=admin)
        assert resp.status_code == 200

        order = client.get(f"/orders/{number}", headers=customer).json()
        assert order["items"][0]["unit_price"] == 50_000
        assert order["totals"]["total"] == 144_000

        later = _place(client, customer)
        assert later["items"][0]["unit_price"] == 80_000
        assert later["totals"]["subtotal"] == 160_000

    def test_added_line_uses_current_price(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        client.put("/products/pen", json={"price": 2_500}, headers=admin)
        pen = {"product_id": "pen", "quantity": 2}
        added = client.post(f"/orders/{number}/items", json=pen, headers=customer).json()
        assert added["totals"]["subtotal"] == 105_000

    def test_discontinued_product_cannot_be_ordered(self, client, customer, admin) -> None:
        assert client.delete("/products/pen", headers=admin).status_code == 204
        item = {"product_id": "pen", "quantity": 1}
        resp = client.post(
            "/orders", json={"items": [item], "payment_method": "pse"}, headers=customer
        )
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "PRODUCT_DISCONTINUED"


@pytest.mark.integration
class TestListOrders:
    def test_customer_lists_own_orders_newest_first(self, client, customer) -> None:
        first = _place(client, customer)["order_number"]
        second = _place(client, customer)["order_number"]
        stranger = bearer(register(client, "mallory@example.com")["access_token"])
        _place(client, stranger)

        page = client.get("/orders", headers=customer).json()
        assert [o["order_number"] for o in page["items"]] == [second, first]
        assert page["total"] == 2
        assert page["has_next_page"] is False

    def test_staff_list_every_order(self, client, customer, admin) -> None:
        _place(client, customer)
        stranger = bearer(register(client, "mallory@example.com")["access_token"])
        _place(client, stranger)
        page = client.get("/orders", headers=admin).json()
        assert page["total"] == 2

    def test_status_filter_and_paging(self, client, customer, admin) -> None:
        numbers = [_place(client, customer)["order_number"] for _ in range(3)]
        _set_status(client, admin, numbers[0], "confirmed")

        pending = client.get("/orders?status=pending&limit=1", headers=customer).json()
        assert pending["total"] == 2
        assert [o["order_number"] for o in pending["items"]] == [numbers[2]]
        assert pending["has_next_page"] is True

        confirmed = client.get("/orders", params={"status": "confirmed"}, headers=admin).json()
        assert [o["order_number"] for o in confirmed["items"]] == [numbers[0]]

    def test_unknown_status_filter(self, client, customer) -> None:
        assert client.get("/orders?status=lost", headers=customer).status_code == 422

    def test_requires_credential(self, client) -> None:
        assert client.get("/orders").status_code == 401


@pytest.mark.integration
class TestOrderVisibility:
    def test_owner_and_staff_can_read(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        assert client.get(f"/orders/{number}", headers=customer).status_code == 200
        assert client.get(f"/orders/{number}", headers=admin).status_code == 200

    def test_other_customer_gets_not_found(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        stranger = bearer(register(client, "mallory@example.com")["access_token"])
        resp = client.get(f"/orders/{number}", headers=stranger)
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "ORDER_NOT_FOUND"

    def test_unknown_order(self, client, customer) -> None:
        resp = client.get("/orders/2026-03-9999", headers=customer)
        assert resp.status_code == 404


@pytest.mark.integration
class TestStatusChanges:
    def test_staff_walks_the_happy_path(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        for status in ("confirmed", "processing", "shipped", "delivered"):
            resp = _set_status(client, admin, number, status)
            assert resp.status_code == 200, resp.text
        order = resp.json()
        assert order["status"] == "delivered"
        assert len(order["status_history"]) == 5
        assert order["delivered_at"] is not None
        assert order["can_be_cancelled"] is False

    def test_customer_cannot_change_status(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        resp = _set_status(client, customer, number, "confirmed")
        assert resp.status_code == 403
        assert resp.json()["error_code"] == "FORBIDDEN"

    def test_illegal_transition_is_conflict(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        resp = _set_status(client, admin, number, "shipped")
        assert resp.status_code == 409
        body = resp.json()
        assert body["error_code"] == "ILLEGAL_TRANSITION"
        assert body["context"]["current_status"] == "pending"
        order = client.get(f"/orders/{number}", headers=admin).json()
        assert order["status"] == "pending"
        assert len(order["status_history"]) == 1

    def test_unknown_status_is_request_validation_error(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        resp = _set_status(client, admin, number, "lost")
        assert resp.status_code == 422


@pytest.mark.integration
class TestOrderContents:
    def test_add_and_remove_items(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        pen = {"product_id": "pen", "quantity": 1}
        added = client.post(f"/orders/{number}/items", json=pen, headers=customer).json()
        assert added["unique_products"] == 2
        assert added["totals"]["subtotal"] == 101_000

        removed = client.delete(f"/orders/{number}/items/pen", headers=customer).json()
        assert removed["unique_products"] == 1
        assert removed["totals"]["subtotal"] == 100_000

    def test_remove_missing_item(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.delete(f"/orders/{number}/items/ghost", headers=customer)
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "LINE_ITEM_NOT_FOUND"

    def test_remove_last_item_rejected(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.delete(f"/orders/{number}/items/lamp", headers=customer)
        assert resp.status_code == 422
        body = resp.json()
        assert body["error_code"] == "LAST_LINE_ITEM"
        assert "cancel" in body["detail"]
        order = client.get(f"/orders/{number}", headers=customer).json()
        assert order["unique_products"] == 1
        assert order["totals"]["total"] == 144_000

    def test_locked_after_shipment(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        for status in ("confirmed", "processing", "shipped"):
            _set_status(client, admin, number, status)
        resp = client.post(f"/orders/{number}/items", json=LAMP, headers=customer)
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "ORDER_LOCKED"

    def test_admin_changes_shipping_and_discount(self, client, customer, admin) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.put(
            f"/orders/{number}/shipping-method", json={"shipping_method": "pickup"}, headers=admin
        )
        assert resp.json()["totals"]["shipping"] == 0
        resp = client.put(f"/orders/{number}/discount", json={"discount": 9_000}, headers=admin)
        assert resp.json()["totals"]["total"] == 110_000

    def test_customer_cannot_discount(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.put(f"/orders/{number}/discount", json={"discount": 9_000}, headers=customer)
        assert resp.status_code == 403

    def test_customer_cannot_override_shipping(self, client, customer) -> None:
        number = _place(client, customer)["order_number"]
        resp = client.put(
            f"/orders/{number}/shipping-method", json={"shipping_method": "pickup"}, headers=customer
        )
        assert resp.status_code == 403
