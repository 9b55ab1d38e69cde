"""Tests for checkout and the order back office."""
import asyncio
from decimal import Decimal
from urllib.parse import quote

from conftest import make_order, make_product
from storefront.cart import Cart, encode_cart
from storefront.models import Order
from storefront.services.order_service import clean_phone_number

CHECKOUT_FORM = {
    "first_name": "Ivan",
    "last_name": "Petrenko",
    "phone_number": "+38 (067) 123-45-67",
    "region": "Львів",
    "address": "Відділення №1: вул. Городоцька, 1",
    "comment": "Дзвонити після 18:00",
}


class TestCheckout:

    def test_order_from_cart(self, client, db_session, product, external_apis):
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 2})))

        response = client.post("/orders/checkout", json=CHECKOUT_FORM)

        assert response.status_code == 200
        order_id = response.json()["order_id"]
        order = db_session.query(Order).filter(Order.id == order_id).one()
        assert order.products == [{"id": product.id, "amount": 2}]
        assert order.phone_number == "380671234567"
        assert order.status == 0
        assert order.user is None

        # Cart cookie is cleared
        assert "Max-Age=0" in response.headers["set-cookie"]

        # Shop chat is told about the order
        assert len(external_apis.messages) == 1
        assert external_apis.messages[0]["chat_id"] == "42"
        assert f"№{order_id}" in external_apis.messages[0]["text"]

    def test_explicit_items_take_precedence(self, client, db_session, product):
        other = make_product(db_session)
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 2})))

        form = dict(CHECKOUT_FORM, items=[{"id": other.id, "amount": 4}])
        response = client.post("/orders/checkout", json=form)

        order = db_session.query(Order).filter(Order.id == response.json()["order_id"]).one()
        assert order.products == [{"id": other.id, "amount": 4}]

    def test_logged_in_customer_is_recorded(self, client, db_session, product, customer, customer_headers):
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 1})))

        response = client.post("/orders/checkout", json=CHECKOUT_FORM, headers=customer_headers)

        order = db_session.query(Order).filter(Order.id == response.json()["order_id"]).one()
        assert order.user == customer.id

    def test_empty_cart(self, client, db_session, external_apis):
        response = client.post("/orders/checkout", json=CHECKOUT_FORM)

        assert response.status_code == 400
        assert response.json()["detail"] == "Cart is empty"
        assert db_session.query(Order).count() == 0
        assert external_apis.messages == []

    def test_malformed_cookie_is_cleared_when_checkout_fails(self, client, db_session):
        client.cookies.set("cart", quote('{"items":{"²":1}}', safe=""))

        response = client.post("/orders/checkout", json=CHECKOUT_FORM)

        assert response.status_code == 400
        assert response.json()["detail"] == "Cart is empty"
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert db_session.query(Order).count() == 0

    def test_notification_failure_does_not_fail_checkout(self, client, db_session, product, external_apis):
        external_apis.telegram_status = 500
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 1})))

        response = client.post("/orders/checkout", json=CHECKOUT_FORM)

        assert response.status_code == 200
        assert db_session.query(Order).count() == 1

    def test_missing_contact_details(self, client, product):
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 1})))

        form = dict(CHECKOUT_FORM, first_name="")
        assert client.post("/orders/checkout", json=form).status_code == 422

    def test_phone_cleanup(self):
        assert clean_phone_number("+38 (067) 123-45-67") == "380671234567"


class TestNotification:

    def test_unconfigured_bot_is_skipped(self, external_service, external_apis):
        external_service.bot_token = ""

        assert asyncio.run(external_service.notify_order_placed(1)) is False
        assert external_apis.messages == []


class TestOrderBackOffice:

    def test_requires_login(self, client):
        assert client.get("/account/orders").status_code == 401

    def test_requires_admin(self, client, customer_headers):
        response = client.get("/account/orders", headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to access this page"

    def test_list_newest_first_paginated(self, client, db_session, product, admin_headers):
        orders = [make_order(db_session, [{"id": product.id, "amount": 1}]) for _ in range(25)]

        first_page = client.get("/account/orders", headers=admin_headers).json()
        second_page = client.get("/account/orders", params={"page": 2}, headers=admin_headers).json()

        assert len(first_page["orders"]) == 20
        assert first_page["orders"][0]["id"] == orders[-1].id
        assert [o["id"] for o in second_page["orders"]] == [o.id for o in reversed(orders[:5])]
        assert second_page["page"] == 2

    def test_invalid_page(self, client, admin_headers):
        assert client.get("/account/orders", params={"page": 0}, headers=admin_headers).status_code == 422

    def test_order_lines_use_current_catalog(self, client, db_session, product, admin_headers, currency_service):
        order = make_order(db_session, [{"id": product.id, "amount": 3}, {"id": 999, "amount": 1}])
        currency_service.update("1.08")

        data = client.get(f"/account/orders/{order.id}", headers=admin_headers).json()

        assert data["id"] == order.id
        assert len(data["products"]) == 1
        line = data["products"][0]
        assert line["id"] == product.id
        assert line["amount"] == 3
        assert line["title_original"] == product.title_original
        assert line["price"] == "12,96"

    def test_missing_order(self, client, admin_headers):
        assert client.get("/account/orders/999", headers=admin_headers).status_code == 404

    def test_replace_products(self, client, db_session, product, admin_headers):
        order = make_order(db_session, [{"id": product.id, "amount": 1}])

        response = client.post(
            f"/account/orders/{order.id}",
            json={"products": [{"id": product.id, "amount": 5}]},
            headers=admin_headers
        )

        assert response.status_code == 200
        db_session.refresh(order)
        assert order.products == [{"id": product.id, "amount": 5}]

    def test_replace_products_requires_lines(self, client, db_session, product, admin_headers):
        order = make_order(db_session, [{"id": product.id, "amount": 1}])

        response = client.post(f"/account/orders/{order.id}", json={"products": []}, headers=admin_headers)

        assert response.status_code == 422

    def test_change_status(self, client, db_session, product, admin_headers):
        order = make_order(db_session, [{"id": product.id, "amount": 1}])

        response = client.post(f"/account/orders/{order.id}/status", json={"status": 2}, headers=admin_headers)

        assert response.status_code == 200
        db_session.refresh(order)
        assert order.status == 2

    def test_customer_cannot_change_status(self, client, db_session, product, customer_headers):
        order = make_order(db_session, [{"id": product.id, "amount": 1}])

        response = client.post(f"/account/orders/{order.id}/status", json={"status": 2}, headers=customer_headers)

        assert response.status_code == 403
        db_session.refresh(order)
        assert order.status == 0

    def test_invoice_total(self, client, db_session, admin_headers):
        first = make_product(db_session, price=Decimal("10.00"), price_factor=Decimal("20"))
        second = make_product(db_session, price=Decimal("5.00"), price_factor=Decimal("0"))
        order = make_order(db_session, [{"id": first.id, "amount": 2}, {"id": second.id, "amount": 1}])

        data = client.get(f"/account/orders/{order.id}/invoice", headers=admin_headers).json()

        assert data["order"]["id"] == order.id
        assert data["total"] == "29,00"
