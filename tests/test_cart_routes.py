"""Tests for the cart endpoints."""
from decimal import Decimal
from urllib.parse import quote

import pytest

from conftest import make_product
from storefront.cart import Cart, decode_cart, encode_cart


class TestAddToCart:

    def test_add_and_add_again(self, client, product):
        first = client.post("/cart/add", json={"product_id": product.id})
        assert first.status_code == 200
        assert first.json()["status"] == "added"
        assert first.json()["cart"] == 1

        second = client.post("/cart/add", json={"product_id": product.id, "quantity": 2})
        assert second.json()["status"] == "duplicate"
        assert second.json()["cart"] == 1

        assert decode_cart(second.cookies.get("cart")).items == {str(product.id): 3}

    def test_quantity_must_be_positive(self, client, product):
        response = client.post("/cart/add", json={"product_id": product.id, "quantity": 0})

        assert response.status_code == 422

    def test_malformed_cookie_starts_a_new_cart(self, client, product):
        client.cookies.set("cart", "not-a-cart")

        response = client.post("/cart/add", json={"product_id": product.id})

        assert response.status_code == 200
        assert response.json()["status"] == "added"
        assert decode_cart(response.cookies.get("cart")).items == {str(product.id): 1}


class TestRemoveFromCart:

    def test_partial_remove(self, client, product):
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 3})))

        response = client.post("/cart/remove", json={"product_id": product.id, "quantity": 1})

        assert response.json()["cart"] == 1
        assert decode_cart(response.cookies.get("cart")).items == {str(product.id): 2}

    def test_full_remove(self, client, product):
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 3, "77": 1})))

        response = client.post("/cart/remove", json={"product_id": product.id})

        assert response.json()["cart"] == 1
        assert decode_cart(response.cookies.get("cart")).items == {"77": 1}


class TestCartView:

    def test_priced_lines(self, client, db_session, currency_service):
        first = make_product(db_session, price=Decimal("10.00"), price_factor=Decimal("20"))
        second = make_product(db_session, price=Decimal("5.00"), price_factor=Decimal("0"))
        client.cookies.set("cart", encode_cart(Cart(items={str(first.id): 2, str(second.id): 1})))

        data = client.get("/cart").json()

        lines = {line["product"]["id"]: line for line in data["items"]}
        assert lines[first.id]["quantity"] == 2
        assert lines[first.id]["price"] == "12,00"
        assert lines[first.id]["subtotal"] == "24,00"
        assert lines[second.id]["subtotal"] == "5,00"
        assert data["total"] == "29,00"
        assert data["euro"] == "1,00"

    def test_coefficient_applies_per_unit(self, client, product, currency_service):
        currency_service.update("1.08")
        client.cookies.set("cart", encode_cart(Cart(items={str(product.id): 2})))

        data = client.get("/cart").json()

        assert data["items"][0]["price"] == "12,96"
        assert data["total"] == "25,92"

    def test_deleted_products_are_skipped(self, client):
        client.cookies.set("cart", encode_cart(Cart(items={"999": 1})))

        data = client.get("/cart").json()

        assert data["items"] == []
        assert data["total"] == "0,00"

    def test_duplicate_entries_form_one_line(self, client, product):
        client.cookies.set("cart", quote('{"items":{"00%d":1,"%d":2}}' % (product.id, product.id), safe=""))

        data = client.get("/cart").json()

        assert [(item["product"]["id"], item["quantity"]) for item in data["items"]] == [(product.id, 3)]

    @pytest.mark.parametrize("document", [
        '{"items":{"²":1}}',
        '{"items":{"9999999999999999999999999":1}}',
    ])
    def test_unusable_product_id_clears_cookie(self, client, document):
        client.cookies.set("cart", quote(document, safe=""))

        response = client.get("/cart")

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_malformed_cookie_is_cleared(self, client):
        client.cookies.set("cart", "%7Bbroken")

        response = client.get("/cart")

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert "Max-Age=0" in response.headers["set-cookie"]
