"""Tests for the authenticated cart."""

import pytest

from modules.cart.models import Cart, CartItem
from modules.catalog.models import Product


def _add(client, headers, product_id, size="M", quantity=1):
    return client.post(
        "/api/cart",
        json={"productId": product_id, "size": size, "quantity": quantity},
        headers=headers,
    )


class TestViewCart:
    def test_requires_login(self, client):
        response = client.get("/api/cart")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authorized, please log in"}

    def test_empty_cart_is_created_on_first_view(self, client, headers):
        response = client.get("/api/cart", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["items"] == []
        assert data["total"] == 0
        assert data["totalItems"] == 0

    def test_subtotals_and_totals(self, client, headers, make_product):
        shirt = make_product(name="Shirt", price="19.99", stock=10)
        jeans = make_product(name="Jeans", price="45.50", stock=5, sizes=("M", "L"))
        _add(client, headers, shirt.id, "M", 3)
        _add(client, headers, jeans.id, "L", 2)

        data = client.get("/api/cart", headers=headers).json()["data"]
        assert [i["subtotal"] for i in data["items"]] == [59.97, 91.0]
        assert data["total"] == 150.97
        assert data["totalItems"] == 5

    def test_deleted_product_is_left_out(self, client, headers, make_product, db):
        keep = make_product(name="Keep", price="10.00")
        gone = make_product(name="Gone", price="30.00")
        _add(client, headers, keep.id, "S", 1)
        _add(client, headers, gone.id, "S", 2)

        db.delete(db.get(Product, gone.id))
        db.commit()

        data = client.get("/api/cart", headers=headers).json()["data"]
        assert [i["product"]["name"] for i in data["items"]] == ["Keep"]
        assert data["total"] == 10.0
        assert data["totalItems"] == 1


class TestAddItem:
    def test_add_same_line_twice_accumulates(self, client, headers, make_product):
        """Adding 2 then 3 of the same product and size yields one line of 5."""
        product = make_product(stock=10)

        assert _add(client, headers, product.id, "M", 2).status_code == 200
        response = _add(client, headers, product.id, "M", 3)

        items = response.json()["data"]["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 5

    def test_third_add_over_stock_is_rejected(self, client, headers, make_product):
        product = make_product(stock=10)
        _add(client, headers, product.id, "M", 2)
        _add(client, headers, product.id, "M", 3)

        response = _add(client, headers, product.id, "M", 6)
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot add 6 items. Only 5 more available in stock"

        items = client.get("/api/cart", headers=headers).json()["data"]["items"]
        assert items[0]["quantity"] == 5

    def test_new_line_over_stock(self, client, headers, make_product):
        product = make_product(stock=3)
        response = _add(client, headers, product.id, "S", 4)
        assert response.status_code == 400
        assert response.json()["error"] == "Only 3 items available in stock"

    def test_different_sizes_are_separate_lines(self, client, headers, make_product):
        product = make_product(stock=10)
        _add(client, headers, product.id, "S", 1)
        response = _add(client, headers, product.id, "L", 1)
        assert [i["size"] for i in response.json()["data"]["items"]] == ["S", "L"]

    def test_unknown_product(self, client, headers):
        response = _add(client, headers, 9999)
        assert response.status_code == 404
        assert response.json()["error"] == "Product not found"

    def test_out_of_stock_product(self, client, headers, make_product):
        product = make_product(stock=0)
        response = _add(client, headers, product.id)
        assert response.status_code == 400
        assert response.json()["error"] == "Product is out of stock"

    def test_size_not_offered(self, client, headers, make_product):
        product = make_product(sizes=("M", "L"))
        response = _add(client, headers, product.id, "XL")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid size for this product"

    def test_zero_quantity_is_a_validation_error(self, client, headers, make_product):
        product = make_product()
        response = _add(client, headers, product.id, "M", 0)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["details"]


class TestUpdateItem:
    def test_set_quantity(self, client, headers, make_product):
        product = make_product(stock=10)
        item_id = _add(client, headers, product.id, "M", 1).json()["data"]["items"][0]["id"]

        response = client.put(f"/api/cart/{item_id}", json={"quantity": 7}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["items"][0]["quantity"] == 7

    def test_quantity_above_stock(self, client, headers, make_product):
        product = make_product(stock=4)
        item_id = _add(client, headers, product.id, "M", 1).json()["data"]["items"][0]["id"]

        response = client.put(f"/api/cart/{item_id}", json={"quantity": 5}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Only 4 items available in stock"

    def test_unknown_item(self, client, headers):
        client.get("/api/cart", headers=headers)
        response = client.put("/api/cart/12345", json={"quantity": 1}, headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Cart item not found"

    def test_other_users_item_is_not_found(self, client, make_user, auth_headers, make_product):
        product = make_product()
        alice, bob = make_user(), make_user()
        item_id = _add(client, auth_headers(alice), product.id).json()["data"]["items"][0]["id"]
        client.get("/api/cart", headers=auth_headers(bob))

        response = client.put(f"/api/cart/{item_id}", json={"quantity": 2}, headers=auth_headers(bob))
        assert response.status_code == 404


class TestRemoveAndClear:
    def test_remove_item(self, client, headers, make_product, db):
        product = make_product()
        _add(client, headers, product.id, "S", 1)
        item_id = _add(client, headers, product.id, "M", 1).json()["data"]["items"][1]["id"]

        response = client.delete(f"/api/cart/{item_id}", headers=headers)
        assert response.status_code == 200
        assert [i["size"] for i in response.json()["data"]["items"]] == ["S"]
        assert db.query(CartItem).filter(CartItem.id == item_id).first() is None

    def test_remove_without_cart(self, client, headers):
        response = client.delete("/api/cart/1", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Cart not found"

    def test_clear(self, client, headers, make_product):
        product = make_product()
        _add(client, headers, product.id, "S", 2)

        response = client.delete("/api/cart", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Cart cleared successfully"
        assert body["data"]["items"] == []
        assert body["data"]["total"] == 0

    def test_clear_without_cart_succeeds(self, client, headers):
        response = client.delete("/api/cart", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["items"] == []


class TestOutOfRangeIds:
    def test_add_with_huge_product_id(self, client, headers):
        response = _add(client, headers, 10 ** 20)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_service_rejects_huge_product_id(self, user, db):
        from common.exceptions import InvalidInputError
        from modules.cart.service import cart_service

        with pytest.raises(InvalidInputError):
            cart_service.add_item(db, user.id, 10 ** 20, "M", 1)

    def test_huge_item_id_in_path(self, client, headers):
        response = client.put(f"/api/cart/{10 ** 20}", json={"quantity": 1}, headers=headers)
        assert response.status_code == 400


class TestOrphanLines:
    def test_view_drops_lines_without_product(self, client, headers, user, make_product, db):
        product = make_product()
        _add(client, headers, product.id, "S", 1)
        cart = db.query(Cart).filter(Cart.user_id == user.id).one()
        cart.items.append(CartItem(product_id=None, size="M", quantity=1))
        db.commit()

        data = client.get("/api/cart", headers=headers).json()["data"]
        assert data["totalItems"] == 1

        db.expire_all()
        assert len(db.query(CartItem).all()) == 1
