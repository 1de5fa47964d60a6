"""Tests for order history, detail, status changes and write-once fields."""

import pytest

from common.exceptions import ImmutableFieldError
from modules.order.models import Order, OrderItem


@pytest.fixture
def place_order(client, make_product):
    """Put one line in the user's cart and check out; returns the order JSON."""

    def _place(headers, quantity=1, price="10.00"):
        product = make_product(price=price, stock=50)
        client.post(
            "/api/cart",
            json={"productId": product.id, "size": "M", "quantity": quantity},
            headers=headers,
        )
        response = client.post("/api/orders", headers=headers)
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _place


def _set_status(client, headers, order_id, status):
    return client.put(f"/api/orders/{order_id}/status", json={"status": status}, headers=headers)


class TestOrderDetail:
    def test_owner_can_view(self, client, headers, place_order):
        order = place_order(headers, quantity=2)
        response = client.get(f"/api/orders/{order['id']}", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["orderNumber"] == order["orderNumber"]
        assert data["itemCount"] == 2

    def test_other_user_is_forbidden(self, client, make_user, auth_headers, place_order):
        owner, stranger = make_user(), make_user()
        order = place_order(auth_headers(owner))

        response = client.get(f"/api/orders/{order['id']}", headers=auth_headers(stranger))
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Not authorized to view this order"}

    def test_unknown_order(self, client, headers):
        response = client.get("/api/orders/999", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Order not found"

    def test_malformed_id(self, client, headers):
        response = client.get("/api/orders/not-a-number", headers=headers)
        assert response.status_code == 400


class TestMyOrders:
    def test_newest_first_with_pagination(self, client, headers, place_order):
        numbers = [place_order(headers)["orderNumber"] for _ in range(3)]

        response = client.get("/api/orders/my?page=1&limit=2", headers=headers)
        body = response.json()
        assert [o["orderNumber"] for o in body["data"]] == numbers[::-1][:2]
        assert body["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "totalPages": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

        page_two = client.get("/api/orders/my?page=2&limit=2", headers=headers).json()
        assert [o["orderNumber"] for o in page_two["data"]] == [numbers[0]]

    def test_only_own_orders(self, client, make_user, auth_headers, place_order):
        alice, bob = make_user(), make_user()
        place_order(auth_headers(alice))

        body = client.get("/api/orders/my", headers=auth_headers(bob)).json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 0

    def test_limit_is_capped(self, client, headers):
        body = client.get("/api/orders/my?limit=500", headers=headers).json()
        assert body["pagination"]["limit"] == 50

    def test_status_filter(self, client, headers, place_order):
        first = place_order(headers)
        place_order(headers)
        _set_status(client, headers, first["id"], "SHIPPED")

        body = client.get("/api/orders/my?status=SHIPPED", headers=headers).json()
        assert [o["id"] for o in body["data"]] == [first["id"]]


class TestStatusUpdate:
    def test_ship_order(self, client, headers, place_order):
        order = place_order(headers)

        response = _set_status(client, headers, order["id"], "SHIPPED")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order status updated successfully"
        assert body["data"]["status"] == "SHIPPED"

        history = client.get("/api/orders/my", headers=headers).json()["data"]
        assert history[0]["status"] == "SHIPPED"

    def test_cancelled_is_terminal(self, client, headers, place_order):
        order = place_order(headers)
        assert _set_status(client, headers, order["id"], "CANCELLED").status_code == 200

        response = _set_status(client, headers, order["id"], "PENDING")
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot update status of cancelled order"

        detail = client.get(f"/api/orders/{order['id']}", headers=headers).json()["data"]
        assert detail["status"] == "CANCELLED"

    def test_same_status_is_accepted(self, client, headers, place_order):
        order = place_order(headers)
        response = _set_status(client, headers, order["id"], "PENDING")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PENDING"

    def test_unknown_status(self, client, headers, place_order):
        order = place_order(headers)
        response = _set_status(client, headers, order["id"], "LOST")
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid status")

    def test_other_user_cannot_update(self, client, make_user, auth_headers, place_order):
        owner, stranger = make_user(), make_user()
        order = place_order(auth_headers(owner))

        response = _set_status(client, auth_headers(stranger), order["id"], "SHIPPED")
        assert response.status_code == 403

    def test_status_change_keeps_totals(self, client, headers, place_order):
        order = place_order(headers, quantity=3, price="12.50")
        _set_status(client, headers, order["id"], "PAID")

        detail = client.get(f"/api/orders/{order['id']}", headers=headers).json()["data"]
        assert detail["totalAmount"] == order["totalAmount"] == 37.5
        assert detail["items"] == order["items"]


class TestWriteOnceFields:
    @pytest.mark.parametrize("field, value", [
        ("total_amount", 1),
        ("order_number", "ORD-TAMPERED"),
    ])
    def test_order_fields_reject_changes(self, headers, place_order, db, field, value):
        order = db.get(Order, place_order(headers)["id"])
        setattr(order, field, value)
        with pytest.raises(ImmutableFieldError):
            db.flush()

    def test_order_items_reject_changes(self, headers, place_order, db):
        order = db.get(Order, place_order(headers)["id"])
        order.items[0].quantity = 99
        with pytest.raises(ImmutableFieldError):
            db.flush()

    def test_items_cannot_be_added_later(self, headers, place_order, db):
        order = db.get(Order, place_order(headers)["id"])
        order.items.append(OrderItem(
            product_id=1, name="Extra", size="M", price=1, quantity=1, image_url="",
        ))
        with pytest.raises(ImmutableFieldError):
            db.flush()

    def test_status_is_still_writable(self, headers, place_order, db):
        order = db.get(Order, place_order(headers)["id"])
        order.status = "PROCESSING"
        db.commit()
        db.refresh(order)
        assert order.status == "PROCESSING"
