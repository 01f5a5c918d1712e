"""HTTP surface: routing, caller resolution and error rendering."""

from urllib.parse import quote


def order_body(**overrides):
    body = {
        "restaurant_id": "r1",
        "delivery": {"delivery_address": "12 Avenue Kasa-Vubu", "notes": "Ring twice"},
        "items": [
            {"id": "m1", "name": "Chicken Moambe", "quantity": 2, "price": "5.00"},
            {"id": "m2", "name": "Pondu", "quantity": 1, "price": "3.50"},
        ],
        "total": "13.50",
    }
    body.update(overrides)
    return body


CUSTOMER = {"X-User-Id": "u-cust"}
STAFF = {"X-User-Id": "u-staff1"}
ADMIN = {"X-User-Id": "u-admin"}


async def place(client, **overrides):
    response = await client.post("/api/orders", json=order_body(**overrides), headers=CUSTOMER)
    assert response.status_code == 201, response.text
    return response.json()


class TestPlaceOrder:

    async def test_created(self, client):
        data = await place(client)
        assert data["success"] is True
        assert data["display_order_number"].startswith("#")
        assert data["order_id"]

    async def test_anonymous_is_unauthorized(self, client):
        response = await client.post("/api/orders", json=order_body())
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "UNAUTHORIZED", "detail": "You must be logged in"}

    async def test_unknown_user_is_unauthorized(self, client):
        response = await client.post("/api/orders", json=order_body(), headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    async def test_staff_is_forbidden(self, client):
        response = await client.post("/api/orders", json=order_body(), headers=STAFF)
        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"

    async def test_unknown_restaurant(self, client):
        response = await client.post("/api/orders", json=order_body(restaurant_id="nope"), headers=CUSTOMER)
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    async def test_schema_errors_render_as_validation_error(self, client):
        response = await client.post("/api/orders", json=order_body(items=[]), headers=CUSTOMER)
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

        payment = {"payment_method": "mobile_money", "provider_name": "M-Pesa"}
        response = await client.post("/api/orders", json=order_body(payment=payment), headers=CUSTOMER)
        assert response.status_code == 422


class TestStatus:

    async def test_update_and_cancel(self, client):
        placed = await place(client)
        url = f"/api/orders/{placed['order_id']}/status"

        response = await client.patch(url, json={"status": "PREPARING"}, headers=STAFF)
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "PREPARING"
        assert [line["name"] for line in order["items"]] == ["Chicken Moambe", "Pondu"]

        response = await client.patch(url, json={"status": "CANCELLED"}, headers=STAFF)
        assert response.status_code == 422

        response = await client.patch(
            url, json={"status": "CANCELLED", "cancellation_reason": "Out of stock"}, headers=STAFF
        )
        assert response.json()["order"]["cancellation_reason"] == "Out of stock"

        response = await client.patch(url, json={"status": "DISPATCHED"}, headers=STAFF)
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATE_TRANSITION"

    async def test_unknown_status_value(self, client):
        placed = await place(client)
        response = await client.patch(
            f"/api/orders/{placed['order_id']}/status", json={"status": "EATEN"}, headers=STAFF
        )
        assert response.status_code == 422


class TestListings:

    async def test_my_orders(self, client):
        placed = await place(client)
        response = await client.get("/api/orders/mine", headers=CUSTOMER)
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"total": 1, "page": 1, "page_size": 10, "total_pages": 1}
        summary = data["orders"][0]
        assert summary["display_order_number"] == placed["display_order_number"]
        assert summary["restaurant_name"] == "Chez Mama"
        assert summary["customer_name"] == "Amani"
        assert summary["item_count"] == 3

    async def test_restaurant_orders_with_filters(self, client):
        await place(client)
        response = await client.get(
            "/api/restaurants/r1/orders", params={"status": "placed", "page_size": 5}, headers=STAFF
        )
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

        response = await client.get("/api/restaurants/r1/orders", params={"status": "bogus"}, headers=STAFF)
        assert response.status_code == 422

    async def test_admin_listing(self, client):
        await place(client)
        assert (await client.get("/api/orders", headers=ADMIN)).status_code == 200
        assert (await client.get("/api/orders", headers=STAFF)).status_code == 403

    async def test_lookup_by_number(self, client):
        placed = await place(client)
        number = quote(placed["display_order_number"], safe="")

        response = await client.get(f"/api/orders/by-number/{number}", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["id"] == placed["order_id"]


class TestPayments:

    async def test_list_and_update(self, client):
        payment = {
            "payment_method": "mobile_money",
            "mobile_number": "0812345678",
            "transaction_id": "MP240617",
            "provider_name": "M-Pesa",
        }
        await place(client, payment=payment)

        response = await client.get("/api/restaurants/r1/payments", headers=STAFF)
        assert response.status_code == 200
        transactions = response.json()["transactions"]
        assert len(transactions) == 1
        assert transactions[0]["status"] == "PENDING"

        response = await client.patch(
            f"/api/payments/{transactions[0]['id']}/status",
            json={"status": "COMPLETED", "notes": "Confirmed by phone"},
            headers=STAFF,
        )
        assert response.status_code == 200
        assert response.json()["transaction"]["notes"] == "Confirmed by phone"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "operational"
    assert data["database"] == "healthy"
