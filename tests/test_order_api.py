"""End-to-end order flows through the HTTP API."""

import pytest


class TestCheckout:
    def test_direct_order(self, client, place_order):
        order = place_order(price=60, quantity=2)

        assert order["orderType"] == "DIRECT"
        assert order["status"] == "pending"
        assert order["pricing"] == {
            "subtotal": 120.0, "deliveryFee": 25.0, "platformFee": 5.0, "tax": 6.0, "total": 156.0,
        }
        assert order["hotelCommission"] == 0.0
        assert order["adminCommission"] == 36.0
        assert order["restaurantShare"] == 84.0
        assert order["commissionDistributed"] is False

    def test_qr_order_uses_hotel_commission(self, client, make_hotel, place_order):
        hotel = make_hotel(commission=10, admin_commission=20)
        order = place_order(hotel_ref=hotel["hotelId"], price=134)

        assert order["orderType"] == "QR"
        assert order["hotelReference"] == hotel["hotelId"]
        assert order["hotelCommission"] == 13.4
        assert order["adminCommission"] == 26.8
        assert order["restaurantShare"] == 93.8
        assert order["commissionPercentages"] == {"hotel": 10.0, "admin": 20.0, "restaurant": 70.0}

    def test_pay_at_hotel_starts_confirmed(self, client, make_hotel, place_order):
        hotel = make_hotel()
        order = place_order(hotel_ref=hotel["hotelId"], payment_method="pay_at_hotel")
        assert order["status"] == "confirmed"
        assert order["tracking"]["confirmed"]["status"] is True

    def test_pay_at_hotel_needs_a_hotel(self, client, user_headers):
        resp = client.post("/orders", json={
            "restaurantId": "rest-1",
            "items": [{"itemId": "dosa", "name": "Dosa", "price": 80, "quantity": 1}],
            "paymentMethod": "pay_at_hotel",
        }, headers=user_headers)
        assert resp.status_code == 400

    def test_inactive_hotel_rejected(self, client, make_hotel, user_headers):
        hotel = make_hotel(is_active=False)
        resp = client.post("/orders", json={
            "restaurantId": "rest-1",
            "items": [{"itemId": "dosa", "name": "Dosa", "price": 80, "quantity": 1}],
            "hotelReference": hotel["hotelId"],
        }, headers=user_headers)
        assert resp.status_code == 400
        assert "inactive" in resp.json()["detail"]

    def test_invalid_items_rejected(self, client, user_headers):
        resp = client.post("/orders", json={
            "restaurantId": "rest-1",
            "items": [{"itemId": "dosa", "name": "Dosa", "price": 80, "quantity": 0}],
        }, headers=user_headers)
        assert resp.status_code == 422

    @pytest.mark.parametrize("item", [
        {"price": 1e30, "quantity": 1},
        {"price": 10, "quantity": 10**40},
    ])
    def test_out_of_range_amounts_rejected(self, client, user_headers, item):
        resp = client.post("/orders", json={
            "restaurantId": "rest-1",
            "items": [{"itemId": "dosa", "name": "Dosa", **item}],
        }, headers=user_headers)
        assert resp.status_code == 422

    def test_infinite_price_rejected(self, client, user_headers):
        body = (
            '{"restaurantId": "rest-1", '
            '"items": [{"itemId": "dosa", "name": "Dosa", "price": Infinity, "quantity": 1}]}'
        )
        resp = client.post(
            "/orders", content=body, headers={**user_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 422

    def test_total_beyond_limit_is_a_client_error(self, client, user_headers):
        resp = client.post("/orders", json={
            "restaurantId": "rest-1",
            "items": [{"itemId": "dosa", "name": "Dosa", "price": 99_999_999, "quantity": 5}],
        }, headers=user_headers)
        assert resp.status_code == 400
        assert "maximum" in resp.json()["detail"]

    def test_requires_user_token(self, client, restaurant_headers):
        body = {"restaurantId": "rest-1", "items": [{"itemId": "a", "name": "A", "price": 10, "quantity": 1}]}
        assert client.post("/orders", json=body).status_code == 401
        assert client.get("/orders", headers=restaurant_headers).status_code == 403


class TestUserOrders:
    def test_list_and_fetch(self, client, place_order, user_headers):
        first = place_order()
        place_order(price=200)

        resp = client.get("/orders", params={"limit": 1}, headers=user_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {
            "currentPage": 1, "totalPages": 2, "totalOrders": 2, "ordersPerPage": 1,
        }

        resp = client.get(f"/orders/{first['orderId']}", headers=user_headers)
        assert resp.json()["orderId"] == first["orderId"]

    def test_other_users_cannot_see_order(self, client, place_order):
        from hoteldine.core.security import Role, create_access_token

        order = place_order()
        other = {"Authorization": f"Bearer {create_access_token('user-2', Role.USER)}"}
        assert client.get(f"/orders/{order['orderId']}", headers=other).status_code == 404

    def test_cancel_pending_order(self, client, place_order, user_headers):
        order = place_order()
        resp = client.post(
            f"/orders/{order['orderId']}/cancel", json={"reason": "Too slow"}, headers=user_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["cancelledBy"] == "user"

        # terminal now
        resp = client.post(f"/orders/{order['orderId']}/cancel", headers=user_headers)
        assert resp.status_code == 400


class TestRestaurantAndDelivery:
    def _advance_to_ready(self, client, order_id, headers):
        for status in ("confirmed", "preparing"):
            resp = client.patch(
                f"/restaurant/orders/{order_id}/status", json={"status": status}, headers=headers,
            )
            assert resp.status_code == 200, resp.text
        return client.post(f"/restaurant/orders/{order_id}/ready", headers=headers)

    def test_mark_ready_does_not_deliver(self, client, place_order, restaurant_headers):
        order = place_order()
        resp = self._advance_to_ready(client, order["orderId"], restaurant_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ready"
        assert body["deliveredAt"] is None
        assert "delivered" not in body["tracking"]
        assert body["commissionDistributed"] is False

    def test_mark_ready_hotel_order_does_not_deliver(
            self, client, make_hotel, place_order, restaurant_headers, hotel_headers,
    ):
        hotel = make_hotel()
        order = place_order(hotel_ref=hotel["hotelId"], payment_method="pay_at_hotel")
        client.patch(
            f"/restaurant/orders/{order['orderId']}/status",
            json={"status": "preparing"}, headers=restaurant_headers,
        )
        resp = client.post(f"/restaurant/orders/{order['orderId']}/ready", headers=restaurant_headers)
        assert resp.json()["status"] == "ready"
        assert resp.json()["deliveredAt"] is None

        wallet = client.get("/hotel/wallet", headers=hotel_headers(hotel["hotelId"])).json()
        assert wallet["transactions"] == []

    def test_restaurant_cannot_deliver(self, client, place_order, restaurant_headers):
        order = place_order()
        resp = client.patch(
            f"/restaurant/orders/{order['orderId']}/status",
            json={"status": "delivered"}, headers=restaurant_headers,
        )
        assert resp.status_code == 400

    def test_other_restaurant_gets_404(self, client, place_order, restaurant_headers):
        order = place_order(restaurant_id="rest-2")
        resp = client.post(f"/restaurant/orders/{order['orderId']}/ready", headers=restaurant_headers)
        assert resp.status_code == 404

    def test_delivery_flow_distributes_commission(
            self, client, place_order, restaurant_headers, delivery_headers,
    ):
        order = place_order()
        self._advance_to_ready(client, order["orderId"], restaurant_headers)

        resp = client.post(f"/delivery/orders/{order['orderId']}/pickup", headers=delivery_headers)
        assert resp.json()["status"] == "out_for_delivery"

        resp = client.post(f"/delivery/orders/{order['orderId']}/deliver", headers=delivery_headers)
        body = resp.json()
        assert body["status"] == "delivered"
        assert body["deliveredAt"] is not None
        assert body["tracking"]["delivered"]["status"] is True
        assert body["commissionDistributed"] is True

    def test_pickup_before_ready_rejected(self, client, place_order, delivery_headers):
        order = place_order()
        resp = client.post(f"/delivery/orders/{order['orderId']}/pickup", headers=delivery_headers)
        assert resp.status_code == 400


class TestHotelOrders:
    def test_accept_and_reject(self, client, make_hotel, place_order, hotel_headers):
        hotel = make_hotel()
        headers = hotel_headers(hotel["hotelId"])
        first = place_order(hotel_ref=hotel["hotelId"])
        second = place_order(hotel_ref=hotel["hotelId"])

        resp = client.post(f"/hotel/orders/{first['orderId']}/accept", headers=headers)
        assert resp.json()["status"] == "confirmed"

        resp = client.post(f"/hotel/orders/{second['orderId']}/reject", headers=headers)
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["cancellationReason"] == "Rejected by hotel"

    def test_orders_of_other_hotels_hidden(self, client, make_hotel, place_order, hotel_headers):
        mine = make_hotel(phone="9000000001")
        theirs = make_hotel(phone="9000000002")
        order = place_order(hotel_ref=theirs["hotelId"])

        resp = client.get(f"/hotel/orders/{order['orderId']}", headers=hotel_headers(mine["hotelId"]))
        assert resp.status_code == 404
        listing = client.get("/hotel/orders", headers=hotel_headers(mine["hotelId"])).json()
        assert listing["orders"] == []

    def test_hotel_deliver_credits_wallet(self, client, make_hotel, place_order, hotel_headers):
        hotel = make_hotel(commission=10, admin_commission=20)
        headers = hotel_headers(hotel["hotelId"])
        order = place_order(hotel_ref=hotel["hotelId"], price=200)

        resp = client.post(f"/hotel/orders/{order['orderId']}/deliver", headers=headers)
        assert resp.json()["status"] == "delivered"

        wallet = client.get("/hotel/wallet", headers=headers).json()
        assert wallet["balance"] == 20.0
        assert wallet["totalEarned"] == 20.0
        assert [tx["type"] for tx in wallet["transactions"]] == ["commission"]

    def test_collect_payment_and_settlement(self, client, make_hotel, place_order, hotel_headers, admin_headers):
        hotel = make_hotel(commission=10, admin_commission=20)
        headers = hotel_headers(hotel["hotelId"])
        order = place_order(hotel_ref=hotel["hotelId"], payment_method="pay_at_hotel", price=100)
        assert order["pricing"]["total"] == 110.0

        resp = client.post(f"/hotel/orders/{order['orderId']}/collect-payment", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "delivered"
        assert body["paymentStatus"] == "completed"
        assert body["cashCollected"] is True
        assert body["commissionDistributed"] is True

        # collecting twice is rejected
        again = client.post(f"/hotel/orders/{order['orderId']}/collect-payment", headers=headers)
        assert again.status_code == 400

        summary = client.get("/hotel/orders/settlement-summary", headers=headers).json()
        assert summary == {
            "totalCashCollected": 110.0,
            "adminCommissionDue": 20.0,
            "settlementPaid": 0.0,
            "remainingSettlement": 20.0,
        }

        wallet = client.get("/hotel/wallet", headers=headers).json()
        assert wallet["balance"] == 0.0
        assert wallet["totalEarned"] == 10.0
        assert wallet["transactions"][0]["type"] == "cash_collection"

        resp = client.post(
            f"/admin/hotels/{hotel['hotelId']}/settlements",
            json={"amount": 15, "reference": "UPI-778"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["summary"]["remainingSettlement"] == 5.0

        client.post(
            f"/admin/hotels/{hotel['hotelId']}/settlements", json={"amount": 30}, headers=admin_headers,
        )
        summary = client.get("/hotel/orders/settlement-summary", headers=headers).json()
        assert summary["settlementPaid"] == 45.0
        assert summary["remainingSettlement"] == 0.0

    def test_collect_payment_only_for_pay_at_hotel(self, client, make_hotel, place_order, hotel_headers):
        hotel = make_hotel()
        order = place_order(hotel_ref=hotel["hotelId"])
        resp = client.post(
            f"/hotel/orders/{order['orderId']}/collect-payment", headers=hotel_headers(hotel["hotelId"]),
        )
        assert resp.status_code == 400

    def test_stats(self, client, make_hotel, place_order, hotel_headers):
        hotel = make_hotel(commission=10, admin_commission=20)
        headers = hotel_headers(hotel["hotelId"])
        paid = place_order(hotel_ref=hotel["hotelId"], payment_method="pay_at_hotel", price=100)
        place_order(hotel_ref=hotel["hotelId"], price=50)
        rejected = place_order(hotel_ref=hotel["hotelId"], price=80)

        client.post(f"/hotel/orders/{paid['orderId']}/collect-payment", headers=headers)
        client.post(f"/hotel/orders/{rejected['orderId']}/reject", headers=headers)

        stats = client.get("/hotel/orders/stats", headers=headers).json()
        assert stats == {
            "totalRequests": 3,
            "pending": 1,
            "confirmed": 0,
            "completed": 1,
            "cancelled": 1,
            "totalRevenue": 167.5,
            "yourEarnings": 10.0,
            "totalCashCollected": 110.0,
        }
