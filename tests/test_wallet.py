from decimal import Decimal

import pytest
from fastapi import HTTPException

from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.hotel_wallet import HotelWallet, TransactionStatus, TransactionType
from hoteldine.services.wallet_service import (
    WalletService, apply_to_balances, reverse_from_balances,
)


def _wallet():
    return HotelWallet(
        hotel_id=1,
        total_balance=Decimal("100.00"),
        total_earned=Decimal("100.00"),
        total_withdrawn=Decimal("0.00"),
    )


class TestBalanceRules:
    def test_commission_credits_balance_and_earned(self):
        wallet = _wallet()
        apply_to_balances(wallet, TransactionType.COMMISSION, Decimal("10.00"))
        assert wallet.total_balance == Decimal("110.00")
        assert wallet.total_earned == Decimal("110.00")

    def test_cash_collection_counts_as_earned_only(self):
        wallet = _wallet()
        apply_to_balances(wallet, TransactionType.CASH_COLLECTION, Decimal("10.00"))
        assert wallet.total_balance == Decimal("100.00")
        assert wallet.total_earned == Decimal("110.00")

    def test_withdrawal(self):
        wallet = _wallet()
        apply_to_balances(wallet, TransactionType.WITHDRAWAL, Decimal("40.00"))
        assert wallet.total_balance == Decimal("60.00")
        assert wallet.total_withdrawn == Decimal("40.00")

    def test_reversal_never_goes_negative(self):
        wallet = _wallet()
        reverse_from_balances(wallet, TransactionType.COMMISSION, Decimal("150.00"))
        assert wallet.total_balance == Decimal("0.00")
        assert wallet.total_earned == Decimal("0.00")


async def _hotel(db) -> Hotel:
    hotel = Hotel(hotel_id="HOTEL-1", hotel_name="Sea View", phone="9000000001", address="x")
    db.add(hotel)
    await db.commit()
    await db.refresh(hotel)
    return hotel


class TestWalletService:
    def test_pending_transaction_only_counts_once_completed(self, run):
        async def scenario(db):
            hotel = await _hotel(db)
            service = WalletService(db)
            tx = await service.add_transaction(hotel.id, 25, TransactionType.BONUS)
            pending = await service.get_wallet_view(hotel)
            await service.update_transaction_status(hotel.id, tx.id, TransactionStatus.COMPLETED)
            completed = await service.get_wallet_view(hotel)
            await service.update_transaction_status(hotel.id, tx.id, TransactionStatus.CANCELLED)
            cancelled = await service.get_wallet_view(hotel)
            return pending, completed, cancelled

        pending, completed, cancelled = run(scenario)
        assert pending["balance"] == 0.0
        assert len(pending["transactions"]) == 1
        assert completed["balance"] == 25.0
        assert completed["totalEarned"] == 25.0
        assert completed["pendingPayout"] == 25.0
        assert cancelled["balance"] == 0.0

    def test_negative_amount_rejected(self, run):
        async def scenario(db):
            hotel = await _hotel(db)
            with pytest.raises(ValueError):
                await WalletService(db).add_transaction(hotel.id, -1, TransactionType.BONUS)

        run(scenario)

    def test_unknown_transaction(self, run):
        async def scenario(db):
            hotel = await _hotel(db)
            with pytest.raises(HTTPException) as exc:
                await WalletService(db).update_transaction_status(hotel.id, 999, TransactionStatus.COMPLETED)
            return exc.value.status_code

        assert run(scenario) == 404


class TestWithdrawalApi:
    def _fund(self, client, hotel_id, admin_headers, amount=100):
        resp = client.post(
            f"/admin/hotels/{hotel_id}/wallet/adjustments",
            json={"type": "bonus", "amount": amount, "description": "Launch bonus"},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_request_approve_flow(self, client, make_hotel, hotel_headers, admin_headers):
        hotel = make_hotel()
        headers = hotel_headers(hotel["hotelId"])
        self._fund(client, hotel["hotelId"], admin_headers)

        assert client.post("/hotel/wallet/withdraw", json={"amount": 150}, headers=headers).status_code == 400

        resp = client.post("/hotel/wallet/withdraw", json={"amount": 60}, headers=headers)
        assert resp.status_code == 201
        withdrawal = resp.json()
        assert withdrawal["type"] == "withdrawal"
        assert withdrawal["status"] == "Pending"

        # pending requests hold their amount back
        assert client.get("/hotel/wallet", headers=headers).json()["balance"] == 100.0
        resp = client.post("/hotel/wallet/withdraw", json={"amount": 50}, headers=headers)
        assert resp.status_code == 400
        assert "Available: 40.00" in resp.json()["detail"]

        listing = client.get("/admin/hotel-withdrawals", params={"status": "Pending"}, headers=admin_headers).json()
        assert listing["pagination"]["total"] == 1
        assert listing["requests"][0]["hotelId"] == hotel["hotelId"]
        assert listing["requests"][0]["amount"] == 60.0

        resp = client.post(f"/admin/hotel-withdrawals/{withdrawal['id']}/approve", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "Completed"
        assert resp.json()["processedAt"] is not None

        wallet = client.get("/hotel/wallet", headers=headers).json()
        assert wallet["balance"] == 40.0
        assert wallet["totalWithdrawn"] == 60.0
        assert wallet["pendingPayout"] == 40.0

        resp = client.post(f"/admin/hotel-withdrawals/{withdrawal['id']}/approve", headers=admin_headers)
        assert resp.status_code == 400
        assert "already Completed" in resp.json()["detail"]

    def test_reject_leaves_balance(self, client, make_hotel, hotel_headers, admin_headers):
        hotel = make_hotel()
        headers = hotel_headers(hotel["hotelId"])
        self._fund(client, hotel["hotelId"], admin_headers, amount=80)
        withdrawal = client.post("/hotel/wallet/withdraw", json={"amount": 30}, headers=headers).json()

        resp = client.post(f"/admin/hotel-withdrawals/{withdrawal['id']}/reject", headers=admin_headers)
        assert resp.json()["status"] == "Cancelled"

        wallet = client.get("/hotel/wallet", headers=headers).json()
        assert wallet["balance"] == 80.0
        assert wallet["totalWithdrawn"] == 0.0
        assert client.post("/hotel/wallet/withdraw", json={"amount": 80}, headers=headers).status_code == 201

    def test_unknown_withdrawal(self, client, admin_headers):
        assert client.post("/admin/hotel-withdrawals/999/approve", headers=admin_headers).status_code == 404

    def test_only_admins_process_withdrawals(self, client, make_hotel, hotel_headers):
        hotel = make_hotel()
        headers = hotel_headers(hotel["hotelId"])
        assert client.get("/admin/hotel-withdrawals", headers=headers).status_code == 403
        assert client.post("/admin/hotel-withdrawals/1/approve", headers=headers).status_code == 403

    def test_adjustments(self, client, make_hotel, hotel_headers, admin_headers):
        hotel = make_hotel()
        url = f"/admin/hotels/{hotel['hotelId']}/wallet/adjustments"
        self._fund(client, hotel["hotelId"], admin_headers, amount=50)

        resp = client.post(url, json={"type": "deduction", "amount": 80}, headers=admin_headers)
        assert resp.status_code == 400
        resp = client.post(url, json={"type": "commission", "amount": 5}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(url, json={"type": "deduction", "amount": 20}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["status"] == "Completed"

        wallet = client.get("/hotel/wallet", headers=hotel_headers(hotel["hotelId"])).json()
        assert wallet["balance"] == 30.0
        assert wallet["totalEarned"] == 50.0
