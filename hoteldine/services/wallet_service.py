import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.hotel_wallet import (
    HotelWallet, WalletTransaction, TransactionStatus, TransactionType,
)
from hoteldine.utils.money import MAX_LEDGER_AMOUNT, Number, ZERO, as_float, money, to_decimal

logger = logging.getLogger(__name__)

_CREDIT_TYPES = {TransactionType.COMMISSION, TransactionType.BONUS, TransactionType.REFUND}
ADJUSTMENT_TYPES = (TransactionType.BONUS, TransactionType.REFUND, TransactionType.DEDUCTION)


def apply_to_balances(wallet: HotelWallet, tx_type: TransactionType, amount: Decimal) -> None:
    """Book a completed transaction against the wallet totals."""
    if tx_type in _CREDIT_TYPES:
        wallet.total_balance = to_decimal(wallet.total_balance) + amount
        wallet.total_earned = to_decimal(wallet.total_earned) + amount
    elif tx_type == TransactionType.CASH_COLLECTION:
        # Cash stays with the hotel; it counts as earned but never enters the balance
        wallet.total_earned = to_decimal(wallet.total_earned) + amount
    elif tx_type == TransactionType.WITHDRAWAL:
        wallet.total_balance = to_decimal(wallet.total_balance) - amount
        wallet.total_withdrawn = to_decimal(wallet.total_withdrawn) + amount
    elif tx_type == TransactionType.DEDUCTION:
        wallet.total_balance = to_decimal(wallet.total_balance) - amount


def reverse_from_balances(wallet: HotelWallet, tx_type: TransactionType, amount: Decimal) -> None:
    """Undo a completed transaction that later failed or was cancelled. Totals never go below zero."""
    if tx_type in _CREDIT_TYPES:
        wallet.total_balance = max(ZERO, to_decimal(wallet.total_balance) - amount)
        wallet.total_earned = max(ZERO, to_decimal(wallet.total_earned) - amount)
    elif tx_type == TransactionType.CASH_COLLECTION:
        wallet.total_earned = max(ZERO, to_decimal(wallet.total_earned) - amount)
    elif tx_type == TransactionType.WITHDRAWAL:
        wallet.total_balance = to_decimal(wallet.total_balance) + amount
        wallet.total_withdrawn = max(ZERO, to_decimal(wallet.total_withdrawn) - amount)
    elif tx_type == TransactionType.DEDUCTION:
        wallet.total_balance = to_decimal(wallet.total_balance) + amount


def withdrawal_view(tx: WalletTransaction, hotel: Hotel) -> dict:
    return {
        "id": tx.id,
        "hotelId": hotel.hotel_id,
        "hotelName": hotel.hotel_name,
        "amount": as_float(tx.amount),
        "status": tx.status,
        "description": tx.description,
        "requestedAt": tx.created_at,
        "processedAt": tx.processed_at,
    }


class WalletService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, hotel_pk: int) -> HotelWallet:
        stmt = select(HotelWallet).where(HotelWallet.hotel_id == hotel_pk)
        wallet = (await self.db.execute(stmt)).scalar_one_or_none()
        if wallet is None:
            wallet = HotelWallet(
                hotel_id=hotel_pk,
                total_balance=ZERO,
                total_earned=ZERO,
                total_withdrawn=ZERO,
            )
            self.db.add(wallet)
            await self.db.flush()
            logger.info(f"Created wallet for hotel pk={hotel_pk}")
        return wallet

    async def add_transaction(
            self,
            hotel_pk: int,
            amount: Number,
            tx_type: TransactionType,
            status: TransactionStatus = TransactionStatus.PENDING,
            description: Optional[str] = None,
            order_id: Optional[str] = None,
            commit: bool = True,
    ) -> WalletTransaction:
        amount = money(amount)
        if amount < 0:
            raise ValueError("Transaction amount must not be negative")
        if amount > MAX_LEDGER_AMOUNT:
            raise ValueError(f"Transaction amount exceeds the maximum of {MAX_LEDGER_AMOUNT}")

        wallet = await self.get_or_create(hotel_pk)
        now = datetime.now(timezone.utc)

        tx = WalletTransaction(
            wallet_id=wallet.id,
            amount=amount,
            type=tx_type,
            status=status,
            description=description,
            order_id=order_id,
            processed_at=now if status == TransactionStatus.COMPLETED else None,
        )
        self.db.add(tx)

        if status == TransactionStatus.COMPLETED:
            apply_to_balances(wallet, tx_type, amount)
        wallet.last_transaction_at = now

        if commit:
            await self.db.commit()
            await self.db.refresh(tx)
        else:
            await self.db.flush()

        logger.info(f"Wallet tx {tx_type.value} {amount} ({status.value}) for hotel pk={hotel_pk}")
        return tx

    async def update_transaction_status(
            self,
            hotel_pk: int,
            transaction_id: int,
            status: TransactionStatus,
    ) -> WalletTransaction:
        wallet = await self.get_or_create(hotel_pk)
        stmt = select(WalletTransaction).where(
            WalletTransaction.id == transaction_id,
            WalletTransaction.wallet_id == wallet.id,
        )
        tx = (await self.db.execute(stmt)).scalar_one_or_none()
        if tx is None:
            raise HTTPException(status_code=404, detail="Transaction not found")

        old_status = tx.status
        tx.status = status
        tx.processed_at = datetime.now(timezone.utc)
        amount = to_decimal(tx.amount)

        if old_status == TransactionStatus.PENDING and status == TransactionStatus.COMPLETED:
            apply_to_balances(wallet, tx.type, amount)
        elif old_status == TransactionStatus.COMPLETED and status in (
                TransactionStatus.FAILED, TransactionStatus.CANCELLED
        ):
            reverse_from_balances(wallet, tx.type, amount)

        await self.db.commit()
        await self.db.refresh(tx)
        return tx

    # --- Withdrawals ---
    async def available_balance(self, wallet: HotelWallet) -> Decimal:
        """Balance not already promised to pending withdrawal requests."""
        stmt = select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(
            WalletTransaction.wallet_id == wallet.id,
            WalletTransaction.type == TransactionType.WITHDRAWAL,
            WalletTransaction.status == TransactionStatus.PENDING,
        )
        pending = to_decimal((await self.db.execute(stmt)).scalar())
        return money(to_decimal(wallet.total_balance) - pending)

    async def request_withdrawal(self, hotel: Hotel, amount: Number, note: Optional[str] = None) -> WalletTransaction:
        """
        Create a Pending withdrawal. The balance only moves once an admin
        approves it; rejecting it leaves the balance untouched.
        """
        amount = money(amount)
        if amount <= 0:
            raise ValueError("Withdrawal amount must be greater than 0")

        wallet = await self.get_or_create(hotel.id)
        available = await self.available_balance(wallet)
        if amount > available:
            raise ValueError(f"Insufficient balance. Available: {available}")

        tx = await self.add_transaction(
            hotel.id,
            amount,
            TransactionType.WITHDRAWAL,
            description=note or "Withdrawal request",
        )
        logger.info(f"Hotel {hotel.hotel_id} requested withdrawal of {amount}")
        return tx

    async def list_withdrawals(
            self, status: Optional[TransactionStatus] = None, page: int = 1, limit: int = 50
    ) -> dict:
        stmt = (
            select(WalletTransaction, Hotel)
            .join(HotelWallet, WalletTransaction.wallet_id == HotelWallet.id)
            .join(Hotel, HotelWallet.hotel_id == Hotel.id)
            .where(WalletTransaction.type == TransactionType.WITHDRAWAL)
        )
        if status:
            stmt = stmt.where(WalletTransaction.status == status)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(
            WalletTransaction.created_at.desc(), WalletTransaction.id.desc()
        ).offset((page - 1) * limit).limit(limit)
        rows = (await self.db.execute(stmt)).all()

        return {
            "requests": [withdrawal_view(tx, hotel) for tx, hotel in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }

    async def process_withdrawal(self, transaction_id: int, approve: bool) -> dict:
        stmt = (
            select(WalletTransaction, Hotel)
            .join(HotelWallet, WalletTransaction.wallet_id == HotelWallet.id)
            .join(Hotel, HotelWallet.hotel_id == Hotel.id)
            .where(
                WalletTransaction.id == transaction_id,
                WalletTransaction.type == TransactionType.WITHDRAWAL,
            )
        )
        row = (await self.db.execute(stmt)).first()
        if row is None:
            raise HTTPException(status_code=404, detail="Withdrawal request not found")

        tx, hotel = row
        if tx.status != TransactionStatus.PENDING:
            raise ValueError(f"Withdrawal request is already {tx.status.value}")

        if approve:
            wallet = await self.get_or_create(hotel.id)
            if to_decimal(tx.amount) > to_decimal(wallet.total_balance):
                raise ValueError("Insufficient balance to approve this withdrawal")

        target = TransactionStatus.COMPLETED if approve else TransactionStatus.CANCELLED
        tx = await self.update_transaction_status(hotel.id, tx.id, target)
        logger.info(f"Withdrawal {tx.id} of {tx.amount} for hotel {hotel.hotel_id} -> {target.value}")
        return withdrawal_view(tx, hotel)

    # --- Admin adjustments ---
    async def adjust(
            self, hotel: Hotel, tx_type: TransactionType, amount: Number, description: Optional[str] = None
    ) -> WalletTransaction:
        """Book a completed bonus, refund or deduction against a hotel wallet."""
        if tx_type not in ADJUSTMENT_TYPES:
            raise ValueError(f"'{tx_type.value}' is not a wallet adjustment")
        amount = money(amount)
        if amount <= 0:
            raise ValueError("Adjustment amount must be greater than 0")

        if tx_type == TransactionType.DEDUCTION:
            wallet = await self.get_or_create(hotel.id)
            if amount > await self.available_balance(wallet):
                raise ValueError("Deduction exceeds the available wallet balance")

        tx = await self.add_transaction(
            hotel.id,
            amount,
            tx_type,
            status=TransactionStatus.COMPLETED,
            description=description or tx_type.value.capitalize(),
        )
        logger.info(f"Admin {tx_type.value} of {amount} for hotel {hotel.hotel_id}")
        return tx

    async def get_wallet_view(self, hotel: Hotel, limit: int = 50) -> dict:
        wallet = await self.get_or_create(hotel.id)
        await self.db.commit()
        await self.db.refresh(wallet)

        stmt = (
            select(WalletTransaction)
            .where(WalletTransaction.wallet_id == wallet.id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
            .limit(limit)
        )
        transactions = (await self.db.execute(stmt)).scalars().all()

        earned = to_decimal(wallet.total_earned)
        withdrawn = to_decimal(wallet.total_withdrawn)
        return {
            "hotelId": hotel.hotel_id,
            "balance": as_float(wallet.total_balance),
            "totalEarned": as_float(earned),
            "totalWithdrawn": as_float(withdrawn),
            "pendingPayout": as_float(earned - withdrawn),
            "transactions": transactions,
            "updatedAt": wallet.updated_at or wallet.created_at,
        }
