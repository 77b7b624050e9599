import logging
from typing import Dict, Optional

from sqlalchemy import select, func, case, or_
from sqlalchemy.ext.asyncio import AsyncSession

from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.order import Order, PaymentMethod
from hoteldine.db.models.settlement_payment import SettlementPayment
from hoteldine.utils.money import Number, ZERO, as_float, money

logger = logging.getLogger(__name__)


def summarize(cash_collected: Number, admin_commission_due: Number, settlement_paid: Number) -> Dict[str, float]:
    """Outstanding settlement of a hotel towards the platform."""
    due = money(admin_commission_due)
    paid = money(settlement_paid)
    return {
        "totalCashCollected": as_float(cash_collected),
        "adminCommissionDue": float(due),
        "settlementPaid": float(paid),
        "remainingSettlement": float(max(due - paid, ZERO)),
    }


class SettlementService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_settlement_summary(self, hotel: Hotel) -> Dict[str, float]:
        orders_stmt = select(
            func.coalesce(func.sum(case((Order.cash_collected.is_(True), Order.total), else_=0)), 0),
            func.coalesce(func.sum(case((Order.commission_distributed.is_(True), Order.admin_commission), else_=0)), 0),
        ).where(
            or_(Order.hotel_id == hotel.id, Order.hotel_reference == hotel.hotel_id),
            Order.payment_method == PaymentMethod.PAY_AT_HOTEL,
        )
        cash_collected, admin_due = (await self.db.execute(orders_stmt)).one()

        paid_stmt = select(func.coalesce(func.sum(SettlementPayment.amount), 0)).where(
            SettlementPayment.hotel_id == hotel.id
        )
        paid = (await self.db.execute(paid_stmt)).scalar()

        return summarize(cash_collected, admin_due, paid)

    async def record_payment(
            self,
            hotel: Hotel,
            amount: Number,
            reference: Optional[str] = None,
            note: Optional[str] = None,
            recorded_by: Optional[str] = None,
    ) -> SettlementPayment:
        amount = money(amount)
        if amount <= 0:
            raise ValueError("Settlement amount must be greater than 0")

        payment = SettlementPayment(
            hotel_id=hotel.id,
            amount=amount,
            reference=reference,
            note=note,
            recorded_by=recorded_by,
        )
        self.db.add(payment)
        await self.db.commit()
        await self.db.refresh(payment)
        logger.info(f"Recorded settlement of {amount} from hotel {hotel.hotel_id} by {recorded_by}")
        return payment
