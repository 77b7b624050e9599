import logging
from decimal import Decimal
from typing import NamedTuple, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hoteldine.core.config import settings
from hoteldine.db.models.commission_settings import CommissionSettings
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.hotel_wallet import TransactionStatus, TransactionType
from hoteldine.db.models.order import Order, OrderType
from hoteldine.services.wallet_service import WalletService
from hoteldine.utils.money import Number, money, percent_of, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class CommissionSplit(NamedTuple):
    hotel: Decimal
    admin: Decimal
    restaurant: Decimal


class CommissionPercentages(NamedTuple):
    hotel: Decimal
    admin: Decimal
    restaurant: Decimal

    def as_dict(self) -> dict:
        return {
            "hotel": float(self.hotel),
            "admin": float(self.admin),
            "restaurant": float(self.restaurant),
        }


def _validate_pct(name: str, value: Decimal) -> None:
    if value < 0 or value > HUNDRED:
        raise ValueError(f"{name} commission must be between 0 and 100, got {value}")


def split_commission(
        total: Number,
        hotel_pct: Number,
        admin_pct: Number,
        restaurant_pct: Optional[Number] = None,
) -> CommissionSplit:
    """
    Split `total` into hotel / admin / restaurant shares.

    Hotel and admin shares are each rounded half-up to the paisa; the
    restaurant receives the exact remainder, so the three shares always add
    back up to `total`.
    """
    hotel_pct = to_decimal(hotel_pct)
    admin_pct = to_decimal(admin_pct)
    restaurant_pct = HUNDRED - hotel_pct - admin_pct if restaurant_pct is None else to_decimal(restaurant_pct)

    _validate_pct("Hotel", hotel_pct)
    _validate_pct("Admin", admin_pct)
    _validate_pct("Restaurant", restaurant_pct)
    if hotel_pct + admin_pct + restaurant_pct != HUNDRED:
        raise ValueError(
            f"Commission percentages must sum to 100, got "
            f"{hotel_pct} + {admin_pct} + {restaurant_pct}"
        )

    total = money(total)
    hotel_amount = percent_of(total, hotel_pct)
    admin_amount = percent_of(total, admin_pct)
    restaurant_amount = total - hotel_amount - admin_amount

    return CommissionSplit(hotel_amount, admin_amount, restaurant_amount)


class CommissionService:
    def __init__(self, db: AsyncSession, wallet_service: WalletService):
        self.db = db
        self.wallets = wallet_service

    # --- Settings ---
    async def get_settings(self) -> CommissionSettings:
        """Newest saved settings, or an unsaved row holding the configured defaults."""
        stmt = select(CommissionSettings).order_by(
            CommissionSettings.created_at.desc(), CommissionSettings.id.desc()
        ).limit(1)
        current = (await self.db.execute(stmt)).scalar_one_or_none()
        if current is not None:
            return current

        return CommissionSettings(
            qr_hotel=to_decimal(settings.QR_HOTEL_COMMISSION),
            qr_admin=to_decimal(settings.QR_ADMIN_COMMISSION),
            direct_admin=to_decimal(settings.DIRECT_ADMIN_COMMISSION),
            direct_restaurant=to_decimal(settings.DIRECT_RESTAURANT_COMMISSION),
        )

    async def update_settings(
            self,
            qr_hotel: Number,
            qr_admin: Number,
            direct_admin: Number,
            direct_restaurant: Number,
            updated_by: Optional[str] = None,
    ) -> CommissionSettings:
        qr_hotel, qr_admin = to_decimal(qr_hotel), to_decimal(qr_admin)
        direct_admin, direct_restaurant = to_decimal(direct_admin), to_decimal(direct_restaurant)

        for name, value in (
                ("QR hotel", qr_hotel), ("QR admin", qr_admin),
                ("Direct admin", direct_admin), ("Direct restaurant", direct_restaurant),
        ):
            _validate_pct(name, value)

        if qr_hotel + qr_admin > HUNDRED:
            raise ValueError("QR commission percentages must not exceed 100%")
        if direct_admin + direct_restaurant != HUNDRED:
            raise ValueError("Direct commission percentages must sum to 100%")

        # Each update is a new version; history is kept
        new_settings = CommissionSettings(
            qr_hotel=qr_hotel,
            qr_admin=qr_admin,
            direct_admin=direct_admin,
            direct_restaurant=direct_restaurant,
            updated_by=updated_by,
        )
        self.db.add(new_settings)
        await self.db.commit()
        await self.db.refresh(new_settings)
        logger.info(f"Commission settings updated by {updated_by}: {new_settings!r}")
        return new_settings

    async def resolve_percentages(self, order_type: OrderType, hotel: Optional[Hotel]) -> CommissionPercentages:
        current = await self.get_settings()

        if order_type == OrderType.DIRECT:
            return CommissionPercentages(
                hotel=Decimal(0),
                admin=to_decimal(current.direct_admin),
                restaurant=to_decimal(current.direct_restaurant),
            )

        hotel_pct = to_decimal(hotel.commission) if hotel is not None else Decimal(0)
        admin_pct = to_decimal(hotel.admin_commission) if hotel is not None else Decimal(0)

        if hotel is not None and (hotel_pct or admin_pct):
            logger.info(f"Using hotel-specific commission for {hotel.hotel_id}: hotel {hotel_pct}%, admin {admin_pct}%")
        else:
            hotel_pct = to_decimal(current.qr_hotel)
            admin_pct = to_decimal(current.qr_admin)
            logger.info(f"Using global QR commission: hotel {hotel_pct}%, admin {admin_pct}%")

        return CommissionPercentages(hotel_pct, admin_pct, HUNDRED - hotel_pct - admin_pct)

    def apply_breakdown(self, order: Order, pcts: CommissionPercentages) -> CommissionSplit:
        """Store the split of the order subtotal on the order (no commit)."""
        split = split_commission(order.subtotal, pcts.hotel, pcts.admin, pcts.restaurant)
        order.commission_percentages = pcts.as_dict()
        order.hotel_commission = split.hotel
        order.admin_commission = split.admin
        order.restaurant_share = split.restaurant
        return split

    # --- Distribution ---
    async def distribute_commissions(self, order: Order) -> Optional[CommissionSplit]:
        """
        Finalize the commission split of a completed order and credit the hotel.
        Returns None when the order was already distributed.
        """
        if order.commission_distributed:
            logger.warning(f"Commission already distributed for order {order.order_id}")
            return None

        # Claim the order in the database so concurrent requests credit it once
        claim = (
            update(Order)
            .where(Order.id == order.id, Order.commission_distributed.is_(False))
            .values(commission_distributed=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(claim)
        if result.rowcount != 1:
            await self.db.refresh(order)
            logger.warning(f"Commission for order {order.order_id} was claimed by another request")
            return None

        pcts = order.commission_percentages or {}
        split = split_commission(
            order.subtotal,
            pcts.get("hotel", 0),
            pcts.get("admin", 0),
            pcts.get("restaurant"),
        )

        order.hotel_commission = split.hotel
        order.admin_commission = split.admin
        order.restaurant_share = split.restaurant
        order.commission_distributed = True

        logger.info(
            f"Distributing commission for order {order.order_id}: total={order.subtotal} "
            f"hotel={split.hotel} admin={split.admin} restaurant={split.restaurant}"
        )

        if order.hotel_id is not None and split.hotel > 0:
            tx_type = TransactionType.CASH_COLLECTION if order.is_pay_at_hotel else TransactionType.COMMISSION
            label = "Cash Collection" if order.is_pay_at_hotel else "Commission"
            await self.wallets.add_transaction(
                order.hotel_id,
                amount=split.hotel,
                tx_type=tx_type,
                status=TransactionStatus.COMPLETED,
                description=f"{label} for Order #{order.order_id}",
                order_id=order.order_id,
                commit=False,
            )

        await self.db.commit()
        await self.db.refresh(order)
        logger.info(f"Commission distributed successfully for order {order.order_id}")
        return split
