import uuid
import time
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy import select, func, case, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from hoteldine.core.config import settings
from hoteldine.core.security import Role
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.order import (
    Order, OrderStatus, OrderType, PaymentMethod, PaymentStatus, TERMINAL_STATUSES,
)
from hoteldine.db.schemas.order import OrderCreateRequest
from hoteldine.services.commission_service import CommissionService
from hoteldine.services.hotel_service import HotelService
from hoteldine.utils.money import MAX_ORDER_AMOUNT, ZERO, as_float, money, percent_of, to_decimal

logger = logging.getLogger(__name__)


class OrderTransitionError(ValueError):
    pass


_OPEN_STATUSES = [s for s in OrderStatus if s not in TERMINAL_STATUSES]

# actor -> current status -> statuses that actor may move the order to
ALLOWED_TRANSITIONS: Dict[Role, Dict[OrderStatus, frozenset]] = {
    Role.RESTAURANT: {
        OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
        OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    },
    Role.DELIVERY: {
        OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}),
        OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    },
    Role.HOTEL: {
        **{s: frozenset({OrderStatus.DELIVERED}) for s in _OPEN_STATUSES},
        OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.DELIVERED}),
    },
    Role.USER: {
        OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.CANCELLED}),
    },
    Role.ADMIN: {s: frozenset({OrderStatus.CANCELLED}) for s in _OPEN_STATUSES},
}


def check_transition(current: OrderStatus, target: OrderStatus, actor: Role) -> None:
    if current in TERMINAL_STATUSES:
        raise OrderTransitionError(f"Order is already {current.value}")
    allowed = ALLOWED_TRANSITIONS.get(actor, {}).get(current, frozenset())
    if target not in allowed:
        raise OrderTransitionError(
            f"{actor.value} cannot move an order from '{current.value}' to '{target.value}'"
        )


def apply_status(
        order: Order,
        target: OrderStatus,
        actor: Role,
        now: Optional[datetime] = None,
        reason: Optional[str] = None,
) -> None:
    """
    Set the new status and its tracking stamp on the order.

    Only `delivered` touches `delivered_at` / tracking.delivered, and only
    `cancelled` touches the cancellation fields.
    """
    check_transition(order.status, target, actor)
    now = now or datetime.now(timezone.utc)

    order.status = target
    # Reassign so SQLAlchemy sees the JSON change
    order.tracking = {
        **(order.tracking or {}),
        target.value: {"status": True, "timestamp": now.isoformat()},
    }

    if target == OrderStatus.DELIVERED:
        order.delivered_at = now
    elif target == OrderStatus.CANCELLED:
        order.cancelled_at = now
        order.cancelled_by = actor.value
        order.cancellation_reason = reason


def calculate_pricing(items: Sequence[Dict[str, Any]], order_type: OrderType) -> Dict[str, Decimal]:
    subtotal = money(sum(
        (to_decimal(i["price"]) * int(i["quantity"]) for i in items), ZERO
    ))
    if subtotal <= 0:
        raise ValueError("Order subtotal must be greater than 0")

    # QR orders are served inside the hotel
    delivery_fee = ZERO
    if order_type == OrderType.DIRECT and subtotal < to_decimal(settings.FREE_DELIVERY_THRESHOLD):
        delivery_fee = money(settings.DELIVERY_FEE)

    platform_fee = money(settings.PLATFORM_FEE)
    tax = percent_of(subtotal, settings.GST_RATE)

    total = subtotal + delivery_fee + platform_fee + tax
    if total > MAX_ORDER_AMOUNT:
        raise ValueError(f"Order total exceeds the maximum of {MAX_ORDER_AMOUNT}")

    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "platform_fee": platform_fee,
        "tax": tax,
        "total": total,
    }


def _generate_order_id() -> str:
    suffix = str(uuid.uuid4()).upper()[0:6]
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class OrderService:
    def __init__(
            self,
            db: AsyncSession,
            commission_service: CommissionService,
            hotel_service: HotelService,
    ):
        self.db = db
        self.commissions = commission_service
        self.hotels = hotel_service

    # --- 1. Checkout ---
    async def create_order(self, user_id: str, request: OrderCreateRequest) -> Order:
        """
        Resolve hotel -> price items -> split commission -> save.
        """
        hotel: Optional[Hotel] = None
        if request.hotel_reference:
            hotel = await self.hotels.find_by_reference(request.hotel_reference)
            if hotel is None or not hotel.is_active:
                raise ValueError(f"Hotel '{request.hotel_reference}' not found or inactive")

        is_pay_at_hotel = request.payment_method == PaymentMethod.PAY_AT_HOTEL
        if is_pay_at_hotel and hotel is None:
            raise ValueError("Pay at hotel requires a hotel reference")

        order_type = OrderType.QR if (hotel is not None or is_pay_at_hotel) else OrderType.DIRECT

        items = [item.model_dump() for item in request.items]
        pricing = calculate_pricing(items, order_type)

        now = datetime.now(timezone.utc)
        status = OrderStatus.CONFIRMED if is_pay_at_hotel else OrderStatus.PENDING
        tracking = {}
        if status == OrderStatus.CONFIRMED:
            tracking["confirmed"] = {"status": True, "timestamp": now.isoformat()}

        order = Order(
            order_id=_generate_order_id(),
            user_id=user_id,
            restaurant_id=request.restaurant_id,
            restaurant_name=request.restaurant_name,
            hotel_id=hotel.id if hotel is not None else None,
            hotel_reference=hotel.hotel_id if hotel is not None else None,
            room_number=request.room_number,
            order_type=order_type,
            items=items,
            note=request.note,
            payment_method=request.payment_method,
            payment_status=PaymentStatus.PENDING,
            cash_collected=False,
            status=status,
            tracking=tracking,
            commission_distributed=False,
            **pricing,
        )

        pcts = await self.commissions.resolve_percentages(order_type, hotel)
        split = self.commissions.apply_breakdown(order, pcts)
        logger.info(
            f"{order_type.value} order commission: pcts={pcts.as_dict()} "
            f"hotel={split.hotel} admin={split.admin} restaurant={split.restaurant}"
        )

        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)
        logger.info(f"Order {order.order_id} created for user {user_id} ({order.status.value})")
        return order

    # --- 2. Lookups ---
    async def get_order(self, order_id: str) -> Order:
        stmt = select(Order).where(Order.order_id == order_id)
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    async def get_user_order(self, user_id: str, order_id: str) -> Order:
        order = await self.get_order(order_id)
        if order.user_id != user_id:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    def _hotel_filter(self, hotel: Hotel):
        return or_(Order.hotel_id == hotel.id, Order.hotel_reference == hotel.hotel_id)

    async def get_hotel_order(self, hotel: Hotel, order_id: str) -> Order:
        stmt = select(Order).where(Order.order_id == order_id, self._hotel_filter(hotel))
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise HTTPException(status_code=404, detail="Order not found or does not belong to this hotel")
        return order

    async def _paginate(self, stmt, page: int, limit: int) -> Dict[str, Any]:
        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit)
        orders = (await self.db.execute(stmt)).scalars().all()

        return {
            "orders": orders,
            "pagination": {
                "currentPage": page,
                "totalPages": (total + limit - 1) // limit,
                "totalOrders": total,
                "ordersPerPage": limit,
            },
        }

    async def list_user_orders(
            self, user_id: str, status: Optional[OrderStatus] = None, page: int = 1, limit: int = 20
    ) -> Dict[str, Any]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == status)
        return await self._paginate(stmt, page, limit)

    async def list_hotel_orders(
            self, hotel: Hotel, status: Optional[OrderStatus] = None, page: int = 1, limit: int = 20
    ) -> Dict[str, Any]:
        stmt = select(Order).where(self._hotel_filter(hotel))
        if status:
            stmt = stmt.where(Order.status == status)
        return await self._paginate(stmt, page, limit)

    # --- 3. Status changes ---
    async def transition(
            self,
            order: Order,
            target: OrderStatus,
            actor: Role,
            reason: Optional[str] = None,
    ) -> Order:
        previous = order.status
        apply_status(order, target, actor, reason=reason)
        await self.db.commit()
        await self.db.refresh(order)
        logger.info(f"Order {order.order_id}: {previous.value} -> {target.value} by {actor.value}")

        if target == OrderStatus.DELIVERED:
            await self._distribute_safely(order)
        return order

    async def mark_ready(self, order: Order) -> Order:
        return await self.transition(order, OrderStatus.READY, Role.RESTAURANT)

    async def cancel(self, order: Order, actor: Role, reason: Optional[str] = None) -> Order:
        return await self.transition(order, OrderStatus.CANCELLED, actor, reason=reason)

    async def collect_payment(self, order: Order) -> Order:
        """Hotel staff took the cash for a pay-at-hotel order; this completes it."""
        if not order.is_pay_at_hotel:
            raise ValueError("Payment can only be collected for pay-at-hotel orders")
        if order.status in TERMINAL_STATUSES:
            raise OrderTransitionError(f"Order is already {order.status.value}")

        order.payment_status = PaymentStatus.COMPLETED
        order.cash_collected = True
        return await self.transition(order, OrderStatus.DELIVERED, Role.HOTEL)

    async def _distribute_safely(self, order: Order) -> None:
        try:
            await self.commissions.distribute_commissions(order)
        except Exception as e:
            logger.error(f"Failed to distribute commission for order {order.order_id}: {e}", exc_info=True)
            await self.db.rollback()
            await self.db.refresh(order)

    # --- 4. Hotel dashboard ---
    async def get_hotel_order_stats(self, hotel: Hotel) -> Dict[str, Any]:
        def count_status(status: OrderStatus):
            return func.coalesce(func.sum(case((Order.status == status, 1), else_=0)), 0)

        stmt = select(
            func.count(Order.id),
            func.coalesce(func.sum(case((Order.status != OrderStatus.CANCELLED, Order.total), else_=0)), 0),
            func.coalesce(func.sum(case((Order.commission_distributed.is_(True), Order.hotel_commission), else_=0)), 0),
            func.coalesce(func.sum(case(
                (and_(Order.payment_method == PaymentMethod.PAY_AT_HOTEL, Order.cash_collected.is_(True)), Order.total),
                else_=0,
            )), 0),
            count_status(OrderStatus.PENDING),
            count_status(OrderStatus.CONFIRMED),
            count_status(OrderStatus.DELIVERED),
            count_status(OrderStatus.CANCELLED),
        ).where(self._hotel_filter(hotel))

        row = (await self.db.execute(stmt)).one()
        total_requests, revenue, earnings, cash, pending, confirmed, completed, cancelled = row

        return {
            "totalRequests": int(total_requests or 0),
            "pending": int(pending),
            "confirmed": int(confirmed),
            "completed": int(completed),
            "cancelled": int(cancelled),
            "totalRevenue": as_float(revenue),
            "yourEarnings": as_float(earnings),
            "totalCashCollected": as_float(cash),
        }
