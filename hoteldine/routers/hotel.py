import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hoteldine.core.dependencies import (
    get_current_hotel, get_hotel_service, get_order_service,
    get_settlement_service, get_wallet_service,
)
from hoteldine.core.rate_limit import user_rate_limit
from hoteldine.core.security import Role
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.order import OrderStatus
from hoteldine.db.schemas.hotel import HotelQRResponse
from hoteldine.db.schemas.order import (
    CancelRequest, HotelOrderStatsResponse, OrderListResponse, OrderResponse,
)
from hoteldine.db.schemas.settlement import (
    SettlementSummaryResponse, WalletResponse, WalletTransactionResponse, WithdrawalRequest,
)
from hoteldine.services.hotel_service import HotelService
from hoteldine.services.order_service import OrderService
from hoteldine.services.settlement_service import SettlementService
from hoteldine.services.wallet_service import WalletService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(user_rate_limit)])


# --- ORDERS ---

@router.get("/orders", response_model=OrderListResponse)
async def list_hotel_orders(
        status_filter: Optional[OrderStatus] = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    result = await service.list_hotel_orders(hotel, status_filter, page, limit)
    return OrderListResponse(
        orders=[OrderResponse.from_order(o) for o in result["orders"]],
        pagination=result["pagination"],
    )


# Static paths must be registered before /orders/{order_id}
@router.get("/orders/stats", response_model=HotelOrderStatsResponse)
async def get_order_stats(
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    return await service.get_hotel_order_stats(hotel)


@router.get("/orders/settlement-summary", response_model=SettlementSummaryResponse)
async def get_settlement_summary(
        hotel: Hotel = Depends(get_current_hotel),
        service: SettlementService = Depends(get_settlement_service),
):
    """Cash the hotel collected for pay-at-hotel orders and what it owes the platform."""
    try:
        return await service.get_settlement_summary(hotel)
    except Exception as e:
        logger.error(f"Error computing settlement summary for {hotel.hotel_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch settlement summary"
        )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_hotel_order(
        order_id: str,
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    return OrderResponse.from_order(await service.get_hotel_order(hotel, order_id))


async def _hotel_transition(
        service: OrderService,
        hotel: Hotel,
        order_id: str,
        target: OrderStatus,
        reason: Optional[str] = None,
) -> OrderResponse:
    order = await service.get_hotel_order(hotel, order_id)
    try:
        order = await service.transition(order, target, Role.HOTEL, reason=reason)
    except ValueError as e:
        logger.warning(f"Hotel {hotel.hotel_id} could not move {order_id} to {target.value}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OrderResponse.from_order(order)


@router.post("/orders/{order_id}/accept", response_model=OrderResponse)
async def accept_order(
        order_id: str,
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    return await _hotel_transition(service, hotel, order_id, OrderStatus.CONFIRMED)


@router.post("/orders/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
        order_id: str,
        body: Optional[CancelRequest] = None,
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    reason = body.reason if body and body.reason else "Rejected by hotel"
    return await _hotel_transition(service, hotel, order_id, OrderStatus.CANCELLED, reason)


@router.post("/orders/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(
        order_id: str,
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    return await _hotel_transition(service, hotel, order_id, OrderStatus.DELIVERED)


@router.post("/orders/{order_id}/collect-payment", response_model=OrderResponse)
async def collect_payment(
        order_id: str,
        hotel: Hotel = Depends(get_current_hotel),
        service: OrderService = Depends(get_order_service),
):
    order = await service.get_hotel_order(hotel, order_id)
    try:
        order = await service.collect_payment(order)
    except ValueError as e:
        logger.warning(f"Collect payment rejected for {order_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"Hotel {hotel.hotel_id} collected {order.total} for order {order_id}")
    return OrderResponse.from_order(order)


# --- WALLET & QR ---

@router.get("/wallet", response_model=WalletResponse)
async def get_wallet(
        hotel: Hotel = Depends(get_current_hotel),
        service: WalletService = Depends(get_wallet_service),
):
    view = await service.get_wallet_view(hotel)
    view["transactions"] = [WalletTransactionResponse.from_transaction(tx) for tx in view["transactions"]]
    return view


@router.post(
    "/wallet/withdraw",
    response_model=WalletTransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_withdrawal(
        body: WithdrawalRequest,
        hotel: Hotel = Depends(get_current_hotel),
        service: WalletService = Depends(get_wallet_service),
):
    """Ask for a payout; it stays Pending until an admin approves or rejects it."""
    try:
        tx = await service.request_withdrawal(hotel, body.amount, note=body.note)
    except ValueError as e:
        logger.warning(f"Withdrawal rejected for {hotel.hotel_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return WalletTransactionResponse.from_transaction(tx)


@router.get("/qr", response_model=HotelQRResponse)
async def get_hotel_qr(
        hotel: Hotel = Depends(get_current_hotel),
        service: HotelService = Depends(get_hotel_service),
):
    return await service.get_hotel_qr(hotel)
