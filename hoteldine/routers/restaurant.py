import logging

from fastapi import APIRouter, Depends, HTTPException, status

from hoteldine.core.dependencies import get_order_service
from hoteldine.core.rate_limit import user_rate_limit
from hoteldine.core.security import Principal, Role, require_role
from hoteldine.db.models.order import Order
from hoteldine.db.schemas.order import OrderResponse, StatusUpdateRequest
from hoteldine.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(user_rate_limit)])

current_restaurant = require_role(Role.RESTAURANT)


async def _restaurant_order(order_id: str, principal: Principal, service: OrderService) -> Order:
    order = await service.get_order(order_id)
    if order.restaurant_id != principal.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
        order_id: str,
        body: StatusUpdateRequest,
        principal: Principal = Depends(current_restaurant),
        service: OrderService = Depends(get_order_service),
):
    order = await _restaurant_order(order_id, principal, service)
    try:
        order = await service.transition(order, body.status, Role.RESTAURANT, reason=body.reason)
    except ValueError as e:
        logger.warning(f"Restaurant {principal.id} status change rejected for {order_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OrderResponse.from_order(order)


@router.post("/orders/{order_id}/ready", response_model=OrderResponse)
async def mark_order_ready(
        order_id: str,
        principal: Principal = Depends(current_restaurant),
        service: OrderService = Depends(get_order_service),
):
    """Food is ready for pickup. Never completes the order."""
    order = await _restaurant_order(order_id, principal, service)
    try:
        order = await service.mark_ready(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OrderResponse.from_order(order)
