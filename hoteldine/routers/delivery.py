import logging

from fastapi import APIRouter, Depends, HTTPException, status

from hoteldine.core.dependencies import get_delivery_service, get_order_service
from hoteldine.core.rate_limit import user_rate_limit
from hoteldine.core.security import Principal, Role, get_current_principal, require_role
from hoteldine.db.models.order import OrderStatus
from hoteldine.db.schemas.delivery import LocationUpdateRequest, LocationUpdateResponse
from hoteldine.db.schemas.order import OrderResponse
from hoteldine.services.delivery_service import DeliveryService
from hoteldine.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(user_rate_limit)])

current_partner = require_role(Role.DELIVERY)


@router.post("/orders/{order_id}/pickup", response_model=OrderResponse)
async def pickup_order(
        order_id: str,
        principal: Principal = Depends(current_partner),
        service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(order_id)
    try:
        order = await service.transition(order, OrderStatus.OUT_FOR_DELIVERY, Role.DELIVERY)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"Order {order_id} picked up by partner {principal.id}")
    return OrderResponse.from_order(order)


@router.post("/orders/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(
        order_id: str,
        principal: Principal = Depends(current_partner),
        service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(order_id)
    try:
        order = await service.transition(order, OrderStatus.DELIVERED, Role.DELIVERY)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"Order {order_id} delivered by partner {principal.id}")
    return OrderResponse.from_order(order)


@router.post("/location", response_model=LocationUpdateResponse)
async def update_location(
        body: LocationUpdateRequest,
        principal: Principal = Depends(current_partner),
        service: DeliveryService = Depends(get_delivery_service),
):
    return await service.update_location(principal.id, body.lat, body.lng, body.orderId)


@router.get("/location/{partner_id}", response_model=LocationUpdateResponse)
async def get_partner_location(
        partner_id: str,
        principal: Principal = Depends(get_current_principal),
        service: DeliveryService = Depends(get_delivery_service),
):
    """Last known position of a delivery partner, for live order tracking."""
    location = await service.get_location(partner_id)
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not available")
    return {**location, "partnerId": partner_id}
