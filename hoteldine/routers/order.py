import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hoteldine.core.dependencies import get_order_service
from hoteldine.core.rate_limit import user_rate_limit
from hoteldine.core.security import Principal, Role, require_role
from hoteldine.db.models.order import OrderStatus
from hoteldine.db.schemas.order import (
    CancelRequest, OrderCreateRequest, OrderListResponse, OrderResponse,
)
from hoteldine.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(user_rate_limit)])

current_user = require_role(Role.USER)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
        request: OrderCreateRequest,
        principal: Principal = Depends(current_user),
        service: OrderService = Depends(get_order_service),
):
    """
    Place an order.
    Pricing, hotel resolution and the commission breakdown happen in OrderService.
    """
    try:
        order = await service.create_order(principal.id, request)
        return OrderResponse.from_order(order)

    except ValueError as e:
        logger.warning(f"Order validation failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"System error creating order: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not process order."
        )


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
        status_filter: Optional[OrderStatus] = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        principal: Principal = Depends(current_user),
        service: OrderService = Depends(get_order_service),
):
    result = await service.list_user_orders(principal.id, status_filter, page, limit)
    return OrderListResponse(
        orders=[OrderResponse.from_order(o) for o in result["orders"]],
        pagination=result["pagination"],
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
        order_id: str,
        principal: Principal = Depends(current_user),
        service: OrderService = Depends(get_order_service),
):
    order = await service.get_user_order(principal.id, order_id)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
        order_id: str,
        body: Optional[CancelRequest] = None,
        principal: Principal = Depends(current_user),
        service: OrderService = Depends(get_order_service),
):
    order = await service.get_user_order(principal.id, order_id)
    try:
        order = await service.cancel(order, Role.USER, reason=body.reason if body else None)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OrderResponse.from_order(order)
