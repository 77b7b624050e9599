from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime
from hoteldine.db.models.order import (
    Order, OrderStatus, OrderType, PaymentMethod, PaymentStatus,
)

class OrderItemCreate(BaseModel):
    item_id: str = Field(..., alias="itemId", min_length=1)
    name: str
    price: float = Field(..., ge=0, le=99_999_999.99, allow_inf_nan=False)
    quantity: int = Field(..., ge=1, le=1000)
    model_config = ConfigDict(populate_by_name=True)

class OrderCreateRequest(BaseModel):
    restaurant_id: str = Field(..., alias="restaurantId", min_length=1)
    restaurant_name: Optional[str] = Field(None, alias="restaurantName")
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment_method: PaymentMethod = Field(PaymentMethod.ONLINE, alias="paymentMethod")
    hotel_reference: Optional[str] = Field(None, alias="hotelReference")
    room_number: Optional[str] = Field(None, alias="roomNumber")
    note: Optional[str] = None
    model_config = ConfigDict(populate_by_name=True)

class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    reason: Optional[str] = None

class CancelRequest(BaseModel):
    reason: Optional[str] = None

class PricingResponse(BaseModel):
    subtotal: float
    deliveryFee: float
    platformFee: float
    tax: float
    total: float

class OrderResponse(BaseModel):
    orderId: str
    userId: str
    restaurantId: str
    restaurantName: Optional[str] = None
    hotelReference: Optional[str] = None
    roomNumber: Optional[str] = None
    orderType: OrderType
    items: list
    pricing: PricingResponse
    paymentMethod: PaymentMethod
    paymentStatus: PaymentStatus
    cashCollected: bool
    status: OrderStatus
    tracking: dict
    commissionPercentages: Optional[dict] = None
    hotelCommission: float
    adminCommission: float
    restaurantShare: float
    commissionDistributed: bool
    deliveredAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[str] = None
    cancellationReason: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_order(cls, o: Order) -> "OrderResponse":
        return cls(
            orderId=o.order_id,
            userId=o.user_id,
            restaurantId=o.restaurant_id,
            restaurantName=o.restaurant_name,
            hotelReference=o.hotel_reference,
            roomNumber=o.room_number,
            orderType=o.order_type,
            items=o.items or [],
            pricing=PricingResponse(
                subtotal=float(o.subtotal),
                deliveryFee=float(o.delivery_fee),
                platformFee=float(o.platform_fee),
                tax=float(o.tax),
                total=float(o.total),
            ),
            paymentMethod=o.payment_method,
            paymentStatus=o.payment_status,
            cashCollected=o.cash_collected,
            status=o.status,
            tracking=o.tracking or {},
            commissionPercentages=o.commission_percentages,
            hotelCommission=float(o.hotel_commission),
            adminCommission=float(o.admin_commission),
            restaurantShare=float(o.restaurant_share),
            commissionDistributed=o.commission_distributed,
            deliveredAt=o.delivered_at,
            cancelledAt=o.cancelled_at,
            cancelledBy=o.cancelled_by,
            cancellationReason=o.cancellation_reason,
            createdAt=o.created_at,
        )

class PaginationResponse(BaseModel):
    currentPage: int
    totalPages: int
    totalOrders: int
    ordersPerPage: int

class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    pagination: PaginationResponse

class HotelOrderStatsResponse(BaseModel):
    totalRequests: int
    pending: int
    confirmed: int
    completed: int
    cancelled: int
    totalRevenue: float
    yourEarnings: float
    totalCashCollected: float
