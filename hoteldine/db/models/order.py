import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, Boolean,
    ForeignKey, UniqueConstraint, Numeric, Index
)
from sqlalchemy.sql import func
from hoteldine.db.session import Base, JSONType

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

class OrderType(str, enum.Enum):
    DIRECT = "DIRECT"
    QR = "QR"

class PaymentMethod(str, enum.Enum):
    ONLINE = "online"
    CASH = "cash"
    PAY_AT_HOTEL = "pay_at_hotel"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("order_id", name="uq_orders_order_id"),
        Index("idx_orders_hotel_status", "hotel_id", "status"),
        Index("idx_orders_hotel_payment", "hotel_id", "payment_method", "cash_collected"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, index=True, nullable=False)

    user_id = Column(String, index=True, nullable=False)
    restaurant_id = Column(String, index=True, nullable=False)
    restaurant_name = Column(String, nullable=True)

    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=True, index=True)
    hotel_reference = Column(String, nullable=True, index=True)
    room_number = Column(String, nullable=True)

    order_type = Column(Enum(OrderType), nullable=False, default=OrderType.DIRECT, index=True)

    items = Column(JSONType, nullable=False)
    note = Column(String, nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    platform_fee = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    cash_collected = Column(Boolean, default=False, nullable=False)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    tracking = Column(JSONType, nullable=False, default=dict)

    commission_percentages = Column(JSONType, nullable=True)
    hotel_commission = Column(Numeric(10, 2), nullable=False, default=0)
    admin_commission = Column(Numeric(10, 2), nullable=False, default=0)
    restaurant_share = Column(Numeric(10, 2), nullable=False, default=0)
    commission_distributed = Column(Boolean, default=False, nullable=False)

    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now(),
    )

    @property
    def is_pay_at_hotel(self) -> bool:
        return self.payment_method == PaymentMethod.PAY_AT_HOTEL

    def __repr__(self):
        return (
            f"<Order(id={self.order_id}, type={self.order_type}, "
            f"total={self.total}, status={self.status})>"
        )
