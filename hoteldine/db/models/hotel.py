from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from hoteldine.db.session import Base, JSONType

class Hotel(Base):
    __tablename__ = "hotels"
    __table_args__ = (
        UniqueConstraint("hotel_id", name="uq_hotels_hotel_id"),
        UniqueConstraint("phone", name="uq_hotels_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(String, index=True, nullable=False)

    hotel_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)
    address = Column(String, nullable=False)
    location = Column(JSONType, nullable=True)
    profile_image = Column(String, nullable=True)

    qr_url = Column(String, nullable=True)

    # Hotels need admin approval
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Percentages applied to QR orders placed through this hotel
    commission = Column(Numeric(5, 2), nullable=False, default=0)
    admin_commission = Column(Numeric(5, 2), nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now(),
    )

    def __repr__(self):
        return f"<Hotel(hotel_id={self.hotel_id}, name={self.hotel_name}, active={self.is_active})>"
