from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from hoteldine.db.session import Base

class SettlementPayment(Base):
    __tablename__ = "settlement_payments"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    reference = Column(String, nullable=True)
    note = Column(String, nullable=True)
    recorded_by = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<SettlementPayment(hotel_id={self.hotel_id}, amount={self.amount})>"
