from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.sql import func
from hoteldine.db.session import Base

class CommissionSettings(Base):
    """One row per saved version; the newest row is the active one."""
    __tablename__ = "commission_settings"

    id = Column(Integer, primary_key=True, index=True)

    qr_hotel = Column(Numeric(5, 2), nullable=False)
    qr_admin = Column(Numeric(5, 2), nullable=False)
    direct_admin = Column(Numeric(5, 2), nullable=False)
    direct_restaurant = Column(Numeric(5, 2), nullable=False)

    updated_by = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self):
        return (
            f"<CommissionSettings(id={self.id}, qr={self.qr_hotel}/{self.qr_admin}, "
            f"direct={self.direct_admin}/{self.direct_restaurant})>"
        )
