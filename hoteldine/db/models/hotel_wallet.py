import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, Numeric, ForeignKey, Index
)
from sqlalchemy.sql import func
from hoteldine.db.session import Base

class TransactionType(str, enum.Enum):
    COMMISSION = "commission"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"
    BONUS = "bonus"
    DEDUCTION = "deduction"
    CASH_COLLECTION = "cash_collection"

class TransactionStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"

class HotelWallet(Base):
    __tablename__ = "hotel_wallets"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), unique=True, nullable=False, index=True)

    total_balance = Column(Numeric(12, 2), nullable=False, default=0)
    total_earned = Column(Numeric(12, 2), nullable=False, default=0)
    total_withdrawn = Column(Numeric(12, 2), nullable=False, default=0)

    last_transaction_at = Column(DateTime(timezone=True), nullable=True)

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
        return (
            f"<HotelWallet(hotel_id={self.hotel_id}, balance={self.total_balance}, "
            f"earned={self.total_earned})>"
        )

class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        Index("idx_wallet_tx_wallet_type", "wallet_id", "type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("hotel_wallets.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False)
    status = Column(
        Enum(TransactionStatus),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    description = Column(String, nullable=True)
    order_id = Column(String, nullable=True, index=True)

    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<WalletTransaction(id={self.id}, type={self.type}, amount={self.amount}, status={self.status})>"
