from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from hoteldine.db.models.hotel_wallet import TransactionStatus, TransactionType, WalletTransaction


class SettlementSummaryResponse(BaseModel):
    totalCashCollected: float
    adminCommissionDue: float
    settlementPaid: float
    remainingSettlement: float


class SettlementPaymentRequest(BaseModel):
    amount: float = Field(..., gt=0, le=9_999_999_999.99, allow_inf_nan=False)
    reference: Optional[str] = None
    note: Optional[str] = None


class SettlementPaymentResponse(BaseModel):
    id: int
    hotelId: str
    amount: float
    reference: Optional[str] = None
    note: Optional[str] = None
    recordedBy: Optional[str] = None
    createdAt: datetime
    summary: SettlementSummaryResponse


class CommissionSettingsRequest(BaseModel):
    """QR percentages cover hotel and admin; the restaurant takes the rest."""
    qrHotel: float = Field(..., ge=0, le=100)
    qrAdmin: float = Field(..., ge=0, le=100)
    directAdmin: float = Field(..., ge=0, le=100)
    directRestaurant: float = Field(..., ge=0, le=100)


class CommissionSettingsResponse(CommissionSettingsRequest):
    qrRestaurant: float
    updatedBy: Optional[str] = None
    createdAt: Optional[datetime] = None


class WalletTransactionResponse(BaseModel):
    id: int
    amount: float
    type: TransactionType
    status: TransactionStatus
    description: Optional[str] = None
    orderId: Optional[str] = None
    createdAt: datetime
    processedAt: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, tx: WalletTransaction) -> "WalletTransactionResponse":
        return cls(
            id=tx.id,
            amount=float(tx.amount),
            type=tx.type,
            status=tx.status,
            description=tx.description,
            orderId=tx.order_id,
            createdAt=tx.created_at,
            processedAt=tx.processed_at,
        )


class WalletResponse(BaseModel):
    hotelId: str
    balance: float
    totalEarned: float
    totalWithdrawn: float
    pendingPayout: float
    transactions: List[WalletTransactionResponse]
    updatedAt: Optional[datetime] = None


class WithdrawalRequest(BaseModel):
    amount: float = Field(..., gt=0, le=9_999_999_999.99, allow_inf_nan=False)
    note: Optional[str] = None


class WithdrawalResponse(BaseModel):
    id: int
    hotelId: str
    hotelName: str
    amount: float
    status: TransactionStatus
    description: Optional[str] = None
    requestedAt: datetime
    processedAt: Optional[datetime] = None


class WithdrawalPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class WithdrawalListResponse(BaseModel):
    requests: List[WithdrawalResponse]
    pagination: WithdrawalPagination


class WalletAdjustmentRequest(BaseModel):
    """Admin credit (bonus, refund) or debit (deduction) of a hotel wallet."""
    type: TransactionType
    amount: float = Field(..., gt=0, le=9_999_999_999.99, allow_inf_nan=False)
    description: Optional[str] = None
