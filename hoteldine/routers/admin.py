import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hoteldine.core.dependencies import (
    get_cache_store, get_commission_service, get_hotel_service, get_settlement_service,
    get_wallet_service,
)
from hoteldine.core.rate_limit import strict_rate_limit, user_rate_limit
from hoteldine.core.security import Principal, Role, require_role
from hoteldine.db.models.commission_settings import CommissionSettings
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.models.hotel_wallet import TransactionStatus
from hoteldine.db.schemas.hotel import (
    HotelAdminResponse, HotelCommissionUpdate, HotelCreateRequest, HotelStatusUpdate,
)
from hoteldine.db.schemas.settlement import (
    CommissionSettingsRequest, CommissionSettingsResponse,
    SettlementPaymentRequest, SettlementPaymentResponse, WalletAdjustmentRequest,
    WalletTransactionResponse, WithdrawalListResponse, WithdrawalResponse,
)
from hoteldine.services.commission_service import CommissionService
from hoteldine.services.hotel_service import HotelService, public_view
from hoteldine.services.settlement_service import SettlementService
from hoteldine.services.wallet_service import WalletService
from hoteldine.utils.cache import CacheStore

logger = logging.getLogger(__name__)

current_admin = require_role(Role.ADMIN)
router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(current_admin), Depends(user_rate_limit)],
)


def _settings_response(s: CommissionSettings) -> CommissionSettingsResponse:
    return CommissionSettingsResponse(
        qrHotel=float(s.qr_hotel),
        qrAdmin=float(s.qr_admin),
        qrRestaurant=float(100 - s.qr_hotel - s.qr_admin),
        directAdmin=float(s.direct_admin),
        directRestaurant=float(s.direct_restaurant),
        updatedBy=s.updated_by,
        createdAt=s.created_at,
    )


def _hotel_response(hotel: Hotel) -> HotelAdminResponse:
    return HotelAdminResponse(
        **public_view(hotel),
        commission=float(hotel.commission),
        adminCommission=float(hotel.admin_commission),
        qrUrl=hotel.qr_url,
        approvedAt=hotel.approved_at,
    )


# --- COMMISSION SETTINGS ---

@router.get("/commission-settings", response_model=CommissionSettingsResponse)
async def get_commission_settings(service: CommissionService = Depends(get_commission_service)):
    return _settings_response(await service.get_settings())


@router.put(
    "/commission-settings",
    response_model=CommissionSettingsResponse,
    dependencies=[Depends(strict_rate_limit)],
)
async def update_commission_settings(
        body: CommissionSettingsRequest,
        principal: Principal = Depends(current_admin),
        service: CommissionService = Depends(get_commission_service),
):
    try:
        updated = await service.update_settings(
            body.qrHotel, body.qrAdmin, body.directAdmin, body.directRestaurant,
            updated_by=principal.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _settings_response(updated)


# --- HOTELS ---

@router.post("/hotels", response_model=HotelAdminResponse, status_code=status.HTTP_201_CREATED)
async def create_hotel(
        body: HotelCreateRequest,
        service: HotelService = Depends(get_hotel_service),
):
    try:
        hotel = await service.create_hotel(body)
    except ValueError as e:
        logger.warning(f"Hotel registration rejected: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _hotel_response(hotel)


@router.patch("/hotels/{hotel_id}/commission", response_model=HotelAdminResponse)
async def update_hotel_commission(
        hotel_id: str,
        body: HotelCommissionUpdate,
        service: HotelService = Depends(get_hotel_service),
):
    try:
        hotel = await service.update_commission(hotel_id, body.commission, body.admin_commission)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _hotel_response(hotel)


@router.patch("/hotels/{hotel_id}/status", response_model=HotelAdminResponse)
async def update_hotel_status(
        hotel_id: str,
        body: HotelStatusUpdate,
        service: HotelService = Depends(get_hotel_service),
):
    return _hotel_response(await service.set_active(hotel_id, body.is_active))


@router.post(
    "/hotels/{hotel_id}/settlements",
    response_model=SettlementPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_settlement(
        hotel_id: str,
        body: SettlementPaymentRequest,
        principal: Principal = Depends(current_admin),
        hotel_service: HotelService = Depends(get_hotel_service),
        service: SettlementService = Depends(get_settlement_service),
):
    """Record cash a hotel handed over against its admin commission due."""
    hotel = await hotel_service.get_by_hotel_id(hotel_id)
    try:
        payment = await service.record_payment(
            hotel, body.amount, reference=body.reference, note=body.note, recorded_by=principal.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return SettlementPaymentResponse(
        id=payment.id,
        hotelId=hotel.hotel_id,
        amount=float(payment.amount),
        reference=payment.reference,
        note=payment.note,
        recordedBy=payment.recorded_by,
        createdAt=payment.created_at,
        summary=await service.get_settlement_summary(hotel),
    )


# --- HOTEL WALLETS ---

@router.post(
    "/hotels/{hotel_id}/wallet/adjustments",
    response_model=WalletTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(strict_rate_limit)],
)
async def adjust_hotel_wallet(
        hotel_id: str,
        body: WalletAdjustmentRequest,
        hotel_service: HotelService = Depends(get_hotel_service),
        service: WalletService = Depends(get_wallet_service),
):
    hotel = await hotel_service.get_by_hotel_id(hotel_id)
    try:
        tx = await service.adjust(hotel, body.type, body.amount, description=body.description)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return WalletTransactionResponse.from_transaction(tx)


@router.get("/hotel-withdrawals", response_model=WithdrawalListResponse)
async def list_hotel_withdrawals(
        status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
        service: WalletService = Depends(get_wallet_service),
):
    return await service.list_withdrawals(status_filter, page, limit)


async def _process_withdrawal(service: WalletService, withdrawal_id: int, approve: bool, admin_id: str) -> dict:
    try:
        result = await service.process_withdrawal(withdrawal_id, approve)
    except ValueError as e:
        logger.warning(f"Withdrawal {withdrawal_id} not processed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"Admin {admin_id} {'approved' if approve else 'rejected'} withdrawal {withdrawal_id}")
    return result


@router.post("/hotel-withdrawals/{withdrawal_id}/approve", response_model=WithdrawalResponse)
async def approve_hotel_withdrawal(
        withdrawal_id: int,
        principal: Principal = Depends(current_admin),
        service: WalletService = Depends(get_wallet_service),
):
    return await _process_withdrawal(service, withdrawal_id, True, principal.id)


@router.post("/hotel-withdrawals/{withdrawal_id}/reject", response_model=WithdrawalResponse)
async def reject_hotel_withdrawal(
        withdrawal_id: int,
        principal: Principal = Depends(current_admin),
        service: WalletService = Depends(get_wallet_service),
):
    return await _process_withdrawal(service, withdrawal_id, False, principal.id)


# --- CACHE ---

@router.get("/cache-stats")
async def get_cache_stats(cache: CacheStore = Depends(get_cache_store)):
    return await cache.stats()


@router.delete("/cache", dependencies=[Depends(strict_rate_limit)])
async def clear_cache(pattern: str = "hotel:*", cache: CacheStore = Depends(get_cache_store)):
    deleted = await cache.delete(pattern)
    logger.info(f"Admin cleared {deleted} cache keys matching '{pattern}'")
    return {"deleted": deleted, "pattern": pattern}
