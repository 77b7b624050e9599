from typing import Optional

from fastapi import Request, HTTPException, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from hoteldine.core.security import Principal, Role, require_role
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.session import get_db
from hoteldine.services.commission_service import CommissionService
from hoteldine.services.delivery_service import DeliveryService
from hoteldine.services.hotel_service import HotelService
from hoteldine.services.order_service import OrderService
from hoteldine.services.settlement_service import SettlementService
from hoteldine.services.wallet_service import WalletService
from hoteldine.utils.cache import CacheStore

async def get_redis_client(request: Request) -> Optional[redis.Redis]:
    # Cache and rate limiting degrade to no-ops without Redis
    return getattr(request.app.state, "redis_client", None)

async def get_cache_store(redis_client = Depends(get_redis_client)) -> CacheStore:
    return CacheStore(redis_client)

async def get_wallet_service(db: AsyncSession = Depends(get_db)) -> WalletService:
    return WalletService(db)

async def get_commission_service(
        db: AsyncSession = Depends(get_db),
        wallet_service: WalletService = Depends(get_wallet_service),
) -> CommissionService:
    return CommissionService(db, wallet_service)

async def get_hotel_service(
        db: AsyncSession = Depends(get_db),
        cache: CacheStore = Depends(get_cache_store),
) -> HotelService:
    return HotelService(db, cache)

async def get_order_service(
        db: AsyncSession = Depends(get_db),
        commission_service: CommissionService = Depends(get_commission_service),
        hotel_service: HotelService = Depends(get_hotel_service),
) -> OrderService:
    return OrderService(db, commission_service, hotel_service)

async def get_settlement_service(db: AsyncSession = Depends(get_db)) -> SettlementService:
    return SettlementService(db)

async def get_delivery_service(cache: CacheStore = Depends(get_cache_store)) -> DeliveryService:
    return DeliveryService(cache)

async def get_current_hotel(
        principal: Principal = Depends(require_role(Role.HOTEL)),
        db: AsyncSession = Depends(get_db),
) -> Hotel:
    """The hotel behind a hotel token; `sub` carries its public hotel_id."""
    stmt = select(Hotel).where(Hotel.hotel_id == principal.id)
    hotel = (await db.execute(stmt)).scalar_one_or_none()
    if hotel is None:
        raise HTTPException(status_code=404, detail="Hotel not found")
    if not hotel.is_active:
        raise HTTPException(status_code=403, detail="Hotel account is inactive")
    return hotel
