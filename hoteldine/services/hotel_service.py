import random
import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hoteldine.core.config import settings
from hoteldine.db.models.hotel import Hotel
from hoteldine.db.schemas.hotel import HotelCreateRequest
from hoteldine.utils.cache import CacheStore, make_cache_key
from hoteldine.utils.money import Number, to_decimal

logger = logging.getLogger(__name__)

HOTEL_CACHE_PREFIX = "hotel"


def build_qr_url(frontend_base: str, hotel_id: str) -> str:
    """URL encoded into the hotel's QR stand; the menu page reads `ref` to attribute orders."""
    return f"{frontend_base.rstrip('/')}/hotel-menu?ref={hotel_id}"


def generate_hotel_id() -> str:
    return f"HOTEL-{int(time.time() * 1000)}-{random.randint(0, 9999)}"


def public_view(hotel: Hotel) -> Dict[str, Any]:
    """Fields safe to show to anyone who scans the QR code."""
    return {
        "hotelId": hotel.hotel_id,
        "hotelName": hotel.hotel_name,
        "address": hotel.address,
        "phone": hotel.phone,
        "email": hotel.email,
        "profileImage": hotel.profile_image,
        "location": hotel.location,
        "isActive": hotel.is_active,
    }


class HotelService:
    def __init__(self, db: AsyncSession, cache: CacheStore):
        self.db = db
        self.cache = cache

    # --- Lookups ---
    async def find_by_reference(self, ref: str) -> Optional[Hotel]:
        """Match the public hotel_id first, then the numeric primary key."""
        stmt = select(Hotel).where(Hotel.hotel_id == ref)
        hotel = (await self.db.execute(stmt)).scalar_one_or_none()
        if hotel is None and ref.isdigit():
            hotel = await self.db.get(Hotel, int(ref))
        return hotel

    async def get_by_hotel_id(self, hotel_id: str) -> Hotel:
        hotel = await self.find_by_reference(hotel_id)
        if hotel is None:
            raise HTTPException(status_code=404, detail="Hotel not found")
        return hotel

    async def get_hotel_by_qr(self, hotel_ref: str) -> Dict[str, Any]:
        cache_key = make_cache_key(HOTEL_CACHE_PREFIX, "qr", hotel_ref)
        if cached := await self.cache.get_json(cache_key):
            logger.info(f"Using cached hotel for QR ref '{hotel_ref}'.")
            return cached

        stmt = select(Hotel).where(Hotel.hotel_id == hotel_ref, Hotel.is_active.is_(True))
        hotel = (await self.db.execute(stmt)).scalar_one_or_none()
        if hotel is None:
            logger.warning(f"QR lookup failed for ref '{hotel_ref}'")
            raise HTTPException(status_code=404, detail="Hotel not found or inactive")

        data = public_view(hotel)
        await self.cache.set_json(cache_key, data, ttl=settings.CACHE_TTL_HOTEL_DETAILS)
        return data

    async def get_public_hotel(self, hotel_id: str) -> Dict[str, Any]:
        cache_key = make_cache_key(HOTEL_CACHE_PREFIX, "public", hotel_id)
        if cached := await self.cache.get_json(cache_key):
            return cached

        hotel = await self.get_by_hotel_id(hotel_id)
        data = public_view(hotel)
        await self.cache.set_json(cache_key, data, ttl=settings.CACHE_TTL_HOTEL_DETAILS)
        return data

    async def list_active_hotels(self) -> List[Dict[str, Any]]:
        cache_key = make_cache_key(HOTEL_CACHE_PREFIX, "active")
        cached = await self.cache.get_json(cache_key)
        if cached is not None:
            return cached

        stmt = select(Hotel).where(Hotel.is_active.is_(True)).order_by(Hotel.hotel_name)
        hotels = (await self.db.execute(stmt)).scalars().all()
        data = [public_view(h) for h in hotels]
        logger.info(f"Found {len(data)} active hotels")

        await self.cache.set_json(cache_key, data, ttl=settings.CACHE_TTL_HOTEL_LIST)
        return data

    # --- QR ---
    async def get_hotel_qr(self, hotel: Hotel) -> Dict[str, Any]:
        if not hotel.qr_url:
            hotel.qr_url = build_qr_url(settings.FRONTEND_URL, hotel.hotel_id)
            await self.db.commit()
            await self.db.refresh(hotel)
            logger.info(f"Generated QR URL for hotel {hotel.hotel_id}")

        return {
            "qrUrl": hotel.qr_url,
            "hotelId": hotel.hotel_id,
            "hotelName": hotel.hotel_name,
        }

    # --- Admin ---
    async def create_hotel(self, request: HotelCreateRequest) -> Hotel:
        existing = (await self.db.execute(select(Hotel).where(Hotel.phone == request.phone))).scalar_one_or_none()
        if existing is not None:
            raise ValueError(f"A hotel is already registered with phone {request.phone}")

        self._validate_commission(request.commission, request.admin_commission)

        hotel_id = generate_hotel_id()
        hotel = Hotel(
            hotel_id=hotel_id,
            hotel_name=request.hotel_name,
            phone=request.phone,
            email=request.email.lower() if request.email else None,
            address=request.address,
            location=request.location,
            profile_image=request.profile_image,
            commission=to_decimal(request.commission),
            admin_commission=to_decimal(request.admin_commission),
            is_active=request.is_active,
            approved_at=datetime.now(timezone.utc) if request.is_active else None,
            qr_url=build_qr_url(settings.FRONTEND_URL, hotel_id),
        )
        self.db.add(hotel)
        await self.db.commit()
        await self.db.refresh(hotel)
        await self.invalidate_cache()
        logger.info(f"Hotel {hotel.hotel_id} ({hotel.hotel_name}) created")
        return hotel

    async def update_commission(self, hotel_id: str, commission: Number, admin_commission: Number) -> Hotel:
        hotel = await self.get_by_hotel_id(hotel_id)
        self._validate_commission(commission, admin_commission)

        hotel.commission = to_decimal(commission)
        hotel.admin_commission = to_decimal(admin_commission)
        await self.db.commit()
        await self.db.refresh(hotel)
        logger.info(f"Hotel {hotel_id} commission set to hotel {commission}%, admin {admin_commission}%")
        return hotel

    async def set_active(self, hotel_id: str, is_active: bool) -> Hotel:
        hotel = await self.get_by_hotel_id(hotel_id)
        hotel.is_active = is_active
        if is_active and hotel.approved_at is None:
            hotel.approved_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(hotel)
        await self.invalidate_cache()
        logger.info(f"Hotel {hotel_id} active={is_active}")
        return hotel

    async def invalidate_cache(self) -> int:
        return await self.cache.delete(f"{HOTEL_CACHE_PREFIX}:*")

    @staticmethod
    def _validate_commission(commission: Number, admin_commission: Number) -> None:
        hotel_pct, admin_pct = to_decimal(commission), to_decimal(admin_commission)
        if not (0 <= hotel_pct <= 100 and 0 <= admin_pct <= 100):
            raise ValueError("Commission percentages must be between 0 and 100")
        if hotel_pct + admin_pct > 100:
            raise ValueError("Hotel and admin commission must not exceed 100% together")
