import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hoteldine.core.config import settings
from hoteldine.utils.cache import CacheStore, make_cache_key
from hoteldine.utils.geo import bearing_from_locations, haversine_km

logger = logging.getLogger(__name__)


class DeliveryService:
    """Live position of delivery partners, kept in Redis only."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    async def update_location(
            self,
            partner_id: str,
            lat: float,
            lng: float,
            order_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        key = make_cache_key("delivery", "location", partner_id)
        previous = await self.cache.get_json(key)
        current = {"lat": lat, "lng": lng}

        heading = bearing_from_locations(previous, current)
        distance_moved = None
        if previous:
            distance_moved = round(haversine_km((previous["lng"], previous["lat"]), (lng, lat)), 4)

        record = {
            **current,
            "heading": heading,
            "orderId": order_id,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        stored = await self.cache.set_json(key, record, ttl=settings.CACHE_TTL_DELIVERY_LOCATION)
        if not stored:
            logger.warning(f"Location for delivery partner {partner_id} not persisted (cache unavailable)")

        return {**record, "partnerId": partner_id, "distanceMovedKm": distance_moved}

    async def get_location(self, partner_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get_json(make_cache_key("delivery", "location", partner_id))
