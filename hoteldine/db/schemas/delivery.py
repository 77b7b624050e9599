from typing import Optional
from pydantic import BaseModel, Field


class LocationUpdateRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    orderId: Optional[str] = None


class LocationUpdateResponse(BaseModel):
    partnerId: str
    lat: float
    lng: float
    heading: Optional[float] = None
    distanceMovedKm: Optional[float] = None
    orderId: Optional[str] = None
    updatedAt: str
