from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

class HotelCreateRequest(BaseModel):
    hotel_name: str = Field(..., alias="hotelName", min_length=1)
    phone: str = Field(..., min_length=6)
    email: Optional[str] = None
    address: str = Field(..., min_length=1)
    location: Optional[dict] = None
    profile_image: Optional[str] = Field(None, alias="profileImage")
    commission: float = Field(0, ge=0, le=100)
    admin_commission: float = Field(0, alias="adminCommission", ge=0, le=100)
    is_active: bool = Field(False, alias="isActive")
    model_config = ConfigDict(populate_by_name=True)

class HotelCommissionUpdate(BaseModel):
    commission: float = Field(..., ge=0, le=100)
    admin_commission: float = Field(..., alias="adminCommission", ge=0, le=100)
    model_config = ConfigDict(populate_by_name=True)

class HotelStatusUpdate(BaseModel):
    is_active: bool = Field(..., alias="isActive")
    model_config = ConfigDict(populate_by_name=True)

class HotelPublic(BaseModel):
    hotelId: str
    hotelName: str
    address: str
    phone: str
    email: Optional[str] = None
    profileImage: Optional[str] = None
    location: Optional[dict] = None
    isActive: bool

class HotelListResponse(BaseModel):
    hotels: List[HotelPublic]

class HotelAdminResponse(HotelPublic):
    commission: float
    adminCommission: float
    qrUrl: Optional[str] = None
    approvedAt: Optional[datetime] = None

class HotelQRResponse(BaseModel):
    qrUrl: str
    hotelId: str
    hotelName: str
