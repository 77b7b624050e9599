from fastapi import APIRouter, Depends

from hoteldine.core.dependencies import get_hotel_service
from hoteldine.core.rate_limit import ip_rate_limit
from hoteldine.db.schemas.hotel import HotelListResponse, HotelPublic
from hoteldine.services.hotel_service import HotelService

router = APIRouter(dependencies=[Depends(ip_rate_limit)])


@router.get("", response_model=HotelListResponse)
async def list_hotels(service: HotelService = Depends(get_hotel_service)):
    return {"hotels": await service.list_active_hotels()}


@router.get("/qr/{hotel_ref}", response_model=HotelPublic)
async def get_hotel_by_qr(hotel_ref: str, service: HotelService = Depends(get_hotel_service)):
    """Resolve the `ref` printed in a hotel's QR code. Inactive hotels are hidden."""
    return await service.get_hotel_by_qr(hotel_ref)


@router.get("/{hotel_id}", response_model=HotelPublic)
async def get_hotel(hotel_id: str, service: HotelService = Depends(get_hotel_service)):
    return await service.get_public_hotel(hotel_id)
