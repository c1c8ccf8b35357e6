from fastapi import APIRouter, Depends

from booking_app.api.dependencies import get_booking_service
from booking_app.core.security import require_admin
from booking_app.models.api_models import ValueRequest, ValuesRequest
from booking_app.models.db_models import User
from booking_app.services.booking_service import BookingService

router = APIRouter()


@router.get("/services")
async def list_services(bookings: BookingService = Depends(get_booking_service)):
    return {"services": await bookings.list_services()}


@router.post("/services")
async def add_service(
    req: ValueRequest,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"services": await bookings.add_service(req.name)}


@router.put("/services")
async def replace_services(
    req: ValuesRequest,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"services": await bookings.set_services(req.values)}


@router.delete("/services/{name}")
async def remove_service(
    name: str,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"services": await bookings.remove_service(name)}


@router.get("/services/{name}/rating")
async def service_rating(name: str, bookings: BookingService = Depends(get_booking_service)):
    return {"service": name, **await bookings.service_rating(name)}


@router.get("/time-slots")
async def list_time_slots(bookings: BookingService = Depends(get_booking_service)):
    return {"timeSlots": await bookings.list_time_slots()}


@router.post("/time-slots")
async def add_time_slot(
    req: ValueRequest,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"timeSlots": await bookings.add_time_slot(req.name)}


@router.put("/time-slots")
async def replace_time_slots(
    req: ValuesRequest,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"timeSlots": await bookings.set_time_slots(req.values)}


@router.delete("/time-slots/{label}")
async def remove_time_slot(
    label: str,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"timeSlots": await bookings.remove_time_slot(label)}
