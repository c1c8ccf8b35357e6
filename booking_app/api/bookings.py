from typing import Optional

from fastapi import APIRouter, Depends

from booking_app.api.dependencies import Backend, get_auth, get_backend, get_booking_service
from booking_app.core.errors import ForbiddenError, NotFoundError, ValidationError
from booking_app.core.security import get_current_user, require_admin
from booking_app.models.api_models import (
    CreateBookingRequest,
    RescheduleRequest,
    ReviewRequest,
    StatusUpdateRequest,
    VerificationLink,
)
from booking_app.models.db_models import Booking, Role, User
from booking_app.services import verification_service
from booking_app.services.auth_service import AuthProvider
from booking_app.services.booking_service import BookingService

router = APIRouter()


async def _load_booking(booking_id: str, user: User, bookings: BookingService) -> Booking:
    """Owner or admin only."""
    booking = await bookings.get_booking(booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.user_id != user.id and user.role != Role.ADMIN:
        raise ForbiddenError("Forbidden - not your booking")
    return booking


def _found(booking):
    # The record can disappear between the ownership check and the update
    if not booking:
        raise NotFoundError("Booking not found")
    return {"booking": booking.to_record()}


@router.get("/bookings")
async def list_bookings(
    q: Optional[str] = None,
    status: Optional[str] = None,
    service: Optional[str] = None,
    when: Optional[str] = None,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
    auth: AuthProvider = Depends(get_auth),
):
    visible = await bookings.list_bookings(user)
    user_names = {u.id: u.name for u in await auth.list_users()} if q else None
    visible = bookings.filter_bookings(visible, q=q, status=status, service=service, when=when, user_names=user_names)
    return {"bookings": [b.to_record() for b in visible]}


@router.post("/bookings")
async def create_booking(
    req: CreateBookingRequest,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    booking = await bookings.create_booking(user, req.service, req.date, req.time_slot)
    return {
        "booking": booking.to_record(),
        "verificationUrl": verification_service.build_verification_url(booking, user),
    }


@router.get("/stats")
async def booking_stats(
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return await bookings.booking_stats()


@router.get("/bookings/{booking_id}")
async def get_booking(
    booking_id: str,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    return {"booking": (await _load_booking(booking_id, user, bookings)).to_record()}


@router.patch("/bookings/{booking_id}/status")
async def update_booking_status(
    booking_id: str,
    req: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    return _found(await bookings.update_status(booking_id, req.status))


@router.post("/bookings/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    await _load_booking(booking_id, user, bookings)
    return _found(await bookings.cancel_booking(booking_id))


@router.patch("/bookings/{booking_id}/reschedule")
async def reschedule_booking(
    booking_id: str,
    req: RescheduleRequest,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    await _load_booking(booking_id, user, bookings)
    return _found(await bookings.reschedule(booking_id, req.date, req.time_slot))


@router.post("/bookings/{booking_id}/review")
async def review_booking(
    booking_id: str,
    req: ReviewRequest,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    booking = await _load_booking(booking_id, user, bookings)
    if booking.user_id != user.id:
        raise ForbiddenError("Only the customer can review a booking")
    return _found(await bookings.attach_review(booking_id, req.rating, req.comment))


@router.get("/bookings/{booking_id}/verification")
async def booking_verification(
    booking_id: str,
    qr: bool = True,
    user: User = Depends(get_current_user),
    backend: Backend = Depends(get_backend),
):
    booking = await _load_booking(booking_id, user, backend.bookings)
    owner = user if booking.user_id == user.id else await backend.auth.get_user(booking.user_id)
    if not owner:
        raise ValidationError("Booking owner no longer exists")

    url = verification_service.build_verification_url(booking, owner)
    link = VerificationLink(
        token=verification_service.encode(booking, owner),
        url=url,
        qr_code=verification_service.render_qr_png(url) if qr else None,
    )
    return link.model_dump(by_alias=True, exclude_none=True)
