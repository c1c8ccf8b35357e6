from typing import Optional

from fastapi import APIRouter, Depends

from booking_app.api.dependencies import Backend, get_backend
from booking_app.core.errors import NotFoundError
from booking_app.services import verification_service

router = APIRouter()

STATUS_MESSAGES = {
    "Confirmed": "This booking is confirmed and active",
    "Pending": "This booking is pending confirmation",
    "Completed": "This booking has been completed",
    "Cancelled": "This booking has been cancelled",
}


@router.get("/verify/{booking_id}")
async def verify_booking(
    booking_id: str,
    data: Optional[str] = None,
    backend: Backend = Depends(get_backend),
):
    """
    Public page behind the QR code. The `data` token is trusted for display
    only; without it the booking is looked up in the store.
    """
    snapshot = await verification_service.resolve_snapshot(booking_id, data, backend.store, backend.auth)
    if not snapshot:
        raise NotFoundError("Booking not found")
    return {
        "booking": snapshot.to_record(),
        "statusMessage": STATUS_MESSAGES.get(snapshot.status.value, "Booking status unknown"),
    }
