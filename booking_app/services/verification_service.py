"""
Verification tokens: a booking + owner snapshot packed into a URL-safe string
that a scanner can display without touching the record store.

Tokens are encoded, not signed. Anyone holding a URL can craft a valid-looking
token, so they must never be used to authorize anything.
"""

import base64
import binascii
import io
import json
from typing import Optional
from urllib.parse import quote

import qrcode
from pydantic import ValidationError as PydanticValidationError

from booking_app.core.config import settings
from booking_app.core.errors import VerificationDecodeError
from booking_app.core.logger import logger
from booking_app.models.db_models import Booking, User, VerificationSnapshot
from booking_app.services.auth_service import AuthProvider
from booking_app.services.record_store import EntityKind, RecordStore


def snapshot_of(booking: Booking, user: User) -> VerificationSnapshot:
    return VerificationSnapshot(
        booking_id=booking.id,
        service=booking.service,
        date=booking.date,
        time_slot=booking.time_slot,
        status=booking.status,
        user_name=user.name,
        user_email=user.email,
        created_at=booking.created_at,
    )


def encode(booking: Booking, user: User) -> str:
    payload = json.dumps(snapshot_of(booking, user).to_record(), separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode(token: str) -> VerificationSnapshot:
    if not token:
        raise VerificationDecodeError()

    padding = -len(token) % 4
    try:
        raw = base64.urlsafe_b64decode(token + "=" * padding)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError) as e:
        # ValueError covers bad alphabet, UnicodeDecodeError and JSONDecodeError
        logger.info(f"🔍 Undecodable verification token: {e}")
        raise VerificationDecodeError()

    if not isinstance(data, dict):
        raise VerificationDecodeError()
    try:
        return VerificationSnapshot.model_validate(data)
    except PydanticValidationError as e:
        logger.info(f"🔍 Verification token has an invalid payload: {e.error_count()} errors")
        raise VerificationDecodeError()


def build_verification_url(booking: Booking, user: User, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.VERIFY_BASE_URL).rstrip("/")
    return f"{base}/verify/{quote(booking.id, safe='')}?data={encode(booking, user)}"


def render_qr_png(data: str) -> str:
    """Returns the QR code for `data` as a PNG data URI."""
    qr = qrcode.QRCode(version=None, box_size=10, border=2)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="#1e293b", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode()}"


async def resolve_snapshot(
    booking_id: str,
    token: Optional[str],
    store: RecordStore,
    auth: AuthProvider,
) -> Optional[VerificationSnapshot]:
    """
    Token first; without a usable token, fall back to the store's booking and
    user records. None means "booking not found".
    """
    if token:
        try:
            return decode(token)
        except VerificationDecodeError:
            logger.info(f"🔍 Token for booking {booking_id} rejected, trying the store")

    record = await store.get(EntityKind.BOOKINGS, booking_id)
    if not record:
        return None
    booking = Booking.model_validate(record)

    user = await auth.get_user(booking.user_id) or User(id=booking.user_id, email="", name="Unknown User")
    return snapshot_of(booking, user)
