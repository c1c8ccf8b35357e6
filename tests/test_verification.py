from datetime import date

import pytest

from booking_app.core.errors import VerificationDecodeError
from booking_app.models.db_models import Booking, BookingStatus, User
from booking_app.services import verification_service

BOOKING = Booking(
    id="b-42",
    user_id="1",
    service="Consultation",
    date=date(2026, 1, 15),
    time_slot="10:00 AM",
    status=BookingStatus.CONFIRMED,
    created_at=date(2026, 1, 2),
)
OWNER = User(id="1", email="demo@user.com", name="Demo User")


def test_token_carries_the_snapshot():
    token = verification_service.encode(BOOKING, OWNER)

    assert "=" not in token
    snapshot = verification_service.decode(token)
    assert snapshot.booking_id == "b-42"
    assert snapshot.status == BookingStatus.CONFIRMED
    assert snapshot.user_name == "Demo User"
    assert snapshot.user_email == "demo@user.com"
    assert snapshot.date == date(2026, 1, 15)


OWNERS = [
    OWNER,
    User(id="7", email="zoe@example.cz", name="Zoë Šťastná"),
    User(id="8", email="taro@example.jp", name="山田太郎"),
    User(id="9", email="o'brien+book@example.com", name="Seán O'Brien \"Jr\" 🎉"),
]


@pytest.mark.parametrize("owner", OWNERS, ids=lambda u: u.id)
@pytest.mark.parametrize("status", list(BookingStatus), ids=lambda s: s.value)
def test_decoded_token_matches_the_booking(status, owner):
    booking = BOOKING.model_copy(update={
        "user_id": owner.id,
        "status": status,
        "service": "Café Ünïcode Session",
        "time_slot": "4:30 PM",
    })

    token = verification_service.encode(booking, owner)

    assert token.isascii()
    assert verification_service.decode(token) == verification_service.snapshot_of(booking, owner)


@pytest.mark.parametrize("token", ["", "not base64 at all!", "e30", "W10"])
def test_bad_tokens_raise(token):
    # "e30" is {} and "W10" is [] once decoded
    with pytest.raises(VerificationDecodeError):
        verification_service.decode(token)


def test_truncated_token_raises():
    token = verification_service.encode(BOOKING, OWNER)
    with pytest.raises(VerificationDecodeError):
        verification_service.decode(token[: len(token) // 2])


def test_verification_url():
    url = verification_service.build_verification_url(BOOKING, OWNER, base_url="https://book.example.com/")
    token = verification_service.encode(BOOKING, OWNER)
    assert url == f"https://book.example.com/verify/b-42?data={token}"


def test_qr_code_is_png_data_uri():
    uri = verification_service.render_qr_png("https://book.example.com/verify/b-42")
    assert uri.startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_resolve_falls_back_to_store(backend):
    snapshot = await verification_service.resolve_snapshot("1", "garbage", backend.store, backend.auth)

    assert snapshot.booking_id == "1"
    assert snapshot.user_name == "Demo User"
    assert await verification_service.resolve_snapshot("missing", None, backend.store, backend.auth) is None


def test_verify_endpoint(client):
    token = verification_service.encode(BOOKING, OWNER)

    response = client.get("/booking-server/verify/b-42", params={"data": token})
    assert response.status_code == 200
    body = response.json()
    assert body["booking"]["bookingId"] == "b-42"
    assert body["statusMessage"] == "This booking is confirmed and active"


def test_verify_endpoint_unknown_booking(client):
    response = client.get("/booking-server/verify/nope", params={"data": "broken"})
    assert response.status_code == 404
    assert response.json() == {"error": "Booking not found"}
