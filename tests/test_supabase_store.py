import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from booking_app.core.errors import DuplicateAccountError, RecordStoreError
from booking_app.services.auth_service import SupabaseAuthProvider
from booking_app.services.booking_service import BookingService
from booking_app.services.db_service import DBService, auth_user_to_dict
from booking_app.services.record_store import EntityKind
from booking_app.services.supabase_store import SupabaseRecordStore

SEED = {"services": ["Consultation"], "time_slots": ["9:00 AM", "10:00 AM"]}


@pytest.fixture
def kv():
    """Mocked DBService whose key/value calls hit a plain dict."""
    table = {}
    db = MagicMock(spec=DBService)
    db.table = table
    db.kv_get = AsyncMock(side_effect=lambda key: table.get(key))
    db.kv_set = AsyncMock(side_effect=lambda key, value: table.__setitem__(key, value))
    db.kv_delete = AsyncMock(side_effect=lambda key: table.pop(key, None))
    db.kv_get_by_prefix = AsyncMock(side_effect=lambda prefix: [
        {"key": k, "value": v} for k, v in table.items() if k.startswith(prefix)
    ])
    return db


@pytest.mark.asyncio
async def test_records_live_under_prefixed_keys(kv):
    store = SupabaseRecordStore(db=kv, seed=SEED)
    await store.put(EntityKind.BOOKINGS, "b1", {"id": "b1", "service": "Consultation"})
    await store.put(EntityKind.NOTIFICATIONS, "n1", {"id": "n1"})

    assert kv.table["booking:b1"] == {"id": "b1", "service": "Consultation"}
    assert await store.get(EntityKind.BOOKINGS, "b1") == {"id": "b1", "service": "Consultation"}
    assert [r["id"] for r in await store.list(EntityKind.BOOKINGS)] == ["b1"]

    await store.delete(EntityKind.BOOKINGS, "b1")
    assert await store.get(EntityKind.BOOKINGS, "b1") is None


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped(kv):
    kv.table["booking:bad"] = "not a record"
    kv.table["booking:ok"] = {"id": "ok"}

    store = SupabaseRecordStore(db=kv, seed=SEED)
    assert await store.list(EntityKind.BOOKINGS) == [{"id": "ok"}]


EDGE_FUNCTION_BOOKING = {
    "id": "b1",
    "userId": "u1",
    "service": "Consultation",
    "date": "2025-12-01",
    "timeSlot": "10:00 AM",
    "status": "Pending",
    "createdAt": "2025-11-20",
}


@pytest.mark.asyncio
async def test_json_text_records_are_decoded(kv):
    # The edge function stores JSON.stringify(booking) rather than a jsonb object
    kv.table["booking:b1"] = json.dumps(EDGE_FUNCTION_BOOKING)
    kv.table["booking:b2"] = dict(EDGE_FUNCTION_BOOKING, id="b2")
    kv.table["config:services"] = json.dumps(["Consultation", "Design Review"])
    store = SupabaseRecordStore(db=kv, seed=SEED)
    bookings = BookingService(store)

    booking = await bookings.get_booking("b1")
    assert booking.service == "Consultation"
    assert booking.time_slot == "10:00 AM"
    assert {b.id for b in await bookings.list_bookings()} == {"b1", "b2"}
    assert await bookings.list_services() == ["Consultation", "Design Review"]

    updated = await bookings.update_status("b1", "Confirmed")
    assert updated.status.value == "Confirmed"
    assert kv.table["booking:b1"]["status"] == "Confirmed"


@pytest.mark.asyncio
async def test_undecodable_record_is_a_store_error(kv):
    kv.table["booking:bad"] = "{not json"
    kv.table["booking:text"] = json.dumps("just a string")
    store = SupabaseRecordStore(db=kv, seed=SEED)

    with pytest.raises(RecordStoreError):
        await store.get(EntityKind.BOOKINGS, "bad")
    with pytest.raises(RecordStoreError):
        await store.get(EntityKind.BOOKINGS, "text")
    assert await store.list(EntityKind.BOOKINGS) == []


@pytest.mark.asyncio
async def test_allow_lists_seed_once(kv):
    store = SupabaseRecordStore(db=kv, seed=SEED)

    assert await store.get_values(EntityKind.TIME_SLOTS) == ["9:00 AM", "10:00 AM"]
    assert kv.table["config:time_slots"] == ["9:00 AM", "10:00 AM"]

    await store.set_values(EntityKind.SERVICES, [])
    assert await store.get_values(EntityKind.SERVICES) == []

    await store.put(EntityKind.SERVICES, "Massage", "Massage")
    await store.put(EntityKind.SERVICES, "Massage", "Massage")
    assert kv.table["config:services"] == ["Massage"]


@pytest.mark.asyncio
async def test_roles(kv):
    store = SupabaseRecordStore(db=kv, seed=SEED)
    await store.set_role("u1", "admin")

    assert kv.table["user:u1:role"] == "admin"
    assert await store.get_role("u1") == "admin"
    assert await store.get_role("u2") is None


@pytest.mark.asyncio
async def test_supabase_auth_attaches_roles(kv):
    store = SupabaseRecordStore(db=kv, seed=SEED)
    kv.table["user:u1:role"] = "admin"
    kv.sign_in = AsyncMock(return_value={
        "accessToken": "jwt-token",
        "user": {"id": "u1", "email": "roger@gmail.com", "name": "Roger", "createdAt": "2025-10-15"},
    })
    kv.get_auth_user = AsyncMock(return_value={"id": "u2", "email": "x@y.z", "name": "X", "createdAt": "2025-10-15"})
    auth = SupabaseAuthProvider(store, db=kv)

    session = await auth.login("roger@gmail.com", "gerger1")
    assert session.token == "jwt-token"
    assert session.user.role.value == "admin"

    # No stored role means a regular user
    assert (await auth.resolve("other-token")).role.value == "user"


@pytest.mark.asyncio
async def test_supabase_signup_stores_user_role(kv):
    store = SupabaseRecordStore(db=kv, seed=SEED)
    kv.create_auth_user = AsyncMock(return_value={"id": "u9", "email": "n@u.com", "name": "New", "createdAt": "2026-01-01"})
    auth = SupabaseAuthProvider(store, db=kv)

    user = await auth.signup("n@u.com", "pw12345", "New")
    assert user.id == "u9"
    assert kv.table["user:u9:role"] == "user"


def _fake_supabase_client(create_user_error=None):
    client = MagicMock()
    client.auth.admin.create_user = AsyncMock(side_effect=create_user_error)
    return client


@pytest.mark.asyncio
async def test_db_service_maps_duplicate_signup():
    db = DBService()
    client = _fake_supabase_client(create_user_error=Exception("User already registered"))
    with patch.object(DBService, "get_client", new_callable=AsyncMock, return_value=client):
        with pytest.raises(DuplicateAccountError):
            await db.create_auth_user("demo@user.com", "pw", "Demo")


@pytest.mark.asyncio
async def test_sign_ins_share_one_client():
    db = DBService()
    client = MagicMock()
    client.auth.sign_in_with_password = AsyncMock(return_value=SimpleNamespace(
        session=SimpleNamespace(access_token="jwt-token"),
        user=SimpleNamespace(id="u1", email="roger@gmail.com", user_metadata={"name": "Roger"}, created_at=None),
    ))

    with patch.object(db, "_sign_in_client", None), \
            patch("booking_app.services.db_service.settings") as mock_settings, \
            patch("booking_app.services.db_service.create_async_client", new_callable=AsyncMock) as mock_create:
        mock_settings.SUPABASE_URL = "https://project.supabase.co"
        mock_settings.SUPABASE_KEY = "service-key"
        mock_create.return_value = client

        first = await db.sign_in("roger@gmail.com", "gerger1")
        second = await db.sign_in("roger@gmail.com", "gerger1")

    assert first["accessToken"] == second["accessToken"] == "jwt-token"
    mock_create.assert_awaited_once_with("https://project.supabase.co", "service-key")
    assert client.auth.sign_in_with_password.await_count == 2


def test_auth_user_to_dict():
    user = SimpleNamespace(
        id="abc",
        email="demo@user.com",
        user_metadata={"name": "Demo User"},
        created_at="2025-11-01T10:00:00Z",
    )
    assert auth_user_to_dict(user) == {
        "id": "abc",
        "email": "demo@user.com",
        "name": "Demo User",
        "createdAt": "2025-11-01",
    }
