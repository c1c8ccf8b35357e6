import json

import pytest

from booking_app.core.errors import RecordStoreError
from booking_app.services.local_store import STORAGE_KEYS, LocalRecordStore
from booking_app.services.record_store import EntityKind

SEED = {
    "users": [{"id": "1", "email": "a@b.c", "name": "A", "role": "user", "createdAt": "2025-11-01"}],
    "bookings": [],
    "services": ["Consultation", "Training Session"],
    "time_slots": ["9:00 AM"],
    "notifications": [],
}


@pytest.mark.asyncio
async def test_seeds_missing_namespaces(tmp_path):
    store = LocalRecordStore(tmp_path / "store.json", seed=SEED)

    assert await store.get_values(EntityKind.SERVICES) == ["Consultation", "Training Session"]
    assert (await store.get(EntityKind.USERS, "1"))["email"] == "a@b.c"

    document = json.loads((tmp_path / "store.json").read_text())
    assert set(document) == {STORAGE_KEYS[kind] for kind in EntityKind if kind != EntityKind.SESSIONS}


@pytest.mark.asyncio
async def test_existing_keys_are_never_reseeded(tmp_path):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({STORAGE_KEYS[EntityKind.SERVICES]: []}))

    store = LocalRecordStore(path, seed=SEED)

    # An emptied list stays empty; only absent keys get seed data
    assert await store.get_values(EntityKind.SERVICES) == []
    assert await store.get_values(EntityKind.TIME_SLOTS) == ["9:00 AM"]


@pytest.mark.asyncio
async def test_writes_survive_a_new_store_instance(tmp_path):
    path = tmp_path / "store.json"
    first = LocalRecordStore(path, seed=SEED)
    await first.put(EntityKind.BOOKINGS, "b1", {"id": "b1", "service": "Consultation"})

    second = LocalRecordStore(path, seed=SEED)
    assert await second.get(EntityKind.BOOKINGS, "b1") == {"id": "b1", "service": "Consultation"}


@pytest.mark.asyncio
async def test_put_overwrites_in_place(tmp_path):
    store = LocalRecordStore(tmp_path / "store.json", seed=SEED)
    await store.put(EntityKind.BOOKINGS, "b1", {"id": "b1", "status": "Pending"})
    await store.put(EntityKind.BOOKINGS, "b2", {"id": "b2", "status": "Pending"})
    await store.put(EntityKind.BOOKINGS, "b1", {"id": "b1", "status": "Confirmed"})

    records = await store.list(EntityKind.BOOKINGS)
    assert [r["id"] for r in records] == ["b1", "b2"]
    assert records[0]["status"] == "Confirmed"


@pytest.mark.asyncio
async def test_returned_records_are_copies(tmp_path):
    store = LocalRecordStore(tmp_path / "store.json", seed=SEED)
    record = await store.get(EntityKind.USERS, "1")
    record["name"] = "Changed"

    assert (await store.get(EntityKind.USERS, "1"))["name"] == "A"


@pytest.mark.asyncio
async def test_value_lists_dedupe_and_delete(tmp_path):
    store = LocalRecordStore(tmp_path / "store.json", seed=SEED)
    await store.put(EntityKind.SERVICES, "Consultation", "Consultation")
    await store.set_values(EntityKind.TIME_SLOTS, ["1:00 PM", "1:00 PM", "2:00 PM"])
    await store.delete(EntityKind.SERVICES, "Training Session")

    assert await store.get_values(EntityKind.SERVICES) == ["Consultation"]
    assert await store.get_values(EntityKind.TIME_SLOTS) == ["1:00 PM", "2:00 PM"]


@pytest.mark.asyncio
async def test_find_filters_by_fields(tmp_path):
    store = LocalRecordStore(tmp_path / "store.json", seed=SEED)
    await store.put(EntityKind.BOOKINGS, "b1", {"id": "b1", "userId": "1"})
    await store.put(EntityKind.BOOKINGS, "b2", {"id": "b2", "userId": "2"})

    assert [r["id"] for r in await store.find(EntityKind.BOOKINGS, userId="2")] == ["b2"]


@pytest.mark.asyncio
async def test_corrupt_document_raises_store_error(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json")

    with pytest.raises(RecordStoreError):
        await LocalRecordStore(path, seed=SEED).list(EntityKind.BOOKINGS)


@pytest.mark.asyncio
async def test_default_seed_has_demo_accounts(store):
    emails = {u["email"] for u in await store.list(EntityKind.USERS)}
    assert {"demo@user.com", "roger@gmail.com", "val@gmail.com", "marian@gmail.com"} <= emails
    assert len(await store.get_values(EntityKind.TIME_SLOTS)) == 9
