import asyncio

from booking_app.core.config import settings
from booking_app.core.logger import logger
from booking_app.services.db_service import db_service
from booking_app.services.record_store import EntityKind
from booking_app.services.supabase_store import SupabaseRecordStore

# Smoke check against the configured Supabase project (needs SUPABASE_URL / SUPABASE_KEY).


async def verify_supabase():
    print(f"Testing Supabase key/value table '{settings.KV_TABLE}'...")

    key = "smoke:verify_supabase"
    await db_service.kv_set(key, {"ok": True})
    value = await db_service.kv_get(key)
    await db_service.kv_delete(key)
    if value == {"ok": True}:
        print("✅ Key/value round trip works")
    else:
        print(f"❌ Failed: expected {{'ok': True}}, got {value}")
        return

    store = SupabaseRecordStore()
    services = await store.get_values(EntityKind.SERVICES)
    time_slots = await store.get_values(EntityKind.TIME_SLOTS)
    bookings = await store.list(EntityKind.BOOKINGS)
    print(f"✅ {len(services)} services, {len(time_slots)} time slots, {len(bookings)} bookings")

    users = await db_service.list_auth_users()
    print(f"✅ {len(users)} Supabase Auth users")


if __name__ == "__main__":
    try:
        asyncio.run(verify_supabase())
    except Exception as e:
        logger.error(f"❌ Supabase check failed: {e}")
        raise
