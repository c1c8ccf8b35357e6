import json
from typing import Any, Dict, List, Optional

from booking_app.core.config_loader import load_seed_data
from booking_app.core.errors import RecordStoreError
from booking_app.core.logger import logger
from booking_app.services.db_service import DBService, db_service
from booking_app.services.record_store import VALUE_KINDS, EntityKind, RecordStore

KEY_PREFIXES = {
    EntityKind.USERS: "profile:",
    EntityKind.BOOKINGS: "booking:",
    EntityKind.SESSIONS: "session:",
    EntityKind.NOTIFICATIONS: "notification:",
}

VALUE_KEYS = {
    EntityKind.SERVICES: "config:services",
    EntityKind.TIME_SLOTS: "config:time_slots",
}


def decode_value(key: str, value: Any) -> Any:
    """Rows written by the edge function hold JSON text instead of jsonb."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        raise RecordStoreError(f"Record {key} is not valid JSON")


class SupabaseRecordStore(RecordStore):
    """
    Record store on the hosted key/value table.
    Dict kinds live under one key per record ("booking:<id>"), the service and
    time-slot allow-lists under a single key each. Nothing is cached locally.
    """

    def __init__(self, db: Optional[DBService] = None, seed: Optional[Dict[str, List[Any]]] = None):
        self._db = db or db_service
        self._seed = seed

    def _key(self, kind: EntityKind, id: str) -> str:
        return f"{KEY_PREFIXES[kind]}{id}"

    async def _load_values(self, kind: EntityKind) -> List[str]:
        values = decode_value(VALUE_KEYS[kind], await self._db.kv_get(VALUE_KEYS[kind]))
        if values is None:
            seed = self._seed if self._seed is not None else load_seed_data()
            values = list(seed.get(kind.value, []))
            await self._db.kv_set(VALUE_KEYS[kind], values)
            logger.info(f"🌱 Seeded {VALUE_KEYS[kind]} with {len(values)} entries")
        return [str(value) for value in values]

    async def get(self, kind: EntityKind, id: str) -> Optional[Any]:
        if kind in VALUE_KINDS:
            return id if id in await self._load_values(kind) else None
        key = self._key(kind, id)
        record = decode_value(key, await self._db.kv_get(key))
        if record is not None and not isinstance(record, dict):
            raise RecordStoreError(f"Record {key} is not an object")
        return record

    async def list(self, kind: EntityKind) -> List[Any]:
        if kind in VALUE_KINDS:
            return await self._load_values(kind)
        rows = await self._db.kv_get_by_prefix(KEY_PREFIXES[kind])
        records = []
        for row in rows:
            try:
                record = decode_value(row.get("key", ""), row.get("value"))
            except RecordStoreError:
                record = None
            if isinstance(record, dict):
                records.append(record)
            else:
                logger.warning(f"⚠️ Skipping malformed record {row.get('key')}")
        return records

    async def put(self, kind: EntityKind, id: str, record: Any) -> None:
        if kind in VALUE_KINDS:
            values = await self._load_values(kind)
            if id not in values:
                values.append(id)
                await self._db.kv_set(VALUE_KEYS[kind], values)
            return
        await self._db.kv_set(self._key(kind, id), record)

    async def delete(self, kind: EntityKind, id: str) -> None:
        if kind in VALUE_KINDS:
            values = await self._load_values(kind)
            if id in values:
                await self._db.kv_set(VALUE_KEYS[kind], [v for v in values if v != id])
            return
        await self._db.kv_delete(self._key(kind, id))

    async def set_values(self, kind: EntityKind, values: List[str]) -> None:
        unique: List[str] = []
        for value in values:
            if value not in unique:
                unique.append(value)
        await self._db.kv_set(VALUE_KEYS[kind], unique)

    # Roles are kept apart from profiles, as "user:<id>:role"

    async def get_role(self, user_id: str) -> Optional[str]:
        return await self._db.kv_get(f"user:{user_id}:role")

    async def set_role(self, user_id: str, role: str) -> None:
        await self._db.kv_set(f"user:{user_id}:role", role)
