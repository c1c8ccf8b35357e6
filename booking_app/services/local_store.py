import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from booking_app.core.config_loader import load_seed_data
from booking_app.core.errors import RecordStoreError
from booking_app.core.logger import logger
from booking_app.services.record_store import VALUE_KINDS, EntityKind, RecordStore, record_id

STORAGE_KEYS = {
    EntityKind.USERS: "booking_system_users",
    EntityKind.BOOKINGS: "booking_system_bookings",
    EntityKind.SESSIONS: "booking_system_current_user",
    EntityKind.SERVICES: "booking_system_services",
    EntityKind.TIME_SLOTS: "booking_system_time_slots",
    EntityKind.NOTIFICATIONS: "booking_system_notifications",
}

# Seed file section for each seeded namespace; sessions start out absent.
SEED_SECTIONS = {
    EntityKind.USERS: "users",
    EntityKind.BOOKINGS: "bookings",
    EntityKind.SERVICES: "services",
    EntityKind.TIME_SLOTS: "time_slots",
    EntityKind.NOTIFICATIONS: "notifications",
}


class LocalRecordStore(RecordStore):
    """
    Single-client store backed by one JSON document on disk.
    Every operation re-reads the document, every mutation rewrites it, so a
    write is visible to the next read immediately (last writer wins).
    """

    def __init__(self, path: str | Path, seed: Optional[Dict[str, List[Any]]] = None):
        self._path = Path(path).expanduser()
        self._seed = seed
        self._initialized = False

    def initialize(self) -> None:
        """Seeds every namespace whose key is missing from the document."""
        document = self._read_document()
        missing = [kind for kind in SEED_SECTIONS if STORAGE_KEYS[kind] not in document]
        if missing:
            seed = self._seed if self._seed is not None else load_seed_data()
            for kind in missing:
                document[STORAGE_KEYS[kind]] = copy.deepcopy(seed.get(SEED_SECTIONS[kind], []))
            self._write_document(document)
            logger.info(f"🌱 Seeded local store namespaces: {', '.join(k.value for k in missing)}")
        self._initialized = True

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def _read_document(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"❌ Local store unreadable ({self._path}): {e}")
            raise RecordStoreError(f"Local store is unreadable: {e}")
        if not isinstance(document, dict):
            raise RecordStoreError("Local store document must be a JSON object")
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            logger.error(f"❌ Local store write failed ({self._path}): {e}")
            raise RecordStoreError(f"Local store write failed: {e}")

    def _read_namespace(self, kind: EntityKind) -> List[Any]:
        self._ensure_initialized()
        return list(self._read_document().get(STORAGE_KEYS[kind]) or [])

    def _write_namespace(self, kind: EntityKind, records: List[Any]) -> None:
        document = self._read_document()
        document[STORAGE_KEYS[kind]] = records
        self._write_document(document)

    async def get(self, kind: EntityKind, id: str) -> Optional[Any]:
        for record in self._read_namespace(kind):
            if record_id(kind, record) == id:
                return copy.deepcopy(record)
        return None

    async def list(self, kind: EntityKind) -> List[Any]:
        return copy.deepcopy(self._read_namespace(kind))

    async def put(self, kind: EntityKind, id: str, record: Any) -> None:
        records = self._read_namespace(kind)
        value = str(record) if kind in VALUE_KINDS else copy.deepcopy(record)
        for index, existing in enumerate(records):
            if record_id(kind, existing) == id:
                records[index] = value
                break
        else:
            records.append(value)
        self._write_namespace(kind, records)

    async def delete(self, kind: EntityKind, id: str) -> None:
        records = self._read_namespace(kind)
        remaining = [record for record in records if record_id(kind, record) != id]
        if len(remaining) != len(records):
            self._write_namespace(kind, remaining)

    async def set_values(self, kind: EntityKind, values: List[str]) -> None:
        unique: List[str] = []
        for value in values:
            if value not in unique:
                unique.append(value)
        self._ensure_initialized()
        self._write_namespace(kind, unique)
