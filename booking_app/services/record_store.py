from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional


class EntityKind(str, Enum):
    USERS = "users"
    BOOKINGS = "bookings"
    SESSIONS = "sessions"
    SERVICES = "services"
    TIME_SLOTS = "time_slots"
    NOTIFICATIONS = "notifications"


# Kinds whose records are bare strings; the string is its own id.
VALUE_KINDS = frozenset({EntityKind.SERVICES, EntityKind.TIME_SLOTS})

# Field that identifies a record of each dict kind.
ID_FIELDS = {
    EntityKind.USERS: "id",
    EntityKind.BOOKINGS: "id",
    EntityKind.SESSIONS: "token",
    EntityKind.NOTIFICATIONS: "id",
}


def record_id(kind: EntityKind, record: Any) -> str:
    if kind in VALUE_KINDS:
        return str(record)
    return str(record[ID_FIELDS[kind]])


class RecordStore(ABC):
    """
    Key/value persistence for every entity kind.
    Records are plain JSON-ready values (dicts, or strings for value kinds);
    callers always receive copies.
    """

    @abstractmethod
    async def get(self, kind: EntityKind, id: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def list(self, kind: EntityKind) -> List[Any]:
        ...

    @abstractmethod
    async def put(self, kind: EntityKind, id: str, record: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, kind: EntityKind, id: str) -> None:
        ...

    async def get_values(self, kind: EntityKind) -> List[str]:
        return [str(value) for value in await self.list(kind)]

    async def set_values(self, kind: EntityKind, values: List[str]) -> None:
        current = await self.get_values(kind)
        for value in current:
            if value not in values:
                await self.delete(kind, value)
        for value in values:
            await self.put(kind, value, value)

    async def find(self, kind: EntityKind, **fields: Any) -> List[Dict[str, Any]]:
        """Linear filter over a dict kind by exact field values."""
        return [
            record for record in await self.list(kind)
            if all(record.get(key) == value for key, value in fields.items())
        ]
