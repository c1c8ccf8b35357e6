import uuid
from datetime import date as date_type, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class NotificationType(str, Enum):
    NEW_BOOKING = "new_booking"
    BOOKING_UPDATE = "booking_update"
    BOOKING_CANCELLED = "booking_cancelled"


class Record(BaseModel):
    """Stored records use camelCase keys on disk and on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(Record):
    id: str = Field(default_factory=new_id)
    email: str
    name: str
    role: Role = Role.USER
    # Only the local backend keeps credentials
    password: Optional[str] = None
    created_at: date_type = Field(default_factory=date_type.today)

    def public(self) -> "User":
        return self.model_copy(update={"password": None})


class Review(Record):
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: datetime = Field(default_factory=utc_now)


class Booking(Record):
    id: str = Field(default_factory=new_id)
    user_id: str
    service: str
    date: date_type
    time_slot: str
    status: BookingStatus = BookingStatus.PENDING
    created_at: date_type = Field(default_factory=date_type.today)
    review: Optional[Review] = None


class Notification(Record):
    id: str = Field(default_factory=new_id)
    type: NotificationType
    booking_id: str
    user_id: str
    user_name: str
    service: str
    date: date_type
    time_slot: str
    message: str
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now)


class Session(Record):
    token: str
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)


class VerificationSnapshot(Record):
    booking_id: str = Field(validation_alias=AliasChoices("bookingId", "booking_id", "id"))
    service: str
    date: date_type
    time_slot: str
    status: BookingStatus
    user_name: str = "Unknown User"
    user_email: str = ""
    created_at: date_type
