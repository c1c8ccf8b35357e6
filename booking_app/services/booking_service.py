from collections import Counter
from datetime import date
from typing import Dict, List, Optional, Union

from booking_app.core.errors import InvalidTransitionError, ValidationError
from booking_app.core.logger import logger
from booking_app.models.db_models import Booking, BookingStatus, Review, Role, User
from booking_app.services.notification_service import NotificationService
from booking_app.services.record_store import EntityKind, RecordStore

# Booking status policy. update_status() does not enforce it; cancel_booking() does.
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def is_allowed_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _parse_date(value: Union[str, date, None], field: str = "Date") -> date:
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required")
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be in YYYY-MM-DD format")


def _require(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


class BookingService:
    def __init__(self, store: RecordStore, notifications: Optional[NotificationService] = None):
        self.store = store
        self.notifications = notifications or NotificationService(store)

    async def _save(self, booking: Booking) -> Booking:
        await self.store.put(EntityKind.BOOKINGS, booking.id, booking.to_record())
        return booking

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        record = await self.store.get(EntityKind.BOOKINGS, booking_id)
        return Booking.model_validate(record) if record else None

    async def list_bookings(self, user: Optional[User] = None) -> List[Booking]:
        """All bookings, or only the user's own unless the user is an admin."""
        if user is not None and user.role != Role.ADMIN:
            records = await self.store.find(EntityKind.BOOKINGS, userId=user.id)
        else:
            records = await self.store.list(EntityKind.BOOKINGS)
        return [Booking.model_validate(r) for r in records]

    def filter_bookings(
        self,
        bookings: List[Booking],
        q: Optional[str] = None,
        status: Optional[str] = None,
        service: Optional[str] = None,
        when: Optional[str] = None,
        user_names: Optional[Dict[str, str]] = None,
        today: Optional[date] = None,
    ) -> List[Booking]:
        """
        Admin booking search. `q` matches service, booking id or the owner's
        name (looked up in `user_names`); "all" disables a filter.
        """
        if status and status != "all":
            try:
                status = BookingStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown booking status: {status}")
            bookings = [b for b in bookings if b.status == status]

        if service and service != "all":
            bookings = [b for b in bookings if b.service == service]

        if when and when != "all":
            if when not in ("upcoming", "past"):
                raise ValidationError("when must be one of: all, upcoming, past")
            today = today or date.today()
            upcoming = when == "upcoming"
            bookings = [b for b in bookings if (b.date >= today) == upcoming]

        if q:
            needle = q.lower()
            names = user_names or {}
            bookings = [
                b for b in bookings
                if needle in b.service.lower()
                or needle in b.id.lower()
                or needle in names.get(b.user_id, "Unknown User").lower()
            ]
        return bookings

    async def create_booking(
        self,
        user: User,
        service: str,
        booking_date: Union[str, date],
        time_slot: str,
    ) -> Booking:
        """
        Creates a Pending booking and raises the admin notification.
        The service and slot are not checked against the allow-lists.
        """
        booking = Booking(
            user_id=user.id,
            service=_require(service, "Service"),
            date=_parse_date(booking_date),
            time_slot=_require(time_slot, "Time slot"),
            status=BookingStatus.PENDING,
            created_at=date.today(),
        )
        await self._save(booking)
        logger.info(f"📅 Booking {booking.id} created for {user.email}: {booking.service} {booking.date} {booking.time_slot}")

        await self.notifications.notify_new_booking(booking, user)
        return booking

    async def update_status(self, booking_id: str, status: Union[str, BookingStatus]) -> Optional[Booking]:
        """Overwrites the status whatever the current one is."""
        try:
            status = BookingStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown booking status: {status}")

        booking = await self.get_booking(booking_id)
        if not booking:
            return None

        if not is_allowed_transition(booking.status, status) and booking.status != status:
            logger.warning(f"⚠️ Booking {booking_id}: {booking.status.value} -> {status.value} is outside the usual flow")

        booking.status = status
        await self._save(booking)
        logger.info(f"🔄 Booking {booking_id} status -> {status.value}")
        return booking

    async def cancel_booking(self, booking_id: str) -> Optional[Booking]:
        booking = await self.get_booking(booking_id)
        if not booking:
            return None
        if booking.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"A {booking.status.value.lower()} booking cannot be cancelled")

        booking.status = BookingStatus.CANCELLED
        await self._save(booking)
        logger.info(f"🗑️ Booking {booking_id} cancelled")
        return booking

    async def reschedule(
        self,
        booking_id: str,
        new_date: Union[str, date],
        new_time_slot: str,
    ) -> Optional[Booking]:
        """Moves the booking in place; no conflict check against other bookings."""
        new_date = _parse_date(new_date)
        new_time_slot = _require(new_time_slot, "Time slot")

        booking = await self.get_booking(booking_id)
        if not booking:
            return None

        booking.date = new_date
        booking.time_slot = new_time_slot
        await self._save(booking)
        logger.info(f"🕑 Booking {booking_id} rescheduled to {new_date} {new_time_slot}")
        return booking

    async def attach_review(self, booking_id: str, rating: int, comment: str = "") -> Optional[Booking]:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be a whole number from 1 to 5")

        booking = await self.get_booking(booking_id)
        if not booking:
            return None

        comment = (comment or "").strip()
        if booking.review and booking.review.rating == rating and booking.review.comment == comment:
            return booking

        booking.review = Review(rating=rating, comment=comment)
        await self._save(booking)
        logger.info(f"⭐ Review {rating}/5 attached to booking {booking_id}")
        return booking

    async def service_rating(self, service: str) -> Dict[str, float]:
        ratings = [
            b.review.rating for b in await self.list_bookings()
            if b.service == service and b.review
        ]
        if not ratings:
            return {"average": 0, "count": 0}
        return {"average": sum(ratings) / len(ratings), "count": len(ratings)}

    async def booking_stats(self, today: Optional[date] = None) -> Dict[str, object]:
        """Figures for the admin dashboard."""
        today = today or date.today()
        bookings = await self.list_bookings()
        by_status = Counter(b.status for b in bookings)
        return {
            "total": len(bookings),
            "pending": by_status[BookingStatus.PENDING],
            "confirmed": by_status[BookingStatus.CONFIRMED],
            "cancelled": by_status[BookingStatus.CANCELLED],
            "completed": by_status[BookingStatus.COMPLETED],
            "upcoming": sum(1 for b in bookings if b.date >= today and b.status != BookingStatus.CANCELLED),
            "byService": dict(Counter(b.service for b in bookings)),
        }

    # --- Allow-lists ---

    async def list_services(self) -> List[str]:
        return await self.store.get_values(EntityKind.SERVICES)

    async def add_service(self, service: str) -> List[str]:
        service = _require(service, "Service")
        await self.store.put(EntityKind.SERVICES, service, service)
        return await self.list_services()

    async def set_services(self, services: List[str]) -> List[str]:
        await self.store.set_values(EntityKind.SERVICES, [_require(s, "Service") for s in services])
        return await self.list_services()

    async def remove_service(self, service: str) -> List[str]:
        await self.store.delete(EntityKind.SERVICES, service)
        return await self.list_services()

    async def list_time_slots(self) -> List[str]:
        return await self.store.get_values(EntityKind.TIME_SLOTS)

    async def add_time_slot(self, time_slot: str) -> List[str]:
        time_slot = _require(time_slot, "Time slot")
        await self.store.put(EntityKind.TIME_SLOTS, time_slot, time_slot)
        return await self.list_time_slots()

    async def set_time_slots(self, time_slots: List[str]) -> List[str]:
        await self.store.set_values(EntityKind.TIME_SLOTS, [_require(t, "Time slot") for t in time_slots])
        return await self.list_time_slots()

    async def remove_time_slot(self, time_slot: str) -> List[str]:
        await self.store.delete(EntityKind.TIME_SLOTS, time_slot)
        return await self.list_time_slots()
