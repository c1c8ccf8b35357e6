from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends

from booking_app.core.config import settings
from booking_app.core.logger import logger
from booking_app.services.auth_service import AuthProvider, LocalAuthProvider, SupabaseAuthProvider
from booking_app.services.booking_service import BookingService
from booking_app.services.local_store import LocalRecordStore
from booking_app.services.notification_service import NotificationService, hub
from booking_app.services.record_store import RecordStore
from booking_app.services.supabase_store import SupabaseRecordStore


@dataclass
class Backend:
    store: RecordStore
    auth: AuthProvider
    bookings: BookingService
    notifications: NotificationService


def build_backend(store_backend: str | None = None) -> Backend:
    kind = (store_backend or settings.STORE_BACKEND).lower()
    if kind == "supabase":
        store = SupabaseRecordStore()
        auth = SupabaseAuthProvider(store)
    elif kind == "local":
        store = LocalRecordStore(settings.LOCAL_STORE_PATH)
        auth = LocalAuthProvider(store)
    else:
        raise ValueError(f"Unknown STORE_BACKEND '{kind}' (expected 'local' or 'supabase')")

    notifications = NotificationService(store, hub)
    logger.info(f"🗄️ Using the {kind} record store")
    return Backend(
        store=store,
        auth=auth,
        bookings=BookingService(store, notifications),
        notifications=notifications,
    )


@lru_cache
def get_backend() -> Backend:
    return build_backend()


def get_auth(backend: Backend = Depends(get_backend)) -> AuthProvider:
    return backend.auth


def get_booking_service(backend: Backend = Depends(get_backend)) -> BookingService:
    return backend.bookings


def get_notification_service(backend: Backend = Depends(get_backend)) -> NotificationService:
    return backend.notifications
