"""Client for the booking REST API, for processes that talk to a remote server."""

import time
from typing import Any, Callable, Dict, List, Optional, Set

import requests

from booking_app.core.config import settings
from booking_app.core.errors import (
    BookingAppError,
    ConnectivityError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from booking_app.core.logger import logger
from booking_app.models.db_models import Booking, Notification, User

ERRORS_BY_STATUS = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
}


class RemoteClient:
    """
    One method per REST endpoint. Each call is a single blocking attempt; no
    retries and, unless REMOTE_TIMEOUT is set, no timeout.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.REMOTE_API_URL).rstrip("/")
        self.access_token = access_token
        self.timeout = timeout if timeout is not None else settings.REMOTE_TIMEOUT
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if auth:
            if not self.access_token:
                raise UnauthorizedError("Not logged in")
            headers["Authorization"] = f"Bearer {self.access_token}"

        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"❌ Booking server unreachable ({method} {url}): {e}")
            raise ConnectivityError()

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            message = payload.get("error") if isinstance(payload, dict) else None
            message = message or f"Request failed with status {response.status_code}"
            logger.warning(f"⚠️ {method} {path} -> {response.status_code}: {message}")
            error_cls = ERRORS_BY_STATUS.get(response.status_code, BookingAppError)
            raise error_cls(message)
        return payload

    # --- Session ---

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health", auth=False)

    def signup(self, email: str, password: str, name: str) -> User:
        data = self._request("POST", "/signup", auth=False, json={"email": email, "password": password, "name": name})
        return User.model_validate(data["user"])

    def login(self, email: str, password: str) -> User:
        data = self._request("POST", "/login", auth=False, json={"email": email, "password": password})
        self.access_token = data["accessToken"]
        return User.model_validate(data["user"])

    def logout(self) -> None:
        if self.access_token:
            self._request("POST", "/logout")
        self.access_token = None

    def get_user(self) -> User:
        return User.model_validate(self._request("GET", "/user"))

    def update_profile(self, name: str) -> User:
        return User.model_validate(self._request("PATCH", "/user/profile", json={"name": name})["user"])

    def list_users(self, query: Optional[str] = None) -> List[User]:
        params = {"q": query} if query else None
        return [User.model_validate(u) for u in self._request("GET", "/users", params=params)["users"]]

    def list_all_users(self) -> List[User]:
        return [User.model_validate(u) for u in self._request("GET", "/users/all", auth=False)["users"]]

    # --- Bookings ---

    def list_bookings(
        self,
        q: Optional[str] = None,
        status: Optional[str] = None,
        service: Optional[str] = None,
        when: Optional[str] = None,
    ) -> List[Booking]:
        params = {k: v for k, v in {"q": q, "status": status, "service": service, "when": when}.items() if v}
        data = self._request("GET", "/bookings", params=params or None)
        return [Booking.model_validate(b) for b in data["bookings"]]

    def create_booking(self, service: str, date: str, time_slot: str) -> Booking:
        data = self._request("POST", "/bookings", json={"service": service, "date": date, "timeSlot": time_slot})
        return Booking.model_validate(data["booking"])

    def update_booking_status(self, booking_id: str, status: str) -> Booking:
        data = self._request("PATCH", f"/bookings/{booking_id}/status", json={"status": status})
        return Booking.model_validate(data["booking"])

    def cancel_booking(self, booking_id: str) -> Booking:
        return Booking.model_validate(self._request("POST", f"/bookings/{booking_id}/cancel")["booking"])

    def reschedule_booking(self, booking_id: str, date: str, time_slot: str) -> Booking:
        data = self._request("PATCH", f"/bookings/{booking_id}/reschedule", json={"date": date, "timeSlot": time_slot})
        return Booking.model_validate(data["booking"])

    def review_booking(self, booking_id: str, rating: int, comment: str = "") -> Booking:
        data = self._request("POST", f"/bookings/{booking_id}/review", json={"rating": rating, "comment": comment})
        return Booking.model_validate(data["booking"])

    def verification_link(self, booking_id: str, qr: bool = False) -> Dict[str, Any]:
        return self._request("GET", f"/bookings/{booking_id}/verification", params={"qr": str(qr).lower()})

    def verify(self, booking_id: str, token: Optional[str] = None) -> Dict[str, Any]:
        params = {"data": token} if token else None
        return self._request("GET", f"/verify/{booking_id}", auth=False, params=params)

    # --- Allow-lists ---

    def list_services(self) -> List[str]:
        return self._request("GET", "/services", auth=False)["services"]

    def list_time_slots(self) -> List[str]:
        return self._request("GET", "/time-slots", auth=False)["timeSlots"]

    # --- Notifications ---

    def list_notifications(self, unread_only: bool = False) -> List[Notification]:
        data = self._request("GET", "/notifications", params={"unread_only": str(unread_only).lower()})
        return [Notification.model_validate(n) for n in data["notifications"]]

    def mark_notification_read(self, notification_id: str) -> Notification:
        data = self._request("PATCH", f"/notifications/{notification_id}/read")
        return Notification.model_validate(data["notification"])

    def mark_all_notifications_read(self) -> int:
        return self._request("POST", "/notifications/read-all")["updated"]

    def delete_notification(self, notification_id: str) -> None:
        self._request("DELETE", f"/notifications/{notification_id}")

    def watch_notifications(
        self,
        callback: Callable[[Notification], None],
        interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ) -> None:
        """
        Polls the notification list on a fixed interval and hands each
        notification not seen before to `callback`. Notifications that exist
        when watching starts count as seen.
        """
        interval = settings.NOTIFICATION_POLL_INTERVAL if interval is None else interval
        seen: Set[str] = {n.id for n in self.list_notifications()}
        polls = 0
        while max_polls is None or polls < max_polls:
            time.sleep(interval)
            polls += 1
            for notification in reversed(self.list_notifications()):
                if notification.id not in seen:
                    seen.add(notification.id)
                    callback(notification)
