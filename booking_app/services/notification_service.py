import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, List, Optional, Set

from booking_app.core.config import settings
from booking_app.core.logger import logger
from booking_app.models.db_models import Booking, Notification, NotificationType, User
from booking_app.services.record_store import EntityKind, RecordStore

Listener = Callable[[Notification], None]


class NotificationHub:
    """
    The single in-process channel for new notifications.
    Delivery is a direct call to each current listener: nothing is queued,
    listeners that subscribe later only see later notifications.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notification: Notification) -> int:
        """Returns the number of listeners that accepted the notification."""
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(notification)
                delivered += 1
            except Exception as e:
                logger.error(f"❌ Notification listener failed: {e}", exc_info=True)
        return delivered

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


hub = NotificationHub()


class NotificationService:
    def __init__(self, store: RecordStore, notification_hub: Optional[NotificationHub] = None):
        self.store = store
        self.hub = notification_hub or hub

    async def notify_new_booking(self, booking: Booking, acting_user: User) -> Notification:
        notification = Notification(
            type=NotificationType.NEW_BOOKING,
            booking_id=booking.id,
            user_id=acting_user.id,
            user_name=acting_user.name,
            service=booking.service,
            date=booking.date,
            time_slot=booking.time_slot,
            message=f"New booking from {acting_user.name} for {booking.service}",
        )
        await self.store.put(EntityKind.NOTIFICATIONS, notification.id, notification.to_record())
        logger.info(f"📬 Notification created for admin: {notification.message}")
        self.hub.publish(notification)
        return notification

    async def list_notifications(self, unread_only: bool = False) -> List[Notification]:
        """Newest first."""
        notifications = [
            Notification.model_validate(record)
            for record in await self.store.list(EntityKind.NOTIFICATIONS)
        ]
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    async def unread_count(self) -> int:
        return len(await self.list_notifications(unread_only=True))

    async def mark_read(self, notification_id: str) -> Optional[Notification]:
        record = await self.store.get(EntityKind.NOTIFICATIONS, notification_id)
        if not record:
            return None
        notification = Notification.model_validate(record)
        if not notification.read:
            notification.read = True
            await self.store.put(EntityKind.NOTIFICATIONS, notification.id, notification.to_record())
        return notification

    async def mark_all_read(self) -> int:
        """Returns how many notifications changed."""
        changed = 0
        for record in await self.store.list(EntityKind.NOTIFICATIONS):
            notification = Notification.model_validate(record)
            if notification.read:
                continue
            notification.read = True
            await self.store.put(EntityKind.NOTIFICATIONS, notification.id, notification.to_record())
            changed += 1
        return changed

    async def delete(self, notification_id: str) -> None:
        await self.store.delete(EntityKind.NOTIFICATIONS, notification_id)


# Keeps in-flight e-mail tasks referenced until they finish
_pending_emails: Set[asyncio.Task] = set()


def email_enabled() -> bool:
    return bool(settings.ADMIN_EMAIL and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def send_email(subject: str, body: str, to_email: str = None) -> bool:
    """
    Sends an email over SMTP (e.g. Gmail).
    Defaults `to_email` to ADMIN_EMAIL.
    Returns: True if successful, False otherwise.
    """
    to_email = to_email or settings.ADMIN_EMAIL
    if not to_email:
        logger.error("❌ No recipient email found (ADMIN_EMAIL missing).")
        return False

    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        logger.error("❌ SMTP credentials missing.")
        return False

    try:
        msg = MIMEMultipart()
        msg['From'] = settings.SMTP_USERNAME
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain'))

        server = smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT)
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(settings.SMTP_USERNAME, to_email, msg.as_string())
        server.quit()

        logger.info(f"✅ Email sent to {to_email} with subject: '{subject}'")
        return True
    except Exception as e:
        logger.error(f"❌ Email delivery failed: {e}")
        return False


def email_admin(notification: Notification) -> Optional[asyncio.Task]:
    """
    Hub listener: forwards new-booking notifications to the admin inbox.
    Inside the event loop the SMTP exchange runs in a worker thread and the
    task is returned; outside it the mail is sent before returning.
    """
    subject = f"New booking: {notification.service} on {notification.date.isoformat()}"
    body = (
        f"{notification.message}\n\n"
        f"Service: {notification.service}\n"
        f"Date: {notification.date.isoformat()}\n"
        f"Time: {notification.time_slot}\n"
        f"Booking ID: {notification.booking_id}\n"
    )
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        send_email(subject, body)
        return None

    task = loop.create_task(asyncio.to_thread(send_email, subject, body))
    _pending_emails.add(task)
    task.add_done_callback(_pending_emails.discard)
    return task


async def flush_emails() -> None:
    """Waits for admin e-mails that are still being sent."""
    if _pending_emails:
        await asyncio.gather(*list(_pending_emails), return_exceptions=True)
