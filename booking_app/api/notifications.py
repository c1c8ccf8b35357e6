from fastapi import APIRouter, Depends

from booking_app.api.dependencies import get_notification_service
from booking_app.core.errors import NotFoundError
from booking_app.core.security import require_admin
from booking_app.models.db_models import User
from booking_app.services.notification_service import NotificationService

router = APIRouter()


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    admin: User = Depends(require_admin),
    notifications: NotificationService = Depends(get_notification_service),
):
    items = await notifications.list_notifications(unread_only=unread_only)
    return {
        "notifications": [n.to_record() for n in items],
        "unreadCount": await notifications.unread_count(),
    }


@router.patch("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    admin: User = Depends(require_admin),
    notifications: NotificationService = Depends(get_notification_service),
):
    notification = await notifications.mark_read(notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    return {"notification": notification.to_record()}


@router.post("/notifications/read-all")
async def mark_all_notifications_read(
    admin: User = Depends(require_admin),
    notifications: NotificationService = Depends(get_notification_service),
):
    return {"updated": await notifications.mark_all_read()}


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: str,
    admin: User = Depends(require_admin),
    notifications: NotificationService = Depends(get_notification_service),
):
    await notifications.delete(notification_id)
    return {"success": True}
