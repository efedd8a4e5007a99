"""
Notifications Router - the caller's in-app notifications
"""

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from models.user import CurrentUser
from routers.dependencies import get_notification_service
from services.notification_service import NotificationService

notifications_router = APIRouter(prefix="/api/notificacoes", tags=["notificacoes"])


@notifications_router.get("")
async def list_notifications(
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """Latest 50 notifications, newest first."""
    return await notification_service.list_for_user(current_user.id)


@notifications_router.put("/{notification_id}/lida")
async def mark_notification_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    updated = await notification_service.mark_read(notification_id, current_user.id)
    if not updated:
        raise HTTPException(status_code=404, detail="Notificação não encontrada")
    return updated
