# Notifications Router
# Lists and acknowledges in-app notifications for the calling user

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from database.config import get_db
from auth.roles import Actor, Permission
from auth.decorators import require_permission
from schemas.notification import NotificationResponse
from services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(Permission.VIEW_NOTIFICATIONS)),
    unread_only: bool = Query(False, description="Only return unread notifications"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Get the caller's notifications, newest first.
    """
    offset = (page - 1) * limit
    notifications = NotificationService(db).list_for_user(actor.actor_id, unread_only, limit, offset)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(Permission.VIEW_NOTIFICATIONS)),
):
    return {"unread_count": NotificationService(db).get_unread_count(actor.actor_id)}


@router.post("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission(Permission.VIEW_NOTIFICATIONS)),
):
    if not NotificationService(db).mark_read(notification_id, actor.actor_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read"}
