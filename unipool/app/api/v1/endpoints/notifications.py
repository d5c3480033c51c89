"""
Notification API Endpoints.

In-app notifications about bookings and rides.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.app.db.session import get_db
from unipool.app.core.dependencies import get_current_user
from unipool.app.core.exceptions import ResourceNotFoundError
from unipool.app.models.user import User
from unipool.app.schemas.common import Envelope
from unipool.app.schemas.notification import NotificationResponse
from unipool.app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=Envelope[List[NotificationResponse]])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List current user's notifications, newest first."""
    notifications = await NotificationService.list_for_user(db, current_user.id, unread_only, limit)
    return Envelope(data=[NotificationResponse.model_validate(n) for n in notifications])


@router.patch("/read-all", response_model=Envelope[dict])
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark all notifications as read."""
    count = await NotificationService.mark_all_read(db, current_user.id)
    await db.commit()
    return Envelope(message="All notifications marked as read", data={"count": count})


@router.patch("/{notification_id}/read", response_model=Envelope[None])
async def mark_notification_read(
    notification_id: int = Path(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a specific notification as read."""
    success = await NotificationService.mark_read(db, notification_id, current_user.id)
    if not success:
        raise ResourceNotFoundError("Notification", notification_id)

    await db.commit()
    return Envelope(message="Notification marked as read")
