"""
Notification API Endpoints

Provides REST endpoints for:
- Sending a notification to one user or to everyone (user_id NULL)
- Listing a user's notifications (own + global)
- Marking a notification as read
"""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import or_, select, update

from api.dependencies import SessionDep
from api.responses import failure, store_errors, success
from database.models import Notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["notifications"])


class SendNotificationRequest(BaseModel):
    user_id: Optional[int] = None
    message: str = Field(..., min_length=1)
    type: Optional[str] = None


class BroadcastNotificationRequest(BaseModel):
    message: Optional[str] = None
    type: Optional[str] = None


@router.post("/send-notification")
@store_errors("Failed to send notification")
async def send_notification(request: SendNotificationRequest, session: SessionDep):
    notification = Notification(
        user_id=request.user_id,
        message=request.message,
        type=request.type or "success",
    )
    session.add(notification)
    await session.commit()
    logger.info("Notification sent", extra={"user_id": request.user_id})
    return success(rowid=notification.id)


@router.post("/notifications/send-all")
@store_errors("Failed to send notification.")
async def broadcast_notification(request: BroadcastNotificationRequest, session: SessionDep):
    if not request.message:
        return failure("Message is required")

    notification = Notification(user_id=None, message=request.message, type=request.type or "info")
    session.add(notification)
    await session.commit()
    logger.info(f"Global notification sent (id={notification.id})")
    return success(notificationId=notification.id, message="Notification sent to all users.")


@router.get("/notifications/{user_id}")
@router.get("/notificationss/{user_id}", include_in_schema=False)
@store_errors("Failed to fetch notifications")
async def list_user_notifications(user_id: str, session: SessionDep):
    """User-specific and global notifications, newest first."""
    try:
        parsed_user_id = int(user_id)
    except ValueError:
        return JSONResponse(status_code=400, content=failure("Invalid user ID"))

    result = await session.execute(
        select(Notification)
        .where(or_(Notification.user_id == parsed_user_id, Notification.user_id.is_(None)))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    notifications = [
        {
            "id": n.id,
            "user_id": n.user_id,
            "message": n.message,
            "type": n.type,
            "is_read": int(n.is_read),
            "created_at": n.created_at.isoformat() if n.created_at else None,
        }
        for n in result.scalars().all()
    ]
    return success(notifications=notifications)


@router.patch("/notifications/{notification_id}/read")
@store_errors("Failed to mark as read")
async def mark_notification_read(notification_id: int, session: SessionDep):
    result = await session.execute(
        update(Notification).where(Notification.id == notification_id).values(is_read=True)
    )
    await session.commit()
    return {"success": result.rowcount > 0}
