"""
Buyer Notification Feed

Order status changes and subscription decisions addressed to the caller.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import User
from ghorer_khabar.schemas import ErrorResponse, NotificationResponse
from ghorer_khabar.services.notifications.inbox import list_notifications, mark_all_read

router = APIRouter(
    prefix="/api/notifications",
    tags=["Notifications"],
    responses={401: {"model": ErrorResponse}},
)


@router.get("", response_model=list[NotificationResponse])
async def my_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    feed = await list_notifications(
        db, user_id=user.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return [NotificationResponse.model_validate(n) for n in feed]


@router.post("/mark-all-read")
async def my_mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    updated = await mark_all_read(db, user_id=user.id)
    await db.commit()
    return {"success": True, "updated": updated}
