"""
In-app notifications.

Rows in the ``notifications`` table addressed to a user, a kitchen, or
(neither set) the admin team. Writers add to the caller's session and
never commit on their own.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.models import Notification, NotificationType, OrderStatus

logger = logging.getLogger(__name__)

ORDER_STATUS_MESSAGES = {
    OrderStatus.CONFIRMED: (NotificationType.SUCCESS, "Order Confirmed", "Order #{id} has been confirmed"),
    OrderStatus.PREPARING: (NotificationType.INFO, "Order Preparing", "Your order #{id} is being prepared"),
    OrderStatus.DELIVERING: (NotificationType.INFO, "Order Delivering", "Order #{id} is out for delivery"),
    OrderStatus.COMPLETED: (NotificationType.SUCCESS, "Order Completed", "Order #{id} has been delivered"),
    OrderStatus.CANCELLED: (NotificationType.WARNING, "Order Cancelled", "Order #{id} was cancelled"),
}


def create_notification(
    db: AsyncSession,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    user_id: Optional[int] = None,
    kitchen_id: Optional[int] = None,
    action_url: Optional[str] = None,
) -> Notification:
    """Stage a notification on the session."""
    notification = Notification(
        user_id=user_id,
        kitchen_id=kitchen_id,
        type=type,
        title=title,
        message=message,
        action_url=action_url,
        is_read=False,
    )
    db.add(notification)
    return notification


def notify_admins(db: AsyncSession, title: str, message: str, action_url: Optional[str] = None) -> Notification:
    return create_notification(db, title, message, user_id=None, kitchen_id=None, action_url=action_url)


def notify_new_order(db: AsyncSession, kitchen_id: int, order_id: int, customer_name: str, total: float) -> Notification:
    return create_notification(
        db,
        title="New Order Received",
        message=f"New order #{order_id} from {customer_name} for ৳{total:,.0f}",
        kitchen_id=kitchen_id,
        action_url=f"/chef/orders/{order_id}",
    )


def notify_order_status_change(db: AsyncSession, user_id: int, order_id: int, status: OrderStatus) -> Optional[Notification]:
    """Tell the buyer about a status change; PENDING produces nothing."""
    entry = ORDER_STATUS_MESSAGES.get(status)
    if entry is None:
        return None
    notification_type, title, template = entry
    return create_notification(
        db,
        title=title,
        message=template.format(id=order_id),
        type=notification_type,
        user_id=user_id,
        action_url=f"/orders/{order_id}",
    )


def _feed_filter(user_id: Optional[int], kitchen_id: Optional[int], admin: bool) -> list:
    if admin:
        return [Notification.user_id.is_(None), Notification.kitchen_id.is_(None)]
    if kitchen_id is not None:
        return [Notification.kitchen_id == kitchen_id]
    if user_id is not None:
        return [Notification.user_id == user_id]
    raise ValueError("A notification feed needs a user, a kitchen or admin=True")


async def list_notifications(
    db: AsyncSession,
    user_id: Optional[int] = None,
    kitchen_id: Optional[int] = None,
    admin: bool = False,
    unread_only: bool = False,
    limit: int = 10,
    offset: int = 0,
) -> list[Notification]:
    """One feed, newest first: the admin broadcasts, a kitchen's, or a user's."""
    query = select(Notification).where(*_feed_filter(user_id, kitchen_id, admin))
    if unread_only:
        query = query.where(Notification.is_read.is_(False))

    result = await db.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def mark_all_read(
    db: AsyncSession,
    user_id: Optional[int] = None,
    kitchen_id: Optional[int] = None,
    admin: bool = False,
) -> int:
    """
    Mark every unread notification of one feed as read.

    With ``admin=True`` only the broadcast notifications (no user, no
    kitchen) are touched. Returns the number of rows updated.
    """
    stmt = update(Notification).where(
        Notification.is_read.is_(False), *_feed_filter(user_id, kitchen_id, admin)
    )
    result = await db.execute(stmt.values(is_read=True))
    logger.debug(f"Marked {result.rowcount} notifications read")
    return result.rowcount
