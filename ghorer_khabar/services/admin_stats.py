"""
Admin dashboard figures.

Revenue counts COMPLETED orders only. The weekly series covers the last
four 7-day windows ending now, oldest first.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.models import (
    Address,
    Kitchen,
    MenuItem,
    Order,
    OrderStatus,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

WEEKS = 4


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _revenue_expr():
    return func.coalesce(
        func.sum(case((Order.status == OrderStatus.COMPLETED, Order.total), else_=0)),
        0,
    )


async def status_breakdown(db: AsyncSession) -> dict[str, int]:
    """Order count per status; every status is present."""
    rows = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in rows.all():
        counts[status.value] = count
    return counts


async def weekly_series(db: AsyncSession, now: Optional[datetime] = None) -> list[dict]:
    now = _naive_utc(now or datetime.now(timezone.utc))
    start = now - timedelta(days=7 * WEEKS)

    orders = (await db.execute(
        select(Order.created_at, Order.status, Order.total).where(Order.created_at >= start)
    )).all()
    users = (await db.execute(
        select(User.created_at).where(User.created_at >= start, User.role != UserRole.ADMIN)
    )).scalars().all()

    series = []
    for week in range(WEEKS):
        week_start = start + timedelta(days=7 * week)
        week_end = week_start + timedelta(days=7)

        def in_week(ts):
            ts = _naive_utc(ts)
            return ts is not None and week_start <= ts < week_end

        week_orders = [o for o in orders if in_week(o.created_at)]
        completed = [o for o in week_orders if o.status == OrderStatus.COMPLETED]
        series.append({
            "name": f"Week {week + 1}",
            "users": len([u for u in users if in_week(u)]),
            "orders": len(week_orders),
            "completed_orders": len(completed),
            "revenue": round(sum(o.total for o in completed), 2),
        })

    return series


async def top_kitchens(db: AsyncSession, limit: int = 10) -> list[dict]:
    revenue = _revenue_expr().label("revenue")
    rows = await db.execute(
        select(Kitchen, revenue, func.count(Order.id).label("order_count"))
        .outerjoin(Order, Order.kitchen_id == Kitchen.id)
        .group_by(Kitchen.id)
        .order_by(revenue.desc(), Kitchen.id)
        .limit(limit)
    )
    return [
        {
            "kitchen_id": kitchen.id,
            "name": kitchen.name,
            "zone": kitchen.address.zone if kitchen.address else kitchen.area,
            "total_orders": order_count,
            "revenue": round(float(revenue_value), 2),
            "rating": kitchen.rating,
            "kri_score": kitchen.kri_score,
            "is_verified": kitchen.is_verified,
            "is_active": kitchen.is_active,
        }
        for kitchen, revenue_value, order_count in rows.all()
    ]


async def top_menu_items(db: AsyncSession, limit: int = 10) -> list[dict]:
    items = (await db.execute(
        select(MenuItem).order_by(MenuItem.review_count.desc(), MenuItem.rating.desc()).limit(limit)
    )).scalars().all()
    return [
        {
            "id": item.id,
            "name": item.name,
            "price": item.price,
            "rating": item.rating,
            "review_count": item.review_count,
        }
        for item in items
    ]


async def recent_orders(db: AsyncSession, limit: int = 5) -> list[dict]:
    rows = await db.execute(
        select(Order, User.name, User.email)
        .join(User, Order.user_id == User.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    )
    return [
        {
            "order_id": order.id,
            "kitchen": order.kitchen.name if order.kitchen else None,
            "customer": name or email,
            "status": order.status.value,
            "delivery_date": order.delivery_date.isoformat() if order.delivery_date else None,
            "delivery_slot": order.delivery_time_slot.value if order.delivery_time_slot else None,
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "platform_fee": order.platform_fee,
            "total": order.total,
            "created_at": order.created_at.isoformat() if order.created_at else None,
        }
        for order, name, email in rows.all()
    ]


async def dashboard_stats(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Everything the admin dashboard shows."""
    total_users = await db.scalar(select(func.count(User.id)))
    total_sellers = await db.scalar(select(func.count(User.id)).where(User.role == UserRole.SELLER))
    active_sellers = await db.scalar(
        select(func.count(Kitchen.id)).where(
            Kitchen.is_verified.is_(True), Kitchen.onboarding_completed.is_(True)
        )
    )
    pending_onboarding = await db.scalar(
        select(func.count(Kitchen.id)).where(
            Kitchen.onboarding_completed.is_(True),
            Kitchen.is_verified.is_(False),
            Kitchen.rejected_at.is_(None),
        )
    )
    total_orders = await db.scalar(select(func.count(Order.id)))
    total_revenue = await db.scalar(
        select(func.coalesce(func.sum(Order.total), 0)).where(Order.status == OrderStatus.COMPLETED)
    )

    return {
        "total_users": total_users or 0,
        "total_sellers": total_sellers or 0,
        "active_sellers": active_sellers or 0,
        "total_orders": total_orders or 0,
        "total_revenue": round(float(total_revenue or 0), 2),
        "pending_onboarding": pending_onboarding or 0,
        "order_status_breakdown": await status_breakdown(db),
        "kitchen_revenue": await top_kitchens(db),
        "top_menu_items": await top_menu_items(db),
        "recent_orders": await recent_orders(db),
        "weekly_data": await weekly_series(db, now),
    }


async def report_data(db: AsyncSession) -> dict:
    """Inputs for the Excel export: summary, status counts, orders, kitchens."""
    total_buyers = await db.scalar(select(func.count(User.id)).where(User.role == UserRole.BUYER))
    total_sellers = await db.scalar(select(func.count(User.id)).where(User.role == UserRole.SELLER))
    total_orders = await db.scalar(select(func.count(Order.id))) or 0
    total_revenue = float(await db.scalar(
        select(func.coalesce(func.sum(Order.total), 0)).where(Order.status == OrderStatus.COMPLETED)
    ) or 0)
    total_addresses = await db.scalar(select(func.count(Address.id)))

    summary = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "total_users": total_buyers or 0,
        "total_sellers": total_sellers or 0,
        "total_orders": total_orders,
        "total_revenue": round(total_revenue, 2),
        "average_order_value": round(total_revenue / max(total_orders, 1), 2),
        "total_addresses": total_addresses or 0,
    }

    return {
        "summary": summary,
        "status_counts": await status_breakdown(db),
        "orders": await recent_orders(db, limit=100),
        "kitchens": await top_kitchens(db, limit=50),
    }
