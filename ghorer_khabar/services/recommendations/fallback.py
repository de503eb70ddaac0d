"""
Popularity fallback.

Used whenever personalized recommendations are unavailable. Items are
ranked by stored rating and popularity counters; scores are the rating
normalized to 0..1 (0.5 for unrated items).
"""

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.models import Kitchen, MenuItem, SubscriptionPlan

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "dishes": 12,
    "kitchens": 8,
    "subscriptions": 6,
}


def _score(rating) -> float:
    return round((rating or 0) / 5.0, 4) or 0.5


def _serving_kitchens():
    return (
        Kitchen.is_active.is_(True),
        Kitchen.is_open.is_(True),
        Kitchen.is_verified.is_(True),
    )


async def popular_dishes(
    db: AsyncSession,
    limit: int = DEFAULT_LIMITS["dishes"],
    exclude_ids: Iterable[int] = (),
) -> list[dict]:
    """Top rated available dishes from kitchens that are currently serving."""
    serving = select(Kitchen.id).where(Kitchen.seller_id == MenuItem.chef_id, *_serving_kitchens())

    stmt = (
        select(MenuItem)
        .where(MenuItem.is_available.is_(True), serving.exists())
        .order_by(MenuItem.rating.desc(), MenuItem.review_count.desc(), MenuItem.created_at.desc())
        .limit(limit)
    )
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(MenuItem.id.notin_(exclude_ids))

    dishes = (await db.execute(stmt)).scalars().all()

    kitchen_names = {}
    if dishes:
        rows = await db.execute(
            select(Kitchen.seller_id, Kitchen.name)
            .where(Kitchen.seller_id.in_({d.chef_id for d in dishes}), *_serving_kitchens())
            .order_by(Kitchen.id)
        )
        for seller_id, name in rows.all():
            kitchen_names.setdefault(seller_id, name)

    return [
        {
            "item_id": dish.id,
            "dish_name": dish.name,
            "price": float(dish.price),
            "rating": dish.rating or 0,
            "kitchen_name": kitchen_names.get(dish.chef_id, "Unknown Kitchen"),
            "image_url": dish.images[0].image_url if dish.images else "/placeholder-dish.jpg",
            "reason": "Popular choice - Top rated dish",
            "score": _score(dish.rating),
        }
        for dish in dishes
    ]


async def popular_kitchens(
    db: AsyncSession,
    limit: int = DEFAULT_LIMITS["kitchens"],
    exclude_ids: Iterable[int] = (),
) -> list[dict]:
    """Top rated verified kitchens; open kitchens score higher."""
    stmt = (
        select(Kitchen)
        .where(Kitchen.is_active.is_(True), Kitchen.is_verified.is_(True))
        .order_by(Kitchen.rating.desc(), Kitchen.review_count.desc(), Kitchen.total_orders.desc())
        .limit(limit)
    )
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(Kitchen.id.notin_(exclude_ids))

    kitchens = (await db.execute(stmt)).scalars().all()

    return [
        {
            "item_id": kitchen.id,
            "kitchen_name": kitchen.name,
            "rating": kitchen.rating or 0,
            "review_count": kitchen.review_count or 0,
            "cover_image": kitchen.cover_image or "/placeholder-kitchen.jpg",
            "is_open": bool(kitchen.is_open),
            "distance_km": None,
            "reason": (
                "Top-rated kitchen in your area" if kitchen.is_open
                else "Currently closed - Recommended for later"
            ),
            "score": round(_score(kitchen.rating) * (1.2 if kitchen.is_open else 0.8), 4),
        }
        for kitchen in kitchens
    ]


async def popular_subscriptions(
    db: AsyncSession,
    limit: int = DEFAULT_LIMITS["subscriptions"],
    exclude_ids: Iterable[int] = (),
) -> list[dict]:
    """Most subscribed active plans from serving kitchens."""
    stmt = (
        select(SubscriptionPlan)
        .join(Kitchen, SubscriptionPlan.kitchen_id == Kitchen.id)
        .where(SubscriptionPlan.is_active.is_(True), *_serving_kitchens())
        .order_by(
            SubscriptionPlan.subscriber_count.desc(),
            SubscriptionPlan.rating.desc(),
            SubscriptionPlan.monthly_revenue.desc(),
        )
        .limit(limit)
    )
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(SubscriptionPlan.id.notin_(exclude_ids))

    plans = (await db.execute(stmt)).scalars().all()

    return [
        {
            "item_id": plan.id,
            "plan_name": plan.name,
            "description": plan.description,
            "price": float(plan.price),
            "meals_per_day": plan.meals_per_day or 1,
            "servings_per_meal": plan.servings_per_meal or 1,
            "rating": plan.rating or 0,
            "image_url": plan.cover_image or "/placeholder-plan.jpg",
            "kitchen_name": plan.kitchen.name if plan.kitchen else "Unknown Kitchen",
            "reason": "Popular subscription plan",
            "score": _score(plan.rating),
        }
        for plan in plans
    ]


FALLBACKS = {
    "dishes": popular_dishes,
    "kitchens": popular_kitchens,
    "subscriptions": popular_subscriptions,
}
