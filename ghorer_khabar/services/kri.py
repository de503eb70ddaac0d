"""
Kitchen Reliability Index (KRI)

A display-only composite score from 0 to 100:
    - Rating score (0-30): average review rating
    - Fulfillment score (0-25): completion rate, minus up to 5 for cancellations
    - Delivery score (0-20): orders completed on their delivery day
    - Response score (0-15): faster confirmation scores higher
    - Satisfaction score (0-10): share of 4 and 5 star reviews

Kitchens with fewer than 5 orders or fewer than 3 reviews are new chefs:
their score is blended toward a base of 50 and never falls below it.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.models import Kitchen, MenuItem, Order, OrderStatus, Review

logger = logging.getLogger(__name__)

NEW_CHEF_BASE_SCORE = 50
NEW_CHEF_MIN_ORDERS = 5
NEW_CHEF_MIN_REVIEWS = 3
ON_TIME_BUFFER = timedelta(hours=2)


@dataclass
class KRIInputs:
    """Raw kitchen metrics the score is computed from."""
    total_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    on_time_orders: int = 0
    review_ratings: list[int] = field(default_factory=list)
    review_count: Optional[int] = None
    stored_rating: float = 0.0
    stored_delivery_rate: float = 0.0
    response_time_minutes: float = 0.0


@dataclass
class KRIResult:
    kri_score: int
    breakdown: dict
    metrics: dict
    is_new_chef: bool

    def to_dict(self) -> dict:
        return {
            "kri_score": self.kri_score,
            "breakdown": self.breakdown,
            "metrics": self.metrics,
            "is_new_chef": self.is_new_chef,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_on_time(delivery_date: Optional[date], completed_at: Optional[datetime]) -> bool:
    """Completed on the delivery day, allowing a two hour buffer past midnight."""
    if delivery_date is None or completed_at is None:
        return False
    completed = completed_at.replace(tzinfo=None)
    day_start = datetime.combine(delivery_date, time.min)
    day_end = datetime.combine(delivery_date, time.max) + ON_TIME_BUFFER
    return day_start <= completed <= day_end


def calculate_kri(inputs: KRIInputs) -> KRIResult:
    """Compute the KRI score and its breakdown from raw metrics."""
    ratings = inputs.review_ratings
    total = inputs.total_orders

    if ratings:
        average_rating = sum(ratings) / len(ratings)
    else:
        average_rating = inputs.stored_rating or 0.0
    review_count = inputs.review_count if inputs.review_count else len(ratings)

    completion_rate = (inputs.completed_orders / total) * 100 if total else 0.0
    cancellation_rate = (inputs.cancelled_orders / total) * 100 if total else 0.0

    if inputs.completed_orders:
        delivery_rate = (inputs.on_time_orders / inputs.completed_orders) * 100
    else:
        delivery_rate = inputs.stored_delivery_rate or 0.0

    positive = len([r for r in ratings if r >= 4])
    satisfaction_rate = (positive / len(ratings)) * 100 if ratings else 0.0

    rating_score = min((average_rating / 5) * 30, 30)
    fulfillment_score = max(0.0, (completion_rate / 100) * 25 - (cancellation_rate / 100) * 5)
    delivery_score = (delivery_rate / 100) * 20
    response_score = max(0.0, 15 - ((inputs.response_time_minutes or 0) / 60) * 2)
    satisfaction_score = (satisfaction_rate / 100) * 10

    raw_score = _round_half_up(
        rating_score + fulfillment_score + delivery_score + response_score + satisfaction_score
    )

    is_new_chef = total < NEW_CHEF_MIN_ORDERS or review_count < NEW_CHEF_MIN_REVIEWS
    if is_new_chef:
        weight = min(
            (total / NEW_CHEF_MIN_ORDERS) * 0.5 + (review_count / NEW_CHEF_MIN_REVIEWS) * 0.5,
            1.0,
        )
        score = _round_half_up(NEW_CHEF_BASE_SCORE * (1 - weight) + raw_score * weight)
        score = max(NEW_CHEF_BASE_SCORE, score)
    else:
        score = raw_score

    score = max(0, min(100, score))

    return KRIResult(
        kri_score=score,
        breakdown={
            "rating_score": round(rating_score, 2),
            "fulfillment_score": round(fulfillment_score, 2),
            "delivery_score": round(delivery_score, 2),
            "response_score": round(response_score, 2),
            "satisfaction_score": round(satisfaction_score, 2),
        },
        metrics={
            "average_rating": round(average_rating, 2),
            "total_orders": total,
            "completed_orders": inputs.completed_orders,
            "cancelled_orders": inputs.cancelled_orders,
            "completion_rate": round(completion_rate, 2),
            "on_time_delivery_rate": round(delivery_rate, 2),
            "average_response_time": round(inputs.response_time_minutes or 0, 2),
            "satisfaction_rate": round(satisfaction_rate, 2),
            "review_count": review_count,
        },
        is_new_chef=is_new_chef,
    )


async def load_kri_inputs(db: AsyncSession, kitchen: Kitchen) -> KRIInputs:
    """Gather a kitchen's order and review metrics."""
    result = await db.execute(
        select(Order.status, Order.delivery_date, Order.completed_at, Order.updated_at)
        .where(Order.kitchen_id == kitchen.id)
    )
    orders = result.all()

    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    on_time = [
        o for o in completed
        if is_on_time(o.delivery_date, o.completed_at or o.updated_at)
    ]

    # Reviews attach to dishes, which belong to the seller
    result = await db.execute(
        select(Review.rating)
        .join(MenuItem, Review.menu_item_id == MenuItem.id)
        .where(MenuItem.chef_id == kitchen.seller_id)
    )
    ratings = list(result.scalars().all())

    return KRIInputs(
        total_orders=len(orders),
        completed_orders=len(completed),
        cancelled_orders=len([o for o in orders if o.status == OrderStatus.CANCELLED]),
        on_time_orders=len(on_time),
        review_ratings=ratings,
        review_count=kitchen.review_count,
        stored_rating=kitchen.rating or 0.0,
        stored_delivery_rate=kitchen.delivery_rate or 0.0,
        response_time_minutes=kitchen.response_time or 0,
    )


async def update_kri_score(db: AsyncSession, kitchen: Kitchen) -> KRIResult:
    """
    Recompute and store a kitchen's KRI score.

    The caller owns the transaction; the new score is flushed, not committed.
    """
    inputs = await load_kri_inputs(db, kitchen)
    result = calculate_kri(inputs)
    kitchen.kri_score = result.kri_score
    await db.flush()
    logger.info(f"KRI for kitchen #{kitchen.id}: {result.kri_score} (new chef: {result.is_new_chef})")
    return result
