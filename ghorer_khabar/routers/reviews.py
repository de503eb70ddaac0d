"""
Review Endpoints

A buyer may review a dish once per purchase, and only from a COMPLETED
order that contains it. New reviews refresh the dish rating and the
kitchen's rating and KRI score.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import (
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Review,
    User,
)
from ghorer_khabar.schemas import (
    ErrorResponse,
    ReviewCreate,
    ReviewEligibilityResponse,
    ReviewListResponse,
    ReviewResponse,
)
from ghorer_khabar.services.ratings import refresh_ratings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])

DUPLICATE_REVIEW = "You have already reviewed this item"


async def _unreviewed_order_item(db: AsyncSession, user_id: int, menu_item_id: int) -> Optional[OrderItem]:
    """Oldest completed purchase of the dish the user has not reviewed yet."""
    already_reviewed = (
        select(Review.id)
        .where(Review.order_item_id == OrderItem.id, Review.user_id == user_id)
        .exists()
    )
    result = await db.execute(
        select(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            Order.user_id == user_id,
            Order.status == OrderStatus.COMPLETED,
            OrderItem.menu_item_id == menu_item_id,
            ~already_reviewed,
        )
        .order_by(Order.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    menu_item_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    item = await db.get(MenuItem, menu_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")

    reviews = (await db.execute(
        select(Review).where(Review.menu_item_id == menu_item_id).order_by(Review.created_at.desc(), Review.id.desc())
    )).scalars().all()

    return ReviewListResponse(
        menu_item_id=menu_item_id,
        average_rating=item.rating,
        review_count=item.review_count,
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )


@router.get("/check-eligibility", response_model=ReviewEligibilityResponse)
async def check_eligibility(
    menu_item_id: int = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewEligibilityResponse:
    """Whether the caller has a completed, unreviewed purchase of the dish."""
    order_item = await _unreviewed_order_item(db, user.id, menu_item_id)
    if order_item is not None:
        return ReviewEligibilityResponse(eligible=True, order_id=order_item.order_id)

    purchased = await db.execute(
        select(OrderItem.id)
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            Order.user_id == user.id,
            Order.status == OrderStatus.COMPLETED,
            OrderItem.menu_item_id == menu_item_id,
        )
        .limit(1)
    )
    if purchased.scalar_one_or_none() is not None:
        return ReviewEligibilityResponse(eligible=False, reason=DUPLICATE_REVIEW)
    return ReviewEligibilityResponse(
        eligible=False,
        reason="You can review this item after an order containing it is completed",
    )


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_review(
    data: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    order = await db.get(Order, data.order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status != OrderStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="You can only review items from completed orders")

    order_item = next((i for i in order.items if i.menu_item_id == data.menu_item_id), None)
    if order_item is None:
        raise HTTPException(status_code=400, detail="This item is not part of the order")

    duplicate = await db.execute(
        select(Review.id).where(Review.user_id == user.id, Review.order_item_id == order_item.id)
    )
    if duplicate.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail=DUPLICATE_REVIEW)

    review = Review(
        user_id=user.id,
        menu_item_id=data.menu_item_id,
        order_id=order.id,
        order_item_id=order_item.id,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail=DUPLICATE_REVIEW)

    await refresh_ratings(db, order_item.menu_item)
    await db.commit()
    await db.refresh(review)

    logger.info(f"Review #{review.id} ({review.rating}/5) for menu item #{review.menu_item_id}")
    return ReviewResponse.model_validate(review)
