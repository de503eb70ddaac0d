"""
Buyer Subscription Endpoints

A buyer requests a plan; the kitchen approves or rejects it from the
chef endpoints.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import (
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserSubscription,
)
from ghorer_khabar.schemas import ErrorResponse, SubscriptionCreate, SubscriptionResponse
from ghorer_khabar.services import subscriptions
from ghorer_khabar.services.notifications.inbox import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.post(
    "",
    response_model=SubscriptionResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def request_subscription(
    data: SubscriptionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SubscriptionResponse:
    """Request a subscription; it stays PENDING until the kitchen decides."""
    plan = await db.get(SubscriptionPlan, data.plan_id)
    if not plan or not plan.is_active:
        raise HTTPException(status_code=404, detail="Subscription plan not found")
    if not plan.kitchen or not plan.kitchen.is_active:
        raise HTTPException(status_code=400, detail="Kitchen is not accepting subscriptions")
    if data.start_date < date.today():
        raise HTTPException(status_code=400, detail="Start date cannot be in the past")

    existing = await db.execute(
        select(UserSubscription.id).where(
            UserSubscription.user_id == user.id,
            UserSubscription.plan_id == plan.id,
            UserSubscription.status.in_([SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE]),
        ).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="You already have a subscription to this plan")

    pricing = subscriptions.quote(plan)
    subscription = UserSubscription(
        user_id=user.id,
        plan_id=plan.id,
        kitchen_id=plan.kitchen_id,
        status=SubscriptionStatus.PENDING,
        start_date=data.start_date,
        delivery_instructions=data.delivery_instructions,
        use_chef_containers=data.use_chef_containers,
        monthly_price=pricing.monthly_price,
        delivery_fee=pricing.delivery_fee,
        discount=pricing.discount,
        total_amount=pricing.total_amount,
    )
    db.add(subscription)

    create_notification(
        db,
        title="New Subscription Request",
        message=f"{user.name or user.email} requested the {plan.name} plan starting {data.start_date.isoformat()}",
        kitchen_id=plan.kitchen_id,
        action_url="/chef/subscriptions",
    )
    await db.commit()
    await db.refresh(subscription)

    logger.info(f"Subscription #{subscription.id} requested: user #{user.id}, plan #{plan.id}")
    return SubscriptionResponse.model_validate(subscription)


@router.get("", response_model=list[SubscriptionResponse])
async def my_subscriptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[SubscriptionResponse]:
    result = await db.execute(
        select(UserSubscription)
        .where(UserSubscription.user_id == user.id)
        .order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
    )
    return [SubscriptionResponse.model_validate(s) for s in result.scalars().all()]
