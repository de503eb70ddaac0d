"""
Chef (Seller) Endpoints

Everything a seller does for their kitchen:
- Onboarding form submission and status
- KRI score breakdown
- Open/closed switch and the kitchen notification feed
- Menu management
- Subscription plans and incoming subscription requests
- Order status updates
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import require_seller
from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.database import get_db
from ghorer_khabar.models import (
    Address,
    Ingredient,
    Kitchen,
    MenuItem,
    MenuItemImage,
    NotificationType,
    Order,
    OrderItem,
    OrderStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserSubscription,
)
from ghorer_khabar.routers.addresses import geocode_into, has_default_address
from ghorer_khabar.schemas import (
    ErrorResponse,
    KitchenStatusUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    NotificationResponse,
    OnboardingRequest,
    OnboardingResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    SubscriptionRejectRequest,
    SubscriptionResponse,
)
from ghorer_khabar.services import onboarding, orders as order_service, subscriptions
from ghorer_khabar.services.geo import BaseGeoService, get_geo_service
from ghorer_khabar.services.kri import calculate_kri, load_kri_inputs, update_kri_score
from ghorer_khabar.services.notifications import (
    BaseNotificationService,
    get_notification_service,
    normalize_phone,
)
from ghorer_khabar.services.notifications.base import NotificationResult
from ghorer_khabar.services.notifications.inbox import (
    create_notification,
    list_notifications,
    mark_all_read,
    notify_admins,
    notify_order_status_change,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/chef",
    tags=["Chef"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


# =============================================================================
# HELPERS
# =============================================================================

async def get_seller_kitchen(db: AsyncSession, seller: User) -> Optional[Kitchen]:
    result = await db.execute(select(Kitchen).where(Kitchen.seller_id == seller.id).limit(1))
    return result.scalar_one_or_none()


async def _require_kitchen(db: AsyncSession, seller: User) -> Kitchen:
    kitchen = await get_seller_kitchen(db, seller)
    if kitchen is None:
        raise HTTPException(status_code=404, detail="Kitchen not found. Complete onboarding first.")
    return kitchen


async def deliver_quietly(send: Awaitable[NotificationResult], what: str) -> None:
    """Await a notification; a failure is logged and never reaches the caller."""
    try:
        result = await send
    except Exception:
        logger.exception(f"Failed to send {what}")
        return
    if not result.success:
        logger.warning(f"Failed to send {what}: {result.error_message}")


def _schedule_item_ids(schedule: dict) -> set[int]:
    return {item_id for slots in schedule.values() for item_id in slots.values()}


def _serialize_schedule(schedule: dict) -> dict:
    return {
        day: {getattr(slot, "value", slot): item_id for slot, item_id in slots.items()}
        for day, slots in schedule.items()
    }


async def _validate_schedule(db: AsyncSession, seller: User, schedule: dict) -> None:
    wanted = _schedule_item_ids(schedule)
    if not wanted:
        return
    result = await db.execute(
        select(MenuItem.id).where(MenuItem.id.in_(wanted), MenuItem.chef_id == seller.id)
    )
    foreign = sorted(wanted - set(result.scalars().all()))
    if foreign:
        raise HTTPException(
            status_code=400,
            detail=f"Weekly schedule references menu items that are not yours: {foreign}",
        )


# =============================================================================
# ONBOARDING
# =============================================================================

@router.post(
    "/onboarding",
    response_model=OnboardingResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def submit_onboarding(
    data: OnboardingRequest,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
    geo_service: BaseGeoService = Depends(get_geo_service),
) -> OnboardingResponse:
    """
    Submit (or resubmit after rejection) the kitchen onboarding form.

    Creates the kitchen and its kitchen address; the address becomes the
    seller's default when they have none. The contact phone is stored in
    E.164 form.
    """
    phone = normalize_phone(data.phone)
    if data.phone and phone is None:
        raise HTTPException(status_code=400, detail="Phone must be a Bangladeshi mobile number")

    kitchen = await get_seller_kitchen(db, seller)
    if kitchen is None:
        kitchen = Kitchen(seller_id=seller.id, name=data.kitchen_name)
        db.add(kitchen)

    try:
        onboarding.submit(kitchen)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    kitchen.name = data.kitchen_name
    kitchen.description = data.description
    kitchen.cover_image = data.cover_image
    kitchen.nid_name = data.nid_name
    kitchen.nid_front_image = data.nid_front_image
    kitchen.nid_back_image = data.nid_back_image

    address = kitchen.address
    if address is None:
        address = Address(
            user_id=seller.id,
            label="Kitchen",
            is_kitchen_address=True,
            is_default=not await has_default_address(db, seller.id),
        )
        kitchen.address = address
    address.address = data.address
    address.zone = data.zone
    address.latitude = data.latitude
    address.longitude = data.longitude
    await geocode_into(address, geo_service)

    if phone:
        seller.phone = phone

    await db.flush()
    notify_admins(
        db,
        title="New Kitchen Application",
        message=f"{kitchen.name} submitted onboarding details for verification",
        action_url=f"/admin/kitchens/{kitchen.id}",
    )
    await db.commit()

    logger.info(f"Kitchen #{kitchen.id} submitted onboarding (seller #{seller.id})")
    return OnboardingResponse(
        kitchen_id=kitchen.id,
        state=onboarding.onboarding_state(kitchen).value,
        message="Onboarding submitted. Your kitchen is pending verification.",
    )


@router.get("/onboarding")
async def onboarding_status(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> dict:
    kitchen = await get_seller_kitchen(db, seller)
    if kitchen is None:
        return {"kitchen_id": None, "state": onboarding.OnboardingState.UNSUBMITTED.value}
    return {
        "kitchen_id": kitchen.id,
        "state": onboarding.onboarding_state(kitchen).value,
        "rejection_reason": kitchen.rejection_reason,
    }


@router.get("/kri")
async def kri_breakdown(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Live KRI score with its component breakdown; the stored score is not touched."""
    kitchen = await _require_kitchen(db, seller)
    result = calculate_kri(await load_kri_inputs(db, kitchen))
    return {"kitchen_id": kitchen.id, **result.to_dict()}


# =============================================================================
# KITCHEN STATUS & NOTIFICATIONS
# =============================================================================

@router.patch("/kitchen")
async def set_kitchen_open(
    data: KitchenStatusUpdate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Open or close the kitchen for new orders."""
    kitchen = await _require_kitchen(db, seller)
    kitchen.is_open = data.is_open
    await db.commit()

    logger.info(f"Kitchen #{kitchen.id} is now {'open' if kitchen.is_open else 'closed'}")
    return {"success": True, "kitchen_id": kitchen.id, "is_open": kitchen.is_open}


@router.get("/notifications", response_model=list[NotificationResponse])
async def kitchen_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    """The kitchen's feed: new orders, verification decisions."""
    kitchen = await _require_kitchen(db, seller)
    feed = await list_notifications(
        db, kitchen_id=kitchen.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return [NotificationResponse.model_validate(n) for n in feed]


@router.post("/notifications/mark-all-read")
async def kitchen_mark_all_read(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> dict:
    kitchen = await _require_kitchen(db, seller)
    updated = await mark_all_read(db, kitchen_id=kitchen.id)
    await db.commit()
    return {"success": True, "updated": updated}


# =============================================================================
# MENU
# =============================================================================

async def _get_own_item(db: AsyncSession, item_id: int, seller: User) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if not item or item.chef_id != seller.id:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


@router.get("/menu", response_model=list[MenuItemResponse])
async def list_menu(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    await _require_kitchen(db, seller)
    result = await db.execute(
        select(MenuItem).where(MenuItem.chef_id == seller.id).order_by(MenuItem.id)
    )
    return [MenuItemResponse.model_validate(i) for i in result.scalars().all()]


@router.post("/menu", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(
    data: MenuItemCreate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Add a dish with its images and ingredients."""
    await _require_kitchen(db, seller)
    item = MenuItem(
        chef_id=seller.id,
        name=data.name,
        description=data.description,
        category=data.category,
        price=data.price,
        prep_time=data.prep_time,
        spice_level=data.spice_level,
        is_available=data.is_available,
        images=[MenuItemImage(image_url=url, position=i) for i, url in enumerate(data.images)],
        ingredients=[Ingredient(**ing.model_dump()) for ing in data.ingredients],
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item #{item.id} '{item.name}' created by seller #{seller.id}")
    return MenuItemResponse.model_validate(item)


@router.patch("/menu/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: int,
    data: MenuItemUpdate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    await _require_kitchen(db, seller)
    item = await _get_own_item(db, item_id, seller)
    changes = data.model_dump(exclude_unset=True, exclude={"images", "ingredients"})

    for field, value in changes.items():
        if value is None:
            continue
        setattr(item, field, value)

    if data.images is not None:
        item.images = [MenuItemImage(image_url=url, position=i) for i, url in enumerate(data.images)]
    if data.ingredients is not None:
        item.ingredients = [Ingredient(**ing.model_dump()) for ing in data.ingredients]

    await db.commit()
    await db.refresh(item)
    return MenuItemResponse.model_validate(item)


@router.delete("/menu/{item_id}")
async def delete_menu_item(
    item_id: int,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete a dish; dishes that were ever ordered are only marked unavailable."""
    await _require_kitchen(db, seller)
    item = await _get_own_item(db, item_id, seller)

    ordered = await db.execute(select(OrderItem.id).where(OrderItem.menu_item_id == item.id).limit(1))
    if ordered.scalar_one_or_none() is not None:
        item.is_available = False
        await db.commit()
        return {"success": True, "archived": True, "message": "Menu item has orders and was made unavailable"}

    await db.delete(item)
    await db.commit()
    logger.info(f"Menu item #{item_id} deleted by seller #{seller.id}")
    return {"success": True, "archived": False, "message": "Menu item deleted"}


# =============================================================================
# SUBSCRIPTION REQUESTS
# =============================================================================

async def _get_kitchen_request(db: AsyncSession, request_id: int, kitchen: Kitchen) -> UserSubscription:
    subscription = await db.get(UserSubscription, request_id)
    if not subscription or subscription.kitchen_id != kitchen.id:
        raise HTTPException(status_code=404, detail="Subscription request not found")
    return subscription


@router.get("/subscriptions/requests", response_model=list[SubscriptionResponse])
async def list_subscription_requests(
    status: Optional[str] = Query(None),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> list[SubscriptionResponse]:
    """Subscription requests for the seller's kitchen, newest first."""
    kitchen = await _require_kitchen(db, seller)
    query = select(UserSubscription).where(UserSubscription.kitchen_id == kitchen.id)

    if status:
        try:
            query = query.where(UserSubscription.status == SubscriptionStatus(status.upper()))
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in SubscriptionStatus]}",
            )

    result = await db.execute(
        query.order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
    )
    return [SubscriptionResponse.model_validate(s) for s in result.scalars().all()]


@router.patch(
    "/subscriptions/requests/{request_id}/approve",
    response_model=SubscriptionResponse,
    responses={400: {"model": ErrorResponse}},
)
async def approve_subscription_request(
    request_id: int,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> SubscriptionResponse:
    kitchen = await _require_kitchen(db, seller)
    subscription = await _get_kitchen_request(db, request_id, kitchen)

    try:
        subscriptions.approve(subscription)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    plan = subscription.plan
    plan.subscriber_count = (plan.subscriber_count or 0) + 1
    plan.monthly_revenue = round((plan.monthly_revenue or 0) + subscription.monthly_price, 2)

    create_notification(
        db,
        title="Subscription Approved",
        message=f"{kitchen.name} approved your {plan.name} subscription",
        type=NotificationType.SUCCESS,
        user_id=subscription.user_id,
        action_url="/subscriptions",
    )
    await db.commit()
    await db.refresh(subscription)
    logger.info(f"Subscription #{subscription.id} approved by kitchen #{kitchen.id}")

    buyer = subscription.user
    if buyer and buyer.email:
        await deliver_quietly(
            notifier.send_subscription_approved(
                to_email=buyer.email,
                customer_name=buyer.name,
                plan_name=plan.name,
                kitchen_name=kitchen.name,
                start_date=subscription.start_date.isoformat(),
                total_amount=subscription.total_amount,
            ),
            f"approval email for subscription #{subscription.id}",
        )

    return SubscriptionResponse.model_validate(subscription)


@router.patch(
    "/subscriptions/requests/{request_id}/reject",
    response_model=SubscriptionResponse,
    responses={400: {"model": ErrorResponse}},
)
async def reject_subscription_request(
    request_id: int,
    data: Optional[SubscriptionRejectRequest] = Body(None),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> SubscriptionResponse:
    kitchen = await _require_kitchen(db, seller)
    subscription = await _get_kitchen_request(db, request_id, kitchen)

    try:
        subscriptions.reject(subscription, reason=data.reason if data else None)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    plan = subscription.plan
    create_notification(
        db,
        title="Subscription Declined",
        message=f"{kitchen.name} declined your {plan.name} subscription: {subscription.cancellation_reason}",
        type=NotificationType.WARNING,
        user_id=subscription.user_id,
        action_url="/subscriptions",
    )
    await db.commit()
    await db.refresh(subscription)
    logger.info(f"Subscription #{subscription.id} rejected by kitchen #{kitchen.id}")

    buyer = subscription.user
    if buyer and buyer.email:
        await deliver_quietly(
            notifier.send_subscription_rejected(
                to_email=buyer.email,
                customer_name=buyer.name,
                plan_name=plan.name,
                kitchen_name=kitchen.name,
                reason=subscription.cancellation_reason,
            ),
            f"rejection email for subscription #{subscription.id}",
        )

    return SubscriptionResponse.model_validate(subscription)


# =============================================================================
# SUBSCRIPTION PLANS
# =============================================================================

@router.get("/subscriptions", response_model=list[PlanResponse])
async def list_plans(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> list[PlanResponse]:
    kitchen = await _require_kitchen(db, seller)
    result = await db.execute(
        select(SubscriptionPlan).where(SubscriptionPlan.kitchen_id == kitchen.id).order_by(SubscriptionPlan.id)
    )
    return [PlanResponse.model_validate(p) for p in result.scalars().all()]


@router.post(
    "/subscriptions",
    response_model=PlanResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def create_plan(
    data: PlanCreate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> PlanResponse:
    """Create a plan; its weekly schedule may only use the seller's own dishes."""
    kitchen = await _require_kitchen(db, seller)
    await _validate_schedule(db, seller, data.weekly_schedule)

    plan = SubscriptionPlan(
        kitchen_id=kitchen.id,
        name=data.name,
        description=data.description,
        price=data.price,
        meals_per_day=data.meals_per_day,
        servings_per_meal=data.servings_per_meal,
        weekly_schedule=_serialize_schedule(data.weekly_schedule),
        cover_image=data.cover_image,
        is_active=data.is_active,
        subscriber_count=0,
        monthly_revenue=0.0,
    )
    db.add(plan)
    await db.commit()
    await db.refresh(plan)

    logger.info(f"Plan #{plan.id} '{plan.name}' created for kitchen #{kitchen.id}")
    return PlanResponse.model_validate(plan)


@router.patch(
    "/subscriptions/{plan_id}",
    response_model=PlanResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_plan(
    plan_id: int,
    data: PlanUpdate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> PlanResponse:
    kitchen = await _require_kitchen(db, seller)
    plan = await db.get(SubscriptionPlan, plan_id)
    if not plan or plan.kitchen_id != kitchen.id:
        raise HTTPException(status_code=404, detail="Subscription plan not found")

    changes = data.model_dump(exclude_unset=True, exclude={"weekly_schedule"})
    for field, value in changes.items():
        if value is None:
            continue
        setattr(plan, field, value)

    if data.weekly_schedule is not None:
        await _validate_schedule(db, seller, data.weekly_schedule)
        plan.weekly_schedule = _serialize_schedule(data.weekly_schedule)

    await db.commit()
    await db.refresh(plan)
    return PlanResponse.model_validate(plan)


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse)
async def list_kitchen_orders(
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    kitchen = await _require_kitchen(db, seller)
    query = select(Order).where(Order.kitchen_id == kitchen.id)
    count_query = select(func.count(Order.id)).where(Order.kitchen_id == kitchen.id)

    if status:
        try:
            status_enum = OrderStatus(status.upper())
            query = query.where(Order.status == status_enum)
            count_query = count_query.where(Order.status == status_enum)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}",
            )

    total = (await db.execute(count_query)).scalar() or 0
    orders = (await db.execute(
        query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(take)
    )).scalars().all()

    return OrderListResponse(
        total=total,
        skip=skip,
        take=take,
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


@router.patch(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """
    Advance an order through the kitchen workflow.

    Completing an order counts it toward the kitchen's total and refreshes
    its KRI score.
    """
    kitchen = await _require_kitchen(db, seller)
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    if order.kitchen_id != kitchen.id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    try:
        order_service.transition_order(order, data.status, now=datetime.now(timezone.utc))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    if data.status == OrderStatus.COMPLETED:
        kitchen.total_orders = (kitchen.total_orders or 0) + 1
        await db.flush()
        await update_kri_score(db, kitchen)

    notify_order_status_change(db, order.user_id, order.id, data.status)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order.id} -> {order.status.value} (kitchen #{kitchen.id})")
    return OrderResponse.model_validate(order)
