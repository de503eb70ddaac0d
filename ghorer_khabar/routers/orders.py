"""
Order Endpoints

Checkout, delivery quotes and meal-slot availability for buyers.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user, get_optional_user
from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.database import get_db
from ghorer_khabar.models import (
    Address,
    Kitchen,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    User,
    UserRole,
)
from ghorer_khabar.routers.chef import deliver_quietly
from ghorer_khabar.schemas import (
    DeliveryQuoteResponse,
    ErrorResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    SlotQuery,
    SlotResponse,
    SlotsResponse,
)
from ghorer_khabar.services import orders as order_service
from ghorer_khabar.services.delivery import format_distance, get_delivery_info
from ghorer_khabar.services.notifications import BaseNotificationService, get_notification_service
from ghorer_khabar.services.notifications.inbox import notify_new_order
from ghorer_khabar.services.slots import MEAL_TIME_SLOTS, count_orders_by_slot, evaluate_slots, validate_order

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def parse_id_list(raw: Optional[str], name: str) -> list[int]:
    """Parse ``"1,2,3"`` into ints."""
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be comma-separated integers")


async def _get_kitchen(db: AsyncSession, kitchen_id: int) -> Kitchen:
    kitchen = await db.get(Kitchen, kitchen_id)
    if not kitchen:
        raise HTTPException(status_code=404, detail=f"Kitchen #{kitchen_id} not found")
    return kitchen


# =============================================================================
# DELIVERY QUOTE & SLOTS
# =============================================================================

@router.get("/calculate-delivery", response_model=DeliveryQuoteResponse)
async def calculate_delivery(
    kitchen_id: int = Query(...),
    address_id: Optional[int] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> DeliveryQuoteResponse:
    """
    Delivery distance and fee from a saved address or raw coordinates.

    Missing coordinates on either side yield the flat default fee.
    """
    kitchen = await _get_kitchen(db, kitchen_id)

    if address_id is not None:
        if user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        address = await db.get(Address, address_id)
        if not address or address.user_id != user.id:
            raise HTTPException(status_code=404, detail="Address not found")
        lat, lng = address.latitude, address.longitude

    kitchen_lat, kitchen_lng = kitchen.coordinates
    info = get_delivery_info(lat, lng, kitchen_lat, kitchen_lng)

    return DeliveryQuoteResponse(
        kitchen_id=kitchen.id,
        distance=info.distance,
        formatted_distance=format_distance(info.distance) if info.distance is not None else None,
        charge=info.charge,
        available=info.available,
        error=info.error,
    )


async def _slot_report(
    db: AsyncSession,
    kitchen_id: int,
    delivery_date: Optional[date],
    menu_item_ids: list[int],
) -> SlotsResponse:
    kitchen = await _get_kitchen(db, kitchen_id)
    delivery_date = delivery_date or date.today() + timedelta(days=1)

    items = []
    if menu_item_ids:
        items = (await db.execute(
            select(MenuItem).where(MenuItem.id.in_(menu_item_ids), MenuItem.chef_id == kitchen.seller_id)
        )).scalars().all()

    counts = await count_orders_by_slot(db, kitchen.id, delivery_date)
    slots = evaluate_slots(kitchen, list(items), delivery_date, counts)

    return SlotsResponse(
        kitchen_id=kitchen.id,
        delivery_date=delivery_date,
        slots=[SlotResponse(**s.to_dict()) for s in slots],
    )


@router.get("/available-slots", response_model=SlotsResponse)
async def available_slots(
    kitchen_id: int = Query(...),
    delivery_date: Optional[date] = Query(None, alias="date", description="Defaults to tomorrow"),
    menu_item_ids: Optional[str] = Query(None, description="Comma-separated menu item ids"),
    db: AsyncSession = Depends(get_db),
) -> SlotsResponse:
    return await _slot_report(db, kitchen_id, delivery_date, parse_id_list(menu_item_ids, "menu_item_ids"))


@router.post("/available-slots", response_model=SlotsResponse)
async def available_slots_for_cart(
    query: SlotQuery,
    db: AsyncSession = Depends(get_db),
) -> SlotsResponse:
    return await _slot_report(db, query.kitchen_id, query.delivery_date, query.menu_item_ids)


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> OrderResponse:
    """
    Place an order.

    Every item must come from one kitchen. The delivery fee comes from the
    distance between the kitchen and the delivery address, and the slot
    must pass timing, capacity and prep-time checks.
    """
    logger.info(f"Checkout for user #{user.id}: {len(data.items)} cart lines")

    quantities: dict[int, int] = {}
    for line in data.items:
        quantities[line.menu_item_id] = quantities.get(line.menu_item_id, 0) + line.quantity

    menu_items = {
        item.id: item
        for item in (await db.execute(
            select(MenuItem).where(MenuItem.id.in_(list(quantities)))
        )).scalars().all()
    }
    missing = [item_id for item_id in quantities if item_id not in menu_items]
    if missing:
        raise HTTPException(status_code=404, detail=f"Menu items not found: {missing}")

    for item in menu_items.values():
        if not item.is_available:
            raise HTTPException(status_code=400, detail=f"{item.name} is not available")

    chef_ids = {item.chef_id for item in menu_items.values()}
    if len(chef_ids) > 1:
        raise HTTPException(status_code=400, detail="All items must be from the same kitchen")

    kitchen = (await db.execute(
        select(Kitchen).where(Kitchen.seller_id == chef_ids.pop()).limit(1)
    )).scalar_one_or_none()
    if not kitchen or not kitchen.is_active:
        raise HTTPException(status_code=400, detail="Kitchen is not accepting orders")
    if not kitchen.is_open:
        raise HTTPException(status_code=400, detail="Kitchen is currently closed")

    address = await db.get(Address, data.delivery_address_id)
    if not address or address.user_id != user.id:
        raise HTTPException(status_code=404, detail="Delivery address not found")

    kitchen_lat, kitchen_lng = kitchen.coordinates
    delivery = get_delivery_info(address.latitude, address.longitude, kitchen_lat, kitchen_lng)
    if not delivery.available:
        raise HTTPException(status_code=400, detail=delivery.error)

    slot_check = await validate_order(
        db, kitchen, list(menu_items.values()), data.delivery_date, data.delivery_time_slot
    )
    if not slot_check.valid:
        raise HTTPException(status_code=400, detail=slot_check.error)

    pricing = order_service.price_order(
        [(menu_items[item_id].price, qty) for item_id, qty in quantities.items()],
        delivery.charge,
    )

    order = Order(
        user_id=user.id,
        kitchen=kitchen,
        status=OrderStatus.PENDING,
        delivery_address_id=address.id,
        delivery_date=data.delivery_date,
        delivery_time_slot=data.delivery_time_slot,
        distance_km=delivery.distance,
        notes=data.notes,
        subtotal=pricing.subtotal,
        delivery_fee=pricing.delivery_fee,
        platform_fee=pricing.platform_fee,
        total=pricing.total,
        items=[
            OrderItem(
                menu_item=menu_items[item_id],
                quantity=qty,
                price=menu_items[item_id].price,
            )
            for item_id, qty in quantities.items()
        ],
    )
    db.add(order)
    await db.flush()

    notify_new_order(db, kitchen.id, order.id, user.name or user.email, order.total)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order.id} placed: kitchen #{kitchen.id}, total ৳{order.total:.0f}")

    await deliver_quietly(
        notifier.send_order_confirmation(
            order_id=order.id,
            customer_name=user.name,
            customer_email=user.email,
            customer_phone=user.phone,
            kitchen_name=kitchen.name,
            items=[
                {"name": i.menu_item.name, "quantity": i.quantity, "price": i.price}
                for i in order.items
            ],
            total_amount=order.total,
            delivery_date=order.delivery_date.isoformat(),
            delivery_slot=MEAL_TIME_SLOTS[order.delivery_time_slot].display_name,
        ),
        f"confirmation for order #{order.id}",
    )

    return OrderResponse.model_validate(order)


# =============================================================================
# BUYER ORDERS
# =============================================================================

@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    skip: int = Query(0, ge=0),
    take: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """The caller's orders, newest first."""
    query = select(Order).where(Order.user_id == user.id)
    count_query = select(func.count(Order.id)).where(Order.user_id == user.id)

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


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """An order visible to its buyer, its kitchen, or an admin."""
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    is_buyer = order.user_id == user.id
    is_kitchen = order.kitchen is not None and order.kitchen.seller_id == user.id
    if not (is_buyer or is_kitchen or user.role == UserRole.ADMIN):
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Buyers may cancel while the order is pending or confirmed."""
    order = await db.get(Order, order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    try:
        order_service.cancel_by_buyer(order)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    await db.commit()
    await db.refresh(order)
    logger.info(f"Order #{order.id} cancelled by buyer #{user.id}")
    return OrderResponse.model_validate(order)
