"""
Kitchen Discovery Endpoints

Buyers browse active kitchens sorted by distance from their default
address (or explicit coordinates); kitchens without a known distance
are listed last.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_optional_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import Address, Kitchen, MenuItem, SubscriptionPlan, User
from ghorer_khabar.schemas import (
    KitchenDetail,
    KitchenListResponse,
    KitchenSummary,
    MenuItemResponse,
    PlanResponse,
)
from ghorer_khabar.services.delivery import format_distance, get_delivery_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/kitchens", tags=["Kitchens"])


def kitchen_zone(kitchen: Kitchen) -> Optional[str]:
    if kitchen.address and kitchen.address.zone:
        return kitchen.address.zone
    return kitchen.area


def kitchen_summary(
    kitchen: Kitchen,
    origin: tuple[Optional[float], Optional[float]] = (None, None),
) -> KitchenSummary:
    """Public kitchen card, with delivery figures when the buyer's location is known."""
    lat, lng = kitchen.coordinates
    distance = fee = available = None

    if None not in origin:
        info = get_delivery_info(origin[0], origin[1], lat, lng)
        distance, fee, available = info.distance, info.charge, info.available

    return KitchenSummary(
        id=kitchen.id,
        name=kitchen.name,
        description=kitchen.description,
        cover_image=kitchen.cover_image,
        address=kitchen.address.address if kitchen.address else kitchen.location,
        zone=kitchen_zone(kitchen),
        latitude=lat,
        longitude=lng,
        rating=kitchen.rating,
        review_count=kitchen.review_count,
        total_orders=kitchen.total_orders,
        kri_score=kitchen.kri_score,
        is_open=kitchen.is_open,
        is_verified=kitchen.is_verified,
        distance_km=distance,
        formatted_distance=format_distance(distance) if distance is not None else None,
        delivery_fee=fee,
        delivery_available=available,
    )


async def resolve_origin(
    db: AsyncSession,
    user: Optional[User],
    lat: Optional[float],
    lng: Optional[float],
) -> tuple[Optional[float], Optional[float]]:
    """Explicit coordinates win; otherwise the caller's default address."""
    if lat is not None and lng is not None:
        return lat, lng
    if user is None:
        return None, None

    result = await db.execute(
        select(Address).where(Address.user_id == user.id, Address.is_default.is_(True)).limit(1)
    )
    default = result.scalar_one_or_none()
    if default is None:
        return None, None
    return default.latitude, default.longitude


@router.get("", response_model=KitchenListResponse)
async def list_kitchens(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: Optional[float] = Query(None, gt=0, description="Kilometers"),
    zone: Optional[str] = Query(None),
    is_open: Optional[bool] = Query(None),
    is_verified: Optional[bool] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> KitchenListResponse:
    """
    List active kitchens nearest first.

    With ``max_distance`` only kitchens at a known distance within it are
    returned.
    """
    query = select(Kitchen).where(Kitchen.is_active.is_(True))
    if is_open is not None:
        query = query.where(Kitchen.is_open.is_(is_open))
    if is_verified is not None:
        query = query.where(Kitchen.is_verified.is_(is_verified))

    kitchens = (await db.execute(query.order_by(Kitchen.id))).scalars().all()
    origin = await resolve_origin(db, user, lat, lng)

    cards = [kitchen_summary(k, origin) for k in kitchens]

    if zone:
        cards = [c for c in cards if c.zone and c.zone.lower() == zone.lower()]
    if max_distance is not None:
        cards = [c for c in cards if c.distance_km is not None and c.distance_km <= max_distance]

    cards.sort(key=lambda c: (c.distance_km is None, c.distance_km or 0.0, -c.rating))

    return KitchenListResponse(total=len(cards), kitchens=cards)


@router.get("/zones")
async def list_zones(db: AsyncSession = Depends(get_db)) -> dict:
    """Zones that have at least one active kitchen."""
    kitchens = (await db.execute(select(Kitchen).where(Kitchen.is_active.is_(True)))).scalars().all()
    zones = sorted({z for z in (kitchen_zone(k) for k in kitchens) if z})
    return {"zones": zones}


@router.get("/{kitchen_id}", response_model=KitchenDetail)
async def get_kitchen(
    kitchen_id: int,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> KitchenDetail:
    """Kitchen page with its available dishes and active plans."""
    kitchen = await db.get(Kitchen, kitchen_id)
    if not kitchen or not kitchen.is_active:
        raise HTTPException(status_code=404, detail=f"Kitchen #{kitchen_id} not found")

    items = (await db.execute(
        select(MenuItem)
        .where(MenuItem.chef_id == kitchen.seller_id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.id)
    )).scalars().all()
    plans = (await db.execute(
        select(SubscriptionPlan)
        .where(SubscriptionPlan.kitchen_id == kitchen.id, SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.id)
    )).scalars().all()

    origin = await resolve_origin(db, user, lat, lng)
    summary = kitchen_summary(kitchen, origin)

    return KitchenDetail(
        **summary.model_dump(),
        seller_name=kitchen.seller.name if kitchen.seller else None,
        min_prep_time_hours=kitchen.min_prep_time_hours,
        menu_items=[MenuItemResponse.model_validate(i) for i in items],
        subscription_plans=[PlanResponse.model_validate(p) for p in plans],
    )
