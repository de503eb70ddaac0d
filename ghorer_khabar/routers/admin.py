"""
Admin Endpoints

Dashboard statistics, kitchen verification, user and order listings,
the Excel report export, and the admin notification feed.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import require_admin
from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.database import get_db
from ghorer_khabar.models import (
    Kitchen,
    NotificationType,
    Order,
    OrderStatus,
    User,
    UserRole,
)
from ghorer_khabar.routers.chef import deliver_quietly
from ghorer_khabar.schemas import (
    ErrorResponse,
    KitchenActionRequest,
    KitchenAdminListResponse,
    KitchenAdminResponse,
    NotificationResponse,
    OrderListResponse,
    OrderResponse,
    UserListResponse,
    UserResponse,
)
from ghorer_khabar.services import ExcelManager, admin_stats, onboarding
from ghorer_khabar.services.notifications import BaseNotificationService, get_notification_service
from ghorer_khabar.services.notifications.inbox import (
    create_notification,
    list_notifications,
    mark_all_read,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def kitchen_admin_view(kitchen: Kitchen) -> KitchenAdminResponse:
    seller = kitchen.seller
    address = kitchen.address
    return KitchenAdminResponse(
        id=kitchen.id,
        name=kitchen.name,
        seller_id=kitchen.seller_id,
        seller_name=seller.name if seller else None,
        seller_email=seller.email if seller else None,
        address=address.address if address else kitchen.location,
        zone=address.zone if address else kitchen.area,
        state=onboarding.onboarding_state(kitchen).value,
        onboarding_completed=kitchen.onboarding_completed,
        is_verified=kitchen.is_verified,
        is_active=kitchen.is_active,
        rejection_reason=kitchen.rejection_reason,
        nid_name=kitchen.nid_name,
        nid_front_image=kitchen.nid_front_image,
        nid_back_image=kitchen.nid_back_image,
        kri_score=kitchen.kri_score,
        created_at=kitchen.created_at,
    )


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/stats")
async def dashboard(db: AsyncSession = Depends(get_db)) -> dict:
    """Totals, status breakdown, top kitchens and dishes, recent orders and the 4-week series."""
    return await admin_stats.dashboard_stats(db)


@router.get("/export", responses={500: {"model": ErrorResponse}})
async def export_report(db: AsyncSession = Depends(get_db)) -> FileResponse:
    """Download the admin report as an Excel workbook."""
    data = await admin_stats.report_data(db)
    result = await asyncio.to_thread(
        ExcelManager.export_admin_report,
        data["summary"],
        data["status_counts"],
        data["orders"],
        data["kitchens"],
    )
    if not result["success"]:
        raise HTTPException(status_code=500, detail=f"Export failed: {result['message']}")

    path = Path(result["path"])
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=path.name)


# =============================================================================
# KITCHENS
# =============================================================================

@router.get("/kitchens", response_model=KitchenAdminListResponse)
async def list_kitchens(
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    verified: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> KitchenAdminListResponse:
    query = select(Kitchen).join(User, Kitchen.seller_id == User.id)
    count_query = select(func.count(Kitchen.id)).join(User, Kitchen.seller_id == User.id)

    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(
            Kitchen.name.ilike(pattern),
            User.name.ilike(pattern),
            User.email.ilike(pattern),
        ))
    if verified is not None:
        filters.append(Kitchen.is_verified.is_(verified))

    if filters:
        query = query.where(*filters)
        count_query = count_query.where(*filters)

    total = (await db.execute(count_query)).scalar() or 0
    kitchens = (await db.execute(
        query.order_by(Kitchen.created_at.desc(), Kitchen.id.desc()).offset(skip).limit(take)
    )).scalars().all()

    return KitchenAdminListResponse(
        total=total,
        skip=skip,
        take=take,
        kitchens=[kitchen_admin_view(k) for k in kitchens],
    )


@router.patch(
    "/kitchens/{kitchen_id}",
    response_model=KitchenAdminResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def kitchen_action(
    kitchen_id: int,
    data: KitchenActionRequest,
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> KitchenAdminResponse:
    """
    Verify, reject, activate or suspend a kitchen.

    The seller is emailed when their kitchen is verified or rejected.
    """
    kitchen = await db.get(Kitchen, kitchen_id)
    if not kitchen:
        raise HTTPException(status_code=404, detail=f"Kitchen #{kitchen_id} not found")

    try:
        if data.action == "reject":
            onboarding.reject(kitchen, reason=data.reason)
        else:
            onboarding.TRANSITIONS[data.action](kitchen)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=e.message)

    if data.action == "verify":
        create_notification(
            db,
            title="Kitchen Verified",
            message=f"{kitchen.name} has been verified",
            type=NotificationType.SUCCESS,
            kitchen_id=kitchen.id,
        )
    elif data.action == "reject":
        create_notification(
            db,
            title="Verification Rejected",
            message=f"{kitchen.name} could not be verified: {kitchen.rejection_reason}",
            type=NotificationType.ERROR,
            kitchen_id=kitchen.id,
        )

    await db.commit()
    await db.refresh(kitchen)
    logger.info(f"Kitchen #{kitchen.id}: {data.action} -> {onboarding.onboarding_state(kitchen).value}")

    seller = kitchen.seller
    if seller and seller.email and data.action == "verify":
        await deliver_quietly(
            notifier.send_kitchen_verified(seller.email, seller.name, kitchen.name),
            f"verification email for kitchen #{kitchen.id}",
        )
    elif seller and seller.email and data.action == "reject":
        await deliver_quietly(
            notifier.send_kitchen_rejected(seller.email, seller.name, kitchen.name, kitchen.rejection_reason),
            f"rejection email for kitchen #{kitchen.id}",
        )

    return kitchen_admin_view(kitchen)


# =============================================================================
# USERS & ORDERS
# =============================================================================

@router.get("/users", response_model=UserListResponse)
async def list_users(
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    query = select(User)
    count_query = select(func.count(User.id))

    if role:
        try:
            role_enum = UserRole(role.upper())
            query = query.where(User.role == role_enum)
            count_query = count_query.where(User.role == role_enum)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid role. Options: {[r.value for r in UserRole]}",
            )

    total = (await db.execute(count_query)).scalar() or 0
    users = (await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(take)
    )).scalars().all()

    return UserListResponse(
        total=total,
        skip=skip,
        take=take,
        users=[UserResponse.model_validate(u) for u in users],
    )


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    query = select(Order)
    count_query = select(func.count(Order.id))

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


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@router.get("/notifications", response_model=list[NotificationResponse])
async def admin_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    feed = await list_notifications(db, admin=True, unread_only=unread_only, limit=limit, offset=offset)
    return [NotificationResponse.model_validate(n) for n in feed]


@router.post("/notifications/mark-all-read")
async def admin_mark_all_read(db: AsyncSession = Depends(get_db)) -> dict:
    updated = await mark_all_read(db, admin=True)
    await db.commit()
    return {"success": True, "updated": updated}
