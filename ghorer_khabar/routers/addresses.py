"""
Address Book Endpoints

Buyers keep several delivery addresses; at most one is the default.
Addresses sent without coordinates are geocoded on save.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import Address, Kitchen, Order, User
from ghorer_khabar.schemas import AddressCreate, AddressResponse, AddressUpdate, ErrorResponse
from ghorer_khabar.services.geo import BaseGeoService, get_geo_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/addresses", tags=["Addresses"])

# Columns that cannot be cleared; an explicit null leaves them unchanged
REQUIRED_FIELDS = {"label", "address", "is_default"}


async def clear_default_addresses(db: AsyncSession, user_id: int, keep_id: Optional[int] = None) -> None:
    """Unset the default flag on every other address of the user."""
    stmt = update(Address).where(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Address.id != keep_id)
    await db.execute(stmt.values(is_default=False))


async def has_default_address(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(Address.id).where(Address.user_id == user_id, Address.is_default.is_(True)).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def geocode_into(address: Address, geo_service: BaseGeoService) -> None:
    """Fill in missing coordinates; a failed lookup leaves them empty."""
    if address.latitude is not None and address.longitude is not None:
        return

    result = await geo_service.geocode(address.address)
    if result.success:
        address.latitude = result.latitude
        address.longitude = result.longitude
    else:
        logger.warning(f"Geocoding failed for address '{address.label}': {result.error_message}")


async def _get_own_address(db: AsyncSession, address_id: int, user: User) -> Address:
    address = await db.get(Address, address_id)
    if not address or address.user_id != user.id:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


@router.get("", response_model=list[AddressResponse])
async def list_addresses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[AddressResponse]:
    """The caller's addresses, default first."""
    result = await db.execute(
        select(Address)
        .where(Address.user_id == user.id)
        .order_by(Address.is_default.desc(), Address.id)
    )
    return [AddressResponse.model_validate(a) for a in result.scalars().all()]


@router.post(
    "",
    response_model=AddressResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
async def create_address(
    data: AddressCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    geo_service: BaseGeoService = Depends(get_geo_service),
) -> AddressResponse:
    """
    Save a new address.

    The first address a user saves becomes the default; marking one as
    default clears the flag on the others.
    """
    make_default = data.is_default or not await has_default_address(db, user.id)

    address = Address(
        user_id=user.id,
        label=data.label,
        address=data.address,
        zone=data.zone,
        latitude=data.latitude,
        longitude=data.longitude,
        is_default=make_default,
        is_kitchen_address=False,
    )
    await geocode_into(address, geo_service)

    if make_default:
        await clear_default_addresses(db, user.id)

    db.add(address)
    await db.commit()
    await db.refresh(address)

    logger.info(f"Address #{address.id} created for user #{user.id}")
    return AddressResponse.model_validate(address)


@router.patch("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: int,
    data: AddressUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    geo_service: BaseGeoService = Depends(get_geo_service),
) -> AddressResponse:
    address = await _get_own_address(db, address_id, user)
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }

    if changes.get("is_default") is False and address.is_default:
        raise HTTPException(status_code=400, detail="Set another address as default instead")

    text_changed = "address" in changes and changes["address"] != address.address
    coords_given = "latitude" in changes or "longitude" in changes

    for field, value in changes.items():
        setattr(address, field, value)

    if text_changed and not coords_given:
        address.latitude = None
        address.longitude = None
        await geocode_into(address, geo_service)

    if changes.get("is_default"):
        await clear_default_addresses(db, user.id, keep_id=address.id)

    await db.commit()
    await db.refresh(address)
    return AddressResponse.model_validate(address)


@router.delete("/{address_id}", responses={400: {"model": ErrorResponse}})
async def delete_address(
    address_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete an address; the oldest remaining one inherits the default flag."""
    address = await _get_own_address(db, address_id, user)

    in_use = await db.execute(select(Kitchen.id).where(Kitchen.address_id == address.id))
    if in_use.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="A kitchen address cannot be deleted")

    was_default = address.is_default

    await db.execute(
        update(Order).where(Order.delivery_address_id == address.id).values(delivery_address_id=None)
    )
    await db.delete(address)
    await db.flush()

    if was_default:
        result = await db.execute(
            select(Address).where(Address.user_id == user.id).order_by(Address.id).limit(1)
        )
        successor = result.scalar_one_or_none()
        if successor:
            successor.is_default = True

    await db.commit()
    logger.info(f"Address #{address_id} deleted for user #{user.id}")
    return {"success": True, "message": "Address deleted"}
