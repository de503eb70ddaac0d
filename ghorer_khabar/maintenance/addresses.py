"""
Address maintenance.

- migrate_kitchen_addresses: move legacy kitchen location fields into a
  kitchen Address, one per kitchen that has none
- fix_default_addresses: give every user with addresses exactly one default
- geocode_kitchen_addresses: fill in missing kitchen coordinates
"""

import asyncio
import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.maintenance import MaintenanceReport
from ghorer_khabar.models import Address, Kitchen, User
from ghorer_khabar.services.geo import BaseGeoService

logger = logging.getLogger(__name__)

# Nominatim allows one request per second
GEOCODE_DELAY_SECONDS = 1.0


async def migrate_kitchen_addresses(db: AsyncSession) -> MaintenanceReport:
    """
    Create a kitchen Address for every kitchen without one that still has
    legacy location data. Running it again finds nothing to do.
    """
    report = MaintenanceReport(task="migrate_kitchen_addresses")

    kitchens = (await db.execute(
        select(Kitchen)
        .where(
            Kitchen.address_id.is_(None),
            or_(
                Kitchen.latitude.is_not(None),
                Kitchen.longitude.is_not(None),
                Kitchen.location.is_not(None),
            ),
        )
        .order_by(Kitchen.id)
    )).scalars().all()
    report.found = len(kitchens)
    logger.info(f"Found {report.found} kitchens to migrate")

    for kitchen in kitchens:
        try:
            async with db.begin_nested():
                kitchen.address = Address(
                    user_id=kitchen.seller_id,
                    label=f"Kitchen: {kitchen.name}",
                    address=kitchen.location or "Address not provided",
                    zone=kitchen.area,
                    latitude=kitchen.latitude,
                    longitude=kitchen.longitude,
                    is_default=False,
                    is_kitchen_address=True,
                )
            report.succeeded += 1
            report.messages.append(f"Migrated kitchen: {kitchen.name} (ID: {kitchen.id})")
        except SQLAlchemyError as e:
            report.failed += 1
            report.messages.append(f"Failed to migrate kitchen: {kitchen.name} (ID: {kitchen.id}): {e}")
            logger.error(f"Kitchen #{kitchen.id} migration failed: {e}")

    await db.commit()

    remaining = await db.scalar(
        select(Kitchen.id).where(Kitchen.address_id.is_(None)).limit(1)
    )
    if remaining is not None:
        report.messages.append("Some kitchens still have no address (no location data to migrate)")

    return report


async def fix_default_addresses(db: AsyncSession) -> MaintenanceReport:
    """Users with addresses but no default get their oldest address as default."""
    report = MaintenanceReport(task="fix_default_addresses")

    users = (await db.execute(select(User).order_by(User.id))).scalars().all()
    for user in users:
        addresses = (await db.execute(
            select(Address).where(Address.user_id == user.id).order_by(Address.id)
        )).scalars().all()
        if not addresses or any(a.is_default for a in addresses):
            continue

        report.found += 1
        first = addresses[0]
        first.is_default = True
        report.succeeded += 1
        report.messages.append(
            f"Set default address for {user.name or user.email}: "
            f"{first.label} (kitchen address: {first.is_kitchen_address})"
        )

    await db.commit()
    return report


async def geocode_kitchen_addresses(
    db: AsyncSession,
    geo_service: BaseGeoService,
    delay: float = GEOCODE_DELAY_SECONDS,
) -> MaintenanceReport:
    """Geocode kitchen addresses missing a coordinate, one request at a time."""
    report = MaintenanceReport(task="geocode_kitchen_addresses")

    addresses = (await db.execute(
        select(Address)
        .where(
            Address.is_kitchen_address.is_(True),
            or_(Address.latitude.is_(None), Address.longitude.is_(None)),
        )
        .order_by(Address.id)
    )).scalars().all()
    report.found = len(addresses)

    for index, address in enumerate(addresses):
        if index and delay > 0:
            await asyncio.sleep(delay)

        result = await geo_service.geocode(address.address)
        if result.success:
            address.latitude = result.latitude
            address.longitude = result.longitude
            report.succeeded += 1
            report.messages.append(
                f"{address.label}: ({result.latitude:.5f}, {result.longitude:.5f})"
            )
        else:
            report.failed += 1
            report.messages.append(f"{address.label}: failed to geocode ({result.error_message})")

    await db.commit()
    return report
