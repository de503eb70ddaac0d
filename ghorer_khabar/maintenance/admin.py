"""Admin account creation."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.maintenance import MaintenanceReport
from ghorer_khabar.models import User, UserRole

logger = logging.getLogger(__name__)


async def create_admin(
    db: AsyncSession,
    email: str,
    name: Optional[str] = None,
    promote: bool = False,
) -> MaintenanceReport:
    """
    Create an ADMIN user, or promote an existing account when ``promote``.

    Emails are stored lower-cased. An existing account is left untouched
    unless ``promote`` is set.
    """
    report = MaintenanceReport(task="create_admin", found=1)
    email = email.strip().lower()

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    if user is None:
        user = User(email=email, name=name or "Admin", role=UserRole.ADMIN)
        db.add(user)
        await db.commit()
        report.succeeded = 1
        report.messages.append(f"Admin user created: #{user.id} {user.email}")
        logger.info(f"Admin user #{user.id} created")
        return report

    if user.role == UserRole.ADMIN:
        report.succeeded = 1
        report.messages.append(f"{email} is already an admin")
        return report

    if not promote:
        report.failed = 1
        report.messages.append(f"User {email} already exists as {user.role.value}; pass --promote to make it admin")
        return report

    user.role = UserRole.ADMIN
    if name:
        user.name = name
    await db.commit()
    report.succeeded = 1
    report.messages.append(f"User {email} promoted to ADMIN")
    logger.info(f"User #{user.id} promoted to admin")
    return report
