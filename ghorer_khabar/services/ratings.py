"""
Dish and kitchen rating aggregates.

A dish's rating is the average of its reviews to one decimal; a kitchen's
rating averages every review of its seller's dishes.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.models import Kitchen, MenuItem, Review
from ghorer_khabar.services.kri import update_kri_score

logger = logging.getLogger(__name__)


async def refresh_menu_item_rating(db: AsyncSession, menu_item: MenuItem) -> None:
    avg_rating, count = (await db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.menu_item_id == menu_item.id)
    )).one()
    menu_item.rating = round(float(avg_rating or 0), 1)
    menu_item.review_count = count


async def refresh_kitchen_rating(db: AsyncSession, kitchen: Kitchen) -> None:
    """Kitchen rating and review count, then its KRI score."""
    avg_rating, count = (await db.execute(
        select(func.avg(Review.rating), func.count(Review.id))
        .join(MenuItem, Review.menu_item_id == MenuItem.id)
        .where(MenuItem.chef_id == kitchen.seller_id)
    )).one()
    kitchen.rating = round(float(avg_rating or 0), 1)
    kitchen.review_count = count
    await db.flush()
    await update_kri_score(db, kitchen)


async def refresh_ratings(db: AsyncSession, menu_item: MenuItem) -> None:
    """Recompute the dish aggregate, then its kitchen's."""
    await refresh_menu_item_rating(db, menu_item)

    kitchen = (await db.execute(
        select(Kitchen).where(Kitchen.seller_id == menu_item.chef_id).limit(1)
    )).scalar_one_or_none()
    if kitchen is None:
        logger.debug(f"Menu item #{menu_item.id} has no kitchen; skipping kitchen rating")
        return

    await refresh_kitchen_rating(db, kitchen)
