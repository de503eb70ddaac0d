"""
Recommendation Endpoints

Personalized dishes, kitchens and subscription plans from the ML service,
with popular items as the fallback.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.auth import get_current_user
from ghorer_khabar.database import get_db
from ghorer_khabar.models import User, UserRole
from ghorer_khabar.routers.orders import parse_id_list
from ghorer_khabar.services.recommendations import (
    BaseRecommendationClient,
    RecommendationKind,
    get_recommendation_client,
    recommend,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.get("/{kind}/{user_id}")
async def get_recommendations(
    kind: RecommendationKind,
    user_id: int,
    limit: Optional[int] = Query(None, ge=1, le=50),
    exclude_ids: Optional[str] = Query(None, description="Comma-separated ids to leave out"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: Optional[BaseRecommendationClient] = Depends(get_recommendation_client),
) -> dict:
    """Recommendations for a user; callers may only ask for themselves unless admin."""
    if user.id != user_id and user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Forbidden")

    payload = await recommend(
        db,
        kind,
        str(user_id),
        client,
        limit=limit,
        exclude_ids=parse_id_list(exclude_ids, "exclude_ids"),
    )
    logger.debug(
        f"{kind.value} recommendations for user #{user_id}: "
        f"{len(payload['recommendations'])} via {payload['metadata'].get('algorithm')}"
    )
    return payload
