"""
Recommendations

Proxies the ML recommendation service and falls back to popular items
when the service is unconfigured, unreachable, errors, or returns nothing.

Usage:
    from ghorer_khabar.services.recommendations import recommend, get_recommendation_client

    payload = await recommend(db, RecommendationKind.DISHES, "42", get_recommendation_client())
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.recommendations.base import (
    BaseRecommendationClient,
    RecommendationKind,
    RecommendationResult,
)
from ghorer_khabar.services.recommendations.fallback import DEFAULT_LIMITS, FALLBACKS
from ghorer_khabar.services.recommendations.http import HttpRecommendationClient

logger = logging.getLogger(__name__)

FALLBACK_ALGORITHM = "fallback_popular"


@lru_cache()
def get_recommendation_client() -> Optional[BaseRecommendationClient]:
    """The configured ML client, or None when ML_SERVICE_URL/ML_SERVICE_API_KEY are unset."""
    settings = get_settings()

    if not settings.ml_service_configured:
        logger.warning("ML Service not configured. Using fallback recommendations.")
        return None

    return HttpRecommendationClient()


async def fallback_payload(
    db: AsyncSession,
    kind: RecommendationKind,
    user_id: str,
    limit: int,
    exclude_ids: Iterable[int],
    note: str,
) -> dict:
    items = await FALLBACKS[kind.value](db, limit=limit, exclude_ids=exclude_ids)
    return {
        "user_id": user_id,
        "recommendations": items,
        "metadata": {
            "algorithm": FALLBACK_ALGORITHM,
            "cold_start": True,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "total_candidates": len(items),
            "note": f"{note} - showing popular {kind.value}",
        },
    }


async def recommend(
    db: AsyncSession,
    kind: RecommendationKind,
    user_id: str,
    client: Optional[BaseRecommendationClient],
    limit: Optional[int] = None,
    exclude_ids: Iterable[int] = (),
    params: Optional[dict] = None,
) -> dict:
    """
    Personalized recommendations with a popularity fallback.

    Args:
        db: Database session for the fallback queries
        kind: dishes, kitchens or subscriptions
        user_id: User to personalize for
        client: ML client, None when the service is not configured
        limit: Maximum items (per-kind default when omitted)
        exclude_ids: Item ids to leave out
        params: Extra query parameters forwarded to the service

    Returns:
        ``{"user_id", "recommendations", "metadata"}``
    """
    limit = limit or DEFAULT_LIMITS[kind.value]
    exclude_ids = list(exclude_ids)

    if client is None:
        return await fallback_payload(db, kind, user_id, limit, exclude_ids, "ML Service not configured")

    query = dict(params or {})
    query["limit"] = limit
    if exclude_ids:
        query["exclude_ids"] = ",".join(str(i) for i in exclude_ids)

    result = await client.get_recommendations(kind, user_id, query)
    if not result.success:
        return await fallback_payload(db, kind, user_id, limit, exclude_ids, result.error_message)

    return {
        "user_id": user_id,
        "recommendations": result.recommendations,
        "metadata": result.metadata,
    }


__all__ = [
    "recommend",
    "fallback_payload",
    "get_recommendation_client",
    "BaseRecommendationClient",
    "HttpRecommendationClient",
    "RecommendationKind",
    "RecommendationResult",
    "FALLBACK_ALGORITHM",
]
