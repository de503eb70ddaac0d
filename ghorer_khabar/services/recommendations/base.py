"""
Recommendation Client Abstract Base Class

The ML recommendation service is an opaque HTTP collaborator that returns
ranked item lists per user. Clients never raise on transport or service
errors; they return an unsuccessful RecommendationResult so callers can
fall back to popular items.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


class RecommendationKind(str, enum.Enum):
    DISHES = "dishes"
    KITCHENS = "kitchens"
    SUBSCRIPTIONS = "subscriptions"


@dataclass
class RecommendationResult:
    """
    Result from the recommendation service.

    Attributes:
        success: Whether the service answered with a usable payload
        recommendations: Ranked items as returned by the service
        metadata: Service-provided metadata (algorithm, timings...)
        error_message: Why the call failed, used as the fallback note
        status_code: HTTP status when the service answered with an error
    """
    success: bool
    recommendations: list = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    error_message: Optional[str] = None
    status_code: Optional[int] = None


class BaseRecommendationClient(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def get_recommendations(
        self,
        kind: RecommendationKind,
        user_id: str,
        params: dict,
    ) -> RecommendationResult:
        """
        Fetch ranked recommendations for a user.

        Args:
            kind: Which catalogue to rank
            user_id: User the ranking is personalized for
            params: Extra query parameters forwarded to the service
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
