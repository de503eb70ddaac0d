"""
HTTP client for the ML recommendation service.

Endpoints:
    GET {ML_SERVICE_URL}/api/v1/recommendations/{kind}/{user_id}
    GET {ML_SERVICE_URL}/health

Requests authenticate with the ``X-API-Key`` header.
"""

import logging
from typing import Optional

import httpx

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.recommendations.base import (
    BaseRecommendationClient,
    RecommendationKind,
    RecommendationResult,
)

logger = logging.getLogger(__name__)


class HttpRecommendationClient(BaseRecommendationClient):
    """Talks to the recommendation service over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.ml_service_url or "").rstrip("/")
        self.api_key = api_key or settings.ml_service_api_key
        self.timeout = timeout or settings.ml_service_timeout
        self._transport = transport

        logger.info(f"HttpRecommendationClient initialized ({self.base_url})")

    @property
    def provider_name(self) -> str:
        return "ml_service"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-API-Key": self.api_key or ""},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def get_recommendations(
        self,
        kind: RecommendationKind,
        user_id: str,
        params: dict,
    ) -> RecommendationResult:
        path = f"/api/v1/recommendations/{kind.value}/{user_id}"
        query = {k: v for k, v in params.items() if v is not None}
        logger.debug(f"Calling ML service: {path} {query}")

        try:
            async with self._client() as client:
                response = await client.get(path, params=query)

        except httpx.TimeoutException:
            logger.warning(f"ML service timed out on {path}")
            return RecommendationResult(success=False, error_message="ML service unavailable")

        except httpx.HTTPError as e:
            logger.warning(f"ML service unreachable: {e}")
            return RecommendationResult(success=False, error_message="ML service unavailable")

        if response.status_code >= 400:
            logger.error(f"ML service error {response.status_code}: {response.text[:200]}")
            return RecommendationResult(
                success=False,
                error_message=f"ML service error {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            logger.error("ML service returned invalid JSON")
            return RecommendationResult(success=False, error_message="ML service returned invalid JSON")

        recommendations = payload.get("recommendations") if isinstance(payload, dict) else None
        if not recommendations:
            logger.warning(f"ML service returned empty {kind.value} recommendations")
            return RecommendationResult(
                success=False,
                error_message="ML service returned empty results",
            )

        return RecommendationResult(
            success=True,
            recommendations=recommendations,
            metadata=payload.get("metadata") or {},
        )

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"ML service health check failed - {e}")
            return False
