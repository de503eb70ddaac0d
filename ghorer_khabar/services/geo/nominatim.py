"""
Nominatim Geo Service Implementation

Free OpenStreetMap geocoding, used when no Google Maps key is configured.

Requirements:
    - Every request must carry an identifying User-Agent (NOMINATIM_USER_AGENT)
    - At most one request per second; bulk callers must pace themselves

API Documentation:
    https://nominatim.org/release-docs/latest/api/Overview/
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.geo.base import BaseGeoService, GeocodeResult

logger = logging.getLogger(__name__)


class NominatimGeoService(BaseGeoService):
    """
    Geocoding through a Nominatim server over HTTP.

    Example:
        >>> service = NominatimGeoService()
        >>> result = await service.geocode("Gulshan 2, Dhaka")
        >>> print(result.formatted_address)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.nominatim_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout or settings.geocoding_timeout
        self._transport = transport

        logger.info(f"NominatimGeoService initialized ({self.base_url})")

    @property
    def provider_name(self) -> str:
        return "nominatim"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get(self, path: str, params: dict) -> tuple[Optional[object], GeocodeResult]:
        """
        Perform a GET and decode JSON.

        Returns the payload, or None together with a failed result.
        """
        start_time = datetime.now()
        try:
            async with self._client() as client:
                response = await client.get(path, params={**params, "format": "json"})
                response.raise_for_status()
                return response.json(), GeocodeResult(
                    success=True,
                    response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
                )

        except httpx.TimeoutException:
            logger.error(f"Nominatim: Timeout on {path}")
            error_code, message = "timeout", "Geocoding timed out. Please try again."

        except httpx.HTTPStatusError as e:
            logger.error(f"Nominatim: HTTP {e.response.status_code} on {path}")
            error_code, message = "api_error", "Geocoding service error"

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Nominatim: Request failed on {path} - {e}")
            error_code, message = "transport_error", "Unable to reach geocoding service"

        return None, GeocodeResult(
            success=False,
            error_message=message,
            error_code=error_code,
            response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
        )

    async def geocode(self, address: str) -> GeocodeResult:
        if not address or not address.strip():
            return GeocodeResult(
                success=False,
                error_message="Address is required",
                error_code="invalid_address",
            )

        logger.debug(f"Nominatim: Geocoding address - {address}")
        data, result = await self._get("/search", {"q": address, "limit": 1})
        if data is None:
            return result

        if not data:
            logger.warning(f"Nominatim: Address not found - {address}")
            return GeocodeResult(
                success=False,
                error_message="Address not found. Please check and try again.",
                error_code="address_not_found",
                response_time_ms=result.response_time_ms,
            )

        match = data[0]
        return GeocodeResult(
            success=True,
            latitude=float(match["lat"]),
            longitude=float(match["lon"]),
            formatted_address=match.get("display_name"),
            response_time_ms=result.response_time_ms,
        )

    async def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        data, result = await self._get("/reverse", {"lat": latitude, "lon": longitude})
        if data is None:
            return result

        display_name = data.get("display_name") if isinstance(data, dict) else None
        if not display_name:
            return GeocodeResult(
                success=False,
                latitude=latitude,
                longitude=longitude,
                error_message="No address found for these coordinates",
                error_code="address_not_found",
                response_time_ms=result.response_time_ms,
            )

        return GeocodeResult(
            success=True,
            latitude=latitude,
            longitude=longitude,
            formatted_address=display_name,
            response_time_ms=result.response_time_ms,
        )

    async def health_check(self) -> bool:
        result = await self.geocode("Dhaka, Bangladesh")
        if not result.success:
            logger.error(f"Nominatim: Health check failed - {result.error_message}")
        return result.success
