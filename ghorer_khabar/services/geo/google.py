"""
Google Maps Geo Service Implementation

Geocoding through the Google Maps Geocoding API.
Selected over Nominatim whenever GOOGLE_MAPS_API_KEY is set.

Requirements:
    - GOOGLE_MAPS_API_KEY must be set in environment
    - Geocoding API must be enabled in Google Cloud Console

API Documentation:
    https://developers.google.com/maps/documentation/geocoding
"""

import asyncio
import logging
from datetime import datetime

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.geo.base import BaseGeoService, GeocodeResult

logger = logging.getLogger(__name__)


class GoogleGeoService(BaseGeoService):
    """
    Google Maps geo service implementation.

    Results are biased to Bangladesh via the ``region`` parameter.

    Example:
        >>> service = GoogleGeoService()
        >>> result = await service.geocode("Banani Road 11, Dhaka")
        >>> print(result.formatted_address)
    """

    def __init__(self):
        """
        Initialize Google Maps client with API key.

        Raises:
            ValueError: If GOOGLE_MAPS_API_KEY is not configured
        """
        settings = get_settings()

        if not settings.google_maps_api_key:
            raise ValueError(
                "GOOGLE_MAPS_API_KEY is required for Google geocoding. "
                "Set it in your .env file or environment variables."
            )

        self._client = googlemaps.Client(
            key=settings.google_maps_api_key,
            timeout=settings.geocoding_timeout,
        )

        logger.info("GoogleGeoService initialized")

    @property
    def provider_name(self) -> str:
        return "google"

    async def _call(self, func, *args, **kwargs) -> tuple[list, GeocodeResult]:
        """Run a blocking googlemaps call off the event loop, mapping its errors."""
        start_time = datetime.now()
        try:
            payload = await asyncio.to_thread(func, *args, **kwargs)
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            return payload, GeocodeResult(success=True, response_time_ms=elapsed_ms)

        except Timeout:
            logger.error("Google: API timeout")
            error_code, message = "timeout", "Geocoding timed out. Please try again."

        except ApiError as e:
            logger.error(f"Google: API error - {e}")
            error_code, message = "api_error", "Geocoding service error"

        except TransportError as e:
            logger.error(f"Google: Transport error - {e}")
            error_code, message = "transport_error", "Unable to reach geocoding service"

        except Exception as e:
            logger.exception(f"Google: Unexpected error - {e}")
            error_code, message = "unknown_error", "An unexpected error occurred"

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        return [], GeocodeResult(
            success=False,
            error_message=message,
            error_code=error_code,
            response_time_ms=elapsed_ms,
        )

    async def geocode(self, address: str) -> GeocodeResult:
        if not address or not address.strip():
            return GeocodeResult(
                success=False,
                error_message="Address is required",
                error_code="invalid_address",
            )

        logger.debug(f"Google: Geocoding address - {address}")
        matches, result = await self._call(self._client.geocode, address, region="bd")
        if not result.success:
            return result

        if not matches:
            logger.warning(f"Google: Address not found - {address}")
            return GeocodeResult(
                success=False,
                error_message="Address not found. Please check and try again.",
                error_code="address_not_found",
                response_time_ms=result.response_time_ms,
            )

        best = matches[0]
        location = best.get("geometry", {}).get("location", {})
        return GeocodeResult(
            success=True,
            latitude=location.get("lat"),
            longitude=location.get("lng"),
            formatted_address=best.get("formatted_address", address),
            response_time_ms=result.response_time_ms,
        )

    async def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        matches, result = await self._call(self._client.reverse_geocode, (latitude, longitude))
        if not result.success:
            return result

        if not matches:
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
            formatted_address=matches[0].get("formatted_address"),
            response_time_ms=result.response_time_ms,
        )

    async def health_check(self) -> bool:
        result = await self.geocode("Dhaka, Bangladesh")
        if result.success:
            logger.debug("Google: Health check passed")
        return result.success
