"""
Geo Service Factory

Provides a single entry point for obtaining a geocoding service instance.

Selection:
    - ENV_MODE=development: MockGeoService
    - GOOGLE_MAPS_API_KEY set: GoogleGeoService
    - otherwise: NominatimGeoService

Usage:
    from ghorer_khabar.services.geo import get_geo_service

    geo_service = get_geo_service()
    result = await geo_service.geocode("House 7, Road 2, Mirpur 10, Dhaka")
"""

import logging
from functools import lru_cache

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.geo.base import BaseGeoService, GeocodeResult
from ghorer_khabar.services.geo.google import GoogleGeoService
from ghorer_khabar.services.geo.mock import MockGeoService
from ghorer_khabar.services.geo.nominatim import NominatimGeoService

logger = logging.getLogger(__name__)


@lru_cache()
def get_geo_service() -> BaseGeoService:
    """
    Get the configured geo service instance.

    Returns:
        BaseGeoService: Configured geo service instance
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Geo Service: Using MockGeoService (development mode)")
        return MockGeoService(
            failure_rate=0.05,
            min_latency=0.1,
            max_latency=0.5,
        )

    if settings.google_maps_api_key:
        logger.info(f"Geo Service: Using GoogleGeoService ({settings.env_mode.value} mode)")
        return GoogleGeoService()

    logger.info(f"Geo Service: Using NominatimGeoService ({settings.env_mode.value} mode)")
    return NominatimGeoService()


__all__ = [
    "get_geo_service",
    "BaseGeoService",
    "GeocodeResult",
    "MockGeoService",
    "NominatimGeoService",
    "GoogleGeoService",
]
