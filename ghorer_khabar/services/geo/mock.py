"""
Mock Geo Service Implementation

Simulates geocoding without making real API calls.
Used in development mode (ENV_MODE=development) for local testing.

Behavior:
    - Returns deterministic coordinates around central Dhaka, derived
      from the address text so the same address always lands in the same spot
    - Simulates network latency
    - Configurable random failure rate for testing error handling
"""

import asyncio
import hashlib
import logging
import random

from ghorer_khabar.services.geo.base import BaseGeoService, GeocodeResult

logger = logging.getLogger(__name__)


class MockGeoService(BaseGeoService):
    """
    Mock implementation of the geo service.

    Attributes:
        failure_rate: Probability of simulated API failure (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds

    Example:
        >>> service = MockGeoService(failure_rate=0.0, min_latency=0, max_latency=0)
        >>> result = await service.geocode("Road 27, Dhanmondi")
        >>> result.success
        True
    """

    # Dhaka center coordinates for generating realistic mock data
    DHAKA_CENTER_LAT = 23.8103
    DHAKA_CENTER_LNG = 90.4125

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.5,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency

        logger.info(f"MockGeoService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _coordinates_for(self, address: str) -> tuple[float, float]:
        """Stable pseudo-coordinates within roughly 5 km of the city center."""
        digest = hashlib.sha256(address.strip().lower().encode("utf-8")).digest()
        lat_offset = (digest[0] / 255 - 0.5) * 0.08
        lng_offset = (digest[1] / 255 - 0.5) * 0.08
        return (
            round(self.DHAKA_CENTER_LAT + lat_offset, 6),
            round(self.DHAKA_CENTER_LNG + lng_offset, 6),
        )

    async def geocode(self, address: str) -> GeocodeResult:
        logger.debug(f"Mock: Geocoding address - {address}")
        latency_ms = await self._simulate_latency()

        if self._should_fail():
            logger.debug("Mock: Simulated API failure")
            return GeocodeResult(
                success=False,
                error_message="Geocoding service temporarily unavailable",
                error_code="service_unavailable",
                response_time_ms=latency_ms,
            )

        if not address or not address.strip():
            return GeocodeResult(
                success=False,
                error_message="Address is required",
                error_code="invalid_address",
                response_time_ms=latency_ms,
            )

        lat, lng = self._coordinates_for(address)
        return GeocodeResult(
            success=True,
            latitude=lat,
            longitude=lng,
            formatted_address=f"{address.strip()}, Dhaka, Bangladesh",
            response_time_ms=latency_ms,
        )

    async def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        latency_ms = await self._simulate_latency()

        if self._should_fail():
            return GeocodeResult(
                success=False,
                error_message="Geocoding service temporarily unavailable",
                error_code="service_unavailable",
                response_time_ms=latency_ms,
            )

        return GeocodeResult(
            success=True,
            latitude=latitude,
            longitude=longitude,
            formatted_address=f"Near {latitude:.4f}, {longitude:.4f}, Dhaka, Bangladesh",
            response_time_ms=latency_ms,
        )

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Geo health check passed")
        return True
