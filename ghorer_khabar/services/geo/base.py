"""
Geo Service Abstract Base Class

Defines the interface contract for all geocoding service implementations.
MockGeoService, NominatimGeoService and GoogleGeoService implement it.

Use Cases:
    - Filling in coordinates for addresses saved without them
    - Backfilling kitchen addresses from maintenance scripts
    - Turning a map pin back into a readable address
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class GeocodeResult:
    """
    Standardized result from forward or reverse geocoding.

    Attributes:
        success: Whether the lookup produced a usable answer
        latitude: GPS latitude coordinate
        longitude: GPS longitude coordinate
        formatted_address: Provider's display name for the place
        error_message: Error description if the lookup failed
        error_code: Machine-readable error code
        response_time_ms: API response time
    """
    success: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


class BaseGeoService(ABC):
    """
    Abstract base class for geocoding services.

    Implementations never raise on provider failures; they return an
    unsuccessful GeocodeResult instead.

    Example:
        >>> service = get_geo_service()
        >>> result = await service.geocode("House 12, Road 5, Dhanmondi, Dhaka")
        >>> if result.success:
        ...     print(result.latitude, result.longitude)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the geo provider.

        Returns:
            str: Provider name (e.g., "mock", "nominatim", "google")
        """
        pass

    @abstractmethod
    async def geocode(self, address: str) -> GeocodeResult:
        """
        Resolve a free-text address to coordinates.

        Args:
            address: Address as typed by the user

        Returns:
            GeocodeResult: Coordinates of the best match
        """
        pass

    @abstractmethod
    async def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        """
        Resolve coordinates to a display address.

        Args:
            latitude: GPS latitude
            longitude: GPS longitude

        Returns:
            GeocodeResult: ``formatted_address`` holds the display name
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the geo service.

        Returns:
            bool: True if service is operational
        """
        pass
