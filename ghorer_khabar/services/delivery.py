"""
Delivery Fee Calculator

Straight-line (haversine) distance between a buyer and a kitchen, mapped
to a tiered flat delivery fee in taka.

Tiers:
    - up to 1 km: 10
    - up to 2 km: 15
    - up to 4 km: 15 + 10 per km beyond 2 (35 at 4 km)
    - up to the service radius: 35 + 8.33 per km beyond 4 (60 at 7 km)
    - beyond the service radius: delivery unavailable

The calculation is stateless and invoked per checkout render.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ghorer_khabar.core.config import get_settings

EARTH_RADIUS_KM = 6371.0


@dataclass
class DeliveryInfo:
    """
    Result of a delivery calculation.

    Attributes:
        distance: Distance in km (None when coordinates are missing)
        charge: Delivery fee in taka (None when unavailable)
        available: Whether the kitchen delivers to this point
        error: Human readable explanation, if any
    """
    distance: Optional[float]
    charge: Optional[int]
    available: bool
    error: Optional[str] = None


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in kilometers.

    Rounded to 2 decimals.

    Example:
        >>> calculate_distance(23.8103, 90.4125, 23.8103, 90.4125)
        0.0
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return round(EARTH_RADIUS_KM * c, 2)


def is_delivery_available(distance_km: float, max_distance_km: Optional[float] = None) -> bool:
    """Check whether a distance is inside the service radius."""
    if max_distance_km is None:
        max_distance_km = get_settings().max_delivery_distance_km
    return distance_km <= max_distance_km


def calculate_delivery_charge(
    distance_km: float,
    max_distance_km: Optional[float] = None,
) -> Optional[int]:
    """
    Map a distance to its delivery fee tier.

    Args:
        distance_km: Distance in kilometers
        max_distance_km: Service radius (defaults to configuration)

    Returns:
        Fee in taka, or None if the distance is outside the service radius
    """
    if not is_delivery_available(distance_km, max_distance_km):
        return None

    if distance_km <= 1:
        return 10

    if distance_km <= 2:
        return 15

    if distance_km <= 4:
        return round(15 + (distance_km - 2) * 10)

    return round(35 + (distance_km - 4) * 8.33)


def is_valid_coordinates(lat: Optional[float], lng: Optional[float]) -> bool:
    """Latitude and longitude are present and inside their ranges."""
    if lat is None or lng is None:
        return False
    if isinstance(lat, float) and math.isnan(lat):
        return False
    if isinstance(lng, float) and math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def format_distance(distance_km: float) -> str:
    """
    Format a distance for display.

    Example:
        >>> format_distance(0.5)
        '500 m'
        >>> format_distance(10.5)
        '10.5 km'
    """
    if distance_km < 1:
        return f"{round(distance_km * 1000)} m"
    return f"{distance_km:.1f} km"


def get_delivery_info(
    buyer_lat: Optional[float],
    buyer_lng: Optional[float],
    kitchen_lat: Optional[float],
    kitchen_lng: Optional[float],
) -> DeliveryInfo:
    """
    Compute distance, fee and availability for a buyer/kitchen pair.

    Missing or unusable coordinates fall back to the flat default fee and
    are treated as deliverable.
    """
    settings = get_settings()

    if not (is_valid_coordinates(buyer_lat, buyer_lng) and is_valid_coordinates(kitchen_lat, kitchen_lng)):
        problem = "missing" if None in (buyer_lat, buyer_lng, kitchen_lat, kitchen_lng) else "invalid"
        return DeliveryInfo(
            distance=None,
            charge=settings.default_delivery_fee,
            available=True,
            error=f"Address coordinates are {problem}; a flat delivery fee was applied.",
        )

    distance = calculate_distance(buyer_lat, buyer_lng, kitchen_lat, kitchen_lng)
    available = is_delivery_available(distance, settings.max_delivery_distance_km)

    if not available:
        return DeliveryInfo(
            distance=distance,
            charge=None,
            available=False,
            error=(
                f"Delivery is not available for distances greater than "
                f"{settings.max_delivery_distance_km:g} km. "
                f"Your distance is {distance:.2f} km."
            ),
        )

    return DeliveryInfo(
        distance=distance,
        charge=calculate_delivery_charge(distance, settings.max_delivery_distance_km),
        available=True,
    )
