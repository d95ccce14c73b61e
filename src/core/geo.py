"""Geographic calculations - Pure functions.

This module provides great-circle distance calculations for matching
earthquakes against user locations. All functions are pure with no side
effects.
"""

import math

from src.core.earthquake import AlertEvent


# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0

# Float slack for inclusive radius checks (1 mm)
RADIUS_TOLERANCE_KM = 1e-6


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_to_event(event: AlertEvent, lat: float, lon: float) -> float:
    """Distance in km from a point to an event's epicenter.

    Pure function.
    """
    return calculate_distance(lat, lon, event.latitude, event.longitude)


def is_within_radius(distance_km: float, radius_km: float) -> bool:
    """Inclusive radius check with a millimetre of float tolerance.

    Pure function.

    Args:
        distance_km: Measured great-circle distance
        radius_km: Alert radius

    Returns:
        True if distance_km is at most radius_km
    """
    return distance_km <= radius_km + RADIUS_TOLERANCE_KM
