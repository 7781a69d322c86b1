import math

EARTH_RADIUS_KM = 6371.0


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two coordinates using the Haversine formula.

    Args:
        lat1, lng1: First point in decimal degrees.
        lat2, lng2: Second point in decimal degrees.

    Returns:
        Distance in meters, rounded to 2 decimal places.

    Callers are expected to pass coordinates already validated to
    lat in [-90, 90] and lng in [-180, 180].
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

    return round(EARTH_RADIUS_KM * c * 1000, 2)


def within_radius(distance: float, radius: float) -> bool:
    # Boundary is inclusive: standing exactly on the fence counts as inside.
    return distance <= radius
