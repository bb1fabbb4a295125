import math

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 10.0
# Absorbs float rounding in the haversine result (about a micrometre).
RADIUS_TOLERANCE_KM = 1e-9


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in decimal degrees, using the
    haversine formula on a spherical earth.

    Coordinates are not range-checked; out-of-range values give a defined
    but meaningless distance. Validating them is up to the caller.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_radius(
        source_lat: float,
        source_lon: float,
        target_lat: float,
        target_lon: float,
        radius_km: float = DEFAULT_RADIUS_KM,
) -> bool:
    # Inclusive: a target exactly on the radius matches.
    return distance_km(source_lat, source_lon, target_lat, target_lon) <= radius_km + RADIUS_TOLERANCE_KM
