"""
Haversine distance for hospital proximity queries.
"""
import math

# Mean Earth radius in meters
EARTH_RADIUS_M = 6_371_000.0


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Return great-circle distance between two points in meters.
    Arguments in degrees.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    # Rounding can push a slightly outside [0, 1] for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return great-circle distance in kilometers. Arguments in degrees."""
    return haversine_distance_m(lat1, lon1, lat2, lon2) / 1000.0


def format_distance(distance_m: float) -> str:
    """Human-readable distance, e.g. 3.2 km."""
    return f"{distance_m / 1000.0:.1f} km"


def bbox_delta_deg(lat: float, radius_m: float) -> tuple[float, float]:
    """
    Latitude/longitude half-widths in degrees of a box enclosing every point within radius_m
    of a point at `lat`. The longitude half-width is 180 when the circle reaches a pole.
    """
    angular = radius_m / EARTH_RADIUS_M
    dlat = math.degrees(angular)
    ratio = math.sin(angular) / max(1e-12, math.cos(math.radians(lat)))
    if abs(lat) + dlat >= 90.0 or ratio >= 1.0:
        return dlat, 180.0
    return dlat, math.degrees(math.asin(ratio))


def longitude_ranges(lon: float, dlon: float) -> list[tuple[float, float]]:
    """
    Inclusive (low, high) longitude ranges covering lon +/- dlon, split in two when the
    window crosses the antimeridian.
    """
    if dlon >= 180.0:
        return [(-180.0, 180.0)]
    low, high = lon - dlon, lon + dlon
    if low < -180.0:
        return [(low + 360.0, 180.0), (-180.0, high)]
    if high > 180.0:
        return [(low, 180.0), (-180.0, high - 360.0)]
    return [(low, high)]
