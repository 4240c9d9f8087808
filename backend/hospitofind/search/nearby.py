"""
Nearby hospital search: cached result, else geo-index query (or full scan when the index is
missing), else a random sample of verified hospitals flagged as a fallback.
"""
import logging
from typing import Any, Callable

from hospitofind.data.geo import format_distance, haversine_distance_m
from hospitofind.data.hospitals_repo import HospitalRecord, hospital_to_dict
from hospitofind.monitoring.metrics import record_cache_lookup, record_nearby_fallback
from hospitofind.search.cache import ProximityCache, proximity_key

logger = logging.getLogger(__name__)

MAX_RADIUS_M = 500_000
DEFAULT_LIMIT = 3
MIN_LIMIT, MAX_LIMIT = 1, 20

NO_LOCATION_MESSAGE = "Location not provided. Showing a selection of verified hospitals instead."
NO_RESULTS_MESSAGE = "No hospitals found near your location. Showing a selection of verified hospitals instead."


def _scan(
    lat: float,
    lon: float,
    radius_m: float,
    candidates: list[HospitalRecord],
) -> list[tuple[float, HospitalRecord]]:
    with_dist = []
    for h in candidates:
        if h.latitude is None or h.longitude is None or not h.verified:
            continue
        d = haversine_distance_m(lat, lon, h.latitude, h.longitude)
        if d <= radius_m:
            with_dist.append((d, h))
    with_dist.sort(key=lambda x: x[0])
    return with_dist


def _with_distance(distance_m: float, h: HospitalRecord) -> dict[str, Any]:
    d = hospital_to_dict(h)
    d["distance"] = format_distance(distance_m)
    d["distance_m"] = round(distance_m, 1)
    return d


def find_nearby(
    *,
    lat: float | None,
    lon: float | None,
    limit: int = DEFAULT_LIMIT,
    client_ip: str = "",
    cache: ProximityCache,
    has_geo_index: Callable[[], bool],
    query_indexed: Callable[[float, float, float], list[tuple[float, HospitalRecord]]],
    scan_candidates: Callable[[], list[HospitalRecord]],
    random_sample: Callable[[int], list[HospitalRecord]],
    radius_m: float = MAX_RADIUS_M,
) -> dict[str, Any]:
    """
    Return {results, fallback, message}. Proximity results carry `distance` ("x.x km") and
    `distance_m`; fallback results carry neither. Database errors propagate to the caller.
    """
    limit = max(MIN_LIMIT, min(MAX_LIMIT, limit))
    radius_m = min(radius_m, MAX_RADIUS_M)
    key = proximity_key(lat, lon, client_ip, limit)

    cached = cache.get(key)
    record_cache_lookup(hit=cached is not None)
    if cached is not None:
        logger.info("telemetry nearby_served cache_hit=true key=%s", key)
        return cached

    has_coords = lat is not None and lon is not None
    results: list[dict[str, Any]] = []
    if has_coords:
        if has_geo_index():
            nearest = query_indexed(lat, lon, radius_m)
            strategy = "index"
        else:
            logger.warning("telemetry nearby_geo_index_missing scanning=true")
            nearest = _scan(lat, lon, radius_m, scan_candidates())
            strategy = "scan"
        results = [_with_distance(d, h) for d, h in nearest[:limit]]
        logger.info(
            "telemetry nearby_served cache_hit=false strategy=%s count=%s",
            strategy,
            len(results),
        )

    if results:
        payload = {"results": results, "fallback": False, "message": ""}
    else:
        sample = random_sample(limit)
        payload = {
            "results": [hospital_to_dict(h) for h in sample],
            "fallback": True,
            "message": NO_RESULTS_MESSAGE if has_coords else NO_LOCATION_MESSAGE,
        }
        record_nearby_fallback()
        logger.info("telemetry nearby_fallback has_coords=%s count=%s", has_coords, len(sample))

    cache.put(key, payload)
    return payload
