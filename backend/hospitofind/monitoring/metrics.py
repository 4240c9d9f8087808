"""In-memory request and search metrics for the /metrics endpoint."""
import time
from collections.abc import MutableMapping
from threading import Lock

_start_time = time.monotonic()
_counts: MutableMapping[str, int] = {}
_lock = Lock()


def _incr(key: str) -> None:
    with _lock:
        _counts[key] = _counts.get(key, 0) + 1


def record_request(status_code: int) -> None:
    if 200 <= status_code < 300:
        bucket = "2xx"
    elif 400 <= status_code < 500:
        bucket = "4xx"
    elif status_code >= 500:
        bucket = "5xx"
    else:
        bucket = "other"
    _incr(bucket)


def record_cache_lookup(hit: bool) -> None:
    _incr("proximity_cache_hits" if hit else "proximity_cache_misses")


def record_nearby_fallback() -> None:
    _incr("nearby_fallbacks")


def reset_metrics() -> None:
    with _lock:
        _counts.clear()


def get_metrics() -> dict:
    with _lock:
        counts = dict(_counts)
    uptime_seconds = time.monotonic() - _start_time
    requests = sum(counts.get(b, 0) for b in ("2xx", "4xx", "5xx", "other"))
    return {
        "requests_total": requests,
        "requests_2xx": counts.get("2xx", 0),
        "requests_4xx": counts.get("4xx", 0),
        "requests_5xx": counts.get("5xx", 0),
        "proximity_cache_hits": counts.get("proximity_cache_hits", 0),
        "proximity_cache_misses": counts.get("proximity_cache_misses", 0),
        "nearby_fallbacks": counts.get("nearby_fallbacks", 0),
        "uptime_seconds": round(uptime_seconds, 1),
    }
