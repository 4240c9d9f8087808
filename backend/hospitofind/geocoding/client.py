"""
Mapbox geocoding v5 client: address -> (longitude, latitude).
Never raises for upstream trouble; a failed lookup returns (None, None) so the hospital is
saved without coordinates.
"""
import logging
import time
from typing import Callable
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

MAPBOX_GEOCODE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
GEOCODE_TIMEOUT_SECONDS = 5.0
GEOCODE_RETRIES = 2
GEOCODE_RETRY_DELAY_SECONDS = 3.0

Coordinates = tuple[float | None, float | None]


def full_address(street: str | None, city: str | None, state: str | None) -> str:
    return ", ".join(p.strip() for p in (street, city, state) if p and p.strip())


class GeocodingClient:
    """Forward geocoding with a fixed-delay retry. 401/403 means a bad token: stop at once."""

    def __init__(
        self,
        token: str,
        base_url: str = MAPBOX_GEOCODE_URL,
        retries: int = GEOCODE_RETRIES,
        retry_delay_seconds: float = GEOCODE_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._token = token
        self._base = base_url.rstrip("/")
        self._retries = max(0, retries)
        self._delay = retry_delay_seconds
        self._sleep = sleep

    def geocode(self, address: str) -> Coordinates:
        address = (address or "").strip()
        if not address:
            logger.warning("telemetry geocode_skipped reason=empty_address")
            return None, None
        if not self._token:
            logger.warning("telemetry geocode_skipped reason=missing_token")
            return None, None

        url = f"{self._base}/{quote(address, safe='')}.json"
        params = {"access_token": self._token, "limit": 1}
        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(timeout=GEOCODE_TIMEOUT_SECONDS) as client:
                    resp = client.get(url, params=params)
                    resp.raise_for_status()
                    data = resp.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status in (401, 403):
                    logger.error("telemetry geocode_unauthorized status=%s", status)
                    return None, None
                logger.warning("telemetry geocode_error attempt=%s status=%s", attempt, status)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("telemetry geocode_error attempt=%s error=%s", attempt, str(e))
            else:
                features = data.get("features") if isinstance(data, dict) else None
                center = features[0].get("center") if features else None
                if not center or len(center) < 2:
                    logger.warning("telemetry geocode_no_result address=%s", address[:80])
                    return None, None
                if attempt > 1:
                    logger.info("telemetry geocode_recovered attempt=%s", attempt)
                return float(center[0]), float(center[1])
            if attempt < attempts:
                self._sleep(self._delay)
        logger.error("telemetry geocode_failed attempts=%s address=%s", attempts, address[:80])
        return None, None
