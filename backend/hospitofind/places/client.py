"""
Google Places client used by the bulk importer: text search for hospitals in a place, then
details for each result, mapped to hospital column values.
"""
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

PLACES_BASE = "https://maps.googleapis.com/maps/api/place"
PLACES_TIMEOUT_SECONDS = 10.0
PHOTO_MAX_WIDTH = 800
DETAIL_FIELDS = (
    "name,formatted_address,formatted_phone_number,website,opening_hours,photos,geometry,types,address_components"
)


class PlacesError(RuntimeError):
    """Upstream returned an error status or an unreadable response."""


def format_hours(opening_hours: dict[str, Any] | None) -> list[dict[str, str]]:
    """Google weekday_text lines ("Monday: 8:00 AM – 5:00 PM") -> [{"day", "open"}]."""
    if not opening_hours or not opening_hours.get("weekday_text"):
        return []
    hours = []
    for text in opening_hours["weekday_text"]:
        day, _, open_ = str(text).partition(": ")
        hours.append({"day": day, "open": open_})
    return hours


def photo_url(photo_reference: str | None, api_key: str) -> str:
    if not photo_reference:
        return ""
    return (
        f"{PLACES_BASE}/photo?maxwidth={PHOTO_MAX_WIDTH}"
        f"&photoreference={photo_reference}&key={api_key}"
    )


def _component(components: list[dict[str, Any]], kind: str) -> str:
    for c in components or []:
        if kind in c.get("types", []):
            return c.get("long_name", "")
    return ""


def details_to_hospital(details: dict[str, Any], api_key: str, city: str, state: str) -> dict[str, Any]:
    """Map a Place Details result to create_hospital keyword arguments."""
    components = details.get("address_components") or []
    location = (details.get("geometry") or {}).get("location") or {}
    photos = details.get("photos") or []
    street = " ".join(
        p for p in (_component(components, "street_number"), _component(components, "route")) if p
    )
    return {
        "name": details.get("name", "").strip(),
        "street": street or details.get("formatted_address", ""),
        "city": _component(components, "locality") or city,
        "state": _component(components, "administrative_area_level_1") or state,
        "phone_number": details.get("formatted_phone_number"),
        "website": details.get("website"),
        "photo_url": photo_url(photos[0].get("photo_reference") if photos else None, api_key) or None,
        "type": "hospital",
        "hours": format_hours(details.get("opening_hours")),
        "longitude": location.get("lng"),
        "latitude": location.get("lat"),
    }


class PlacesClient:
    def __init__(self, api_key: str, base_url: str = PLACES_BASE):
        self._api_key = api_key
        self._base = base_url.rstrip("/")

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=PLACES_TIMEOUT_SECONDS) as client:
                resp = client.get(f"{self._base}/{path}", params={**params, "key": self._api_key})
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PlacesError(f"Places request failed: {e}") from e
        status = data.get("status")
        if status not in ("OK", "ZERO_RESULTS"):
            raise PlacesError(f"Places API status {status}: {data.get('error_message', '')}")
        return data

    def search_hospitals(self, query: str) -> list[dict[str, Any]]:
        """Text search "hospitals in <query>"; returns raw results (place_id, name, ...)."""
        data = self._get("textsearch/json", {"query": f"hospitals in {query}", "type": "hospital"})
        results = data.get("results") or []
        logger.info("telemetry places_search query=%s count=%s", query, len(results))
        return results

    def get_details(self, place_id: str) -> dict[str, Any]:
        data = self._get("details/json", {"place_id": place_id, "fields": DETAIL_FIELDS})
        return data.get("result") or {}
