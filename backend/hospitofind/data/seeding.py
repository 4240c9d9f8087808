"""
Bulk loading helpers shared by the seed and import scripts.
Seed records use the API's nested shape: {"name", "address": {"street", "city", "state"}, ...}.
"""
import json
import logging
from pathlib import Path
from typing import Any, Callable

from hospitofind.data.hospitals_repo import (
    assign_slug,
    create_hospital,
    find_duplicate,
    missing_coordinates,
    missing_slug,
    update_hospital,
    upsert_by_name,
)
from hospitofind.geocoding.client import full_address

logger = logging.getLogger(__name__)

Geocode = Callable[[str], tuple[float | None, float | None]]

_PASSTHROUGH = (
    "phone_number", "website", "email", "photo_url", "type", "services", "comments", "hours",
    "is_featured", "longitude", "latitude",
)


def load_seed_file(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Seed file must contain a JSON array of hospitals.")
    return data


def missing_fields(record: dict[str, Any]) -> list[str]:
    """Required fields absent from a seed record (name, city, state)."""
    address = record.get("address") or {}
    missing = []
    if not str(record.get("name") or "").strip():
        missing.append("name")
    for key in ("city", "state"):
        if not str(address.get(key) or "").strip():
            missing.append(key)
    return missing


def to_columns(record: dict[str, Any]) -> dict[str, Any]:
    address = record.get("address") or {}
    cols = {k: record[k] for k in _PASSTHROUGH if record.get(k) is not None}
    cols.update(
        name=str(record["name"]).strip(),
        street=str(address.get("street") or "").strip(),
        city=str(address["city"]).strip(),
        state=str(address["state"]).strip(),
    )
    if isinstance(cols.get("services"), str):
        cols["services"] = [s.strip() for s in cols["services"].split(",") if s.strip()]
    return cols


def seed_hospitals(db_path: Path, records: list[dict[str, Any]], *, verified: bool = True) -> tuple[int, int]:
    """Upsert every record by name. Returns (inserted, updated). Callers validate first."""
    inserted = updated = 0
    for record in records:
        cols = to_columns(record)
        cols["verified"] = verified
        if upsert_by_name(db_path, cols):
            inserted += 1
        else:
            updated += 1
    logger.info("telemetry seed_done inserted=%s updated=%s", inserted, updated)
    return inserted, updated


def geocode_missing(db_path: Path, geocode: Geocode) -> tuple[int, int]:
    """Fill coordinates for hospitals that have none. Returns (geocoded, failed)."""
    ok = failed = 0
    for h in missing_coordinates(db_path):
        lon, lat = geocode(full_address(h.street, h.city, h.state))
        if lon is None or lat is None:
            failed += 1
            continue
        update_hospital(db_path, h.hospital_id, longitude=lon, latitude=lat)
        ok += 1
    logger.info("telemetry geocode_backfill ok=%s failed=%s", ok, failed)
    return ok, failed


def backfill_slugs(db_path: Path) -> int:
    count = 0
    for h in missing_slug(db_path):
        if assign_slug(db_path, h.hospital_id) is not None:
            count += 1
    return count


def import_places(
    db_path: Path,
    places: list[dict[str, Any]],
    *,
    created_by: str | None = None,
) -> tuple[int, int]:
    """Insert Places-derived hospitals as verified, skipping name+city+state duplicates. Returns (added, skipped)."""
    added = skipped = 0
    for cols in places:
        if not cols.get("name") or not cols.get("city") or not cols.get("state"):
            skipped += 1
            continue
        if find_duplicate(db_path, cols["name"], cols["city"], cols["state"]) is not None:
            skipped += 1
            continue
        create_hospital(db_path, **cols, verified=True, created_by=created_by)
        added += 1
    return added, skipped
