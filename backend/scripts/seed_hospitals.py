#!/usr/bin/env python3
"""
Seed the hospitals table from a JSON file, then geocode hospitals that have no coordinates.

Usage:
  python scripts/seed_hospitals.py
  python scripts/seed_hospitals.py --json data/hospitals.json --db data/hospitofind.db --no-geocode

Every record needs a name and address.city/address.state; the script refuses to seed
anything if one of them is missing. Records are matched by name: existing hospitals are
updated, new ones inserted (verified). Geocoding needs MAPBOX_TOKEN.
"""
import argparse
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from hospitofind.data.db import init_db
from hospitofind.data.seeding import geocode_missing, load_seed_file, missing_fields, seed_hospitals
from hospitofind.geocoding.client import GeocodingClient
from settings import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed hospitals from JSON")
    parser.add_argument("--json", default=backend / "data" / "hospitals.json", type=Path, help="JSON array of hospitals")
    parser.add_argument("--db", default=backend / settings.db_path, type=Path, help="Path to SQLite DB")
    parser.add_argument("--no-geocode", action="store_true", help="Skip geocoding hospitals without coordinates")
    args = parser.parse_args()

    if not args.json.exists():
        print(f"Error: JSON not found: {args.json}", file=sys.stderr)
        return 1

    try:
        records = load_seed_file(args.json)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    invalid = [(i, r, missing_fields(r)) for i, r in enumerate(records, start=1)]
    invalid = [(i, r, m) for i, r, m in invalid if m]
    if invalid:
        print(f"Found {len(invalid)} hospitals missing required fields:", file=sys.stderr)
        for i, record, missing in invalid:
            print(f"  {i}. {record.get('name') or 'Unknown'}: missing {', '.join(missing)}", file=sys.stderr)
        print("Please fix these entries before seeding.", file=sys.stderr)
        return 1

    init_db(args.db)
    inserted, updated = seed_hospitals(args.db, records)
    print(f"Seeded {len(records)} hospitals into {args.db} ({inserted} new, {updated} updated)")

    if not args.no_geocode:
        if not settings.mapbox_token:
            print("MAPBOX_TOKEN not set; skipping geocoding.")
        else:
            ok, failed = geocode_missing(args.db, GeocodingClient(settings.mapbox_token).geocode)
            print(f"Geocoded {ok} hospitals ({failed} without a result)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
