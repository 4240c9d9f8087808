#!/usr/bin/env python3
"""
Import hospitals for a place from Google Places (text search + details).

Usage:
  python scripts/import_places.py "Lagos, Nigeria"
  python scripts/import_places.py "Accra, Ghana" --limit 10 --db data/hospitofind.db

The query is "<city>, <country>"; imported hospitals are verified and attributed to the
optional --admin-id. Hospitals already present (same name, city and state) are skipped.
Needs GOOGLE_PLACES_API_KEY.
"""
import argparse
import logging
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from hospitofind.data.db import init_db
from hospitofind.data.seeding import import_places
from hospitofind.places.client import PlacesClient, PlacesError, details_to_hospital
from settings import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Import hospitals from Google Places")
    parser.add_argument("query", help='Place to search, e.g. "Lagos, Nigeria"')
    parser.add_argument("--limit", type=int, default=20, help="Max hospitals to import")
    parser.add_argument("--db", default=backend / settings.db_path, type=Path, help="Path to SQLite DB")
    parser.add_argument("--admin-id", default=None, help="User id recorded as created_by")
    args = parser.parse_args()

    if not settings.google_places_api_key:
        print("Error: GOOGLE_PLACES_API_KEY is not set", file=sys.stderr)
        return 1
    city, _, country = args.query.partition(",")
    city, country = city.strip(), country.strip()
    if not city or not country:
        print('Error: query must look like "City, Country"', file=sys.stderr)
        return 1

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    client = PlacesClient(settings.google_places_api_key)
    try:
        results = client.search_hospitals(args.query)[: max(1, args.limit)]
        places = []
        for r in results:
            place_id = r.get("place_id")
            if not place_id:
                continue
            details = client.get_details(place_id)
            if details:
                places.append(details_to_hospital(details, settings.google_places_api_key, city, country))
    except PlacesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    init_db(args.db)
    added, skipped = import_places(args.db, places, created_by=args.admin_id)
    print(f"Imported {added} hospitals for {args.query} ({skipped} skipped)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
