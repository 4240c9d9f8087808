#!/usr/bin/env python3
"""
Assign URL slugs to hospitals that have none (rows loaded before slugs existed).

Usage:
  python scripts/backfill_slugs.py
  python scripts/backfill_slugs.py --db data/hospitofind.db
"""
import argparse
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from hospitofind.data.db import init_db
from hospitofind.data.seeding import backfill_slugs
from settings import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Backfill hospital slugs")
    parser.add_argument("--db", default=backend / get_settings().db_path, type=Path, help="Path to SQLite DB")
    args = parser.parse_args()

    if not args.db.exists():
        print(f"Error: DB not found: {args.db}", file=sys.stderr)
        return 1
    init_db(args.db)
    count = backfill_slugs(args.db)
    print(f"Assigned slugs to {count} hospitals")
    return 0


if __name__ == "__main__":
    sys.exit(main())
