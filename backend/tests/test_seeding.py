"""Tests for bulk loading: seed upserts, coordinate backfill, slug backfill and Places import."""
import json

import pytest

from hospitofind.data.db import connect
from hospitofind.data.hospitals_repo import get_hospital_by_name, list_hospitals
from hospitofind.data.seeding import (
    backfill_slugs,
    geocode_missing,
    import_places,
    load_seed_file,
    missing_fields,
    seed_hospitals,
)

RECORDS = [
    {
        "name": "Lagos University Teaching Hospital",
        "address": {"street": "Ishaga Rd", "city": "Idi-Araba", "state": "Lagos"},
        "services": "Emergency, Surgery",
    },
    {"name": "Korle Bu Teaching Hospital", "address": {"city": "Accra", "state": "Ghana"}},
]


def test_load_seed_file_requires_array(tmp_path):
    path = tmp_path / "hospitals.json"
    path.write_text(json.dumps({"name": "x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_seed_file(path)
    path.write_text(json.dumps(RECORDS), encoding="utf-8")
    assert len(load_seed_file(path)) == 2


def test_missing_fields():
    assert missing_fields(RECORDS[0]) == []
    assert missing_fields({"name": " ", "address": {"city": "Accra"}}) == ["name", "state"]


def test_seed_inserts_then_updates(db):
    assert seed_hospitals(db, RECORDS) == (2, 0)
    h = get_hospital_by_name(db, "Lagos University Teaching Hospital")
    assert h.verified is True
    assert h.services == ["Emergency", "Surgery"]
    assert h.slug == "lagos-university-teaching-hospital"

    changed = [{**RECORDS[1], "phone_number": "+233 30 267 4000"}]
    assert seed_hospitals(db, changed) == (0, 1)
    assert get_hospital_by_name(db, "Korle Bu Teaching Hospital").phone_number == "+233 30 267 4000"


def test_geocode_missing(db, make_hospital):
    make_hospital("Found", street="1 Marina")
    make_hospital("Lost", city="Nowhere")
    make_hospital("Already", longitude=1.0, latitude=2.0)

    def geocode(address):
        return (3.39, 6.45) if address.startswith("1 Marina") else (None, None)

    assert geocode_missing(db, geocode) == (1, 1)
    found = get_hospital_by_name(db, "Found")
    assert (found.longitude, found.latitude) == (3.39, 6.45)


def test_backfill_slugs(db, make_hospital):
    h = make_hospital("Old Record")
    with connect(db) as conn:
        conn.execute("UPDATE hospitals SET slug = NULL WHERE hospital_id = ?", (h.hospital_id,))
    assert backfill_slugs(db) == 1
    assert get_hospital_by_name(db, "Old Record").slug == "old-record"
    assert backfill_slugs(db) == 0


def test_import_places_skips_duplicates_and_incomplete(db, make_hospital):
    make_hospital("Existing Hospital", city="Lagos", state="Nigeria")
    places = [
        {"name": "Existing Hospital", "city": "Lagos", "state": "Nigeria"},
        {"name": "New Hospital", "city": "Lagos", "state": "Nigeria", "type": "hospital"},
        {"name": "", "city": "Lagos", "state": "Nigeria"},
    ]
    assert import_places(db, places, created_by="admin-1") == (1, 2)
    new = get_hospital_by_name(db, "New Hospital")
    assert new.verified is True
    assert new.created_by == "admin-1"
    assert len(list_hospitals(db, verified=True)) == 2
