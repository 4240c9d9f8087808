"""Tests for nearby hospital search: ordering, radius, verification filter, caching and fallback."""
import sqlite3
from unittest.mock import patch

from hospitofind.data import hospitals_repo
from hospitofind.data.db import init_db
from hospitofind.monitoring.metrics import get_metrics, reset_metrics
from hospitofind.search.cache import ProximityCache
from hospitofind.search.nearby import NO_LOCATION_MESSAGE, NO_RESULTS_MESSAGE, find_nearby

LAGOS_LAT, LAGOS_LON = 6.5244, 3.3792


def _seed_lagos(make_hospital):
    """Three verified hospitals within 10 km of central Lagos and one roughly 600 km east."""
    near = make_hospital("Island Clinic", latitude=LAGOS_LAT + 0.01, longitude=LAGOS_LON)
    mid = make_hospital("Yaba Hospital", latitude=LAGOS_LAT + 0.03, longitude=LAGOS_LON + 0.02)
    far = make_hospital("Lekki Hospital", latitude=LAGOS_LAT - 0.05, longitude=LAGOS_LON + 0.04)
    make_hospital("Enugu Teaching Hospital", city="Enugu", state="Enugu", latitude=LAGOS_LAT, longitude=LAGOS_LON + 5.45)
    return near, mid, far


def _nearby_params(limit=2):
    return {"lat": LAGOS_LAT, "lon": LAGOS_LON, "limit": limit}


def test_nearest_first_within_limit(client, make_hospital):
    near, mid, _ = _seed_lagos(make_hospital)
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=2))
    assert r.status_code == 200
    body = r.json()
    assert body["fallback"] is False
    assert body["message"] == ""
    assert [h["id"] for h in body["results"]] == [near.hospital_id, mid.hospital_id]
    distances = [h["distance_m"] for h in body["results"]]
    assert distances == sorted(distances)
    assert body["results"][0]["distance"].endswith(" km")


def test_hospitals_beyond_radius_excluded(client, make_hospital):
    _seed_lagos(make_hospital)
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=20))
    names = [h["name"] for h in r.json()["results"]]
    assert "Enugu Teaching Hospital" not in names
    assert len(names) == 3
    assert all(h["distance_m"] <= 500_000 for h in r.json()["results"])


def test_unverified_hospitals_excluded(client, make_hospital):
    make_hospital("Pending Clinic", verified=False, latitude=LAGOS_LAT, longitude=LAGOS_LON)
    visible = make_hospital("Visible Clinic", latitude=LAGOS_LAT + 0.01, longitude=LAGOS_LON)
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=5))
    body = r.json()
    assert body["fallback"] is False
    assert [h["id"] for h in body["results"]] == [visible.hospital_id]


def test_hospital_across_antimeridian_found(client, make_hospital):
    # About 10.6 km apart on either side of the 180th meridian
    h = make_hospital("Taveuni Hospital", city="Taveuni", state="Fiji", latitude=-16.8, longitude=-179.95)
    r = client.get("/hospitals/nearby", params={"lat": -16.8, "lon": 179.95, "limit": 3})
    body = r.json()
    assert body["fallback"] is False
    assert [x["id"] for x in body["results"]] == [h.hospital_id]
    assert 10_000 < body["results"][0]["distance_m"] < 11_000


def test_indexed_and_scan_agree_across_antimeridian(db, make_hospital):
    make_hospital("Taveuni Hospital", city="Taveuni", state="Fiji", latitude=-16.8, longitude=-179.95)
    make_hospital("Labasa Hospital", city="Labasa", state="Fiji", latitude=-16.43, longitude=179.39)
    indexed = hospitals_repo.nearby_indexed(db, -16.8, 179.95, 500_000)
    assert [h.name for _, h in indexed] == ["Taveuni Hospital", "Labasa Hospital"]
    scanned = find_nearby(
        lat=-16.8,
        lon=179.95,
        limit=5,
        cache=ProximityCache(),
        has_geo_index=lambda: False,
        query_indexed=lambda *a: [],
        scan_candidates=lambda: hospitals_repo.verified_with_coordinates(db),
        random_sample=lambda n: [],
    )
    assert [x["name"] for x in scanned["results"]] == ["Taveuni Hospital", "Labasa Hospital"]


def test_hidden_hospital_dropped_from_cached_results(client, admin, auth, make_hospital):
    near, mid, far = _seed_lagos(make_hospital)
    first = client.get("/hospitals/nearby", params=_nearby_params(limit=3)).json()
    assert [h["id"] for h in first["results"]] == [near.hospital_id, mid.hospital_id, far.hospital_id]

    r = client.patch(f"/admin/hospitals/{near.hospital_id}/toggle-status", headers=auth(admin))
    assert r.json()["hospital"]["verified"] is False

    second = client.get("/hospitals/nearby", params=_nearby_params(limit=3)).json()
    assert [h["id"] for h in second["results"]] == [mid.hospital_id, far.hospital_id]
    assert all(h["verified"] for h in second["results"])


def test_owner_edit_and_delete_refresh_cached_results(client, user, admin, auth, make_hospital):
    own = make_hospital("Island Clinic", created_by=user.user_id, latitude=LAGOS_LAT + 0.01, longitude=LAGOS_LON)
    mid = make_hospital("Yaba Hospital", latitude=LAGOS_LAT + 0.03, longitude=LAGOS_LON + 0.02)
    far = make_hospital("Lekki Hospital", latitude=LAGOS_LAT - 0.05, longitude=LAGOS_LON + 0.04)
    client.get("/hospitals/nearby", params=_nearby_params(limit=3))

    client.patch(f"/hospitals/{own.hospital_id}", json={"phone_number": "0800"}, headers=auth(user))
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=3))
    assert [h["id"] for h in r.json()["results"]] == [mid.hospital_id, far.hospital_id]

    client.delete(f"/hospitals/{mid.hospital_id}", headers=auth(admin))
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=3))
    assert [h["id"] for h in r.json()["results"]] == [far.hospital_id]


def test_repeated_query_served_from_cache(client, make_hospital):
    _seed_lagos(make_hospital)
    reset_metrics()
    with patch("hospitofind.routes.hospitals.nearby_indexed", wraps=hospitals_repo.nearby_indexed) as query:
        first = client.get("/hospitals/nearby", params=_nearby_params())
        # Coordinates round to the same 2-decimal key
        second = client.get("/hospitals/nearby", params={"lat": 6.5241, "lon": 3.3789, "limit": 2})
    assert query.call_count == 1
    assert first.json() == second.json()
    m = get_metrics()
    assert m["proximity_cache_hits"] == 1
    assert m["proximity_cache_misses"] == 1


def test_different_limit_is_a_different_cache_entry(client, make_hospital):
    _seed_lagos(make_hospital)
    client.get("/hospitals/nearby", params=_nearby_params(limit=1))
    r = client.get("/hospitals/nearby", params=_nearby_params(limit=3))
    assert len(r.json()["results"]) == 3


def test_no_coordinates_falls_back_to_random_sample(client, make_hospital):
    _seed_lagos(make_hospital)
    r = client.get("/hospitals/nearby")
    body = r.json()
    assert r.status_code == 200
    assert body["fallback"] is True
    assert body["message"] == NO_LOCATION_MESSAGE
    assert len(body["results"]) == 3
    assert all("distance" not in h for h in body["results"])


def test_nothing_within_radius_falls_back(client, make_hospital):
    make_hospital("Nairobi Hospital", city="Nairobi", state="Kenya", latitude=-1.2921, longitude=36.8219)
    r = client.get("/hospitals/nearby", params=_nearby_params())
    body = r.json()
    assert body["fallback"] is True
    assert body["message"] == NO_RESULTS_MESSAGE
    assert [h["name"] for h in body["results"]] == ["Nairobi Hospital"]


def test_lat_without_lon_rejected(client):
    r = client.get("/hospitals/nearby", params={"lat": LAGOS_LAT})
    assert r.status_code == 400
    assert set(r.json()) == {"message", "request_id"}


def test_out_of_range_limit_rejected(client):
    r = client.get("/hospitals/nearby", params={"lat": LAGOS_LAT, "lon": LAGOS_LON, "limit": 50})
    assert r.status_code == 400


def test_database_error_is_503(client, make_hospital):
    _seed_lagos(make_hospital)
    with patch("hospitofind.routes.hospitals.nearby_indexed", side_effect=sqlite3.OperationalError("disk I/O error")):
        r = client.get("/hospitals/nearby", params=_nearby_params())
    assert r.status_code == 503
    assert r.json()["message"] == "search unavailable"


def test_full_scan_when_geo_index_missing(tmp_path):
    db = tmp_path / "noindex.db"
    init_db(db, with_geo_index=False)
    near = hospitals_repo.create_hospital(
        db, name="Island Clinic", city="Lagos", state="Lagos", verified=True,
        latitude=LAGOS_LAT + 0.01, longitude=LAGOS_LON,
    )
    hospitals_repo.create_hospital(
        db, name="Hidden Clinic", city="Lagos", state="Lagos", verified=False,
        latitude=LAGOS_LAT, longitude=LAGOS_LON,
    )

    def no_index_query(*args):
        raise AssertionError("indexed query used without an index")

    result = find_nearby(
        lat=LAGOS_LAT,
        lon=LAGOS_LON,
        limit=3,
        cache=ProximityCache(),
        has_geo_index=lambda: False,
        query_indexed=no_index_query,
        scan_candidates=lambda: hospitals_repo.verified_with_coordinates(db),
        random_sample=lambda n: hospitals_repo.random_hospitals(db, n),
    )
    assert result["fallback"] is False
    assert [h["id"] for h in result["results"]] == [near.hospital_id]


def test_limit_clamped_into_range():
    calls = []

    def sample(n):
        calls.append(n)
        return []

    find_nearby(
        lat=None,
        lon=None,
        limit=99,
        cache=ProximityCache(),
        has_geo_index=lambda: True,
        query_indexed=lambda *a: [],
        scan_candidates=lambda: [],
        random_sample=sample,
    )
    assert calls == [20]
