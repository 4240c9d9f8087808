"""Tests for Haversine distance and text helpers."""
import math

import pytest

from hospitofind.data.geo import (
    EARTH_RADIUS_M,
    bbox_delta_deg,
    format_distance,
    haversine_distance_km,
    haversine_distance_m,
    longitude_ranges,
)
from hospitofind.data.text import normalize_country, sanitize

LAGOS = (6.5244, 3.3792)
IKEJA = (6.6018, 3.3515)


def test_same_point_zero_distance():
    assert haversine_distance_m(*LAGOS, *LAGOS) == 0.0


def test_symmetry():
    assert haversine_distance_m(*LAGOS, *IKEJA) == haversine_distance_m(*IKEJA, *LAGOS)


def test_antipodal_roughly_half_circumference():
    d = haversine_distance_m(0.0, 0.0, 0.0, 180.0)
    assert abs(d - math.pi * EARTH_RADIUS_M) < 1.0


def test_known_distance_lagos_ikeja():
    # Lagos Island to Ikeja is roughly 9 km
    d = haversine_distance_km(*LAGOS, *IKEJA)
    assert 8.0 < d < 10.0


def test_format_distance_one_decimal():
    assert format_distance(3249.0) == "3.2 km"
    assert format_distance(0.0) == "0.0 km"


def test_bbox_half_widths_cover_radius_at_high_latitude():
    dlat, dlon = bbox_delta_deg(60.0, 500_000)
    assert dlat == pytest.approx(4.4966, abs=1e-3)
    # Widest point of the circle sits poleward of the center, so the flat-earth
    # 500 / (111 * cos 60) estimate is too narrow
    assert dlon == pytest.approx(9.0212, abs=1e-3)
    assert dlon > 500 / (111 * 0.5)


def test_bbox_spans_all_longitudes_near_pole():
    assert bbox_delta_deg(89.0, 500_000)[1] == 180.0


def test_longitude_ranges_within_bounds():
    assert longitude_ranges(3.0, 1.5) == [(1.5, 4.5)]


def test_longitude_ranges_split_at_antimeridian():
    (east_low, east_high), (west_low, west_high) = longitude_ranges(179.95, 0.5)
    assert east_low == pytest.approx(179.45)
    assert east_high == 180.0
    assert west_low == -180.0
    assert west_high == pytest.approx(-179.55)

    (east_low, east_high), (west_low, west_high) = longitude_ranges(-179.95, 0.5)
    assert (east_low, east_high) == (pytest.approx(179.55), 180.0)
    assert (west_low, west_high) == (-180.0, pytest.approx(-179.45))


def test_longitude_ranges_full_circle():
    assert longitude_ranges(10.0, 180.0) == [(-180.0, 180.0)]


def test_sanitize_slug():
    assert sanitize("Saint Nicholas Hospital, Lagos") == "saint-nicholas-hospital-lagos"
    assert sanitize("  Clínica Médica  ") == "clinica-medica"
    assert sanitize("") == ""
    assert sanitize(None) == ""


def test_normalize_country():
    assert normalize_country("Lagos") == "Nigeria"
    assert normalize_country("akwa ibom") == "Nigeria"
    assert normalize_country("nigeria") == "Nigeria"
    assert normalize_country("ghana") == "Ghana"
    assert normalize_country("  ") == "Unknown"
