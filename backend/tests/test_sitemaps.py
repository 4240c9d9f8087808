"""Tests for sitemap XML endpoints."""
import xml.etree.ElementTree as ET

import main

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}


def _locs(text: str) -> list[str]:
    return [el.text for el in ET.fromstring(text.encode("utf-8")).iter(f"{{{NS['sm']}}}loc")]


def test_index_lists_sub_sitemaps(client):
    r = client.get("/sitemap.xml")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/xml")
    site = main.app.state.settings.site_url.rstrip("/")
    assert f"{site}/sitemap-hospitals.xml" in _locs(r.text)


def test_hospitals_sitemap_only_verified(client, make_hospital):
    make_hospital("Saint Nicholas Hospital", city="Lagos", state="Nigeria")
    make_hospital("Secret Clinic", verified=False)
    locs = _locs(client.get("/sitemap-hospitals.xml").text)
    frontend = main.app.state.settings.frontend_url.rstrip("/")
    assert locs == [f"{frontend}/hospital/nigeria/lagos/saint-nicholas-hospital"]


def test_images_sitemap_skips_hospitals_without_photo(client, make_hospital):
    make_hospital("With Photo", photo_url="https://img.example.com/a.jpg?w=1&h=2")
    make_hospital("No Photo")
    r = client.get("/sitemap-images.xml")
    assert "/with-photo</loc>" in r.text
    assert "no-photo" not in r.text
    assert "a.jpg?w=1&amp;h=2" in r.text


def test_countries_and_cities(client, make_hospital):
    make_hospital("A", city="Port Harcourt", state="Rivers")
    make_hospital("B", city="Accra", state="Ghana")
    frontend = main.app.state.settings.frontend_url.rstrip("/")
    countries = _locs(client.get("/sitemap-countries.xml").text)
    assert countries == [f"{frontend}/country/ghana", f"{frontend}/country/rivers"]
    cities = _locs(client.get("/sitemap-cities.xml").text)
    assert f"{frontend}/country/rivers/port-harcourt" in cities


def test_country_and_city_sitemaps(client, make_hospital):
    make_hospital("Braithwaite Memorial", city="Port Harcourt", state="Rivers")
    site = main.app.state.settings.site_url.rstrip("/")
    country = client.get("/sitemap-country/rivers.xml")
    assert _locs(country.text) == [f"{site}/sitemap-city/rivers/port-harcourt.xml"]
    city = client.get("/sitemap-city/rivers/port-harcourt.xml")
    assert _locs(city.text)[0].endswith("/hospital/rivers/port-harcourt/braithwaite-memorial")


def test_unknown_country_or_city_is_404(client, make_hospital):
    make_hospital(city="Lagos", state="Nigeria")
    r = client.get("/sitemap-country/atlantis.xml")
    assert r.status_code == 404
    assert r.json()["message"] == "Country not found"
    assert client.get("/sitemap-city/nigeria/atlantis.xml").json()["message"] == "City not found"


def test_static_sitemap(client):
    locs = _locs(client.get("/sitemap-static.xml").text)
    assert any(loc.endswith("/findHospital") for loc in locs)
