"""SEO sitemap endpoints. Only verified hospitals are listed."""
from fastapi import APIRouter, HTTPException, Request, Response

from hospitofind.data.hospitals_repo import distinct_cities, distinct_states, hospitals_in_city, list_hospitals
from hospitofind.data.text import sanitize
from hospitofind.routes.common import app_settings, db_path
from hospitofind.sitemaps import builder

router = APIRouter(tags=["sitemaps"])

XML_MEDIA_TYPE = "application/xml"


def _xml(body: str) -> Response:
    return Response(content=body, media_type=XML_MEDIA_TYPE)


def _resolve_state(request: Request, country_slug: str) -> str:
    for state in distinct_states(db_path(request)):
        if sanitize(state) == country_slug:
            return state
    raise HTTPException(status_code=404, detail="Country not found")


@router.get("/sitemap.xml")
def sitemap_index(request: Request):
    return _xml(builder.sitemap_index(app_settings(request).site_url))


@router.get("/sitemap-static.xml")
def sitemap_static(request: Request):
    return _xml(builder.static_sitemap(app_settings(request).frontend_url))


@router.get("/sitemap-countries.xml")
def sitemap_countries(request: Request):
    return _xml(builder.countries_sitemap(app_settings(request).frontend_url, distinct_states(db_path(request))))


@router.get("/sitemap-cities.xml")
def sitemap_cities(request: Request):
    return _xml(builder.cities_sitemap(app_settings(request).frontend_url, distinct_cities(db_path(request))))


@router.get("/sitemap-hospitals.xml")
def sitemap_hospitals(request: Request):
    hospitals = list_hospitals(db_path(request), verified=True)
    return _xml(builder.hospitals_sitemap(app_settings(request).frontend_url, hospitals))


@router.get("/sitemap-images.xml")
def sitemap_images(request: Request):
    hospitals = list_hospitals(db_path(request), verified=True)
    return _xml(builder.images_sitemap(app_settings(request).frontend_url, hospitals))


@router.get("/sitemap-country/{country}.xml")
def sitemap_country(request: Request, country: str):
    state = _resolve_state(request, country)
    cities = [city for _, city in distinct_cities(db_path(request), state)]
    return _xml(builder.country_sitemap(app_settings(request).site_url, state, cities))


@router.get("/sitemap-city/{country}/{city}.xml")
def sitemap_city(request: Request, country: str, city: str):
    db = db_path(request)
    state = _resolve_state(request, country)
    real_city = next((c for _, c in distinct_cities(db, state) if sanitize(c) == city), None)
    if real_city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return _xml(builder.city_sitemap(app_settings(request).frontend_url, hospitals_in_city(db, state, real_city)))
