"""
Hospital endpoints: public discovery (listing, search, nearby, explore, share, export),
community submissions and moderation.
"""
import logging
import sqlite3
from collections import defaultdict
from functools import partial

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from hospitofind.auth.dependencies import CurrentUser, get_current_user, get_optional_user, require_admin
from hospitofind.data.db import GEO_INDEX_NAME, has_index
from hospitofind.data.hospitals_repo import (
    count_hospitals,
    create_hospital,
    delete_hospital,
    featured_hospitals,
    find_by_patterns,
    find_duplicate,
    get_hospital,
    get_hospital_by_name,
    get_hospital_by_slug,
    hospital_to_dict,
    list_hospitals,
    nearby_indexed,
    random_hospitals,
    search_filtered,
    update_hospital,
    verified_with_coordinates,
)
from hospitofind.data.shares_repo import create_share_link, get_share_link
from hospitofind.data.text import normalize_country, sanitize
from hospitofind.data.users_repo import list_users, record_view
from hospitofind.export.csv_export import hospitals_to_csv
from hospitofind.middleware.request_logging import client_ip
from hospitofind.moderation.state import ModerationError, approve_fields, edit_fields, verified_on_create
from hospitofind.routes.common import db_path, geocode_address, hospital_or_404
from hospitofind.schemas.hospitals import HospitalCreate, HospitalUpdate, ShareRequest
from hospitofind.search.nearby import DEFAULT_LIMIT, MAX_LIMIT, MIN_LIMIT, find_nearby
from hospitofind.search.ranking import SearchTermError, find_hospitals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hospitals", tags=["hospitals"])
slug_router = APIRouter(tags=["hospitals"])

RANDOM_SAMPLE_SIZE = 3
FEATURED_LIMIT = 6
EXPLORE_TOP_LIMIT = 3
FEATURED_CACHE_KEY = "featured"


def _dicts(hospitals) -> list[dict]:
    return [hospital_to_dict(h) for h in hospitals]


def invalidate_hospital_caches(request: Request) -> None:
    """Drop cached nearby and featured results after any hospital write."""
    request.app.state.proximity_cache.clear()
    request.app.state.featured_cache.clear()


# --- Public discovery ---


@router.get("")
def get_hospitals(request: Request):
    return _dicts(list_hospitals(db_path(request), verified=True))


@router.get("/count")
def get_hospital_count(request: Request):
    return {"count": count_hospitals(db_path(request), verified=True)}


@router.get("/random")
def get_random_hospitals(request: Request):
    return _dicts(random_hospitals(db_path(request), RANDOM_SAMPLE_SIZE))


@router.get("/find")
def find(request: Request, term: str | None = None, city: str | None = None, state: str | None = None):
    """Ranked free-text search, or exact city+state match when both are given."""
    db = db_path(request)
    try:
        found = find_hospitals(
            term=term,
            city=city,
            state=state,
            find_by_patterns=lambda alternatives, limit: find_by_patterns(db, alternatives, limit=limit),
        )
    except SearchTermError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    logger.info("telemetry route=find count=%s", len(found))
    return _dicts(found)


@router.get("/search")
def search(request: Request, address: str | None = None, city: str | None = None, state: str | None = None):
    return _dicts(search_filtered(db_path(request), address=address, city=city, state=state))


@router.get("/nearby")
def nearby(
    request: Request,
    lat: float | None = Query(default=None, ge=-90, le=90),
    lon: float | None = Query(default=None, ge=-180, le=180),
    limit: int = Query(default=DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT),
):
    """Nearest verified hospitals, or a random selection (fallback=true) when none can be located."""
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="lat and lon must be provided together")
    db = db_path(request)
    try:
        return find_nearby(
            lat=lat,
            lon=lon,
            limit=limit,
            client_ip=client_ip(request),
            cache=request.app.state.proximity_cache,
            has_geo_index=partial(has_index, db, GEO_INDEX_NAME),
            query_indexed=partial(nearby_indexed, db),
            scan_candidates=partial(verified_with_coordinates, db),
            random_sample=partial(random_hospitals, db),
        )
    except sqlite3.Error as e:
        logger.error("telemetry nearby_db_error error=%s", str(e))
        raise HTTPException(status_code=503, detail="search unavailable") from e


@router.get("/top")
def top_hospitals(request: Request):
    cache = request.app.state.featured_cache
    cached = cache.get(FEATURED_CACHE_KEY)
    if cached is not None:
        return cached
    result = _dicts(featured_hospitals(db_path(request), FEATURED_LIMIT))
    cache.put(FEATURED_CACHE_KEY, result)
    return result


@router.get("/explore")
def explore(request: Request):
    """Verified hospitals grouped by country."""
    grouped: dict[str, list[dict]] = defaultdict(list)
    for h in list_hospitals(db_path(request), verified=True):
        grouped[normalize_country(h.state)].append(hospital_to_dict(h))
    return dict(sorted(grouped.items()))


@router.get("/explore/top")
def explore_top(request: Request, limit: int = Query(default=EXPLORE_TOP_LIMIT, ge=1, le=MAX_LIMIT)):
    """Up to `limit` verified hospitals per country, featured first, then most recently updated."""
    grouped: dict[str, list[dict]] = defaultdict(list)
    for h in list_hospitals(db_path(request), verified=True, featured_first=True):
        country = normalize_country(h.state)
        if len(grouped[country]) < limit:
            grouped[country].append(hospital_to_dict(h))
    return dict(sorted(grouped.items()))


@router.get("/country/{country}")
def hospitals_for_country(request: Request, country: str):
    """Accepts a country name or the slug of a stored state value."""
    wanted = sanitize(country)
    return [
        hospital_to_dict(h)
        for h in list_hospitals(db_path(request), verified=True)
        if wanted in (sanitize(normalize_country(h.state)), sanitize(h.state))
    ]


@router.get("/stats/countries")
def country_stats(request: Request):
    counts: dict[str, int] = defaultdict(int)
    for h in list_hospitals(db_path(request), verified=True):
        counts[normalize_country(h.state)] += 1
    return [{"country": c, "count": n} for c, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]


@router.post("/share", status_code=201)
def share(request: Request, body: ShareRequest, user: CurrentUser | None = Depends(get_optional_user)):
    db = db_path(request)
    if body.hospital_ids:
        hospitals = [h for h in (get_hospital(db, hid) for hid in body.hospital_ids) if h is not None and h.verified]
    else:
        params = body.search_params
        hospitals = search_filtered(db, address=params.address, city=params.city, state=params.state)
    if not hospitals:
        raise HTTPException(status_code=404, detail="No hospitals found to share")
    link = create_share_link(db, hospitals, created_by=user.id if user else None)
    logger.info("telemetry share_created link_id=%s count=%s", link.link_id, len(hospitals))
    return {"shareable_link": link.link_id, "count": len(link.hospitals)}


@router.get("/share/{link_id}")
def get_shared(request: Request, link_id: str):
    link = get_share_link(db_path(request), link_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Link not found")
    return link.hospitals


@router.get("/export")
def export_csv(request: Request, address: str | None = None, city: str | None = None, state: str | None = None):
    hospitals = search_filtered(db_path(request), address=address, city=city, state=state)
    return Response(
        content=hospitals_to_csv(hospitals),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="hospitals.csv"'},
    )


@router.get("/id/{hospital_id}")
def get_by_id(request: Request, hospital_id: str, user: CurrentUser | None = Depends(get_optional_user)):
    h = hospital_or_404(request, hospital_id)
    if user is not None:
        record_view(db_path(request), user.id, h.hospital_id)
    return hospital_to_dict(h)


@router.get("/name/{name}")
def get_by_name(request: Request, name: str):
    h = get_hospital_by_name(db_path(request), name)
    if h is None:
        raise HTTPException(status_code=404, detail="Hospital not found")
    return hospital_to_dict(h)


@router.get("/sandbox")
def sandbox(request: Request):
    """Community submissions still waiting for review."""
    return _dicts(list_hospitals(db_path(request), verified=False, newest_first=True))


# --- Submissions ---


@router.get("/submissions")
def my_submissions(request: Request, user: CurrentUser = Depends(get_current_user)):
    return _dicts(list_hospitals(db_path(request), verified=None, created_by=user.id, newest_first=True))


@router.post("", status_code=201)
def add_hospital(request: Request, body: HospitalCreate, user: CurrentUser = Depends(get_current_user)):
    db = db_path(request)
    cols = body.to_columns()
    if find_duplicate(db, cols["name"], cols["city"], cols["state"]) is not None:
        raise HTTPException(status_code=409, detail="Hospital already exists")
    if cols.get("longitude") is None:
        lon, lat = geocode_address(request, cols["street"], cols["city"], cols["state"])
        cols.update(longitude=lon, latitude=lat)
    verified = verified_on_create(user.role)
    if user.is_admin and body.verified is not None:
        verified = body.verified
    h = create_hospital(
        db,
        **cols,
        verified=verified,
        is_featured=bool(body.is_featured) if user.is_admin else False,
        created_by=user.id,
    )
    logger.info("telemetry hospital_created id=%s verified=%s by=%s", h.hospital_id, h.verified, user.id)
    if h.verified or h.is_featured:
        invalidate_hospital_caches(request)
    return {"message": "New hospital created", "hospital": hospital_to_dict(h)}


def apply_edit(request: Request, hospital_id: str, changes: dict, user: CurrentUser) -> dict:
    """Shared by the owner/admin edit endpoints: permission, duplicate check, re-geocode, save."""
    db = db_path(request)
    h = hospital_or_404(request, hospital_id)
    try:
        fields = edit_fields(h, changes, actor_id=user.id, actor_role=user.role)
    except ModerationError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e

    name = fields.get("name", h.name)
    city = fields.get("city", h.city)
    state = fields.get("state", h.state)
    if (name, city, state) != (h.name, h.city, h.state):
        if find_duplicate(db, name, city, state, exclude_id=h.hospital_id) is not None:
            raise HTTPException(status_code=409, detail="Hospital already exists")

    street = fields.get("street", h.street)
    address_changed = (street, city, state) != (h.street, h.city, h.state)
    if address_changed and "longitude" not in fields:
        lon, lat = geocode_address(request, street, city, state)
        if lon is not None and lat is not None:
            fields.update(longitude=lon, latitude=lat)
        else:
            logger.warning("telemetry geocode_kept_old_coordinates id=%s", h.hospital_id)

    updated = update_hospital(db, h.hospital_id, **fields)
    if updated is None:
        raise HTTPException(status_code=404, detail="Hospital not found")
    invalidate_hospital_caches(request)
    logger.info(
        "telemetry hospital_updated id=%s verified=%s by=%s role=%s",
        updated.hospital_id,
        updated.verified,
        user.id,
        user.role,
    )
    return {"message": f"{updated.name} updated successfully", "hospital": hospital_to_dict(updated)}


@router.patch("/approve/{hospital_id}")
def approve(
    request: Request,
    hospital_id: str,
    body: HospitalUpdate | None = None,
    admin: CurrentUser = Depends(require_admin),
):
    """Publish a pending hospital, optionally applying corrections made during review."""
    h = hospital_or_404(request, hospital_id)
    fields = approve_fields(admin.role, body.to_columns() if body is not None else None)
    result = apply_edit(request, h.hospital_id, fields, admin)
    result["message"] = f"{result['hospital']['name']} approved"
    return result


@router.patch("/{hospital_id}")
def edit_hospital(
    request: Request,
    hospital_id: str,
    body: HospitalUpdate,
    user: CurrentUser = Depends(get_current_user),
):
    return apply_edit(request, hospital_id, body.to_columns(), user)


@router.delete("/{hospital_id}")
def remove_hospital(request: Request, hospital_id: str, admin: CurrentUser = Depends(require_admin)):
    h = hospital_or_404(request, hospital_id)
    delete_hospital(db_path(request), h.hospital_id)
    invalidate_hospital_caches(request)
    logger.info("telemetry hospital_deleted id=%s by=%s", h.hospital_id, admin.id)
    return {"message": f"{h.name} deleted"}


# --- Moderation dashboard ---


@router.get("/admin/stats")
def admin_stats(request: Request, admin: CurrentUser = Depends(require_admin)):
    db = db_path(request)
    total = count_hospitals(db, verified=None)
    verified = count_hospitals(db, verified=True)
    return {
        "total_hospitals": total,
        "verified_hospitals": verified,
        "pending_hospitals": total - verified,
        "total_users": len(list_users(db)),
    }


@router.get("/admin/pending")
def admin_pending(request: Request, admin: CurrentUser = Depends(require_admin)):
    return _dicts(list_hospitals(db_path(request), verified=False, newest_first=True))


# --- Public hospital pages ---


@slug_router.get("/hospital/{country}/{city}/{slug}")
def get_by_slug(request: Request, country: str, city: str, slug: str):
    h = get_hospital_by_slug(db_path(request), slug, state_slug=sanitize(country), city_slug=sanitize(city))
    if h is None:
        raise HTTPException(status_code=404, detail="Hospital not found")
    return hospital_to_dict(h)
