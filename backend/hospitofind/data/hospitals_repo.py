"""
Hospitals table: CRUD, slugging, pattern search and proximity queries.
"""
import json
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any, NamedTuple

from hospitofind.data.db import GEO_INDEX_NAME, connect, utcnow_iso
from hospitofind.data.geo import bbox_delta_deg, haversine_distance_m, longitude_ranges
from hospitofind.data.text import sanitize

SLUG_MAX_SUFFIX = 10

# Columns a caller may filter by pattern
SEARCHABLE_COLUMNS = frozenset({"name", "street", "city", "state"})

_JSON_COLUMNS = ("services", "comments", "hours")
_UPDATABLE_COLUMNS = frozenset(
    {
        "name", "street", "city", "state", "phone_number", "website", "email", "photo_url",
        "type", "services", "comments", "hours", "is_featured", "verified", "longitude", "latitude",
    }
)


class HospitalRecord(NamedTuple):
    hospital_id: str
    name: str
    slug: str | None
    street: str
    city: str
    state: str
    phone_number: str | None
    website: str | None
    email: str | None
    photo_url: str | None
    type: str | None
    services: list[str]
    comments: list[str]
    hours: list[dict[str, str]]
    is_featured: bool
    verified: bool
    created_by: str | None
    longitude: float | None
    latitude: float | None
    created_at: str
    updated_at: str


class PatternCondition(NamedTuple):
    """Column must match a regex pattern."""
    column: str
    pattern: str


def _loads_list(raw: str | None) -> list:
    if not raw:
        return []
    value = json.loads(raw)
    return value if isinstance(value, list) else []


def row_to_hospital(r: sqlite3.Row) -> HospitalRecord:
    return HospitalRecord(
        hospital_id=r["hospital_id"],
        name=r["name"],
        slug=r["slug"],
        street=r["street"] or "",
        city=r["city"],
        state=r["state"],
        phone_number=r["phone_number"],
        website=r["website"],
        email=r["email"],
        photo_url=r["photo_url"],
        type=r["type"],
        services=_loads_list(r["services"]),
        comments=_loads_list(r["comments"]),
        hours=_loads_list(r["hours"]),
        is_featured=bool(r["is_featured"]),
        verified=bool(r["verified"]),
        created_by=r["created_by"],
        longitude=float(r["longitude"]) if r["longitude"] is not None else None,
        latitude=float(r["latitude"]) if r["latitude"] is not None else None,
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def hospital_to_dict(h: HospitalRecord) -> dict[str, Any]:
    """API shape; location is the GeoJSON point derived from longitude/latitude."""
    location = None
    if h.longitude is not None and h.latitude is not None:
        location = {"type": "Point", "coordinates": [h.longitude, h.latitude]}
    return {
        "id": h.hospital_id,
        "name": h.name,
        "slug": h.slug,
        "address": {"street": h.street, "city": h.city, "state": h.state},
        "phone_number": h.phone_number,
        "website": h.website,
        "email": h.email,
        "photo_url": h.photo_url,
        "type": h.type,
        "services": h.services,
        "comments": h.comments,
        "hours": h.hours,
        "is_featured": h.is_featured,
        "verified": h.verified,
        "created_by": h.created_by,
        "longitude": h.longitude,
        "latitude": h.latitude,
        "location": location,
        "created_at": h.created_at,
        "updated_at": h.updated_at,
    }


def _unique_slug(conn: sqlite3.Connection, name: str, city: str, state: str, hospital_id: str) -> str:
    """Slug unique within (state, city): base, base-1 .. base-10, then base-<last 6 of id>."""
    base = sanitize(name) or "hospital"
    slug = base
    i = 0
    while conn.execute(
        "SELECT 1 FROM hospitals WHERE state = ? AND city = ? AND slug = ? AND hospital_id != ?",
        (state, city, slug, hospital_id),
    ).fetchone():
        i += 1
        slug = f"{base}-{i}"
        if i > SLUG_MAX_SUFFIX:
            slug = f"{base}-{hospital_id.replace('-', '')[-6:]}"
            break
    return slug


def create_hospital(
    db_path: str | Path,
    *,
    name: str,
    city: str,
    state: str,
    street: str = "",
    phone_number: str | None = None,
    website: str | None = None,
    email: str | None = None,
    photo_url: str | None = None,
    type: str | None = None,
    services: list[str] | None = None,
    comments: list[str] | None = None,
    hours: list[dict[str, str]] | None = None,
    is_featured: bool = False,
    verified: bool = False,
    created_by: str | None = None,
    longitude: float | None = None,
    latitude: float | None = None,
    hospital_id: str | None = None,
) -> HospitalRecord:
    hid = hospital_id or str(uuid.uuid4())
    now = utcnow_iso()
    with connect(db_path) as conn:
        slug = _unique_slug(conn, name, city, state, hid)
        conn.execute(
            """
            INSERT INTO hospitals
                (hospital_id, name, slug, street, city, state, phone_number, website, email,
                 photo_url, type, services, comments, hours, is_featured, verified, created_by,
                 longitude, latitude, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                hid, name, slug, street or "", city, state, phone_number, website, email,
                photo_url, type,
                json.dumps(services or []), json.dumps(comments or []), json.dumps(hours or []),
                int(is_featured), int(verified), created_by,
                longitude, latitude, now, now,
            ),
        )
        r = conn.execute("SELECT * FROM hospitals WHERE hospital_id = ?", (hid,)).fetchone()
    return row_to_hospital(r)


def get_hospital(db_path: str | Path, hospital_id: str) -> HospitalRecord | None:
    with connect(db_path) as conn:
        r = conn.execute("SELECT * FROM hospitals WHERE hospital_id = ?", (hospital_id,)).fetchone()
    return row_to_hospital(r) if r is not None else None


def get_hospital_by_name(db_path: str | Path, name: str, verified_only: bool = True) -> HospitalRecord | None:
    sql = "SELECT * FROM hospitals WHERE name = ?"
    if verified_only:
        sql += " AND verified = 1"
    with connect(db_path) as conn:
        r = conn.execute(sql + " LIMIT 1", (name,)).fetchone()
    return row_to_hospital(r) if r is not None else None


def get_hospital_by_slug(
    db_path: str | Path,
    slug: str,
    state_slug: str | None = None,
    city_slug: str | None = None,
) -> HospitalRecord | None:
    """
    Resolve a public hospital URL. Tries slug within (state, city) slugs, then slug alone,
    then a name prefix derived from the slug, then the raw id.
    """
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM hospitals WHERE slug = ? AND verified = 1", (slug,)).fetchall()
        if state_slug and city_slug:
            for r in rows:
                if sanitize(r["state"]) == state_slug and sanitize(r["city"]) == city_slug:
                    return row_to_hospital(r)
        if rows:
            return row_to_hospital(rows[0])
        prefix = "(?i)^" + re.escape(slug.replace("-", " "))
        r = conn.execute(
            "SELECT * FROM hospitals WHERE verified = 1 AND name REGEXP ? LIMIT 1", (prefix,)
        ).fetchone()
        if r is None:
            r = conn.execute(
                "SELECT * FROM hospitals WHERE verified = 1 AND hospital_id = ?", (slug,)
            ).fetchone()
    return row_to_hospital(r) if r is not None else None


def find_duplicate(
    db_path: str | Path,
    name: str,
    city: str,
    state: str | None = None,
    exclude_id: str | None = None,
) -> HospitalRecord | None:
    """Case-insensitive match on name + city (+ state when given), optionally excluding one id."""
    sql = "SELECT * FROM hospitals WHERE name = ? COLLATE NOCASE AND city = ? COLLATE NOCASE"
    params: list[Any] = [name.strip(), city.strip()]
    if state is not None:
        sql += " AND state = ? COLLATE NOCASE"
        params.append(state.strip())
    if exclude_id:
        sql += " AND hospital_id != ?"
        params.append(exclude_id)
    with connect(db_path) as conn:
        r = conn.execute(sql + " LIMIT 1", params).fetchone()
    return row_to_hospital(r) if r is not None else None


def update_hospital(db_path: str | Path, hospital_id: str, **fields: Any) -> HospitalRecord | None:
    """Update the given columns. Returns the updated record, or None if the id does not exist."""
    unknown = set(fields) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
    if not fields:
        return get_hospital(db_path, hospital_id)
    values: list[Any] = []
    for col, value in fields.items():
        if col in _JSON_COLUMNS:
            value = json.dumps(value or [])
        elif col in ("is_featured", "verified"):
            value = int(bool(value))
        elif col == "street":
            value = value or ""
        values.append(value)
    assignments = ", ".join(f"{col} = ?" for col in fields)
    with connect(db_path) as conn:
        cur = conn.execute(
            f"UPDATE hospitals SET {assignments}, updated_at = ? WHERE hospital_id = ?",
            values + [utcnow_iso(), hospital_id],
        )
        if cur.rowcount == 0:
            return None
    return get_hospital(db_path, hospital_id)


def delete_hospital(db_path: str | Path, hospital_id: str) -> bool:
    """Delete a hospital and its favorite/view rows. Returns True if a hospital was deleted."""
    with connect(db_path) as conn:
        cur = conn.execute("DELETE FROM hospitals WHERE hospital_id = ?", (hospital_id,))
        conn.execute("DELETE FROM user_favorites WHERE hospital_id = ?", (hospital_id,))
        conn.execute("DELETE FROM recently_viewed WHERE hospital_id = ?", (hospital_id,))
        return cur.rowcount > 0


def list_hospitals(
    db_path: str | Path,
    *,
    verified: bool | None = True,
    created_by: str | None = None,
    newest_first: bool = False,
    featured_first: bool = False,
    limit: int | None = None,
) -> list[HospitalRecord]:
    clauses: list[str] = []
    params: list[Any] = []
    if verified is not None:
        clauses.append("verified = ?")
        params.append(int(verified))
    if created_by is not None:
        clauses.append("created_by = ?")
        params.append(created_by)
    sql = "SELECT * FROM hospitals"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    if featured_first:
        sql += " ORDER BY is_featured DESC, updated_at DESC, name"
    elif newest_first:
        sql += " ORDER BY created_at DESC"
    else:
        sql += " ORDER BY name"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    with connect(db_path) as conn:
        return [row_to_hospital(r) for r in conn.execute(sql, params).fetchall()]


def count_hospitals(db_path: str | Path, *, verified: bool | None = True, created_by: str | None = None) -> int:
    clauses: list[str] = []
    params: list[Any] = []
    if verified is not None:
        clauses.append("verified = ?")
        params.append(int(verified))
    if created_by is not None:
        clauses.append("created_by = ?")
        params.append(created_by)
    sql = "SELECT COUNT(*) FROM hospitals"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    with connect(db_path) as conn:
        return int(conn.execute(sql, params).fetchone()[0])


def random_hospitals(db_path: str | Path, limit: int) -> list[HospitalRecord]:
    """Random sample of verified hospitals."""
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM hospitals WHERE verified = 1 ORDER BY RANDOM() LIMIT ?", (limit,)
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


def featured_hospitals(db_path: str | Path, limit: int = 6) -> list[HospitalRecord]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM hospitals WHERE verified = 1 AND is_featured = 1 ORDER BY updated_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


def find_by_patterns(
    db_path: str | Path,
    alternatives: list[list[PatternCondition]],
    *,
    limit: int = 100,
) -> list[HospitalRecord]:
    """
    Verified hospitals matching ANY alternative, where an alternative matches when ALL of its
    conditions match. Patterns are Python regexes evaluated by the connection's REGEXP function.
    """
    if not alternatives:
        return []
    groups: list[str] = []
    params: list[Any] = []
    for conds in alternatives:
        if not conds:
            continue
        parts = []
        for cond in conds:
            if cond.column not in SEARCHABLE_COLUMNS:
                raise ValueError(f"Column not searchable: {cond.column}")
            parts.append(f"{cond.column} REGEXP ?")
            params.append(cond.pattern)
        groups.append("(" + " AND ".join(parts) + ")")
    if not groups:
        return []
    sql = f"SELECT * FROM hospitals WHERE verified = 1 AND ({' OR '.join(groups)}) LIMIT ?"
    with connect(db_path) as conn:
        rows = conn.execute(sql, params + [limit]).fetchall()
    return [row_to_hospital(r) for r in rows]


def search_filtered(
    db_path: str | Path,
    *,
    address: str | None = None,
    city: str | None = None,
    state: str | None = None,
    limit: int | None = None,
) -> list[HospitalRecord]:
    """
    Verified hospitals where name or street contains `address`, city contains `city` and state
    contains `state` (each case-insensitive, only when given).
    """
    clauses = ["verified = 1"]
    params: list[Any] = []
    if address:
        pattern = "(?i)" + re.escape(address.strip())
        clauses.append("(name REGEXP ? OR street REGEXP ?)")
        params.extend([pattern, pattern])
    if city:
        clauses.append("city REGEXP ?")
        params.append("(?i)" + re.escape(city.strip()))
    if state:
        clauses.append("state REGEXP ?")
        params.append("(?i)" + re.escape(state.strip()))
    sql = "SELECT * FROM hospitals WHERE " + " AND ".join(clauses) + " ORDER BY name"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    with connect(db_path) as conn:
        return [row_to_hospital(r) for r in conn.execute(sql, params).fetchall()]


def nearby_indexed(
    db_path: str | Path,
    lat: float,
    lon: float,
    radius_m: float,
) -> list[tuple[float, HospitalRecord]]:
    """
    Verified hospitals within radius_m, nearest first, as (distance_m, record).
    Bounding box over the geo index, then Haversine filter/sort.
    """
    dlat, dlon = bbox_delta_deg(lat, radius_m)
    ranges = longitude_ranges(lon, dlon)
    lon_sql = " OR ".join(["longitude BETWEEN ? AND ?"] * len(ranges))
    params: list[Any] = [lat - dlat, lat + dlat]
    for low, high in ranges:
        params.extend([low, high])
    with connect(db_path) as conn:
        rows = conn.execute(
            f"""
            SELECT * FROM hospitals INDEXED BY {GEO_INDEX_NAME}
            WHERE latitude BETWEEN ? AND ? AND ({lon_sql}) AND verified = 1
            """,
            params,
        ).fetchall()
    with_dist: list[tuple[float, HospitalRecord]] = []
    for r in rows:
        h = row_to_hospital(r)
        d = haversine_distance_m(lat, lon, h.latitude, h.longitude)
        if d <= radius_m:
            with_dist.append((d, h))
    with_dist.sort(key=lambda x: x[0])
    return with_dist


def verified_with_coordinates(db_path: str | Path) -> list[HospitalRecord]:
    """Every verified hospital that has both coordinates (full scan)."""
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM hospitals WHERE verified = 1 AND latitude IS NOT NULL AND longitude IS NOT NULL"
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


def distinct_states(db_path: str | Path) -> list[str]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT DISTINCT state FROM hospitals WHERE verified = 1 ORDER BY state"
        ).fetchall()
    return [r["state"] for r in rows]


def distinct_cities(db_path: str | Path, state: str | None = None) -> list[tuple[str, str]]:
    """Distinct (state, city) pairs of verified hospitals, optionally for one state."""
    sql = "SELECT DISTINCT state, city FROM hospitals WHERE verified = 1"
    params: list[Any] = []
    if state is not None:
        sql += " AND state = ?"
        params.append(state)
    with connect(db_path) as conn:
        rows = conn.execute(sql + " ORDER BY state, city", params).fetchall()
    return [(r["state"], r["city"]) for r in rows]


def hospitals_in_city(db_path: str | Path, state: str, city: str) -> list[HospitalRecord]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM hospitals WHERE verified = 1 AND state = ? AND city = ? ORDER BY name",
            (state, city),
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


def missing_coordinates(db_path: str | Path) -> list[HospitalRecord]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM hospitals WHERE latitude IS NULL OR longitude IS NULL ORDER BY name"
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


def missing_slug(db_path: str | Path) -> list[HospitalRecord]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM hospitals WHERE slug IS NULL OR trim(slug) = ''").fetchall()
    return [row_to_hospital(r) for r in rows]


def assign_slug(db_path: str | Path, hospital_id: str) -> str | None:
    """Generate and store a slug for one hospital. Returns the slug, or None if the id does not exist."""
    with connect(db_path) as conn:
        r = conn.execute(
            "SELECT name, city, state FROM hospitals WHERE hospital_id = ?", (hospital_id,)
        ).fetchone()
        if r is None:
            return None
        slug = _unique_slug(conn, r["name"], r["city"], r["state"], hospital_id)
        conn.execute(
            "UPDATE hospitals SET slug = ?, updated_at = ? WHERE hospital_id = ?",
            (slug, utcnow_iso(), hospital_id),
        )
    return slug


def upsert_by_name(db_path: str | Path, data: dict[str, Any]) -> bool:
    """
    Insert a hospital or update the existing one with the same name. Returns True when inserted.
    `data` uses the flat column names accepted by create_hospital.
    """
    with connect(db_path) as conn:
        r = conn.execute("SELECT hospital_id FROM hospitals WHERE name = ?", (data["name"],)).fetchone()
    if r is None:
        create_hospital(db_path, **data)
        return True
    fields = {k: v for k, v in data.items() if k in _UPDATABLE_COLUMNS}
    update_hospital(db_path, r["hospital_id"], **fields)
    return False
