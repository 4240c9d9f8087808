"""
Shareable links: immutable hospital snapshots addressed by a short random id, expiring after 30 days.
"""
import json
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, NamedTuple

from hospitofind.data.db import connect
from hospitofind.data.hospitals_repo import HospitalRecord

SHARE_TTL = timedelta(days=30)
LINK_ID_BYTES = 6


class ShareLinkRecord(NamedTuple):
    link_id: str
    hospitals: list[dict[str, Any]]
    created_by: str | None
    created_at: str


def snapshot(h: HospitalRecord) -> dict[str, Any]:
    """Summary of a hospital frozen into a share link."""
    return {
        "hospital_id": h.hospital_id,
        "slug": h.slug or "",
        "name": h.name,
        "address": {"street": h.street, "city": h.city, "state": h.state},
        "phone": h.phone_number,
        "website": h.website,
        "photo_url": h.photo_url,
        "services": list(h.services),
        "verified": h.verified,
    }


def _is_expired(created_at: str, now: datetime) -> bool:
    created = datetime.fromisoformat(created_at)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return now - created >= SHARE_TTL


def create_share_link(
    db_path: str | Path,
    hospitals: list[HospitalRecord],
    created_by: str | None = None,
    now: datetime | None = None,
) -> ShareLinkRecord:
    """Store a snapshot of the hospitals; expired links are purged on the way."""
    now = now or datetime.now(timezone.utc)
    cutoff = (now - SHARE_TTL).isoformat()
    payload = [snapshot(h) for h in hospitals]
    with connect(db_path) as conn:
        conn.execute("DELETE FROM share_links WHERE created_at <= ?", (cutoff,))
        while True:
            link_id = secrets.token_urlsafe(LINK_ID_BYTES)
            exists = conn.execute("SELECT 1 FROM share_links WHERE link_id = ?", (link_id,)).fetchone()
            if not exists:
                break
        conn.execute(
            "INSERT INTO share_links (link_id, hospitals, created_by, created_at) VALUES (?, ?, ?, ?)",
            (link_id, json.dumps(payload), created_by, now.isoformat()),
        )
    return ShareLinkRecord(link_id=link_id, hospitals=payload, created_by=created_by, created_at=now.isoformat())


def get_share_link(db_path: str | Path, link_id: str, now: datetime | None = None) -> ShareLinkRecord | None:
    """Return the link, or None if it does not exist or has expired."""
    now = now or datetime.now(timezone.utc)
    with connect(db_path) as conn:
        r = conn.execute(
            "SELECT link_id, hospitals, created_by, created_at FROM share_links WHERE link_id = ?",
            (link_id,),
        ).fetchone()
    if r is None or _is_expired(r["created_at"], now):
        return None
    return ShareLinkRecord(
        link_id=r["link_id"],
        hospitals=json.loads(r["hospitals"]),
        created_by=r["created_by"],
        created_at=r["created_at"],
    )
