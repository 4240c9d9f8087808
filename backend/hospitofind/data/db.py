"""
SQLite schema and connection helper for hospitals, users and share links.
"""
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

# Composite index standing in for a 2dsphere index; the nearby search checks for it by name.
GEO_INDEX_NAME = "idx_hospitals_lat_lng"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _regexp(pattern: str, value: str | None) -> bool:
    # SQLite evaluates "X REGEXP Y" as regexp(Y, X)
    if value is None:
        return False
    return re.search(pattern, value) is not None


@contextmanager
def connect(db_path: str | Path) -> Iterator[sqlite3.Connection]:
    """Open a connection with Row factory and REGEXP support; commits on success, always closes."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.create_function("REGEXP", 2, _regexp, deterministic=True)
    try:
        with conn:
            yield conn
    finally:
        conn.close()


def init_db(db_path: str | Path, *, with_geo_index: bool = True) -> None:
    """Create tables and indexes if they do not exist."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS hospitals (
                hospital_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                slug TEXT,
                street TEXT NOT NULL DEFAULT '',
                city TEXT NOT NULL,
                state TEXT NOT NULL,
                phone_number TEXT,
                website TEXT,
                email TEXT,
                photo_url TEXT,
                type TEXT,
                services TEXT NOT NULL DEFAULT '[]',
                comments TEXT NOT NULL DEFAULT '[]',
                hours TEXT NOT NULL DEFAULT '[]',
                is_featured INTEGER NOT NULL DEFAULT 0,
                verified INTEGER NOT NULL DEFAULT 0,
                created_by TEXT,
                longitude REAL,
                latitude REAL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_hospitals_verified ON hospitals(verified)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_hospitals_state_city_slug ON hospitals(state, city, slug)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_hospitals_created_by ON hospitals(created_by)")
        if with_geo_index:
            conn.execute(f"CREATE INDEX IF NOT EXISTS {GEO_INDEX_NAME} ON hospitals(latitude, longitude)")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                name TEXT,
                username TEXT NOT NULL UNIQUE,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT,
                auth0_id TEXT UNIQUE,
                role TEXT NOT NULL DEFAULT 'user',
                is_active INTEGER NOT NULL DEFAULT 1,
                is_verified INTEGER NOT NULL DEFAULT 0,
                verification_token TEXT,
                verification_token_expires TEXT,
                reset_password_token TEXT,
                reset_password_expires TEXT,
                weekly_view_count INTEGER NOT NULL DEFAULT 0,
                last_weekly_reset TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_favorites (
                user_id TEXT NOT NULL,
                hospital_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (user_id, hospital_id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS recently_viewed (
                user_id TEXT NOT NULL,
                hospital_id TEXT NOT NULL,
                viewed_at TEXT NOT NULL,
                PRIMARY KEY (user_id, hospital_id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS share_links (
                link_id TEXT PRIMARY KEY,
                hospitals TEXT NOT NULL,
                created_by TEXT,
                created_at TEXT NOT NULL
            )
            """
        )


def has_index(db_path: str | Path, index_name: str) -> bool:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?",
            (index_name,),
        ).fetchone()
    return row is not None
