"""
Users table plus favorites and recently-viewed lists.
"""
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, NamedTuple

from hospitofind.data.db import connect, utcnow_iso
from hospitofind.data.hospitals_repo import HospitalRecord, row_to_hospital

VALID_ROLES = frozenset({"user", "admin"})
RECENTLY_VIEWED_CAP = 20
WEEKLY_RESET_INTERVAL = timedelta(days=7)

_UPDATABLE_COLUMNS = frozenset(
    {
        "name", "email", "password_hash", "role", "is_active", "is_verified",
        "verification_token", "verification_token_expires",
        "reset_password_token", "reset_password_expires", "auth0_id",
    }
)


class UserRecord(NamedTuple):
    user_id: str
    name: str | None
    username: str
    email: str
    password_hash: str | None
    auth0_id: str | None
    role: str
    is_active: bool
    is_verified: bool
    verification_token: str | None
    verification_token_expires: str | None
    reset_password_token: str | None
    reset_password_expires: str | None
    weekly_view_count: int
    last_weekly_reset: str
    created_at: str
    updated_at: str


class UserExistsError(ValueError):
    """Username or email already taken."""


def _row_to_user(r: sqlite3.Row) -> UserRecord:
    return UserRecord(
        user_id=r["user_id"],
        name=r["name"],
        username=r["username"],
        email=r["email"],
        password_hash=r["password_hash"],
        auth0_id=r["auth0_id"],
        role=r["role"],
        is_active=bool(r["is_active"]),
        is_verified=bool(r["is_verified"]),
        verification_token=r["verification_token"],
        verification_token_expires=r["verification_token_expires"],
        reset_password_token=r["reset_password_token"],
        reset_password_expires=r["reset_password_expires"],
        weekly_view_count=int(r["weekly_view_count"]),
        last_weekly_reset=r["last_weekly_reset"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def user_to_dict(u: UserRecord) -> dict[str, Any]:
    """Public shape; never includes the password hash or tokens."""
    return {
        "id": u.user_id,
        "name": u.name,
        "username": u.username,
        "email": u.email,
        "role": u.role,
        "is_active": u.is_active,
        "is_verified": u.is_verified,
        "weekly_view_count": u.weekly_view_count,
        "created_at": u.created_at,
        "updated_at": u.updated_at,
    }


def create_user(
    db_path: str | Path,
    *,
    username: str,
    email: str,
    password_hash: str | None = None,
    name: str | None = None,
    role: str = "user",
    auth0_id: str | None = None,
    is_verified: bool = False,
    verification_token: str | None = None,
    verification_token_expires: str | None = None,
) -> UserRecord:
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role '{role}'.")
    if password_hash is None and auth0_id is None:
        raise ValueError("A password is required unless the account uses federated login.")
    uid = str(uuid.uuid4())
    now = utcnow_iso()
    try:
        with connect(db_path) as conn:
            conn.execute(
                """
                INSERT INTO users
                    (user_id, name, username, email, password_hash, auth0_id, role, is_active,
                     is_verified, verification_token, verification_token_expires,
                     weekly_view_count, last_weekly_reset, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?, 0, ?, ?, ?)
                """,
                (
                    uid, name, username, email, password_hash, auth0_id, role,
                    int(is_verified), verification_token, verification_token_expires,
                    now, now, now,
                ),
            )
            r = conn.execute("SELECT * FROM users WHERE user_id = ?", (uid,)).fetchone()
    except sqlite3.IntegrityError as e:
        raise UserExistsError("User with this email or username already exists") from e
    return _row_to_user(r)


def _get_one(db_path: str | Path, column: str, value: str) -> UserRecord | None:
    with connect(db_path) as conn:
        r = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
    return _row_to_user(r) if r is not None else None


def get_user(db_path: str | Path, user_id: str) -> UserRecord | None:
    return _get_one(db_path, "user_id", user_id)


def get_user_by_email(db_path: str | Path, email: str) -> UserRecord | None:
    return _get_one(db_path, "email", email)


def get_user_by_username(db_path: str | Path, username: str) -> UserRecord | None:
    return _get_one(db_path, "username", username)


def get_user_by_auth0_id(db_path: str | Path, auth0_id: str) -> UserRecord | None:
    return _get_one(db_path, "auth0_id", auth0_id)


def get_user_by_verification_token(db_path: str | Path, token: str) -> UserRecord | None:
    return _get_one(db_path, "verification_token", token)


def get_user_by_reset_token(db_path: str | Path, token: str) -> UserRecord | None:
    return _get_one(db_path, "reset_password_token", token)


def find_user_by_email_or_username(db_path: str | Path, email: str, username: str) -> UserRecord | None:
    with connect(db_path) as conn:
        r = conn.execute(
            "SELECT * FROM users WHERE email = ? OR username = ? LIMIT 1", (email, username)
        ).fetchone()
    return _row_to_user(r) if r is not None else None


def list_users(db_path: str | Path) -> list[UserRecord]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM users ORDER BY created_at DESC").fetchall()
    return [_row_to_user(r) for r in rows]


def update_user(db_path: str | Path, user_id: str, **fields: Any) -> UserRecord | None:
    unknown = set(fields) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
    if "role" in fields and fields["role"] not in VALID_ROLES:
        raise ValueError(f"Invalid role '{fields['role']}'.")
    if not fields:
        return get_user(db_path, user_id)
    values = [int(v) if isinstance(v, bool) else v for v in fields.values()]
    assignments = ", ".join(f"{col} = ?" for col in fields)
    try:
        with connect(db_path) as conn:
            cur = conn.execute(
                f"UPDATE users SET {assignments}, updated_at = ? WHERE user_id = ?",
                values + [utcnow_iso(), user_id],
            )
            if cur.rowcount == 0:
                return None
    except sqlite3.IntegrityError as e:
        raise UserExistsError("Email already taken") from e
    return get_user(db_path, user_id)


def delete_user(db_path: str | Path, user_id: str) -> bool:
    with connect(db_path) as conn:
        cur = conn.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
        conn.execute("DELETE FROM user_favorites WHERE user_id = ?", (user_id,))
        conn.execute("DELETE FROM recently_viewed WHERE user_id = ?", (user_id,))
        return cur.rowcount > 0


# --- Favorites ---


def toggle_favorite(db_path: str | Path, user_id: str, hospital_id: str) -> bool:
    """Add the hospital to the user's favorites, or remove it if present. Returns True if now a favorite."""
    with connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM user_favorites WHERE user_id = ? AND hospital_id = ?", (user_id, hospital_id)
        )
        if cur.rowcount > 0:
            return False
        conn.execute(
            "INSERT INTO user_favorites (user_id, hospital_id, created_at) VALUES (?, ?, ?)",
            (user_id, hospital_id, utcnow_iso()),
        )
        return True


def list_favorites(db_path: str | Path, user_id: str) -> list[HospitalRecord]:
    with connect(db_path) as conn:
        rows = conn.execute(
            """
            SELECT h.* FROM user_favorites f
            JOIN hospitals h ON h.hospital_id = f.hospital_id
            WHERE f.user_id = ?
            ORDER BY f.created_at DESC
            """,
            (user_id,),
        ).fetchall()
    return [row_to_hospital(r) for r in rows]


# --- Recently viewed ---


def record_view(
    db_path: str | Path,
    user_id: str,
    hospital_id: str,
    now: datetime | None = None,
) -> None:
    """
    Move the hospital to the front of the user's recently-viewed list (capped at 20) and bump the
    weekly view counter, resetting it first when a week has passed since the last reset.
    """
    now = now or datetime.now(timezone.utc)
    now_iso = now.isoformat()
    with connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO recently_viewed (user_id, hospital_id, viewed_at) VALUES (?, ?, ?)
            ON CONFLICT(user_id, hospital_id) DO UPDATE SET viewed_at = excluded.viewed_at
            """,
            (user_id, hospital_id, now_iso),
        )
        conn.execute(
            """
            DELETE FROM recently_viewed
            WHERE user_id = ? AND hospital_id NOT IN (
                SELECT hospital_id FROM recently_viewed WHERE user_id = ?
                ORDER BY viewed_at DESC LIMIT ?
            )
            """,
            (user_id, user_id, RECENTLY_VIEWED_CAP),
        )
        r = conn.execute("SELECT last_weekly_reset FROM users WHERE user_id = ?", (user_id,)).fetchone()
        if r is None:
            return
        last_reset = datetime.fromisoformat(r["last_weekly_reset"])
        if last_reset.tzinfo is None:
            last_reset = last_reset.replace(tzinfo=timezone.utc)
        if now - last_reset >= WEEKLY_RESET_INTERVAL:
            conn.execute(
                "UPDATE users SET weekly_view_count = 1, last_weekly_reset = ? WHERE user_id = ?",
                (now_iso, user_id),
            )
        else:
            conn.execute(
                "UPDATE users SET weekly_view_count = weekly_view_count + 1 WHERE user_id = ?",
                (user_id,),
            )


def list_recently_viewed(db_path: str | Path, user_id: str) -> list[tuple[str, HospitalRecord]]:
    """(viewed_at, hospital) pairs, most recent first."""
    with connect(db_path) as conn:
        rows = conn.execute(
            """
            SELECT rv.viewed_at AS viewed_at, h.* FROM recently_viewed rv
            JOIN hospitals h ON h.hospital_id = rv.hospital_id
            WHERE rv.user_id = ?
            ORDER BY rv.viewed_at DESC
            """,
            (user_id,),
        ).fetchall()
    return [(r["viewed_at"], row_to_hospital(r)) for r in rows]
