"""
Verification rules for hospital records. A record is either unverified (pending, hidden from
public search) or verified (live). These functions decide the `verified` value for each
action; persisting the result is up to the caller.
"""
from typing import Any

from hospitofind.data.hospitals_repo import HospitalRecord

ADMIN_ROLE = "admin"

# Fields only an admin may set directly
_ADMIN_ONLY_FIELDS = ("verified", "is_featured")


class ModerationError(PermissionError):
    """Actor is not allowed to perform the action on this record."""


def is_admin(role: str | None) -> bool:
    return role == ADMIN_ROLE


def verified_on_create(actor_role: str | None) -> bool:
    """Admin submissions go live immediately; everyone else's wait for review."""
    return is_admin(actor_role)


def can_edit(hospital: HospitalRecord, actor_id: str | None, actor_role: str | None) -> bool:
    if is_admin(actor_role):
        return True
    return actor_id is not None and hospital.created_by == actor_id


def edit_fields(
    hospital: HospitalRecord,
    changes: dict[str, Any],
    *,
    actor_id: str | None,
    actor_role: str | None,
) -> dict[str, Any]:
    """
    Columns to write for an edit. A non-admin edit always sends the record back to review;
    an admin edit leaves `verified` alone unless the change sets it.
    """
    if not can_edit(hospital, actor_id, actor_role):
        raise ModerationError("You can only edit hospitals you submitted")
    fields = dict(changes)
    if is_admin(actor_role):
        return fields
    for name in _ADMIN_ONLY_FIELDS:
        fields.pop(name, None)
    fields["verified"] = False
    return fields


def approve_fields(actor_role: str | None, fixes: dict[str, Any] | None = None) -> dict[str, Any]:
    """Admin approval, optionally applying field corrections made during review."""
    if not is_admin(actor_role):
        raise ModerationError("Only admins can approve hospitals")
    fields = dict(fixes or {})
    fields["verified"] = True
    return fields


def toggle_fields(hospital: HospitalRecord, actor_role: str | None) -> dict[str, Any]:
    """Flip between live and hidden."""
    if not is_admin(actor_role):
        raise ModerationError("Only admins can change hospital status")
    return {"verified": not hospital.verified}


def status_label(verified: bool) -> str:
    return "Live" if verified else "Hidden"
