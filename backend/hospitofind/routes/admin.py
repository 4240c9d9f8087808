"""Admin dashboard: user management and hospital moderation. Every route requires the admin role."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from hospitofind.auth.dependencies import CurrentUser, require_admin
from hospitofind.auth.passwords import hash_password
from hospitofind.data.hospitals_repo import find_duplicate, hospital_to_dict, list_hospitals, update_hospital
from hospitofind.data.users_repo import (
    UserExistsError,
    create_user,
    delete_user,
    get_user,
    list_users,
    update_user,
    user_to_dict,
)
from hospitofind.moderation.state import ModerationError, status_label, toggle_fields
from hospitofind.routes import hospitals as hospital_routes
from hospitofind.routes.common import db_path, hospital_or_404
from hospitofind.schemas.accounts import AdminCreateUserRequest, UpdateRoleRequest
from hospitofind.schemas.hospitals import HospitalCreate, HospitalUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# --- Users ---


@router.get("/users")
def all_users(request: Request):
    return [user_to_dict(u) for u in list_users(db_path(request))]


@router.post("/users", status_code=201)
def create_user_admin(request: Request, body: AdminCreateUserRequest):
    try:
        user = create_user(
            db_path(request),
            username=body.username,
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
            role=body.role,
            is_verified=True,
        )
    except UserExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return user_to_dict(user)


@router.patch("/users/role")
def update_role(request: Request, body: UpdateRoleRequest):
    updated = update_user(db_path(request), body.user_id, role=body.new_role)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": f"User role updated to {body.new_role}"}


@router.patch("/users/{user_id}")
def toggle_user_status(request: Request, user_id: str, admin: CurrentUser = Depends(require_admin)):
    """Suspend or reactivate an account."""
    db = db_path(request)
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot suspend your own account")
    updated = update_user(db, user.user_id, is_active=not user.is_active)
    state = "activated" if updated.is_active else "suspended"
    logger.info("telemetry user_status user_id=%s active=%s by=%s", user.user_id, updated.is_active, admin.id)
    return {"message": f"User {updated.username} {state}", "user": user_to_dict(updated)}


@router.delete("/users/{user_id}")
def delete_user_admin(request: Request, user_id: str, admin: CurrentUser = Depends(require_admin)):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account here")
    if not delete_user(db_path(request), user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User deleted"}


# --- Hospitals ---


@router.get("/hospitals")
def all_hospitals(request: Request):
    return [hospital_to_dict(h) for h in list_hospitals(db_path(request), verified=None, newest_first=True)]


@router.post("/hospitals", status_code=201)
def create_hospital_admin(request: Request, body: HospitalCreate, admin: CurrentUser = Depends(require_admin)):
    return hospital_routes.add_hospital(request, body, admin)


@router.get("/hospitals/pending")
def pending_hospitals(request: Request):
    return [hospital_to_dict(h) for h in list_hospitals(db_path(request), verified=False, newest_first=True)]


@router.get("/hospitals/check-duplicate")
def check_duplicate(
    request: Request,
    name: str = "",
    city: str = "",
    state: str | None = None,
    exclude_id: str | None = None,
):
    if not name.strip() or not city.strip():
        raise HTTPException(status_code=400, detail="Name and city are required")
    dup = find_duplicate(db_path(request), name, city, state, exclude_id=exclude_id)
    return {"duplicate": dup is not None, "hospital": hospital_to_dict(dup) if dup else None}


@router.patch("/hospitals/approve/{hospital_id}")
def approve_hospital(
    request: Request,
    hospital_id: str,
    body: HospitalUpdate | None = None,
    admin: CurrentUser = Depends(require_admin),
):
    return hospital_routes.approve(request, hospital_id, body, admin)


@router.patch("/hospitals/{hospital_id}/toggle-status")
def toggle_hospital_status(request: Request, hospital_id: str, admin: CurrentUser = Depends(require_admin)):
    """Live <-> Hidden."""
    h = hospital_or_404(request, hospital_id)
    try:
        fields = toggle_fields(h, admin.role)
    except ModerationError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    updated = update_hospital(db_path(request), h.hospital_id, **fields)
    hospital_routes.invalidate_hospital_caches(request)
    label = status_label(updated.verified)
    logger.info("telemetry hospital_status id=%s status=%s by=%s", h.hospital_id, label, admin.id)
    return {"message": f"{updated.name} is now {label}", "hospital": hospital_to_dict(updated)}


@router.patch("/hospitals/{hospital_id}")
def update_hospital_admin(
    request: Request,
    hospital_id: str,
    body: HospitalUpdate,
    admin: CurrentUser = Depends(require_admin),
):
    return hospital_routes.apply_edit(request, hospital_id, body.to_columns(), admin)


@router.delete("/hospitals/{hospital_id}")
def delete_hospital_admin(request: Request, hospital_id: str, admin: CurrentUser = Depends(require_admin)):
    return hospital_routes.remove_hospital(request, hospital_id, admin)
