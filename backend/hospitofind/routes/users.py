"""Signed-in user endpoints: profile, contribution stats, favorites, recently viewed, account management."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from hospitofind.auth.dependencies import CurrentUser, get_current_user
from hospitofind.auth.passwords import hash_password, verify_password
from hospitofind.data.hospitals_repo import count_hospitals, hospital_to_dict
from hospitofind.data.users_repo import (
    UserExistsError,
    delete_user,
    get_user,
    get_user_by_username,
    list_favorites,
    list_recently_viewed,
    toggle_favorite,
    update_user,
    user_to_dict,
)
from hospitofind.routes.common import db_path, hospital_or_404
from hospitofind.schemas.accounts import DeleteUserRequest, UpdatePasswordRequest, UpdateUserRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def contributor_level(total_submissions: int) -> str:
    if total_submissions > 20:
        return "Directory Expert"
    if total_submissions > 5:
        return "Active Contributor"
    return "Beginner Contributor"


@router.get("/me")
def me(request: Request, user: CurrentUser = Depends(get_current_user)):
    rec = get_user(db_path(request), user.id)
    if rec is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user_to_dict(rec)


@router.get("/stats")
def stats(request: Request, user: CurrentUser = Depends(get_current_user)):
    db = db_path(request)
    total = count_hospitals(db, verified=None, created_by=user.id)
    verified = count_hospitals(db, verified=True, created_by=user.id)
    return {
        "total_submissions": total,
        "verified_submissions": verified,
        "pending_submissions": total - verified,
        "contributor_level": contributor_level(total),
    }


@router.get("/favorites")
def favorites(request: Request, user: CurrentUser = Depends(get_current_user)):
    return [hospital_to_dict(h) for h in list_favorites(db_path(request), user.id)]


@router.post("/favorites/{hospital_id}")
def toggle(request: Request, hospital_id: str, user: CurrentUser = Depends(get_current_user)):
    h = hospital_or_404(request, hospital_id)
    favorited = toggle_favorite(db_path(request), user.id, h.hospital_id)
    return {
        "favorited": favorited,
        "message": "Added to favorites" if favorited else "Removed from favorites",
    }


@router.get("/recently-viewed")
def recently_viewed(request: Request, user: CurrentUser = Depends(get_current_user)):
    return [
        {"viewed_at": viewed_at, "hospital": hospital_to_dict(h)}
        for viewed_at, h in list_recently_viewed(db_path(request), user.id)
    ]


@router.patch("")
def update_profile(request: Request, body: UpdateUserRequest, user: CurrentUser = Depends(get_current_user)):
    """Owners must confirm with their current password; admins may edit anyone and change roles."""
    db = db_path(request)
    target = get_user_by_username(db, body.username)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    is_owner = target.user_id == user.id
    if not is_owner and not user.is_admin:
        raise HTTPException(status_code=403, detail="Unauthorized to update this profile")
    if body.role and body.role != target.role and not user.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can change user roles")
    if is_owner:
        if not body.password:
            raise HTTPException(status_code=400, detail="Current password required for security")
        if target.password_hash and not verify_password(body.password, target.password_hash):
            raise HTTPException(status_code=401, detail="Invalid password")

    fields = {}
    if body.name:
        fields["name"] = body.name.strip()
    if body.email:
        fields["email"] = body.email
    if body.role and user.is_admin:
        fields["role"] = body.role
    try:
        updated = update_user(db, target.user_id, **fields)
    except UserExistsError as e:
        raise HTTPException(status_code=409, detail="Email already taken") from e
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user_to_dict(updated)


@router.patch("/password")
def update_password(request: Request, body: UpdatePasswordRequest, user: CurrentUser = Depends(get_current_user)):
    db = db_path(request)
    target = get_user_by_username(db, body.username)
    if target is None:
        raise HTTPException(status_code=404, detail="User does not exist")
    if target.user_id != user.id:
        raise HTTPException(status_code=403, detail="You can only change your own password")
    if not verify_password(body.password, target.password_hash):
        raise HTTPException(status_code=401, detail="Invalid current password")
    update_user(db, target.user_id, password_hash=hash_password(body.new_password))
    return {"message": "Password updated successfully"}


@router.delete("")
def delete_account(request: Request, body: DeleteUserRequest, user: CurrentUser = Depends(get_current_user)):
    db = db_path(request)
    target = get_user_by_username(db, body.username)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")
    is_owner = target.user_id == user.id
    if not is_owner and not user.is_admin:
        raise HTTPException(status_code=403, detail="Unauthorized to delete this account")
    if is_owner and target.password_hash:
        if not body.password:
            raise HTTPException(status_code=400, detail="Password required to delete account")
        if not verify_password(body.password, target.password_hash):
            raise HTTPException(status_code=401, detail="Incorrect password. Account not deleted.")
    delete_user(db, target.user_id)
    logger.info("telemetry user_deleted user_id=%s by=%s", target.user_id, user.id)
    return {"message": f"User {target.username} deleted"}
