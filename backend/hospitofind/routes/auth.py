"""
Authentication: password login (rate-limited), registration with email verification,
password reset, Auth0 federated login, refresh-cookie rotation and logout.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, HTTPException, Request, Response

from hospitofind.auth.passwords import hash_password, verify_password
from hospitofind.auth.tokens import (
    REFRESH_COOKIE,
    TokenError,
    clear_refresh_cookie,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    set_refresh_cookie,
    verify_auth0_token,
)
from hospitofind.data.users_repo import (
    UserExistsError,
    UserRecord,
    create_user,
    find_user_by_email_or_username,
    get_user_by_auth0_id,
    get_user_by_email,
    get_user_by_reset_token,
    get_user_by_username,
    get_user_by_verification_token,
    update_user,
)
from hospitofind.middleware.rate_limit import LOGIN_RATE_LIMIT, limiter
from hospitofind.routes.common import app_settings, db_path
from hospitofind.schemas.accounts import (
    Auth0LoginRequest,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(hours=1)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _expired(expires_iso: str | None) -> bool:
    if not expires_iso:
        return True
    expires = datetime.fromisoformat(expires_iso)
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) >= expires


def _issue_session(request: Request, response: Response, user: UserRecord) -> dict:
    settings = app_settings(request)
    access = create_access_token(settings, user_id=user.user_id, username=user.username, role=user.role)
    set_refresh_cookie(response, settings, create_refresh_token(settings, username=user.username))
    return {
        "access_token": access,
        "name": user.name,
        "username": user.username,
        "email": user.email,
        "role": user.role,
    }


def _new_verification_token() -> tuple[str, str]:
    token = secrets.token_hex(32)
    expires = (datetime.now(timezone.utc) + VERIFICATION_TOKEN_TTL).isoformat()
    return token, expires


@router.post("")
@limiter.limit(LOGIN_RATE_LIMIT)
def login(request: Request, response: Response, body: LoginRequest):
    user = get_user_by_email(db_path(request), body.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(body.password, user.password_hash):
        logger.warning("telemetry login_failed user_id=%s", user.user_id)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been suspended")
    if not user.is_verified:
        raise HTTPException(status_code=403, detail="Please verify your email before logging in")
    logger.info("telemetry login user_id=%s", user.user_id)
    return _issue_session(request, response, user)


@router.post("/register", status_code=201)
def register(request: Request, body: RegisterRequest):
    db = db_path(request)
    if find_user_by_email_or_username(db, body.email, body.username) is not None:
        raise HTTPException(status_code=409, detail="User with this email or username already exists")
    token, expires = _new_verification_token()
    try:
        user = create_user(
            db,
            username=body.username,
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
            verification_token=token,
            verification_token_expires=expires,
        )
    except UserExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    sent = request.app.state.mailer.send_verification(user.email, user.name or user.username, token)
    logger.info("telemetry user_registered user_id=%s email_sent=%s", user.user_id, sent)
    return {"message": "Registration successful. Please check your email to verify your account."}


@router.get("/verify-email")
def verify_email(request: Request, token: str = ""):
    db = db_path(request)
    user = get_user_by_verification_token(db, token) if token else None
    if user is None or _expired(user.verification_token_expires):
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    update_user(db, user.user_id, is_verified=True, verification_token=None, verification_token_expires=None)
    return {"message": "Email verified successfully"}


@router.post("/resend-verification")
def resend_verification(request: Request, body: EmailRequest):
    db = db_path(request)
    user = get_user_by_email(db, body.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.is_verified:
        raise HTTPException(status_code=400, detail="Email already verified")
    token, expires = _new_verification_token()
    update_user(db, user.user_id, verification_token=token, verification_token_expires=expires)
    request.app.state.mailer.send_verification(user.email, user.name or user.username, token)
    return {"message": "Verification email sent"}


@router.post("/forgot-password")
def forgot_password(request: Request, body: EmailRequest):
    """Same response whether or not the email is registered."""
    db = db_path(request)
    user = get_user_by_email(db, body.email)
    if user is not None:
        token = secrets.token_hex(20)
        expires = (datetime.now(timezone.utc) + RESET_TOKEN_TTL).isoformat()
        update_user(db, user.user_id, reset_password_token=_hash_token(token), reset_password_expires=expires)
        request.app.state.mailer.send_password_reset(user.email, token)
    return {"message": "If that email is registered, a reset link has been sent"}


@router.post("/reset-password/{token}")
def reset_password(request: Request, token: str, body: ResetPasswordRequest):
    db = db_path(request)
    user = get_user_by_reset_token(db, _hash_token(token))
    if user is None or _expired(user.reset_password_expires):
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    update_user(
        db,
        user.user_id,
        password_hash=hash_password(body.password),
        reset_password_token=None,
        reset_password_expires=None,
    )
    logger.info("telemetry password_reset user_id=%s", user.user_id)
    return {"message": "Password reset successful"}


def _free_username(db, wanted: str) -> str:
    candidate = wanted
    while get_user_by_username(db, candidate) is not None:
        candidate = f"{wanted}{secrets.randbelow(10_000)}"
    return candidate


@router.post("/auth0")
def auth0_login(request: Request, response: Response, body: Auth0LoginRequest):
    settings = app_settings(request)
    if not settings.auth0_enabled:
        raise HTTPException(status_code=503, detail="Federated login is not configured")
    try:
        claims = verify_auth0_token(settings, body.id_token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail="Invalid token") from e
    if (claims.get("email") or "").lower() != body.email:
        raise HTTPException(status_code=400, detail="Email mismatch")

    db = db_path(request)
    sub = str(claims.get("sub") or "")
    user = (get_user_by_auth0_id(db, sub) if sub else None) or get_user_by_email(db, body.email)
    if user is None:
        base = body.username or body.email.split("@")[0]
        user = create_user(
            db,
            username=_free_username(db, base),
            email=body.email,
            name=body.name,
            auth0_id=sub or None,
            is_verified=True,
        )
        logger.info("telemetry user_registered user_id=%s via=auth0", user.user_id)
    elif sub and user.auth0_id != sub:
        user = update_user(db, user.user_id, auth0_id=sub, is_verified=True) or user
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been suspended")
    return _issue_session(request, response, user)


@router.get("/refresh")
def refresh(request: Request):
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="No refresh token")
    settings = app_settings(request)
    try:
        username = decode_refresh_token(settings, token)
    except TokenError as e:
        raise HTTPException(status_code=403, detail="Forbidden") from e
    user = get_user_by_username(db_path(request), username)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been suspended")
    return {
        "access_token": create_access_token(settings, user_id=user.user_id, username=user.username, role=user.role)
    }


@router.post("/logout")
def logout(request: Request, response: Response):
    clear_refresh_cookie(response, app_settings(request))
    return {"message": "Cookie cleared"}
