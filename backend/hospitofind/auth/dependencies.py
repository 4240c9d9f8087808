"""FastAPI dependencies resolving the caller from the Bearer access token."""
import logging
from typing import NamedTuple

from fastapi import Depends, HTTPException, Request

from hospitofind.auth.tokens import TokenError, decode_access_token

logger = logging.getLogger(__name__)


class CurrentUser(NamedTuple):
    id: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization") or request.headers.get("authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:].strip() or None
    return None


def _decode(request: Request, token: str) -> CurrentUser:
    try:
        info = decode_access_token(request.app.state.settings, token)
    except TokenError as e:
        logger.warning("telemetry auth_failed path=%s error=%s", request.url.path, str(e))
        raise HTTPException(status_code=403, detail="Forbidden") from e
    return CurrentUser(id=str(info["id"]), username=str(info.get("username", "")), role=str(info.get("role", "user")))


def get_current_user(request: Request) -> CurrentUser:
    """401 when no token is sent, 403 when it is invalid or expired."""
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _decode(request, token)


def get_optional_user(request: Request) -> CurrentUser | None:
    """Signed-in caller if a valid token is sent; anonymous otherwise."""
    token = _bearer_token(request)
    if token is None:
        return None
    try:
        info = decode_access_token(request.app.state.settings, token)
    except TokenError:
        return None
    return CurrentUser(id=str(info["id"]), username=str(info.get("username", "")), role=str(info.get("role", "user")))


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
