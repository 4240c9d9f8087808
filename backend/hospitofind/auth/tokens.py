"""
JWT access/refresh tokens and the refresh cookie.

- Access token: 15 minutes, claims {"user_info": {"id", "username", "role"}}, sent as Bearer.
- Refresh token: 7 days, claims {"username"}, stored in the httpOnly "jwt" cookie.
- Auth0 id tokens are verified against the tenant's JWKS (RS256).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt  # PyJWT
from fastapi import Response

from settings import Settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
REFRESH_COOKIE = "jwt"


class TokenError(Exception):
    """Token missing, malformed, expired or signed with the wrong key."""


def create_access_token(settings: Settings, *, user_id: str, username: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "user_info": {"id": user_id, "username": username, "role": role},
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_minutes),
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=JWT_ALGORITHM)


def create_refresh_token(settings: Settings, *, username: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "username": username,
        "iat": now,
        "exp": now + timedelta(days=settings.refresh_token_days),
    }
    return jwt.encode(payload, settings.refresh_token_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> dict[str, Any]:
    """Return the user_info claim. Raises TokenError."""
    try:
        payload = jwt.decode(token, settings.access_token_secret, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        raise TokenError(str(e)) from e
    info = payload.get("user_info")
    if not isinstance(info, dict) or not info.get("id"):
        raise TokenError("missing user_info claim")
    return info


def decode_refresh_token(settings: Settings, token: str) -> str:
    """Return the username claim. Raises TokenError."""
    try:
        payload = jwt.decode(token, settings.refresh_token_secret, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        raise TokenError(str(e)) from e
    username = payload.get("username")
    if not username:
        raise TokenError("missing username claim")
    return username


def _cookie_kwargs(settings: Settings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "key": REFRESH_COOKIE,
        "httponly": True,
        "secure": True,
        "samesite": "none" if settings.production else "lax",
        "path": "/",
    }
    if settings.production and settings.cookie_domain:
        kwargs["domain"] = settings.cookie_domain
    return kwargs


def set_refresh_cookie(response: Response, settings: Settings, refresh_token: str) -> None:
    response.set_cookie(
        value=refresh_token,
        max_age=settings.refresh_token_days * 24 * 60 * 60,
        **_cookie_kwargs(settings),
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(**_cookie_kwargs(settings))


_jwks_clients: dict[str, jwt.PyJWKClient] = {}


def verify_auth0_token(settings: Settings, token: str) -> dict[str, Any]:
    """Verify an Auth0 id token (RS256, audience, issuer). Raises TokenError."""
    uri = settings.auth0_jwks_uri
    client = _jwks_clients.get(uri)
    if client is None:
        client = jwt.PyJWKClient(uri, cache_keys=True)
        _jwks_clients[uri] = client
    try:
        signing_key = client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as e:
        logger.warning("telemetry auth0_token_rejected error=%s", str(e))
        raise TokenError(str(e)) from e
