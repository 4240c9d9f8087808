"""Per-IP rate limiting (slowapi). Login attempts get their own tighter limit."""
import logging

from slowapi import Limiter
from starlette.requests import Request
from starlette.responses import JSONResponse

from hospitofind.middleware.request_logging import client_ip, request_id
from settings import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()

LOGIN_RATE_LIMIT = _settings.login_rate_limit
LOGIN_LIMIT_MESSAGE = "Too many login attempts from this IP, please try again after 15 minutes"

limiter = Limiter(
    key_func=client_ip,
    enabled=_settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(
        "telemetry rate_limited client=%s method=%s path=%s origin=%s",
        client_ip(request),
        request.method,
        request.url.path,
        request.headers.get("Origin", "no-origin"),
    )
    message = LOGIN_LIMIT_MESSAGE if request.url.path == "/auth" else "Too many requests, please try again later"
    return JSONResponse(status_code=429, content={"message": message, "request_id": request_id(request)})
