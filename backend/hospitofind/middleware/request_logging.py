"""Request logging middleware: correlation id, method, path, status_code, duration_ms, client_ip; records metrics."""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from hospitofind.monitoring.metrics import record_request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_MAX_LEN = 64


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def request_id(request: Request) -> str:
    """Correlation id assigned by the middleware, or "N/A" outside a logged request."""
    return getattr(request.state, "request_id", None) or "N/A"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Honour an incoming X-Request-ID (or generate one), log each request and echo the id back."""

    async def dispatch(self, request: Request, call_next):
        rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()[:REQUEST_ID_MAX_LEN] or uuid.uuid4().hex[:12]
        request.state.request_id = rid
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            record_request(500)
            logger.error(
                "request method=%s path=%s status=500 duration_ms=%.1f client=%s request_id=%s",
                request.method,
                request.url.path,
                (time.perf_counter() - start) * 1000,
                client_ip(request),
                rid,
            )
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        record_request(response.status_code)
        response.headers[REQUEST_ID_HEADER] = rid
        logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f client=%s request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip(request),
            rid,
        )
        return response
