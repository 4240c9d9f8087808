import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from hospitofind.data.db import init_db
from hospitofind.geocoding.client import GeocodingClient
from hospitofind.mail.client import Mailer
from hospitofind.middleware import RequestLoggingMiddleware, limiter, rate_limit_exceeded_handler, request_id
from hospitofind.monitoring.metrics import get_metrics
from hospitofind.routes import admin, auth, hospitals, sitemaps, users
from hospitofind.search.cache import ProximityCache
from settings import get_settings

settings = get_settings()
BACKEND_ROOT = Path(__file__).resolve().parent
DB_PATH = Path(settings.db_path) if Path(settings.db_path).is_absolute() else BACKEND_ROOT / settings.db_path

# Structured logging: include module and level; handlers can add JSON later
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.db_path)
    logger.info("telemetry startup db=%s", app.state.db_path)
    yield


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.state.settings = settings
app.state.db_path = DB_PATH
app.state.limiter = limiter
app.state.proximity_cache = ProximityCache(
    ttl_seconds=settings.proximity_cache_ttl_seconds,
    max_entries=settings.proximity_cache_max_entries,
)
app.state.featured_cache = ProximityCache(ttl_seconds=settings.proximity_cache_ttl_seconds, max_entries=8)
app.state.geocoder = GeocodingClient(token=settings.mapbox_token)
app.state.mailer = Mailer(settings)


def _error(status_code: int, message: str, request: Request, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "request_id": request_id(request)},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), request, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):
    """400 with the first validation message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        message = str(first.get("msg", message)).removeprefix("Value error, ")
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
        if first.get("type") == "missing" and loc:
            message = f"{loc[-1]} is required"
    return _error(400, message, request)


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    """Return consistent JSON error for unhandled exceptions (500)."""
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc
    logger.exception("telemetry unhandled_exception path=%s request_id=%s", request.url.path, request_id(request))
    return _error(500, "An unexpected error occurred. Please try again later.", request)


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Order: last added = outermost. CORS wraps request logging so preflight responses are logged too.
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hospitals.router)
app.include_router(hospitals.slug_router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(sitemaps.router)


@app.get("/favicon.ico", include_in_schema=False)
@limiter.exempt
def favicon(request: Request):
    """Return 204 so browser favicon requests don't log 404."""
    return Response(status_code=204)


@app.get("/health")
@limiter.exempt
def health(request: Request):
    logger.info("telemetry route=health")
    return {"status": "ok"}


@app.get("/metrics")
@limiter.exempt
def metrics(request: Request):
    """Request counts, proximity cache hit/miss counts, nearby fallbacks and uptime."""
    return get_metrics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
