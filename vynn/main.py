import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vynn.core.config import get_settings
from vynn.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from vynn.core.logging import bind_request_id, configure_logging, get_logger
from vynn.db.init import init_db
from vynn.routers import admin, analytics, auth, badges, profiles, referrals, store
from vynn.services.badges import seed_system_badges

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

API_VERSION = "1.0.0"

ROUTERS = (
    (auth.router, "/v1/auth", "auth"),
    (profiles.router, "/v1/profiles", "profiles"),
    (referrals.router, "/v1/referrals", "referrals"),
    (store.router, "/v1/store", "store"),
    (badges.router, "/v1/badges", "badges"),
    (analytics.router, "/v1/analytics", "analytics"),
    (admin.router, "/v1/admin", "admin"),
)

app = FastAPI(title="Vynn API", version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every request with an id (client-supplied or fresh) and log one line per request."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    bind_request_id(request_id)
    started = time.perf_counter()
    response = await call_next(request)
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

for router, prefix, tag in ROUTERS:
    app.include_router(router, prefix=prefix, tags=[tag])


def _init_sentry() -> None:
    import sentry_sdk

    sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, release=f"vynn-api@{API_VERSION}", traces_sample_rate=0.1)
    log.info("sentry_enabled", env=settings.env)


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        _init_sentry()
    await init_db()
    log.info("db_connected", db=settings.mongodb_db_name)
    # Catalog upsert keeps milestone and Discord badges present for the reward engine
    await seed_system_badges()


@app.get("/health")
async def health():
    return {"status": "ok"}
