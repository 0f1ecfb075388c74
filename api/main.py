"""
api/main.py -- FastAPI application entry point for the university directory.

Exposes the auth core (password login, Google login, token refresh) and the
directory (account CRUD) over HTTP for the frontend SPA.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost, inside the log_requests middleware):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins
  2. SessionMiddleware     -- OAuth state storage for authlib
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Every route runs access_guard (registered app-wide below) unless its
endpoint is marked with @public. Role checks are per-route (require_admin).

Lifespan handles startup (settings, store, token codec, services, OAuth
registry) and shutdown (dispose the DB engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ApiInfoResponse, HealthResponse
from api.responses import error
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.dependencies import access_guard, public
from auth.oauth import build_oauth
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.errors import AppError
from directory.service import DirectoryService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("unidir.api")

# Settings are needed at import time for the middleware (CORS origins, the
# session key). Missing or weak JWT secrets raise ConfigurationError here,
# before the server accepts a connection.
_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Components are built once from Settings and shared read-only
    by every request through app.state; request code never reads settings
    from the environment.

    Startup order matters:
      1. Settings first -- every component below is configured from it.
      2. Store second -- creates the schema on first run.
      3. Token codec and services last -- they hold references to the store.
    """
    # Startup
    settings = get_settings()
    logger.info("%s %s starting up", settings.app_name, settings.app_version)
    app.state.settings = settings
    app.state.account_store = AccountStore(settings.database_url)
    app.state.token_codec = TokenCodec.from_settings(settings)
    app.state.auth_service = AuthService(app.state.account_store, app.state.token_codec, settings)
    app.state.directory = DirectoryService(app.state.account_store, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.oauth = build_oauth(settings)
    if not app.state.account_store.has_accounts():
        logger.warning("No accounts exist -- run `python main.py seed` to create the admin account")
    logger.info("Auth initialized (google_enabled=%s)", settings.google_enabled)

    yield

    # Shutdown
    app.state.account_store.close()
    logger.info("%s shutdown complete", settings.app_name)


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title=_settings.app_name,
    description="University user directory: account management with JWT and Google authentication.",
    version=_settings.app_version,
    lifespan=lifespan,
    # Every route passes through the access guard unless marked @public.
    dependencies=[Depends(access_guard)],
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps each add_middleware() call around everything registered
# before it, so the LAST call is the OUTERMOST layer. CORS is added last so
# preflight requests are answered before rate limiting or sessions run.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

# SessionMiddleware is required by authlib to store the OAuth state value
# between the authorization redirect and the callback. Without it the
# Google flow fails at authorize_redirect().
app.add_middleware(SessionMiddleware, secret_key=_settings.session_key)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# Attach the shared limiter to app.state so SlowAPIMiddleware can locate it.
# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time before and after call_next gives the latency.
# The query string is not logged: the Google callback carries the code.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same error envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render service-layer errors (auth failures, not found, conflicts)."""
    response = error(exc.status_code, exc.code, exc.message, exc.detail)
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients exactly how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = error(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on the Starlette base class so unmatched routes (404) and
    wrong methods (405) are wrapped too, not only HTTPExceptions raised by
    route handlers.
    """
    return error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Service endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state. No rate limit applied -- health
# checks from load balancers and monitoring systems must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", tags=["Health"])
@public
async def root() -> ApiInfoResponse:
    """Return API name and version."""
    return ApiInfoResponse(name=_settings.app_name, version=_settings.app_version)


@app.get("/api/v1/health", tags=["Health"])
@public
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=_settings.app_version)
