"""
api/main.py -- FastAPI application entry point for the DevOps API.

Exposes health/status endpoints, the token login flow and the request
metrics counters over HTTP.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests           -- one access-log line per request
  2. count_requests         -- MetricsAggregator.record_request(), before routing
  3. SlowAPIMiddleware      -- default limits; @limiter.limit routes check themselves
  4. CORSMiddleware         -- adds CORS headers for allowed browser origins
  5. TrustedHostMiddleware  -- rejects requests with unexpected Host headers

Lifespan builds every piece of per-process state (settings, credential store,
token codec, session validator, metrics aggregator) and hangs it on app.state.
Route handlers and dependencies only ever reach that state through the
request, so tests can swap any of it by patching the lifespan.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse, NotFoundResponse
from api.routes.auth import router as auth_router
from api.routes.metrics import router as metrics_router
from api.routes.status import router as status_router
from api.routes.status import utc_timestamp
from auth.credentials import prepare_records
from auth.errors import AuthError, Unauthenticated
from auth.models import DEFAULT_USERS
from auth.session import SessionValidator
from auth.store import build_credential_store
from auth.tokens import build_token_codec
from core.config import get_settings
from metrics.aggregator import MetricsAggregator

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("devops_api.api")

# HTTP status for each auth/errors.py code. Kept here so auth/ never knows
# about HTTP.
_ERROR_STATUS: dict[str, int] = {
    "bad_request": 400,
    "invalid_credentials": 401,
    "unauthenticated": 401,
    "forbidden": 403,
}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build per-process state on startup; release it on shutdown."""
    settings = get_settings()
    logger.info("DevOps API starting up (environment=%s)", settings.environment)
    app.state.settings = settings
    app.state.credential_store = build_credential_store(
        settings.credential_db_url,
        prepare_records(DEFAULT_USERS, settings.credential_scheme),
    )
    app.state.token_codec = build_token_codec(settings.token_codec, settings.secret_key)
    app.state.session_validator = SessionValidator(app.state.token_codec)
    app.state.metrics = MetricsAggregator()
    logger.info(
        "Auth initialized (token_codec=%s, credential_scheme=%s, store=%s)",
        settings.token_codec,
        settings.credential_scheme,
        type(app.state.credential_store).__name__,
    )

    yield

    app.state.credential_store.close()
    logger.info("DevOps API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="DevOps API",
    description="Health checks, token authentication and request metrics.",
    version=_settings.app_version,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() prepends, so the last registration is the outermost layer.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def count_requests(request: Request, call_next):
    """Count every inbound request before it is routed.

    errors_total only moves when COUNT_SERVER_ERRORS is on: then any 5xx
    response, or an exception escaping the handlers, is counted once.
    """
    metrics: MetricsAggregator = request.app.state.metrics
    metrics.record_request()
    count_errors = request.app.state.settings.count_server_errors
    try:
        response = await call_next(request)
    except Exception:
        if count_errors:
            metrics.record_error()
        raise
    if count_errors and response.status_code >= 500:
        metrics.record_error()
    return response


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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(metrics_router, prefix="/api", tags=["Metrics"])
app.include_router(status_router, prefix="/api", tags=["Status"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler except the unknown-route 404 returns the ErrorResponse envelope
# so API clients can parse errors uniformly.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the auth error taxonomy onto HTTP status codes."""
    response = _error_response(_ERROR_STATUS.get(exc.code, 400), exc.code, exc.message, exc.detail)
    if isinstance(exc, Unauthenticated):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured errors for framework HTTP exceptions.

    Unknown routes keep the historical flat body {"error", "path"} that
    existing clients match on, not the envelope.
    """
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=NotFoundResponse(path=request.url.path).model_dump(),
        )
    response = _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and environment."""
    settings = request.app.state.settings
    return HealthResponse(
        timestamp=utc_timestamp(),
        version=settings.app_version,
        environment=settings.environment,
    )
