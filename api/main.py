"""
api/main.py -- FastAPI application entry point for Gatehouse.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. SessionMiddleware  -- signed-cookie session the authenticator logs users into
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one access-log line per request

Lifespan opens the user store and builds the Authenticator on startup, and
closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.dependencies import AuthResponse
from auth.store import UserStore
from auth.wiring import build_authenticator
from core.config import get_settings
from core.errors import AuthenticationError, GatehouseError

_VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("gatehouse.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store and build the authenticator; close the store on shutdown.

    The authenticator depends on the store, so the store comes first.
    """
    logger.info("Gatehouse API starting up")
    app.state.user_store = UserStore(_settings.auth_db_url)
    app.state.authenticator = build_authenticator(app.state.user_store, _settings)
    logger.info(
        "Auth initialized (strategies=%s, users=%s)",
        ", ".join(app.state.authenticator.registry.names()),
        app.state.user_store.has_users(),
    )

    yield

    app.state.user_store.close()
    logger.info("Gatehouse API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Gatehouse API",
    description="Pluggable request authentication: strategies, login sessions and bearer tokens.",
    version=_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the app, so the LAST call becomes the outermost
# layer. SessionMiddleware is added last so the session is loaded before
# anything below it runs, and its cookie is written on every response,
# including rate-limit and auth short-circuits.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    SessionMiddleware,
    secret_key=_settings.secret_key,
    session_cookie=_settings.session_cookie,
    max_age=_settings.session_max_age,
    same_site="lax",
    https_only=_settings.secure_cookies,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
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


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every JSON error uses the same ErrorResponse envelope so API clients can
# parse errors uniformly. AuthResponse is the exception: it carries a
# ready-made Response (redirect or challenge) that is sent unchanged.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthResponse)
async def auth_response_handler(request: Request, exc: AuthResponse) -> Response:
    return exc.response


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Return the status chosen by the failed strategies, with their challenges."""
    code = "unauthorized" if exc.status == 401 else f"http_{exc.status}"
    response = JSONResponse(
        status_code=exc.status,
        content=ErrorResponse(error=ErrorDetail(code=code, message=exc.message)).model_dump(),
    )
    for challenge in exc.challenges:
        response.headers.append("WWW-Authenticate", challenge)
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(GatehouseError)
async def gatehouse_error_handler(request: Request, exc: GatehouseError) -> JSONResponse:
    """Configuration and strategy errors. Details go to the log, not the client."""
    logger.error("Authentication error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="auth_error", message="Authentication could not be completed.")
        ).model_dump(),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and a Retry-After hint."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Structured error for HTTPException.

    Routes raise HTTPException with a dict detail ({"code", "message"}); that
    dict becomes the error field as-is.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback is logged, never returned."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined here rather than in a router and never rate limited, so load
# balancers can always reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Liveness plus a user-store probe."""
    database = "ok"
    try:
        request.app.state.user_store.has_users()
    except SQLAlchemyError:
        logger.warning("Health check: user store unavailable", exc_info=True)
        database = "error"
    return HealthResponse(version=_VERSION, components={"app": "ok", "database": database})
