"""
api/main.py -- FastAPI application entry point for Rollet.

Exposes account sign-in and role-balanced team randomization over HTTP.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
  2. log_requests    -- one log line per request with status and latency

Lifespan builds the stores, the session issuer/validator, and the two
services on app.state at startup, and disposes the database engines on
shutdown. The signing secret is read from settings here, once, and injected
into SessionIssuer; nothing below this layer reads it from global state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.teams import router as teams_router
from auth.identity import IdentityResolver
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import SessionIssuer, SessionValidator
from core.config import get_settings
from core.errors import RolletError, Unauthenticated
from roster.service import TeamService
from roster.store import RosterStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("rollet.api")

_settings = get_settings()


def wire_services(app: FastAPI, account_store: AccountStore, roster_store: RosterStore, issuer: SessionIssuer) -> None:
    """Attach the stores and the services built on them to app.state.

    Shared by the real lifespan and the test fixtures so both wire the
    object graph the same way.
    """
    resolver = IdentityResolver(account_store)
    validator = SessionValidator(issuer, resolver)
    app.state.account_store = account_store
    app.state.roster_store = roster_store
    app.state.session_validator = validator
    app.state.auth_service = AuthService(resolver, issuer, bcrypt_rounds=app.state.settings.bcrypt_rounds)
    app.state.team_service = TeamService(roster_store, validator)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("Rollet API starting up")
    issuer = SessionIssuer(_settings.secret_key, expire_seconds=_settings.token_expire_seconds)
    wire_services(app, AccountStore(), RosterStore(), issuer)
    logger.info("Stores initialized (google_sign_in=%s)", _settings.google_enabled)

    yield

    app.state.account_store.close()
    app.state.roster_store.close()
    logger.info("Rollet API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Rollet API",
    description="Sign in, then split a roster into teams balanced across roles.",
    version=VERSION,
    lifespan=lifespan,
)
app.state.settings = _settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Origin", "Content-Type", "Authorization"],
    max_age=12 * 3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time before and after call_next gives the latency.
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
app.include_router(teams_router, prefix="/api/v1", tags=["Teams"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RolletError)
async def rollet_error_handler(request: Request, exc: RolletError) -> JSONResponse:
    """Map a classified domain failure to its status code and stable error code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.__class__.__name__)
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )
    if isinstance(exc, Unauthenticated):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation.

    Only loc, msg and type are echoed back. Pydantic also reports the
    rejected input, which for auth bodies is the submitted password.
    """
    errors = [{k: e.get(k) for k in ("loc", "msg", "type")} for e in exc.errors()]
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(errors),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response
    body. The client receives only a generic message.
    """
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
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    db_ok = request.app.state.account_store.ping()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
