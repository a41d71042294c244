"""
api/main.py -- FastAPI application entry point for the accounts service.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one log line per request with latency

Lifespan builds the store and the three auth services from Settings and puts
them on app.state; it closes the store on shutdown. Tests swap in their own
lifespan (see tests/conftest.py) and call init_state() with an in-memory store.
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
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.dependencies import AuthGate
from auth.errors import AuthError, ErrorKind
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenConfig, TokenService
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("playerauth.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_state(app: FastAPI, store: AccountStore, settings: Settings) -> None:
    """Build the auth services around store and attach them to app.state.

    The signing secret reaches TokenService only through TokenConfig; no
    service reads settings on its own.
    """
    tokens = TokenService(
        TokenConfig(secret_key=settings.secret_key, expire_seconds=settings.token_expire_seconds)
    )
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.settings = settings
    app.state.account_store = store
    app.state.auth_gate = AuthGate(tokens=tokens, store=store)
    app.state.account_service = AccountService(
        store=store,
        hasher=hasher,
        tokens=tokens,
        min_password_length=settings.min_password_length,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the account store on startup, close it on shutdown."""
    settings = get_settings()
    logger.info("Accounts API starting up (debug=%s)", settings.debug)
    store = AccountStore(settings.database_url)
    init_state(app, store, settings)
    logger.info("Account store initialized")

    yield

    store.close()
    logger.info("Accounts API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Player Accounts API",
    description="Account registration, login and bearer-token authentication.",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any AuthError by its kind. The message is always client-safe."""
    if exc.kind is ErrorKind.persistence_failure:
        logger.error("Persistence failure on %s %s: %r", request.method, request.url.path, exc.__cause__)
    return _error(exc.status_code, exc.kind.value, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """400 for unparseable JSON bodies and for missing or malformed fields.

    Malformed JSON gets its own code so clients can tell a broken body from a
    body that parsed but failed field validation.
    """
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return _error(
            400,
            ErrorKind.invalid_json.value,
            "The request body contains malformed JSON.",
        )
    return _error(
        400,
        ErrorKind.validation_error.value,
        _describe_validation(errors),
        detail=str(errors) if _settings.debug else None,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured envelope for routing errors (404 unknown path, 405 wrong method)."""
    if exc.status_code == 404:
        return _error(404, "not_found", f"Cannot {request.method} {request.url.path}")
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The response carries a generic
    message, plus repr(exc) when DEBUG is on.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(
        500,
        ErrorKind.internal_error.value,
        "An unexpected error occurred.",
        detail=repr(exc) if _settings.debug else None,
    )


def _describe_validation(errors) -> str:
    """Turn pydantic's error list into one human-readable sentence."""
    if not errors:
        return "Request validation failed."
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(loc)
    if first.get("type") == "missing":
        return f"Field '{field}' is required." if field else "Request body is required."
    msg = first.get("msg", "is invalid")
    return f"{field}: {msg}" if field else msg


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    store: AccountStore = request.app.state.account_store
    database = "ok" if store.ping() else "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
