"""
api/routes/v1/auth.py -- Account REST endpoints.

Routes:
  POST   /api/v1/auth/register         -- create a player account (public)
  POST   /api/v1/auth/login            -- password login; returns bearer token (public)
  GET    /api/v1/auth/profile          -- caller's profile (requires auth)
  PUT    /api/v1/auth/profile          -- change caller's username/email (requires auth)
  PUT    /api/v1/auth/change-password  -- change caller's password (requires auth)
  DELETE /api/v1/auth/account          -- deactivate caller's account (requires auth)

Every protected route acts on current.id from the auth gate. No route takes a
target account id from the client.

Handlers are plain def, not async def: register, login and change-password
run bcrypt, and Starlette executes sync handlers in its thread pool so the
event loop keeps serving other requests meanwhile.

Errors: services raise AuthError subclasses; api/main.py renders them. Routes
do not build error responses themselves.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordChange,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.dependencies import get_current_account
from auth.models import AuthContext
from auth.service import AccountService

router = APIRouter()


def _service(request: Request) -> AccountService:
    return request.app.state.account_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a player account and return its public fields (never the hash)."""
    account = _service(request).register(body.username, body.email, body.password)
    return RegisterResponse(user=AccountResponse.from_account(account))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a bearer token.

    Unknown email and wrong password produce the same 401 invalid_credentials
    body. The response is marked no-store so the token is not cached.
    """
    service = _service(request)
    result = service.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=service.tokens.expire_seconds,
            user=AccountResponse.from_account(result.account),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile", response_model=ProfileResponse)
def get_profile(request: Request, current: AuthContext = Depends(get_current_account)) -> ProfileResponse:
    """Return the caller's profile, including last_login_at."""
    return ProfileResponse.from_account(_service(request).get_profile(current.id))


@router.put("/auth/profile", response_model=ProfileUpdateResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current: AuthContext = Depends(get_current_account),
) -> ProfileUpdateResponse:
    """Update username and/or email. Omitted fields are left as they are."""
    account = _service(request).update_profile(current.id, username=body.username, email=body.email)
    return ProfileUpdateResponse(user=AccountResponse.from_account(account))


@router.put("/auth/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: PasswordChange,
    current: AuthContext = Depends(get_current_account),
) -> MessageResponse:
    _service(request).change_password(current.id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.delete("/auth/account", response_model=MessageResponse)
def deactivate_account(request: Request, current: AuthContext = Depends(get_current_account)) -> MessageResponse:
    """Deactivate the caller's account. Existing tokens stop working at the gate."""
    _service(request).deactivate_account(current.id)
    return MessageResponse(message="Account deactivated successfully")
