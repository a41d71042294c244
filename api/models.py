"""
API request and response models for the accounts REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

None of the response models has a password field, so a password hash cannot
reach a response body even by accident.
"""

from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints

from auth.models import Account, Role

# ---------------------------------------------------------------------------
# Constrained field types
#
# Identity fields are whitespace-stripped; passwords are taken verbatim.
# Minimum password length is a setting, so it is enforced by AccountService
# (descriptive 400) rather than here, as is bcrypt's 72-byte limit. The 72-char
# cap here only bounds the request size.
# ---------------------------------------------------------------------------

_Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
_Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=3, max_length=100, pattern=r"^[^@\s]+@[^@\s]+$"),
]
_Password = Annotated[str, StringConstraints(min_length=1, max_length=72)]

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    username: _Username
    email: _Email
    password: _Password


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    password: _Password


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/profile. Omitted fields are left unchanged."""

    username: Optional[_Username] = None
    email: Optional[_Email] = None


class PasswordChange(BaseModel):
    """Request body for PUT /api/v1/auth/change-password."""

    current_password: _Password = Field(validation_alias=AliasChoices("current_password", "currentPassword"))
    new_password: _Password = Field(validation_alias=AliasChoices("new_password", "newPassword"))


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: Role
    created_at: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            role=account.role,
            created_at=account.created_at,
        )


class ProfileResponse(AccountResponse):
    """Response for GET /api/v1/auth/profile."""

    last_login_at: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "ProfileResponse":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            role=account.role,
            created_at=account.created_at,
            last_login_at=account.last_login_at,
        )


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "User registered successfully"
    user: AccountResponse


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse


class ProfileUpdateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Profile updated successfully"
    user: AccountResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
