"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these classes only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    player = "player"
    admin = "admin"


@dataclass
class Account:
    """A registered identity.

    password_hash never leaves auth/. The API layer maps Account onto response
    models that have no password field at all, so it cannot be serialized by
    accident.

    Timestamps are UTC ISO 8601 strings as written by AccountStore. id and
    created_at are None until the store has persisted the record.
    """

    username: str
    email: str
    password_hash: str
    role: Role = Role.player
    is_active: bool = True
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    last_login_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims decoded from a bearer token.

    issued_at / expires_at are POSIX timestamps (the JWT iat/exp claims).
    """

    id: int
    username: str
    role: Role
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthContext:
    """Identity the auth gate hands to a protected route.

    Built from the freshly loaded account, not from the token, so a renamed
    account shows its current username.
    """

    id: int
    username: str
    role: Role
