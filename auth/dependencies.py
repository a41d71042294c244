"""
auth/dependencies.py -- The auth gate and its FastAPI Depends() helpers.

AuthGate.authenticate() is the per-request state machine for protected routes:

  no bearer token            -> NoToken             (401)
  token past its exp         -> TokenExpired        (401)
  bad signature / malformed  -> TokenInvalid        (401)
  account id not in store    -> UserNotFound        (401)
  account.is_active is False -> AccountDeactivated  (403)
  otherwise                  -> AuthContext(id, username, role)

The existence check runs before the active check: "the token points at
nothing" and "the token points at a disabled account" are different answers.

The gate raises AuthError subclasses; the app-level exception handler in
api/main.py renders them. Route handlers receive the AuthContext as an
explicit argument via Depends(get_current_account) -- nothing is attached to
the request object.

Layer rule: may import fastapi (Request) because this module is the seam
between auth/ and FastAPI's dependency injection. No imports from api/ or core/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import AccountDeactivated, NoToken, UserNotFound
from auth.models import AuthContext
from auth.store import AccountStore
from auth.tokens import TokenService


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header value, else None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class AuthGate:
    """Verify a bearer token and load the account it names."""

    def __init__(self, tokens: TokenService, store: AccountStore) -> None:
        self.tokens = tokens
        self.store = store

    def authenticate(self, token: str | None) -> AuthContext:
        if not token:
            raise NoToken()
        claims = self.tokens.verify(token)
        account = self.store.find_by_id(claims.id)
        if account is None:
            raise UserNotFound()
        if not account.is_active:
            raise AccountDeactivated()
        return AuthContext(id=account.id, username=account.username, role=account.role)


def get_current_account(request: Request) -> AuthContext:
    """Require a valid bearer token. Raises the gate's AuthError on failure.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(current: AuthContext = Depends(get_current_account)): ...
    """
    gate: AuthGate = request.app.state.auth_gate
    token = extract_bearer_token(request.headers.get("Authorization"))
    return gate.authenticate(token)
