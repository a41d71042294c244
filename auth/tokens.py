"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  python-jose with HS256. Tokens are signed with the configured secret key and
  carry the account id, username, role, issue time and expiry. There is no
  server-side session table and no revocation list: expiry is the only way a
  token stops working. The auth gate re-loads the account on every request,
  which is how deactivation takes effect on tokens that are still valid.

  The signing secret is injected through TokenConfig at construction. Nothing
  in this module reads settings, so tests can build a TokenService with any
  key and any lifetime.

  verify() raises TokenExpired or TokenInvalid instead of returning None, so
  the gate can tell the two apart in its response.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Account, Role, TokenClaims

DEFAULT_EXPIRE_SECONDS = 24 * 3600


@dataclass(frozen=True)
class TokenConfig:
    secret_key: str
    expire_seconds: int = DEFAULT_EXPIRE_SECONDS
    algorithm: str = "HS256"

    def __repr__(self) -> str:
        return f"TokenConfig(secret_key='***', expire_seconds={self.expire_seconds}, algorithm={self.algorithm!r})"


class TokenService:
    """Issue and verify signed, time-bounded bearer tokens.

    Usage:
        tokens = TokenService(TokenConfig(secret_key=settings.secret_key))
        token = tokens.issue(account)
        claims = tokens.verify(token)
    """

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    @property
    def expire_seconds(self) -> int:
        return self._config.expire_seconds

    def issue(self, account: Account, now: datetime | None = None) -> str:
        """Encode a signed JWT for the account, valid for expire_seconds from now.

        now is only overridden by tests that need an already-expired token.
        """
        issued = now or datetime.now(timezone.utc)
        expire = issued + timedelta(seconds=self._config.expire_seconds)
        payload = {
            "sub": str(account.id),
            "id": account.id,
            "username": account.username,
            "role": Role(account.role).value,
            "iat": int(issued.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a JWT.

        Raises TokenExpired if the exp claim is in the past, TokenInvalid for a
        bad signature, a malformed token, or claims of the wrong shape.
        """
        try:
            payload = jwt.decode(
                token,
                self._config.secret_key,
                algorithms=[self._config.algorithm],
                options={"leeway": 0},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise TokenInvalid() from exc
        return _claims_from_payload(payload)


def _claims_from_payload(payload: dict) -> TokenClaims:
    account_id = payload.get("id")
    username = payload.get("username")
    # bool is an int subclass; a True id is not an account id.
    if not isinstance(account_id, int) or isinstance(account_id, bool):
        raise TokenInvalid()
    if not isinstance(username, str) or not username:
        raise TokenInvalid()
    try:
        role = Role(payload.get("role"))
    except ValueError as exc:
        raise TokenInvalid() from exc
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        raise TokenInvalid()
    return TokenClaims(
        id=account_id,
        username=username,
        role=role,
        issued_at=issued_at,
        expires_at=expires_at,
    )
