"""
auth/errors.py -- Closed error taxonomy for the accounts service.

Every failure the auth layer can report is one ErrorKind member. Boundaries
(the auth gate, the HTTP exception handler) match on the kind explicitly;
nothing inspects exception class names or message strings.

Each AuthError subclass pins its kind and default message so call sites read
naturally (raise InvalidCredentials()) while the HTTP layer only needs
exc.kind and exc.status_code.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    validation_error = "validation_error"
    invalid_json = "invalid_json"
    duplicate_identity = "duplicate_identity"
    no_token = "no_token"
    token_expired = "token_expired"
    token_invalid = "token_invalid"
    user_not_found = "user_not_found"
    invalid_credentials = "invalid_credentials"
    current_password_incorrect = "current_password_incorrect"
    account_deactivated = "account_deactivated"
    not_found = "not_found"
    persistence_failure = "persistence_failure"
    internal_error = "internal_error"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.validation_error: 400,
    ErrorKind.invalid_json: 400,
    ErrorKind.duplicate_identity: 409,
    ErrorKind.no_token: 401,
    ErrorKind.token_expired: 401,
    ErrorKind.token_invalid: 401,
    ErrorKind.user_not_found: 401,
    ErrorKind.invalid_credentials: 401,
    ErrorKind.current_password_incorrect: 400,
    ErrorKind.account_deactivated: 403,
    ErrorKind.not_found: 404,
    ErrorKind.persistence_failure: 503,
    ErrorKind.internal_error: 500,
}


class AuthError(Exception):
    """Base class for every client-visible failure raised by auth/.

    message is safe to show to the caller. Anything operator-only belongs in
    the chained __cause__ and the log, never in message.
    """

    kind: ErrorKind = ErrorKind.internal_error
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationError(AuthError):
    kind = ErrorKind.validation_error
    default_message = "Invalid input."


class DuplicateIdentity(AuthError):
    kind = ErrorKind.duplicate_identity
    default_message = "Username or email already exists"


class NoToken(AuthError):
    kind = ErrorKind.no_token
    default_message = "No authentication token provided"


class TokenExpired(AuthError):
    kind = ErrorKind.token_expired
    default_message = "Token expired"


class TokenInvalid(AuthError):
    kind = ErrorKind.token_invalid
    default_message = "Invalid token"


class UserNotFound(AuthError):
    """The token verified but refers to no account (401, not 404)."""

    kind = ErrorKind.user_not_found
    default_message = "User not found"


class InvalidCredentials(AuthError):
    # One message for unknown email and wrong password.
    kind = ErrorKind.invalid_credentials
    default_message = "Invalid credentials"


class CurrentPasswordIncorrect(AuthError):
    kind = ErrorKind.current_password_incorrect
    default_message = "Current password is incorrect"


class AccountDeactivated(AuthError):
    kind = ErrorKind.account_deactivated
    default_message = "Account deactivated"


class NotFound(AuthError):
    kind = ErrorKind.not_found
    default_message = "User not found"


class PersistenceFailure(AuthError):
    kind = ErrorKind.persistence_failure
    default_message = "A storage error occurred."
