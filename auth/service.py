"""
auth/service.py -- Account use cases: register, login, profile, password, deactivation.

AccountService orchestrates AccountStore, PasswordHasher and TokenService. It
validates its inputs, delegates, and raises AuthError subclasses; it knows
nothing about HTTP.

Login ordering:
  1. Look up by email. Unknown email -> burn a dummy bcrypt check, then
     InvalidCredentials.
  2. Verify the password. Mismatch -> InvalidCredentials (same message).
  3. Only now check is_active -> AccountDeactivated.
  A wrong password against a deactivated account therefore still reports
  InvalidCredentials, and neither branch reveals whether the email exists.

All methods are synchronous. The HTTP routes that call them are plain def
handlers, so Starlette runs them in its thread pool and bcrypt stays off the
event loop.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.errors import (
    AccountDeactivated,
    CurrentPasswordIncorrect,
    DuplicateIdentity,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from auth.models import Account, Role
from auth.passwords import PasswordHasher
from auth.store import AccountStore
from auth.tokens import TokenService

logger = logging.getLogger("playerauth.auth")

USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
PASSWORD_MAX_BYTES = 72  # bcrypt input limit


@dataclass(frozen=True)
class LoginResult:
    token: str
    account: Account


class AccountService:
    """Registration, login and self-service account management."""

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        min_password_length: int = 6,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.min_password_length = min_password_length

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> Account:
        """Create a player account. Raises DuplicateIdentity if username or email is taken."""
        return self._create(username, email, password, Role.player)

    def create_admin(self, username: str, email: str, password: str) -> Account:
        """Create an admin account. Only reachable from the operator CLI."""
        return self._create(username, email, password, Role.admin)

    def login(self, email: str, password: str) -> LoginResult:
        """Check credentials, stamp last_login_at and issue a token."""
        if not email or not password:
            raise ValidationError("Email and password are required")
        account = self.store.find_by_email(email)
        if account is None:
            self.hasher.verify_dummy(password)
            raise InvalidCredentials()
        if not self.hasher.verify(password, account.password_hash):
            raise InvalidCredentials()
        if not account.is_active:
            logger.info("Login refused for deactivated account id=%s", account.id)
            raise AccountDeactivated()

        account.last_login_at = self.store.touch_last_login(account.id)
        token = self.tokens.issue(account)
        logger.info("Login succeeded for account id=%s", account.id)
        return LoginResult(token=token, account=account)

    # ------------------------------------------------------------------
    # Caller-scoped operations (account_id always comes from the auth gate)
    # ------------------------------------------------------------------

    def get_profile(self, account_id: int) -> Account:
        return self._load(account_id)

    def update_profile(self, account_id: int, username: str | None = None, email: str | None = None) -> Account:
        """Change username and/or email. Fields that are None or unchanged are left alone.

        Each changed field is re-checked against other accounts and raises
        DuplicateIdentity("Username already exists" / "Email already exists").
        """
        account = self._load(account_id)
        changed = False
        if username is not None and username != account.username:
            _validate_username(username)
            clash = self.store.find_by_username(username)
            if clash is not None and clash.id != account.id:
                raise DuplicateIdentity("Username already exists")
            account.username = username
            changed = True
        if email is not None and email != account.email:
            _validate_email(email)
            clash = self.store.find_by_email(email)
            if clash is not None and clash.id != account.id:
                raise DuplicateIdentity("Email already exists")
            account.email = email
            changed = True
        if changed:
            self.store.save(account)
            logger.info("Profile updated for account id=%s", account.id)
        return account

    def change_password(self, account_id: int, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current and new password are required")
        self._validate_password(new_password, label="New password")
        account = self._load(account_id)
        if not self.hasher.verify(current_password, account.password_hash):
            raise CurrentPasswordIncorrect()
        account.password_hash = self.hasher.hash(new_password)
        self.store.save(account)
        logger.info("Password changed for account id=%s", account.id)

    def deactivate_account(self, account_id: int) -> None:
        """Flip is_active to False. There is no reactivation path."""
        account = self._load(account_id)
        account.is_active = False
        self.store.save(account)
        logger.info("Account id=%s deactivated", account.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create(self, username: str, email: str, password: str, role: Role) -> Account:
        if not username or not email or not password:
            raise ValidationError("All fields are required")
        _validate_username(username)
        _validate_email(email)
        self._validate_password(password, label="Password")
        # Combined lookup first so the common case never pays for bcrypt.
        if self.store.find_by_email_or_username(email, username) is not None:
            raise DuplicateIdentity()
        account = Account(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=role,
            is_active=True,
        )
        created = self.store.create(account)
        logger.info("Registered account id=%s role=%s", created.id, created.role.value)
        return created

    def _load(self, account_id: int) -> Account:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFound()
        return account

    def _validate_password(self, password: str, label: str) -> None:
        if len(password) < self.min_password_length:
            raise ValidationError(f"{label} must be at least {self.min_password_length} characters long")
        if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValidationError(f"{label} must be at most {PASSWORD_MAX_BYTES} bytes")


def _validate_username(username: str) -> None:
    if not username.strip():
        raise ValidationError("Username must not be blank")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"Username must be at most {USERNAME_MAX_LENGTH} characters long")


def _validate_email(email: str) -> None:
    if "@" not in email or len(email) < 3:
        raise ValidationError("Email address is not valid")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError(f"Email must be at most {EMAIL_MAX_LENGTH} characters long")
