"""Unit tests for auth/service.py -- AccountService use cases.

Covers the account lifecycle without HTTP:
- register -> login -> token claims match the account
- duplicate username / email
- identical InvalidCredentials for unknown email and wrong password
- deactivated accounts: right password -> AccountDeactivated, wrong -> InvalidCredentials
- profile updates (partial, unchanged, conflicting)
- change_password and deactivate_account
"""

import pytest

from auth.errors import (
    AccountDeactivated,
    CurrentPasswordIncorrect,
    DuplicateIdentity,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from auth.models import Role
from auth.passwords import PasswordHasher
from auth.service import AccountService


@pytest.fixture
def alice(service: AccountService):
    return service.register("alice", "alice@x.com", "secret1")


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_creates_active_player(self, service: AccountService, alice) -> None:
        assert alice.id is not None
        assert alice.role is Role.player
        assert alice.is_active is True
        assert alice.password_hash != "secret1"

    def test_password_is_hashed_with_bcrypt(self, service: AccountService, hasher: PasswordHasher, alice) -> None:
        stored = service.store.find_by_id(alice.id)
        assert hasher.verify("secret1", stored.password_hash)

    @pytest.mark.parametrize(
        "username, email",
        [("alice", "other@x.com"), ("other", "alice@x.com"), ("alice", "alice@x.com")],
    )
    def test_duplicate_identity(self, service: AccountService, alice, username: str, email: str) -> None:
        with pytest.raises(DuplicateIdentity) as excinfo:
            service.register(username, email, "secret1")
        assert excinfo.value.message == "Username or email already exists"

    @pytest.mark.parametrize(
        "username, email, password, message",
        [
            ("", "a@x.com", "secret1", "All fields are required"),
            ("bob", "", "secret1", "All fields are required"),
            ("bob", "bob@x.com", "", "All fields are required"),
            ("bob", "bob@x.com", "12345", "Password must be at least 6 characters long"),
            ("bob", "not-an-email", "secret1", "Email address is not valid"),
            ("b" * 51, "bob@x.com", "secret1", "Username must be at most 50 characters long"),
            ("bob", "bob@x.com", "\u00e9" * 40, "Password must be at most 72 bytes"),
        ],
    )
    def test_validation(self, service: AccountService, username, email, password, message) -> None:
        with pytest.raises(ValidationError) as excinfo:
            service.register(username, email, password)
        assert excinfo.value.message == message

    def test_create_admin(self, service: AccountService) -> None:
        admin = service.create_admin("root", "root@x.com", "rootpass")
        assert admin.role is Role.admin


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_token_claims_match_account(self, service: AccountService, alice) -> None:
        result = service.login("alice@x.com", "secret1")
        claims = service.tokens.verify(result.token)
        assert (claims.id, claims.username, claims.role) == (alice.id, "alice", Role.player)
        assert result.account.id == alice.id

    def test_stamps_last_login(self, service: AccountService, alice) -> None:
        assert service.get_profile(alice.id).last_login_at is None
        result = service.login("alice@x.com", "secret1")
        assert result.account.last_login_at is not None
        assert service.get_profile(alice.id).last_login_at == result.account.last_login_at

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, service: AccountService, alice) -> None:
        with pytest.raises(InvalidCredentials) as wrong_password:
            service.login("alice@x.com", "wrong-password")
        with pytest.raises(InvalidCredentials) as unknown_email:
            service.login("nobody@x.com", "secret1")
        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"
        assert wrong_password.value.status_code == unknown_email.value.status_code == 401

    def test_unknown_email_still_runs_bcrypt(self, service: AccountService, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(service.hasher, "verify_dummy", lambda plain: calls.append(plain))
        with pytest.raises(InvalidCredentials):
            service.login("nobody@x.com", "secret1")
        assert calls == ["secret1"]

    def test_deactivated_with_right_password(self, service: AccountService, alice) -> None:
        service.deactivate_account(alice.id)
        with pytest.raises(AccountDeactivated):
            service.login("alice@x.com", "secret1")

    def test_deactivated_with_wrong_password_reports_invalid_credentials(self, service: AccountService, alice) -> None:
        service.deactivate_account(alice.id)
        with pytest.raises(InvalidCredentials):
            service.login("alice@x.com", "wrong-password")

    def test_missing_fields(self, service: AccountService) -> None:
        with pytest.raises(ValidationError):
            service.login("", "secret1")


# ---------------------------------------------------------------------------
# profile
# ---------------------------------------------------------------------------


class TestProfile:
    def test_get_profile_missing(self, service: AccountService) -> None:
        with pytest.raises(NotFound):
            service.get_profile(404)

    def test_partial_update_changes_only_supplied_field(self, service: AccountService, alice) -> None:
        updated = service.update_profile(alice.id, username="alice2")
        assert updated.username == "alice2"
        assert updated.email == "alice@x.com"
        assert service.get_profile(alice.id).username == "alice2"

    def test_update_to_own_current_values_is_a_no_op(self, service: AccountService, alice) -> None:
        updated = service.update_profile(alice.id, username="alice", email="alice@x.com")
        assert updated.username == "alice"

    @pytest.mark.parametrize(
        "field, value, message",
        [("username", "bob", "Username already exists"), ("email", "bob@x.com", "Email already exists")],
    )
    def test_update_conflict(self, service: AccountService, alice, field, value, message) -> None:
        service.register("bob", "bob@x.com", "secret1")
        with pytest.raises(DuplicateIdentity) as excinfo:
            service.update_profile(alice.id, **{field: value})
        assert excinfo.value.message == message
        assert getattr(service.get_profile(alice.id), field) != value

    def test_update_missing_account(self, service: AccountService) -> None:
        with pytest.raises(NotFound):
            service.update_profile(404, username="ghost")


# ---------------------------------------------------------------------------
# password / deactivation
# ---------------------------------------------------------------------------


class TestChangePassword:
    def test_new_password_works_old_does_not(self, service: AccountService, alice) -> None:
        service.change_password(alice.id, "secret1", "newsecret")
        assert service.login("alice@x.com", "newsecret").account.id == alice.id
        with pytest.raises(InvalidCredentials):
            service.login("alice@x.com", "secret1")

    def test_wrong_current_password(self, service: AccountService, alice) -> None:
        with pytest.raises(CurrentPasswordIncorrect):
            service.change_password(alice.id, "nope-nope", "newsecret")

    def test_new_password_too_short(self, service: AccountService, alice) -> None:
        with pytest.raises(ValidationError) as excinfo:
            service.change_password(alice.id, "secret1", "123")
        assert excinfo.value.message == "New password must be at least 6 characters long"

    def test_new_password_over_72_bytes(self, service: AccountService, alice) -> None:
        # 40 characters, 80 bytes in UTF-8.
        with pytest.raises(ValidationError) as excinfo:
            service.change_password(alice.id, "secret1", "\u00e9" * 40)
        assert excinfo.value.message == "New password must be at most 72 bytes"
        assert service.login("alice@x.com", "secret1").account.id == alice.id

    def test_missing_account(self, service: AccountService) -> None:
        with pytest.raises(NotFound):
            service.change_password(404, "secret1", "newsecret")


class TestDeactivate:
    def test_sets_inactive(self, service: AccountService, alice) -> None:
        service.deactivate_account(alice.id)
        assert service.get_profile(alice.id).is_active is False

    def test_missing_account(self, service: AccountService) -> None:
        with pytest.raises(NotFound):
            service.deactivate_account(404)
