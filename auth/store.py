"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper. Service and
route code never touches SQL directly.

Uniqueness:
  create() and save() run an existence query before writing, which gives the
  caller a precise message ("Email already exists"). The pre-check is not
  atomic: two concurrent registrations can both pass it. The UNIQUE
  constraints on username and email are the final arbiter, and an
  IntegrityError from the write is translated into DuplicateIdentity so the
  losing writer sees the same error kind as a pre-check failure.

  Any other SQLAlchemyError (lost connection, locked database) becomes
  PersistenceFailure. The original exception is chained and logged here; the
  client only ever sees the generic message.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Nothing in this module logs a password hash.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateIdentity, NotFound, PersistenceFailure
from auth.models import Account, Role

logger = logging.getLogger("playerauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default=Role.player.value),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login_at", String(32)),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _duplicate_field(exc: IntegrityError) -> str | None:
    """Best-effort: which UNIQUE column did the driver complain about?"""
    text = str(exc.orig).lower()
    if "email" in text:
        return "email"
    if "username" in text:
        return "username"
    return None


_DUPLICATE_MESSAGES = {
    "username": "Username already exists",
    "email": "Email already exists",
}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///./accounts.db")
        account = store.create(Account(username="alice", email="alice@x.com", password_hash=h))
        store.find_by_id(account.id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a connection; translate driver failures into PersistenceFailure.

        IntegrityError passes through untouched so the write paths can turn
        it into DuplicateIdentity.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Account store operation failed")
            raise PersistenceFailure() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_email_or_username(self, email: str, username: str) -> Account | None:
        """Return any account whose email OR username matches, in a single query."""
        with self._connect() as conn:
            row = conn.execute(
                _accounts.select()
                .where(or_(_accounts.c.email == email, _accounts.c.username == username))
                .order_by(_accounts.c.id)
                .limit(1)
            ).fetchone()
        return _row_to_account(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.warning("Account store health check failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, account: Account) -> Account:
        """Insert a new account and return it with id and timestamps filled in.

        Raises DuplicateIdentity if the username or email is taken, either by
        the pre-insert check or by the UNIQUE constraint when a concurrent
        insert won the race.
        """
        if self.find_by_email_or_username(account.email, account.username) is not None:
            raise DuplicateIdentity()
        now = _now_iso()
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _accounts.insert().values(
                        username=account.username,
                        email=account.email,
                        password_hash=account.password_hash,
                        role=Role(account.role).value,
                        is_active=account.is_active,
                        created_at=now,
                        updated_at=now,
                        last_login_at=account.last_login_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.info("Insert lost a uniqueness race for username=%r", account.username)
            raise DuplicateIdentity() from exc
        account.id = result.inserted_primary_key[0]
        account.created_at = now
        account.updated_at = now
        return account

    def save(self, account: Account) -> Account:
        """Persist the mutable fields of an existing account.

        username and email are re-checked against every other account before
        the UPDATE. Raises DuplicateIdentity with a field-specific message on
        conflict, NotFound if the row no longer exists.
        """
        if account.id is None:
            raise NotFound()
        self._check_unique_excluding(account)
        now = _now_iso()
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _accounts.update()
                    .where(_accounts.c.id == account.id)
                    .values(
                        username=account.username,
                        email=account.email,
                        password_hash=account.password_hash,
                        role=Role(account.role).value,
                        is_active=account.is_active,
                        last_login_at=account.last_login_at,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            field = _duplicate_field(exc)
            raise DuplicateIdentity(_DUPLICATE_MESSAGES.get(field)) from exc
        if result.rowcount == 0:
            raise NotFound()
        account.updated_at = now
        return account

    def touch_last_login(self, account_id: int) -> str:
        """Stamp the current UTC time as last_login_at and return it."""
        now = _now_iso()
        with self._connect() as conn:
            conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(last_login_at=now, updated_at=now)
            )
            conn.commit()
        return now

    def _check_unique_excluding(self, account: Account) -> None:
        with self._connect() as conn:
            for field in ("username", "email"):
                column = _accounts.c[field]
                clash = conn.execute(
                    select(_accounts.c.id)
                    .where(column == getattr(account, field))
                    .where(_accounts.c.id != account.id)
                    .limit(1)
                ).fetchone()
                if clash is not None:
                    raise DuplicateIdentity(_DUPLICATE_MESSAGES[field])

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login_at=row.last_login_at,
    )
