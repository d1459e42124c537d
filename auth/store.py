"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as roster/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Service and route code never touches SQL directly.

Lookup contract: get_by_* return None when no row matches. A database
failure raises StorageError (see core.database.storage_errors). "Not found"
never travels on the error channel.

Uniqueness:
  accounts.email is UNIQUE. SQLite and PostgreSQL both treat NULLs as
  distinct, so accounts without an email do not collide.

  Names are unique only among accounts that hold a password, because the
  name is the local login handle. A partial unique index enforces this at
  the database level so two concurrent registrations cannot both win.
  Google sign-ins may share a display name with anyone.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or roster/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account
from core.config import get_settings
from core.database import create_store_engine, storage_errors
from core.errors import ConflictError, StorageError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), unique=True),
    Column("google_id", String(255)),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False, server_default=""),  # "" for federation-only
    Column("created_at", String(32), nullable=False),
)

Index(
    "uq_accounts_local_name",
    _accounts.c.name,
    unique=True,
    sqlite_where=_accounts.c.hashed_password != "",
    postgresql_where=_accounts.c.hashed_password != "",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        account = store.create_account(Account(name="alice", email="a@x.io", hashed_password=hash_password("secret")))
        same = store.get_by_email("a@x.io")
        store.close()
    """

    def __init__(self, db_url: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout_seconds or settings.store_timeout_seconds,
        )
        with storage_errors("create_schema"):
            _metadata.create_all(self.engine)

    def create_account(self, account: Account) -> Account:
        """Insert a new account and return it with id and created_at filled in.

        Raises ConflictError if the email, or the name of a password account,
        is already taken. Raises StorageError on any other database failure.
        """
        created_at = _now_iso()
        email = normalize_email(account.email)
        try:
            with storage_errors("create_account"), self.engine.begin() as conn:
                result = conn.execute(
                    _accounts.insert().values(
                        email=email,
                        google_id=account.google_id,
                        name=account.name,
                        hashed_password=account.hashed_password or "",
                        created_at=created_at,
                    )
                )
                account_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError() from exc
        return Account(
            id=account_id,
            email=email,
            google_id=account.google_id,
            name=account.name,
            hashed_password=account.hashed_password or "",
            created_at=created_at,
        )

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with storage_errors("get_by_id"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive). Returns None if not found."""
        normalized = normalize_email(email)
        if normalized is None:
            return None
        with storage_errors("get_by_email"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == normalized)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_name(self, name: str) -> Account | None:
        """Look up the password account registered under name. Returns None if not found.

        Federation-only accounts are never returned: their display name is
        not a login handle and may collide with a local account's name.
        """
        with storage_errors("get_by_name"), self.engine.connect() as conn:
            row = conn.execute(
                _accounts.select().where((_accounts.c.name == name) & (_accounts.c.hashed_password != ""))
            ).fetchone()
        return _row_to_account(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with storage_errors("ping"), self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except StorageError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        google_id=row.google_id,
        name=row.name,
        hashed_password=row.hashed_password or "",
        created_at=row.created_at,
    )
