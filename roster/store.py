"""
roster/store.py -- SQLAlchemy-backed persistence for saved rosters.

Uses SQLAlchemy Core (not ORM) so the Person dataclass in core/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. RosterStore is the repository;
_row_to_person is the mapper. Services never touch SQL directly.

Atomicity: insert_batch() writes a whole randomize result inside one
transaction. If any row fails, or the store times out mid-batch, nothing
from that call is kept.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = RosterStore()                               # SQLite default
    store = RosterStore("postgresql://user:pw@host/db") # PostgreSQL
    saved = store.insert_batch(account_id, people)
    people = store.fetch_by_account(account_id)
    store.close()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from core.database import create_store_engine, storage_errors
from core.errors import StorageError
from core.models import Person

logger = logging.getLogger("rollet.roster")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_people = Table(
    "people",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("role", String(255), nullable=False),
    Column("team", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RosterStore:
    def __init__(self, db_url: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout_seconds or settings.store_timeout_seconds,
        )
        with storage_errors("create_schema"):
            _metadata.create_all(self.engine)

    def insert_batch(self, account_id: int, people: Sequence[Person]) -> list[Person]:
        """Save people under account_id in one transaction; return copies with ids.

        All rows commit together or none do. Any failure, including a
        constraint violation, raises StorageError.
        """
        created_at = _now_iso()
        saved: list[Person] = []
        try:
            with storage_errors("insert_batch"), self.engine.begin() as conn:
                for person in people:
                    result = conn.execute(
                        _people.insert().values(
                            account_id=account_id,
                            name=person.name,
                            role=person.role,
                            team=person.team,
                            created_at=created_at,
                        )
                    )
                    saved.append(
                        Person(
                            id=result.inserted_primary_key[0],
                            name=person.name,
                            role=person.role,
                            team=person.team,
                        )
                    )
        except IntegrityError as exc:
            logger.error("Roster batch for account %d violated a constraint", account_id)
            raise StorageError() from exc
        logger.info("Saved %d people for account %d", len(saved), account_id)
        return saved

    def fetch_by_account(self, account_id: int) -> list[Person]:
        """Return every person saved by account_id, ordered by role then name."""
        with storage_errors("fetch_by_account"), self.engine.connect() as conn:
            rows = conn.execute(
                _people.select()
                .where(_people.c.account_id == account_id)
                .order_by(_people.c.role, _people.c.name, _people.c.id)
            ).fetchall()
        return [_row_to_person(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


def _row_to_person(row) -> Person:
    return Person(
        id=row.id,
        name=row.name,
        role=row.role,
        team=row.team,
    )
