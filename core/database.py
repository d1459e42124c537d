"""
core/database.py -- SQLAlchemy engine construction shared by the stores.

Both AccountStore and RosterStore go through create_store_engine() so they
agree on two things:

  Timeouts: every store operation is bounded by STORE_TIMEOUT_SECONDS.
      SQLite gets it as the busy timeout (how long a writer waits on a lock),
      PostgreSQL as connect_timeout plus a per-session statement_timeout.
      A timed-out operation fails; nothing retries it.

  Error translation: storage_errors() turns any SQLAlchemyError into
      StorageError so callers above the store see one classification for
      I/O failure. IntegrityError is left alone -- stores translate it into
      ConflictError where a uniqueness rule applies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.errors import StorageError

logger = logging.getLogger("rollet.storage")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str, timeout_seconds: float) -> Engine:
    """Build an Engine whose connections honour timeout_seconds."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout_seconds
    elif db_url.startswith("postgres"):
        connect_args["connect_timeout"] = max(1, int(timeout_seconds))
        connect_args["options"] = f"-c statement_timeout={int(timeout_seconds * 1000)}"

    engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)
    if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise database failures inside the block as StorageError."""
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        logger.error("Store operation %r failed: %s", operation, exc.__class__.__name__)
        raise StorageError() from exc
