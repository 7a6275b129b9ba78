"""Engine and session helpers for the ledger database.

One engine per process, bound to ``DATABASE_URL`` (or an explicit URL) on
first use::

    from db.client import session_scope

    with session_scope() as s:
        s.add(...)

Rebinding to another URL requires :func:`reset_engine` first; tests use it to
point each case at its own SQLite file.

SQLite engines are configured on every new connection: foreign keys are
enforced, and ``BEGIN`` is emitted by SQLAlchemy rather than pysqlite so that
``Session.begin_nested()`` savepoints behave as they do on Postgres.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_BOUND_URL: str | None = None


def resolve_database_url(override: str | None = None) -> str:
    """Return ``override`` or ``DATABASE_URL``; raise when neither is set."""

    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot open the ledger database")
    return url


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - driver hook
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN")


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process-wide engine, creating it on first use."""

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    url = resolve_database_url(database_url)
    if _ENGINE is not None:
        if url != _BOUND_URL:
            raise RuntimeError(
                "The ledger engine is already bound to a different database URL; "
                "call reset_engine() before switching"
            )
        return _ENGINE

    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)
    _ENGINE = engine
    _SESSION_MAKER = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
    _BOUND_URL = url
    return engine


def reset_engine() -> None:
    """Dispose the engine (if any) so the next call may bind another URL."""

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = _SESSION_MAKER = _BOUND_URL = None


def create_schema(*, database_url: str | None = None) -> Engine:
    """Create every ledger table that does not exist yet.

    Meant for local and test databases; deployed databases use Alembic.
    """

    from .models.ledger import Base

    engine = get_engine(database_url=database_url)
    Base.metadata.create_all(bind=engine)
    return engine


def get_session(*, database_url: str | None = None) -> Session:
    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # set together with _ENGINE
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on any exception, always close."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "create_schema",
    "get_engine",
    "get_session",
    "reset_engine",
    "resolve_database_url",
    "session_scope",
]
