"""DB helpers for tests: bootstrap a temporary SQLite ledger and inspect it."""

from __future__ import annotations

import os
from pathlib import Path

from db.client import create_schema, reset_engine
from db.models.ledger import FinCategory, FinTransaction
from sqlalchemy import func, select
from sqlalchemy.orm import Session


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    reset_engine()
    create_schema(database_url=url)
    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def count_transactions(session: Session, owner_id: str | None = None) -> int:
    stmt = select(func.count()).select_from(FinTransaction)
    if owner_id is not None:
        stmt = stmt.where(FinTransaction.owner_id == owner_id)
    return session.execute(stmt).scalar_one()


def category_names(session: Session, owner_id: str) -> set[tuple[str, str]]:
    rows = session.execute(
        select(FinCategory.name, FinCategory.type).where(FinCategory.owner_id == owner_id)
    ).all()
    return {(name, type_) for name, type_ in rows}
