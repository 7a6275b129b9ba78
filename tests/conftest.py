"""Pytest configuration for test isolation.

The pipeline reads a handful of environment variables (OpenAI key and model,
log level, uploads directory, ``DATABASE_URL``) and the ``db`` library keeps
one process-wide engine. Autouse fixtures clear the former and dispose the
latter around every test, so no test can reach a real service or see another
test's database.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from db.client import get_session, reset_engine
from sqlalchemy.orm import Session

from tests.helpers.db import bootstrap_sqlite_db

_ISOLATED_ENV = (
    "DATABASE_URL",
    "OPENAI_API_KEY",
    "FINANCE_INGEST_OPENAI_MODEL",
    "FINANCE_INGEST_LOG_LEVEL",
    "TESSERACT_CMD",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FINANCE_INGEST_UPLOADS_DIR", os.fspath(tmp_path / "uploads"))


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.db")


@pytest.fixture
def session(database_url: str) -> Iterator[Session]:
    s = get_session(database_url=database_url)
    try:
        yield s
    finally:
        s.close()
