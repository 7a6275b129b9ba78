# ruff: noqa: I001
"""Alembic environment for the ledger tables.

``DATABASE_URL`` (from the process environment or the nearest ``.env``) wins
over ``sqlalchemy.url`` in ``alembic.ini``. ``alembic.ini`` puts ``src`` on
``sys.path``, so the ``db`` package supplies the autogenerate metadata.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from dotenv import find_dotenv, load_dotenv
from sqlalchemy import engine_from_config, pool

from db import metadata as target_metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# usecwd=True finds the repository .env whether alembic runs from the root or libs/db.
_dotenv = find_dotenv(usecwd=True)
if _dotenv:
    load_dotenv(dotenv_path=_dotenv, override=False)


def _ledger_url() -> str:
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError(
            "No ledger database configured: set DATABASE_URL or sqlalchemy.url in alembic.ini"
        )
    return url


LEDGER_URL = _ledger_url()
config.set_main_option("sqlalchemy.url", LEDGER_URL)


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""

    context.configure(
        url=LEDGER_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = LEDGER_URL
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place.
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
