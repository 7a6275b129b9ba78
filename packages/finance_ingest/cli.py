# ruff: noqa: I001
"""CLI for the ``finance_ingest`` package.

A Typer console interface over the ingestion pipeline. Environment variables
(``DATABASE_URL``, ``OPENAI_API_KEY``, ...) are loaded from a local ``.env``
using ``python-dotenv`` before any command runs. Business logic lives in
``finance_ingest.ingestion`` and related modules; commands only stage files,
open a session and print results.

Ingest commands copy the input into the uploads directory first
(``--uploads-dir`` or ``FINANCE_INGEST_UPLOADS_DIR``, default ``./uploads``),
so the artifact cleanup performed by the orchestrator never touches the
caller's original file.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

import typer
from dotenv import load_dotenv

from .errors import IngestError
from .ingestion import StatementMethod
from .logging_setup import configure_logging

_UPLOADS_ENV = "FINANCE_INGEST_UPLOADS_DIR"
_DEFAULT_UPLOADS_DIR = "uploads"


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _resolve_uploads_dir(uploads_dir: Path | None) -> Path:
    if uploads_dir is not None:
        return uploads_dir
    return Path(os.getenv(_UPLOADS_ENV) or _DEFAULT_UPLOADS_DIR)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import transactions from PDF bank statements and receipt images. "
        "Loads DATABASE_URL and OPENAI_API_KEY from a local .env before running."
    ),
)


@app.command("init-db")
def init_db_cmd(
    *,
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Create the ledger tables directly (local/dev databases; use Alembic elsewhere)."""

    from db.client import create_schema

    try:
        engine = create_schema(database_url=database_url)
    except Exception as e:
        raise _fail(f"failed to initialize database: {e}") from e
    typer.echo(f"Initialized tables on {engine.url.render_as_string(hide_password=True)}")


@app.command("seed-categories")
def seed_categories_cmd(
    *,
    owner_id: str = typer.Option(
        ..., "--owner-id", help="Identifier of the user who owns the imported transactions."
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Install the default income/expense categories for one user."""

    from db.client import session_scope
    from .categories import seed_default_categories

    try:
        with session_scope(database_url=database_url) as session:
            created = seed_default_categories(session, owner_id)
    except Exception as e:
        raise _fail(f"seeding categories failed: {e}") from e
    typer.echo(f"Created {created} categor{'y' if created == 1 else 'ies'} for {owner_id}")


@app.command("categorize")
def categorize_cmd(
    description: str = typer.Argument(..., help="Free-text transaction description."),
    *,
    income: bool = typer.Option(False, "--income", help="Treat the transaction as income."),
) -> None:
    """Print the category the heuristic rules assign to DESCRIPTION."""

    from .categorization import categorize

    typer.echo(categorize(description, is_expense=not income))


@app.command("parse-statement")
def parse_statement_cmd(
    pdf_path: Path = typer.Argument(..., dir_okay=False, help="PDF statement to parse."),
    *,
    owner_id: str = typer.Option(
        ..., "--owner-id", help="Identifier of the user who owns the imported transactions."
    ),
    method: StatementMethod = typer.Option(
        StatementMethod.AUTO,
        "--method",
        help="Statement parser: heuristic (BALANCE B/F layout), generic, auto, or ai.",
        case_sensitive=False,
    ),
) -> None:
    """Dry run: extract and parse a statement, print candidates as JSON, write nothing."""

    from .ingest.extractors import extract_text
    from .ingestion import parse_statement

    try:
        text = extract_text(pdf_path)
        result = parse_statement(text, owner_id, method)
    except IngestError as e:
        raise _fail(str(e)) from e
    _echo_json(
        {
            "totalLinesSeen": result.total_lines_or_items_seen,
            "totalTransactions": len(result.succeeded),
            "transactions": [c.to_dict() for c in result.succeeded],
        }
    )


@app.command("ingest-statement")
def ingest_statement_cmd(
    pdf_path: Path = typer.Argument(..., dir_okay=False, help="PDF statement to import."),
    *,
    owner_id: str = typer.Option(
        ..., "--owner-id", help="Identifier of the user who owns the imported transactions."
    ),
    method: StatementMethod = typer.Option(
        StatementMethod.AUTO,
        "--method",
        help="Statement parser: heuristic (BALANCE B/F layout), generic, auto, or ai.",
        case_sensitive=False,
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
    ),
    uploads_dir: Path | None = typer.Option(
        None,
        "--uploads-dir",
        help="Staging directory for uploads (falls back to FINANCE_INGEST_UPLOADS_DIR).",
        file_okay=False,
    ),
) -> None:
    """Import every transaction of a PDF statement and print the outcome as JSON."""

    from db.client import session_scope
    from .ingest.utils import stage_artifact
    from .ingestion import ingest_statement

    try:
        staged = stage_artifact(pdf_path, _resolve_uploads_dir(uploads_dir))
        with session_scope(database_url=database_url) as session:
            outcome = ingest_statement(staged, owner_id=owner_id, session=session, method=method)
    except (IngestError, RuntimeError) as e:
        raise _fail(str(e)) from e
    _echo_json(outcome.to_dict())
    if not outcome.success:
        raise typer.Exit(1)


@app.command("ingest-receipt")
def ingest_receipt_cmd(
    image_path: Path = typer.Argument(..., dir_okay=False, help="Receipt image to import."),
    *,
    owner_id: str = typer.Option(
        ..., "--owner-id", help="Identifier of the user who owns the imported transactions."
    ),
    use_ai: bool = typer.Option(
        False, "--ai", help="Read the receipt with the AI delegate instead of OCR."
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
    ),
    uploads_dir: Path | None = typer.Option(
        None,
        "--uploads-dir",
        help="Staging directory for uploads (falls back to FINANCE_INGEST_UPLOADS_DIR).",
        file_okay=False,
    ),
) -> None:
    """Import one receipt as an expense and print the outcome as JSON."""

    from db.client import session_scope
    from .ingest.utils import stage_artifact
    from .ingestion import ingest_receipt

    try:
        staged = stage_artifact(image_path, _resolve_uploads_dir(uploads_dir))
        with session_scope(database_url=database_url) as session:
            outcome = ingest_receipt(staged, owner_id=owner_id, session=session, use_ai=use_ai)
    except (IngestError, RuntimeError) as e:
        raise _fail(str(e)) from e
    _echo_json(outcome.to_dict())
    if not outcome.success:
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to FINANCE_INGEST_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m finance_ingest.cli`
    app()
