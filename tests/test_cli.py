from __future__ import annotations

import json
from pathlib import Path

import pytesseract
import pytest
from sqlalchemy.orm import Session
from typer.testing import CliRunner

from finance_ingest.cli import app

from tests.helpers.db import category_names, count_transactions
from tests.helpers.documents import make_image, make_pdf

runner = CliRunner()

STATEMENT_LINES = [
    "01/07/2025 01/07/2025 BALANCE B/F - - 1,000.00 CR",
    "02/07/2025 02/07/2025 UBER TRIP 25.00 - 975.00 CR",
    "03/07/2025 03/07/2025 NEFT SALARY JULY - 2,000.00 2,975.00 CR",
]


def test_categorize_command() -> None:
    result = runner.invoke(app, ["categorize", "Monthly Salary Payment", "--income"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "Salary"

    result = runner.invoke(app, ["categorize", "random noise"])
    assert result.stdout.strip() == "Other Expenses"


def test_seed_categories_command(database_url: str, session: Session) -> None:
    args = ["seed-categories", "--owner-id", "u1", "--database-url", database_url]

    first = runner.invoke(app, args)
    second = runner.invoke(app, args)

    assert first.exit_code == 0, first.output
    assert "Created 13 categories for u1" in first.stdout
    assert "Created 0 categories for u1" in second.stdout
    assert len(category_names(session, "u1")) == 13


def test_parse_statement_is_a_dry_run(tmp_path: Path) -> None:
    pdf = make_pdf(tmp_path / "statement.pdf", [STATEMENT_LINES])

    result = runner.invoke(app, ["parse-statement", str(pdf), "--owner-id", "u1"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["totalTransactions"] == 2
    assert [t["category"] for t in payload["transactions"]] == ["Transportation", "Salary"]
    assert payload["transactions"][0]["amount"] == "25.00"
    assert pdf.exists()


def test_ingest_statement_command(tmp_path: Path, database_url: str, session: Session) -> None:
    pdf = make_pdf(tmp_path / "statement.pdf", [STATEMENT_LINES])
    uploads = tmp_path / "staging"

    result = runner.invoke(
        app,
        [
            "ingest-statement",
            str(pdf),
            "--owner-id",
            "u1",
            "--database-url",
            database_url,
            "--uploads-dir",
            str(uploads),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["success"] is True
    assert payload["insertedTransactions"] == 2
    assert payload["stage"] == "done"
    assert pdf.exists()
    assert list(uploads.iterdir()) == []
    assert count_transactions(session, "u1") == 2


def test_ingest_statement_without_transactions_exits_nonzero(
    tmp_path: Path, database_url: str
) -> None:
    pdf = make_pdf(tmp_path / "letter.pdf", [["Dear customer, nothing to see here."]])

    result = runner.invoke(
        app, ["ingest-statement", str(pdf), "--owner-id", "u1", "--database-url", database_url]
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["success"] is False
    assert payload["stage"] == "failed"
    assert payload["errors"] == ["No transactions found in the statement"]


def test_ingest_statement_missing_file(tmp_path: Path, database_url: str) -> None:
    result = runner.invoke(
        app,
        [
            "ingest-statement",
            str(tmp_path / "nope.pdf"),
            "--owner-id",
            "u1",
            "--database-url",
            database_url,
        ],
    )
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_ingest_receipt_command(
    tmp_path: Path, database_url: str, session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        pytesseract,
        "image_to_string",
        lambda img, lang: "STARBUCKS\n07/28/2025\nLatte 5.25\nTOTAL 5.25\n",
    )
    image = make_image(tmp_path / "latte.png")
    uploads = tmp_path / "staging"

    result = runner.invoke(
        app,
        [
            "ingest-receipt",
            str(image),
            "--owner-id",
            "u1",
            "--database-url",
            database_url,
            "--uploads-dir",
            str(uploads),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    [retained] = list(uploads.iterdir())
    assert payload["receiptUrl"] == f"/uploads/{retained.name}"
    assert payload["extractedData"]["amount"] == "5.25"
    assert payload["extractedData"]["category"] == "Food & Dining"
    assert count_transactions(session, "u1") == 1


def test_ingest_receipt_with_ai_requires_a_key(tmp_path: Path, database_url: str) -> None:
    image = make_image(tmp_path / "latte.png")

    result = runner.invoke(
        app,
        ["ingest-receipt", str(image), "--owner-id", "u1", "--ai", "--database-url", database_url],
    )

    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_init_db_creates_tables(tmp_path: Path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}"

    result = runner.invoke(app, ["init-db", "--database-url", url])

    assert result.exit_code == 0, result.output
    assert "Initialized tables on sqlite+pysqlite:///" in result.stdout

    seeded = runner.invoke(app, ["seed-categories", "--owner-id", "u9", "--database-url", url])
    assert seeded.exit_code == 0, seeded.output
