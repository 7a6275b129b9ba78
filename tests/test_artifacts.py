from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest

from finance_ingest.errors import ExtractionError
from finance_ingest.ingest.utils import (
    MAX_UPLOAD_BYTES,
    delete_artifact,
    is_valid_image_file,
    is_valid_pdf_file,
    mime_type_for,
    read_bytes,
    receipt_url_for,
    stage_artifact,
)
from finance_ingest.logging_setup import configure_logging, get_logger, kv


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("r.jpg", "image/jpeg"),
        ("r.JPEG", "image/jpeg"),
        ("r.png", "image/png"),
        ("r.webp", "image/webp"),
        ("r.tiff", "application/octet-stream"),
        ("r", "application/octet-stream"),
    ],
)
def test_mime_type_for(name: str, expected: str) -> None:
    assert mime_type_for(name) == expected


def test_extension_checks() -> None:
    assert is_valid_pdf_file("statement.PDF")
    assert not is_valid_pdf_file("statement.png")
    assert is_valid_image_file("scan.tif")
    assert not is_valid_image_file("scan.gif")


def test_read_and_delete(tmp_path: Path) -> None:
    p = tmp_path / "a.pdf"
    p.write_bytes(b"%PDF")
    assert read_bytes(p) == b"%PDF"
    assert delete_artifact(p) is True
    assert delete_artifact(p) is False
    with pytest.raises(ExtractionError, match="File not found"):
        read_bytes(p)


def test_stage_artifact_copies_under_a_fresh_name(tmp_path: Path) -> None:
    src = tmp_path / "Statement.PDF"
    src.write_bytes(b"%PDF-1.7")
    uploads = tmp_path / "uploads" / "nested"

    first = stage_artifact(src, uploads)
    second = stage_artifact(src, uploads)

    assert first != second
    assert first.parent == uploads and first.suffix == ".pdf"
    assert first.read_bytes() == b"%PDF-1.7"
    assert src.exists()
    assert receipt_url_for(first) == f"/uploads/{first.name}"


def test_stage_artifact_enforces_size_limit(tmp_path: Path) -> None:
    big = tmp_path / "big.png"
    with big.open("wb") as fh:
        fh.truncate(MAX_UPLOAD_BYTES + 1)
    with pytest.raises(ExtractionError, match="10MB"):
        stage_artifact(big, tmp_path / "uploads")
    assert not (tmp_path / "uploads").exists()


def test_kv_quotes_values_with_spaces() -> None:
    assert kv(file="a b.pdf", n=3, empty="") == "file='a b.pdf' n=3 empty=''"


def test_configure_logging_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FINANCE_INGEST_LOG_LEVEL", "warning")
    logger = configure_logging(stream=io.StringIO())
    try:
        assert logger.name == "finance_ingest"
        assert logger.level == logging.WARNING
        assert get_logger("finance_ingest.ingestion").getEffectiveLevel() == logging.WARNING
        assert configure_logging("DEBUG").level == logging.DEBUG
    finally:
        configure_logging(logging.INFO)
