from __future__ import annotations

from pathlib import Path

import pytesseract
import pytest

from finance_ingest.errors import ExtractionError
from finance_ingest.ingest.extractors import (
    extract_image_text,
    extract_pdf_text,
    extract_text,
    words_to_lines,
)

from tests.helpers.documents import make_image, make_pdf


def _word(x0: float, y1: float, text: str) -> tuple[float, float, float, float, str, int, int, int]:
    return (x0, y1 - 8.0, x0 + 20.0, y1, text, 0, 0, 0)


# ---- Line reconstruction -----------------------------------------------------


def test_words_to_lines_orders_by_baseline_then_x() -> None:
    words = [
        _word(200, 20.0, "4.50"),
        _word(10, 40.0, "02/01/2024"),
        _word(10, 20.0, "01/01/2024"),
        _word(90, 20.02, "COFFEE"),
        _word(90, 40.0, "RENT"),
    ]
    assert words_to_lines(words) == ["01/01/2024 COFFEE 4.50", "02/01/2024 RENT"]


def test_words_to_lines_empty() -> None:
    assert words_to_lines([]) == []


# ---- PDF ---------------------------------------------------------------------


def test_pdf_columns_stay_on_one_line(tmp_path: Path) -> None:
    pdf = make_pdf(
        tmp_path / "statement.pdf",
        [["BALANCE B/F 0.00", "01/03/2024 COFFEE SHOP 4.50"], ["02/03/2024 RENT 900.00"]],
    )
    text = extract_pdf_text(pdf)
    assert text.splitlines() == [
        "BALANCE B/F 0.00",
        "01/03/2024 COFFEE SHOP 4.50",
        "02/03/2024 RENT 900.00",
    ]
    assert pdf.exists()


def test_pdf_without_text_is_an_extraction_error(tmp_path: Path) -> None:
    pdf = make_pdf(tmp_path / "blank.pdf", [[]])
    with pytest.raises(ExtractionError, match="No text"):
        extract_pdf_text(pdf)


def test_corrupt_pdf_is_an_extraction_error(tmp_path: Path) -> None:
    bad = tmp_path / "broken.pdf"
    bad.write_bytes(b"this is not a pdf at all")
    with pytest.raises(ExtractionError):
        extract_pdf_text(bad)


@pytest.mark.parametrize("content", [None, b""])
def test_missing_or_empty_file(tmp_path: Path, content: bytes | None) -> None:
    path = tmp_path / "statement.pdf"
    if content is not None:
        path.write_bytes(content)
    with pytest.raises(ExtractionError) as excinfo:
        extract_text(path)
    assert excinfo.value.path == str(path)


# ---- OCR ---------------------------------------------------------------------


def test_image_text_comes_from_tesseract(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def _ocr(img, lang: str) -> str:
        seen["size"] = img.size
        seen["lang"] = lang
        return "WALMART\nTOTAL 7.00\n"

    monkeypatch.setattr(pytesseract, "image_to_string", _ocr)
    text = extract_image_text(make_image(tmp_path / "r.png"))

    assert text == "WALMART\nTOTAL 7.00\n"
    assert seen == {"size": (64, 32), "lang": "eng"}


def test_tesseract_cmd_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")
    monkeypatch.setenv("TESSERACT_CMD", "/opt/tesseract/bin/tesseract")
    monkeypatch.setattr(pytesseract, "image_to_string", lambda img, lang: "TOTAL 1.00")

    extract_image_text(make_image(tmp_path / "r.jpg", fmt="JPEG"))
    assert pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract/bin/tesseract"


@pytest.mark.parametrize("ocr_text", ["", "  \n\t "])
def test_blank_ocr_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, ocr_text: str) -> None:
    monkeypatch.setattr(pytesseract, "image_to_string", lambda img, lang: ocr_text)
    with pytest.raises(ExtractionError, match="No text"):
        extract_image_text(make_image(tmp_path / "r.png"))


def test_missing_tesseract_binary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(img, lang: str) -> str:
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "image_to_string", _missing)
    with pytest.raises(ExtractionError, match="not installed"):
        extract_image_text(make_image(tmp_path / "r.png"))


def test_undecodable_image(tmp_path: Path) -> None:
    bad = tmp_path / "r.png"
    bad.write_bytes(b"definitely not an image")
    with pytest.raises(ExtractionError, match="Unreadable image"):
        extract_image_text(bad)


def test_unsupported_extension(tmp_path: Path) -> None:
    doc = tmp_path / "notes.txt"
    doc.write_text("hello")
    with pytest.raises(ExtractionError, match="Unsupported file type: .txt"):
        extract_text(doc)
