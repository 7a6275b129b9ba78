"""Text extraction from uploaded artifacts.

Two strategies:

- Images go through Tesseract OCR (``pytesseract`` over a ``Pillow`` image)
  and come back as best-effort plain text without positions.
- PDFs go through PyMuPDF word extraction. Words sharing a vertical offset
  are joined into one line in left-to-right order and a newline is emitted
  whenever the offset changes. Plain text concatenation would merge the
  date/description/amount columns the statement parser relies on.

Both raise :class:`~finance_ingest.errors.ExtractionError` for unreadable
input or empty output and never modify the source file.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterable, Sequence
from os import PathLike
from pathlib import Path
from typing import Any

import pymupdf
import pytesseract
from PIL import Image, UnidentifiedImageError

from ..errors import ExtractionError
from ..logging_setup import get_logger, kv
from .utils import RECEIPT_EXTENSIONS, STATEMENT_EXTENSIONS, read_bytes

_logger = get_logger("finance_ingest.ingest.extractors")

_OCR_LANG = "eng"
# Baselines are compared after rounding to this many decimals.
_Y_PRECISION = 1


def _configure_tesseract() -> None:
    cmd = os.getenv("TESSERACT_CMD")
    if cmd:
        pytesseract.pytesseract.tesseract_cmd = cmd


def extract_image_text(path: str | PathLike[str]) -> str:
    """OCR a receipt image and return its text."""

    p = Path(path)
    data = read_bytes(p)
    _configure_tesseract()
    _logger.info("extract:ocr_start %s", kv(file=p.name, bytes=len(data)))
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            text = pytesseract.image_to_string(img, lang=_OCR_LANG)
    except UnidentifiedImageError as e:
        raise ExtractionError(f"Unreadable image: {p.name}", path=str(p)) from e
    except pytesseract.TesseractNotFoundError as e:
        raise ExtractionError("Tesseract OCR engine is not installed", path=str(p)) from e
    except (pytesseract.TesseractError, OSError) as e:
        raise ExtractionError(f"Failed to extract text from image: {e}", path=str(p)) from e

    if not text or not text.strip():
        raise ExtractionError("No text could be extracted from the image", path=str(p))
    _logger.info("extract:ocr_done %s", kv(file=p.name, chars=len(text)))
    return text


def words_to_lines(words: Iterable[Sequence[Any]]) -> list[str]:
    """Rebuild text lines from PyMuPDF ``("words")`` tuples.

    Each tuple is ``(x0, y0, x1, y1, text, block_no, line_no, word_no)``.
    Words are ordered by rounded baseline then ``x0``; a new line starts each
    time the baseline changes.
    """

    keyed = sorted(
        ((round(float(w[3]), _Y_PRECISION), float(w[0]), str(w[4])) for w in words),
        key=lambda t: (t[0], t[1]),
    )
    lines: list[str] = []
    current: list[str] = []
    last_y: float | None = None
    for y, _x, text in keyed:
        if last_y is not None and y != last_y:
            lines.append(" ".join(current))
            current = []
        current.append(text)
        last_y = y
    if current:
        lines.append(" ".join(current))
    return lines


def extract_pdf_text(path: str | PathLike[str]) -> str:
    """Return layout-preserving text for a PDF statement."""

    p = Path(path)
    data = read_bytes(p)
    _logger.info("extract:pdf_start %s", kv(file=p.name, bytes=len(data)))
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except (pymupdf.FileDataError, RuntimeError, ValueError) as e:
        raise ExtractionError(f"Failed to read PDF {p.name}: {e}", path=str(p)) from e

    page_texts: list[str] = []
    with doc:
        if doc.needs_pass:
            raise ExtractionError(f"PDF is password protected: {p.name}", path=str(p))
        for page in doc:
            lines = words_to_lines(page.get_text("words"))
            if lines:
                page_texts.append("\n".join(lines))
        pages = doc.page_count

    text = "\n".join(page_texts)
    if not text.strip():
        raise ExtractionError("No text could be extracted from the PDF", path=str(p))
    _logger.info("extract:pdf_done %s", kv(file=p.name, pages=pages, chars=len(text)))
    return text


def extract_text(path: str | PathLike[str]) -> str:
    """Dispatch on file extension to the OCR or PDF strategy."""

    suffix = Path(path).suffix.lower()
    if suffix in STATEMENT_EXTENSIONS:
        return extract_pdf_text(path)
    if suffix in RECEIPT_EXTENSIONS:
        return extract_image_text(path)
    raise ExtractionError(f"Unsupported file type: {suffix or '(none)'}", path=str(path))


__all__ = [
    "extract_image_text",
    "extract_pdf_text",
    "extract_text",
    "words_to_lines",
]
