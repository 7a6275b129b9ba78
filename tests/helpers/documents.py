"""Generate small PDF and image fixtures on the fly."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pymupdf
from PIL import Image


def make_pdf(path: Path, pages: Sequence[Sequence[str]], *, fontsize: float = 8) -> Path:
    """Write a PDF with one text line per entry, one page per inner sequence."""

    doc = pymupdf.open()
    try:
        for lines in pages:
            page = doc.new_page()
            y = 60.0
            for line in lines:
                page.insert_text((30, y), line, fontsize=fontsize)
                y += fontsize * 2
        doc.save(path)
    finally:
        doc.close()
    return path


def make_image(path: Path, *, fmt: str = "PNG") -> Path:
    Image.new("RGB", (64, 32), color="white").save(path, format=fmt)
    return path
