"""Artifact store helpers shared by the extractors, the delegate and the CLI.

Uploaded artifacts are addressed by filesystem path. The orchestrator owns
their lifecycle: extraction only reads them, and :func:`delete_artifact` is
the single place that removes them.
"""

from __future__ import annotations

import shutil
import time
import uuid
from os import PathLike
from pathlib import Path

from ..errors import ExtractionError
from ..logging_setup import get_logger, kv

_logger = get_logger("finance_ingest.ingest.utils")

# Formats the OCR path accepts, plus webp which only the delegate handles well.
RECEIPT_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp")
STATEMENT_EXTENSIONS: tuple[str, ...] = (".pdf",)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def mime_type_for(path: str | PathLike[str]) -> str:
    """Infer the delegate MIME type from the file extension."""

    return _MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def is_valid_image_file(path: str | PathLike[str]) -> bool:
    return Path(path).suffix.lower() in RECEIPT_EXTENSIONS


def is_valid_pdf_file(path: str | PathLike[str]) -> bool:
    return Path(path).suffix.lower() in STATEMENT_EXTENSIONS


def read_bytes(path: str | PathLike[str]) -> bytes:
    """Return the artifact content, mapping I/O failures to ``ExtractionError``."""

    p = Path(path)
    try:
        data = p.read_bytes()
    except FileNotFoundError as e:
        raise ExtractionError(f"File not found: {p.name}", path=str(p)) from e
    except OSError as e:
        raise ExtractionError(f"Could not read {p.name}: {e}", path=str(p)) from e
    if not data:
        raise ExtractionError(f"File is empty: {p.name}", path=str(p))
    return data


def delete_artifact(path: str | PathLike[str]) -> bool:
    """Remove a temporary artifact; returns False when it was already gone."""

    p = Path(path)
    try:
        p.unlink()
    except FileNotFoundError:
        return False
    _logger.debug("artifact:deleted %s", kv(path=str(p)))
    return True


def stage_artifact(
    source: str | PathLike[str],
    uploads_dir: str | PathLike[str],
) -> Path:
    """Copy ``source`` into ``uploads_dir`` under a collision-free name.

    The staged copy is what the orchestrator may delete, so the caller's
    original file is never touched.
    """

    src = Path(source)
    if not src.is_file():
        raise ExtractionError(f"File not found: {src}", path=str(src))
    size = src.stat().st_size
    if size > MAX_UPLOAD_BYTES:
        raise ExtractionError(
            f"File size exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit", path=str(src)
        )
    dest_dir = Path(uploads_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = dest_dir / f"{uuid.uuid4()}-{int(time.time() * 1000)}{src.suffix.lower()}"
    shutil.copyfile(src, dest)
    _logger.info("artifact:staged %s", kv(source=src.name, staged=dest.name, bytes=size))
    return dest


def receipt_url_for(path: str | PathLike[str]) -> str:
    """Public URL under which a retained receipt is served."""

    return f"/uploads/{Path(path).name}"


__all__ = [
    "DEFAULT_MIME_TYPE",
    "MAX_UPLOAD_BYTES",
    "RECEIPT_EXTENSIONS",
    "STATEMENT_EXTENSIONS",
    "delete_artifact",
    "is_valid_image_file",
    "is_valid_pdf_file",
    "mime_type_for",
    "read_bytes",
    "receipt_url_for",
    "stage_artifact",
]
