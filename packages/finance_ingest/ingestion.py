"""Ingestion orchestrator: one uploaded artifact in, one outcome out.

Each call walks ``received -> extracting -> parsing -> persisting -> done``
and lands in ``failed`` when extraction or parsing gives up. The two fatal
request errors (``ExtractionError`` and ``AIParseError``) and an empty parse
become a failed :class:`~finance_ingest.models.IngestionOutcome`; anything
else propagates to the caller after the artifact has been cleaned up.

Artifact lifecycle
------------------
- Statements are temporary: the file is deleted on every exit path.
- Receipts are kept only when a transaction referencing them (through
  ``receipt_url``) was inserted; otherwise they are deleted too.

Database work happens in the caller's session; committing is the caller's job.
"""

from __future__ import annotations

from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import Protocol

from sqlalchemy.orm import Session

from .ai_parser import create_ai_parser
from .categories import ensure_categories
from .errors import AIParseError, ExtractionError, IngestError, NoTransactionsFoundError
from .ingest.extractors import extract_text
from .ingest.generic_statement import parse_generic_statement
from .ingest.receipt_parser import parse_receipt
from .ingest.statement_parser import parse_statement_text
from .ingest.utils import (
    delete_artifact,
    is_valid_image_file,
    is_valid_pdf_file,
    receipt_url_for,
)
from .logging_setup import get_logger, kv
from .models import (
    RAW_TEXT_PREVIEW_CHARS,
    IngestionOutcome,
    IngestionStage,
    InsertResult,
    ParseResult,
    ReceiptFields,
    TransactionCandidate,
    TransactionType,
)
from .persistence import insert_candidates

_logger = get_logger("finance_ingest.ingestion")

PREVIEW_LIMIT = 10
RECEIPT_FALLBACK_DESCRIPTION = "Receipt upload"


class StatementMethod(StrEnum):
    """How statement text is turned into candidates."""

    HEURISTIC = "heuristic"  # BALANCE B/F state machine
    GENERIC = "generic"  # one transaction per line, signed amounts
    AUTO = "auto"  # heuristic, then generic when the first finds nothing
    AI = "ai"


class StatementAIParser(Protocol):
    def parse_statement_text(self, text: str, owner_id: str) -> ParseResult: ...


class ReceiptAIParser(Protocol):
    def parse_receipt_image(self, path: str | PathLike[str]) -> ReceiptFields: ...


def _enter(stage: IngestionStage, artifact: Path) -> IngestionStage:
    _logger.debug("ingest:stage %s", kv(stage=stage.value, file=artifact.name))
    return stage


def _failed(
    stage: IngestionStage,
    error: IngestError,
    *,
    artifact: Path,
    raw_text_preview: str | None = None,
    extracted: ReceiptFields | None = None,
) -> IngestionOutcome:
    _logger.warning(
        "ingest:failed %s",
        kv(stage=stage.value, file=artifact.name, error=type(error).__name__, message=str(error)),
    )
    return IngestionOutcome(
        success=False,
        stage=IngestionStage.FAILED,
        message=str(error),
        errors=(error,),
        raw_text_preview=raw_text_preview,
        extracted=extracted,
    )


def _persist(session: Session, candidates: list[TransactionCandidate]) -> InsertResult:
    ensure_categories(session, candidates)
    return insert_candidates(session, candidates)


def parse_statement(
    text: str,
    owner_id: str,
    method: StatementMethod | str = StatementMethod.AUTO,
    ai_parser: StatementAIParser | None = None,
) -> ParseResult:
    """Run the parser selected by ``method`` over extracted statement text."""

    method = StatementMethod(method)
    if method is StatementMethod.AI:
        parser = ai_parser if ai_parser is not None else create_ai_parser()
        return parser.parse_statement_text(text, owner_id)
    if method is StatementMethod.GENERIC:
        return parse_generic_statement(text, owner_id)
    result = parse_statement_text(text, owner_id)
    if method is StatementMethod.AUTO and not result.succeeded:
        _logger.info("ingest:statement_fallback %s", kv(method=StatementMethod.GENERIC.value))
        return parse_generic_statement(text, owner_id)
    return result


def ingest_statement(
    path: str | PathLike[str],
    *,
    owner_id: str,
    session: Session,
    method: StatementMethod | str = StatementMethod.AUTO,
    ai_parser: StatementAIParser | None = None,
) -> IngestionOutcome:
    """Extract, parse and persist the transactions of one PDF statement.

    ``method`` picks the parser (see :class:`StatementMethod`). With ``ai``
    and no ``ai_parser`` given, a delegate is built from the environment; a
    missing key surfaces as ``ConfigurationError``.
    """

    artifact = Path(path)
    method = StatementMethod(method)
    stage = _enter(IngestionStage.RECEIVED, artifact)
    try:
        stage = _enter(IngestionStage.EXTRACTING, artifact)
        if not is_valid_pdf_file(artifact):
            raise ExtractionError(
                "Invalid file type. Only PDF files are allowed for statements.",
                path=str(artifact),
            )
        text = extract_text(artifact)

        stage = _enter(IngestionStage.PARSING, artifact)
        result = parse_statement(text, owner_id, method, ai_parser)
        if not result.succeeded:
            return _failed(
                stage,
                NoTransactionsFoundError("No transactions found in the statement"),
                artifact=artifact,
                raw_text_preview=result.raw_text_preview,
            )

        stage = _enter(IngestionStage.PERSISTING, artifact)
        candidates = list(result.succeeded)
        inserted = _persist(session, candidates)
    except (ExtractionError, AIParseError) as e:
        return _failed(stage, e, artifact=artifact)
    finally:
        delete_artifact(artifact)

    message = "Statement processed successfully"
    if inserted.skipped:
        message = f"Statement processed; {inserted.skipped} transaction(s) skipped"
    _logger.info(
        "ingest:statement_done %s",
        kv(
            owner=owner_id,
            method=method.value,
            total=len(candidates),
            inserted=inserted.inserted,
            skipped=inserted.skipped,
        ),
    )
    return IngestionOutcome(
        success=True,
        stage=IngestionStage.DONE,
        message=message,
        total_candidates=len(candidates),
        inserted=inserted.inserted,
        skipped=inserted.skipped,
        errors=inserted.errors,
        preview=tuple(candidates[:PREVIEW_LIMIT]),
        raw_text_preview=result.raw_text_preview,
    )


def ingest_receipt(
    path: str | PathLike[str],
    *,
    owner_id: str,
    session: Session,
    receipt_url: str | None = None,
    use_ai: bool = False,
    ai_parser: ReceiptAIParser | None = None,
) -> IngestionOutcome:
    """Turn one receipt image into (at most) one expense transaction.

    The heuristic path OCRs the image and runs the regex field extractor; with
    ``use_ai`` the image goes to the delegate instead. A receipt without both a
    total and a date is a parsing failure. ``receipt_url`` defaults to
    ``/uploads/<file name>``.
    """

    artifact = Path(path)
    url = receipt_url or receipt_url_for(artifact)
    retain = False
    raw_text_preview: str | None = None
    stage = _enter(IngestionStage.RECEIVED, artifact)
    try:
        stage = _enter(IngestionStage.EXTRACTING, artifact)
        if not is_valid_image_file(artifact):
            raise ExtractionError(
                "Invalid file type. Only image files (JPG, PNG, BMP, TIFF, WEBP) "
                "are allowed for receipts.",
                path=str(artifact),
            )
        if use_ai:
            parser = ai_parser if ai_parser is not None else create_ai_parser()
            stage = _enter(IngestionStage.PARSING, artifact)
            fields = parser.parse_receipt_image(artifact)
        else:
            text = extract_text(artifact)
            raw_text_preview = text[:RAW_TEXT_PREVIEW_CHARS]
            stage = _enter(IngestionStage.PARSING, artifact)
            fields = parse_receipt(text)

        if fields.amount is None or fields.date is None:
            missing = "total amount" if fields.amount is None else "transaction date"
            return _failed(
                stage,
                NoTransactionsFoundError(f"Could not find a {missing} on the receipt"),
                artifact=artifact,
                raw_text_preview=raw_text_preview,
                extracted=fields,
            )

        stage = _enter(IngestionStage.PERSISTING, artifact)
        candidate = TransactionCandidate(
            date=fields.date,
            amount=fields.amount,
            type=TransactionType.EXPENSE,
            description=fields.description or RECEIPT_FALLBACK_DESCRIPTION,
            category=fields.category,
            owner_id=owner_id,
            source_url=url,
        )
        inserted = _persist(session, [candidate])
        retain = inserted.inserted > 0
    except (ExtractionError, AIParseError) as e:
        return _failed(stage, e, artifact=artifact, raw_text_preview=raw_text_preview)
    finally:
        if not retain:
            delete_artifact(artifact)

    message = "Receipt processed successfully"
    if not retain:
        message = "Receipt already recorded; no new transaction created"
    _logger.info(
        "ingest:receipt_done %s",
        kv(owner=owner_id, inserted=inserted.inserted, retained=retain, ai=use_ai),
    )
    return IngestionOutcome(
        success=True,
        stage=IngestionStage.DONE,
        message=message,
        total_candidates=1,
        inserted=inserted.inserted,
        skipped=inserted.skipped,
        errors=inserted.errors,
        preview=(candidate,),
        raw_text_preview=raw_text_preview,
        receipt_url=url if retain else None,
        extracted=fields,
    )


__all__ = [
    "PREVIEW_LIMIT",
    "StatementMethod",
    "ingest_receipt",
    "ingest_statement",
    "parse_statement",
]
