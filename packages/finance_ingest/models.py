"""Data models for ``finance_ingest``.

Value objects produced by the parsers (``TransactionCandidate``,
``ParseResult``, ``ReceiptFields``), the persistence result
(``InsertResult``), the orchestrator outcome (``IngestionOutcome``) and the
typed shapes of the AI delegate replies (pydantic models).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import IngestError, RowPersistenceError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

UNCATEGORIZED = "Uncategorized"
RAW_TEXT_PREVIEW_CHARS = 1000


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class Confidence(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IngestionStage(StrEnum):
    RECEIVED = "received"
    EXTRACTING = "extracting"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def quantize_amount(value: Decimal) -> Decimal:
    """Round to cents (half-up), the precision stored in the ledger."""

    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    """A parsed, user-scoped transaction that has not been persisted yet.

    ``amount`` is always an unsigned magnitude; direction lives in ``type``.
    Construction fails with ``ValueError`` when an invariant is broken, so a
    candidate that exists is always safe to hand to persistence.
    """

    date: dt.date
    amount: Decimal
    type: TransactionType
    description: str
    category: str
    owner_id: str
    source_url: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.date, dt.date):
            raise ValueError("TransactionCandidate.date must be a calendar date")
        amount = Decimal(self.amount)
        if not amount.is_finite() or amount <= 0:
            raise ValueError("TransactionCandidate.amount must be greater than zero")
        object.__setattr__(self, "amount", quantize_amount(amount))
        # Accepts the plain strings "income"/"expense"; raises ValueError otherwise.
        object.__setattr__(self, "type", TransactionType(self.type))
        object.__setattr__(self, "description", " ".join(self.description.split()))
        if not self.owner_id:
            raise ValueError("TransactionCandidate.owner_id must be non-empty")

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "amount": f"{self.amount:.2f}",
            "type": self.type.value,
            "description": self.description,
            "category": self.category,
            "owner_id": self.owner_id,
            "source_url": self.source_url,
        }


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Aggregate outcome of one parse over a statement text or delegate reply."""

    succeeded: tuple[TransactionCandidate, ...]
    total_lines_or_items_seen: int
    raw_text_preview: str

    @classmethod
    def from_text(
        cls, text: str, candidates: list[TransactionCandidate], seen: int
    ) -> ParseResult:
        return cls(
            succeeded=tuple(candidates),
            total_lines_or_items_seen=seen,
            raw_text_preview=text[:RAW_TEXT_PREVIEW_CHARS],
        )


@dataclass(frozen=True, slots=True)
class ReceiptFields:
    """Fields recovered from a single receipt.

    ``confidence`` is advisory for the caller; nothing in the pipeline
    branches on it.
    """

    amount: Decimal | None
    date: dt.date | None
    category: str
    description: str | None
    confidence: Confidence = Confidence.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": f"{self.amount:.2f}" if self.amount is not None else None,
            "date": self.date.isoformat() if self.date is not None else None,
            "category": self.category,
            "description": self.description,
            "confidence": self.confidence.value,
        }


# ---------------------------------------------------------------------------
# Persistence and orchestration results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class InsertResult:
    inserted: int
    skipped: int
    errors: tuple[RowPersistenceError, ...] = ()

    @property
    def total(self) -> int:
        return self.inserted + self.skipped


@dataclass(frozen=True, slots=True)
class IngestionOutcome:
    """What an upload produced, shaped for an HTTP response body.

    ``success`` is True whenever the request reached ``done``, including the
    partial case where some rows were skipped during persistence.
    """

    success: bool
    stage: IngestionStage
    message: str
    total_candidates: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: tuple[IngestError, ...] = ()
    preview: tuple[TransactionCandidate, ...] = field(default=())
    raw_text_preview: str | None = None
    receipt_url: str | None = None
    extracted: ReceiptFields | None = None

    @property
    def partial(self) -> bool:
        return self.success and self.skipped > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "partial": self.partial,
            "stage": self.stage.value,
            "message": self.message,
            "totalTransactions": self.total_candidates,
            "insertedTransactions": self.inserted,
            "skippedTransactions": self.skipped,
            "errors": [str(e) for e in self.errors],
            "transactions": [c.to_dict() for c in self.preview],
            "rawText": self.raw_text_preview,
            "receiptUrl": self.receipt_url,
            "extractedData": self.extracted.to_dict() if self.extracted else None,
        }


# ---------------------------------------------------------------------------
# AI delegate reply shapes
# ---------------------------------------------------------------------------


class StatementRowReply(BaseModel):
    """One element of the JSON array the delegate returns for a statement."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: dt.date
    description: str
    amount: Decimal
    type: Literal["income", "expense"]

    @field_validator("description")
    @classmethod
    def _description_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("description must be non-empty")
        return v

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v <= 0:
            raise ValueError("amount must be a positive number")
        return v


class ReceiptReply(BaseModel):
    """The single JSON object the delegate returns for a receipt image.

    Field names follow the prompt contract. Any field may be ``null`` when the
    model could not determine it.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    totalAmount: Decimal | None = None  # noqa: N815 - wire name
    transactionDate: dt.date | None = None  # noqa: N815 - wire name
    description: str | None = None

    @field_validator("totalAmount")
    @classmethod
    def _amount_positive(cls, v: Decimal | None) -> Decimal | None:
        if v is None:
            return None
        if not v.is_finite() or v <= 0:
            raise ValueError("totalAmount must be a positive number or null")
        return v

    @field_validator("description")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return v or None


__all__ = [
    "Confidence",
    "IngestionOutcome",
    "IngestionStage",
    "InsertResult",
    "ParseResult",
    "RAW_TEXT_PREVIEW_CHARS",
    "ReceiptFields",
    "ReceiptReply",
    "StatementRowReply",
    "TransactionCandidate",
    "TransactionType",
    "UNCATEGORIZED",
    "quantize_amount",
]
