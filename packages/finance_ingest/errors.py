"""Exception types raised by the ingestion pipeline.

``ExtractionError`` and ``AIParseError`` are fatal to a single upload and are
turned into a failed :class:`~finance_ingest.models.IngestionOutcome` by the
orchestrator. ``ConfigurationError`` is raised while building the AI delegate,
before any upload is handled. ``RowPersistenceError`` and
``NoTransactionsFoundError`` are carried as values, not raised across the
public API.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for all ``finance_ingest`` errors."""


class ConfigurationError(IngestError):
    """The AI delegate is missing credentials or could not be initialized."""


class ExtractionError(IngestError):
    """The source artifact is unreadable, unsupported, or yields no text."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class AIParseError(IngestError):
    """The delegate reply was not valid JSON or violated the documented schema."""

    def __init__(self, message: str, *, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class NoTransactionsFoundError(IngestError):
    """A heuristic parse produced zero candidates.

    Parsers return an empty result instead of raising this; the orchestrator
    records an instance on the failed outcome so callers can tell an
    unrecognized statement apart from a broken one.
    """


class RowPersistenceError(IngestError):
    """A single candidate row could not be inserted (e.g. duplicate key)."""

    def __init__(self, message: str, *, fingerprint: str, reason: str) -> None:
        super().__init__(message)
        self.fingerprint = fingerprint
        self.reason = reason


__all__ = [
    "AIParseError",
    "ConfigurationError",
    "ExtractionError",
    "IngestError",
    "NoTransactionsFoundError",
    "RowPersistenceError",
]
