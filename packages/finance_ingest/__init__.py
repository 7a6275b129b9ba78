"""Public interface for the ``finance_ingest`` package.

This module exposes the ingestion entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .ai_parser import AIParser, create_ai_parser
from .categorization import categorize
from .errors import (
    AIParseError,
    ConfigurationError,
    ExtractionError,
    IngestError,
    NoTransactionsFoundError,
    RowPersistenceError,
)
from .ingestion import StatementMethod, ingest_receipt, ingest_statement, parse_statement
from .models import (
    IngestionOutcome,
    IngestionStage,
    InsertResult,
    ParseResult,
    ReceiptFields,
    TransactionCandidate,
    TransactionType,
)

__all__ = [
    # API
    "categorize",
    "create_ai_parser",
    "ingest_receipt",
    "ingest_statement",
    "parse_statement",
    "AIParser",
    "StatementMethod",
    # Models / types
    "IngestionOutcome",
    "IngestionStage",
    "InsertResult",
    "ParseResult",
    "ReceiptFields",
    "TransactionCandidate",
    "TransactionType",
    # Errors
    "AIParseError",
    "ConfigurationError",
    "ExtractionError",
    "IngestError",
    "NoTransactionsFoundError",
    "RowPersistenceError",
]
