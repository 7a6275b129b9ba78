"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the ledger models written by ``finance_ingest``.
"""

from .ledger import Base, FinCategory, FinTransaction

__all__ = [
    "Base",
    "FinCategory",
    "FinTransaction",
]
