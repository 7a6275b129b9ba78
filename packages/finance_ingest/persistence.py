# ruff: noqa: I001
"""Persistence integration for finance_ingest.

Functions here write parsed candidates to the ledger owned by ``libs/db``.
They rely on the SQLAlchemy ORM models in ``db.models.ledger`` and a session
provided by ``db.client``; callers own the transaction scope (commit/rollback).

Duplicate detection is keyed on ``fingerprint_sha256``: a stable hash over the
owner and the canonical fields of a candidate. The batch insert is a single
``INSERT ... ON CONFLICT DO NOTHING ... RETURNING`` statement, so rows that
already exist are skipped without aborting the rest of the batch.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from db.models.ledger import FinTransaction
from .errors import RowPersistenceError
from .logging_setup import get_logger, kv
from .models import InsertResult, TransactionCandidate

_logger = get_logger("finance_ingest.persistence")

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def compute_fingerprint(candidate: TransactionCandidate) -> str:
    """Compute a stable SHA-256 fingerprint over canonical fields.

    Fields used: owner id, date (YYYY-MM-DD), amount (2dp string), type,
    description (whitespace-collapsed, case preserved). Category and receipt
    URL are deliberately excluded; recategorizing a row does not make it new.
    """

    payload = {
        "owner": candidate.owner_id,
        "date": candidate.date.isoformat(),
        "amount": f"{candidate.amount:.2f}",
        "type": candidate.type.value,
        "description": candidate.description,
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _row_values(candidate: TransactionCandidate, fingerprint: str) -> dict[str, Any]:
    return {
        "owner_id": candidate.owner_id,
        "fingerprint_sha256": fingerprint,
        "amount": candidate.amount,
        "type": candidate.type.value,
        "category": candidate.category,
        "description": candidate.description,
        "date": candidate.date,
        "receipt_url": candidate.source_url,
    }


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Unsupported database dialect for bulk insert: {dialect}") from None


def _duplicate(fingerprint: str) -> RowPersistenceError:
    return RowPersistenceError(
        f"Transaction already recorded (fingerprint {fingerprint[:12]})",
        fingerprint=fingerprint,
        reason="duplicate",
    )


def _insert_row_by_row(
    session: Session, insert, rows: list[dict[str, Any]]
) -> tuple[set[str], list[RowPersistenceError]]:
    """Fallback when the bulk statement is rejected for a reason other than a fingerprint clash."""

    inserted: set[str] = set()
    errors: list[RowPersistenceError] = []
    for row in rows:
        fp = row["fingerprint_sha256"]
        stmt = (
            insert(FinTransaction)
            .values(row)
            .on_conflict_do_nothing(index_elements=["fingerprint_sha256"])
            .returning(FinTransaction.fingerprint_sha256)
        )
        try:
            with session.begin_nested():
                returned = session.execute(stmt).scalars().all()
        except (IntegrityError, DataError) as e:
            # DataError: a value the column cannot hold, e.g. Numeric overflow on Postgres.
            reason = "constraint" if isinstance(e, IntegrityError) else "invalid"
            errors.append(
                RowPersistenceError(
                    f"Row rejected by the database: {e.orig}", fingerprint=fp, reason=reason
                )
            )
            continue
        if returned:
            inserted.add(fp)
        else:
            errors.append(_duplicate(fp))
    return inserted, errors


def insert_candidates(
    session: Session, candidates: Sequence[TransactionCandidate]
) -> InsertResult:
    """Insert ``candidates`` best-effort and report what happened per row.

    Rows whose fingerprint already exists (in the ledger or earlier in the same
    batch) are skipped with a ``RowPersistenceError(reason="duplicate")``. If the
    single bulk statement fails on any other constraint or on a value the
    database cannot store, the batch is retried row by row inside savepoints
    so one bad row cannot sink the rest.
    """

    if not candidates:
        return InsertResult(inserted=0, skipped=0)

    rows: list[dict[str, Any]] = []
    errors: list[RowPersistenceError] = []
    seen: set[str] = set()
    for c in candidates:
        fp = compute_fingerprint(c)
        if fp in seen:
            errors.append(_duplicate(fp))
            continue
        seen.add(fp)
        rows.append(_row_values(c, fp))

    insert = _insert_for(session)
    stmt = (
        insert(FinTransaction)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["fingerprint_sha256"])
        .returning(FinTransaction.fingerprint_sha256)
    )
    try:
        with session.begin_nested():
            inserted = set(session.execute(stmt).scalars().all())
    except (IntegrityError, DataError) as e:
        _logger.warning("persistence:bulk_insert_failed %s", kv(rows=len(rows), error=str(e.orig)))
        inserted, row_errors = _insert_row_by_row(session, insert, rows)
        errors.extend(row_errors)
    else:
        errors.extend(
            _duplicate(r["fingerprint_sha256"])
            for r in rows
            if r["fingerprint_sha256"] not in inserted
        )

    result = InsertResult(inserted=len(inserted), skipped=len(errors), errors=tuple(errors))
    _logger.info(
        "persistence:inserted %s",
        kv(candidates=len(candidates), inserted=result.inserted, skipped=result.skipped),
    )
    return result


def find_duplicates(
    session: Session, candidates: Iterable[TransactionCandidate]
) -> list[TransactionCandidate]:
    """Return the candidates whose fingerprint is already in the ledger."""

    by_fp: dict[str, list[TransactionCandidate]] = {}
    for c in candidates:
        by_fp.setdefault(compute_fingerprint(c), []).append(c)
    if not by_fp:
        return []
    existing = set(
        session.execute(
            select(FinTransaction.fingerprint_sha256).where(
                FinTransaction.fingerprint_sha256.in_(list(by_fp))
            )
        )
        .scalars()
        .all()
    )
    return [c for fp, group in by_fp.items() if fp in existing for c in group]


__all__ = [
    "compute_fingerprint",
    "find_duplicates",
    "insert_candidates",
]
