"""Category domain helpers and service operations.

This module centralizes the small, server-side validated operations on the
``fin_categories`` reference table. Categories are scoped per owner and
unique on ``(owner_id, name, type)``; the ingestion pipeline creates them
lazily for every label the categorizer assigns.

Exports
-------
- ``find_category(...)`` / ``create_category(...)``: lookup and idempotent
  creation of one category.
- ``ensure_categories(...)``: make sure every (category, type) referenced by a
  batch of candidates exists for its owner before the batch is inserted.
- ``seed_default_categories(...)``: install the default vocabulary for a user.
- ``normalize_name(...)`` and ``validate_name(...)``: shared name hygiene.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from db.models.ledger import FinCategory
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .logging_setup import get_logger, kv
from .models import TransactionCandidate, TransactionType

_logger = get_logger("finance_ingest.categories")

DEFAULT_COLOR = "#007bff"
MAX_NAME_LENGTH = 50

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True, slots=True)
class DefaultCategory:
    name: str
    type: TransactionType
    color: str


DEFAULT_CATEGORIES: tuple[DefaultCategory, ...] = (
    DefaultCategory("Salary", TransactionType.INCOME, "#28a745"),
    DefaultCategory("Freelance", TransactionType.INCOME, "#20c997"),
    DefaultCategory("Investment", TransactionType.INCOME, "#17a2b8"),
    DefaultCategory("Other Income", TransactionType.INCOME, "#6f42c1"),
    DefaultCategory("Food & Dining", TransactionType.EXPENSE, "#dc3545"),
    DefaultCategory("Transportation", TransactionType.EXPENSE, "#fd7e14"),
    DefaultCategory("Shopping", TransactionType.EXPENSE, "#e83e8c"),
    DefaultCategory("Entertainment", TransactionType.EXPENSE, "#6f42c1"),
    DefaultCategory("Bills & Utilities", TransactionType.EXPENSE, "#ffc107"),
    DefaultCategory("Healthcare", TransactionType.EXPENSE, "#20c997"),
    DefaultCategory("Education", TransactionType.EXPENSE, "#17a2b8"),
    DefaultCategory("Travel", TransactionType.EXPENSE, "#fd7e14"),
    DefaultCategory("Other Expenses", TransactionType.EXPENSE, "#6c757d"),
)


# ---------------------------
# Name normalization/validation
# ---------------------------


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Case is preserved; lookups are exact.
    """

    return " ".join(name.split())


def validate_name(name: str) -> str:
    """Normalize ``name`` and raise ``ValueError`` when it cannot be stored."""

    n = normalize_name(name)
    if not n:
        raise ValueError("Category name cannot be empty")
    if len(n) > MAX_NAME_LENGTH:
        raise ValueError(f"Category name must be at most {MAX_NAME_LENGTH} characters")
    return n


# ---------------------------
# Service operations
# ---------------------------


def find_category(
    session: Session, name: str, type: TransactionType | str, owner_id: str
) -> FinCategory | None:
    return (
        session.execute(
            select(FinCategory).where(
                FinCategory.owner_id == owner_id,
                FinCategory.name == normalize_name(name),
                FinCategory.type == TransactionType(type).value,
            )
        )
        .scalars()
        .first()
    )


def create_category(
    session: Session,
    name: str,
    type: TransactionType | str,
    owner_id: str,
    *,
    color: str = DEFAULT_COLOR,
) -> tuple[FinCategory, bool]:
    """Create a category if it does not exist yet.

    Returns ``(row, created)``. A concurrent insert of the same
    ``(owner_id, name, type)`` is treated as idempotent: the unique-constraint
    violation is rolled back to a savepoint and the existing row returned.
    """

    name_n = validate_name(name)
    type_v = TransactionType(type)
    if not _COLOR_RE.match(color):
        raise ValueError(f"Invalid hex color: {color!r}")

    existing = find_category(session, name_n, type_v, owner_id)
    if existing is not None:
        return existing, False

    row = FinCategory(owner_id=owner_id, name=name_n, type=type_v.value, color=color)
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()
    except IntegrityError:
        existing = find_category(session, name_n, type_v, owner_id)
        if existing is None:
            # Not the uniqueness race; bubble up the original.
            raise
        return existing, False

    _logger.info("categories:created %s", kv(owner=owner_id, name=name_n, type=type_v.value))
    return row, True


def ensure_categories(session: Session, candidates: Iterable[TransactionCandidate]) -> int:
    """Create any missing ``(category, type)`` pairs; return how many were created."""

    wanted: dict[tuple[str, str, TransactionType], None] = {}
    for c in candidates:
        wanted.setdefault((c.owner_id, c.category, c.type), None)

    created = 0
    for owner_id, name, type_v in wanted:
        _, was_created = create_category(session, name, type_v, owner_id)
        created += int(was_created)
    return created


def seed_default_categories(session: Session, owner_id: str) -> int:
    """Install the default income/expense vocabulary for ``owner_id``.

    Safe to run repeatedly; existing categories are left untouched. Returns
    the number of categories created.
    """

    created = 0
    for default in DEFAULT_CATEGORIES:
        _, was_created = create_category(
            session, default.name, default.type, owner_id, color=default.color
        )
        created += int(was_created)
    _logger.info("categories:seeded %s", kv(owner=owner_id, created=created))
    return created


__all__ = [
    "DEFAULT_CATEGORIES",
    "DEFAULT_COLOR",
    "DefaultCategory",
    "create_category",
    "ensure_categories",
    "find_category",
    "normalize_name",
    "seed_default_categories",
    "validate_name",
]
