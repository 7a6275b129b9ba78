from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements an ``INTEGER PRIMARY KEY`` (rowid alias).
_PK_TYPE = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: fin_categories
# ---------------------------


class FinCategory(Base):
    __tablename__ = "fin_categories"

    id: Mapped[int] = mapped_column(_PK_TYPE, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(7), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, server_default="#007bff")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", "type", name="uq_fin_categories_owner_name_type"),
        CheckConstraint("type in ('income','expense')", name="ck_fin_categories_type"),
    )


# ---------------------------
# Core: fin_transactions
# ---------------------------


class FinTransaction(Base):
    __tablename__ = "fin_transactions"

    id: Mapped[int] = mapped_column(_PK_TYPE, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Duplicate detection key; see finance_ingest.persistence.compute_fingerprint.
    fingerprint_sha256: Mapped[str] = mapped_column(CHAR(64), nullable=False, unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    # Category is stored by name, scoped to the owner through fin_categories.
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_fin_tx_amount_positive"),
        CheckConstraint("type in ('income','expense')", name="ck_fin_tx_type"),
    )


__all__ = [
    "Base",
    "FinCategory",
    "FinTransaction",
]
