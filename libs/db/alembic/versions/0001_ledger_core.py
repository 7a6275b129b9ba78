# ruff: noqa: I001
"""Ledger core tables: per-owner categories and transactions.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# SQLite only autoincrements an INTEGER PRIMARY KEY.
_PK_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "fin_categories",
        sa.Column("id", _PK_TYPE, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("type", sa.String(7), nullable=False),
        sa.Column("color", sa.String(7), nullable=False, server_default="#007bff"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("owner_id", "name", "type", name="uq_fin_categories_owner_name_type"),
        sa.CheckConstraint("type in ('income','expense')", name="ck_fin_categories_type"),
    )
    op.create_index("ix_fin_categories_owner_id", "fin_categories", ["owner_id"], unique=False)

    op.create_table(
        "fin_transactions",
        sa.Column("id", _PK_TYPE, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("fingerprint_sha256", sa.CHAR(64), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.String(7), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("receipt_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount > 0", name="ck_fin_tx_amount_positive"),
        sa.CheckConstraint("type in ('income','expense')", name="ck_fin_tx_type"),
    )
    op.create_index("ix_fin_transactions_owner_id", "fin_transactions", ["owner_id"], unique=False)
    op.create_index("ix_fin_transactions_type", "fin_transactions", ["type"], unique=False)
    op.create_index(
        "ix_fin_transactions_category", "fin_transactions", ["category"], unique=False
    )
    op.create_index("ix_fin_transactions_date", "fin_transactions", ["date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_fin_transactions_date", table_name="fin_transactions")
    op.drop_index("ix_fin_transactions_category", table_name="fin_transactions")
    op.drop_index("ix_fin_transactions_type", table_name="fin_transactions")
    op.drop_index("ix_fin_transactions_owner_id", table_name="fin_transactions")
    op.drop_table("fin_transactions")
    op.drop_index("ix_fin_categories_owner_id", table_name="fin_categories")
    op.drop_table("fin_categories")
