"""Small field normalizers shared by the heuristic parsers."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

_SUFFIX_RE = re.compile(r"\s*(?:CR|DR)\.?\s*$", re.IGNORECASE)
_NON_NUMERIC_RE = re.compile(r"[^\d.]")

ZERO = Decimal("0")


def collapse_whitespace(value: str | None) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""

    return " ".join((value or "").split())


def parse_amount(raw: str | None) -> Decimal:
    """Parse an unsigned statement amount.

    Currency symbols, thousands separators, signs and a trailing ``CR``/``DR``
    marker are stripped. Empty or unparseable input yields ``0``.
    """

    if not raw:
        return ZERO
    cleaned = _NON_NUMERIC_RE.sub("", _SUFFIX_RE.sub("", raw.strip()))
    if not cleaned:
        return ZERO
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    return value if value.is_finite() else ZERO


def parse_signed_amount(raw: str | None) -> Decimal | None:
    """Parse ``-$1,234.50`` style amounts keeping the sign; ``None`` if unparseable."""

    if not raw:
        return None
    s = raw.strip().replace("$", "").replace(",", "")
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def expand_year(year: int) -> int:
    """Map two-digit years onto 2000-2099."""

    return 2000 + year if year < 100 else year


def make_date(year: int, month: int, day: int) -> date | None:
    """Return ``date(year, month, day)`` or ``None`` when it is not a real day."""

    try:
        return date(expand_year(year), month, day)
    except ValueError:
        return None


__all__ = [
    "ZERO",
    "collapse_whitespace",
    "expand_year",
    "make_date",
    "parse_amount",
    "parse_signed_amount",
]
