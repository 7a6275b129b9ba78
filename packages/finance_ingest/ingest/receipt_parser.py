"""Regex field extraction for a single receipt's OCR text.

Amount, date and merchant are each recovered by trying an ordered family of
patterns; the first plausible hit wins. The resulting confidence is a coarse
hint for the caller (``medium`` once an amount is found, ``high`` when a known
merchant is recognized) and does not steer any decision here.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from ..categorization import categorize
from ..logging_setup import get_logger, kv
from ..models import Confidence, ReceiptFields
from .fields import make_date

_logger = get_logger("finance_ingest.ingest.receipt_parser")

_NUM = r"(\d[\d,]*(?:\.\d+)?)"

AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\btotal[\s:]*\$?{_NUM}", re.IGNORECASE),
    re.compile(rf"\bamount[\s:]*\$?{_NUM}", re.IGNORECASE),
    re.compile(rf"\bdue[\s:]*\$?{_NUM}", re.IGNORECASE),
    re.compile(rf"\${_NUM}"),
    re.compile(rf"{_NUM}\s*total\b", re.IGNORECASE),
)
# Exclusive bounds for a believable receipt total.
MIN_AMOUNT = Decimal("0")
MAX_AMOUNT = Decimal("10000")

_MONTHS = {
    m: i
    for i, m in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}


def _dmy(m: re.Match[str]) -> date | None:
    # US receipts print M/D/Y; only used when D/M/Y is not a real day.
    year, first, second = int(m[3]), int(m[1]), int(m[2])
    return make_date(year, second, first) or make_date(year, first, second)


def _ymd(m: re.Match[str]) -> date | None:
    return make_date(int(m[1]), int(m[2]), int(m[3]))


def _mon_d_y(m: re.Match[str]) -> date | None:
    month = _MONTHS.get(m[1][:3].lower())
    if month is None:
        return None
    return make_date(int(m[3]), month, int(m[2]))


DATE_PATTERNS = (
    (re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4}|\d{2})\b"), _dmy),
    (re.compile(r"\b(\d{4})[/-](\d{1,2})[/-](\d{1,2})\b"), _ymd),
    (re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})\b"), _mon_d_y),
)

MERCHANT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(walmart|target|amazon|costco|safeway|kroger|whole foods|trader joe'?s)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(mcdonald'?s|burger king|kfc|subway|pizza hut|domino'?s)", re.IGNORECASE
    ),
    re.compile(r"\b(shell|exxon|bp|chevron|mobil)\b", re.IGNORECASE),
    re.compile(r"\b(starbucks|dunkin'?|peet'?s|caribou)", re.IGNORECASE),
)

_FALLBACK_SCAN_LINES = 3


def _to_amount(raw: str) -> Decimal | None:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def is_plausible_amount(value: Decimal) -> bool:
    return MIN_AMOUNT < value < MAX_AMOUNT


def extract_amount(text: str) -> Decimal | None:
    """Return the first plausible amount, trying label-anchored patterns first."""

    for pattern in AMOUNT_PATTERNS:
        for m in pattern.finditer(text):
            value = _to_amount(m[1])
            if value is not None and is_plausible_amount(value):
                return value
    return None


def extract_date(lines: list[str]) -> date | None:
    for line in lines:
        for pattern, build in DATE_PATTERNS:
            for m in pattern.finditer(line):
                parsed = build(m)
                if parsed is not None:
                    return parsed
    return None


def extract_merchant(text: str) -> str | None:
    for pattern in MERCHANT_PATTERNS:
        m = pattern.search(text)
        if m is not None:
            return m[1]
    return None


def fallback_description(lines: list[str]) -> str | None:
    """First short line near the top that does not start with a digit."""

    for line in lines[:_FALLBACK_SCAN_LINES]:
        if 3 < len(line) < 50 and not line[0].isdigit():
            return line
    return None


def parse_receipt(text: str) -> ReceiptFields:
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    confidence = Confidence.LOW

    amount = extract_amount(text)
    if amount is not None:
        confidence = Confidence.MEDIUM

    receipt_date = extract_date(lines)

    description = extract_merchant(text)
    if description is not None:
        confidence = Confidence.HIGH
    else:
        description = fallback_description(lines)

    category = categorize(f"{description or ''} {text}", is_expense=True)
    fields = ReceiptFields(
        amount=amount,
        date=receipt_date,
        category=category,
        description=description,
        confidence=confidence,
    )
    _logger.info(
        "receipt:parsed %s",
        kv(
            amount=amount,
            date=receipt_date.isoformat() if receipt_date else None,
            category=category,
            confidence=confidence.value,
        ),
    )
    return fields


__all__ = [
    "AMOUNT_PATTERNS",
    "DATE_PATTERNS",
    "MAX_AMOUNT",
    "MERCHANT_PATTERNS",
    "extract_amount",
    "extract_date",
    "extract_merchant",
    "fallback_description",
    "is_plausible_amount",
    "parse_receipt",
]
