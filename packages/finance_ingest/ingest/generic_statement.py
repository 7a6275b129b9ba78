"""Line-by-line parser for statements that are not in the ``BALANCE B/F`` layout.

Each line is matched independently against a few common shapes; there is no
multi-line description handling. Amounts carry their own sign (negative means
money out). Rows without a real calendar date or with a zero amount are
dropped.
"""

from __future__ import annotations

import re
from datetime import date

from ..categorization import categorize
from ..logging_setup import get_logger, kv
from ..models import ParseResult, TransactionCandidate, TransactionType
from .fields import collapse_whitespace, make_date, parse_signed_amount

_logger = get_logger("finance_ingest.ingest.generic_statement")

_DMY = r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"
_YMD = r"\d{4}[/-]\d{1,2}[/-]\d{1,2}"
_AMT = r"[-+]?\$?[\d,]*\d(?:\.\d+)?"
_YMD_PARTS_RE = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})")
_DMY_PARTS_RE = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})")

# Tried in order; group names say which field each capture is.
LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"^(?P<date>{_YMD})\s+(?P<desc>.+?)\s+(?P<amount>{_AMT})$"),
    re.compile(rf"^(?P<date>{_DMY})\s+(?P<desc>.+?)\s+(?P<amount>{_AMT})$"),
    re.compile(rf"^(?P<date>{_DMY})\s+(?P<amount>{_AMT})\s+(?P<desc>.+)$"),
    re.compile(rf"^(?P<desc>.+?)\s+(?P<date>{_DMY})\s+(?P<amount>{_AMT})$"),
)

_HEADER_WORDS = ("date", "description", "amount", "balance", "debit", "credit", "particulars")
_SUMMARY_RE = re.compile(
    r"\b(?:total|summary|(?:opening|closing|ending|beginning|previous|new|available)\s+balance)\b",
    re.IGNORECASE,
)


def parse_generic_date(raw: str) -> date | None:
    """Parse ``D/M/Y`` (falling back to ``M/D/Y``) or ``Y/M/D``."""

    m = _YMD_PARTS_RE.fullmatch(raw)
    if m is not None:
        year, month, day = (int(g) for g in m.groups())
        return make_date(year, month, day)
    m = _DMY_PARTS_RE.fullmatch(raw)
    if m is not None:
        day, month, year = (int(g) for g in m.groups())
        return make_date(year, month, day) or make_date(year, day, month)
    return None


def _is_header(line: str) -> bool:
    lowered = line.lower()
    return sum(1 for w in _HEADER_WORDS if w in lowered) >= 2


def parse_generic_line(line: str, owner_id: str) -> TransactionCandidate | None:
    for pattern in LINE_PATTERNS:
        match = pattern.match(line)
        if match is None:
            continue
        txn_date = parse_generic_date(match["date"])
        amount = parse_signed_amount(match["amount"])
        description = collapse_whitespace(match["desc"])
        if txn_date is None or amount is None or amount == 0 or not description:
            continue
        is_expense = amount < 0
        return TransactionCandidate(
            date=txn_date,
            amount=abs(amount),
            type=TransactionType.EXPENSE if is_expense else TransactionType.INCOME,
            description=description,
            category=categorize(description, is_expense),
            owner_id=owner_id,
        )
    return None


def parse_generic_statement(text: str, owner_id: str) -> ParseResult:
    candidates: list[TransactionCandidate] = []
    seen = 0
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        seen += 1
        if _SUMMARY_RE.search(line) or _is_header(line):
            continue
        candidate = parse_generic_line(line, owner_id)
        if candidate is not None:
            candidates.append(candidate)
    _logger.info("generic_statement:parsed %s", kv(transactions=len(candidates), lines_seen=seen))
    return ParseResult.from_text(text, candidates, seen)


__all__ = [
    "LINE_PATTERNS",
    "parse_generic_date",
    "parse_generic_line",
    "parse_generic_statement",
]
