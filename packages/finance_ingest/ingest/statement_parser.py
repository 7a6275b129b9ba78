"""State machine that rebuilds transactions from bank statement text.

The supported layout prints one transaction per *anchor* line::

    01/02/2024 01/02/2024 UPI/PAYMENT TO SHOP 150.00  1000.00 CR
    <txn date> <value date> <description...> [debit] [credit] <balance> CR

Long descriptions wrap onto following lines that carry no dates or amounts.
Parsing moves through three states:

``SEEKING_START``
    Lines are discarded until the ``BALANCE B/F`` marker. If the marker never
    appears the layout is unrecognized and the result is empty.
``ACCUMULATING``
    An anchor line first flushes buffered continuation lines onto the
    previous transaction, then opens a new one. Any other non-trivial line is
    buffered as a continuation, but only once a transaction exists. Marker
    lines repeated at the top of later pages only update the running balance.
``FINISHED``
    End of input; the remaining buffer is flushed onto the last transaction.

When a row prints a single amount (the empty column left blank instead of
``-``), its direction comes from the running balance: a rise is a credit, a
fall is a debit. Without a known previous balance it is read as a debit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum

from ..categorization import categorize
from ..logging_setup import get_logger, kv
from ..models import ParseResult, TransactionCandidate, TransactionType
from .fields import ZERO, collapse_whitespace, make_date, parse_amount

_logger = get_logger("finance_ingest.ingest.statement_parser")

START_MARKER = "BALANCE B/F"

_DATE = r"\d{2}/\d{2}/\d{4}"
# A column value, or a lone dash some layouts print for an empty column.
_AMOUNT = r"(?:[\d,]+\.\d{2}|-)"

ANCHOR_RE = re.compile(
    rf"^(?P<txn_date>{_DATE})\s+(?P<value_date>{_DATE})\s+"
    r"(?P<description>.*?)"
    rf"(?:\s+(?P<debit>{_AMOUNT}))?"
    rf"(?:\s+(?P<credit>{_AMOUNT}))?"
    r"\s+(?P<balance>[\d,]+\.\d{2})\s*CR$",
    re.IGNORECASE,
)

_DATE_PREFIX_RE = re.compile(r"^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
_PAGE_NUMBER_RE = re.compile(r"^(?:page\s*)?\d+(?:\s*(?:of|/)\s*\d+)?$", re.IGNORECASE)
_COLUMN_HEADER_RE = re.compile(
    r"^(?:txn\s+|tran\s+|value\s+)?date\b.*\b(?:description|particulars|narration|details)\b",
    re.IGNORECASE,
)
# Running balance printed at the end of a marker line.
_TRAILING_BALANCE_RE = re.compile(r"([\d,]+\.\d{2})\s*CR$", re.IGNORECASE)
_RUNNING_TOTAL_RE = re.compile(
    r"^(?:balance\s+[bc]/f|brought\s+forward|carried\s+forward"
    r"|closing\s+balance|page\s+total|total\b)",
    re.IGNORECASE,
)


class ParserState(Enum):
    SEEKING_START = "seeking_start"
    ACCUMULATING = "accumulating"
    FINISHED = "finished"


@dataclass(slots=True)
class ContinuationBuffer:
    """Description fragments waiting to be attached to the open transaction."""

    fragments: list[str] = field(default_factory=list)

    def append(self, line: str) -> None:
        self.fragments.append(line)

    def drain(self) -> str:
        joined = " ".join(self.fragments)
        self.fragments.clear()
        return joined

    def __len__(self) -> int:
        return len(self.fragments)


def parse_statement_date(raw: str) -> date | None:
    """Parse a ``DD/MM/YYYY`` statement date; ``None`` if it is not a real day."""

    try:
        day, month, year = (int(part) for part in raw.split("/"))
    except ValueError:
        return None
    return make_date(year, month, day)


def is_continuation_line(line: str) -> bool:
    """Return True for lines that may extend a wrapped description."""

    if not line:
        return False
    if _DATE_PREFIX_RE.match(line):
        return False
    if _PAGE_NUMBER_RE.match(line):
        return False
    if _COLUMN_HEADER_RE.match(line) or _RUNNING_TOTAL_RE.match(line):
        return False
    return True


class StatementParser:
    """Line-fed parser for ``BALANCE B/F`` statements.

    Feed lines with :meth:`feed` and call :meth:`finish` once; the instance is
    single-use. :meth:`flush_continuations` is the anchor-match transition and
    may be called directly.
    """

    def __init__(self, owner_id: str, *, start_marker: str = START_MARKER) -> None:
        self.owner_id = owner_id
        self.start_marker = start_marker.upper()
        self.state = ParserState.SEEKING_START
        self.buffer = ContinuationBuffer()
        self.transactions: list[TransactionCandidate] = []
        self.lines_seen = 0
        self.anchors_skipped = 0
        # Last running balance seen on a marker or anchor line.
        self.balance: Decimal | None = None

    # ---- transitions ---------------------------------------------------------

    def feed(self, raw_line: str) -> None:
        if self.state is ParserState.FINISHED:
            raise RuntimeError("StatementParser.feed() called after finish()")
        line = raw_line.strip()
        if not line:
            return
        self.lines_seen += 1

        if self.state is ParserState.SEEKING_START:
            if self.start_marker in line.upper():
                self.state = ParserState.ACCUMULATING
                self._note_marker_balance(line)
            return

        if self.start_marker in line.upper():
            # Page break: the marker repeats and is never description text.
            self._note_marker_balance(line)
            return

        match = ANCHOR_RE.match(line)
        if match is not None:
            self.flush_continuations()
            candidate = self._candidate_from_anchor(match)
            if candidate is not None:
                self.transactions.append(candidate)
            return

        if self.transactions and is_continuation_line(line):
            self.buffer.append(line)

    def flush_continuations(self) -> None:
        """Append buffered fragments to the last transaction and re-categorize it."""

        if not len(self.buffer):
            return
        if not self.transactions:
            self.buffer.drain()
            return
        last = self.transactions[-1]
        description = collapse_whitespace(f"{last.description} {self.buffer.drain()}")
        self.transactions[-1] = replace(
            last,
            description=description,
            category=categorize(description, last.is_expense),
        )

    def finish(self) -> list[TransactionCandidate]:
        if self.state is ParserState.SEEKING_START:
            _logger.warning(
                "statement:start_marker_missing %s",
                kv(marker=self.start_marker, lines_seen=self.lines_seen),
            )
        else:
            self.flush_continuations()
        self.state = ParserState.FINISHED
        return list(self.transactions)

    # ---- helpers -------------------------------------------------------------

    def _note_marker_balance(self, line: str) -> None:
        m = _TRAILING_BALANCE_RE.search(line)
        if m is not None:
            self.balance = parse_amount(m[1])

    def _single_amount_columns(self, amount: Decimal, balance: Decimal) -> tuple[Decimal, Decimal]:
        """Return (debit, credit) for a row that printed only one amount."""

        previous = self.balance
        if previous is not None and balance > previous:
            return ZERO, amount
        return amount, ZERO

    def _candidate_from_anchor(self, match: re.Match[str]) -> TransactionCandidate | None:
        debit = parse_amount(match["debit"])
        credit = parse_amount(match["credit"])
        balance = parse_amount(match["balance"])
        if match["credit"] is None and debit != ZERO:
            debit, credit = self._single_amount_columns(debit, balance)
        self.balance = balance
        if debit == ZERO and credit == ZERO:
            # Balance carry line, not a transaction.
            self.anchors_skipped += 1
            return None

        txn_date = parse_statement_date(match["txn_date"])
        if txn_date is None:
            self.anchors_skipped += 1
            _logger.debug("statement:invalid_date %s", kv(raw=match["txn_date"]))
            return None

        is_expense = debit != ZERO
        amount: Decimal = debit if is_expense else credit
        description = collapse_whitespace(match["description"])
        return TransactionCandidate(
            date=txn_date,
            amount=amount,
            type=TransactionType.EXPENSE if is_expense else TransactionType.INCOME,
            description=description,
            category=categorize(description, is_expense),
            owner_id=self.owner_id,
        )


def parse_statement_text(text: str, owner_id: str) -> ParseResult:
    """Parse a full statement text into categorized candidates.

    An unrecognized layout (no start marker) or a statement with no valid
    transaction lines yields an empty result rather than an exception.
    """

    parser = StatementParser(owner_id)
    for line in text.splitlines():
        parser.feed(line)
    candidates = parser.finish()
    _logger.info(
        "statement:parsed %s",
        kv(
            transactions=len(candidates),
            lines_seen=parser.lines_seen,
            anchors_skipped=parser.anchors_skipped,
        ),
    )
    return ParseResult.from_text(text, candidates, parser.lines_seen)


__all__ = [
    "ANCHOR_RE",
    "ContinuationBuffer",
    "ParserState",
    "START_MARKER",
    "StatementParser",
    "is_continuation_line",
    "parse_statement_date",
    "parse_statement_text",
]
