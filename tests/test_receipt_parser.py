from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_ingest.ingest.receipt_parser import (
    extract_amount,
    extract_date,
    fallback_description,
    parse_receipt,
)
from finance_ingest.models import Confidence

WALMART_RECEIPT = """\
WALMART SUPERCENTER
Store #1234
03/15/2024 14:22
MILK 2% 3.49
BREAD 2.99
SUBTOTAL 6.48
TAX 0.52
TOTAL 7.00
"""

BISTRO_RECEIPT = """\
Corner Bistro
123 Main St
Date: 2024-01-20
Amount Due: $42.10
Thank you!
"""


def test_known_merchant_receipt() -> None:
    fields = parse_receipt(WALMART_RECEIPT)

    assert fields.amount == Decimal("7.00")
    # D/M/Y is impossible here (month 15), so M/D/Y is used.
    assert fields.date == date(2024, 3, 15)
    assert fields.description == "WALMART"
    assert fields.confidence is Confidence.HIGH
    # The full text is part of the categorization signal ("MILK").
    assert fields.category == "Food & Dining"


def test_unknown_merchant_falls_back_to_top_line() -> None:
    fields = parse_receipt(BISTRO_RECEIPT)

    assert fields.amount == Decimal("42.10")
    assert fields.date == date(2024, 1, 20)
    assert fields.description == "Corner Bistro"
    assert fields.confidence is Confidence.MEDIUM
    assert fields.category == "Other Expenses"


def test_subtotal_is_not_mistaken_for_total() -> None:
    assert extract_amount("SUBTOTAL 6.48\nTOTAL 7.00") == Decimal("7.00")


def test_implausible_amounts_are_skipped() -> None:
    assert extract_amount("TOTAL 12500.00\nCash $8.25") == Decimal("8.25")
    assert extract_amount("TOTAL 0.00") is None


def test_amount_bound_is_exclusive() -> None:
    assert extract_amount("TOTAL 10000.00") is None
    assert extract_amount("TOTAL 9999.99") == Decimal("9999.99")


def test_number_before_total_label() -> None:
    assert extract_amount("7.50 TOTAL") == Decimal("7.50")


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("05/02/2024", date(2024, 2, 5)),
        ("05-02-24", date(2024, 2, 5)),
        ("2023/11/09", date(2023, 11, 9)),
        ("Jan 5, 2024", date(2024, 1, 5)),
        ("Sept 12 2023", date(2023, 9, 12)),
        ("99/99/2024", None),
    ],
)
def test_extract_date_formats(line: str, expected: date | None) -> None:
    assert extract_date([line]) == expected


def test_first_line_with_a_real_date_wins() -> None:
    assert extract_date(["no date here", "2024-06-01", "2023-01-01"]) == date(2024, 6, 1)


def test_nothing_recognizable() -> None:
    fields = parse_receipt("hello\nworld")
    assert fields.amount is None
    assert fields.date is None
    assert fields.description == "hello"
    assert fields.confidence is Confidence.LOW


def test_fallback_description_rules() -> None:
    assert fallback_description(["12 Main St", "abc", "Good Name"]) == "Good Name"
    assert fallback_description(["1", "2", "3", "Too Late"]) is None
