"""Keyword/regex categorization of transaction descriptions.

The rule list is an immutable, ordered tuple of :class:`CategoryRule`; the
first rule whose pattern matches the lower-cased description decides the
label. There is no I/O and no mutable state, so :func:`categorize` is safe to
call from any parser.
"""

from __future__ import annotations

import re
from typing import NamedTuple

OTHER_EXPENSES = "Other Expenses"
OTHER_INCOME = "Other Income"


class CategoryRule(NamedTuple):
    pattern: re.Pattern[str]
    label: str


def _rule(pattern: str, label: str) -> CategoryRule:
    return CategoryRule(re.compile(pattern), label)


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    _rule(r"salary|payroll", "Salary"),
    _rule(r"interest|credit\s*rfnd|refund", "Investment"),
    _rule(r"restaurant|cafe|coffee|starbucks|food|dhaba|milk|swiggy|zomato", "Food & Dining"),
    _rule(r"grocery|supermarket", "Food & Dining"),
    _rule(r"gas|fuel|petrol|transport|uber|lyft|taxi", "Transportation"),
    _rule(r"amazon|walmart|shopping|flipkart|paytm|upi", "Shopping"),
    _rule(r"netflix|spotify|movie|cinema", "Entertainment"),
    _rule(
        r"utility|electric|internet|broadband|phone|mobile|telecom|recharge",
        "Bills & Utilities",
    ),
    _rule(r"pharmacy|medical|hospital|clinic", "Healthcare"),
    _rule(r"flight|hotel|airline", "Travel"),
)


def fallback_category(is_expense: bool) -> str:
    return OTHER_EXPENSES if is_expense else OTHER_INCOME


def categorize(description: str, is_expense: bool) -> str:
    """Return the category label for ``description``.

    >>> categorize("Monthly Salary Payment", False)
    'Salary'
    >>> categorize("random noise", True)
    'Other Expenses'
    """

    lowered = (description or "").lower()
    for rule in CATEGORY_RULES:
        if rule.pattern.search(lowered):
            return rule.label
    return fallback_category(is_expense)


__all__ = [
    "CATEGORY_RULES",
    "CategoryRule",
    "OTHER_EXPENSES",
    "OTHER_INCOME",
    "categorize",
    "fallback_category",
]
