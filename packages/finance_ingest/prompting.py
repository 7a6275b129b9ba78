"""Prompt construction for the AI delegate.

The prompt wording is part of the delegate contract: downstream parsing
assumes the model answers with exactly the JSON shapes described here (an
array of ``{date, description, amount, type}`` for statements, a single
``{totalAmount, transactionDate, description}`` object for receipts). Edit
the text only together with :mod:`finance_ingest.ai_parser`.
"""

from __future__ import annotations

import textwrap

_STATEMENT_PROMPT_TEMPLATE = textwrap.dedent(
    """\
    You are an expert financial data extraction tool. Your task is to analyze the following bank statement text and extract every transaction.

    Here is the text:
    ---
    {text}
    ---

    Based on the text provided, extract all financial transactions. For each transaction, provide the following details in a structured JSON format:
    - date: The date of the transaction in "YYYY-MM-DD" format.
    - description: A clean, single-line description of the transaction.
    - amount: The transaction amount as a number.
    - type: Either "expense" (for debits/withdrawals) or "income" (for credits/deposits).

    RULES:
    1. Only include actual transactions. Ignore balance forwards, summaries, page numbers, or any non-transactional lines.
    2. The final output MUST be a valid JSON array of objects.
    3. If you cannot find any valid transactions, return an empty array: [].

    Example of the required JSON output format:
    [
      {{
        "date": "2025-07-21",
        "description": "THRU UPI DEBIT UPI/386877898953/ NA XXXXX /paytmqrmdt8blumxh @paytm YESBOPTMUPI/LAA IL MARWARI DHABA",
        "amount": 1500.00,
        "type": "expense"
      }},
      {{
        "date": "2025-07-21",
        "description": "BY UPI CREDIT UPI/520299334393/ UPI XXXXX75859/unknownxd9909 1@okicici UCBA0001500/AMA R SINGH",
        "amount": 1500.00,
        "type": "income"
      }}
    ]
    """
)  # noqa: E501

RECEIPT_PROMPT = textwrap.dedent(
    """\
    You are an expert financial data extraction tool specializing in reading receipts.
    Analyze the provided receipt image and extract the following information:
    1.  **totalAmount**: The final total amount paid.
    2.  **transactionDate**: The date of the transaction, in "YYYY-MM-DD" format.
    3.  **description**: A short, suitable description, typically the name of the store or merchant.
    RULES:
    - Provide ONLY a valid JSON object as the output.
    - If a value cannot be determined, set it to null.
    Example: { "totalAmount": 15.75, "transactionDate": "2025-07-28", "description": "Walmart" }
    """
)


def build_statement_prompt(text: str) -> str:
    """Return the statement-extraction prompt with ``text`` embedded verbatim."""

    return _STATEMENT_PROMPT_TEMPLATE.format(text=text)


def build_receipt_prompt() -> str:
    return RECEIPT_PROMPT


__all__ = [
    "RECEIPT_PROMPT",
    "build_receipt_prompt",
    "build_statement_prompt",
]
