"""AI delegate for unstructured-to-structured extraction.

The delegate receives a prompt (and, for receipts, the image inline as
base64 with its MIME type) and must answer with JSON only. Replies may arrive
wrapped in a Markdown ```json fence, which is stripped before decoding.
Anything that does not decode or does not match the documented schema raises
:class:`~finance_ingest.errors.AIParseError`; replies are never coerced.

Construction goes through :func:`create_ai_parser`, which validates
credentials up front and raises :class:`~finance_ingest.errors.ConfigurationError`
when they are missing. No client is created and no environment is read at
import time.
"""

from __future__ import annotations

import base64
import json
import os
import re
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

import openai
from openai import OpenAI
from pydantic import TypeAdapter, ValidationError

from . import prompting
from .categorization import categorize
from .errors import AIParseError, ConfigurationError
from .ingest.utils import mime_type_for, read_bytes
from .logging_setup import get_logger, kv
from .models import (
    Confidence,
    ParseResult,
    ReceiptFields,
    ReceiptReply,
    StatementRowReply,
    TransactionCandidate,
    TransactionType,
)

_DEFAULT_MODEL = "gpt-5"
_MODEL_ENV = "FINANCE_INGEST_OPENAI_MODEL"

_FENCE_OPEN_RE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")

_STATEMENT_ROWS = TypeAdapter(list[StatementRowReply])

_logger = get_logger("finance_ingest.ai_parser")


# ---- Wire contract -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class InlineImage:
    base64_data: str
    mime_type: str

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> InlineImage:
        data = read_bytes(path)
        return cls(base64.b64encode(data).decode("ascii"), mime_type_for(path))

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"


@dataclass(frozen=True, slots=True)
class DelegateRequest:
    prompt_text: str
    inline_image: InlineImage | None = None

    def to_responses_input(self) -> list[dict[str, Any]]:
        """Render as a single user message for the Responses API."""

        content: list[dict[str, Any]] = [{"type": "input_text", "text": self.prompt_text}]
        if self.inline_image is not None:
            content.append({"type": "input_image", "image_url": self.inline_image.data_url()})
        return [{"role": "user", "content": content}]


# ---- Reply decoding ----------------------------------------------------------


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json (or bare ```) fence and its closing ```."""

    return _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", text)).strip()


def decode_reply(text: str) -> Any:
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AIParseError(f"Delegate reply is not valid JSON: {e.msg}", raw_text=text) from e


def parse_statement_reply(text: str, owner_id: str) -> list[TransactionCandidate]:
    """Decode a statement reply into categorized, owner-scoped candidates."""

    decoded = decode_reply(text)
    if not isinstance(decoded, list):
        raise AIParseError("Delegate reply must be a JSON array of transactions", raw_text=text)
    try:
        rows = _STATEMENT_ROWS.validate_python(decoded)
    except ValidationError as e:
        raise AIParseError(
            f"Delegate reply violates the transaction schema: {e.error_count()} error(s)",
            raw_text=text,
        ) from e

    candidates: list[TransactionCandidate] = []
    for row in rows:
        is_expense = row.type == TransactionType.EXPENSE.value
        candidates.append(
            TransactionCandidate(
                date=row.date,
                amount=row.amount,
                type=TransactionType(row.type),
                description=row.description,
                category=categorize(row.description, is_expense),
                owner_id=owner_id,
            )
        )
    return candidates


def parse_receipt_reply(text: str) -> ReceiptFields:
    """Decode a receipt reply into :class:`ReceiptFields`."""

    decoded = decode_reply(text)
    if not isinstance(decoded, dict):
        raise AIParseError("Delegate reply must be a single JSON object", raw_text=text)
    try:
        reply = ReceiptReply.model_validate(decoded)
    except ValidationError as e:
        raise AIParseError(
            f"Delegate reply violates the receipt schema: {e.error_count()} error(s)",
            raw_text=text,
        ) from e

    if reply.totalAmount is not None and reply.transactionDate is not None:
        confidence = Confidence.HIGH
    elif reply.totalAmount is not None:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW
    return ReceiptFields(
        amount=reply.totalAmount,
        date=reply.transactionDate,
        category=categorize(reply.description or "", is_expense=True),
        description=reply.description,
        confidence=confidence,
    )


def _extract_output_text(resp: Any) -> str:
    """Locate the text output on a Responses SDK result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``
    (a plain string or an object with a ``value`` string).
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None) or []
        content = getattr(output[0], "content", None) if output else None
        if content:
            txt_obj = getattr(content[0], "text", None)
            if isinstance(txt_obj, str):
                text = txt_obj
            else:
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str):
                    text = maybe_val
    if not text or not isinstance(text, str):
        raise AIParseError("Delegate response contained no text output")
    return text


# ---- Delegate ----------------------------------------------------------------


class AIParser:
    """Statement/receipt parsing through a generative model.

    Use :func:`create_ai_parser` rather than constructing directly; it is the
    place credentials are checked.
    """

    def __init__(self, client: Any, *, model: str = _DEFAULT_MODEL) -> None:
        self._client = client
        self.model = model

    def complete(self, request: DelegateRequest) -> str:
        """Send one request and return the raw reply text."""

        try:
            resp = self._client.responses.create(
                model=self.model,
                input=request.to_responses_input(),
            )
        except openai.OpenAIError as e:
            raise AIParseError(f"The AI model could not process the request: {e}") from e
        return _extract_output_text(resp)

    def parse_statement_text(self, text: str, owner_id: str) -> ParseResult:
        _logger.info("ai:statement_request %s", kv(model=self.model, chars=len(text)))
        reply = self.complete(DelegateRequest(prompting.build_statement_prompt(text)))
        candidates = parse_statement_reply(reply, owner_id)
        _logger.info("ai:statement_parsed %s", kv(transactions=len(candidates)))
        return ParseResult.from_text(text, candidates, len(candidates))

    def parse_receipt_image(self, path: str | PathLike[str]) -> ReceiptFields:
        image = InlineImage.from_path(path)
        _logger.info(
            "ai:receipt_request %s",
            kv(model=self.model, file=Path(path).name, mime_type=image.mime_type),
        )
        reply = self.complete(DelegateRequest(prompting.build_receipt_prompt(), image))
        fields = parse_receipt_reply(reply)
        _logger.info("ai:receipt_parsed %s", kv(confidence=fields.confidence.value))
        return fields


def _create_client(api_key: str) -> OpenAI:
    return OpenAI(api_key=api_key)


def create_ai_parser(
    api_key: str | None = None,
    *,
    model: str | None = None,
    client: Any | None = None,
) -> AIParser:
    """Build an :class:`AIParser`, failing fast on missing configuration.

    ``api_key`` defaults to ``OPENAI_API_KEY``; ``model`` defaults to
    ``FINANCE_INGEST_OPENAI_MODEL`` or ``gpt-5``. A pre-built ``client`` skips
    the key lookup.
    """

    resolved_model = model or os.getenv(_MODEL_ENV) or _DEFAULT_MODEL
    if client is None:
        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set; the AI parsing services cannot start"
            )
        try:
            client = _create_client(key)
        except openai.OpenAIError as e:
            raise ConfigurationError(f"Failed to initialize the OpenAI client: {e}") from e
    return AIParser(client, model=resolved_model)


__all__ = [
    "AIParser",
    "DelegateRequest",
    "InlineImage",
    "create_ai_parser",
    "decode_reply",
    "parse_receipt_reply",
    "parse_statement_reply",
    "strip_code_fence",
]
