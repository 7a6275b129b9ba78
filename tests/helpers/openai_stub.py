"""Test helpers to stub the OpenAI Responses client used by ``ai_parser``.

The stub returns canned ``output_text`` replies in order and records the
kwargs of every ``responses.create(...)`` call, so tests can assert on the
prompt and the inline image that would have been sent.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import SimpleNamespace
from typing import Any


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` shape.

    ``replies`` items are either reply strings or exceptions to raise from
    ``responses.create``. The last item repeats once the list is exhausted.
    """

    def __init__(
        self,
        replies: str | BaseException | Iterable[str | BaseException],
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        if isinstance(replies, (str, BaseException)):
            replies = [replies]
        self._replies = list(replies)
        self.calls = calls_out if calls_out is not None else []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs: Any) -> Any:
                outer = self._outer
                outer.calls.append(kwargs)
                idx = min(len(outer.calls), len(outer._replies)) - 1
                reply = outer._replies[idx]
                if isinstance(reply, BaseException):
                    raise reply
                return SimpleNamespace(output_text=reply)

        self.responses = _Responses(self)


def input_parts(call: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the content parts of the single user message in a recorded call."""

    [message] = call["input"]
    assert message["role"] == "user"
    return message["content"]
