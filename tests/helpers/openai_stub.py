"""Minimal stand-in for ``openai.OpenAI`` used by the resolver and transcriber.

Responses are queued up front; every ``create`` call pops the next one and
records its kwargs so tests can assert on the prompt, tools and temperature.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any


def tool_call(name: str, arguments: dict[str, Any] | str) -> SimpleNamespace:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return SimpleNamespace(
        id=f"call_{name}",
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def tool_message(*calls: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(role="assistant", content=None, tool_calls=list(calls))


def text_message(content: str) -> SimpleNamespace:
    return SimpleNamespace(role="assistant", content=content, tool_calls=None)


class _Completions:
    def __init__(self, outer: OpenAIStub) -> None:
        self._outer = outer

    def create(self, **kwargs):
        self._outer.calls.append(kwargs)
        if not self._outer.responses:
            raise AssertionError("OpenAIStub: no queued response left")
        item = self._outer.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(choices=[SimpleNamespace(message=item)])


class _Transcriptions:
    def __init__(self, outer: OpenAIStub) -> None:
        self._outer = outer

    def create(self, **kwargs):
        self._outer.calls.append(kwargs)
        item = self._outer.transcripts.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(text=item)


class OpenAIStub:
    def __init__(
        self,
        responses: list[Any] | None = None,
        transcripts: list[Any] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.transcripts = list(transcripts or [])
        self.calls: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=_Completions(self))
        self.audio = SimpleNamespace(transcriptions=_Transcriptions(self))
