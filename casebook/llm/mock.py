"""Scripted LLM backend for tests and offline play."""

from dataclasses import dataclass
from itertools import cycle

from .base import LLMClient, LLMResponse, Message


@dataclass
class RecordedCall:
    messages: list[Message]
    system: str | None
    max_tokens: int


class MockLLMClient(LLMClient):
    """
    Replays canned replies in order, looping when they run out.

    Set ``error`` to make every call raise it instead, which is how the
    free-form fallbacks are exercised.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        model_name: str = "mock",
        error: Exception | None = None,
    ):
        self._model_name = model_name
        self.error = error
        self.calls: list[RecordedCall] = []
        self.set_responses(responses or ["..."])

    @property
    def model_name(self) -> str:
        return self._model_name

    def set_responses(self, responses: list[str]) -> None:
        self._replies = cycle(list(responses))

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ) -> LLMResponse:
        self.calls.append(RecordedCall(list(messages), system, max_tokens))
        if self.error is not None:
            raise self.error
        return LLMResponse(content=next(self._replies))
