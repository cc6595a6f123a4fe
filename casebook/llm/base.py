"""
LLM backend interface.

The engine asks a model for one thing only: an in-character reply to
unscripted player text. Backends therefore implement a single chat call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class Message:
    role: Role
    content: str


@dataclass
class LLMResponse:
    content: str
    finish_reason: str = "stop"

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()


class LLMClient(ABC):
    """
    A blocking chat backend.

    Implementations raise ConnectionError when the service cannot be
    reached and ValueError when it answers with something unreadable.
    Callers own fallback behaviour.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @abstractmethod
    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ) -> LLMResponse:
        """
        Produce the next assistant turn for a transcript.

        Args:
            messages: Transcript so far, oldest first
            system: Extra instructions placed ahead of the transcript
            temperature: Sampling temperature
            max_tokens: Reply length cap
        """

    def is_available(self) -> bool:
        """False when the backend is missing credentials or configuration."""
        return True
