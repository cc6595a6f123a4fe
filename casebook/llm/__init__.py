"""LLM backends for free-form NPC replies."""

import os
from typing import Literal

from .base import LLMClient, LLMResponse, Message
from .gemini import DEFAULT_MODEL, GeminiClient
from .mock import MockLLMClient, RecordedCall

__all__ = [
    "LLMClient",
    "LLMResponse",
    "Message",
    "GeminiClient",
    "MockLLMClient",
    "RecordedCall",
    "create_llm_client",
]

BackendType = Literal["gemini", "mock", "none"]


def create_llm_client(backend: BackendType = "gemini", **kwargs) -> LLMClient | None:
    """
    Build the client for a backend name.

    "none" and an unconfigured "gemini" both give None, which leaves
    free-form talk switched off.
    """
    if backend == "none":
        return None
    if backend == "mock":
        return MockLLMClient(**kwargs)
    if backend != "gemini":
        raise ValueError(f"Unknown backend: {backend}")

    client = GeminiClient(
        api_key=kwargs.get("api_key") or os.environ.get("GEMINI_API_KEY"),
        model=kwargs.get("model") or os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
    )
    if not client.is_available():
        return None
    return client
