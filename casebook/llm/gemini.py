"""
Gemini client.

Talks to the Generative Language REST API (generateContent) with a
plain JSON POST. Needs an API key, read from GEMINI_API_KEY by default.
"""

import json
import logging
import os
import urllib.error
import urllib.request

from .base import LLMClient, LLMResponse, Message

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiClient(LLMClient):
    """
    Client for Google's Gemini API.

    Conversation roles map to Gemini's "user" and "model"; a system
    prompt is sent as systemInstruction.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: API key (falls back to GEMINI_API_KEY)
            model: Model name without the "models/" prefix
            base_url: API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY", "")
        self._model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def model_name(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _make_request(self, endpoint: str, data: dict) -> dict:
        """POST to the API and decode the JSON reply."""
        url = f"{self.base_url}/{endpoint}?key={self.api_key}"
        req = urllib.request.Request(
            url,
            data=json.dumps(data).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise ConnectionError(f"Gemini API error {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            raise ConnectionError(f"Cannot reach Gemini API: {e.reason}") from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ValueError(f"Gemini returned invalid JSON: {e}") from e

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ) -> LLMResponse:
        """Send a generateContent request."""
        contents = []
        for msg in messages:
            if msg.role == "system":
                # Gemini has no system role inside contents
                system = f"{system}\n\n{msg.content}" if system else msg.content
                continue
            contents.append({
                "role": "model" if msg.role == "assistant" else "user",
                "parts": [{"text": msg.content}],
            })

        request_data: dict = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system:
            request_data["systemInstruction"] = {"parts": [{"text": system}]}

        response = self._make_request(f"models/{self._model}:generateContent", request_data)

        try:
            candidate = response["candidates"][0]
            text = "".join(part.get("text", "") for part in candidate["content"]["parts"])
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Unexpected Gemini response shape: {e}") from e

        return LLMResponse(
            content=text.strip(),
            finish_reason=str(candidate.get("finishReason", "stop")).lower(),
        )
