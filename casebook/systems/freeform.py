"""
Free-form dialogue bridge.

Turns unscripted player text into an NPC reply through an LLM backend.
Each NPC keeps its own running transcript, primed with the persona so
the model stays in character. The reply is opaque text: it is shown,
never parsed or used to gate anything.
"""

import asyncio
import logging

from ..llm.base import LLMClient, Message

logger = logging.getLogger(__name__)

FALLBACK_UNAVAILABLE = "I can't answer that right now."
FALLBACK_UNREADABLE = "I don't quite follow you."
PERSONA_ACK = "Understood."


class FreeformBridge:
    """Per-NPC transcripts over a blocking LLM client."""

    def __init__(self, client: LLMClient | None, max_tokens: int = 256):
        self._client = client
        self._max_tokens = max_tokens
        self._transcripts: dict[str, list[Message]] = {}

    @property
    def available(self) -> bool:
        return self._client is not None

    def transcript(self, npc_id: str) -> list[Message]:
        return list(self._transcripts.get(npc_id, []))

    def _primed(self, npc_id: str, persona: str) -> list[Message]:
        if npc_id not in self._transcripts:
            self._transcripts[npc_id] = [
                Message(role="user", content=persona),
                Message(role="assistant", content=PERSONA_ACK),
            ]
        return self._transcripts[npc_id]

    async def reply(self, npc_id: str, persona: str, player_text: str) -> str:
        """
        Generate the NPC's answer to player_text.

        The blocking client runs in a worker thread. On any backend error
        a fixed fallback line is returned and the transcript is left as
        it was.
        """
        if self._client is None:
            return FALLBACK_UNAVAILABLE

        transcript = self._primed(npc_id, persona)
        pending = [*transcript, Message(role="user", content=player_text)]
        try:
            response = await asyncio.to_thread(
                self._client.chat,
                pending,
                max_tokens=self._max_tokens,
            )
        except ValueError as e:
            logger.error(f"Unreadable reply for {npc_id}: {e}")
            return FALLBACK_UNREADABLE
        except Exception as e:
            logger.error(f"Free-form backend failed for {npc_id}: {e}")
            return FALLBACK_UNAVAILABLE

        if response.is_empty:
            return FALLBACK_UNREADABLE
        text = response.content.strip()
        transcript.append(Message(role="user", content=player_text))
        transcript.append(Message(role="assistant", content=text))
        return text

    def reset(self, npc_id: str | None = None) -> None:
        """Forget one NPC's transcript, or all of them."""
        if npc_id is None:
            self._transcripts.clear()
        else:
            self._transcripts.pop(npc_id, None)
