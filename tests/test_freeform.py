"""Tests for unscripted NPC replies."""

import asyncio

import pytest

from casebook.llm import GeminiClient, Message, MockLLMClient, create_llm_client
from casebook.state.event_bus import EventType
from casebook.state.schemas.action import RefusalCode
from casebook.systems.dialogue import DialogueState
from casebook.systems.freeform import (
    FALLBACK_UNAVAILABLE,
    FALLBACK_UNREADABLE,
    FreeformBridge,
)


class TestBridge:
    """Test FreeformBridge directly."""

    def test_reply_and_transcript(self, mock_llm):
        bridge = FreeformBridge(mock_llm)
        reply = asyncio.run(bridge.reply("butler", "You are Hale.", "Where were you?"))

        assert reply == "I was in the pantry all night."
        transcript = bridge.transcript("butler")
        assert [m.role for m in transcript] == ["user", "assistant", "user", "assistant"]
        assert transcript[0].content == "You are Hale."
        assert transcript[-1].content == reply

    def test_transcripts_are_per_npc(self, mock_llm):
        bridge = FreeformBridge(mock_llm)
        asyncio.run(bridge.reply("butler", "You are Hale.", "Hello"))
        assert bridge.transcript("chef") == []

    def test_history_sent_to_backend(self, mock_llm):
        bridge = FreeformBridge(mock_llm)
        asyncio.run(bridge.reply("butler", "You are Hale.", "One"))
        asyncio.run(bridge.reply("butler", "You are Hale.", "Two"))
        assert len(mock_llm.calls[-1].messages) == 5

    def test_connection_error_fallback(self):
        bridge = FreeformBridge(MockLLMClient(error=ConnectionError("down")))
        reply = asyncio.run(bridge.reply("butler", "You are Hale.", "Hello"))
        assert reply == FALLBACK_UNAVAILABLE
        assert all(m.content != "Hello" for m in bridge.transcript("butler"))

    def test_unreadable_fallback(self):
        bridge = FreeformBridge(MockLLMClient(error=ValueError("bad json")))
        reply = asyncio.run(bridge.reply("butler", "You are Hale.", "Hello"))
        assert reply == FALLBACK_UNREADABLE

    def test_blank_reply_fallback(self):
        bridge = FreeformBridge(MockLLMClient(responses=["   "]))
        assert asyncio.run(bridge.reply("butler", "", "Hello")) == FALLBACK_UNREADABLE

    def test_no_client(self):
        bridge = FreeformBridge(None)
        assert not bridge.available
        assert asyncio.run(bridge.reply("butler", "", "Hello")) == FALLBACK_UNAVAILABLE

    def test_reset(self, mock_llm):
        bridge = FreeformBridge(mock_llm)
        asyncio.run(bridge.reply("butler", "p", "Hello"))
        bridge.reset("butler")
        assert bridge.transcript("butler") == []


class TestFlowFreeform:
    """Test request_freeform through the orchestrator."""

    def test_reply_shown(self, context, bus):
        context.flow.request_talk("butler")
        result = asyncio.run(context.flow.request_freeform("Where were you?"))

        assert result.success
        assert result.payload["reply"] == "I was in the pantry all night."
        event = bus.get_history(EventType.FREEFORM_REPLY)[-1]
        assert event.data["player_text"] == "Where were you?"
        assert context.dialogue.state == DialogueState.DISPLAYING_LINE

    def test_reply_spends_nothing(self, context):
        context.flow.request_talk("butler")
        asyncio.run(context.flow.request_freeform("Hello"))
        assert context.economy.current == 18

    def test_persona_from_dialogue(self, context, mock_llm):
        context.flow.request_talk("butler")
        asyncio.run(context.flow.request_freeform("Hello"))
        first = mock_llm.calls[0].messages[0]
        assert first.content == "You are Hale, a formal butler."

    def test_needs_dialogue(self, context):
        result = asyncio.run(context.flow.request_freeform("Hello"))
        assert result.code == RefusalCode.NO_DIALOGUE

    def test_needs_backend(self, halt_context):
        halt_context.flow.request_talk("butler")
        result = asyncio.run(halt_context.flow.request_freeform("Hello"))
        assert result.code == RefusalCode.UNAVAILABLE
        assert halt_context.dialogue.state == DialogueState.DISPLAYING_LINE


class TestBackends:
    """Test backend construction and the Gemini payload mapping."""

    def test_factory_none(self):
        assert create_llm_client("none") is None

    def test_factory_mock(self):
        client = create_llm_client("mock", responses=["Hm."])
        assert isinstance(client, MockLLMClient)

    def test_factory_gemini_without_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert create_llm_client("gemini") is None

    def test_factory_unknown(self):
        with pytest.raises(ValueError):
            create_llm_client("carrier_pigeon")

    def test_gemini_payload(self, monkeypatch):
        client = GeminiClient(api_key="k", model="m")
        sent = {}

        def fake_request(endpoint, data):
            sent["endpoint"] = endpoint
            sent["data"] = data
            return {"candidates": [{"content": {"parts": [{"text": " Indeed. "}]}, "finishReason": "STOP"}]}

        monkeypatch.setattr(client, "_make_request", fake_request)
        response = client.chat(
            [Message("user", "You are Hale."), Message("assistant", "Understood."), Message("user", "Hi")],
            system="Stay brief.",
            max_tokens=64,
        )

        assert response.content == "Indeed."
        assert response.finish_reason == "stop"
        assert sent["endpoint"] == "models/m:generateContent"
        assert [c["role"] for c in sent["data"]["contents"]] == ["user", "model", "user"]
        assert sent["data"]["systemInstruction"]["parts"][0]["text"] == "Stay brief."
        assert sent["data"]["generationConfig"]["maxOutputTokens"] == 64

    def test_gemini_bad_shape(self, monkeypatch):
        client = GeminiClient(api_key="k")
        monkeypatch.setattr(client, "_make_request", lambda endpoint, data: {"candidates": []})
        with pytest.raises(ValueError):
            client.chat([Message("user", "Hi")])
