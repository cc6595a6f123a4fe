"""
Pytest fixtures for casebook tests.

Provides a small hand-built scenario, an isolated event bus and a fully
wired GameContext per test.
"""

import pytest
from pathlib import Path

# Add project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from casebook.config import EngineConfig
from casebook.engine import GameContext
from casebook.llm import MockLLMClient
from casebook.state import EventBus, Scenario, MemorySaveStore


MINI_SCENARIO = {
    "id": "mini_manor",
    "title": "Mini Manor",
    "culprit_id": "chef",
    "start_location": "hall",
    "chapters": [
        {"id": "one", "required_clues": ["bloody_knife", "kitchen_access_log"]},
        {"id": "two", "required_clues": ["torn_letter"]},
        {"id": "three"},
    ],
    "clues": [
        {
            "id": "bloody_knife",
            "name": "Bloody Knife",
            "category": "evidence",
            "importance": "critical",
            "related_chapter": "one",
            "hint": "Check the knife block.",
        },
        {
            "id": "kitchen_access_log",
            "name": "Kitchen Access Log",
            "category": "document",
            "importance": "critical",
            "related_chapter": "one",
        },
        {
            "id": "torn_letter",
            "name": "Torn Letter",
            "category": "document",
            "importance": "important",
            "related_chapter": "two",
        },
        {
            "id": "wine_glass",
            "category": "evidence",
            "importance": "minor",
        },
    ],
    "characters": [
        {"id": "butler", "name": "Hale", "role": "witness"},
        {"id": "chef", "name": "Dunmore", "role": "suspect"},
        {"id": "maid", "name": "Elsie", "role": "suspect"},
    ],
    "auto_deductions": [
        {
            "clues": ["bloody_knife", "kitchen_access_log"],
            "text": "The chef had the knife and the key.",
            "result_flag": "deduction_suspect_chef",
        }
    ],
    "locations": [
        {
            "id": "hall",
            "name": "Hall",
            "move_cost": 0,
            "npcs_present": ["butler"],
            "clues_available": ["kitchen_access_log", "wine_glass"],
        },
        {
            "id": "kitchen",
            "name": "Kitchen",
            "npcs_present": ["chef"],
            "clues_available": ["bloody_knife"],
        },
        {"id": "library", "name": "Library", "clues_available": ["torn_letter"]},
        {
            "id": "garden",
            "name": "Garden",
            "time_restrictions": ["morning", "afternoon"],
        },
        {
            "id": "vault",
            "name": "Vault",
            "initially_unlocked": False,
            "move_cost": 2,
            "required_flags": ["clue_torn_letter"],
        },
    ],
    "dialogues": [
        {
            "npc_id": "butler",
            "name": "Hale",
            "default_greeting": "Good day.",
            "persona": "You are Hale, a formal butler.",
            "nodes": [
                {
                    "id": "start",
                    "lines": [
                        {"speaker": "Hale", "text": "Good evening.", "flag_to_set": "butler_greeted"},
                        {"speaker": "Hale", "text": "How may I help?"},
                    ],
                    "choices": [
                        {
                            "text": "Ask about the kitchen",
                            "flag_to_set": "asked_kitchen",
                            "affinity_delta": 10,
                            "next_node_id": "kitchen",
                        },
                        {
                            "text": "Ask about old times",
                            "required_flags": ["met_butler"],
                            "next_node_id": "memories",
                        },
                    ],
                },
                {
                    "id": "kitchen",
                    "lines": [
                        {"speaker": "Hale", "text": "Only the chef has a key."},
                        {"speaker": "Hale", "text": "And I, of course.", "emotion": "worried"},
                    ],
                    "next_node_id": "farewell",
                },
                {
                    "id": "memories",
                    "lines": [{"speaker": "Hale", "text": "Thirty years, sir."}],
                },
                {
                    "id": "farewell",
                    "lines": [{"speaker": "Hale", "text": "Good night."}],
                },
            ],
        },
        {
            "npc_id": "chef",
            "name": "Dunmore",
            "default_greeting": "I'm busy.",
            "nodes": [
                {
                    "id": "start",
                    "conditions": {"required_flags": ["clue_bloody_knife"]},
                    "lines": [{"speaker": "Dunmore", "text": "That knife is not mine."}],
                },
            ],
        },
        {
            "npc_id": "maid",
            "name": "Elsie",
            "nodes": [
                {
                    "id": "start",
                    "lines": [{"speaker": "Elsie", "text": "I saw nothing."}],
                    "choices": [
                        {"text": "Press her", "required_flags": ["has_warrant"]},
                    ],
                },
            ],
        },
        {
            "npc_id": "ghost",
            "nodes": [
                {"id": "start", "next_node_id": "echo"},
                {"id": "echo", "next_node_id": "start"},
            ],
        },
    ],
}


@pytest.fixture
def scenario():
    """Small scenario with every feature the engine reads."""
    return Scenario.model_validate(MINI_SCENARIO)


@pytest.fixture
def bus():
    """Fresh event bus (never shared between tests)."""
    return EventBus()


@pytest.fixture
def config():
    """Default engine config."""
    return EngineConfig()


@pytest.fixture
def mock_llm():
    """Mock LLM client for free-form replies."""
    return MockLLMClient(responses=["I was in the pantry all night."])


@pytest.fixture
def context(scenario, config, bus, mock_llm):
    """Fully wired engine, started."""
    ctx = GameContext.create(scenario, config, bus, llm=mock_llm)
    ctx.start_new_game()
    return ctx


@pytest.fixture
def halt_context(scenario, bus):
    """Engine using the hard-stop exhaustion policy."""
    ctx = GameContext.create(scenario, EngineConfig(exhaustion_policy="halt"), bus)
    ctx.start_new_game()
    return ctx


@pytest.fixture
def memory_store():
    """In-memory save store for testing."""
    return MemorySaveStore()
