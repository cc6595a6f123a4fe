"""State management for casebook sessions."""

from .schema import (
    GamePhase,
    TimeSlot,
    ClueCategory,
    ClueImportance,
    CharacterRole,
    Emotion,
    EndingType,
    Deduction,
    DeductionResult,
    SaveGame,
)
from .content import (
    Scenario,
    Clue,
    CharacterProfile,
    NPCDialogue,
    DialogueNode,
    DialogueChoice,
    DialogueLine,
    Location,
    ChapterConfig,
    load_scenario,
    default_scenario,
)
from .authority import StateAuthority
from .store import SaveStore, JsonSaveStore, MemorySaveStore
from .event_bus import EventBus, EventType, GameEvent

__all__ = [
    # Schema
    "GamePhase",
    "TimeSlot",
    "ClueCategory",
    "ClueImportance",
    "CharacterRole",
    "Emotion",
    "EndingType",
    "Deduction",
    "DeductionResult",
    "SaveGame",
    # Content
    "Scenario",
    "Clue",
    "CharacterProfile",
    "NPCDialogue",
    "DialogueNode",
    "DialogueChoice",
    "DialogueLine",
    "Location",
    "ChapterConfig",
    "load_scenario",
    "default_scenario",
    # Authority
    "StateAuthority",
    # Storage
    "SaveStore",
    "JsonSaveStore",
    "MemorySaveStore",
    # Events
    "EventBus",
    "EventType",
    "GameEvent",
]
