"""
Pydantic models for engine state.

This is the single source of truth for the shapes of runtime records and
persistence snapshots. Snapshots carry data only; the components own the
behavior and validate a snapshot before adopting it.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class GamePhase(str, Enum):
    TITLE = "title"
    EXPLORATION = "exploration"
    INVESTIGATION = "investigation"
    DIALOGUE = "dialogue"
    CUTSCENE = "cutscene"
    ENDING = "ending"


class TimeSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class ClueCategory(str, Enum):
    EVIDENCE = "evidence"
    DOCUMENT = "document"
    TESTIMONY = "testimony"
    PHOTO = "photo"
    PERSONAL = "personal"
    ENVIRONMENTAL = "environmental"


class ClueImportance(str, Enum):
    MINOR = "minor"
    IMPORTANT = "important"
    CRITICAL = "critical"


class CharacterRole(str, Enum):
    VICTIM = "victim"
    SUSPECT = "suspect"
    WITNESS = "witness"
    INVESTIGATOR = "investigator"
    NEUTRAL = "neutral"


class Emotion(str, Enum):
    NONE = "none"
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    CONFUSED = "confused"
    WORRIED = "worried"
    THINKING = "thinking"


class EndingType(str, Enum):
    BAD = "bad"
    NORMAL = "normal"
    GOOD = "good"
    TRUE = "true"


# -----------------------------------------------------------------------------
# Deductions
# -----------------------------------------------------------------------------

class Deduction(BaseModel):
    """A recorded conclusion. Every used clue was owned when it was recorded."""
    text: str
    used_clue_ids: list[str]
    chapter: str
    result_flag: str | None = None
    automatic: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)


class DeductionResult(BaseModel):
    """Outcome of a deduction attempt."""
    success: bool
    message: str = ""
    deduction: Deduction | None = None
    missing_clues: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Persistence snapshots
# -----------------------------------------------------------------------------

class AuthoritySnapshot(BaseModel):
    phase: GamePhase = GamePhase.TITLE
    chapter: str
    time_actions_used: int = 0
    time_up: bool = False
    location: str
    visited: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)


class EconomySnapshot(BaseModel):
    current: int
    max: int
    warned_low: bool = False
    warned_critical: bool = False


class LedgerSnapshot(BaseModel):
    discovered_clues: list[str] = Field(default_factory=list)
    met_characters: list[str] = Field(default_factory=list)
    deductions: list[Deduction] = Field(default_factory=list)
    relations: dict[str, str] = Field(default_factory=dict)
    fired_rules: list[str] = Field(default_factory=list)


class DialogueSnapshot(BaseModel):
    """Played-node history. Active sessions are never persisted."""
    history: list[str] = Field(default_factory=list)


class AffinitySnapshot(BaseModel):
    values: dict[str, int] = Field(default_factory=dict)


class LocationSnapshot(BaseModel):
    unlocked: list[str] = Field(default_factory=list)
    discovered: list[str] = Field(default_factory=list)


class FlowSnapshot(BaseModel):
    actions_this_chapter: int = 0
    completed_chapters: list[str] = Field(default_factory=list)
    exhaustion_pending: bool = False
    all_chapters_completed: bool = False
    ending: EndingType | None = None


SAVE_VERSION = 1


class SaveGame(BaseModel):
    """Whole-engine save. Restored atomically by GameContext."""
    version: int = SAVE_VERSION
    scenario_id: str
    saved_at: datetime = Field(default_factory=datetime.now)
    authority: AuthoritySnapshot
    economy: EconomySnapshot
    ledger: LedgerSnapshot
    dialogue: DialogueSnapshot
    affinity: AffinitySnapshot
    locations: LocationSnapshot
    flow: FlowSnapshot
