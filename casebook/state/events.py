"""
Typed payloads for bus events.

Every EventType has exactly one payload class. EventBus.emit builds it
from the keyword arguments, so an emitter that sends the wrong fields
fails at the emit site instead of inside some subscriber.

Subscribers can match on the payload:

    match event.payload:
        case ClueDiscovered(clue_id=clue_id, discovered=n, total=total):
            ...
        case ActionPointsChanged(current=current, max=maximum):
            ...
"""

from dataclasses import dataclass, field

from .schema import ClueImportance, Deduction, Emotion, EndingType, GamePhase, TimeSlot
from .schemas.action import ActionKind, RefusalCode


# ─── State authority ─────────────────────────────────────────────

@dataclass(frozen=True)
class PhaseChanged:
    old: GamePhase
    new: GamePhase


@dataclass(frozen=True)
class ChapterChanged:
    old: str
    new: str
    index: int


@dataclass(frozen=True)
class TimeSlotChanged:
    old: TimeSlot
    new: TimeSlot


@dataclass(frozen=True)
class TimeUp:
    chapter: str


@dataclass(frozen=True)
class LocationChanged:
    previous: str
    current: str
    first_visit: bool


@dataclass(frozen=True)
class FlagAdded:
    flag: str


@dataclass(frozen=True)
class FlagRemoved:
    flag: str


# ─── Action economy ──────────────────────────────────────────────

@dataclass(frozen=True)
class ActionPointsChanged:
    current: int
    max: int


@dataclass(frozen=True)
class ActionPointsConsumed:
    amount: int
    remaining: int


@dataclass(frozen=True)
class ActionPointsRecovered:
    amount: int
    current: int


@dataclass(frozen=True)
class ActionPointsLow:
    current: int


@dataclass(frozen=True)
class ActionPointsCritical:
    current: int


@dataclass(frozen=True)
class ActionPointsExhausted:
    pass


# ─── Dialogue ────────────────────────────────────────────────────

@dataclass(frozen=True)
class DialogueStarted:
    npc_id: str
    node_id: str
    name: str


@dataclass(frozen=True)
class DialogueLine:
    npc_id: str
    node_id: str
    index: int
    speaker: str
    text: str
    emotion: Emotion = Emotion.NONE
    sound: str | None = None


@dataclass(frozen=True)
class ChoicesPresented:
    npc_id: str
    node_id: str
    choices: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ChoiceSelected:
    npc_id: str
    index: int
    text: str
    next_node_id: str | None = None


@dataclass(frozen=True)
class DialogueEnded:
    npc_id: str


@dataclass(frozen=True)
class DefaultGreeting:
    npc_id: str
    text: str


@dataclass(frozen=True)
class FreeformReply:
    npc_id: str
    player_text: str
    text: str


# ─── Ledger ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClueDiscovered:
    clue_id: str
    name: str
    importance: ClueImportance
    discovered: int
    total: int


@dataclass(frozen=True)
class CharacterMet:
    character_id: str
    known: bool


@dataclass(frozen=True)
class DeductionMade:
    deduction: Deduction


@dataclass(frozen=True)
class RelationRevealed:
    a: str
    b: str
    label: str


# ─── Affinity ────────────────────────────────────────────────────

@dataclass(frozen=True)
class AffinityChanged:
    npc_id: str
    old: int
    new: int
    delta: int


@dataclass(frozen=True)
class AffinityThreshold:
    npc_id: str
    threshold: int


# ─── Flow ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ActionRefused:
    action: ActionKind
    code: RefusalCode | None
    reason: str


@dataclass(frozen=True)
class ChapterCompleted:
    chapter: str
    actions: int
    is_final: bool


@dataclass(frozen=True)
class AllChaptersCompleted:
    completed: list[str]
    clue_ratio: float


@dataclass(frozen=True)
class ObservationStarted:
    seconds: int
    location: str


@dataclass(frozen=True)
class ObservationEnded:
    location: str


@dataclass(frozen=True)
class EndingReached:
    ending: EndingType
    accused: str
    correct: bool
    clue_ratio: float
    avg_affinity: float


# ─── Session ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class SessionStarted:
    scenario_id: str
    chapter: str
    location: str


@dataclass(frozen=True)
class GameSaved:
    slot: str
    chapter: str


@dataclass(frozen=True)
class GameLoaded:
    scenario_id: str
    chapter: str


EventPayload = (
    PhaseChanged | ChapterChanged | TimeSlotChanged | TimeUp | LocationChanged
    | FlagAdded | FlagRemoved
    | ActionPointsChanged | ActionPointsConsumed | ActionPointsRecovered
    | ActionPointsLow | ActionPointsCritical | ActionPointsExhausted
    | DialogueStarted | DialogueLine | ChoicesPresented | ChoiceSelected
    | DialogueEnded | DefaultGreeting | FreeformReply
    | ClueDiscovered | CharacterMet | DeductionMade | RelationRevealed
    | AffinityChanged | AffinityThreshold
    | ActionRefused | ChapterCompleted | AllChaptersCompleted
    | ObservationStarted | ObservationEnded | EndingReached
    | SessionStarted | GameSaved | GameLoaded
)
