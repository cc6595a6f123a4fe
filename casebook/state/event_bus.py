"""
Event bus for engine notifications.

Components publish typed events; the orchestrator and the presentation
layer subscribe. The bus is created once per GameContext and passed to
every component that emits.

Usage:
    bus = EventBus()
    bus.on(EventType.CLUE_DISCOVERED, lambda e: print(e.data["clue_id"]))
    bus.emit(EventType.CLUE_DISCOVERED, clue_id="bloody_knife")
"""

import logging
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator

from . import events
from .events import EventPayload

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Events the engine can publish."""

    # State authority
    PHASE_CHANGED = "phase.changed"
    CHAPTER_CHANGED = "chapter.changed"
    TIME_SLOT_CHANGED = "time.slot_changed"
    TIME_UP = "time.up"
    LOCATION_CHANGED = "location.changed"
    FLAG_ADDED = "flag.added"
    FLAG_REMOVED = "flag.removed"

    # Action economy
    ACTION_POINTS_CHANGED = "points.changed"
    ACTION_POINTS_CONSUMED = "points.consumed"
    ACTION_POINTS_RECOVERED = "points.recovered"
    ACTION_POINTS_LOW = "points.low"
    ACTION_POINTS_CRITICAL = "points.critical"
    ACTION_POINTS_EXHAUSTED = "points.exhausted"

    # Dialogue
    DIALOGUE_STARTED = "dialogue.started"
    DIALOGUE_LINE = "dialogue.line"
    CHOICES_PRESENTED = "dialogue.choices_presented"
    CHOICE_SELECTED = "dialogue.choice_selected"
    DIALOGUE_ENDED = "dialogue.ended"
    DEFAULT_GREETING = "dialogue.default_greeting"
    FREEFORM_REPLY = "dialogue.freeform_reply"

    # Ledger
    CLUE_DISCOVERED = "clue.discovered"
    CHARACTER_MET = "character.met"
    DEDUCTION_MADE = "deduction.made"
    RELATION_REVEALED = "relation.revealed"

    # Affinity
    AFFINITY_CHANGED = "affinity.changed"
    AFFINITY_THRESHOLD = "affinity.threshold"

    # Flow
    ACTION_REFUSED = "flow.action_refused"
    CHAPTER_COMPLETED = "flow.chapter_completed"
    ALL_CHAPTERS_COMPLETED = "flow.all_chapters_completed"
    OBSERVATION_STARTED = "flow.observation_started"
    OBSERVATION_ENDED = "flow.observation_ended"
    ENDING_REACHED = "flow.ending_reached"

    # Session
    SESSION_STARTED = "session.started"
    GAME_SAVED = "session.saved"
    GAME_LOADED = "session.loaded"


PAYLOAD_TYPES: dict[EventType, type] = {
    EventType.PHASE_CHANGED: events.PhaseChanged,
    EventType.CHAPTER_CHANGED: events.ChapterChanged,
    EventType.TIME_SLOT_CHANGED: events.TimeSlotChanged,
    EventType.TIME_UP: events.TimeUp,
    EventType.LOCATION_CHANGED: events.LocationChanged,
    EventType.FLAG_ADDED: events.FlagAdded,
    EventType.FLAG_REMOVED: events.FlagRemoved,
    EventType.ACTION_POINTS_CHANGED: events.ActionPointsChanged,
    EventType.ACTION_POINTS_CONSUMED: events.ActionPointsConsumed,
    EventType.ACTION_POINTS_RECOVERED: events.ActionPointsRecovered,
    EventType.ACTION_POINTS_LOW: events.ActionPointsLow,
    EventType.ACTION_POINTS_CRITICAL: events.ActionPointsCritical,
    EventType.ACTION_POINTS_EXHAUSTED: events.ActionPointsExhausted,
    EventType.DIALOGUE_STARTED: events.DialogueStarted,
    EventType.DIALOGUE_LINE: events.DialogueLine,
    EventType.CHOICES_PRESENTED: events.ChoicesPresented,
    EventType.CHOICE_SELECTED: events.ChoiceSelected,
    EventType.DIALOGUE_ENDED: events.DialogueEnded,
    EventType.DEFAULT_GREETING: events.DefaultGreeting,
    EventType.FREEFORM_REPLY: events.FreeformReply,
    EventType.CLUE_DISCOVERED: events.ClueDiscovered,
    EventType.CHARACTER_MET: events.CharacterMet,
    EventType.DEDUCTION_MADE: events.DeductionMade,
    EventType.RELATION_REVEALED: events.RelationRevealed,
    EventType.AFFINITY_CHANGED: events.AffinityChanged,
    EventType.AFFINITY_THRESHOLD: events.AffinityThreshold,
    EventType.ACTION_REFUSED: events.ActionRefused,
    EventType.CHAPTER_COMPLETED: events.ChapterCompleted,
    EventType.ALL_CHAPTERS_COMPLETED: events.AllChaptersCompleted,
    EventType.OBSERVATION_STARTED: events.ObservationStarted,
    EventType.OBSERVATION_ENDED: events.ObservationEnded,
    EventType.ENDING_REACHED: events.EndingReached,
    EventType.SESSION_STARTED: events.SessionStarted,
    EventType.GAME_SAVED: events.GameSaved,
    EventType.GAME_LOADED: events.GameLoaded,
}


@dataclass
class GameEvent:
    """
    One notification: what happened, its payload, and when.

    `payload` is the typed form of `data`; match on it to handle
    events by kind.
    """

    type: EventType
    data: dict = field(default_factory=dict)
    payload: EventPayload | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.type.value} {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous, per-session event bus.

    emit() calls every handler for the type, then every wildcard handler,
    in subscription order, before returning. Handlers may read engine
    state; a top-level request started from inside a handler is refused
    by the orchestrator.
    """

    def __init__(self, history_limit: int = 200):
        self._by_type: defaultdict[EventType, list[EventHandler]] = defaultdict(list)
        self._wildcard: list[EventHandler] = []
        self._recent: deque[GameEvent] = deque(maxlen=history_limit)

    # ─── Subscription ────────────────────────────────────────────

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Call handler for every event of event_type. Re-subscribing is a no-op."""
        handlers = self._by_type[event_type]
        if handler not in handlers:
            handlers.append(handler)

    def on_any(self, handler: EventHandler) -> None:
        """Call handler for every event (renderers, debug logging)."""
        if handler not in self._wildcard:
            self._wildcard.append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._by_type.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def off_any(self, handler: EventHandler) -> None:
        if handler in self._wildcard:
            self._wildcard.remove(handler)

    @contextmanager
    def listening(self, event_type: EventType, handler: EventHandler) -> Iterator[None]:
        """
        Subscribe for the duration of a with-block.

            with bus.listening(EventType.CLUE_DISCOVERED, found.append):
                flow.request_investigate("bloody_knife")
        """
        self.on(event_type, handler)
        try:
            yield
        finally:
            self.off(event_type, handler)

    def listener_count(self, event_type: EventType) -> int:
        return len(self._by_type.get(event_type, ()))

    # ─── Publishing ──────────────────────────────────────────────

    def emit(self, event_type: EventType, **data) -> GameEvent:
        """
        Publish an event.

        A handler that raises is logged and skipped; the remaining
        handlers still run and nothing propagates to the emitter.

        Raises:
            TypeError: If data does not fit the payload of event_type

        Returns:
            The event that was delivered
        """
        payload = PAYLOAD_TYPES[event_type](**data)
        event = GameEvent(type=event_type, data=data, payload=payload)
        self._recent.append(event)

        # Snapshot the lists: handlers may unsubscribe themselves mid-delivery
        for handler in [*self._by_type.get(event_type, ()), *self._wildcard]:
            try:
                handler(event)
            except Exception:
                logger.exception(f"{event_type.value} handler {handler!r} failed")
        return event

    # ─── History ─────────────────────────────────────────────────

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, oldest first, optionally of one type only."""
        return [e for e in self._recent if event_type is None or e.type == event_type]

    def clear_history(self) -> None:
        self._recent.clear()
