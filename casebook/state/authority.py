"""
Global game-state authority.

Owns phase, chapter, time of day, current location and the flag store.
It is the single writer of "what legal phase are we in". It never guards
transitions; the flow orchestrator decides when a transition is allowed.

Flags are monotonic: add_flag is the only path other components use, and
the set is only cleared by reset_to_default() at session start.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InvariantViolation
from .event_bus import EventBus, EventType
from .schema import AuthoritySnapshot, GamePhase, TimeSlot

if TYPE_CHECKING:
    from ..config import EngineConfig
    from ..systems.economy import ActionEconomy
    from .content import Scenario

logger = logging.getLogger(__name__)


def time_slot_for(used: int, max_actions: int) -> TimeSlot:
    """Map the share of spent time actions to a time of day."""
    progress = used / max_actions
    if progress < 0.25:
        return TimeSlot.MORNING
    if progress < 0.5:
        return TimeSlot.AFTERNOON
    if progress < 0.75:
        return TimeSlot.EVENING
    return TimeSlot.NIGHT


class StateAuthority:
    """Phase/chapter/time/location state machine plus the flag store."""

    def __init__(self, scenario: "Scenario", config: "EngineConfig", bus: EventBus):
        self._scenario = scenario
        self._config = config
        self._bus = bus
        self._chapters = scenario.chapter_ids

        self._phase = GamePhase.TITLE
        self._chapter_index = 0
        self._time_used = 0
        self._time_up = False
        self._location = scenario.start_location
        self._visited: set[str] = set()
        self._flags: set[str] = set()

    # ─── Queries ─────────────────────────────────────────────────

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def chapter(self) -> str:
        return self._chapters[self._chapter_index]

    @property
    def chapter_index(self) -> int:
        return self._chapter_index

    @property
    def is_final_chapter(self) -> bool:
        return self._chapter_index >= len(self._chapters) - 1

    @property
    def time_slot(self) -> TimeSlot:
        return time_slot_for(self._time_used, self._config.max_time_actions)

    @property
    def time_actions_used(self) -> int:
        return self._time_used

    @property
    def time_actions_remaining(self) -> int:
        return max(0, self._config.max_time_actions - self._time_used)

    @property
    def location(self) -> str:
        return self._location

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    @property
    def flags(self) -> frozenset[str]:
        return frozenset(self._flags)

    def has_flag(self, flag: str) -> bool:
        return flag in self._flags

    def has_all(self, flags: list[str]) -> bool:
        return all(f in self._flags for f in flags)

    def has_any(self, flags: list[str]) -> bool:
        return any(f in self._flags for f in flags)

    # ─── Phase and Chapter ───────────────────────────────────────

    def set_phase(self, phase: GamePhase) -> bool:
        """
        Switch phase. No-op if already there.

        Returns:
            True if the phase changed
        """
        if phase == self._phase:
            return False
        old = self._phase
        self._phase = phase
        logger.debug(f"Phase {old.value} -> {phase.value}")
        self._bus.emit(EventType.PHASE_CHANGED, old=old, new=phase)
        return True

    def advance_chapter(self) -> bool:
        """
        Move to the next chapter.

        Resets the time counter when configured to. The action economy is
        reset by the orchestrator, which owns cross-component effects.

        Returns:
            False (and nothing changes) at the terminal chapter
        """
        if self.is_final_chapter:
            logger.warning(f"Already at the final chapter '{self.chapter}', cannot advance")
            return False

        old = self.chapter
        self._chapter_index += 1
        if self._config.reset_time_on_chapter:
            self._reset_time()
        logger.info(f"Chapter {old} -> {self.chapter}")
        self._bus.emit(
            EventType.CHAPTER_CHANGED,
            old=old,
            new=self.chapter,
            index=self._chapter_index,
        )
        return True

    # ─── Flags ───────────────────────────────────────────────────

    def add_flag(self, flag: str) -> bool:
        """
        Set a flag. Emits only on first insertion.

        Returns:
            True if the flag was newly set
        """
        if not flag or flag in self._flags:
            return False
        self._flags.add(flag)
        self._bus.emit(EventType.FLAG_ADDED, flag=flag)
        return True

    def remove_flag(self, flag: str) -> bool:
        """Explicitly clear a flag. Returns True if it was set."""
        if flag not in self._flags:
            return False
        self._flags.discard(flag)
        logger.info(f"Flag cleared explicitly: {flag}")
        self._bus.emit(EventType.FLAG_REMOVED, flag=flag)
        return True

    # ─── Location ────────────────────────────────────────────────

    def move_to_location(
        self,
        location_id: str,
        cost: int,
        economy: "ActionEconomy",
    ) -> bool:
        """
        Move and pay for it in one step.

        Either the points are spent and the location changes, or neither
        happens.

        Returns:
            False if the economy refused the spend
        """
        if cost > 0 and not economy.consume(cost):
            logger.debug(f"Move to {location_id} refused: cannot pay {cost}")
            return False
        self._enter(location_id)
        return True

    def set_location_without_cost(self, location_id: str) -> None:
        """Teleport (cutscenes, session start, loading)."""
        self._enter(location_id)

    def _enter(self, location_id: str) -> None:
        previous = self._location
        first_visit = location_id not in self._visited
        self._location = location_id
        self._visited.add(location_id)
        self.add_flag(f"visited_{location_id}")
        self._bus.emit(
            EventType.LOCATION_CHANGED,
            previous=previous,
            current=location_id,
            first_visit=first_visit,
        )

    # ─── Time ────────────────────────────────────────────────────

    def advance_time(self, actions: int = 1) -> TimeSlot:
        """
        Spend time actions and update the time of day.

        TIME_UP fires once per chapter when the counter reaches its maximum.
        """
        if actions <= 0:
            raise InvariantViolation(f"advance_time requires a positive amount, got {actions}")

        old_slot = self.time_slot
        self._time_used = min(self._config.max_time_actions, self._time_used + actions)
        new_slot = self.time_slot
        if new_slot != old_slot:
            self._bus.emit(EventType.TIME_SLOT_CHANGED, old=old_slot, new=new_slot)
        if self._time_used >= self._config.max_time_actions and not self._time_up:
            self._time_up = True
            self._bus.emit(EventType.TIME_UP, chapter=self.chapter)
        return new_slot

    def _reset_time(self) -> None:
        old_slot = self.time_slot
        self._time_used = 0
        self._time_up = False
        if old_slot != TimeSlot.MORNING:
            self._bus.emit(EventType.TIME_SLOT_CHANGED, old=old_slot, new=TimeSlot.MORNING)

    # ─── Session ─────────────────────────────────────────────────

    def reset_to_default(self) -> None:
        """Full reset at session start. The only path that clears flags wholesale."""
        self._phase = GamePhase.TITLE
        self._chapter_index = 0
        self._time_used = 0
        self._time_up = False
        self._location = self._scenario.start_location
        self._visited.clear()
        self._flags.clear()

    def snapshot(self) -> AuthoritySnapshot:
        return AuthoritySnapshot(
            phase=self._phase,
            chapter=self.chapter,
            time_actions_used=self._time_used,
            time_up=self._time_up,
            location=self._location,
            visited=sorted(self._visited),
            flags=sorted(self._flags),
        )

    def validate_snapshot(self, snapshot: AuthoritySnapshot) -> None:
        """Raise InvariantViolation if the snapshot cannot be adopted."""
        if snapshot.chapter not in self._chapters:
            raise InvariantViolation(f"Unknown chapter in save: {snapshot.chapter}")
        if not 0 <= snapshot.time_actions_used <= self._config.max_time_actions:
            raise InvariantViolation(
                f"Time counter out of range: {snapshot.time_actions_used}"
            )
        if self._scenario.locations and self._scenario.location(snapshot.location) is None:
            raise InvariantViolation(f"Unknown location in save: {snapshot.location}")

    def restore(self, snapshot: AuthoritySnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._phase = snapshot.phase
        self._chapter_index = self._chapters.index(snapshot.chapter)
        self._time_used = snapshot.time_actions_used
        self._time_up = snapshot.time_up
        self._location = snapshot.location
        self._visited = set(snapshot.visited)
        self._flags = set(snapshot.flags)
