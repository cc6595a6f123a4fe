"""
Flow orchestrator for player actions.

The only component that calls mutators on more than one subsystem in a
single logical action. Every request runs through the same pipeline:

    IDLE -> GUARDING -> COMMITTING -> SETTLING -> IDLE

- GUARDING: phase and affordability checks plus action-specific legality.
  Pure; a failure returns a refusal and nothing changes.
- COMMITTING: legality is checked again, then the owning component is
  called and the points are spent. All or nothing.
- SETTLING: time advances, locked locations re-evaluate, chapter
  completion and exhaustion are handled.

Requests that arrive while another is in flight (for example from an
event handler) are refused with code BUSY.

Usage:
    flow = context.flow
    result = flow.request_move("library")
    if not result:
        print(result.reason)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

from ..errors import EngineError, InvariantViolation
from ..state.event_bus import EventBus, EventType, GameEvent
from ..state.schema import EndingType, FlowSnapshot, GamePhase
from ..state.schemas.action import ActionKind, ActionResult, RefusalCode
from .dialogue import talked_to_flag
from .endings import determine_ending

if TYPE_CHECKING:
    from ..config import EngineConfig
    from ..state.authority import StateAuthority
    from ..state.content import Scenario
    from .affinity import AffinityTracker
    from .dialogue import DialogueEngine
    from .economy import ActionEconomy
    from .freeform import FreeformBridge
    from .ledger import ClueLedger
    from .locations import LocationCatalog

logger = logging.getLogger(__name__)

CORRECT_CULPRIT_FLAG = "correct_culprit"


class FlowPhase(str, Enum):
    """Pipeline state for a single request."""
    IDLE = "idle"              # Ready for the next request
    GUARDING = "guarding"      # Pure checks, no mutation
    COMMITTING = "committing"  # Delegating and spending
    SETTLING = "settling"      # Time, completion, exhaustion


# Allowed next phases for each phase
VALID_TRANSITIONS: dict[FlowPhase, set[FlowPhase]] = {
    FlowPhase.IDLE: {FlowPhase.GUARDING},
    FlowPhase.GUARDING: {FlowPhase.COMMITTING, FlowPhase.IDLE},  # Refusal returns to idle
    FlowPhase.COMMITTING: {FlowPhase.SETTLING},
    FlowPhase.SETTLING: {FlowPhase.IDLE},
}


class FlowError(EngineError):
    """Error during action processing."""
    pass


class InvalidFlowPhaseError(FlowError):
    """Attempted transition not valid in current phase."""
    def __init__(self, current: FlowPhase, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} during {current.value} phase.")


Guard = Callable[[], "ActionResult | None"]
Commit = Callable[[], ActionResult]


class FlowOrchestrator:
    """
    Validates, delegates and settles player actions.

    Responsibilities:
    - Guard/commit/settle sequencing with a reentrancy lock
    - Cost tables (from EngineConfig) and the points spend
    - Chapter completion, exhaustion policy, ending selection

    NOT responsible for:
    - Dialogue traversal (DialogueEngine)
    - Discovery bookkeeping (ClueLedger)
    - Phase/flag storage (StateAuthority)
    """

    def __init__(
        self,
        scenario: "Scenario",
        config: "EngineConfig",
        bus: EventBus,
        authority: "StateAuthority",
        economy: "ActionEconomy",
        dialogue: "DialogueEngine",
        ledger: "ClueLedger",
        locations: "LocationCatalog",
        affinity: "AffinityTracker",
        bridge: "FreeformBridge | None" = None,
    ):
        self._scenario = scenario
        self._config = config
        self._bus = bus
        self._authority = authority
        self._economy = economy
        self._dialogue = dialogue
        self._ledger = ledger
        self._locations = locations
        self._affinity = affinity
        self._bridge = bridge

        self._phase = FlowPhase.IDLE
        self._actions_this_chapter = 0
        self._completed: list[str] = []
        self._exhaustion_pending = False
        self._all_completed = False
        self._observing = False
        self._ending: EndingType | None = None

        self._bus.on(EventType.ACTION_POINTS_EXHAUSTED, self._on_exhausted)

    # ─── Queries ─────────────────────────────────────────────────

    @property
    def phase(self) -> FlowPhase:
        """Current pipeline phase."""
        return self._phase

    @property
    def is_busy(self) -> bool:
        return self._phase != FlowPhase.IDLE

    @property
    def current_phase(self) -> GamePhase:
        return self._authority.phase

    @property
    def remaining_points(self) -> int:
        return self._economy.current

    @property
    def discovered_count(self) -> int:
        return self._ledger.discovered_count

    @property
    def completed_chapters(self) -> list[str]:
        return list(self._completed)

    @property
    def actions_this_chapter(self) -> int:
        return self._actions_this_chapter

    @property
    def exhaustion_pending(self) -> bool:
        return self._exhaustion_pending

    @property
    def all_chapters_completed(self) -> bool:
        return self._all_completed

    @property
    def is_observing(self) -> bool:
        return self._observing

    @property
    def ending(self) -> EndingType | None:
        return self._ending

    def cost_of(self, kind: ActionKind) -> int:
        return self._config.cost_of(kind.value)

    def _transition(self, to: FlowPhase) -> None:
        """Transition to a new phase, enforcing valid transitions."""
        if to not in VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidFlowPhaseError(self._phase, f"transition to {to.value}")
        self._phase = to

    # ─── Pipeline ────────────────────────────────────────────────

    def _run(
        self,
        kind: ActionKind,
        guard: Guard,
        commit: Commit,
        cost: int = 0,
        advances_time: bool = False,
    ) -> ActionResult:
        if self._phase != FlowPhase.IDLE:
            logger.warning(f"{kind.value} requested during {self._phase.value}; refused")
            return self._refuse(ActionResult.refused(
                kind, RefusalCode.BUSY, "Another action is still being resolved."
            ))

        self._transition(FlowPhase.GUARDING)
        refusal = self._common_guard(kind, cost) or guard()
        if refusal is not None:
            self._transition(FlowPhase.IDLE)
            return self._refuse(refusal)

        self._transition(FlowPhase.COMMITTING)
        try:
            # Re-check at commit time; guards and effects are separate steps
            refusal = self._common_guard(kind, cost) or guard()
            result = refusal if refusal is not None else commit()
            self._transition(FlowPhase.SETTLING)
            if result.success:
                self._settle(result, advances_time)
        finally:
            # The lock is always released, even if a component raised
            self._phase = FlowPhase.IDLE

        if not result.success:
            return self._refuse(result)
        logger.debug(f"{kind.value} settled: {result.payload}")
        return result

    def _common_guard(self, kind: ActionKind, cost: int) -> ActionResult | None:
        phase = self._authority.phase
        if phase in self._config.blocked_for(kind.value):
            return ActionResult.refused(
                kind, RefusalCode.WRONG_PHASE, f"You can't do that during {phase.value}."
            )
        if self._all_completed and kind not in (ActionKind.ACCUSE, ActionKind.DEDUCE):
            return ActionResult.refused(
                kind,
                RefusalCode.WRONG_PHASE,
                "The investigation is over. It is time to name the culprit.",
            )
        if cost > 0 and not self._economy.has_enough(cost):
            return ActionResult.refused(
                kind,
                RefusalCode.INSUFFICIENT_POINTS,
                f"Not enough action points (need {cost}, have {self._economy.current}).",
                needed=cost,
                available=self._economy.current,
            )
        return None

    def _spend(self, cost: int) -> None:
        if cost > 0 and not self._economy.consume(cost):
            # Affordability was checked moments ago in the same commit
            raise InvariantViolation(f"Points changed during commit; could not spend {cost}")

    def _refuse(self, result: ActionResult) -> ActionResult:
        logger.info(f"Refused {result.action.value}: {result.reason}")
        self._bus.emit(
            EventType.ACTION_REFUSED,
            action=result.action,
            code=result.code,
            reason=result.reason,
        )
        return result

    def _settle(self, result: ActionResult, advances_time: bool) -> None:
        if result.cost > 0 or advances_time:
            self._actions_this_chapter += 1
            self._authority.advance_time(1)
        self._locations.refresh_unlocks()
        self._check_chapter_completion()
        self._handle_exhaustion()

    # ─── Movement ────────────────────────────────────────────────

    def request_move(self, location_id: str) -> ActionResult:
        """Walk to another location, paying its move cost."""
        kind = ActionKind.MOVE
        location = self._locations.get(location_id)
        cost = self._locations.move_cost(location_id, self.cost_of(kind))

        def guard() -> ActionResult | None:
            if location is None:
                return ActionResult.refused(
                    kind, RefusalCode.UNKNOWN_TARGET, f"There is no place called {location_id}."
                )
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "Finish the conversation first."
                )
            if location_id == self._authority.location:
                return ActionResult.refused(
                    kind, RefusalCode.ALREADY_THERE, f"You are already in {location.name or location_id}."
                )
            restriction = self._locations.restriction_for(location_id)
            if restriction is not None:
                return ActionResult.from_restriction(kind, restriction)
            return None

        def commit() -> ActionResult:
            if not self._authority.move_to_location(location_id, cost, self._economy):
                return ActionResult.refused(
                    kind, RefusalCode.INSUFFICIENT_POINTS, "Not enough action points."
                )
            self._locations.discover(location_id)
            return ActionResult.accepted(
                kind,
                cost=cost,
                location=location_id,
                npcs=self._locations.npcs_at(location_id),
            )

        return self._run(kind, guard, commit, cost=cost)

    # ─── Conversation ────────────────────────────────────────────

    def request_talk(self, npc_id: str) -> ActionResult:
        """
        Start a scripted conversation.

        Each NPC can be talked to once per chapter. If the NPC has nothing
        to say right now, the default greeting is shown and nothing is spent.
        """
        kind = ActionKind.TALK
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "You are already in a conversation."
                )
            if self._scenario.dialogue(npc_id) is None:
                return ActionResult.refused(
                    kind, RefusalCode.UNKNOWN_TARGET, f"There is no one called {npc_id}."
                )
            if self._npc_elsewhere(npc_id):
                return ActionResult.refused(
                    kind, RefusalCode.NOT_HERE, f"{npc_id} is not here."
                )
            if self._authority.has_flag(talked_to_flag(npc_id, self._authority.chapter)):
                return ActionResult.refused(
                    kind,
                    RefusalCode.ALREADY_DONE,
                    f"You have already spoken with {npc_id} this chapter.",
                )
            return None

        def commit() -> ActionResult:
            started = self._dialogue.start(npc_id)
            if not started.success:
                return started
            self._spend(cost)
            self._ledger.meet_character(npc_id)
            return ActionResult.accepted(kind, cost=cost, npc_id=npc_id)

        return self._run(kind, guard, commit, cost=cost)

    def _npc_elsewhere(self, npc_id: str) -> bool:
        """True if the NPC is placed somewhere, just not here."""
        placed = [loc.id for loc in self._locations.all() if npc_id in loc.npcs_present]
        return bool(placed) and self._authority.location not in placed

    def _dialogue_step(self, kind: ActionKind, step: Callable[[], bool], refusal: str) -> ActionResult:
        def guard() -> ActionResult | None:
            if not self._dialogue.is_active:
                return ActionResult.refused(kind, RefusalCode.NO_DIALOGUE, "No one is talking to you.")
            return None

        def commit() -> ActionResult:
            if not step():
                return ActionResult.refused(kind, RefusalCode.UNAVAILABLE, refusal)
            return ActionResult.accepted(kind, state=self._dialogue.state.value)

        return self._run(kind, guard, commit)

    def advance_dialogue(self) -> ActionResult:
        return self._dialogue_step(
            ActionKind.ADVANCE_DIALOGUE, self._dialogue.advance, "Choose a reply first."
        )

    def skip_dialogue(self) -> ActionResult:
        return self._dialogue_step(
            ActionKind.ADVANCE_DIALOGUE, self._dialogue.skip, "Choose a reply first."
        )

    def select_choice(self, index: int) -> ActionResult:
        return self._dialogue_step(
            ActionKind.SELECT_CHOICE,
            lambda: self._dialogue.select_choice(index),
            f"There is no reply number {index + 1}.",
        )

    def end_dialogue(self) -> ActionResult:
        return self._dialogue_step(
            ActionKind.END_DIALOGUE, self._dialogue.end, "No one is talking to you."
        )

    async def request_freeform(self, player_text: str) -> ActionResult:
        """
        Say something unscripted to the current NPC.

        The scripted traversal waits (AWAITING_REPLY) until the reply is
        in; the reply itself is never interpreted.
        """
        kind = ActionKind.FREEFORM
        if self._phase != FlowPhase.IDLE:
            return self._refuse(ActionResult.refused(
                kind, RefusalCode.BUSY, "Another action is still being resolved."
            ))
        if self._bridge is None or not self._bridge.available:
            return self._refuse(ActionResult.refused(
                kind, RefusalCode.UNAVAILABLE, "No one is listening to small talk right now."
            ))
        if not self._dialogue.is_active:
            return self._refuse(ActionResult.refused(
                kind, RefusalCode.NO_DIALOGUE, "No one is talking to you."
            ))

        npc_id = self._dialogue.begin_freeform()
        if npc_id is None:
            return self._refuse(ActionResult.refused(
                kind, RefusalCode.UNAVAILABLE, "Wait for the answer first."
            ))

        graph = self._scenario.dialogue(npc_id)
        reply = await self._bridge.reply(npc_id, graph.persona, player_text)
        self._dialogue.complete_freeform(npc_id, player_text, reply)
        return ActionResult.accepted(kind, npc_id=npc_id, reply=reply)

    # ─── Investigation ───────────────────────────────────────────

    def request_investigate(self, clue_id: str) -> ActionResult:
        """Examine something and add the clue to the ledger."""
        kind = ActionKind.INVESTIGATE
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            clue = self._scenario.clue(clue_id)
            if clue is None:
                return ActionResult.refused(
                    kind, RefusalCode.UNKNOWN_TARGET, f"There is nothing called {clue_id}."
                )
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "Finish the conversation first."
                )
            if self._ledger.has_clue(clue_id):
                return ActionResult.refused(
                    kind, RefusalCode.ALREADY_DONE, f"You have already examined {clue.name or clue_id}."
                )
            if self._clue_elsewhere(clue_id):
                return ActionResult.refused(
                    kind, RefusalCode.NOT_HERE, f"{clue.name or clue_id} is not here."
                )
            return None

        def commit() -> ActionResult:
            self._ledger.discover(clue_id)
            self._spend(cost)
            return ActionResult.accepted(
                kind,
                cost=cost,
                clue_id=clue_id,
                completion=self._ledger.completion_ratio(),
            )

        return self._run(kind, guard, commit, cost=cost)

    def _clue_elsewhere(self, clue_id: str) -> bool:
        placed = [loc.id for loc in self._locations.all() if clue_id in loc.clues_available]
        return bool(placed) and self._authority.location not in placed

    def request_observe(self) -> ActionResult:
        """
        Enter observation mode.

        The countdown itself belongs to the presentation layer, which
        calls end_observation() when it runs out.
        """
        kind = ActionKind.OBSERVE
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            if self._observing:
                return ActionResult.refused(kind, RefusalCode.ALREADY_DONE, "You are already observing.")
            if self._authority.phase != GamePhase.EXPLORATION:
                return ActionResult.refused(
                    kind, RefusalCode.WRONG_PHASE, "You can only observe while exploring."
                )
            return None

        def commit() -> ActionResult:
            self._spend(cost)
            self._observing = True
            self._authority.set_phase(GamePhase.INVESTIGATION)
            seconds = self._config.observation_seconds
            self._bus.emit(
                EventType.OBSERVATION_STARTED,
                seconds=seconds,
                location=self._authority.location,
            )
            return ActionResult.accepted(kind, cost=cost, seconds=seconds)

        return self._run(kind, guard, commit, cost=cost)

    def end_observation(self) -> ActionResult:
        kind = ActionKind.END_OBSERVATION

        def guard() -> ActionResult | None:
            if not self._observing:
                return ActionResult.refused(kind, RefusalCode.UNAVAILABLE, "You are not observing.")
            return None

        def commit() -> ActionResult:
            self._observing = False
            self._authority.set_phase(GamePhase.EXPLORATION)
            self._bus.emit(EventType.OBSERVATION_ENDED, location=self._authority.location)
            return ActionResult.accepted(kind)

        return self._run(kind, guard, commit)

    def request_rest(self) -> ActionResult:
        """Recover some points at the price of time."""
        kind = ActionKind.REST
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "Finish the conversation first."
                )
            return None

        def commit() -> ActionResult:
            self._spend(cost)
            recovered = self._economy.recover(self._config.rest_recovery)
            return ActionResult.accepted(kind, cost=cost, recovered=recovered)

        return self._run(kind, guard, commit, cost=cost, advances_time=True)

    def request_deduction(
        self,
        clue_ids: list[str],
        text: str,
        result_flag: str | None = None,
    ) -> ActionResult:
        """Record a manual deduction from owned clues."""
        kind = ActionKind.DEDUCE
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            missing = [cid for cid in clue_ids if not self._ledger.has_clue(cid)]
            if missing:
                return ActionResult.refused(
                    kind,
                    RefusalCode.MISSING_CLUES,
                    "Not enough evidence yet.",
                    missing_clues=missing,
                )
            return None

        def commit() -> ActionResult:
            result = self._ledger.record_deduction(clue_ids, text, result_flag)
            if not result.success:
                return ActionResult.refused(
                    kind,
                    RefusalCode.MISSING_CLUES,
                    result.message,
                    missing_clues=result.missing_clues,
                )
            self._spend(cost)
            return ActionResult.accepted(kind, cost=cost, deduction=result.deduction)

        return self._run(kind, guard, commit, cost=cost)

    # ─── Endgame ─────────────────────────────────────────────────

    def request_accuse(self, suspect_id: str) -> ActionResult:
        """Name the culprit. Ends the game with exactly one ending."""
        kind = ActionKind.ACCUSE
        cost = self.cost_of(kind)

        def guard() -> ActionResult | None:
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "Finish the conversation first."
                )
            if self._scenario.character(suspect_id) is None:
                return ActionResult.refused(
                    kind, RefusalCode.UNKNOWN_TARGET, f"There is no one called {suspect_id}."
                )
            return None

        def commit() -> ActionResult:
            self._spend(cost)
            self._observing = False
            correct = suspect_id == self._scenario.culprit_id
            if correct:
                self._authority.add_flag(CORRECT_CULPRIT_FLAG)
            clue_ratio = self._ledger.completion_ratio()
            avg_affinity = self._affinity.average()
            self._ending = determine_ending(correct, clue_ratio, avg_affinity)
            self._authority.set_phase(GamePhase.ENDING)
            logger.info(f"Accused {suspect_id} (correct={correct}): {self._ending.value} ending")
            self._bus.emit(
                EventType.ENDING_REACHED,
                ending=self._ending,
                accused=suspect_id,
                correct=correct,
                clue_ratio=clue_ratio,
                avg_affinity=avg_affinity,
            )
            return ActionResult.accepted(
                kind,
                cost=cost,
                ending=self._ending,
                correct=correct,
                clue_ratio=clue_ratio,
                avg_affinity=avg_affinity,
            )

        return self._run(kind, guard, commit, cost=cost)

    # ─── Chapters ────────────────────────────────────────────────

    def advance_chapter(self) -> ActionResult:
        """
        Explicitly move on to the next chapter.

        At the final chapter this concludes the investigation once the
        chapter is complete; otherwise it is refused.
        """
        kind = ActionKind.ADVANCE_CHAPTER

        def guard() -> ActionResult | None:
            if self._dialogue.is_active:
                return ActionResult.refused(
                    kind, RefusalCode.DIALOGUE_ACTIVE, "Finish the conversation first."
                )
            if self._authority.is_final_chapter and self._authority.chapter not in self._completed:
                return ActionResult.refused(
                    kind,
                    RefusalCode.FINAL_CHAPTER,
                    "This is the final chapter. Finish it or name the culprit.",
                )
            return None

        def commit() -> ActionResult:
            if self._authority.is_final_chapter:
                self._conclude()
                return ActionResult.accepted(kind, all_completed=True)
            self._next_chapter()
            return ActionResult.accepted(kind, chapter=self._authority.chapter)

        return self._run(kind, guard, commit)

    def _next_chapter(self) -> None:
        if self._observing:
            self._observing = False
            self._bus.emit(EventType.OBSERVATION_ENDED, location=self._authority.location)
        self._authority.advance_chapter()
        self._economy.reset()
        self._actions_this_chapter = 0
        self._exhaustion_pending = False
        self._authority.set_phase(GamePhase.EXPLORATION)

    def _conclude(self) -> None:
        if self._all_completed:
            return
        self._all_completed = True
        self._exhaustion_pending = False
        self._observing = False
        self._dialogue.end()
        self._authority.set_phase(GamePhase.INVESTIGATION)
        logger.info("All chapters completed; awaiting accusation")
        self._bus.emit(
            EventType.ALL_CHAPTERS_COMPLETED,
            completed=list(self._completed),
            clue_ratio=self._ledger.completion_ratio(),
        )

    def _check_chapter_completion(self) -> None:
        chapter = self._scenario.chapter(self._authority.chapter)
        if chapter is None or chapter.id in self._completed or not chapter.required_clues:
            return
        if not all(self._ledger.has_clue(cid) for cid in chapter.required_clues):
            return
        if self._actions_this_chapter < chapter.min_actions:
            return

        self._completed.append(chapter.id)
        self._authority.add_flag(f"chapter_complete_{chapter.id}")
        logger.info(f"Chapter {chapter.id} complete after {self._actions_this_chapter} actions")
        self._bus.emit(
            EventType.CHAPTER_COMPLETED,
            chapter=chapter.id,
            actions=self._actions_this_chapter,
            is_final=self._authority.is_final_chapter,
        )

    # ─── Exhaustion ──────────────────────────────────────────────

    def _on_exhausted(self, event: GameEvent) -> None:
        # Only record it; the policy runs when the action settles
        self._exhaustion_pending = True

    def _handle_exhaustion(self) -> None:
        if not self._exhaustion_pending or self._ending is not None:
            return
        if self._config.exhaustion_policy == "halt":
            self._exhaustion_pending = False
            logger.info("Action points exhausted; only free actions remain")
            return
        if self._dialogue.is_active:
            # Let the conversation finish before moving on
            return

        if self._authority.is_final_chapter:
            self._conclude()
        else:
            logger.info(f"Action points exhausted; leaving chapter {self._authority.chapter}")
            self._next_chapter()

    # ─── Persistence ─────────────────────────────────────────────

    def reset(self) -> None:
        self._phase = FlowPhase.IDLE
        self._actions_this_chapter = 0
        self._completed = []
        self._exhaustion_pending = False
        self._all_completed = False
        self._observing = False
        self._ending = None

    def snapshot(self) -> FlowSnapshot:
        return FlowSnapshot(
            actions_this_chapter=self._actions_this_chapter,
            completed_chapters=list(self._completed),
            exhaustion_pending=self._exhaustion_pending,
            all_chapters_completed=self._all_completed,
            ending=self._ending,
        )

    def validate_snapshot(self, snapshot: FlowSnapshot) -> None:
        chapter_ids = self._scenario.chapter_ids
        for chapter_id in snapshot.completed_chapters:
            if chapter_id not in chapter_ids:
                raise InvariantViolation(f"Unknown completed chapter in save: {chapter_id}")
        if snapshot.actions_this_chapter < 0:
            raise InvariantViolation("Negative action count in save")

    def restore(self, snapshot: FlowSnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._phase = FlowPhase.IDLE
        self._actions_this_chapter = snapshot.actions_this_chapter
        self._completed = list(snapshot.completed_chapters)
        self._exhaustion_pending = snapshot.exhaustion_pending
        self._all_completed = snapshot.all_chapters_completed
        self._observing = False
        self._ending = snapshot.ending
