"""
Root context for a play session.

GameContext is built once per session and owns every component. Nothing
in the engine reaches for a global: components receive the bus, the
scenario, the config and each other through their constructors.

Usage:
    context = GameContext.create(default_scenario())
    context.start_new_game()
    context.flow.request_move("library")

    save = context.snapshot()
    context.restore(save)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from .config import EngineConfig
from .errors import InvariantViolation
from .llm.base import LLMClient
from .state.authority import StateAuthority
from .state.content import Scenario
from .state.event_bus import EventBus, EventType
from .state.schema import SAVE_VERSION, EconomySnapshot, GamePhase, SaveGame
from .state.store import SaveStore
from .systems.affinity import AffinityTracker
from .systems.dialogue import DialogueEngine
from .systems.economy import ActionEconomy
from .systems.flow import FlowOrchestrator
from .systems.freeform import FreeformBridge
from .systems.ledger import ClueLedger
from .systems.locations import LocationCatalog

logger = logging.getLogger(__name__)


@runtime_checkable
class Persistable(Protocol):
    """A component whose state can be captured and adopted as a plain model."""

    def snapshot(self) -> BaseModel:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class GameContext:
    """Holds the wired-up engine for one session."""

    def __init__(
        self,
        scenario: Scenario,
        config: EngineConfig,
        bus: EventBus,
        authority: StateAuthority,
        economy: ActionEconomy,
        affinity: AffinityTracker,
        ledger: ClueLedger,
        dialogue: DialogueEngine,
        locations: LocationCatalog,
        flow: FlowOrchestrator,
        bridge: FreeformBridge,
    ):
        self.scenario = scenario
        self.config = config
        self.bus = bus
        self.authority = authority
        self.economy = economy
        self.affinity = affinity
        self.ledger = ledger
        self.dialogue = dialogue
        self.locations = locations
        self.flow = flow
        self.bridge = bridge

    @classmethod
    def create(
        cls,
        scenario: Scenario,
        config: EngineConfig | None = None,
        bus: EventBus | None = None,
        llm: LLMClient | None = None,
    ) -> "GameContext":
        """Build every component and wire them together."""
        config = config or EngineConfig()
        bus = bus or EventBus()

        authority = StateAuthority(scenario, config, bus)
        economy = ActionEconomy.from_config(bus, config)
        affinity = AffinityTracker(authority, bus, config.affinity_thresholds)
        ledger = ClueLedger(scenario, authority, bus)
        dialogue = DialogueEngine(scenario, authority, affinity, bus)
        locations = LocationCatalog(scenario, authority)
        bridge = FreeformBridge(llm)
        flow = FlowOrchestrator(
            scenario,
            config,
            bus,
            authority=authority,
            economy=economy,
            dialogue=dialogue,
            ledger=ledger,
            locations=locations,
            affinity=affinity,
            bridge=bridge,
        )
        return cls(
            scenario, config, bus,
            authority=authority,
            economy=economy,
            affinity=affinity,
            ledger=ledger,
            dialogue=dialogue,
            locations=locations,
            flow=flow,
            bridge=bridge,
        )

    # ─── Session ─────────────────────────────────────────────────

    def start_new_game(self) -> None:
        """Reset everything to defaults and enter the first chapter."""
        self.authority.reset_to_default()
        self.economy.restore(self._fresh_economy())
        self.affinity.reset()
        self.ledger.reset()
        self.dialogue.reset()
        self.locations.reset()
        self.flow.reset()
        self.bridge.reset()

        self.authority.set_location_without_cost(self.scenario.start_location)
        self.locations.discover(self.scenario.start_location)
        self.authority.set_phase(GamePhase.EXPLORATION)
        logger.info(f"New game: {self.scenario.title or self.scenario.id}")
        self.bus.emit(
            EventType.SESSION_STARTED,
            scenario_id=self.scenario.id,
            chapter=self.authority.chapter,
            location=self.authority.location,
        )

    def _fresh_economy(self) -> EconomySnapshot:
        return EconomySnapshot(
            current=self.config.starting_action_points,
            max=self.config.max_action_points,
            warned_low=self.config.starting_action_points <= self.config.low_threshold,
            warned_critical=self.config.starting_action_points <= self.config.critical_threshold,
        )

    # ─── Persistence ─────────────────────────────────────────────

    def snapshot(self) -> SaveGame:
        """
        Capture the whole engine.

        Open conversations and observations are not part of a save;
        loading always lands back in exploration.
        """
        authority = self.authority.snapshot()
        if authority.phase == GamePhase.DIALOGUE or self.flow.is_observing:
            authority = authority.model_copy(update={"phase": GamePhase.EXPLORATION})
        return SaveGame(
            scenario_id=self.scenario.id,
            authority=authority,
            economy=self.economy.snapshot(),
            ledger=self.ledger.snapshot(),
            dialogue=self.dialogue.snapshot(),
            affinity=self.affinity.snapshot(),
            locations=self.locations.snapshot(),
            flow=self.flow.snapshot(),
        )

    def validate(self, save: SaveGame) -> None:
        """
        Check a save against this scenario without touching any state.

        Raises:
            InvariantViolation: On the first problem found
        """
        if save.version != SAVE_VERSION:
            raise InvariantViolation(f"Unsupported save version {save.version}")
        if save.scenario_id != self.scenario.id:
            raise InvariantViolation(
                f"Save is for scenario '{save.scenario_id}', not '{self.scenario.id}'"
            )
        self.authority.validate_snapshot(save.authority)
        ActionEconomy.validate_snapshot(save.economy)
        self.ledger.validate_snapshot(save.ledger)
        AffinityTracker.validate_snapshot(save.affinity)
        self.locations.validate_snapshot(save.locations)
        self.flow.validate_snapshot(save.flow)

    def restore(self, save: SaveGame) -> None:
        """
        Adopt a save atomically.

        Everything is validated first; if any part is invalid nothing is
        applied.
        """
        try:
            self.validate(save)
        except InvariantViolation as e:
            logger.error(f"Rejected save: {e}")
            raise

        self.dialogue.restore(save.dialogue)
        self.authority.restore(save.authority)
        self.economy.restore(save.economy)
        self.ledger.restore(save.ledger)
        self.affinity.restore(save.affinity)
        self.locations.restore(save.locations)
        self.flow.restore(save.flow)
        self.bridge.reset()
        logger.info(f"Restored save from {save.saved_at:%Y-%m-%d %H:%M}")
        self.bus.emit(
            EventType.GAME_LOADED,
            scenario_id=save.scenario_id,
            chapter=self.authority.chapter,
        )

    def save_to(self, store: "SaveStore", slot: str) -> SaveGame:
        """Snapshot and write to a store slot."""
        save = self.snapshot()
        store.save(slot, save)
        self.bus.emit(EventType.GAME_SAVED, slot=slot, chapter=save.authority.chapter)
        return save

    def load_from(self, store: "SaveStore", slot: str) -> bool:
        """
        Read a slot and restore it.

        Returns:
            False if the slot does not exist

        Raises:
            InvariantViolation: If the slot is corrupt or does not fit this scenario
        """
        save = store.load(slot)
        if save is None:
            return False
        self.restore(save)
        return True

    def components(self) -> list[Persistable]:
        return [
            self.authority,
            self.economy,
            self.ledger,
            self.dialogue,
            self.affinity,
            self.locations,
            self.flow,
        ]
