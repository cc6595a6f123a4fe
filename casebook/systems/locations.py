"""
Location catalog.

Read side for the orchestrator (costs, restrictions, NPC and clue
manifests) plus the unlock/discover bookkeeping the orchestrator
delegates back here as explicit calls.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InvariantViolation
from ..state.schema import LocationSnapshot
from ..state.schemas.action import Restriction
from .validation import location_restriction

if TYPE_CHECKING:
    from ..state.authority import StateAuthority
    from ..state.content import Location, Scenario
    from .ledger import ClueLedger

logger = logging.getLogger(__name__)


class LocationCatalog:
    """Scenario locations with unlock state."""

    def __init__(self, scenario: "Scenario", authority: "StateAuthority"):
        self._scenario = scenario
        self._authority = authority
        self._unlocked: set[str] = set()
        self._discovered: set[str] = set()
        self.reset()

    def reset(self) -> None:
        self._unlocked = {loc.id for loc in self._scenario.locations if loc.initially_unlocked}
        self._discovered = set()

    def get(self, location_id: str) -> "Location | None":
        return self._scenario.location(location_id)

    def all(self) -> list["Location"]:
        return list(self._scenario.locations)

    def is_unlocked(self, location_id: str) -> bool:
        return location_id in self._unlocked

    def move_cost(self, location_id: str, default: int = 1) -> int:
        """Cost of walking to a location; its own cost wins over the default."""
        location = self.get(location_id)
        if location is None or location.move_cost is None:
            return default
        return location.move_cost

    def restriction_for(self, location_id: str) -> Restriction | None:
        """Current restriction blocking entry, or None if enterable."""
        location = self.get(location_id)
        if location is None:
            return None
        return location_restriction(
            location,
            unlocked=self.is_unlocked(location_id),
            time_slot=self._authority.time_slot,
            chapter=self._authority.chapter,
            flags=self._authority.flags,
        )

    def available(self) -> list["Location"]:
        """Locations that could be entered right now (excluding the current one)."""
        return [
            loc for loc in self._scenario.locations
            if loc.id != self._authority.location and self.restriction_for(loc.id) is None
        ]

    def npcs_at(self, location_id: str) -> list[str]:
        location = self.get(location_id)
        return list(location.npcs_present) if location else []

    def clues_at(self, location_id: str, ledger: "ClueLedger | None" = None) -> list[str]:
        """Clue manifest, minus already discovered clues when a ledger is given."""
        location = self.get(location_id)
        if location is None:
            return []
        if ledger is None:
            return list(location.clues_available)
        return [cid for cid in location.clues_available if not ledger.has_clue(cid)]

    # ─── Bookkeeping ─────────────────────────────────────────────

    def unlock(self, location_id: str) -> bool:
        if self.get(location_id) is None or location_id in self._unlocked:
            return False
        self._unlocked.add(location_id)
        self._authority.add_flag(f"unlocked_{location_id}")
        logger.info(f"Location unlocked: {location_id}")
        return True

    def lock(self, location_id: str) -> bool:
        if location_id not in self._unlocked:
            return False
        self._unlocked.discard(location_id)
        logger.info(f"Location locked: {location_id}")
        return True

    def discover(self, location_id: str) -> bool:
        """Mark a location as known to the player (map reveal)."""
        if self.get(location_id) is None or location_id in self._discovered:
            return False
        self._discovered.add(location_id)
        self._authority.add_flag(f"discovered_{location_id}")
        self.unlock(location_id)
        return True

    def refresh_unlocks(self) -> list[str]:
        """
        Unlock locked locations whose required flags are now all set.

        Returns:
            Ids unlocked by this call
        """
        opened = []
        for loc in self._scenario.locations:
            if loc.id in self._unlocked or not loc.required_flags:
                continue
            if self._authority.has_all(loc.required_flags) and self.unlock(loc.id):
                opened.append(loc.id)
        return opened

    def is_discovered(self, location_id: str) -> bool:
        return location_id in self._discovered

    # ─── Persistence ─────────────────────────────────────────────

    def snapshot(self) -> LocationSnapshot:
        return LocationSnapshot(
            unlocked=sorted(self._unlocked),
            discovered=sorted(self._discovered),
        )

    def validate_snapshot(self, snapshot: LocationSnapshot) -> None:
        for location_id in [*snapshot.unlocked, *snapshot.discovered]:
            if self.get(location_id) is None:
                raise InvariantViolation(f"Unknown location in save: {location_id}")

    def restore(self, snapshot: LocationSnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._unlocked = set(snapshot.unlocked)
        self._discovered = set(snapshot.discovered)
