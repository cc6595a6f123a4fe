"""
Per-NPC affinity scores.

Scores live in [0, 100] and default to 0. Crossing a threshold upward is
a one-shot event, remembered as a flag so it never re-triggers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InvariantViolation
from ..state.event_bus import EventBus, EventType
from ..state.schema import AffinitySnapshot

if TYPE_CHECKING:
    from ..state.authority import StateAuthority

logger = logging.getLogger(__name__)

MIN_AFFINITY = 0
MAX_AFFINITY = 100


def threshold_flag(npc_id: str, threshold: int) -> str:
    return f"{npc_id}_affinity_{threshold}"


class AffinityTracker:
    """Clamped affinity scores with threshold flags."""

    def __init__(
        self,
        authority: "StateAuthority",
        bus: EventBus,
        thresholds: list[int] | None = None,
    ):
        self._authority = authority
        self._bus = bus
        self._thresholds = sorted(thresholds or [40, 60, 80])
        self._values: dict[str, int] = {}

    def get(self, npc_id: str) -> int:
        return self._values.get(npc_id, MIN_AFFINITY)

    def all(self) -> dict[str, int]:
        return dict(self._values)

    def average(self) -> float:
        """Mean over NPCs with a recorded score, 0 if none."""
        if not self._values:
            return 0.0
        return sum(self._values.values()) / len(self._values)

    def change(self, npc_id: str, delta: int) -> int:
        """
        Apply a delta, clamped to [0, 100].

        Returns:
            The new score
        """
        old = self.get(npc_id)
        new = max(MIN_AFFINITY, min(MAX_AFFINITY, old + delta))
        self._values[npc_id] = new
        if new != old:
            self._bus.emit(EventType.AFFINITY_CHANGED, npc_id=npc_id, old=old, new=new, delta=delta)
        self._check_thresholds(npc_id, new)
        return new

    def _check_thresholds(self, npc_id: str, value: int) -> None:
        for threshold in self._thresholds:
            if value < threshold:
                break
            # add_flag is false when the flag already exists
            if self._authority.add_flag(threshold_flag(npc_id, threshold)):
                logger.info(f"{npc_id} affinity reached {threshold}")
                self._bus.emit(EventType.AFFINITY_THRESHOLD, npc_id=npc_id, threshold=threshold)

    def reset(self) -> None:
        self._values.clear()

    def snapshot(self) -> AffinitySnapshot:
        return AffinitySnapshot(values=dict(self._values))

    @staticmethod
    def validate_snapshot(snapshot: AffinitySnapshot) -> None:
        for npc_id, value in snapshot.values.items():
            if not MIN_AFFINITY <= value <= MAX_AFFINITY:
                raise InvariantViolation(f"Affinity for {npc_id} out of range: {value}")

    def restore(self, snapshot: AffinitySnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._values = dict(snapshot.values)
