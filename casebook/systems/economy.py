"""
Action point economy.

A bounded counter of spendable points. It answers "can I afford n?" and
performs spends; it does not know which actions cost what. Cost tables
live in EngineConfig and are applied by the flow orchestrator.

Invariant: 0 <= current <= max, for every sequence of operations.
"""

import logging

from ..errors import InvariantViolation
from ..state.event_bus import EventBus, EventType
from ..state.schema import EconomySnapshot

logger = logging.getLogger(__name__)


class ActionEconomy:
    """
    Spendable action points with edge-triggered warnings.

    Low and critical warnings fire once when a spend crosses the
    threshold, and re-arm when points climb back above it.
    """

    def __init__(
        self,
        bus: EventBus,
        max_points: int = 20,
        starting: int | None = None,
        low_threshold: int = 5,
        critical_threshold: int = 2,
    ):
        if max_points <= 0:
            raise InvariantViolation(f"max_points must be positive, got {max_points}")
        self._bus = bus
        self._max = max_points
        self._current = max_points if starting is None else starting
        if not 0 <= self._current <= self._max:
            raise InvariantViolation(f"starting points {self._current} outside [0, {self._max}]")
        self.low_threshold = low_threshold
        self.critical_threshold = critical_threshold
        self._warned_low = self._current <= low_threshold
        self._warned_critical = self._current <= critical_threshold

    @classmethod
    def from_config(cls, bus: EventBus, config) -> "ActionEconomy":
        return cls(
            bus,
            max_points=config.max_action_points,
            starting=config.starting_action_points,
            low_threshold=config.low_threshold,
            critical_threshold=config.critical_threshold,
        )

    @property
    def current(self) -> int:
        return self._current

    @property
    def max(self) -> int:
        return self._max

    @property
    def is_exhausted(self) -> bool:
        return self._current == 0

    @property
    def is_low(self) -> bool:
        return self._current <= self.low_threshold

    @property
    def is_critical(self) -> bool:
        return self._current <= self.critical_threshold

    @property
    def percentage(self) -> float:
        return self._current / self._max

    def has_enough(self, amount: int) -> bool:
        """Pure affordability query."""
        return self._current >= amount

    # ─── Mutation ────────────────────────────────────────────────

    def consume(self, amount: int) -> bool:
        """
        Spend points.

        Args:
            amount: Points to spend, must be positive

        Returns:
            False (no mutation) if fewer than amount points remain

        Raises:
            InvariantViolation: If amount is not positive
        """
        if amount <= 0:
            logger.error(f"Refusing to consume non-positive amount {amount}")
            raise InvariantViolation(f"consume requires a positive amount, got {amount}")

        if self._current < amount:
            logger.debug(f"Insufficient points: need {amount}, have {self._current}")
            return False

        self._current -= amount
        self._bus.emit(EventType.ACTION_POINTS_CHANGED, current=self._current, max=self._max)
        self._bus.emit(EventType.ACTION_POINTS_CONSUMED, amount=amount, remaining=self._current)
        self._check_warnings()

        if self._current == 0:
            logger.info("Action points exhausted")
            self._bus.emit(EventType.ACTION_POINTS_EXHAUSTED)
        return True

    def recover(self, amount: int) -> int:
        """
        Regain points, clamped to max.

        Returns:
            Points actually recovered

        Raises:
            InvariantViolation: If amount is not positive
        """
        if amount <= 0:
            logger.error(f"Refusing to recover non-positive amount {amount}")
            raise InvariantViolation(f"recover requires a positive amount, got {amount}")

        before = self._current
        self._current = min(self._max, self._current + amount)
        gained = self._current - before
        self._rearm_warnings()
        if gained:
            self._bus.emit(EventType.ACTION_POINTS_CHANGED, current=self._current, max=self._max)
            self._bus.emit(EventType.ACTION_POINTS_RECOVERED, amount=gained, current=self._current)
        return gained

    def reset(self) -> None:
        """Refill to max. Used at chapter boundaries."""
        changed = self._current != self._max
        self._current = self._max
        self._rearm_warnings()
        if changed:
            self._bus.emit(EventType.ACTION_POINTS_CHANGED, current=self._current, max=self._max)

    def set_max(self, new_max: int, refill: bool = False) -> None:
        """Change the cap. Current is clamped (or refilled) to stay in range."""
        if new_max <= 0:
            raise InvariantViolation(f"max must be positive, got {new_max}")
        self._max = new_max
        self._current = new_max if refill else min(self._current, new_max)
        self._rearm_warnings()
        self._bus.emit(EventType.ACTION_POINTS_CHANGED, current=self._current, max=self._max)

    def increase_max(self, amount: int) -> None:
        """Raise the cap and grant the same number of points."""
        if amount <= 0:
            raise InvariantViolation(f"increase_max requires a positive amount, got {amount}")
        self._max += amount
        self._current += amount
        self._rearm_warnings()
        self._bus.emit(EventType.ACTION_POINTS_CHANGED, current=self._current, max=self._max)

    def _check_warnings(self) -> None:
        if self._current <= self.critical_threshold and not self._warned_critical:
            self._warned_critical = True
            self._warned_low = True
            self._bus.emit(EventType.ACTION_POINTS_CRITICAL, current=self._current)
        elif self._current <= self.low_threshold and not self._warned_low:
            self._warned_low = True
            self._bus.emit(EventType.ACTION_POINTS_LOW, current=self._current)

    def _rearm_warnings(self) -> None:
        if self._current > self.low_threshold:
            self._warned_low = False
        if self._current > self.critical_threshold:
            self._warned_critical = False

    # ─── Persistence ─────────────────────────────────────────────

    def snapshot(self) -> EconomySnapshot:
        return EconomySnapshot(
            current=self._current,
            max=self._max,
            warned_low=self._warned_low,
            warned_critical=self._warned_critical,
        )

    @staticmethod
    def validate_snapshot(snapshot: EconomySnapshot) -> None:
        if snapshot.max <= 0:
            raise InvariantViolation(f"Saved max points must be positive, got {snapshot.max}")
        if not 0 <= snapshot.current <= snapshot.max:
            raise InvariantViolation(
                f"Saved points {snapshot.current} outside [0, {snapshot.max}]"
            )

    def restore(self, snapshot: EconomySnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._current = snapshot.current
        self._max = snapshot.max
        self._warned_low = snapshot.warned_low
        self._warned_critical = snapshot.warned_critical
