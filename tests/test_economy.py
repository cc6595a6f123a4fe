"""Tests for the action point economy."""

import random

import pytest

from casebook.errors import InvariantViolation
from casebook.state.event_bus import EventType
from casebook.state.schema import EconomySnapshot
from casebook.systems.economy import ActionEconomy


@pytest.fixture
def economy(bus):
    return ActionEconomy(bus, max_points=20, low_threshold=5, critical_threshold=2)


class TestConsume:
    """Test spending."""

    def test_insufficient_spend_is_refused(self, economy):
        """Two spends of 2 then a spend of 17 is refused, leaving 16."""
        assert economy.consume(2) is True
        assert economy.consume(2) is True
        assert economy.consume(17) is False
        assert economy.current == 16

    def test_exact_spend_allowed(self, economy):
        """Spending everything is allowed."""
        assert economy.consume(20) is True
        assert economy.current == 0
        assert economy.is_exhausted

    @pytest.mark.parametrize("amount", [0, -3])
    def test_non_positive_amount_raises(self, economy, amount):
        """Zero or negative spends are invariant violations."""
        with pytest.raises(InvariantViolation):
            economy.consume(amount)
        assert economy.current == 20

    def test_events(self, economy, bus):
        """A spend emits changed and consumed."""
        economy.consume(3)
        changed = bus.get_history(EventType.ACTION_POINTS_CHANGED)
        consumed = bus.get_history(EventType.ACTION_POINTS_CONSUMED)
        assert changed[-1].data == {"current": 17, "max": 20}
        assert consumed[-1].data["amount"] == 3

    def test_refused_spend_emits_nothing(self, economy, bus):
        """A refused spend is silent."""
        economy.consume(25)
        assert bus.get_history() == []

    def test_has_enough_is_pure(self, economy, bus):
        """has_enough never mutates or emits."""
        assert economy.has_enough(20)
        assert not economy.has_enough(21)
        assert economy.current == 20
        assert bus.get_history() == []


class TestWarnings:
    """Low/critical warnings are edge-triggered."""

    def test_low_fires_once(self, economy, bus):
        """Crossing the low threshold warns once."""
        economy.consume(15)  # 5
        economy.consume(1)   # 4
        assert len(bus.get_history(EventType.ACTION_POINTS_LOW)) == 1

    def test_critical_fires_once(self, economy, bus):
        """Crossing the critical threshold warns once."""
        economy.consume(18)  # 2
        economy.consume(1)   # 1
        assert len(bus.get_history(EventType.ACTION_POINTS_CRITICAL)) == 1

    def test_rearm_after_recovery(self, economy, bus):
        """Recovering above the threshold re-arms the warning."""
        economy.consume(15)
        economy.recover(10)
        economy.consume(10)
        assert len(bus.get_history(EventType.ACTION_POINTS_LOW)) == 2

    def test_exhausted_only_at_zero(self, economy, bus):
        """EXHAUSTED fires exactly when points hit zero."""
        economy.consume(19)
        assert bus.get_history(EventType.ACTION_POINTS_EXHAUSTED) == []
        economy.consume(1)
        assert len(bus.get_history(EventType.ACTION_POINTS_EXHAUSTED)) == 1


class TestRecover:
    """Test recover/reset/cap changes."""

    def test_recover_clamps(self, economy):
        """Recovery never exceeds max."""
        economy.consume(3)
        assert economy.recover(10) == 3
        assert economy.current == 20

    def test_recover_requires_positive(self, economy):
        """Non-positive recovery is a violation."""
        with pytest.raises(InvariantViolation):
            economy.recover(0)

    def test_reset(self, economy):
        """reset refills to max."""
        economy.consume(11)
        economy.reset()
        assert economy.current == 20

    def test_set_max_clamps_current(self, economy):
        """Lowering the cap clamps current."""
        economy.set_max(10)
        assert economy.current == 10
        assert economy.max == 10

    def test_increase_max_grants_points(self, economy):
        """Raising the cap grants the same number of points."""
        economy.consume(5)
        economy.increase_max(5)
        assert economy.max == 25
        assert economy.current == 20


class TestInvariant:
    """0 <= current <= max across arbitrary operation sequences."""

    def test_random_sequences_stay_in_bounds(self, bus):
        """Fuzz consume/recover/reset."""
        rng = random.Random(1234)
        economy = ActionEconomy(bus, max_points=20)
        for _ in range(500):
            op = rng.choice(["consume", "recover", "reset"])
            amount = rng.randint(1, 25)
            if op == "consume":
                economy.consume(amount)
            elif op == "recover":
                economy.recover(amount)
            else:
                economy.reset()
            assert 0 <= economy.current <= economy.max


class TestSnapshot:
    """Test restore validation."""

    def test_out_of_range_snapshot_rejected(self, economy):
        """Corrupt counts are refused with no change."""
        economy.consume(4)
        with pytest.raises(InvariantViolation):
            economy.restore(EconomySnapshot(current=30, max=20))
        assert economy.current == 16

    def test_non_positive_max_rejected(self, economy):
        """A zero max is refused."""
        with pytest.raises(InvariantViolation):
            economy.restore(EconomySnapshot(current=0, max=0))

    def test_round_trip(self, economy):
        """Snapshot and restore preserve counts."""
        economy.consume(7)
        snap = economy.snapshot()
        economy.reset()
        economy.restore(snap)
        assert economy.current == 13
