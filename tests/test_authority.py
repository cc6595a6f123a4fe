"""Tests for the state authority: phase, chapters, flags, location, time."""

import pytest

from casebook.errors import InvariantViolation
from casebook.state.authority import StateAuthority, time_slot_for
from casebook.state.event_bus import EventType
from casebook.state.schema import GamePhase, TimeSlot
from casebook.systems.economy import ActionEconomy


@pytest.fixture
def authority(scenario, config, bus):
    return StateAuthority(scenario, config, bus)


@pytest.fixture
def economy(bus):
    return ActionEconomy(bus, max_points=20)


class TestPhase:
    """Test set_phase."""

    def test_starts_at_title(self, authority):
        """A new authority is on the title screen."""
        assert authority.phase == GamePhase.TITLE

    def test_change_emits(self, authority, bus):
        """Changing phase emits PHASE_CHANGED."""
        assert authority.set_phase(GamePhase.EXPLORATION) is True
        events = bus.get_history(EventType.PHASE_CHANGED)
        assert len(events) == 1
        assert events[0].data["new"] == GamePhase.EXPLORATION

    def test_same_phase_is_noop(self, authority, bus):
        """Setting the current phase does nothing."""
        authority.set_phase(GamePhase.EXPLORATION)
        assert authority.set_phase(GamePhase.EXPLORATION) is False
        assert len(bus.get_history(EventType.PHASE_CHANGED)) == 1


class TestChapters:
    """Test advance_chapter."""

    def test_advance(self, authority, bus):
        """Advancing moves to the next configured chapter."""
        assert authority.chapter == "one"
        assert authority.advance_chapter() is True
        assert authority.chapter == "two"
        assert bus.get_history(EventType.CHAPTER_CHANGED)[0].data["new"] == "two"

    def test_terminal_chapter_is_noop(self, authority):
        """Advancing past the last chapter fails without change."""
        authority.advance_chapter()
        authority.advance_chapter()
        assert authority.is_final_chapter
        assert authority.advance_chapter() is False
        assert authority.chapter == "three"

    def test_advance_resets_time(self, authority):
        """The time counter restarts with each chapter."""
        authority.advance_time(7)
        authority.advance_chapter()
        assert authority.time_actions_used == 0
        assert authority.time_slot == TimeSlot.MORNING

    def test_advance_keeps_time_when_configured(self, scenario, bus):
        """reset_time_on_chapter=False carries the counter over."""
        from casebook.config import EngineConfig

        authority = StateAuthority(scenario, EngineConfig(reset_time_on_chapter=False), bus)
        authority.advance_time(4)
        authority.advance_chapter()
        assert authority.time_actions_used == 4


class TestFlags:
    """Test the flag store."""

    def test_add_emits_once(self, authority, bus):
        """Only the first insertion emits."""
        assert authority.add_flag("found_key") is True
        assert authority.add_flag("found_key") is False
        assert len(bus.get_history(EventType.FLAG_ADDED)) == 1
        assert authority.has_flag("found_key")

    def test_empty_flag_ignored(self, authority):
        """Empty strings are never flags."""
        assert authority.add_flag("") is False
        assert authority.flags == frozenset()

    def test_remove(self, authority):
        """Explicit removal clears a flag."""
        authority.add_flag("temp")
        assert authority.remove_flag("temp") is True
        assert authority.remove_flag("temp") is False
        assert not authority.has_flag("temp")

    def test_has_all_and_any(self, authority):
        """Set queries over several flags."""
        authority.add_flag("a")
        assert authority.has_all(["a"])
        assert not authority.has_all(["a", "b"])
        assert authority.has_any(["b", "a"])

    def test_reset_clears_everything(self, authority):
        """reset_to_default is the one path that drops flags."""
        authority.add_flag("a")
        authority.set_phase(GamePhase.DIALOGUE)
        authority.advance_chapter()
        authority.reset_to_default()
        assert authority.flags == frozenset()
        assert authority.phase == GamePhase.TITLE
        assert authority.chapter == "one"


class TestLocation:
    """Test movement."""

    def test_move_spends_and_moves(self, authority, economy):
        """A paid move changes location and spends points."""
        assert authority.move_to_location("kitchen", 1, economy) is True
        assert authority.location == "kitchen"
        assert economy.current == 19
        assert authority.has_flag("visited_kitchen")

    def test_move_refused_is_atomic(self, authority, bus):
        """If the economy refuses, nothing changes."""
        poor = ActionEconomy(bus, max_points=20, starting=1)
        assert authority.move_to_location("vault", 2, poor) is False
        assert authority.location == "hall"
        assert poor.current == 1
        assert "vault" not in authority.visited

    def test_free_move(self, authority, economy):
        """Zero-cost moves never touch the economy."""
        authority.move_to_location("kitchen", 0, economy)
        assert economy.current == 20

    def test_location_event_marks_first_visit(self, authority, bus):
        """LOCATION_CHANGED says whether this is the first visit."""
        authority.set_location_without_cost("library")
        authority.set_location_without_cost("hall")
        authority.set_location_without_cost("library")
        events = bus.get_history(EventType.LOCATION_CHANGED)
        assert [e.data["first_visit"] for e in events] == [True, True, False]


class TestTime:
    """Test the time-of-day counter."""

    @pytest.mark.parametrize("used,expected", [
        (0, TimeSlot.MORNING),
        (2, TimeSlot.MORNING),
        (3, TimeSlot.AFTERNOON),
        (6, TimeSlot.EVENING),
        (9, TimeSlot.NIGHT),
        (12, TimeSlot.NIGHT),
    ])
    def test_slot_from_progress(self, used, expected):
        """Slots follow quarter boundaries of the counter."""
        assert time_slot_for(used, 12) == expected

    def test_time_up_fires_once(self, authority, bus):
        """TIME_UP fires when the counter fills, only once."""
        authority.advance_time(12)
        authority.advance_time(1)
        assert len(bus.get_history(EventType.TIME_UP)) == 1
        assert authority.time_actions_remaining == 0

    def test_slot_change_event(self, authority, bus):
        """Crossing a boundary emits TIME_SLOT_CHANGED."""
        authority.advance_time(3)
        events = bus.get_history(EventType.TIME_SLOT_CHANGED)
        assert events[-1].data["new"] == TimeSlot.AFTERNOON

    def test_non_positive_advance_rejected(self, authority):
        """advance_time requires a positive amount."""
        with pytest.raises(InvariantViolation):
            authority.advance_time(0)


class TestSnapshot:
    """Test snapshot/restore."""

    def test_restore_rejects_unknown_chapter(self, authority):
        """A snapshot naming a missing chapter is refused untouched."""
        authority.add_flag("keep")
        snap = authority.snapshot().model_copy(update={"chapter": "nope"})
        with pytest.raises(InvariantViolation):
            authority.restore(snap)
        assert authority.has_flag("keep")

    def test_restore_round_trip(self, authority):
        """Restored state matches the snapshot."""
        authority.add_flag("a")
        authority.set_location_without_cost("library")
        authority.advance_chapter()
        snap = authority.snapshot()
        authority.reset_to_default()
        authority.restore(snap)
        assert authority.chapter == "two"
        assert authority.location == "library"
        assert authority.has_flag("a")
