"""Tests for the clue ledger and affinity tracker."""

import pytest

from casebook.errors import InvariantViolation
from casebook.state.authority import StateAuthority
from casebook.state.event_bus import EventType
from casebook.state.schema import ClueCategory, ClueImportance, Deduction, LedgerSnapshot
from casebook.systems.affinity import AffinityTracker
from casebook.systems.ledger import ClueLedger, NO_HINT, relation_key


@pytest.fixture
def authority(scenario, config, bus):
    return StateAuthority(scenario, config, bus)


@pytest.fixture
def ledger(scenario, authority, bus):
    return ClueLedger(scenario, authority, bus)


@pytest.fixture
def affinity(authority, bus):
    return AffinityTracker(authority, bus)


class TestDiscover:
    """Test clue discovery."""

    def test_discover_sets_flags(self, ledger, authority):
        """Discovery sets clue_ and investigated_ flags."""
        assert ledger.discover("torn_letter") is True
        assert authority.has_flag("clue_torn_letter")
        assert authority.has_flag("investigated_torn_letter")

    def test_rediscover_is_false(self, ledger, bus):
        """A clue can only be discovered once."""
        ledger.discover("torn_letter")
        assert ledger.discover("torn_letter") is False
        assert len(bus.get_history(EventType.CLUE_DISCOVERED)) == 1

    def test_unknown_clue_is_false(self, ledger):
        """Uncatalogued clues are rejected."""
        assert ledger.discover("nope") is False
        assert ledger.discovered_count == 0

    def test_queries(self, ledger):
        """Category/importance/chapter queries cover discovered clues."""
        ledger.discover("bloody_knife")
        ledger.discover("torn_letter")
        assert [c.id for c in ledger.clues_by_category(ClueCategory.DOCUMENT)] == ["torn_letter"]
        assert [c.id for c in ledger.clues_by_importance(ClueImportance.CRITICAL)] == ["bloody_knife"]
        assert ledger.discovered_by_chapter() == {"one": 1, "two": 1}

    def test_completion_ratio(self, ledger):
        """Completion is discovered over catalog size."""
        ledger.discover("bloody_knife")
        assert ledger.completion_ratio() == pytest.approx(0.25)

    def test_missing_critical(self, ledger):
        """Missing critical clues shrink as they are found."""
        assert {c.id for c in ledger.missing_critical_clues()} == {"bloody_knife", "kitchen_access_log"}
        ledger.discover("bloody_knife")
        assert [c.id for c in ledger.missing_critical_clues()] == ["kitchen_access_log"]


class TestAutoDeduction:
    """Auto-deduction rules fire exactly once."""

    @pytest.mark.parametrize("order", [
        ["bloody_knife", "kitchen_access_log"],
        ["kitchen_access_log", "bloody_knife"],
    ])
    def test_fires_once_either_order(self, ledger, authority, order):
        """Both critical clues in any order give one deduction."""
        for clue_id in order:
            ledger.discover(clue_id)
        for clue_id in order:
            ledger.discover(clue_id)
        auto = [d for d in ledger.deductions if d.result_flag == "deduction_suspect_chef"]
        assert len(auto) == 1
        assert auto[0].automatic is True
        assert authority.has_flag("deduction_suspect_chef")

    def test_not_fired_with_one_clue(self, ledger):
        """A partial combination does nothing."""
        ledger.discover("bloody_knife")
        assert ledger.deductions == []

    def test_skipped_if_flag_already_set(self, ledger, authority):
        """A rule whose result is already known is not recorded again."""
        authority.add_flag("deduction_suspect_chef")
        ledger.discover("bloody_knife")
        ledger.discover("kitchen_access_log")
        assert ledger.deductions == []


class TestManualDeduction:
    """record_deduction is the single gate."""

    def test_missing_clues_refused(self, ledger, bus):
        """Deductions need every clue in hand; nothing is mutated."""
        ledger.discover("bloody_knife")
        result = ledger.record_deduction(["bloody_knife", "torn_letter"], "Hmm.", "some_flag")
        assert result.success is False
        assert result.missing_clues == ["torn_letter"]
        assert ledger.deductions == []
        assert bus.get_history(EventType.DEDUCTION_MADE) == []

    def test_success_records_and_flags(self, ledger, authority):
        """A valid deduction is logged with the current chapter."""
        ledger.discover("torn_letter")
        result = ledger.record_deduction(["torn_letter"], "Blackmail.", "knows_blackmail")
        assert result.success
        assert result.deduction.chapter == "one"
        assert authority.has_flag("knows_blackmail")

    def test_log_invariant(self, ledger):
        """Every logged deduction's clues are discovered."""
        ledger.discover("bloody_knife")
        ledger.discover("kitchen_access_log")
        ledger.record_deduction(["bloody_knife"], "A weapon.")
        ledger.record_deduction(["torn_letter"], "Refused.")
        for deduction in ledger.deductions:
            assert all(ledger.has_clue(c) for c in deduction.used_clue_ids)


class TestCharacters:
    """Test meet_character."""

    def test_meet_known(self, ledger, authority):
        """Catalogued characters set met_<id>."""
        assert ledger.meet_character("butler") is True
        assert authority.has_flag("met_butler")
        assert ledger.meet_character("butler") is False

    def test_meet_unknown_registers_without_flag(self, ledger, authority, bus):
        """Unknown ids are still registered, without a flag."""
        assert ledger.meet_character("stranger") is True
        assert ledger.has_met("stranger")
        assert not authority.has_flag("met_stranger")
        assert bus.get_history(EventType.CHARACTER_MET)[0].data["known"] is False


class TestRelations:
    """Relations are symmetric and first-write-wins."""

    def test_key_is_canonical(self):
        """Pair order doesn't matter."""
        assert relation_key("maid", "butler") == relation_key("butler", "maid") == "butler:maid"

    def test_first_write_wins(self, ledger):
        """A later write for the same pair is ignored."""
        assert ledger.set_relation("chef", "maid", "sisters") is True
        assert ledger.set_relation("maid", "chef", "rivals") is False
        assert ledger.get_relation("chef", "maid") == "sisters"
        assert ledger.get_relation("maid", "chef") == "sisters"

    def test_unknown_relation(self, ledger):
        """Unset pairs return None."""
        assert ledger.get_relation("a", "b") is None

    def test_separator_in_id_rejected(self, ledger):
        """Ids containing ':' would make two pairs share a key."""
        with pytest.raises(InvariantViolation):
            relation_key("a:b", "c")
        with pytest.raises(InvariantViolation):
            ledger.set_relation("a", "b:c", "cousins")
        assert ledger.relations == {}

    def test_malformed_saved_key_rejected(self, ledger):
        with pytest.raises(InvariantViolation):
            ledger.restore(LedgerSnapshot(relations={"a:b:c": "cousins"}))


class TestHint:
    """Test hint()."""

    def test_hint_for_current_chapter(self, ledger):
        """The first missing critical clue's hint is returned."""
        assert ledger.hint() == "Check the knife block."

    def test_no_hint_when_done(self, ledger, authority):
        """Once everything critical is found there is no hint."""
        ledger.discover("bloody_knife")
        ledger.discover("kitchen_access_log")
        assert ledger.hint() == NO_HINT


class TestLedgerSnapshot:
    """Test restore validation."""

    def test_deduction_without_clue_rejected(self, ledger):
        """A save whose deductions use undiscovered clues is corrupt."""
        snap = LedgerSnapshot(
            discovered_clues=["bloody_knife"],
            deductions=[Deduction(text="x", used_clue_ids=["torn_letter"], chapter="one")],
        )
        with pytest.raises(InvariantViolation):
            ledger.restore(snap)
        assert ledger.discovered_count == 0

    def test_unknown_clue_rejected(self, ledger):
        """Unknown clue ids are refused."""
        with pytest.raises(InvariantViolation):
            ledger.restore(LedgerSnapshot(discovered_clues=["ghost_clue"]))


class TestAffinity:
    """Test affinity clamping and thresholds."""

    def test_default_zero(self, affinity):
        """Unknown NPCs start at 0."""
        assert affinity.get("butler") == 0

    def test_clamped(self, affinity):
        """Scores stay in [0, 100]."""
        assert affinity.change("butler", 150) == 100
        assert affinity.change("butler", -300) == 0

    def test_thresholds_fire_once(self, affinity, authority, bus):
        """Crossing 40/60/80 sets each flag once."""
        affinity.change("butler", 65)
        affinity.change("butler", -30)
        affinity.change("butler", 30)
        assert authority.has_flag("butler_affinity_40")
        assert authority.has_flag("butler_affinity_60")
        assert not authority.has_flag("butler_affinity_80")
        thresholds = [e.data["threshold"] for e in bus.get_history(EventType.AFFINITY_THRESHOLD)]
        assert thresholds == [40, 60]

    def test_average(self, affinity):
        """Average is over NPCs with a score."""
        assert affinity.average() == 0.0
        affinity.change("butler", 80)
        affinity.change("maid", 40)
        assert affinity.average() == 60.0
