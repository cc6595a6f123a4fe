"""Tests for engine configuration."""

import pytest
from pydantic import ValidationError

from casebook.config import (
    EngineConfig,
    get_config_path,
    load_config,
    save_config,
    set_exhaustion_policy,
)
from casebook.state.schema import GamePhase


class TestEngineConfig:
    """Test config validation and lookups."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.max_action_points == 20
        assert config.cost_of("talk") == 2
        assert config.exhaustion_policy == "advance"

    def test_partial_cost_table_filled_from_defaults(self):
        config = EngineConfig(action_costs={"move": 5})
        assert config.cost_of("move") == 5
        assert config.cost_of("talk") == 2

    def test_unknown_action_free(self):
        assert EngineConfig().cost_of("advance_dialogue") == 0

    def test_blocked_phases_default(self):
        assert GamePhase.ENDING in EngineConfig().blocked_for("move")

    def test_blocked_phases_override(self):
        config = EngineConfig(blocked_phases={"move": [GamePhase.INVESTIGATION]})
        assert config.blocked_for("move") == [GamePhase.INVESTIGATION]
        assert GamePhase.ENDING in config.blocked_for("talk")

    def test_starting_above_max(self):
        with pytest.raises(ValidationError):
            EngineConfig(max_action_points=5, starting_action_points=6)

    def test_negative_cost(self):
        with pytest.raises(ValidationError):
            EngineConfig(action_costs={"move": -1})

    def test_unknown_policy(self):
        with pytest.raises(ValidationError):
            EngineConfig(exhaustion_policy="explode")


class TestConfigFile:
    """Test load/save next to the save slots."""

    def test_missing_gives_defaults(self, tmp_path):
        assert load_config(tmp_path) == EngineConfig()

    def test_round_trip(self, tmp_path):
        config = EngineConfig(rest_recovery=3, exhaustion_policy="halt")
        assert save_config(config, tmp_path) is True
        assert load_config(tmp_path) == config

    def test_partial_file_merged(self, tmp_path):
        get_config_path(tmp_path).write_text('{"rest_recovery": 7}', encoding="utf-8")
        config = load_config(tmp_path)
        assert config.rest_recovery == 7
        assert config.max_action_points == 20

    def test_partial_cost_table_keeps_defaults(self, tmp_path):
        get_config_path(tmp_path).write_text('{"action_costs": {"talk": 3}}', encoding="utf-8")
        config = load_config(tmp_path)
        assert config.cost_of("talk") == 3
        assert config.cost_of("move") == 1
        assert config.cost_of("investigate") == 1

    def test_partial_blocked_phases_merged(self, tmp_path):
        get_config_path(tmp_path).write_text(
            '{"blocked_phases": {"rest": ["dialogue"]}}', encoding="utf-8"
        )
        config = load_config(tmp_path)
        assert config.blocked_for("rest") == [GamePhase.DIALOGUE]
        assert config.blocked_for("move") == [GamePhase.CUTSCENE, GamePhase.ENDING]

    def test_corrupt_file_ignored(self, tmp_path):
        get_config_path(tmp_path).write_text("{not json", encoding="utf-8")
        assert load_config(tmp_path) == EngineConfig()

    def test_invalid_values_ignored(self, tmp_path):
        get_config_path(tmp_path).write_text('{"max_action_points": -4}', encoding="utf-8")
        assert load_config(tmp_path) == EngineConfig()

    def test_set_policy(self, tmp_path):
        set_exhaustion_policy("halt", tmp_path)
        assert load_config(tmp_path).exhaustion_policy == "halt"
