"""
Engine configuration.

Cost tables, thresholds and the exhaustion policy live here rather than
inside the components, so the economy never decides which actions are
affordable. Stored as JSON next to the save slots.
"""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .state.schema import GamePhase

logger = logging.getLogger(__name__)


DEFAULT_ACTION_COSTS: dict[str, int] = {
    "move": 1,
    "talk": 2,
    "investigate": 1,
    "observe": 0,
    "rest": 0,
    "accuse": 0,
    "deduce": 0,
}

DEFAULT_BLOCKED_PHASES: list[GamePhase] = [GamePhase.CUTSCENE, GamePhase.ENDING]


class EngineConfig(BaseModel):
    """Tunable rules for a play session."""
    max_action_points: int = Field(default=20, gt=0)
    starting_action_points: int = Field(default=20, ge=0)
    low_threshold: int = Field(default=5, ge=0)
    critical_threshold: int = Field(default=2, ge=0)
    rest_recovery: int = Field(default=5, gt=0)
    action_costs: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_ACTION_COSTS))

    # Discrete per-chapter action counter that drives the time of day
    max_time_actions: int = Field(default=12, gt=0)
    reset_time_on_chapter: bool = True

    # "advance": an empty pool forces the next chapter and refills it.
    # "halt": an empty pool only leaves zero-cost actions available.
    exhaustion_policy: Literal["advance", "halt"] = "advance"

    observation_seconds: int = Field(default=60, ge=0)
    blocked_phases: dict[str, list[GamePhase]] = Field(default_factory=dict)
    affinity_thresholds: list[int] = Field(default_factory=lambda: [40, 60, 80])

    @field_validator("action_costs", mode="before")
    @classmethod
    def _fill_missing_costs(cls, value):
        # Kinds left out keep their default cost
        if isinstance(value, dict):
            return {**DEFAULT_ACTION_COSTS, **value}
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> "EngineConfig":
        if self.starting_action_points > self.max_action_points:
            raise ValueError("starting_action_points cannot exceed max_action_points")
        if self.critical_threshold > self.low_threshold:
            raise ValueError("critical_threshold cannot exceed low_threshold")
        if any(cost < 0 for cost in self.action_costs.values()):
            raise ValueError("action costs must be non-negative")
        return self

    def cost_of(self, action: str) -> int:
        """Cost for an action kind. Unknown kinds are free."""
        return self.action_costs.get(action, 0)

    def blocked_for(self, action: str) -> list[GamePhase]:
        """Phases in which an action kind is refused."""
        return self.blocked_phases.get(action, DEFAULT_BLOCKED_PHASES)


DEFAULT_CONFIG = EngineConfig()


def get_config_path(saves_dir: Path | str = "saves") -> Path:
    """Get path to config file."""
    return Path(saves_dir) / ".casebook_config.json"


def load_config(saves_dir: Path | str = "saves") -> EngineConfig:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(saves_dir)

    if not path.exists():
        return DEFAULT_CONFIG.model_copy(deep=True)

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        # Merge with defaults to handle missing keys
        merged = DEFAULT_CONFIG.model_dump()
        for key, value in saved.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        return EngineConfig.model_validate(merged)
    except (json.JSONDecodeError, IOError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return DEFAULT_CONFIG.model_copy(deep=True)


def save_config(config: EngineConfig, saves_dir: Path | str = "saves") -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(saves_dir)

    # Ensure directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(config.model_dump_json(indent=2))
        return True
    except IOError:
        return False


def set_exhaustion_policy(policy: str, saves_dir: Path | str = "saves") -> None:
    """Save exhaustion policy preference."""
    config = load_config(saves_dir)
    config = config.model_copy(update={"exhaustion_policy": policy})
    save_config(EngineConfig.model_validate(config.model_dump()), saves_dir)
