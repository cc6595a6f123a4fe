"""
Action schemas for the flow orchestrator.

Every player-initiated request returns an ActionResult. A refusal is a
normal result with success=False and a reason the presentation layer can
show as-is; refusals never raise and never mutate state.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ActionKind(str, Enum):
    """Player-initiated actions. Values double as cost-table keys."""
    MOVE = "move"
    TALK = "talk"
    INVESTIGATE = "investigate"
    OBSERVE = "observe"
    END_OBSERVATION = "end_observation"
    REST = "rest"
    ACCUSE = "accuse"
    DEDUCE = "deduce"
    ADVANCE_DIALOGUE = "advance_dialogue"
    SELECT_CHOICE = "select_choice"
    END_DIALOGUE = "end_dialogue"
    FREEFORM = "freeform"
    ADVANCE_CHAPTER = "advance_chapter"


class RefusalCode(str, Enum):
    """Why a request was refused."""
    BUSY = "busy"                        # another action is still settling
    WRONG_PHASE = "wrong_phase"
    INSUFFICIENT_POINTS = "insufficient_points"
    UNKNOWN_TARGET = "unknown_target"
    LOCKED = "locked"
    TIME_WINDOW = "time_window"
    REQUIRED_FLAG = "required_flag"
    FORBIDDEN_FLAG = "forbidden_flag"
    CHAPTER_RESTRICTED = "chapter_restricted"
    ALREADY_THERE = "already_there"
    NOT_HERE = "not_here"
    ALREADY_DONE = "already_done"
    DIALOGUE_ACTIVE = "dialogue_active"
    NO_DIALOGUE = "no_dialogue"
    UNAVAILABLE = "unavailable"
    MISSING_CLUES = "missing_clues"
    FINAL_CHAPTER = "final_chapter"


class Restriction(BaseModel):
    """
    A restriction that currently blocks an action.

    Produced by the pure predicates in systems.validation.
    """
    code: RefusalCode
    reason: str  # "Garden is only accessible in the morning, afternoon."
    detail: str = ""


class ActionResult(BaseModel):
    """Outcome of a player request."""
    success: bool
    action: ActionKind
    reason: str = ""
    code: RefusalCode | None = None
    cost: int = 0
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def refused(
        cls,
        action: ActionKind,
        code: RefusalCode,
        reason: str,
        **payload: Any,
    ) -> "ActionResult":
        return cls(success=False, action=action, code=code, reason=reason, payload=payload)

    @classmethod
    def from_restriction(cls, action: ActionKind, restriction: Restriction) -> "ActionResult":
        return cls.refused(action, restriction.code, restriction.reason, detail=restriction.detail)

    @classmethod
    def accepted(cls, action: ActionKind, cost: int = 0, **payload: Any) -> "ActionResult":
        return cls(success=True, action=action, cost=cost, payload=payload)

    def __bool__(self) -> bool:
        return self.success
