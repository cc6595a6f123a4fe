"""
Restriction predicates for locations and dialogue.

Pure functions over (target, current state): no mutation, no events.
The flow orchestrator calls them once when guarding a request and again
right before committing it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from ..state.schema import TimeSlot
from ..state.schemas.action import RefusalCode, Restriction

if TYPE_CHECKING:
    from ..state.content import DialogueConditions, Location


def _label(location: "Location") -> str:
    return location.name or location.id


def check_time_window(location: "Location", time_slot: TimeSlot) -> Restriction | None:
    if location.time_restrictions and time_slot not in location.time_restrictions:
        allowed = ", ".join(slot.value for slot in location.time_restrictions)
        return Restriction(
            code=RefusalCode.TIME_WINDOW,
            reason=f"{_label(location)} is only accessible in the {allowed}.",
            detail=f"current time: {time_slot.value}",
        )
    return None


def check_flags(
    required: Iterable[str],
    forbidden: Iterable[str],
    flags: frozenset[str] | set[str],
    subject: str,
) -> Restriction | None:
    missing = [f for f in required if f not in flags]
    if missing:
        return Restriction(
            code=RefusalCode.REQUIRED_FLAG,
            reason=f"{subject} is not available yet.",
            detail=f"missing: {', '.join(missing)}",
        )
    blocking = [f for f in forbidden if f in flags]
    if blocking:
        return Restriction(
            code=RefusalCode.FORBIDDEN_FLAG,
            reason=f"{subject} is no longer available.",
            detail=f"blocked by: {', '.join(blocking)}",
        )
    return None


def check_chapter(location: "Location", chapter: str) -> Restriction | None:
    if location.chapter_restrictions and chapter not in location.chapter_restrictions:
        return Restriction(
            code=RefusalCode.CHAPTER_RESTRICTED,
            reason=f"{_label(location)} cannot be visited in this chapter.",
            detail=f"allowed: {', '.join(location.chapter_restrictions)}",
        )
    return None


def location_restriction(
    location: "Location",
    *,
    unlocked: bool,
    time_slot: TimeSlot,
    chapter: str,
    flags: frozenset[str] | set[str],
) -> Restriction | None:
    """
    First restriction that blocks entering a location, or None.

    Checked in order: lock, time window, flags, chapter allow-list.
    """
    if not unlocked:
        return Restriction(
            code=RefusalCode.LOCKED,
            reason=f"{_label(location)} is locked.",
        )
    return (
        check_time_window(location, time_slot)
        or check_flags(location.required_flags, location.forbidden_flags, flags, _label(location))
        or check_chapter(location, chapter)
    )


def conditions_met(
    conditions: "DialogueConditions",
    *,
    flags: frozenset[str] | set[str],
    chapter: str,
    time_slot: TimeSlot,
) -> bool:
    """Whether a dialogue node may be entered right now."""
    if any(f not in flags for f in conditions.required_flags):
        return False
    if any(f in flags for f in conditions.forbidden_flags):
        return False
    if conditions.required_chapter is not None and conditions.required_chapter != chapter:
        return False
    if conditions.required_time_slot is not None and conditions.required_time_slot != time_slot:
        return False
    return True
