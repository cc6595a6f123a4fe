"""
Dialogue graph traversal.

One conversation at a time. A session walks an NPC's node graph:

    IDLE -> (start) -> DISPLAYING_LINE -> (advance) -> DISPLAYING_LINE
         -> (advance past last line, choices) -> AWAITING_CHOICE
         -> (select) -> DISPLAYING_LINE (next node) -> ... -> IDLE

Graphs may cycle. Line flags and choice flags both go through
StateAuthority.add_flag, so the flag store stays monotonic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..state.event_bus import EventBus, EventType
from ..state.schema import DialogueSnapshot, GamePhase
from ..state.schemas.action import ActionKind, ActionResult, RefusalCode
from .validation import conditions_met

if TYPE_CHECKING:
    from ..state.authority import StateAuthority
    from ..state.content import (
        DialogueChoice,
        DialogueLine,
        DialogueNode,
        NPCDialogue,
        Scenario,
    )
    from .affinity import AffinityTracker

logger = logging.getLogger(__name__)

START_NODE = "start"

# Consecutive line-less nodes followed before giving up on a graph
MAX_SILENT_HOPS = 32


class DialogueState(str, Enum):
    IDLE = "idle"
    DISPLAYING_LINE = "displaying_line"
    AWAITING_CHOICE = "awaiting_choice"
    AWAITING_REPLY = "awaiting_reply"  # free-form text is being generated


@dataclass
class DialogueSession:
    """Transient traversal state. Exists only while phase is DIALOGUE."""
    npc_id: str
    node_id: str
    line_index: int = 0
    awaiting_choice: bool = False
    awaiting_reply: bool = False
    presented: list["DialogueChoice"] = field(default_factory=list)
    silent_hops: int = 0


def talked_to_flag(npc_id: str, chapter: str) -> str:
    return f"talked_to_{npc_id}_{chapter}"


class DialogueEngine:
    """Walks per-NPC dialogue graphs. Reads the catalog, never mutates it."""

    def __init__(
        self,
        scenario: "Scenario",
        authority: "StateAuthority",
        affinity: "AffinityTracker",
        bus: EventBus,
    ):
        self._scenario = scenario
        self._authority = authority
        self._affinity = affinity
        self._bus = bus
        self._session: DialogueSession | None = None
        self._history: list[str] = []

    # ─── Queries ─────────────────────────────────────────────────

    @property
    def session(self) -> DialogueSession | None:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def state(self) -> DialogueState:
        if self._session is None:
            return DialogueState.IDLE
        if self._session.awaiting_reply:
            return DialogueState.AWAITING_REPLY
        if self._session.awaiting_choice:
            return DialogueState.AWAITING_CHOICE
        return DialogueState.DISPLAYING_LINE

    @property
    def current_npc(self) -> str | None:
        return self._session.npc_id if self._session else None

    @property
    def current_line(self) -> "DialogueLine | None":
        node = self._current_node()
        if node is None or self._session.awaiting_choice:
            return None
        if 0 <= self._session.line_index < len(node.lines):
            return node.lines[self._session.line_index]
        return None

    @property
    def presented_choices(self) -> list["DialogueChoice"]:
        if self._session is None or not self._session.awaiting_choice:
            return []
        return list(self._session.presented)

    @property
    def history(self) -> list[str]:
        return list(self._history)

    def has_played(self, npc_id: str, node_id: str) -> bool:
        return f"{npc_id}:{node_id}" in self._history

    def available_choices(self, node: "DialogueNode") -> list["DialogueChoice"]:
        """Choices whose flag conditions currently pass."""
        flags = self._authority.flags
        return [
            c for c in node.choices
            if all(f in flags for f in c.required_flags)
            and not any(f in flags for f in c.forbidden_flags)
        ]

    def can_enter(self, node: "DialogueNode") -> bool:
        return conditions_met(
            node.conditions,
            flags=self._authority.flags,
            chapter=self._authority.chapter,
            time_slot=self._authority.time_slot,
        )

    def check_start(self, npc_id: str, node_id: str = START_NODE) -> ActionResult:
        """
        Pure pre-check for start(). Nothing is mutated or emitted.

        The orchestrator runs this before charging for a conversation.
        """
        if self._session is not None:
            return ActionResult.refused(
                ActionKind.TALK,
                RefusalCode.DIALOGUE_ACTIVE,
                f"Already talking to {self._session.npc_id}.",
            )
        graph = self._scenario.dialogue(npc_id)
        if graph is None:
            return ActionResult.refused(
                ActionKind.TALK, RefusalCode.UNKNOWN_TARGET, f"There is no one called {npc_id}."
            )
        node = graph.node(node_id)
        if node is None or not self.can_enter(node):
            return ActionResult.refused(
                ActionKind.TALK,
                RefusalCode.UNAVAILABLE,
                f"{graph.name or npc_id} has nothing new to say.",
                greeting=graph.default_greeting,
            )
        return ActionResult.accepted(ActionKind.TALK, npc_id=npc_id, node_id=node_id)

    # ─── Session Control ─────────────────────────────────────────

    def start(self, npc_id: str, node_id: str = START_NODE) -> ActionResult:
        """
        Open a conversation.

        Refused if a session is active or the NPC is unknown. If the start
        node is missing or its conditions fail, the NPC's default greeting
        is emitted instead and no session is created.
        """
        check = self.check_start(npc_id, node_id)
        if not check.success:
            if check.code == RefusalCode.UNAVAILABLE:
                logger.info(f"No enterable node '{node_id}' for {npc_id}; default greeting")
                self._bus.emit(
                    EventType.DEFAULT_GREETING,
                    npc_id=npc_id,
                    text=check.payload.get("greeting", ""),
                )
            return check

        graph = self._scenario.dialogue(npc_id)
        node = graph.node(node_id)
        self._session = DialogueSession(npc_id=npc_id, node_id=node_id)
        self._authority.set_phase(GamePhase.DIALOGUE)
        self._authority.add_flag(talked_to_flag(npc_id, self._authority.chapter))
        self._record(npc_id, node_id)
        logger.info(f"Dialogue started with {npc_id} at {node_id}")
        self._bus.emit(
            EventType.DIALOGUE_STARTED,
            npc_id=npc_id,
            node_id=node_id,
            name=graph.name or npc_id,
        )
        self._enter_node(node)
        return check

    def advance(self) -> bool:
        """
        Move to the next line, or past the end of the node.

        No-op with a warning when idle or waiting on a choice or reply.
        """
        if self._session is None:
            logger.warning("advance() called with no active dialogue")
            return False
        if self._session.awaiting_choice or self._session.awaiting_reply:
            logger.warning(f"advance() ignored while {self.state.value}")
            return False

        node = self._current_node()
        if node is None:
            self.end()
            return True

        self._session.line_index += 1
        if self._session.line_index < len(node.lines):
            self._display_line(node)
        else:
            self._finish_node(node)
        return True

    def skip(self) -> bool:
        """Jump past the remaining lines of the current node, keeping their flags."""
        if self._session is None or self._session.awaiting_choice or self._session.awaiting_reply:
            return False
        node = self._current_node()
        if node is None:
            self.end()
            return True
        for line in node.lines[self._session.line_index + 1:]:
            if line.flag_to_set:
                self._authority.add_flag(line.flag_to_set)
        self._session.line_index = len(node.lines)
        self._finish_node(node)
        return True

    def present_choices(self) -> list["DialogueChoice"]:
        """
        Offer the current node's available choices.

        Ends the dialogue instead when no choice survives filtering.
        """
        node = self._current_node()
        if node is None:
            return []
        choices = self.available_choices(node)
        if not choices:
            logger.info(f"No available choices at {self._session.node_id}; ending dialogue")
            self.end()
            return []

        self._session.awaiting_choice = True
        self._session.presented = choices
        self._session.silent_hops = 0
        self._bus.emit(
            EventType.CHOICES_PRESENTED,
            npc_id=self._session.npc_id,
            node_id=self._session.node_id,
            choices=[c.text for c in choices],
        )
        return choices

    def select_choice(self, index: int) -> bool:
        """
        Pick one of the presented choices by position.

        Applies the choice's flag and affinity delta, then follows its
        next node.
        """
        if self._session is None or not self._session.awaiting_choice:
            logger.warning("select_choice() called while not awaiting a choice")
            return False
        if not 0 <= index < len(self._session.presented):
            logger.warning(
                f"Choice index {index} out of range (0..{len(self._session.presented) - 1})"
            )
            return False

        choice = self._session.presented[index]
        npc_id = self._session.npc_id
        self._session.awaiting_choice = False
        self._session.presented = []

        if choice.flag_to_set:
            self._authority.add_flag(choice.flag_to_set)
        if choice.affinity_delta:
            self._affinity.change(npc_id, choice.affinity_delta)

        self._bus.emit(
            EventType.CHOICE_SELECTED,
            npc_id=npc_id,
            index=index,
            text=choice.text,
            next_node_id=choice.next_node_id,
        )
        self._goto(choice.next_node_id)
        return True

    def end(self) -> bool:
        """
        Close the conversation and return to exploration. Safe to call
        at any time; a second call does nothing.
        """
        if self._session is None:
            return False
        npc_id = self._session.npc_id
        self._session = None
        self._authority.set_phase(GamePhase.EXPLORATION)
        logger.info(f"Dialogue with {npc_id} ended")
        self._bus.emit(EventType.DIALOGUE_ENDED, npc_id=npc_id)
        return True

    # ─── Free-form Input ─────────────────────────────────────────

    def begin_freeform(self) -> str | None:
        """
        Suspend scripted traversal while an unscripted reply is produced.

        Returns:
            The NPC id, or None if there is no session to talk into
        """
        if self._session is None or self._session.awaiting_reply:
            return None
        self._session.awaiting_reply = True
        return self._session.npc_id

    def complete_freeform(self, npc_id: str, player_text: str, reply: str) -> bool:
        """Display a generated reply and resume the session's previous wait state."""
        if self._session is None or self._session.npc_id != npc_id:
            logger.info(f"Dropping free-form reply for {npc_id}: session closed")
            return False
        self._session.awaiting_reply = False
        self._bus.emit(
            EventType.FREEFORM_REPLY,
            npc_id=npc_id,
            player_text=player_text,
            text=reply,
        )
        return True

    # ─── Traversal ───────────────────────────────────────────────

    def _current_node(self) -> "DialogueNode | None":
        if self._session is None:
            return None
        graph = self._scenario.dialogue(self._session.npc_id)
        return graph.node(self._session.node_id) if graph else None

    def _graph(self) -> "NPCDialogue | None":
        return self._scenario.dialogue(self._session.npc_id) if self._session else None

    def _enter_node(self, node: "DialogueNode") -> None:
        if node.lines:
            self._session.silent_hops = 0
            self._display_line(node)
            return
        self._session.silent_hops += 1
        if self._session.silent_hops > MAX_SILENT_HOPS:
            logger.warning(f"Dialogue for {self._session.npc_id} loops without lines; ending")
            self.end()
            return
        self._finish_node(node)

    def _display_line(self, node: "DialogueNode") -> None:
        line = node.lines[self._session.line_index]
        if line.flag_to_set:
            self._authority.add_flag(line.flag_to_set)
        self._bus.emit(
            EventType.DIALOGUE_LINE,
            npc_id=self._session.npc_id,
            node_id=node.id,
            index=self._session.line_index,
            speaker=line.speaker,
            text=line.text,
            emotion=line.emotion,
            sound=line.sound,
        )

    def _finish_node(self, node: "DialogueNode") -> None:
        if node.choices:
            self.present_choices()
        else:
            self._goto(node.next_node_id)

    def _goto(self, next_node_id: str | None) -> None:
        if not next_node_id:
            self.end()
            return
        graph = self._graph()
        node = graph.node(next_node_id) if graph else None
        if node is None:
            logger.warning(f"Dialogue node '{next_node_id}' not found; ending dialogue")
            self.end()
            return
        if not self.can_enter(node):
            logger.info(f"Conditions for node '{next_node_id}' not met; ending dialogue")
            self.end()
            return

        self._session.node_id = next_node_id
        self._session.line_index = 0
        self._record(self._session.npc_id, next_node_id)
        self._enter_node(node)

    def _record(self, npc_id: str, node_id: str) -> None:
        key = f"{npc_id}:{node_id}"
        if key not in self._history:
            self._history.append(key)

    # ─── Persistence ─────────────────────────────────────────────

    def reset(self) -> None:
        self._session = None
        self._history.clear()

    def snapshot(self) -> DialogueSnapshot:
        return DialogueSnapshot(history=list(self._history))

    def restore(self, snapshot: DialogueSnapshot) -> None:
        self._session = None
        self._history = list(dict.fromkeys(snapshot.history))
