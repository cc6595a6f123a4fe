"""
Clue ledger: what the player has found, who they have met, what they
have concluded.

Discovery and met sets only grow. Every deduction, manual or automatic,
goes through record_deduction(), which refuses unless all of its clues
are already in hand.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import InvariantViolation
from ..state.event_bus import EventBus, EventType
from ..state.schema import (
    ClueCategory,
    ClueImportance,
    Deduction,
    DeductionResult,
    LedgerSnapshot,
)

if TYPE_CHECKING:
    from ..state.authority import StateAuthority
    from ..state.content import CharacterProfile, Clue, Scenario

logger = logging.getLogger(__name__)

NO_HINT = "You have found every clue available for now."
GENERIC_HINT = "Look more closely around you."


def relation_key(a: str, b: str) -> str:
    """
    Canonical key for an unordered character pair.

    Raises:
        InvariantViolation: If either id contains the ":" separator
    """
    if ":" in a or ":" in b:
        raise InvariantViolation(f"Character ids in a relation cannot contain ':': {a!r}, {b!r}")
    first, second = sorted((a, b))
    return f"{first}:{second}"


class ClueLedger:
    """Discovery sets, deduction log and relations."""

    def __init__(self, scenario: "Scenario", authority: "StateAuthority", bus: EventBus):
        self._scenario = scenario
        self._authority = authority
        self._bus = bus

        self._discovered: list[str] = []
        self._met: list[str] = []
        self._deductions: list[Deduction] = []
        self._relations: dict[str, str] = {}
        self._fired_rules: set[str] = set()

    # ─── Clues ───────────────────────────────────────────────────

    def discover(self, clue_id: str) -> bool:
        """
        Add a clue to the discovered set.

        Sets clue_<id> and investigated_<id>, then evaluates the
        auto-deduction rules.

        Returns:
            False if the clue is unknown or already discovered
        """
        clue = self._scenario.clue(clue_id)
        if clue is None:
            logger.warning(f"Unknown clue id: {clue_id}")
            return False
        if clue_id in self._discovered:
            return False

        self._discovered.append(clue_id)
        self._authority.add_flag(f"clue_{clue_id}")
        self._authority.add_flag(f"investigated_{clue_id}")
        logger.info(f"Clue discovered: {clue_id}")
        self._bus.emit(
            EventType.CLUE_DISCOVERED,
            clue_id=clue_id,
            name=clue.name,
            importance=clue.importance,
            discovered=len(self._discovered),
            total=len(self._scenario.clues),
        )

        self._check_auto_deductions()
        return True

    def has_clue(self, clue_id: str) -> bool:
        return clue_id in self._discovered

    @property
    def discovered_clues(self) -> list[str]:
        return list(self._discovered)

    @property
    def discovered_count(self) -> int:
        return len(self._discovered)

    @property
    def total_clues(self) -> int:
        return len(self._scenario.clues)

    def get_discovered(self) -> list["Clue"]:
        return [self._scenario.clue(cid) for cid in self._discovered]

    def clues_by_category(self, category: ClueCategory) -> list["Clue"]:
        return [c for c in self.get_discovered() if c.category == category]

    def clues_by_importance(self, importance: ClueImportance) -> list["Clue"]:
        return [c for c in self.get_discovered() if c.importance == importance]

    # ─── Characters ──────────────────────────────────────────────

    def meet_character(self, character_id: str) -> bool:
        """
        Record that the player has met a character.

        Ids missing from the catalog are still registered, without the
        met_<id> flag.

        Returns:
            False if already met
        """
        if character_id in self._met:
            return False

        self._met.append(character_id)
        profile = self._scenario.character(character_id)
        if profile is None:
            logger.warning(f"Met uncatalogued character: {character_id}")
        else:
            self._authority.add_flag(f"met_{character_id}")
        self._bus.emit(
            EventType.CHARACTER_MET,
            character_id=character_id,
            known=profile is not None,
        )
        return True

    def has_met(self, character_id: str) -> bool:
        return character_id in self._met

    @property
    def met_characters(self) -> list[str]:
        return list(self._met)

    def get_character(self, character_id: str) -> "CharacterProfile | None":
        return self._scenario.character(character_id)

    # ─── Deductions ──────────────────────────────────────────────

    def record_deduction(
        self,
        required_clue_ids: list[str],
        text: str,
        result_flag: str | None = None,
        automatic: bool = False,
    ) -> DeductionResult:
        """
        Record a conclusion drawn from owned clues.

        Returns:
            DeductionResult; on failure lists the missing clues and
            nothing is mutated
        """
        missing = [cid for cid in required_clue_ids if cid not in self._discovered]
        if missing:
            return DeductionResult(
                success=False,
                message="Not enough evidence yet.",
                missing_clues=missing,
            )

        deduction = Deduction(
            text=text,
            used_clue_ids=list(required_clue_ids),
            chapter=self._authority.chapter,
            result_flag=result_flag or None,
            automatic=automatic,
        )
        self._deductions.append(deduction)
        if result_flag:
            self._authority.add_flag(result_flag)
        logger.info(f"Deduction made: {text}")
        self._bus.emit(EventType.DEDUCTION_MADE, deduction=deduction)
        return DeductionResult(success=True, message=text, deduction=deduction)

    def _check_auto_deductions(self) -> None:
        for rule in self._scenario.auto_deductions:
            if rule.key in self._fired_rules:
                continue
            if self._authority.has_flag(rule.result_flag):
                self._fired_rules.add(rule.key)
                continue
            if all(cid in self._discovered for cid in rule.clues):
                result = self.record_deduction(
                    rule.clues, rule.text, rule.result_flag, automatic=True
                )
                if result.success:
                    self._fired_rules.add(rule.key)

    @property
    def deductions(self) -> list[Deduction]:
        return list(self._deductions)

    # ─── Relations ───────────────────────────────────────────────

    def set_relation(self, a: str, b: str, label: str) -> bool:
        """
        Reveal a relation between two characters. First write wins.

        Returns:
            False if the pair already has a relation
        """
        key = relation_key(a, b)
        if key in self._relations:
            return False
        self._relations[key] = label
        self._bus.emit(EventType.RELATION_REVEALED, a=a, b=b, label=label)
        return True

    def get_relation(self, a: str, b: str) -> str | None:
        return self._relations.get(relation_key(a, b))

    @property
    def relations(self) -> dict[str, str]:
        return dict(self._relations)

    # ─── Progress ────────────────────────────────────────────────

    def completion_ratio(self) -> float:
        if not self._scenario.clues:
            return 0.0
        return len(self._discovered) / len(self._scenario.clues)

    def missing_critical_clues(self) -> list["Clue"]:
        return [
            c for c in self._scenario.clues
            if c.importance == ClueImportance.CRITICAL and c.id not in self._discovered
        ]

    def discovered_by_chapter(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for clue in self.get_discovered():
            if clue.related_chapter is not None:
                counts[clue.related_chapter] = counts.get(clue.related_chapter, 0) + 1
        return counts

    def hint(self) -> str:
        """Hint for the first undiscovered critical clue of the current chapter."""
        chapter = self._authority.chapter
        for clue in self._scenario.clues:
            if (
                clue.related_chapter == chapter
                and clue.importance == ClueImportance.CRITICAL
                and clue.id not in self._discovered
            ):
                return clue.hint or GENERIC_HINT
        return NO_HINT

    # ─── Persistence ─────────────────────────────────────────────

    def reset(self) -> None:
        self._discovered.clear()
        self._met.clear()
        self._deductions.clear()
        self._relations.clear()
        self._fired_rules.clear()

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            discovered_clues=list(self._discovered),
            met_characters=list(self._met),
            deductions=[d.model_copy() for d in self._deductions],
            relations=dict(self._relations),
            fired_rules=sorted(self._fired_rules),
        )

    def validate_snapshot(self, snapshot: LedgerSnapshot) -> None:
        discovered = set(snapshot.discovered_clues)
        for clue_id in discovered:
            if self._scenario.clue(clue_id) is None:
                raise InvariantViolation(f"Unknown clue in save: {clue_id}")
        for deduction in snapshot.deductions:
            missing = [cid for cid in deduction.used_clue_ids if cid not in discovered]
            if missing:
                raise InvariantViolation(
                    f"Saved deduction '{deduction.text}' uses undiscovered clues: {missing}"
                )
        for key in snapshot.relations:
            if key.count(":") != 1:
                raise InvariantViolation(f"Malformed relation key in save: {key}")

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self.validate_snapshot(snapshot)
        self._discovered = list(dict.fromkeys(snapshot.discovered_clues))
        self._met = list(dict.fromkeys(snapshot.met_characters))
        self._deductions = [d.model_copy() for d in snapshot.deductions]
        self._relations = dict(snapshot.relations)
        self._fired_rules = set(snapshot.fired_rules)
