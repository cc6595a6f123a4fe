"""
Scenario content: clues, characters, dialogue graphs, locations, chapters.

Content is read-only at runtime. Components look things up here and keep
their own mutable state elsewhere.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError, model_validator

from ..errors import ContentError
from .schema import (
    CharacterRole,
    ClueCategory,
    ClueImportance,
    Emotion,
    TimeSlot,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_SCENARIO_PATH = DATA_DIR / "manor.yaml"


# -----------------------------------------------------------------------------
# Ledger catalog
# -----------------------------------------------------------------------------

class Clue(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    category: ClueCategory = ClueCategory.EVIDENCE
    importance: ClueImportance = ClueImportance.MINOR
    related_chapter: str | None = None
    location_found: str | None = None
    hint: str | None = None
    related_clues: list[str] = Field(default_factory=list)
    related_characters: list[str] = Field(default_factory=list)


class CharacterProfile(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    occupation: str = ""
    alibi: str = ""
    role: CharacterRole = CharacterRole.NEUTRAL
    suspicion_level: int = Field(default=0, ge=0, le=100)


class AutoDeductionRule(BaseModel):
    """Clues that, once all discovered, produce a deduction on their own."""
    clues: list[str] = Field(min_length=1)
    text: str
    result_flag: str

    @property
    def key(self) -> str:
        return "+".join(sorted(self.clues))


# -----------------------------------------------------------------------------
# Dialogue graphs
# -----------------------------------------------------------------------------

class DialogueConditions(BaseModel):
    required_flags: list[str] = Field(default_factory=list)
    forbidden_flags: list[str] = Field(default_factory=list)
    required_chapter: str | None = None
    required_time_slot: TimeSlot | None = None


class DialogueLine(BaseModel):
    speaker: str
    text: str
    emotion: Emotion = Emotion.NONE
    sound: str | None = None
    flag_to_set: str | None = None


class DialogueChoice(BaseModel):
    text: str
    required_flags: list[str] = Field(default_factory=list)
    forbidden_flags: list[str] = Field(default_factory=list)
    flag_to_set: str | None = None
    affinity_delta: int = 0
    next_node_id: str | None = None


class DialogueNode(BaseModel):
    id: str
    conditions: DialogueConditions = Field(default_factory=DialogueConditions)
    lines: list[DialogueLine] = Field(default_factory=list)
    choices: list[DialogueChoice] = Field(default_factory=list)
    next_node_id: str | None = None


class NPCDialogue(BaseModel):
    """One NPC's conversation graph. Cycles are allowed."""
    npc_id: str
    name: str = ""
    default_greeting: str = "Hello."
    persona: str = ""
    nodes: list[DialogueNode] = Field(default_factory=list)

    _index: dict[str, DialogueNode] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._index = {node.id: node for node in self.nodes}

    def node(self, node_id: str) -> DialogueNode | None:
        return self._index.get(node_id)


# -----------------------------------------------------------------------------
# Locations and chapters
# -----------------------------------------------------------------------------

class Location(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    initially_unlocked: bool = True
    # None uses the configured move cost
    move_cost: int | None = Field(default=None, ge=0)
    time_restrictions: list[TimeSlot] = Field(default_factory=list)
    required_flags: list[str] = Field(default_factory=list)
    forbidden_flags: list[str] = Field(default_factory=list)
    chapter_restrictions: list[str] = Field(default_factory=list)
    npcs_present: list[str] = Field(default_factory=list)
    clues_available: list[str] = Field(default_factory=list)


class ChapterConfig(BaseModel):
    id: str
    title: str = ""
    required_clues: list[str] = Field(default_factory=list)
    # Completion also needs this many committed actions (0 disables)
    min_actions: int = Field(default=0, ge=0)


# -----------------------------------------------------------------------------
# Scenario
# -----------------------------------------------------------------------------

class Scenario(BaseModel):
    """Complete content bundle for one mystery."""
    id: str
    title: str = ""
    culprit_id: str
    start_location: str
    chapters: list[ChapterConfig] = Field(min_length=1)
    clues: list[Clue] = Field(default_factory=list)
    characters: list[CharacterProfile] = Field(default_factory=list)
    dialogues: list[NPCDialogue] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)
    auto_deductions: list[AutoDeductionRule] = Field(default_factory=list)

    _clues: dict[str, Clue] = PrivateAttr(default_factory=dict)
    _characters: dict[str, CharacterProfile] = PrivateAttr(default_factory=dict)
    _dialogues: dict[str, NPCDialogue] = PrivateAttr(default_factory=dict)
    _locations: dict[str, Location] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_references(self) -> "Scenario":
        location_ids = {loc.id for loc in self.locations}
        if self.locations and self.start_location not in location_ids:
            raise ValueError(f"start_location '{self.start_location}' is not a location")
        chapter_ids = [c.id for c in self.chapters]
        if len(set(chapter_ids)) != len(chapter_ids):
            raise ValueError("chapter ids must be unique")
        return self

    def model_post_init(self, __context) -> None:
        self._clues = {c.id: c for c in self.clues}
        self._characters = {c.id: c for c in self.characters}
        self._dialogues = {d.npc_id: d for d in self.dialogues}
        self._locations = {loc.id: loc for loc in self.locations}

    @property
    def chapter_ids(self) -> list[str]:
        return [c.id for c in self.chapters]

    def chapter(self, chapter_id: str) -> ChapterConfig | None:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    def clue(self, clue_id: str) -> Clue | None:
        return self._clues.get(clue_id)

    def character(self, character_id: str) -> CharacterProfile | None:
        return self._characters.get(character_id)

    def dialogue(self, npc_id: str) -> NPCDialogue | None:
        return self._dialogues.get(npc_id)

    def location(self, location_id: str) -> Location | None:
        return self._locations.get(location_id)


# -----------------------------------------------------------------------------
# Loading
# -----------------------------------------------------------------------------

def load_scenario(path: Path | str) -> Scenario:
    """
    Load a scenario from a YAML or JSON file.

    Raises:
        ContentError: If the file is missing, unparsable, or fails validation
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ContentError(str(path), str(e)) from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ContentError(str(path), f"parse error: {e}") from e

    if not isinstance(raw, dict):
        raise ContentError(str(path), "top level must be a mapping")

    try:
        scenario = Scenario.model_validate(raw)
    except ValidationError as e:
        raise ContentError(str(path), str(e)) from e

    logger.info(
        f"Loaded scenario '{scenario.id}': {len(scenario.clues)} clues, "
        f"{len(scenario.dialogues)} dialogue graphs, {len(scenario.locations)} locations"
    )
    return scenario


def default_scenario() -> Scenario:
    """The bundled manor mystery."""
    return load_scenario(DEFAULT_SCENARIO_PATH)
