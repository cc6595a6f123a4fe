"""
Save slot storage.

Separates persistence from the engine for testability. Stores hold
SaveGame models; turning them into live state is GameContext's job.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from ..errors import InvariantViolation
from .schema import SaveGame

logger = logging.getLogger(__name__)


@runtime_checkable
class SaveStore(Protocol):
    """
    Abstract storage interface for saves.

    Implementations:
    - JsonSaveStore: File-based persistence (production)
    - MemorySaveStore: In-memory storage (testing)
    """

    def save(self, slot: str, game: SaveGame) -> None:
        """Persist a save under a slot name."""
        ...

    def load(self, slot: str) -> SaveGame | None:
        """Load a slot. Returns None if not found."""
        ...

    def delete(self, slot: str) -> bool:
        """Delete a slot. Returns True if deleted."""
        ...

    def list_all(self) -> list[dict]:
        """List all slots with metadata."""
        ...

    def exists(self, slot: str) -> bool:
        """Check if a slot exists."""
        ...


def _summary(slot: str, game: SaveGame) -> dict:
    return {
        "slot": slot,
        "scenario_id": game.scenario_id,
        "chapter": game.authority.chapter,
        "clues": len(game.ledger.discovered_clues),
        "saved_at": game.saved_at,
    }


class JsonSaveStore:
    """
    File-based save storage using JSON.

    Features:
    - Automatic backup on save
    - Newest-first slot listing
    """

    def __init__(self, saves_dir: Path | str = "saves"):
        self.saves_dir = Path(saves_dir)
        self.saves_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        return self.saves_dir / f"{slot}.json"

    def save(self, slot: str, game: SaveGame) -> None:
        """Save to JSON file with backup."""
        save_file = self._path(slot)

        # Backup previous save
        if save_file.exists():
            backup = save_file.with_suffix(".json.bak")
            backup.write_text(save_file.read_text(encoding="utf-8"), encoding="utf-8")

        save_file.write_text(game.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Saved slot '{slot}' to {save_file}")

    def load(self, slot: str) -> SaveGame | None:
        """
        Load a slot.

        Raises:
            InvariantViolation: If the file exists but is not a valid save
        """
        save_file = self._path(slot)
        if not save_file.exists():
            return None

        try:
            data = json.loads(save_file.read_text(encoding="utf-8"))
            return SaveGame.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Corrupt save in slot '{slot}': {e}")
            raise InvariantViolation(f"Save slot '{slot}' is corrupt") from e

    def delete(self, slot: str) -> bool:
        """Delete save file."""
        save_file = self._path(slot)

        if save_file.exists():
            save_file.unlink()
            return True

        return False

    def list_all(self) -> list[dict]:
        """
        List all slots sorted by modification time.

        Returns list of dicts with: slot, scenario_id, chapter, clues, saved_at
        """
        slots = []

        for f in sorted(
            self.saves_dir.glob("*.json"),
            key=lambda x: x.stat().st_mtime,
            reverse=True,
        ):
            if f.name.startswith("."):
                continue
            try:
                game = SaveGame.model_validate(json.loads(f.read_text(encoding="utf-8")))
            except (json.JSONDecodeError, ValidationError):
                continue
            slots.append(_summary(f.stem, game))

        return slots

    def exists(self, slot: str) -> bool:
        """Check if save file exists."""
        return self._path(slot).exists()


class MemorySaveStore:
    """
    In-memory save storage for testing.

    No file I/O - all data lives in memory.
    """

    def __init__(self):
        self.saves: dict[str, SaveGame] = {}

    def save(self, slot: str, game: SaveGame) -> None:
        """Store a deep copy so later mutation can't leak in."""
        self.saves[slot] = game.model_copy(deep=True)

    def load(self, slot: str) -> SaveGame | None:
        game = self.saves.get(slot)
        return game.model_copy(deep=True) if game else None

    def delete(self, slot: str) -> bool:
        if slot in self.saves:
            del self.saves[slot]
            return True
        return False

    def list_all(self) -> list[dict]:
        slots = [_summary(slot, game) for slot, game in self.saves.items()]
        slots.sort(key=lambda s: s["saved_at"] or datetime.min, reverse=True)
        return slots

    def exists(self, slot: str) -> bool:
        return slot in self.saves
