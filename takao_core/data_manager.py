"""File-backed persistence for Takao.

The DataManager owns one data directory:

    data/
        actions.json   (or actions.yaml / actions.yml) - action catalog, read once
        names.json     - names catalog for seeding units
        units.json     - latest unit states
        diary.json     - append-only list of diary entries
        config.json    - engine configuration (see takao_core.config)

Reads are forgiving: a missing or corrupt diary/units/names file reads as
"no data". The action catalog is the exception, since the engine has no
default catalog to fall back on. Writes raise PersistenceError and are never
retried here.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .actions import ActionCatalog, DiaryEntry
from .errors import ConfigurationError, PersistenceError
from .logging import get_logger
from .models import Unit

logger = get_logger("core.data_manager")


class DataManager:
    """Loads and saves the engine's JSON data files.

    Usage:
        data = DataManager("./data")
        catalog = data.load_actions()
        next_turn = data.get_last_turn_number() + 1
    """

    ACTIONS_FILES = ("actions.json", "actions.yaml", "actions.yml")
    NAMES_FILE = "names.json"
    UNITS_FILE = "units.json"
    DIARY_FILE = "diary.json"

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def units_path(self) -> Path:
        return self.data_dir / self.UNITS_FILE

    @property
    def diary_path(self) -> Path:
        return self.data_dir / self.DIARY_FILE

    @property
    def names_path(self) -> Path:
        return self.data_dir / self.NAMES_FILE

    def actions_path(self) -> Path | None:
        """First catalog file that exists, or None."""
        for filename in self.ACTIONS_FILES:
            candidate = self.data_dir / filename
            if candidate.exists():
                return candidate
        return None

    def ensure_data_directory(self) -> None:
        """Create the data directory if it doesn't exist."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data directory {self.data_dir}: {e}") from e

    # ------------------------------------------------------------------
    # Action catalog
    # ------------------------------------------------------------------

    def load_actions(self) -> ActionCatalog:
        """Load the action catalog.

        Returns:
            Parsed catalog

        Raises:
            ConfigurationError: If no catalog file exists or it cannot be parsed
        """
        path = self.actions_path()
        if path is None:
            raise ConfigurationError(
                f"Actions file not found in {self.data_dir} "
                f"(looked for {', '.join(self.ACTIONS_FILES)})"
            )

        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
            catalog = ActionCatalog.from_data(data)
        except (OSError, json.JSONDecodeError, yaml.YAMLError, ValidationError, ValueError) as e:
            raise ConfigurationError(f"Cannot load action catalog {path}: {e}") from e

        logger.info(
            f"Loaded {len(catalog)} action templates in "
            f"{len(catalog.bucket_names)} buckets from {path.name}"
        )
        return catalog

    # ------------------------------------------------------------------
    # Diary
    # ------------------------------------------------------------------

    def load_diary(self) -> list[DiaryEntry]:
        """Load diary entries in the order they were appended.

        A missing or corrupt diary reads as empty.
        """
        raw = self._read_json_list(self.diary_path)
        entries: list[DiaryEntry] = []
        for index, item in enumerate(raw):
            try:
                entries.append(DiaryEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed diary entry #{index}: {e.error_count()} errors")
        return entries

    def get_last_turn_number(self) -> int:
        """Turn of the most recently appended diary entry, or 0 with no diary."""
        raw = self._read_json_list(self.diary_path)
        for item in reversed(raw):
            turn = item.get("turn") if isinstance(item, dict) else None
            if isinstance(turn, int) and not isinstance(turn, bool):
                return turn
        return 0

    def save_diary_entry(self, entry: DiaryEntry) -> None:
        """Append one entry to the diary file.

        An existing diary that cannot be parsed is left untouched rather than
        overwritten, so earlier history is never lost.

        Raises:
            PersistenceError: If the diary is unreadable or cannot be written
        """
        diary = self._read_json_list(self.diary_path, strict=True)
        diary.append(entry.model_dump(mode="json"))
        self._write_json(self.diary_path, diary)

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def load_units(self) -> list[Unit]:
        """Load saved unit states; missing or corrupt files read as no units."""
        units: list[Unit] = []
        for index, item in enumerate(self._read_json_list(self.units_path)):
            try:
                units.append(Unit.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed unit #{index}: {e.error_count()} errors")
        return units

    def save_units(self, units: Iterable[Unit]) -> None:
        """Write the latest state of every unit.

        Raises:
            PersistenceError: If the units file cannot be written
        """
        self._write_json(self.units_path, [unit.model_dump(mode="json") for unit in units])

    def clear_units(self) -> None:
        """Delete the saved units file, if any."""
        try:
            self.units_path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot remove {self.units_path}: {e}") from e
        logger.info(f"Cleared saved units in {self.data_dir}")

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def load_names(self) -> dict[str, list[str]]:
        """Load the names catalog as ``{group: [name, ...]}``.

        Accepts ``{"names": {...}}`` or the bare mapping. Missing -> empty.
        """
        if not self.names_path.exists():
            logger.warning(f"{self.NAMES_FILE} not found in {self.data_dir}")
            return {}
        try:
            data = json.loads(self.names_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cannot read {self.names_path}: {e}")
            return {}

        if isinstance(data, dict) and isinstance(data.get("names"), dict):
            data = data["names"]
        if not isinstance(data, dict):
            return {}
        return {
            str(group): [str(name) for name in names]
            for group, names in data.items()
            if isinstance(names, list)
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_json_list(self, path: Path, strict: bool = False) -> list[Any]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            if strict:
                raise PersistenceError(f"Refusing to overwrite unreadable {path}: {e}") from e
            logger.warning(f"Treating unreadable {path.name} as empty: {e}")
            return []
        if not isinstance(data, list):
            if strict:
                raise PersistenceError(f"Refusing to overwrite {path}: expected a JSON list")
            logger.warning(f"Treating {path.name} as empty: expected a JSON list")
            return []
        return data

    def _write_json(self, path: Path, data: Any) -> None:
        self.ensure_data_directory()
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e
