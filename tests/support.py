"""Shared fixtures for the Takao test suite."""

import json
import tempfile
from pathlib import Path
from typing import Any, Sequence

from takao_core import ActionTemplate, Unit


class ScriptedRandom:
    """Deterministic stand-in for ``random.Random``.

    ``choice`` pops the next scripted index (default 0); ``randint`` pops the
    next scripted value (default: the lower bound).
    """

    def __init__(self, choices: Sequence[int] = (), ints: Sequence[int] = ()):
        self.choices = list(choices)
        self.ints = list(ints)
        self.choice_calls: list[list[Any]] = []

    def choice(self, seq: Sequence[Any]) -> Any:
        self.choice_calls.append(list(seq))
        index = self.choices.pop(0) if self.choices else 0
        return seq[index]

    def randint(self, a: int, b: int) -> int:
        value = self.ints.pop(0) if self.ints else a
        if not a <= value <= b:
            raise AssertionError(f"scripted {value} outside [{a}, {b}]")
        return value


def make_unit(name: str, unit_type: str = "warrior", unit_id: str | None = None, **stats: Any) -> Unit:
    return Unit.create(name, unit_type, unit_id=unit_id or name.lower(), **stats)


def template(data: dict) -> ActionTemplate:
    return ActionTemplate.model_validate(data)


class TempDataDir:
    """A throwaway data directory, usable as a context manager."""

    def __init__(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name)

    def write(self, filename: str, data: Any) -> Path:
        target = self.path / filename
        if isinstance(data, str):
            target.write_text(data, encoding="utf-8")
        else:
            target.write_text(json.dumps(data), encoding="utf-8")
        return target

    def read(self, filename: str) -> Any:
        return json.loads((self.path / filename).read_text(encoding="utf-8"))

    def cleanup(self) -> None:
        self._tmp.cleanup()

    def __enter__(self) -> "TempDataDir":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.cleanup()


SAMPLE_CATALOG = {
    "actions": {
        "low_health": [
            {
                "type": "search",
                "description": "{{unitName}} the {{unitType}} searches for healing.",
                "requirements": [
                    {"type": "comparison", "property": "health", "operator": "<=", "value": 30}
                ],
                "effect": {"property": "health", "operation": "add", "value": 10},
            }
        ],
        "default": [
            {
                "type": "rest",
                "description": "{{unitName}} the {{unitType}} takes a moment to rest.",
                "effect": {"property": "mana", "operation": "add", "value": 5},
            },
            {
                "type": "attack",
                "description": "{{unitName}} attacks {{targetUnitName}}.",
                "effect": {
                    "property": "health",
                    "operation": "subtract",
                    "value": 15,
                    "target": "target",
                },
            },
        ],
    }
}
