"""Stat snapshots for Takao Engine.

Captures unit property values around an action and reports what changed.

Notes:
- Snapshots are deep copies; later mutation never reaches a taken snapshot.
- Only properties present in the *before* snapshot are compared. A property
  an effect introduces is not reported, so snapshot before applying effects.
- The ``last_action_turn`` bookkeeping property is never reported.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Iterable, Mapping, Optional

from takao_core import LAST_ACTION_TURN, StatChange, Unit

Snapshot = dict[str, dict[str, Any]]

IGNORED_PROPERTIES = frozenset({LAST_ACTION_TURN})


def take_snapshot(units: Iterable[Unit]) -> Snapshot:
    """Capture ``{unit_id: {property: current value}}`` for every unit."""
    return {unit.id: unit.current_values() for unit in units}


def compare_snapshots(
    before: Mapping[str, Mapping[str, Any]],
    after: Mapping[str, Mapping[str, Any]],
    unit_names: Optional[Mapping[str, str]] = None,
) -> list[StatChange]:
    """Diff two snapshots.

    Args:
        before: Snapshot taken before the action
        after: Snapshot taken after the action
        unit_names: Optional ``{unit_id: name}`` to label the changes

    Returns:
        Changes ordered by unit, then property, as they appear in ``after``
    """
    names = unit_names or {}
    changes: list[StatChange] = []

    for unit_id, after_props in after.items():
        before_props = before.get(unit_id)
        if before_props is None:
            continue

        for prop_name, new_value in after_props.items():
            if prop_name in IGNORED_PROPERTIES or prop_name not in before_props:
                continue

            old_value = before_props[prop_name]
            if _values_equal(old_value, new_value):
                continue

            changes.append(
                StatChange(
                    unit_id=unit_id,
                    unit_name=names.get(unit_id),
                    property=prop_name,
                    old_value=copy.deepcopy(old_value),
                    new_value=copy.deepcopy(new_value),
                )
            )

    return changes


def group_changes_by_unit(changes: Iterable[StatChange]) -> dict[str, list[StatChange]]:
    """Group changes by unit ID, keeping first-seen unit order."""
    grouped: dict[str, list[StatChange]] = {}
    for change in changes:
        grouped.setdefault(change.unit_id, []).append(change)
    return grouped


def format_stat_changes(changes: Iterable[StatChange]) -> list[str]:
    """Render changes as ``"health: 20 -> 10"`` lines."""
    return [
        f"{change.property}: {_format_value(change.old_value)} -> {_format_value(change.new_value)}"
        for change in changes
    ]


def summarize_changes(changes: Iterable[StatChange]) -> list[str]:
    """One line per unit: ``"Aria: health: 20 -> 10, mana: 5 -> 3"``."""
    summaries = []
    for unit_id, unit_changes in group_changes_by_unit(changes).items():
        label = unit_changes[0].unit_name or unit_id
        summaries.append(f"{label}: {', '.join(format_stat_changes(unit_changes))}")
    return summaries


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _values_equal(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if isinstance(a, (dict, list)) and isinstance(b, (dict, list)):
        return json.dumps(a, sort_keys=True, default=str) == json.dumps(b, sort_keys=True, default=str)
    return a == b
