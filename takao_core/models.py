"""Unit model for Takao.

A unit is a named bag of properties. Each property carries a current ``value``
and a ``base_value``; effects mutate the current value unless they are
permanent, in which case only the base value moves.

The engine treats this model as the Unit Store boundary: it only ever goes
through ``get_property_value``, ``set_property`` and ``set_base_property``.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field

# Bookkeeping property written by the engine after a unit acts
LAST_ACTION_TURN = "last_action_turn"
STATUS = "status"
STATUS_ALIVE = "alive"
STATUS_DEAD = "dead"


class UnitProperty(BaseModel):
    """One named stat on a unit."""

    name: str = Field(description="Property name")
    value: Any = Field(default=None, description="Current value")
    base_value: Any = Field(default=None, description="Base (permanent) value")


class Unit(BaseModel):
    """A simulated unit.

    Usage:
        unit = Unit.create("Aria", "warrior", health=100, mana=50)
        unit.get_property_value("health")  # 100
        unit.set_property("health", 80)
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique unit ID")
    name: str = Field(description="Display name")
    type: str = Field(default="unknown", description="Unit archetype (warrior, archer, ...)")
    properties: dict[str, UnitProperty] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        unit_type: str = "unknown",
        unit_id: Optional[str] = None,
        **stats: Any,
    ) -> "Unit":
        """Build a unit whose base values equal its starting values."""
        properties = {
            key: UnitProperty(name=key, value=value, base_value=copy.deepcopy(value))
            for key, value in stats.items()
        }
        if unit_id is None:
            return cls(name=name, type=unit_type, properties=properties)
        return cls(id=unit_id, name=name, type=unit_type, properties=properties)

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property_value(self, name: str) -> Any:
        """Current value of a property, or None when the unit lacks it."""
        prop = self.properties.get(name)
        return prop.value if prop is not None else None

    def get_base_value(self, name: str) -> Any:
        prop = self.properties.get(name)
        return prop.base_value if prop is not None else None

    def require_property_value(self, name: str) -> Any:
        """Current value of a property.

        Raises:
            KeyError: If the unit has no such property
        """
        if name not in self.properties:
            raise KeyError(f"Unit {self.id} has no property '{name}'")
        return self.properties[name].value

    def set_property(self, name: str, value: Any) -> None:
        """Set the current value, creating the property if needed."""
        prop = self.properties.get(name)
        if prop is None:
            self.properties[name] = UnitProperty(
                name=name, value=value, base_value=copy.deepcopy(value)
            )
        else:
            prop.value = value

    def set_base_property(self, name: str, value: Any) -> None:
        """Set the base value, creating the property if needed."""
        prop = self.properties.get(name)
        if prop is None:
            self.properties[name] = UnitProperty(
                name=name, value=copy.deepcopy(value), base_value=value
            )
        else:
            prop.base_value = value

    def current_values(self) -> dict[str, Any]:
        """Deep copy of every property's current value, in property order."""
        return {key: copy.deepcopy(prop.value) for key, prop in self.properties.items()}


def is_unit_alive(unit: Unit) -> bool:
    """A unit is alive unless it is marked dead or its numeric health is spent.

    Units that do not track health at all count as alive.
    """
    if unit.get_property_value(STATUS) == STATUS_DEAD:
        return False

    health = unit.get_property_value("health")
    if isinstance(health, (int, float)) and not isinstance(health, bool) and health <= 0:
        return False

    return True


def format_unit_label(unit: Optional[Unit], fallback_id: Optional[str] = None) -> str:
    """Human label ``"Name (id)"`` with graceful fallbacks."""
    unit_id = unit.id if unit is not None else fallback_id
    if unit is not None and unit.name:
        return f"{unit.name} ({unit_id})" if unit_id else unit.name
    if unit_id:
        return unit_id
    return "unknown unit"
