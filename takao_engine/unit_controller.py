"""Unit population for Takao Engine.

Loads the units saved by a previous session or, when there are none, seeds
a small default party named from the names catalog.
"""

from __future__ import annotations

import random
from typing import Any, Optional

from takao_core import STATUS, STATUS_ALIVE, DataManager, TakaoError, Unit
from takao_core.logging import get_logger

from .action_processor import RandomSource

logger = get_logger("engine.unit_controller")

UNKNOWN_NAME = "Unknown"

# Starting stats for a fresh session: one warrior, one archer
DEFAULT_UNITS: list[tuple[str, dict[str, Any]]] = [
    ("warrior", {"health": 100, "mana": 50, "attack": 20, "defense": 15}),
    ("archer", {"health": 70, "mana": 30, "attack": 25, "defense": 10}),
]

# Unit type -> names catalog groups to try, in order
NAME_GROUPS = {
    "warrior": ("warriors",),
    "archer": ("archers",),
    "mage": ("mages",),
    "cleric": ("clerics", "general"),
}


class UnitController:
    """Owns the live unit list for a session.

    Usage:
        controller = UnitController(data_manager)
        controller.initialize()
        units = await controller.get_unit_state()
    """

    def __init__(self, data_manager: DataManager, rng: Optional[RandomSource] = None):
        self.data_manager = data_manager
        self.rng: RandomSource = rng if rng is not None else random.Random()
        self.names_catalog: dict[str, list[str]] = {}
        self._units: list[Unit] = []
        self.initialized = False

    def initialize(self, clear_saved: bool = False) -> None:
        """Load saved units, or create the default party.

        Args:
            clear_saved: Delete the saved units file first
        """
        if clear_saved:
            self.data_manager.clear_units()

        self.names_catalog = self.data_manager.load_names()

        saved = self.data_manager.load_units()
        if saved:
            for unit in saved:
                if not unit.has_property(STATUS):
                    unit.set_property(STATUS, STATUS_ALIVE)
            self._units = saved
            logger.info(f"Loaded {len(saved)} units from saved state")
        else:
            self._units = [self.create_unit(unit_type, stats) for unit_type, stats in DEFAULT_UNITS]
            logger.info(f"Created {len(self._units)} new units")

        self.initialized = True

    def create_unit(self, unit_type: str, stats: dict[str, Any]) -> Unit:
        """Build a living unit of ``unit_type`` with a catalog name."""
        return Unit.create(
            self.random_name(unit_type),
            unit_type,
            **stats,
            status=STATUS_ALIVE,
            maxHealth=stats.get("health", 100),
            maxMana=stats.get("mana", 50),
        )

    def random_name(self, unit_type: str = "general") -> str:
        """Random name for a unit type; ``Unknown`` when the catalog is empty."""
        unit_type = unit_type.lower().rstrip("s")
        groups = NAME_GROUPS.get(unit_type, (unit_type, "general"))

        names: list[str] = []
        for group in groups:
            names = self.names_catalog.get(group, [])
            if names:
                break

        if not names:
            names = next((group for group in self.names_catalog.values() if group), [])

        if not names:
            return UNKNOWN_NAME
        return self.rng.choice(names)

    async def get_unit_state(self) -> list[Unit]:
        """The live units.

        Raises:
            TakaoError: If called before ``initialize``
        """
        if not self.initialized:
            raise TakaoError("Unit controller not initialized")
        return list(self._units)

    def get_units(self) -> list[Unit]:
        return list(self._units)
