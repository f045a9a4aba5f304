"""Takao Engine - session runtime.

The SimulationEngine wires the data directory to the turn machinery:
1. Loads config.json and the action catalog (a missing catalog is fatal)
2. Loads or seeds the unit population
3. Opens the turn ledger at the last recorded turn
4. Runs turns one at a time until the session limit, ``stop()`` or a
   stop condition

Architecture:
- Uses takao_core models and DataManager for everything on disk
- Delegates each turn to StoryTeller.generate_story_action
- Turns are awaited sequentially; nothing runs concurrently with a turn
"""

from __future__ import annotations

import asyncio
import random
from pathlib import Path
from typing import Callable, Optional

from takao_core import (
    ActionCatalog,
    DataManager,
    EngineConfig,
    ExecutedAction,
    TakaoError,
    Unit,
    load_config,
)
from takao_core.logging import get_logger, log_error, turn_logger

from .action_processor import RandomSource
from .story_teller import StoryTeller
from .turn_ledger import TurnLedger
from .unit_controller import UnitController

logger = get_logger("engine")


class SimulationEngine:
    """Turn-based simulation session over one data directory.

    Responsibilities:
    - Session lifecycle (initialize, run, pause/resume, stop)
    - Turn numbering continuity across processes
    - Session turn limit

    Usage:
        engine = SimulationEngine("./data")
        engine.initialize()
        asyncio.run(engine.run(max_turns=5))
    """

    def __init__(
        self,
        data_dir: str | Path,
        config: Optional[EngineConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        """Create an engine for a data directory.

        Args:
            data_dir: Directory holding actions.json, units.json, diary.json...
            config: Settings to use instead of the directory's config.json
            rng: Random source; defaults to ``random.Random(config.seed)``
        """
        self.data_dir = Path(data_dir)
        self.data_manager = DataManager(self.data_dir)
        self.config = config
        self.rng = rng

        self.catalog: Optional[ActionCatalog] = None
        self.unit_controller: Optional[UnitController] = None
        self.ledger: Optional[TurnLedger] = None
        self.story_teller: Optional[StoryTeller] = None

        self.is_running = False
        self.turns_this_session = 0
        self._resume = asyncio.Event()
        self._resume.set()

    def initialize(self) -> None:
        """Load configuration, catalog, units and the turn ledger.

        Raises:
            ConfigurationError: If the action catalog is missing or unreadable
            PersistenceError: If saved units must be cleared and cannot be
        """
        if self.config is None:
            self.config = load_config(self.data_dir)
        if self.rng is None:
            self.rng = random.Random(self.config.seed)

        self.catalog = self.data_manager.load_actions()

        self.unit_controller = UnitController(self.data_manager, self.rng)
        self.unit_controller.initialize(clear_saved=self.config.clear_units_on_start)

        self.ledger = TurnLedger(self.data_manager)
        self.story_teller = StoryTeller(
            self.unit_controller,
            self.data_manager,
            self.catalog,
            self.config,
            rng=self.rng,
            ledger=self.ledger,
        )

        logger.info(
            f"Initialized with {len(self.unit_controller.get_units())} units, "
            f"{len(self.catalog)} action templates, last turn {self.ledger.last_turn_number}"
        )

    def _require_initialized(self) -> StoryTeller:
        if self.story_teller is None:
            raise TakaoError("Engine not initialized; call initialize() first")
        return self.story_teller

    @property
    def last_turn_number(self) -> int:
        if self.ledger is not None:
            return self.ledger.last_turn_number
        return self.data_manager.get_last_turn_number()

    @property
    def units(self) -> list[Unit]:
        return self.unit_controller.get_units() if self.unit_controller is not None else []

    async def step(self, bucket: Optional[str] = None) -> ExecutedAction:
        """Execute one turn, numbered after the last recorded one.

        Args:
            bucket: Restrict candidates to one catalog bucket

        Returns:
            The turn's executed action
        """
        story_teller = self._require_initialized()
        turn = self.ledger.next_turn_number

        log = turn_logger(logger, turn)
        log.info("=== Turn start ===")
        executed = await story_teller.generate_story_action(turn, bucket=bucket)
        self.turns_this_session += 1

        status = "" if executed.effect_applied else f" (effect failed: {executed.failure_reason})"
        log.info(f"{executed.action.description}{status}")
        return executed

    async def run(
        self,
        max_turns: Optional[int] = None,
        bucket: Optional[str] = None,
        stop_condition: Optional[Callable[["SimulationEngine"], bool]] = None,
    ) -> list[ExecutedAction]:
        """Run turns until the session limit, ``stop()`` or ``stop_condition``.

        Args:
            max_turns: Turns to run; defaults to ``max_turns_per_session``
                unless the config says to run indefinitely
            bucket: Restrict candidates to one catalog bucket
            stop_condition: Called before each turn; True ends the session

        Returns:
            Executed actions in turn order
        """
        self._require_initialized()

        limit = max_turns
        if limit is None and not self.config.run_indefinitely:
            limit = self.config.max_turns_per_session

        self.is_running = True
        executed: list[ExecutedAction] = []
        logger.info(
            "Starting session " + (f"for up to {limit} turns" if limit is not None else "with no turn limit")
        )

        try:
            while self.is_running and (limit is None or len(executed) < limit):
                await self._resume.wait()
                if not self.is_running:
                    break

                if stop_condition is not None and stop_condition(self):
                    logger.info(f"Stop condition met after turn {self.last_turn_number}")
                    break

                executed.append(await self.step(bucket=bucket))
        except TakaoError as e:
            log_error(logger, "run", e, {"turn": self.last_turn_number + 1})
            raise
        finally:
            self.is_running = False

        logger.info(f"Session ended at turn {self.last_turn_number} ({len(executed)} turns)")
        return executed

    def pause(self) -> None:
        """Pause before the next turn."""
        self._resume.clear()
        logger.info("Simulation paused")

    def resume(self) -> None:
        """Resume a paused session."""
        self._resume.set()
        logger.info("Simulation resumed")

    def stop(self) -> None:
        """Stop after the current turn."""
        self.is_running = False
        self._resume.set()
        logger.info("Stopping simulation...")

    @property
    def is_paused(self) -> bool:
        return not self._resume.is_set()
