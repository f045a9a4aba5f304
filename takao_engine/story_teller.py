"""Turn orchestration for Takao Engine.

One call to ``StoryTeller.generate_story_action`` produces one turn:

    FETCH_UNITS -> SELECT_ACTION -> SNAPSHOT_BEFORE -> APPLY_EFFECT
        -> SNAPSHOT_AFTER/DIFF -> LOG_CHANGES -> PERSIST_UNITS -> PERSIST_DIARY

Turns never interleave: the caller awaits each one before starting the next.
A failed effect mutates nothing and saves no units, but the turn is still
written to the diary with ``effect_applied=False`` so turn numbers derived
from the diary stay gapless.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from takao_core import (
    LAST_ACTION_TURN,
    ActionCatalog,
    ActionTemplate,
    ConfigurationError,
    DataManager,
    DiaryEntry,
    EngineConfig,
    ExecutedAction,
    TurnSequenceError,
)
from takao_core.logging import get_logger, turn_logger

from .action_processor import EffectResult, RandomSource
from .action_selector import ActionSelector
from .stat_tracker import (
    compare_snapshots,
    format_stat_changes,
    group_changes_by_unit,
    summarize_changes,
    take_snapshot,
)
from .turn_ledger import TurnLedger
from .unit_controller import UnitController

logger = get_logger("engine.story_teller")


class StoryTeller:
    """Composes selection, effects and persistence into turns.

    Usage:
        teller = StoryTeller(units, data, catalog, config, rng=random.Random(1))
        executed = await teller.generate_story_action()
    """

    def __init__(
        self,
        unit_controller: UnitController,
        data_manager: DataManager,
        catalog: ActionCatalog,
        config: Optional[EngineConfig] = None,
        rng: Optional[RandomSource] = None,
        ledger: Optional[TurnLedger] = None,
    ):
        self.unit_controller = unit_controller
        self.data_manager = data_manager
        self.catalog = catalog
        self.config = config if config is not None else EngineConfig()
        self.selector = ActionSelector(rng, self.config)
        self.processor = self.selector.processor
        self.ledger = ledger if ledger is not None else TurnLedger(data_manager)
        self._story_history: list[str] = []

    def templates_for(self, bucket: Optional[str] = None) -> list[ActionTemplate]:
        """Candidate templates: one bucket, or the whole catalog.

        Raises:
            ConfigurationError: If the bucket does not exist
        """
        if bucket is None:
            return self.catalog.all_templates()
        try:
            return self.catalog.bucket(bucket)
        except KeyError as e:
            raise ConfigurationError(
                f"Unknown action bucket '{bucket}' (have: {', '.join(self.catalog.buckets)})"
            ) from e

    async def generate_story_action(
        self,
        turn: Optional[int] = None,
        bucket: Optional[str] = None,
    ) -> ExecutedAction:
        """Run one complete turn.

        Args:
            turn: Turn number; defaults to the ledger's next turn
            bucket: Restrict candidates to one catalog bucket

        Returns:
            The executed action, flagged if its effects could not be applied

        Raises:
            TurnSequenceError: If ``turn`` does not follow the last recorded turn
            PersistenceError: If units or the diary cannot be written
        """
        if turn is None:
            turn = self.ledger.next_turn_number
        elif turn <= self.ledger.last_turn_number:
            raise TurnSequenceError(
                f"Turn {turn} does not follow last recorded turn {self.ledger.last_turn_number}"
            )

        log = turn_logger(logger, turn)

        # FETCH_UNITS
        units = await self.unit_controller.get_unit_state()
        templates = self.templates_for(bucket)

        # SELECT_ACTION
        if self.config.decision_delay_seconds > 0:
            await asyncio.sleep(self.config.decision_delay_seconds)
        selection = self.selector.select(
            units, templates, turn, fallback=self.catalog.all_templates()
        )
        executed = selection.executed

        # SNAPSHOT_BEFORE
        before = take_snapshot(units)

        # APPLY_EFFECT
        if selection.template is not None:
            result = self.processor.execute_action_effect(
                selection.template, selection.actor, selection.target, units
            )
        else:
            result = EffectResult.ok()

        if not result.success:
            log.error(
                f"Effect of '{executed.action.type}' by "
                f"{executed.action.player} failed: {result.reason}"
            )
            executed = executed.model_copy(
                update={"effect_applied": False, "failure_reason": result.reason}
            )
            self._record_story(executed)
            self.ledger.append(DiaryEntry.from_executed(executed))
            return executed

        if selection.actor is not None:
            selection.actor.set_property(LAST_ACTION_TURN, turn)

        # SNAPSHOT_AFTER / DIFF
        after = take_snapshot(units)
        names = {unit.id: unit.name for unit in units}
        changes = compare_snapshots(before, after, names)

        # LOG_CHANGES
        if changes:
            log.info(f"Stat changes for {executed.action.type} by {executed.action.player}:")
            for unit_id, unit_changes in group_changes_by_unit(changes).items():
                formatted = ", ".join(format_stat_changes(unit_changes))
                log.info(f"  {names.get(unit_id, unit_id)} ({unit_id}): {formatted}")

        self._record_story(executed)

        # PERSIST_UNITS
        self.data_manager.save_units(self.unit_controller.get_units())

        # PERSIST_DIARY
        self.ledger.append(
            DiaryEntry.from_executed(executed, changes, summarize_changes(changes))
        )
        return executed

    def _record_story(self, executed: ExecutedAction) -> None:
        action = executed.action
        line = action.description or f"{action.type} action by {action.player}"
        self._story_history.append(f"Turn {executed.turn}: {line}")

    def get_diary(self) -> list[DiaryEntry]:
        """Diary entries written during this session."""
        return self.ledger.entries()

    def get_story_history(self) -> list[str]:
        return list(self._story_history)

    def get_latest_story(self) -> Optional[str]:
        return self._story_history[-1] if self._story_history else None
