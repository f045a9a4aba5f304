"""Effect resolution for Takao Engine.

The ActionProcessor turns an action's declared effects into property
mutations on units. It is the only place unit properties are changed during
a turn.

Failures are reported as ``EffectResult`` values, never raised: a missing
property or an unresolvable target leaves every unit untouched and carries a
human-readable reason back to the story teller.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, Sequence

from takao_core import (
    STATUS,
    STATUS_DEAD,
    ActionTemplate,
    EffectOperation,
    EffectSpec,
    EffectTarget,
    ExecutedAction,
    RandomValue,
    ResolvedAction,
    StaticValue,
    Unit,
)
from takao_core.logging import get_logger

logger = get_logger("engine.action_processor")

DIRECTIONS = (
    "north",
    "south",
    "east",
    "west",
    "northeast",
    "northwest",
    "southeast",
    "southwest",
)
RESOURCES = ("gold", "wood", "stone", "food", "herbs", "ore")

DEFAULT_ACTOR_ID = "default-unit"
DEFAULT_ACTOR_NAME = "DefaultUnit"
IDLE_ACTION = "idle"


class RandomSource(Protocol):
    """What the engine needs from a random number generator.

    ``random.Random`` satisfies it; tests pass scripted stand-ins.
    """

    def choice(self, seq: Sequence[Any]) -> Any: ...

    def randint(self, a: int, b: int) -> int: ...


@dataclass(frozen=True)
class EffectResult:
    """Outcome of applying one or more effects."""

    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "EffectResult":
        return cls(success=True)

    @classmethod
    def fail(cls, reason: str) -> "EffectResult":
        return cls(success=False, reason=reason)


@dataclass
class _PlannedWrite:
    unit: Unit
    property_name: str
    new_value: Any
    permanent: bool


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _tidy(value: float) -> Any:
    """Store whole floats as ints so 90.0 round-trips as 90."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class ActionProcessor:
    """Applies action effects and prepares action payloads.

    Usage:
        processor = ActionProcessor(random.Random(7))
        result = processor.apply_effect(effect, actor, target, units)
        if not result.success:
            logger.error(result.reason)
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        self.rng: RandomSource = rng if rng is not None else random.Random()

    # ========================================================================
    # Effects
    # ========================================================================

    def apply_effect(
        self,
        effect: EffectSpec,
        actor: Optional[Unit],
        target: Optional[Unit] = None,
        all_units: Iterable[Unit] = (),
    ) -> EffectResult:
        """Apply a single effect.

        Args:
            effect: Effect to apply
            actor: Acting unit (resolves ``target: self``)
            target: Second unit picked for the action, if any
            all_units: Whole population (resolves ``target: all``)

        Returns:
            EffectResult; on failure nothing was mutated
        """
        return self.execute_effects([effect], actor, target, all_units)

    def execute_action_effect(
        self,
        template: ActionTemplate,
        actor: Optional[Unit],
        target: Optional[Unit] = None,
        all_units: Iterable[Unit] = (),
    ) -> EffectResult:
        """Apply every effect a template declares, all or nothing."""
        effects = template.all_effects
        if not effects:
            logger.debug(f"No effects for action type: {template.type}")
            return EffectResult.ok()
        return self.execute_effects(effects, actor, target, all_units)

    def execute_effects(
        self,
        effects: Sequence[EffectSpec],
        actor: Optional[Unit],
        target: Optional[Unit] = None,
        all_units: Iterable[Unit] = (),
    ) -> EffectResult:
        """Validate every effect, then apply them in order.

        Effects are planned against the values they will see when applied,
        so a later effect on the same property builds on an earlier one.
        If any effect fails validation, none are applied.
        """
        population = list(all_units)
        planned: list[_PlannedWrite] = []
        pending: dict[tuple[int, str, bool], Any] = {}

        for effect in effects:
            units = self._resolve_targets(effect.target, actor, target, population)
            if units is None:
                return EffectResult.fail(
                    f"Cannot resolve '{effect.target.value}' target for effect on '{effect.property}'"
                )

            try:
                amount = self.resolve_value(effect.value)
            except ValueError as e:
                return EffectResult.fail(f"Invalid value for effect on '{effect.property}': {e}")

            for unit in units:
                if not unit.has_property(effect.property):
                    return EffectResult.fail(
                        f"Unit {unit.name} ({unit.id}) has no property '{effect.property}'"
                    )

                key = (id(unit), effect.property, effect.permanent)
                if key in pending:
                    current = pending[key]
                elif effect.permanent:
                    current = unit.get_base_value(effect.property)
                else:
                    current = unit.get_property_value(effect.property)

                if not _is_number(current):
                    return EffectResult.fail(
                        f"Property '{effect.property}' on {unit.name} is not numeric: {current!r}"
                    )

                new_value = self._compute(effect.operation, current, amount)
                if new_value is None:
                    return EffectResult.fail(
                        f"Cannot {effect.operation.value} '{effect.property}' by {amount}"
                    )

                pending[key] = new_value
                planned.append(_PlannedWrite(unit, effect.property, new_value, effect.permanent))

        for write in planned:
            self._write(write)

        return EffectResult.ok()

    def resolve_value(self, value: Any) -> Any:
        """Concrete amount for an effect value.

        Raises:
            ValueError: If a random range is inverted
        """
        if isinstance(value, StaticValue):
            return _tidy(value.value)
        if isinstance(value, RandomValue):
            if value.min > value.max:
                raise ValueError(f"random range min {value.min} > max {value.max}")
            return self.rng.randint(value.min, value.max)
        return _tidy(float(value))

    def _resolve_targets(
        self,
        kind: EffectTarget,
        actor: Optional[Unit],
        target: Optional[Unit],
        population: list[Unit],
    ) -> Optional[list[Unit]]:
        if kind is EffectTarget.SELF:
            return [actor] if actor is not None else None
        if kind is EffectTarget.TARGET:
            return [target] if target is not None else None
        if kind is EffectTarget.ALL:
            return population if population else None
        raise ValueError(f"Unhandled effect target: {kind}")

    @staticmethod
    def _compute(operation: EffectOperation, current: Any, amount: Any) -> Any:
        """New value for an operation, or None when it is undefined."""
        if operation is EffectOperation.ADD:
            return _tidy(current + amount)
        if operation is EffectOperation.SUBTRACT:
            return _tidy(max(0, current - amount))
        if operation is EffectOperation.SET:
            return _tidy(amount)
        if operation is EffectOperation.MULTIPLY:
            return max(0, round(current * amount))
        if operation is EffectOperation.DIVIDE:
            if amount == 0:
                return None
            return max(0, round(current / amount))
        raise ValueError(f"Unhandled effect operation: {operation}")

    def _write(self, write: _PlannedWrite) -> None:
        unit = write.unit
        if write.permanent:
            unit.set_base_property(write.property_name, write.new_value)
            logger.info(f"{unit.name}: base {write.property_name} -> {write.new_value}")
            return

        unit.set_property(write.property_name, write.new_value)
        logger.debug(f"{unit.name}: {write.property_name} -> {write.new_value}")

        if write.property_name == "health" and write.new_value <= 0 and unit.has_property(STATUS):
            unit.set_property(STATUS, STATUS_DEAD)
            logger.info(f"{unit.name} ({unit.id}) has died")

    # ========================================================================
    # Payloads
    # ========================================================================

    def process_action_payload(
        self,
        payload: Optional[dict[str, Any]],
        target: Optional[Unit] = None,
    ) -> dict[str, Any]:
        """Resolve value generators inside an action payload.

        Supported generators (by ``type``):
            random            -> integer in [min, max]
            random_direction  -> one of the eight compass directions
            random_resource   -> one of the gatherable resources
            calculated        -> target's ``base`` property plus ``modifier``, floor 0

        Anything else is copied through unchanged.
        """
        processed = dict(payload or {})

        for key, value in processed.items():
            kind = value.get("type") if isinstance(value, dict) else None

            if kind == "random":
                low, high = int(value.get("min", 0)), int(value.get("max", 0))
                processed[key] = self.rng.randint(min(low, high), max(low, high))
            elif kind == "random_direction":
                processed[key] = self.rng.choice(DIRECTIONS)
            elif kind == "random_resource":
                processed[key] = self.rng.choice(RESOURCES)
            elif kind == "calculated":
                modifier = value.get("modifier") or 0
                base_name = value.get("base")
                if target is not None and base_name:
                    base = target.get_property_value(base_name)
                    base = base if _is_number(base) else 0
                    processed[key] = _tidy(max(0, base + modifier))
                else:
                    processed[key] = modifier

        return processed

    # ========================================================================
    # Defaults
    # ========================================================================

    def default_action(self, unit: Optional[Unit], turn: int) -> ExecutedAction:
        """The idle action used when no real action can be chosen.

        With no unit the action is attributed to a placeholder actor, so the
        turn still produces a record.
        """
        name = unit.name if unit is not None else DEFAULT_ACTOR_NAME
        return ExecutedAction(
            turn=turn,
            action=ResolvedAction(
                type=IDLE_ACTION,
                description=f"{name} idles, doing nothing of note.",
                player=name,
                actor_id=unit.id if unit is not None else DEFAULT_ACTOR_ID,
                payload={"target": "self"},
            ),
        )
