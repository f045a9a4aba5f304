"""Action selection for Takao Engine.

Picks the unit a turn's story is about, the action it takes and, for
interaction archetypes, the unit it acts on. All randomness goes through an
injected random source.

Selection policy:
1. Only living units act; units still cooling down sit out unless every
   living unit is cooling down.
2. The allowlist (``override_available_actions``) narrows the templates.
3. Templates whose comparison requirements fail for the actor are dropped.
   If that drops everything, the fallback pool (normally the whole catalog,
   ignoring both the bucket and the allowlist) is used instead.
4. One template and, when its type calls for it, one distinct living target
   are drawn uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError

from takao_core import (
    LAST_ACTION_TURN,
    ActionTemplate,
    EngineConfig,
    ExecutedAction,
    ResolvedAction,
    Unit,
    format_unit_label,
    is_unit_alive,
)
from takao_core.logging import get_logger, turn_logger

from .action_processor import ActionProcessor, RandomSource
from .condition_parser import evaluate_requirement

logger = get_logger("engine.action_selector")

# Action types that act on a second unit
INTERACTION_ARCHETYPES = frozenset({"interact", "attack", "support", "trade", "inspire"})

GENERIC_TARGET_PHRASE = "another unit"

PLACEHOLDERS = ("unitName", "unitType", "targetUnitName")


@dataclass
class Selection:
    """Everything chosen for one turn, before any effect is applied."""

    executed: ExecutedAction
    actor: Optional[Unit] = None
    target: Optional[Unit] = None
    template: Optional[ActionTemplate] = None


class ActionSelector:
    """Chooses an actor, an action template and an optional target.

    Usage:
        selector = ActionSelector(random.Random(42), config)
        executed = selector.select_action(units, catalog.all_templates(), turn=3)
    """

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        config: Optional[EngineConfig] = None,
        processor: Optional[ActionProcessor] = None,
    ):
        self.processor = processor if processor is not None else ActionProcessor(rng)
        self.rng: RandomSource = rng if rng is not None else self.processor.rng
        self.config = config if config is not None else EngineConfig()
        self._jinja_env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def select_action(
        self,
        units: Sequence[Unit],
        templates: Sequence[ActionTemplate],
        turn: int,
        fallback: Optional[Sequence[ActionTemplate]] = None,
    ) -> ExecutedAction:
        """Select this turn's action. Never fails to produce one."""
        return self.select(units, templates, turn, fallback).executed

    def select(
        self,
        units: Sequence[Unit],
        templates: Sequence[ActionTemplate],
        turn: int,
        fallback: Optional[Sequence[ActionTemplate]] = None,
    ) -> Selection:
        """Like ``select_action`` but also returns the chosen units and template.

        Args:
            units: Current unit population
            templates: Candidate templates (a bucket or the whole catalog)
            turn: Turn being selected for
            fallback: Pool used when no candidate's requirements hold;
                defaults to ``templates``
        """
        log = turn_logger(logger, turn)
        actor = self.choose_actor(units, turn)
        if actor is None:
            log.info("No living units, using default action")
            return Selection(executed=self.processor.default_action(None, turn))

        if not templates and not fallback:
            log.warning(f"No action templates, {actor.name} idles")
            return Selection(executed=self.processor.default_action(actor, turn), actor=actor)

        candidates = self.eligible_templates(actor, templates, fallback)
        template = self.rng.choice(candidates)
        target = self.choose_target(actor, template, units)
        target_name = target.name if target is not None else GENERIC_TARGET_PHRASE

        payload = self.processor.process_action_payload(template.payload, target)
        if target is not None:
            payload["targetUnit"] = target.id

        description = self.render_description(template.description, actor, target_name)
        if not description.strip():
            description = f"{template.type} action by {actor.name}"

        executed = ExecutedAction(
            turn=turn,
            action=ResolvedAction(
                type=template.type,
                description=description,
                player=actor.name,
                actor_id=actor.id,
                target_id=target.id if target is not None else None,
                payload=payload,
                effects=template.all_effects,
            ),
        )
        log.info(
            f"{format_unit_label(actor)} -> {template.type}"
            + (f" on {format_unit_label(target)}" if target is not None else "")
        )
        return Selection(executed=executed, actor=actor, target=target, template=template)

    # ========================================================================
    # Actor
    # ========================================================================

    def choose_actor(self, units: Sequence[Unit], turn: int) -> Optional[Unit]:
        """Pick a living unit, preferring those not cooling down."""
        alive = [unit for unit in units if is_unit_alive(unit)]
        if not alive:
            return None

        ready = [unit for unit in alive if self._is_ready(unit, turn)]
        if not ready:
            turn_logger(logger, turn).debug("Every unit is cooling down, considering all living units")
            ready = alive

        return self.rng.choice(ready)

    def _is_ready(self, unit: Unit, turn: int) -> bool:
        last_turn = unit.get_property_value(LAST_ACTION_TURN)
        if not isinstance(last_turn, int) or isinstance(last_turn, bool):
            return True
        return turn - last_turn >= self.config.cooldown_period

    # ========================================================================
    # Templates
    # ========================================================================

    def eligible_templates(
        self,
        actor: Unit,
        templates: Sequence[ActionTemplate],
        fallback: Optional[Sequence[ActionTemplate]] = None,
    ) -> list[ActionTemplate]:
        """Templates the actor may take, falling back rather than coming up empty.

        The fallback pool is used as given: neither the allowlist nor the
        requirements apply to it.
        """
        candidates = self._apply_allowlist(templates)

        eligible = [t for t in candidates if self.meets_requirements(actor, t)]
        if eligible:
            return eligible

        pool = list(fallback) if fallback else list(templates)
        logger.info(
            f"No template's requirements hold for {format_unit_label(actor)}, "
            f"falling back to all {len(pool)} templates"
        )
        return pool

    def _apply_allowlist(self, templates: Sequence[ActionTemplate]) -> list[ActionTemplate]:
        allowed = self.config.override_available_actions
        if not allowed:
            return list(templates)

        permitted = [t for t in templates if t.type in allowed]
        if not permitted:
            logger.warning(
                f"No templates match override_available_actions {allowed}, ignoring it"
            )
            return list(templates)
        return permitted

    @staticmethod
    def meets_requirements(actor: Unit, template: ActionTemplate) -> bool:
        """True when every comparison requirement holds for the actor."""
        return all(evaluate_requirement(req, actor) for req in template.comparisons)

    # ========================================================================
    # Target & description
    # ========================================================================

    def choose_target(
        self, actor: Unit, template: ActionTemplate, units: Sequence[Unit]
    ) -> Optional[Unit]:
        """A distinct living unit for interaction archetypes, else None."""
        if template.type not in INTERACTION_ARCHETYPES:
            return None

        others = [u for u in units if u.id != actor.id and is_unit_alive(u)]
        if not others:
            return None
        return self.rng.choice(others)

    def render_description(self, description: str, actor: Unit, target_name: str) -> str:
        """Fill ``{{unitName}}``, ``{{unitType}}`` and ``{{targetUnitName}}``."""
        values = {
            "unitName": actor.name,
            "unitType": actor.type,
            "targetUnitName": target_name,
        }

        if "{{" in description or "{%" in description:
            try:
                return self._jinja_env.from_string(description).render(**values)
            except TemplateError as e:
                logger.warning(f"Description template failed, falling back: {e}")

        rendered = description
        for name in PLACEHOLDERS:
            rendered = rendered.replace("{{" + name + "}}", values[name], 1)
        return rendered
