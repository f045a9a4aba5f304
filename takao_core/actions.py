"""Action, effect and turn-record models for Takao.

Action templates are loaded once from the catalog and never change afterwards.
Selecting a template for an actor produces a ``ResolvedAction``; running it
for a turn produces an ``ExecutedAction``; persisting it produces a
``DiaryEntry``.

Requirements and effects are tagged: a requirement is either a comparison or
an opaque, reserved kind that always passes; effect operations and targets
are closed enums, so an unknown operation is rejected when the catalog loads.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Discriminator, Field, Tag, field_validator


# ============================================================================
# Requirements
# ============================================================================


class ComparisonOperator(str, Enum):
    """Relational operators understood by the condition grammar."""
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    LESS = "<"
    GREATER = ">"


class ComparisonRequirement(BaseModel):
    """``property operator value`` precondition on the acting unit.

    ``operator`` and ``value`` are kept exactly as written in the catalog.
    A malformed comparison still loads; it simply never holds.
    """

    type: Literal["comparison"] = "comparison"
    property: str = Field(default="", description="Unit property to read")
    operator: str = Field(default="", description="One of <=, >=, <, >")
    value: Union[int, float, str] = Field(default="", description="Threshold")

    class Config:
        frozen = True

    def to_expression(self) -> str:
        """The requirement as a condition string, e.g. ``"health <= 30"``."""
        return f"{self.property} {self.operator} {self.value}"


class OpaqueRequirement(BaseModel):
    """Any non-comparison requirement kind. Reserved; always satisfied."""

    type: str

    class Config:
        extra = "allow"
        frozen = True


def _requirement_kind(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
        if kind is None and "operator" in value:
            return "comparison"
    else:
        kind = getattr(value, "type", None)
    return "comparison" if kind == "comparison" else "opaque"


Requirement = Annotated[
    Union[
        Annotated[ComparisonRequirement, Tag("comparison")],
        Annotated[OpaqueRequirement, Tag("opaque")],
    ],
    Discriminator(_requirement_kind),
]


# ============================================================================
# Effects
# ============================================================================


class EffectOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


class EffectTarget(str, Enum):
    """Which unit(s) an effect lands on."""
    SELF = "self"      # the acting unit
    TARGET = "target"  # the second unit picked for interaction archetypes
    ALL = "all"        # every unit in the population


class StaticValue(BaseModel):
    type: Literal["static"] = "static"
    value: float = 0

    class Config:
        frozen = True


class RandomValue(BaseModel):
    """Uniform integer in ``[min, max]``, drawn when the effect is applied."""
    type: Literal["random"] = "random"
    min: int
    max: int

    class Config:
        frozen = True


EffectValue = Union[
    float,
    Annotated[Union[StaticValue, RandomValue], Field(discriminator="type")],
]


class EffectSpec(BaseModel):
    """A single-property numeric mutation declared by an action template.

    Example:
        {"property": "health", "operation": "subtract", "value": 10,
         "target": "target"}
    """

    property: str = Field(description="Property to mutate")
    operation: EffectOperation = Field(description="How the value is combined")
    value: EffectValue = Field(default=0, description="Amount, or a value generator")
    permanent: bool = Field(default=False, description="Write the base value instead of the current one")
    target: EffectTarget = Field(default=EffectTarget.SELF)

    class Config:
        frozen = True


# ============================================================================
# Templates & Catalog
# ============================================================================


class ActionTemplate(BaseModel):
    """An action the story teller may pick for a unit.

    ``description`` may use ``{{unitName}}``, ``{{unitType}}`` and
    ``{{targetUnitName}}`` placeholders.
    """

    type: str = Field(description="Action type, e.g. 'rest' or 'attack'")
    description: str = Field(default="", description="Description template")
    requirements: list[Requirement] = Field(default_factory=list)
    effect: Optional[EffectSpec] = Field(default=None)
    effects: list[EffectSpec] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @field_validator("payload")
    @classmethod
    def validate_payload_generators(cls, v: dict[str, Any]) -> dict[str, Any]:
        """Reject value generators whose bounds or modifier are not numbers."""
        for key, value in v.items():
            kind = value.get("type") if isinstance(value, dict) else None
            if kind == "random":
                fields = ("min", "max")
            elif kind == "calculated":
                fields = ("modifier",)
            else:
                continue
            for name in fields:
                bound = value.get(name)
                if bound is not None and not _is_plain_number(bound):
                    raise ValueError(
                        f"payload '{key}': {kind} generator needs a numeric '{name}', got {bound!r}"
                    )
        return v

    @property
    def all_effects(self) -> list[EffectSpec]:
        """``effect`` followed by ``effects``; empty means the action is a no-op."""
        return ([self.effect] if self.effect is not None else []) + list(self.effects)

    @property
    def comparisons(self) -> list[ComparisonRequirement]:
        return [r for r in self.requirements if isinstance(r, ComparisonRequirement)]


def _is_plain_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


DEFAULT_BUCKET = "default"


class ActionCatalog(BaseModel):
    """Action templates grouped into named buckets (``low_health``, ``default``...)."""

    buckets: dict[str, list[ActionTemplate]] = Field(default_factory=dict)

    class Config:
        frozen = True

    @classmethod
    def from_data(cls, data: Any) -> "ActionCatalog":
        """Build a catalog from parsed catalog file contents.

        Accepted shapes:
            [template, ...]                        -> one "default" bucket
            {"actions": {bucket: [template, ...]}}
            {"actions": [template, ...]}
            {bucket: [template, ...]}
        """
        if isinstance(data, dict) and "actions" in data:
            data = data["actions"]
        if isinstance(data, list):
            data = {DEFAULT_BUCKET: data}
        if not isinstance(data, dict):
            raise ValueError(f"Unsupported action catalog shape: {type(data).__name__}")
        return cls.model_validate({"buckets": data})

    def all_templates(self) -> list[ActionTemplate]:
        """Every template, bucket by bucket, in catalog order."""
        return [template for templates in self.buckets.values() for template in templates]

    def bucket(self, name: str) -> list[ActionTemplate]:
        """Templates in one bucket.

        Raises:
            KeyError: If the bucket does not exist
        """
        if name not in self.buckets:
            raise KeyError(f"Unknown action bucket: {name}")
        return list(self.buckets[name])

    @property
    def bucket_names(self) -> list[str]:
        return list(self.buckets)

    def find(self, action_type: str) -> Optional[ActionTemplate]:
        for template in self.all_templates():
            if template.type == action_type:
                return template
        return None

    def __len__(self) -> int:
        return sum(len(templates) for templates in self.buckets.values())


# ============================================================================
# Turn Records
# ============================================================================


class ResolvedAction(BaseModel):
    """A template bound to an actor (and maybe a target) for one turn."""

    type: str
    description: str
    player: str = Field(description="Name of the acting unit")
    actor_id: Optional[str] = Field(default=None)
    target_id: Optional[str] = Field(default=None)
    payload: dict[str, Any] = Field(default_factory=dict)
    effects: list[EffectSpec] = Field(default_factory=list)


class ExecutedAction(BaseModel):
    """The action chosen for a turn, with its capture time in epoch milliseconds."""

    turn: int
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    action: ResolvedAction
    effect_applied: bool = Field(default=True)
    failure_reason: Optional[str] = Field(default=None)


class StatChange(BaseModel):
    """One property whose value differs between two snapshots of a unit."""

    unit_id: str
    unit_name: Optional[str] = None
    property: str
    old_value: Any = None
    new_value: Any = None

    class Config:
        frozen = True


class DiaryEntry(BaseModel):
    """Durable record of one turn. Append-only; never rewritten."""

    turn: int
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    action: ResolvedAction
    effect_applied: bool = Field(default=True)
    failure_reason: Optional[str] = Field(default=None)
    stat_changes: list[StatChange] = Field(default_factory=list)
    stat_changes_summary: list[str] = Field(default_factory=list)

    @classmethod
    def from_executed(
        cls,
        executed: ExecutedAction,
        stat_changes: Optional[list[StatChange]] = None,
        summary: Optional[list[str]] = None,
    ) -> "DiaryEntry":
        return cls(
            turn=executed.turn,
            action=executed.action,
            effect_applied=executed.effect_applied,
            failure_reason=executed.failure_reason,
            stat_changes=list(stat_changes or []),
            stat_changes_summary=list(summary or []),
        )
