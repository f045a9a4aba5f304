"""Takao Core - data model and persistence boundary for the Takao engine.

Models:
- Unit, UnitProperty - units and their current/base property values

Actions (immutable catalog + turn records):
- ActionTemplate, ActionCatalog
- ComparisonRequirement, OpaqueRequirement, ComparisonOperator
- EffectSpec, EffectOperation, EffectTarget, StaticValue, RandomValue
- ResolvedAction, ExecutedAction, DiaryEntry, StatChange

Persistence & Configuration:
- DataManager - JSON/YAML files in a data directory
- EngineConfig, load_config

Errors:
- TakaoError, ConfigurationError, PersistenceError, TurnSequenceError

ARCHITECTURAL PRINCIPLES:
1. Templates are loaded once and never mutated
2. Diary entries are append-only with strictly increasing turns
3. Malformed requirements disqualify, they never crash selection
4. Effect failures are values, not exceptions
"""

# ============================================================================
# Models
# ============================================================================

from .models import (
    Unit,
    UnitProperty,
    is_unit_alive,
    format_unit_label,
    LAST_ACTION_TURN,
    STATUS,
    STATUS_ALIVE,
    STATUS_DEAD,
)

# ============================================================================
# Actions
# ============================================================================

from .actions import (
    ComparisonOperator,
    ComparisonRequirement,
    OpaqueRequirement,
    Requirement,
    EffectOperation,
    EffectTarget,
    StaticValue,
    RandomValue,
    EffectSpec,
    ActionTemplate,
    ActionCatalog,
    DEFAULT_BUCKET,
    ResolvedAction,
    ExecutedAction,
    StatChange,
    DiaryEntry,
)

# ============================================================================
# Persistence & Configuration
# ============================================================================

from .data_manager import DataManager
from .config import EngineConfig, load_config, resolve_data_dir

# ============================================================================
# Errors
# ============================================================================

from .errors import (
    TakaoError,
    ConfigurationError,
    PersistenceError,
    TurnSequenceError,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "Unit",
    "UnitProperty",
    "is_unit_alive",
    "format_unit_label",
    "LAST_ACTION_TURN",
    "STATUS",
    "STATUS_ALIVE",
    "STATUS_DEAD",
    # Actions
    "ComparisonOperator",
    "ComparisonRequirement",
    "OpaqueRequirement",
    "Requirement",
    "EffectOperation",
    "EffectTarget",
    "StaticValue",
    "RandomValue",
    "EffectSpec",
    "ActionTemplate",
    "ActionCatalog",
    "DEFAULT_BUCKET",
    "ResolvedAction",
    "ExecutedAction",
    "StatChange",
    "DiaryEntry",
    # Persistence & Configuration
    "DataManager",
    "EngineConfig",
    "load_config",
    "resolve_data_dir",
    # Errors
    "TakaoError",
    "ConfigurationError",
    "PersistenceError",
    "TurnSequenceError",
]
