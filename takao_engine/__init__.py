"""Takao Engine - turn runtime for Takao stories.

Each turn picks a living unit, picks an action whose requirements it meets,
applies the action's effects and appends a diary entry, so a later run
resumes at the next turn number.

Core Components:
- SimulationEngine: Session lifecycle and turn limit
- StoryTeller: One full turn (select -> apply -> diff -> persist)
- ActionSelector: Actor, template and target selection
- ActionProcessor: Effect resolution (the only mutation point)
- TurnLedger: Append-only, strictly increasing turn records

Usage:
    from takao_engine import SimulationEngine

    engine = SimulationEngine("./data")
    engine.initialize()
    asyncio.run(engine.run(max_turns=10))
"""

from .engine import SimulationEngine
from .story_teller import StoryTeller
from .action_selector import ActionSelector
from .action_processor import ActionProcessor, EffectResult
from .turn_ledger import TurnLedger
from .unit_controller import UnitController
from .condition_parser import evaluate_condition, parse_condition

__version__ = "0.1.0"

__all__ = [
    "SimulationEngine",
    "StoryTeller",
    "ActionSelector",
    "ActionProcessor",
    "EffectResult",
    "TurnLedger",
    "UnitController",
    "evaluate_condition",
    "parse_condition",
]
