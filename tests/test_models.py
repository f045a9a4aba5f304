"""Core Model Tests.

Tests for units, catalog models and the logger namespace.
"""

import unittest

from pydantic import ValidationError

from takao_core import (
    ActionTemplate,
    ComparisonRequirement,
    EffectOperation,
    OpaqueRequirement,
    RandomValue,
    Unit,
    format_unit_label,
    is_unit_alive,
)
from takao_core.logging import TakaoFormatter, get_logger, turn_logger


class UnitTest(unittest.TestCase):
    """Test the unit property boundary."""

    def test_current_and_base_values_are_separate(self) -> None:
        unit = Unit.create("Aria", "warrior", unit_id="a1", health=100)
        unit.set_property("health", 80)
        unit.set_base_property("health", 110)

        self.assertEqual(unit.get_property_value("health"), 80)
        self.assertEqual(unit.get_base_value("health"), 110)
        self.assertIsNone(unit.get_property_value("mana"))
        with self.assertRaises(KeyError):
            unit.require_property_value("mana")

    def test_is_unit_alive(self) -> None:
        self.assertTrue(is_unit_alive(Unit.create("A", health=1)))
        self.assertTrue(is_unit_alive(Unit.create("Ghostless")))
        self.assertFalse(is_unit_alive(Unit.create("B", health=0)))
        self.assertFalse(is_unit_alive(Unit.create("C", health=50, status="dead")))

    def test_format_unit_label(self) -> None:
        self.assertEqual(format_unit_label(Unit.create("Aria", unit_id="a1")), "Aria (a1)")
        self.assertEqual(format_unit_label(None, "x9"), "x9")
        self.assertEqual(format_unit_label(None), "unknown unit")


class ActionTemplateTest(unittest.TestCase):
    """Test template parsing."""

    def test_requirement_variants(self) -> None:
        parsed = ActionTemplate.model_validate({
            "type": "scout",
            "requirements": [
                {"type": "comparison", "property": "health", "operator": ">", "value": 10},
                {"property": "mana", "operator": "<=", "value": -2},
                {"type": "terrain", "kind": "forest"},
            ],
        })
        self.assertIsInstance(parsed.requirements[0], ComparisonRequirement)
        self.assertIsInstance(parsed.requirements[1], ComparisonRequirement)
        self.assertIsInstance(parsed.requirements[2], OpaqueRequirement)
        self.assertEqual(len(parsed.comparisons), 2)

    def test_effect_and_effects_combine(self) -> None:
        parsed = ActionTemplate.model_validate({
            "type": "drain",
            "effect": {"property": "mana", "operation": "divide", "value": 2},
            "effects": [{"property": "health", "operation": "add", "value": {"type": "random", "min": 1, "max": 3}}],
        })
        self.assertEqual([e.operation for e in parsed.all_effects], [EffectOperation.DIVIDE, EffectOperation.ADD])
        self.assertIsInstance(parsed.all_effects[1].value, RandomValue)

    def test_templates_are_immutable(self) -> None:
        parsed = ActionTemplate(type="rest")
        with self.assertRaises(ValidationError):
            parsed.type = "sleep"


class LoggingTest(unittest.TestCase):
    """Test the logger namespace."""

    def test_loggers_live_under_takao(self) -> None:
        self.assertEqual(get_logger("engine.test").name, "takao.engine.test")
        self.assertIs(get_logger("takao.engine.test"), get_logger("engine.test"))

    def test_turn_logger_tags_records(self) -> None:
        logger = get_logger("engine.test")
        with self.assertLogs(logger, level="INFO") as captured:
            turn_logger(logger, 3).info("Aria rests")
            logger.info("between turns")

        tagged, untagged = captured.records
        self.assertEqual(tagged.turn, 3)

        formatter = TakaoFormatter(use_colors=False, include_timestamp=False)
        self.assertEqual(formatter.format(tagged), "INFO     [turn 3  ] [engine.test         ] Aria rests")
        self.assertIn("[session ]", formatter.format(untagged))


if __name__ == "__main__":
    unittest.main()
