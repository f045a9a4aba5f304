"""Data Manager Tests.

Tests for the file-backed persistence boundary, the turn ledger and config
loading.
"""

import os
import unittest
from unittest import mock

from takao_core import (
    ActionCatalog,
    ConfigurationError,
    DataManager,
    DiaryEntry,
    EngineConfig,
    OpaqueRequirement,
    PersistenceError,
    ResolvedAction,
    TurnSequenceError,
    load_config,
)
from takao_core.config import write_default_config
from takao_engine.turn_ledger import TurnLedger

from tests.support import SAMPLE_CATALOG, TempDataDir, make_unit


def entry(turn: int) -> DiaryEntry:
    return DiaryEntry(
        turn=turn,
        action=ResolvedAction(type="rest", description="Aria rests.", player="Aria"),
    )


class DataManagerTest(unittest.TestCase):
    """Test DataManager reads and writes."""

    def setUp(self) -> None:
        self.data_dir = TempDataDir()
        self.data = DataManager(self.data_dir.path)

    def tearDown(self) -> None:
        self.data_dir.cleanup()

    def test_missing_catalog_is_fatal(self) -> None:
        with self.assertRaises(ConfigurationError):
            self.data.load_actions()

    def test_unreadable_catalog_is_fatal(self) -> None:
        self.data_dir.write("actions.json", "{not json")
        with self.assertRaises(ConfigurationError):
            self.data.load_actions()

    def test_unknown_operation_is_rejected_at_load(self) -> None:
        self.data_dir.write("actions.json", [
            {"type": "odd", "effect": {"property": "health", "operation": "explode", "value": 1}}
        ])
        with self.assertRaises(ConfigurationError):
            self.data.load_actions()

    def test_non_numeric_payload_generator_is_rejected_at_load(self) -> None:
        self.data_dir.write("actions.json", [
            {"type": "gather", "payload": {"amount": {"type": "random", "min": "lots", "max": 8}}}
        ])
        with self.assertRaises(ConfigurationError):
            self.data.load_actions()

        self.data_dir.write("actions.json", [
            {"type": "support", "payload": {"healing": {"type": "calculated", "base": "defense", "modifier": "x"}}}
        ])
        with self.assertRaises(ConfigurationError):
            self.data.load_actions()

    def test_load_bucketed_catalog(self) -> None:
        self.data_dir.write("actions.json", SAMPLE_CATALOG)
        catalog = self.data.load_actions()

        self.assertEqual(catalog.bucket_names, ["low_health", "default"])
        self.assertEqual(len(catalog), 3)
        self.assertEqual([t.type for t in catalog.all_templates()], ["search", "rest", "attack"])
        self.assertEqual([t.type for t in catalog.bucket("default")], ["rest", "attack"])
        self.assertEqual(catalog.find("attack").all_effects[0].target.value, "target")

    def test_load_yaml_catalog(self) -> None:
        self.data_dir.write(
            "actions.yaml",
            "- type: rest\n"
            "  description: '{{unitName}} rests.'\n"
            "  requirements:\n"
            "    - property: mana\n"
            "      operator: '<'\n"
            "      value: 10\n"
            "    - type: terrain\n"
            "      kind: forest\n",
        )
        catalog = self.data.load_actions()
        rest = catalog.bucket("default")[0]

        self.assertEqual(rest.comparisons[0].to_expression(), "mana < 10")
        self.assertIsInstance(rest.requirements[1], OpaqueRequirement)

    def test_bare_list_becomes_default_bucket(self) -> None:
        catalog = ActionCatalog.from_data([{"type": "rest"}])
        self.assertEqual(catalog.bucket_names, ["default"])

    def test_last_turn_number(self) -> None:
        self.assertEqual(self.data.get_last_turn_number(), 0)

        self.data.save_diary_entry(entry(1))
        self.data.save_diary_entry(entry(2))

        self.assertEqual(self.data.get_last_turn_number(), 2)
        self.assertEqual([e.turn for e in self.data.load_diary()], [1, 2])

    def test_corrupt_diary_reads_as_empty(self) -> None:
        self.data_dir.write("diary.json", "[{broken")
        self.assertEqual(self.data.load_diary(), [])
        self.assertEqual(self.data.get_last_turn_number(), 0)

    def test_corrupt_diary_is_not_overwritten(self) -> None:
        self.data_dir.write("diary.json", "[{broken")

        with self.assertRaises(PersistenceError):
            self.data.save_diary_entry(entry(1))

        self.assertEqual((self.data_dir.path / "diary.json").read_text(encoding="utf-8"), "[{broken")

        self.data_dir.write("diary.json", {"turn": 4})
        with self.assertRaises(PersistenceError):
            self.data.save_diary_entry(entry(5))

    def test_units_round_trip(self) -> None:
        aria = make_unit("Aria", health=80, mana=10)
        aria.set_base_property("mana", 12)
        self.data.save_units([aria])

        loaded = self.data.load_units()

        self.assertEqual(len(loaded), 1)
        self.assertEqual(loaded[0].id, "aria")
        self.assertEqual(loaded[0].get_property_value("health"), 80)
        self.assertEqual(loaded[0].get_base_value("mana"), 12)

        self.data.clear_units()
        self.assertEqual(self.data.load_units(), [])

    def test_names_accepts_wrapped_and_bare_shapes(self) -> None:
        self.assertEqual(self.data.load_names(), {})

        self.data_dir.write("names.json", {"names": {"warriors": ["Kenji"]}})
        self.assertEqual(self.data.load_names(), {"warriors": ["Kenji"]})

        self.data_dir.write("names.json", {"male": ["Taro"], "female": ["Hana"]})
        self.assertEqual(self.data.load_names(), {"male": ["Taro"], "female": ["Hana"]})


class TurnLedgerTest(unittest.TestCase):
    """Test turn numbering continuity."""

    def setUp(self) -> None:
        self.data_dir = TempDataDir()
        self.data = DataManager(self.data_dir.path)

    def tearDown(self) -> None:
        self.data_dir.cleanup()

    def test_resumes_after_last_persisted_turn(self) -> None:
        ledger = TurnLedger(self.data)
        self.assertEqual(ledger.next_turn_number, 1)

        ledger.append(entry(1))
        ledger.append(entry(2))

        reopened = TurnLedger(DataManager(self.data_dir.path))
        self.assertEqual(reopened.last_turn_number, 2)
        self.assertEqual(reopened.next_turn_number, 3)
        self.assertEqual(reopened.entries(), [])
        self.assertEqual([e.turn for e in reopened.history()], [1, 2])

    def test_rejects_out_of_order_turns(self) -> None:
        ledger = TurnLedger(self.data)
        ledger.append(entry(1))

        with self.assertRaises(TurnSequenceError):
            ledger.append(entry(1))

        self.assertEqual(len(self.data.load_diary()), 1)
        self.assertEqual([e.turn for e in ledger.entries()], [1])


class ConfigTest(unittest.TestCase):
    """Test config.json loading."""

    def setUp(self) -> None:
        self.data_dir = TempDataDir()

    def tearDown(self) -> None:
        self.data_dir.cleanup()

    def test_missing_file_gives_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config(self.data_dir.path)
        self.assertEqual(config, EngineConfig())
        self.assertEqual(config.max_turns_per_session, 10)
        self.assertEqual(config.cooldown_period, 1)
        self.assertIsNone(config.override_available_actions)

    def test_invalid_file_gives_defaults(self) -> None:
        self.data_dir.write("config.json", {"cooldown_period": 0})
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config(self.data_dir.path), EngineConfig())

    def test_reads_values_and_env_overrides(self) -> None:
        self.data_dir.write("config.json", {"max_turns_per_session": 3, "seed": 1})
        env = {"TAKAO_SEED": "99", "TAKAO_LOG_LEVEL": "debug"}
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_config(self.data_dir.path)
        self.assertEqual(config.max_turns_per_session, 3)
        self.assertEqual(config.seed, 99)
        self.assertEqual(config.log_level, "DEBUG")

    def test_write_default_config(self) -> None:
        path = write_default_config(self.data_dir.path / "fresh")
        self.assertTrue(path.exists())
        self.assertEqual(EngineConfig.from_json(path.read_text()), EngineConfig())


if __name__ == "__main__":
    unittest.main()
