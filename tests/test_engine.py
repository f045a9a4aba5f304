"""Simulation Engine Tests.

Tests for session lifecycle, the unit controller and the CLI.
"""

import asyncio
import unittest

from typer.testing import CliRunner

from takao_core import ConfigurationError, DataManager, EngineConfig, TakaoError
from takao_core.logging import setup_logging
from takao_engine.__main__ import app
from takao_engine.engine import SimulationEngine
from takao_engine.unit_controller import UNKNOWN_NAME, UnitController

from tests.support import SAMPLE_CATALOG, ScriptedRandom, TempDataDir, make_unit


NAMES = {"names": {"warriors": ["Kenji"], "archers": ["Aiko"], "general": ["Rowan"]}}


class SimulationEngineTest(unittest.IsolatedAsyncioTestCase):
    """Test the session lifecycle."""

    async def asyncSetUp(self) -> None:
        self.data_dir = TempDataDir()
        self.data_dir.write("actions.json", SAMPLE_CATALOG)
        self.data_dir.write("names.json", NAMES)

    async def asyncTearDown(self) -> None:
        self.data_dir.cleanup()

    def _engine(self, **config) -> SimulationEngine:
        engine = SimulationEngine(self.data_dir.path, config=EngineConfig(**config), rng=ScriptedRandom())
        engine.initialize()
        return engine

    async def test_missing_catalog_is_fatal(self) -> None:
        (self.data_dir.path / "actions.json").unlink()
        engine = SimulationEngine(self.data_dir.path, config=EngineConfig())
        with self.assertRaises(ConfigurationError):
            engine.initialize()

    async def test_step_before_initialize_raises(self) -> None:
        with self.assertRaises(TakaoError):
            await SimulationEngine(self.data_dir.path).step()

    async def test_run_stops_at_session_limit(self) -> None:
        engine = self._engine(max_turns_per_session=3)

        executed = await engine.run()

        self.assertEqual([e.turn for e in executed], [1, 2, 3])
        self.assertEqual(engine.last_turn_number, 3)
        self.assertFalse(engine.is_running)

    async def test_new_session_resumes_turn_numbers(self) -> None:
        await self._engine().run(max_turns=2)

        executed = await self._engine().run(max_turns=2)

        self.assertEqual([e.turn for e in executed], [3, 4])
        diary = DataManager(self.data_dir.path).load_diary()
        self.assertEqual([e.turn for e in diary], [1, 2, 3, 4])

    async def test_stop_condition(self) -> None:
        engine = self._engine(run_indefinitely=True)

        executed = await engine.run(stop_condition=lambda e: e.last_turn_number >= 2)

        self.assertEqual(len(executed), 2)

    async def test_pause_and_resume(self) -> None:
        engine = self._engine()
        engine.pause()
        self.assertTrue(engine.is_paused)

        task = asyncio.create_task(engine.run(max_turns=2))
        await asyncio.sleep(0)
        self.assertEqual(engine.last_turn_number, 0)

        engine.resume()
        executed = await task

        self.assertEqual(len(executed), 2)
        self.assertFalse(engine.is_paused)

    async def test_stop_releases_paused_session(self) -> None:
        engine = self._engine()
        engine.pause()
        task = asyncio.create_task(engine.run(max_turns=5))
        await asyncio.sleep(0)

        engine.stop()

        self.assertEqual(await task, [])

    async def test_clear_units_on_start(self) -> None:
        DataManager(self.data_dir.path).save_units([make_unit("Old", health=1)])

        engine = self._engine(clear_units_on_start=True)

        self.assertEqual(sorted(u.name for u in engine.units), ["Aiko", "Kenji"])


class UnitControllerTest(unittest.IsolatedAsyncioTestCase):
    """Test unit loading and seeding."""

    async def asyncSetUp(self) -> None:
        self.data_dir = TempDataDir()
        self.data = DataManager(self.data_dir.path)

    async def asyncTearDown(self) -> None:
        self.data_dir.cleanup()

    async def test_get_unit_state_requires_initialize(self) -> None:
        with self.assertRaises(TakaoError):
            await UnitController(self.data).get_unit_state()

    async def test_seeds_default_party(self) -> None:
        self.data_dir.write("names.json", NAMES)
        controller = UnitController(self.data, ScriptedRandom())
        controller.initialize()

        warrior, archer = await controller.get_unit_state()

        self.assertEqual((warrior.name, warrior.type), ("Kenji", "warrior"))
        self.assertEqual(warrior.get_property_value("health"), 100)
        self.assertEqual(warrior.get_property_value("attack"), 20)
        self.assertEqual(warrior.get_property_value("status"), "alive")
        self.assertEqual((archer.name, archer.type), ("Aiko", "archer"))
        self.assertEqual(archer.get_property_value("health"), 70)
        self.assertEqual(archer.get_property_value("defense"), 10)

    async def test_names_fall_back(self) -> None:
        controller = UnitController(self.data, ScriptedRandom())
        controller.initialize()
        self.assertEqual({u.name for u in controller.get_units()}, {UNKNOWN_NAME})

        controller.names_catalog = {"male": ["Taro"], "female": ["Hana"]}
        self.assertEqual(controller.random_name("warrior"), "Taro")

        controller.names_catalog = {"clerics": [], "general": ["Rowan"]}
        self.assertEqual(controller.random_name("cleric"), "Rowan")

    async def test_loads_saved_units(self) -> None:
        self.data.save_units([make_unit("Aria", health=33)])
        controller = UnitController(self.data, ScriptedRandom())
        controller.initialize()

        (aria,) = await controller.get_unit_state()

        self.assertEqual(aria.get_property_value("health"), 33)
        self.assertEqual(aria.get_property_value("status"), "alive")


class CliTest(unittest.TestCase):
    """Test the takao-engine commands."""

    def setUp(self) -> None:
        self.runner = CliRunner()
        self.data_dir = TempDataDir()
        self.data_dir.write("actions.json", SAMPLE_CATALOG)
        self.data_dir.write("names.json", NAMES)

    def tearDown(self) -> None:
        setup_logging(level="INFO", console_output=True, file_output=False)
        self.data_dir.cleanup()

    def test_run_status_and_diary(self) -> None:
        path = str(self.data_dir.path)

        result = self.runner.invoke(app, ["run", path, "--max-turns", "2", "--seed", "7"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(DataManager(path).get_last_turn_number(), 2)

        result = self.runner.invoke(app, ["step", path, "--bucket", "default"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Turn 3", result.output)

        result = self.runner.invoke(app, ["status", path])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Kenji", result.output)

        result = self.runner.invoke(app, ["diary", path, "--last", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Diary (3 entries)", result.output)

    def test_missing_data_dir_exits_nonzero(self) -> None:
        result = self.runner.invoke(app, ["run", str(self.data_dir.path / "nope")])
        self.assertEqual(result.exit_code, 1)

    def test_unknown_bucket_exits_nonzero(self) -> None:
        result = self.runner.invoke(app, ["step", str(self.data_dir.path), "--bucket", "nope"])
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
