"""Engine configuration for Takao.

Configuration lives in ``<data_dir>/config.json``. A missing or invalid file is
not an error: the engine falls back to defaults and says so in the log.
A handful of settings can be overridden from the environment (``.env`` files
are honoured by the CLI through python-dotenv).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .logging import get_logger

logger = get_logger("core.config")

CONFIG_FILE = "config.json"

ENV_DATA_DIR = "TAKAO_DATA_DIR"
ENV_LOG_LEVEL = "TAKAO_LOG_LEVEL"
ENV_SEED = "TAKAO_SEED"


class EngineConfig(BaseModel):
    """Session and selection settings for the engine."""

    max_turns_per_session: int = Field(
        default=10, ge=1, description="Turns to run before the session stops"
    )
    run_indefinitely: bool = Field(
        default=False, description="Ignore max_turns_per_session and keep running"
    )
    override_available_actions: Optional[list[str]] = Field(
        default=None, description="Allowlist of action types; None allows all"
    )
    cooldown_period: int = Field(
        default=1, ge=1, description="Turns a unit waits between actions"
    )
    clear_units_on_start: bool = Field(
        default=False, description="Discard saved units before initializing"
    )
    decision_delay_seconds: float = Field(
        default=0.0, ge=0.0, description="Simulated decision latency per turn"
    )
    seed: Optional[int] = Field(
        default=None, description="Seed for the selection random source"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def to_json(self) -> str:
        """Serialize config to JSON string."""
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "EngineConfig":
        """Deserialize config from JSON string."""
        return cls.model_validate_json(json_str)


def load_config(data_dir: str | Path) -> EngineConfig:
    """Load ``config.json`` from a data directory.

    Args:
        data_dir: Directory holding the engine's data files

    Returns:
        Parsed config, or defaults when the file is missing or invalid
    """
    config_path = Path(data_dir) / CONFIG_FILE

    if not config_path.exists():
        logger.warning(f"{CONFIG_FILE} not found in {data_dir}, using defaults")
        return apply_env_overrides(EngineConfig())

    try:
        config = EngineConfig.from_json(config_path.read_text(encoding="utf-8"))
    except (ValidationError, OSError) as e:
        logger.warning(f"Invalid {CONFIG_FILE} format, using defaults: {e}")
        config = EngineConfig()

    return apply_env_overrides(config)


def apply_env_overrides(config: EngineConfig) -> EngineConfig:
    """Overlay TAKAO_* environment variables onto a config."""
    updates: dict = {}

    level = os.environ.get(ENV_LOG_LEVEL)
    if level:
        level = level.upper()
        if level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            updates["log_level"] = level
        else:
            logger.warning(f"Ignoring {ENV_LOG_LEVEL}={level!r}")

    seed = os.environ.get(ENV_SEED)
    if seed:
        try:
            updates["seed"] = int(seed)
        except ValueError:
            logger.warning(f"Ignoring non-integer {ENV_SEED}={seed!r}")

    if not updates:
        return config
    return config.model_copy(update=updates)


def resolve_data_dir(data_dir: str | Path | None = None) -> Path:
    """Pick the data directory: explicit argument, then TAKAO_DATA_DIR, then ./data."""
    if data_dir is not None:
        return Path(data_dir)
    env_dir = os.environ.get(ENV_DATA_DIR)
    if env_dir:
        return Path(env_dir)
    return Path.cwd() / "data"


def write_default_config(data_dir: str | Path) -> Path:
    """Write a default ``config.json`` if none exists and return its path."""
    config_path = Path(data_dir) / CONFIG_FILE
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(EngineConfig().to_json(), encoding="utf-8")
        logger.info(f"Wrote default config to {config_path}")
    return config_path


__all__ = [
    "EngineConfig",
    "load_config",
    "apply_env_overrides",
    "resolve_data_dir",
    "write_default_config",
]
