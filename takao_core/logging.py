"""
Logging configuration for Takao.

Every engine logger lives under the ``takao`` namespace. Records emitted while
a turn is being played carry that turn's number (see ``turn_logger``), and the
formatter prints it as its own column so a session log reads turn by turn:

    [2025-01-01 12:00:00] INFO     [turn 3  ] [engine.story_teller ] Stat changes ...
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, MutableMapping

ROOT_LOGGER_NAME = "takao"

# Module-level logger cache
_loggers: dict[str, logging.Logger] = {}


# ============================================================================
# Custom Formatter
# ============================================================================


class TakaoFormatter(logging.Formatter):
    """Formatter with color support, a turn column and a fixed-width logger column."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(
        self,
        use_colors: bool = True,
        include_timestamp: bool = True,
    ):
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors (for terminals)
            include_timestamp: Whether to include timestamps
        """
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            timestamp = datetime.fromtimestamp(record.created, UTC).strftime(
                "%Y-%m-%d %H:%M:%S"
            )
            parts.append(f"[{timestamp}]")

        level = record.levelname
        if self.use_colors:
            color = self.COLORS.get(level, "")
            reset = self.COLORS["RESET"]
            parts.append(f"{color}{level:8}{reset}")
        else:
            parts.append(f"{level:8}")

        turn = getattr(record, "turn", None)
        parts.append(f"[turn {turn:<3}]" if turn is not None else "[session ]")

        # "takao.engine.story_teller" -> "engine.story_teller"
        name = record.name
        if name.startswith(f"{ROOT_LOGGER_NAME}."):
            name = name[len(ROOT_LOGGER_NAME) + 1:]
        parts.append(f"[{name:20}]")

        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


# ============================================================================
# Setup Functions
# ============================================================================


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
    log_filename: str = "takao.log",
) -> None:
    """Configure the ``takao`` logger tree.

    Args:
        level: Minimum log level to capture
        log_dir: Directory for log files (required if file_output=True)
        console_output: Whether to log to console
        file_output: Whether to log to file
        log_filename: Name of the log file

    Usage:
        setup_logging(level="DEBUG", log_dir="./data/logs")
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level))

    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(TakaoFormatter(use_colors=True))
        root_logger.addHandler(console_handler)

    if file_output and log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_path / log_filename,
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, level))
        file_handler.setFormatter(TakaoFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    root_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger under the ``takao`` namespace.

    Args:
        name: Logger name (will be prefixed with "takao.")

    Returns:
        Configured logger instance

    Usage:
        logger = get_logger("engine.story_teller")
        logger.info("Turn 3 complete")
    """
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        full_name = f"{ROOT_LOGGER_NAME}.{name}"
    else:
        full_name = name

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return _loggers[full_name]


# ============================================================================
# Turn Context
# ============================================================================


class TurnLoggerAdapter(logging.LoggerAdapter):
    """Attaches a turn number to every record logged through it."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("turn", self.extra["turn"])
        kwargs["extra"] = extra
        return msg, kwargs


def turn_logger(logger: logging.Logger, turn: int) -> TurnLoggerAdapter:
    """Wrap a logger so its records are tagged with ``turn``.

    Usage:
        log = turn_logger(logger, 3)
        log.info("Aria rests")   # -> "... [turn 3  ] [engine.story_teller ] Aria rests"
    """
    return TurnLoggerAdapter(logger, {"turn": turn})


# ============================================================================
# Convenience Functions
# ============================================================================


def log_error(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    error: Exception,
    context: dict | None = None,
) -> None:
    """Log an error with context.

    Args:
        logger: Logger to use
        operation: Name of the failed operation
        error: The exception
        context: Optional context dict
    """
    msg = f"FAILED {operation}: {type(error).__name__}: {error}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        msg = f"{msg} | Context: {context_str}"
    logger.error(msg, exc_info=True)


# Console-only setup so early imports have somewhere to log
setup_logging(level="INFO", console_output=True, file_output=False)
