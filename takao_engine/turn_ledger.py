"""Turn continuity for Takao Engine.

The ledger is the in-memory view of the diary. Turn numbers come from the
last persisted entry, so a new process resumes at ``last + 1``.
"""

from __future__ import annotations

from takao_core import DataManager, DiaryEntry, TurnSequenceError
from takao_core.logging import get_logger

logger = get_logger("engine.turn_ledger")


class TurnLedger:
    """Ordered, append-only record of completed turns."""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self._entries: list[DiaryEntry] = []
        self._last_turn = data_manager.get_last_turn_number()
        logger.debug(f"Ledger opened at turn {self._last_turn}")

    @property
    def last_turn_number(self) -> int:
        return self._last_turn

    @property
    def next_turn_number(self) -> int:
        return self._last_turn + 1

    def entries(self) -> list[DiaryEntry]:
        """Entries appended during this session, oldest first."""
        return list(self._entries)

    def history(self) -> list[DiaryEntry]:
        """Every persisted entry, including earlier sessions."""
        return self.data_manager.load_diary()

    def append(self, entry: DiaryEntry) -> None:
        """Persist an entry, then record it in memory.

        Raises:
            TurnSequenceError: If the entry's turn is not after the last one
            PersistenceError: If the diary cannot be written
        """
        if entry.turn <= self._last_turn:
            raise TurnSequenceError(
                f"Turn {entry.turn} does not follow last recorded turn {self._last_turn}"
            )

        self.data_manager.save_diary_entry(entry)
        self._entries.append(entry)
        self._last_turn = entry.turn
        logger.debug(f"Recorded turn {entry.turn}")
