"""Linear undo/redo log with a single cursor."""

import logging
from typing import List, Optional

from ..models import HistoryEntry

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 50


class HistoryLog:
    """Bounded sequence of history entries.

    `cursor` points at the most recent entry that is still applied; -1 means
    there is nothing to undo. Recording after an undo discards everything
    beyond the cursor.

    Undo and redo are split into peek/commit so a caller that has to replay
    an entry against a remote store only moves the cursor once the replay
    succeeded.
    """

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        self.max_size = max_size
        self._entries: List[HistoryEntry] = []
        self.cursor = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    @property
    def can_undo(self) -> bool:
        return self.cursor >= 0

    @property
    def can_redo(self) -> bool:
        return self.cursor < len(self._entries) - 1

    def record(self, entry: HistoryEntry) -> None:
        del self._entries[self.cursor + 1:]
        self._entries.append(entry)
        self.cursor += 1
        # Eviction only follows an append, so the cursor stays >= 0
        if len(self._entries) > self.max_size:
            self._entries.pop(0)
            self.cursor -= 1
        logger.debug(f"Recorded {entry.kind} entry, cursor at {self.cursor}")

    def peek_undo(self) -> Optional[HistoryEntry]:
        if not self.can_undo:
            return None
        return self._entries[self.cursor]

    def commit_undo(self) -> None:
        if self.can_undo:
            self.cursor -= 1

    def peek_redo(self) -> Optional[HistoryEntry]:
        if not self.can_redo:
            return None
        return self._entries[self.cursor + 1]

    def commit_redo(self) -> None:
        if self.can_redo:
            self.cursor += 1

    def clear(self) -> None:
        self._entries = []
        self.cursor = -1
