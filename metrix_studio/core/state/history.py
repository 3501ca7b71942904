from collections import deque
from typing import Callable, List, Optional
import time

from ..knowledge_base.schema import ExecutionStatus, HistoryEntry


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class HistoryLog:
    """Bounded, deduplicated, most-recent-first log of query executions."""

    def __init__(self, capacity: int = 50, clock: Optional[Callable[[], int]] = None):
        """
        Args:
            capacity: Maximum number of entries kept; the oldest are dropped first
            clock: Source of epoch-millisecond timestamps (defaults to wall clock)
        """
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock or now_ms
        self._entries = deque(maxlen=capacity)

    def record(self, query_text: str, status: ExecutionStatus, duration_ms: int,
               result_count: int = 0) -> HistoryEntry:
        """Dedup-insert: drop every entry with the same text, then prepend the new one."""
        entry = HistoryEntry(
            query_text=query_text,
            timestamp=self._clock(),
            status=status,
            duration_ms=int(duration_ms),
            result_count=result_count,
        )
        survivors = [e for e in self._entries if e.query_text != query_text]
        self._entries.clear()
        self._entries.extend(survivors)
        # appendleft on a full deque evicts from the right, i.e. the oldest entry
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> List[HistoryEntry]:
        """Snapshot of the log, newest first."""
        return list(self._entries)

    def find(self, query_text: str) -> Optional[HistoryEntry]:
        return next((e for e in self._entries if e.query_text == query_text), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
