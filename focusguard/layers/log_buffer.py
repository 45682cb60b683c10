"""
Log Retention Buffer

Newest-first activity log with a fixed capacity. Entries beyond the cap
are evicted silently from the old end. ERROR results are never recorded.
"""
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional

from focusguard.types import ClassificationResult, FocusStatus, LogEntry

DEFAULT_CAPACITY = 50


class LogBuffer:
    """Bounded, newest-first sequence of LogEntry."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def record(
        self,
        result: ClassificationResult,
        timestamp: Optional[datetime] = None,
    ) -> Optional[LogEntry]:
        """
        Prepend an entry for a classification result.

        Returns:
            The new entry, or None for ERROR results.
        """
        if result.status == FocusStatus.ERROR:
            return None

        entry = LogEntry(
            id=uuid.uuid4().hex,
            timestamp=timestamp or datetime.now(timezone.utc),
            status=result.status,
            message=result.message,
        )
        self._entries.appendleft(entry)
        return entry

    def snapshot(self) -> List[LogEntry]:
        """Copy of the entries, newest first."""
        return list(self._entries)

    def resize(self, capacity: int) -> None:
        """Change the capacity, keeping the newest entries."""
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries = deque(list(self._entries)[:capacity], maxlen=capacity)

    def clear(self) -> None:
        self._entries.clear()
