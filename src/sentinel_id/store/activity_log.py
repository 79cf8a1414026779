"""
Activity Log Store
==================

Append-only, insertion-ordered sequence of accepted matches.

Design Rules:
    - Append-only except for an explicit full clear
    - No per-entry deletion
    - Retention is explicit: unbounded (max_entries=0) or a ring buffer
      that drops the oldest entry on overflow
    - Listeners are notified after each append; a failing listener is
      logged and never breaks the append
"""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from sentinel_id.models.log_entry import LogEntry


logger = logging.getLogger(__name__)


LogListener = Callable[[LogEntry], None]


class ActivityLogStore:
    """
    In-memory activity log.

    Attributes:
        max_entries: Retention cap (0 = unbounded)
        dropped_count: Entries evicted by the retention cap
        total_appended: Entries ever appended

    Example:
        store = ActivityLogStore()
        store.append(entry)
        for entry in store.list():
            print(entry.matched_name)
        store.clear()
    """

    def __init__(self, max_entries: int = 0) -> None:
        """
        Initialize the store.

        Args:
            max_entries: Maximum entries kept. 0 keeps everything.
        """
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")

        self._max_entries = max_entries
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries or None)
        self._listeners: List[LogListener] = []
        self._dropped_count: int = 0
        self._total_appended: int = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def total_appended(self) -> int:
        return self._total_appended

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: LogEntry) -> None:
        """Append an entry, evicting the oldest when the cap is reached."""
        if self._max_entries and len(self._entries) == self._max_entries:
            self._dropped_count += 1

        self._entries.append(entry)
        self._total_appended += 1

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logger.warning(f"Activity log listener failed: {e}")

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries removed (0 when already empty).
        """
        cleared = len(self._entries)
        self._entries.clear()
        if cleared:
            logger.info(f"Activity log cleared ({cleared} entries)")
        return cleared

    def list(self) -> List[LogEntry]:
        """Entries oldest first."""
        return list(self._entries)

    def latest(self) -> Optional[LogEntry]:
        """Most recently appended entry, if any."""
        return self._entries[-1] if self._entries else None

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        """
        Register a listener for new entries.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def metrics(self) -> dict:
        return {
            "size": len(self._entries),
            "max_entries": self._max_entries,
            "dropped_count": self._dropped_count,
            "total_appended": self._total_appended,
            "listeners": len(self._listeners),
        }
