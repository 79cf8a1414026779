"""
Cooldown Ledger
===============

Per-identity record of the last accepted match time.

Rule:
    admit(name, now) succeeds iff the name has never been accepted, or
    now - last_accepted(name) > window (strict).

A suppressed attempt does NOT touch the stored timestamp, so a rapid
stream of judgments cannot starve admission once the window elapses.

Concurrency:
    No internal locking. Correctness relies on the identification
    pipeline's single-flight guarantee (one tick at a time). Callers that
    share a ledger across parallel workers must serialize admit().
"""

import logging
import math
from typing import Dict, Optional


logger = logging.getLogger(__name__)


class CooldownLedger:
    """
    Mapping name -> last accepted instant (UNIX seconds).

    Entries are created or overwritten on admission and never deleted;
    stale entries are harmless because newer timestamps supersede them.

    Example:
        ledger = CooldownLedger(window_seconds=60.0)
        ledger.admit("Alice", now=0.0)    # True
        ledger.admit("Alice", now=30.0)   # False
        ledger.admit("Alice", now=61.0)   # True
    """

    def __init__(self, window_seconds: float = 60.0) -> None:
        if window_seconds < 0:
            raise ValueError("window_seconds must be >= 0")

        self.window_seconds = window_seconds
        self._last_accepted: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._last_accepted)

    def __contains__(self, name: object) -> bool:
        return name in self._last_accepted

    def last_accepted(self, name: str) -> Optional[float]:
        return self._last_accepted.get(name)

    def elapsed(self, name: str, now: float) -> float:
        """Seconds since the last acceptance (inf if never accepted)."""
        last = self._last_accepted.get(name)
        if last is None:
            return math.inf
        return now - last

    def would_admit(self, name: str, now: float) -> bool:
        """Side-effect-free admission check."""
        return self.elapsed(name, now) > self.window_seconds

    def record(self, name: str, now: float) -> None:
        """Store `now` as the last accepted instant for `name`."""
        self._last_accepted[name] = now

    def admit(self, name: str, now: float) -> bool:
        """
        Check-and-update in one step.

        Returns:
            True if admitted (timestamp updated), False if still cooling
            down (nothing changed).
        """
        if not self.would_admit(name, now):
            return False
        self.record(name, now)
        return True

    def snapshot(self) -> Dict[str, float]:
        """Copy of the current name -> timestamp mapping."""
        return dict(self._last_accepted)
