"""
Match Banner
============

Transient "match" signal shown after a tick admits one or more names.

Rules:
    - One signal per tick; multiple names are joined ("Alice + Bob")
    - Auto-clears after `display_seconds`
    - A newer signal supersedes the old one and restarts the timer
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from sentinel_id.models.session import MatchSignal


logger = logging.getLogger(__name__)


NAME_SEPARATOR = " + "


class MatchBanner:
    """
    Holder for the current MatchSignal.

    Must be raised from inside a running event loop (the auto-clear is a
    loop timer).
    """

    def __init__(
        self,
        display_seconds: float = 3.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.display_seconds = display_seconds
        self._clock = clock
        self._current: Optional[MatchSignal] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._raised_count: int = 0

    @property
    def current(self) -> Optional[MatchSignal]:
        return self._current

    @property
    def raised_count(self) -> int:
        return self._raised_count

    def raise_signal(self, names: Sequence[str], now: Optional[float] = None) -> MatchSignal:
        """
        Show a new signal, replacing any current one.

        Args:
            names: Names admitted in one tick, in order
            now: Raise time (defaults to the banner clock)
        """
        if not names:
            raise ValueError("names must not be empty")

        raised_at = self._clock() if now is None else now
        names_list: List[str] = list(names)
        signal = MatchSignal(
            names=names_list,
            label=NAME_SEPARATOR.join(names_list),
            raised_at=raised_at,
            expires_at=raised_at + self.display_seconds,
        )

        self._cancel_timer()
        self._current = signal
        self._raised_count += 1

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.display_seconds, self._expire, signal)

        logger.info(f"MATCH: {signal.label}")
        return signal

    def clear(self) -> None:
        """Drop the current signal immediately."""
        self._cancel_timer()
        self._current = None

    def _expire(self, signal: MatchSignal) -> None:
        # Only clear the signal this timer was scheduled for.
        if self._current is signal:
            self._current = None
        self._timer = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
