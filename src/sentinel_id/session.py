"""
Monitoring Session
==================

Top-level controller: a two-state machine that ties the video source,
capture sampler, identification pipeline and stores together.

States:
    IDLE        sampler stopped, video source released
    MONITORING  video source acquired, sampler ticking

Transitions:
    IDLE → MONITORING:  start()  (needs references + an acquirable source)
    MONITORING → IDLE:  stop(), clear_references(), shutdown()

Rules:
    - start() while MONITORING and stop() while IDLE are no-ops
    - stop() never cancels an outstanding oracle call; its results are
      still applied to the ledger and the log
    - The video source is released on stop and on shutdown, whatever the
      exit path
"""

import asyncio
import logging
import time
from functools import partial
from typing import Callable, Optional

from sentinel_id.capture.sampler import CaptureSampler
from sentinel_id.capture.source import VideoSource, VideoSourceError
from sentinel_id.models.session import SessionState
from sentinel_id.oracle.client import OracleClient
from sentinel_id.pipeline.banner import MatchBanner
from sentinel_id.pipeline.cooldown import CooldownLedger
from sentinel_id.pipeline.identification import MAX_REFERENCES, IdentificationPipeline
from sentinel_id.store.activity_log import ActivityLogStore
from sentinel_id.store.references import ReferenceRepository


logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when the session cannot start."""
    pass


class MonitoringSession:
    """
    Owns every piece of per-process monitoring state.

    Attributes:
        references: Reference face repository
        ledger: Cooldown ledger (process lifetime)
        activity_log: Accepted matches
        banner: Transient match signal
        pipeline: Identification pipeline
        sampler: Periodic capture loop
    """

    def __init__(
        self,
        source: VideoSource,
        oracle: OracleClient,
        references: Optional[ReferenceRepository] = None,
        ledger: Optional[CooldownLedger] = None,
        activity_log: Optional[ActivityLogStore] = None,
        banner: Optional[MatchBanner] = None,
        capture_interval: float = 4.0,
        max_references: int = MAX_REFERENCES,
        oracle_timeout: Optional[float] = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.source = source
        self.oracle = oracle
        self.references = references or ReferenceRepository()
        self.ledger = ledger or CooldownLedger()
        self.activity_log = activity_log or ActivityLogStore()
        self.banner = banner or MatchBanner(clock=clock)

        self.pipeline = IdentificationPipeline(
            oracle=oracle,
            ledger=self.ledger,
            activity_log=self.activity_log,
            banner=self.banner,
            max_references=max_references,
            oracle_timeout=oracle_timeout,
            clock=clock,
        )
        self.sampler = CaptureSampler(
            source=source,
            pipeline=self.pipeline,
            reference_provider=partial(self.references.select_active, self.pipeline.max_references),
            interval_seconds=capture_interval,
            clock=clock,
        )

        self._state = SessionState.IDLE
        self._clock = clock
        self._started_at: Optional[float] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._state is SessionState.MONITORING

    async def start(self) -> SessionState:
        """
        Begin monitoring.

        Raises:
            SessionError: If no reference faces exist or the video source
                cannot be acquired. The session stays IDLE.
        """
        if self._state is SessionState.MONITORING:
            return self._state

        if len(self.references) == 0:
            raise SessionError("Add reference faces to the database before monitoring")

        try:
            await asyncio.to_thread(self.source.acquire)
        except VideoSourceError as e:
            logger.error(f"Cannot start monitoring: {e}")
            raise SessionError(str(e)) from e

        self.sampler.start()
        self._state = SessionState.MONITORING
        self._started_at = self._clock()
        logger.info(f"Monitoring started with {len(self.references)} reference face(s)")
        return self._state

    async def stop(self) -> SessionState:
        """Stop monitoring. Outstanding ticks finish on their own."""
        if self._state is SessionState.IDLE:
            return self._state

        self._state = SessionState.IDLE
        self._started_at = None
        try:
            await self.sampler.stop()
        finally:
            self.source.release()
            self.banner.clear()

        logger.info("Monitoring stopped")
        return self._state

    async def clear_references(self) -> int:
        """Remove every reference face and return to IDLE."""
        cleared = self.references.clear()
        await self.stop()
        return cleared

    async def shutdown(self, drain_timeout: Optional[float] = 10.0) -> None:
        """
        Process teardown: stop, wait for outstanding ticks, release the source.
        """
        try:
            await self.stop()
            await self.sampler.drain(timeout=drain_timeout)
        finally:
            self.source.release()

    def status(self) -> dict:
        """Snapshot of session state for the API."""
        signal = self.banner.current
        return {
            "state": self._state.value,
            "monitoring_since": self._started_at,
            "in_flight": self.pipeline.in_flight,
            "source_ready": self.source.is_ready,
            "reference_count": len(self.references),
            "log_size": len(self.activity_log),
            "match": signal.model_dump(mode="json") if signal else None,
        }
