"""
Capture Sampler
===============

Periodic frame sampler bound to the monitoring session's lifecycle.

On every period the sampler:
    1. Skips if the identification pipeline already has a request in flight
    2. Skips silently if the video source is not ready
    3. Captures one JPEG frame
    4. Dispatches the frame to the pipeline as a separate task

Design Rules:
    - The in-flight flag belongs to the pipeline, not the timer
    - The oracle call suspends the dispatched tick, never the timer
    - stop() cancels the timer immediately but never cancels a dispatched
      tick; its results are still applied
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Set

from sentinel_id.capture.frame import FrameSample
from sentinel_id.capture.source import VideoSource
from sentinel_id.models.reference import ReferenceIdentity

if TYPE_CHECKING:
    from sentinel_id.pipeline.identification import IdentificationPipeline


logger = logging.getLogger(__name__)


ReferenceProvider = Callable[[], Sequence[ReferenceIdentity]]


class CaptureSamplerMetrics:
    """Metrics for CaptureSampler observability."""

    __slots__ = (
        "ticks_fired",
        "skipped_in_flight",
        "skipped_unready",
        "frames_dispatched",
    )

    def __init__(self) -> None:
        self.ticks_fired: int = 0
        self.skipped_in_flight: int = 0
        self.skipped_unready: int = 0
        self.frames_dispatched: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks_fired": self.ticks_fired,
            "skipped_in_flight": self.skipped_in_flight,
            "skipped_unready": self.skipped_unready,
            "frames_dispatched": self.frames_dispatched,
        }


class CaptureSampler:
    """
    Fixed-period capture loop.

    Attributes:
        source: Video source to read frames from
        pipeline: Identification pipeline that receives each frame
        interval_seconds: Sampling period
        metrics: Operational counters

    Example:
        sampler = CaptureSampler(source, pipeline, references.list, 4.0)
        sampler.start()
        ...
        await sampler.stop()
        await sampler.drain(timeout=10.0)
    """

    def __init__(
        self,
        source: VideoSource,
        pipeline: "IdentificationPipeline",
        reference_provider: ReferenceProvider,
        interval_seconds: float = 4.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the sampler.

        Args:
            source: Video source (must be acquired before start())
            pipeline: Pipeline owning the in-flight flag
            reference_provider: Returns the reference set for each tick
            interval_seconds: Period between ticks
            clock: Wall-clock source for frame timestamps
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.source = source
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self._reference_provider = reference_provider
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._sequence: int = 0

        self.metrics = CaptureSamplerMetrics()

    @property
    def running(self) -> bool:
        """Whether the periodic task is active."""
        return self._task is not None and not self._task.done()

    @property
    def pending_ticks(self) -> int:
        """Dispatched ticks that have not finished yet."""
        return len(self._pending)

    def start(self) -> None:
        """Start the periodic task. No-op if already running."""
        if self.running:
            return

        self._task = asyncio.create_task(self._run(), name="capture_sampler")
        logger.info(f"CaptureSampler started: interval={self.interval_seconds}s")

    async def stop(self) -> None:
        """
        Cancel the periodic task.

        Dispatched ticks keep running; use drain() to wait for them.
        """
        task = self._task
        self._task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.info(
            f"CaptureSampler stopped ({len(self._pending)} tick(s) still in flight)"
        )

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for dispatched ticks to finish.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            True if nothing is left in flight.
        """
        if not self._pending:
            return True

        done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} tick(s) still in flight after drain")
        return not pending

    async def _run(self) -> None:
        """Periodic loop. The first tick fires one interval after start."""
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Capture tick error: {e}")

    async def _tick(self) -> None:
        self.metrics.ticks_fired += 1

        if self.pipeline.in_flight:
            self.metrics.skipped_in_flight += 1
            logger.debug("Tick skipped: identification request in flight")
            return

        if not self.source.is_ready:
            self.metrics.skipped_unready += 1
            return

        jpeg = await asyncio.to_thread(self.source.read_jpeg)
        if jpeg is None:
            self.metrics.skipped_unready += 1
            return

        self._sequence += 1
        frame = FrameSample(
            sequence=self._sequence,
            captured_at=self._clock(),
            jpeg=jpeg,
        )
        self._dispatch(frame)

    def _dispatch(self, frame: FrameSample) -> None:
        references = list(self._reference_provider())
        task = asyncio.create_task(
            self.pipeline.process_tick(frame, references),
            name=f"identify_{frame.sequence}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_tick_done)
        self.metrics.frames_dispatched += 1

    def _on_tick_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Identification tick {task.get_name()} failed: {error}")
