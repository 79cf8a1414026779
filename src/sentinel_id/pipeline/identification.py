"""
Identification Pipeline
=======================

Orchestrates one sampler tick:

    frame ─► oracle ─► threshold filter ─► cooldown ─► activity log
                                                    └► match banner

Guarantees:
    1. No oracle call while another request is in flight, and none for an
       empty reference set
    2. At most `max_references` references are sent per request
    3. Only judgments with match_found, a name, and confidence > 0.5
       are considered
    4. Per-name cooldown; suppressed judgments leave the ledger untouched
    5. One banner signal per tick, carrying every admitted name
    6. The in-flight flag is cleared on every exit path
    7. Oracle failures (transport, malformed payload, timeout) are logged
       and treated as zero judgments; they never reach the caller and never
       touch the ledger or the log

Concurrency:
    The in-flight check and set happen with no suspension point in between,
    so at most one tick runs past step 1 at any time. The ledger and the
    log need no locking as a result.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from sentinel_id.capture.frame import FrameSample
from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.log_entry import LogEntry
from sentinel_id.models.reference import ReferenceIdentity
from sentinel_id.models.session import SkipReason, TickReport
from sentinel_id.oracle.client import OracleClient
from sentinel_id.pipeline.banner import MatchBanner
from sentinel_id.pipeline.cooldown import CooldownLedger
from sentinel_id.pipeline.graph import MatchGraph
from sentinel_id.store.activity_log import ActivityLogStore


logger = logging.getLogger(__name__)


# Payload-size ceiling on reference images per oracle request.
MAX_REFERENCES = 8


class IdentificationPipeline:
    """
    Single-flight identification pipeline.

    Attributes:
        oracle: Identification backend
        ledger: Cooldown ledger (injected, owned by the session)
        activity_log: Store receiving admitted matches
        banner: Transient match signal (optional)
        max_references: References sent per request (capped at 8)
        oracle_timeout: Deadline for one oracle call in seconds (None = none)
    """

    def __init__(
        self,
        oracle: OracleClient,
        ledger: CooldownLedger,
        activity_log: ActivityLogStore,
        banner: Optional[MatchBanner] = None,
        max_references: int = MAX_REFERENCES,
        oracle_timeout: Optional[float] = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            oracle: Identification backend
            ledger: Cooldown ledger
            activity_log: Activity log store
            banner: Match banner, or None to disable visual feedback
            max_references: Reference ceiling per request (1..8)
            oracle_timeout: Oracle deadline in seconds; expiry is a tick failure
            clock: Wall-clock source (UNIX seconds)
        """
        self.oracle = oracle
        self.ledger = ledger
        self.activity_log = activity_log
        self.banner = banner
        self.max_references = max(1, min(max_references, MAX_REFERENCES))
        self.oracle_timeout = oracle_timeout
        self._clock = clock
        self._graph = MatchGraph(ledger)

        # Single-flight flag
        self._in_flight: bool = False

        # Metrics
        self._ticks_processed: int = 0
        self._ticks_rejected: int = 0
        self._oracle_calls: int = 0
        self._oracle_errors: int = 0
        self._judgments_seen: int = 0
        self._admitted_count: int = 0
        self._suppressed_count: int = 0
        self._last_error: Optional[str] = None

        logger.info(
            f"IdentificationPipeline initialized: "
            f"cooldown={ledger.window_seconds}s, "
            f"max_references={self.max_references}, timeout={oracle_timeout}s"
        )

    @property
    def in_flight(self) -> bool:
        """Whether an oracle request is outstanding."""
        return self._in_flight

    async def process_tick(
        self,
        frame: FrameSample,
        reference_set: Sequence[ReferenceIdentity],
    ) -> TickReport:
        """
        Run one identification tick.

        Never raises for oracle failures.

        Args:
            frame: Captured frame (also used as the log thumbnail)
            reference_set: Current reference identities

        Returns:
            TickReport describing what happened
        """
        # Check-and-set must stay free of awaits.
        if self._in_flight:
            self._ticks_rejected += 1
            logger.debug(f"Tick {frame.sequence} rejected: request in flight")
            return TickReport(
                sequence=frame.sequence,
                skipped_reason=SkipReason.IN_FLIGHT,
            )

        if not reference_set:
            self._ticks_rejected += 1
            return TickReport(
                sequence=frame.sequence,
                skipped_reason=SkipReason.NO_REFERENCES,
            )

        self._in_flight = True
        try:
            references = list(reference_set)[: self.max_references]
            judgments, error = await self._identify(frame, references)

            now = self._clock()
            outcome = self._graph.process(judgments, now)

            admitted_names: List[str] = []
            for judgment in outcome.admitted:
                self.activity_log.append(LogEntry.from_judgment(judgment, frame, now))
                admitted_names.append(judgment.matched_name)
                logger.info(
                    f"Match admitted: name={judgment.matched_name}, "
                    f"confidence={judgment.confidence:.2f}, "
                    f"mask={judgment.mask_detected}, frame={frame.sequence}"
                )

            self._ticks_processed += 1
            self._judgments_seen += len(judgments)
            self._admitted_count += len(admitted_names)
            self._suppressed_count += len(outcome.suppressed)

            if admitted_names and self.banner is not None:
                self.banner.raise_signal(admitted_names, now)

            return TickReport(
                sequence=frame.sequence,
                dispatched=True,
                judgments=len(judgments),
                decisions=[decision for _, decision in outcome.decisions],
                admitted=admitted_names,
                error=error,
            )
        finally:
            self._in_flight = False

    async def _identify(
        self,
        frame: FrameSample,
        references: List[ReferenceIdentity],
    ) -> Tuple[List[JudgmentResult], Optional[str]]:
        """
        Call the oracle, converting every failure into zero judgments.

        Returns:
            (judgments, error message or None)
        """
        self._oracle_calls += 1
        try:
            if self.oracle_timeout:
                judgments = await asyncio.wait_for(
                    self.oracle.identify(frame, references),
                    timeout=self.oracle_timeout,
                )
            else:
                judgments = await self.oracle.identify(frame, references)
            return list(judgments or []), None

        except asyncio.TimeoutError:
            message = f"oracle call exceeded {self.oracle_timeout}s"
        except Exception as e:
            message = f"{type(e).__name__}: {e}"

        self._oracle_errors += 1
        self._last_error = message
        logger.error(
            f"Recognition error (frame={frame.sequence}): {message}. "
            f"Total errors: {self._oracle_errors}"
        )
        return [], message

    def get_metrics(self) -> dict:
        """Get pipeline metrics for observability."""
        return {
            "in_flight": self._in_flight,
            "ticks_processed": self._ticks_processed,
            "ticks_rejected": self._ticks_rejected,
            "oracle_calls": self._oracle_calls,
            "oracle_errors": self._oracle_errors,
            "judgments_seen": self._judgments_seen,
            "admitted": self._admitted_count,
            "suppressed": self._suppressed_count,
            "last_error": self._last_error,
        }
