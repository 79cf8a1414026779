"""
Identification Pipeline Tests
=============================

Tests for single-flight ticks, cooldown deduplication, failure handling
and the match banner.
"""

import asyncio

import pytest

from conftest import make_judgment

from sentinel_id.capture.frame import FrameSample
from sentinel_id.models.session import MatchDecision, SkipReason
from sentinel_id.oracle.client import MockOracleClient, OracleResponseError
from sentinel_id.pipeline.banner import MatchBanner
from sentinel_id.pipeline.cooldown import CooldownLedger
from sentinel_id.pipeline.identification import IdentificationPipeline
from sentinel_id.store.activity_log import ActivityLogStore


def _pipeline(oracle, clock, banner=None, timeout=30.0):
    return IdentificationPipeline(
        oracle=oracle,
        ledger=CooldownLedger(60.0),
        activity_log=ActivityLogStore(),
        banner=banner,
        oracle_timeout=timeout,
        clock=clock,
    )


def _frame(sequence: int = 1) -> FrameSample:
    return FrameSample(sequence=sequence, captured_at=0.0, jpeg=b"\xff\xd8frame")


class TestIdentificationPipeline:
    """Tests for IdentificationPipeline.process_tick."""

    @pytest.mark.asyncio
    async def test_alice_cooldown_scenario(self, clock, references):
        """Verify Alice at t=0 logged, t=30 suppressed, t=61 logged again."""
        oracle = MockOracleClient(default=[make_judgment("Alice", confidence=0.9)])
        pipeline = _pipeline(oracle, clock)
        start = clock.now

        report = await pipeline.process_tick(_frame(1), references.list())
        assert report.admitted == ["Alice"]

        clock.now = start + 30
        report = await pipeline.process_tick(_frame(2), references.list())
        assert report.decisions == [MatchDecision.SUPPRESSED]

        clock.now = start + 61
        report = await pipeline.process_tick(_frame(3), references.list())
        assert report.admitted == ["Alice"]

        timestamps = [e.timestamp for e in pipeline.activity_log.list()]
        assert timestamps == [start, start + 61]

    @pytest.mark.asyncio
    async def test_log_entry_contents(self, clock, references):
        """Verify the entry carries the frame as thumbnail and the judgment fields."""
        oracle = MockOracleClient(
            default=[make_judgment("Bob", confidence=0.77, mask_detected=True)]
        )
        pipeline = _pipeline(oracle, clock)
        frame = _frame(7)

        await pipeline.process_tick(frame, references.list())

        entry = pipeline.activity_log.latest()
        assert entry.matched_name == "Bob"
        assert entry.thumbnail == frame.jpeg
        assert entry.mask_detected is True
        assert entry.confidence == pytest.approx(0.77)
        assert entry.timestamp == clock.now

    @pytest.mark.asyncio
    async def test_empty_references_skip_oracle(self, clock):
        """Verify no oracle call for an empty reference set."""
        oracle = MockOracleClient()
        pipeline = _pipeline(oracle, clock)

        report = await pipeline.process_tick(_frame(), [])

        assert report.skipped_reason is SkipReason.NO_REFERENCES
        assert report.dispatched is False
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_references_are_capped(self, clock, jpeg_bytes):
        """Verify at most eight references reach the oracle."""
        from sentinel_id.store.references import ReferenceRepository

        repo = ReferenceRepository()
        for i in range(12):
            repo.enroll(f"P{i}", jpeg_bytes)
        oracle = MockOracleClient()
        pipeline = _pipeline(oracle, clock)

        await pipeline.process_tick(_frame(), repo.list())

        assert oracle.calls[0].reference_names == [f"P{i}" for i in range(8)]

    @pytest.mark.asyncio
    async def test_single_flight(self, clock, references):
        """Verify a second tick is rejected while a request is outstanding."""
        oracle = MockOracleClient(default=[make_judgment("Alice")])
        oracle.gate = asyncio.Event()
        pipeline = _pipeline(oracle, clock)

        first = asyncio.create_task(pipeline.process_tick(_frame(1), references.list()))
        await oracle.call_started.wait()
        assert pipeline.in_flight is True

        second = await pipeline.process_tick(_frame(2), references.list())
        assert second.skipped_reason is SkipReason.IN_FLIGHT
        assert len(oracle.calls) == 1

        oracle.gate.set()
        report = await first
        assert report.admitted == ["Alice"]
        assert pipeline.in_flight is False

    @pytest.mark.asyncio
    async def test_oracle_failure_clears_in_flight(self, clock, references):
        """Verify an oracle error yields zero judgments and no side effects."""
        oracle = MockOracleClient(responses=[OracleResponseError("bad payload")])
        pipeline = _pipeline(oracle, clock)

        report = await pipeline.process_tick(_frame(), references.list())

        assert report.dispatched is True
        assert report.error is not None
        assert report.judgments == 0
        assert pipeline.in_flight is False
        assert len(pipeline.activity_log) == 0
        assert len(pipeline.ledger) == 0
        assert pipeline.get_metrics()["oracle_errors"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, clock, references):
        """Verify arbitrary exceptions from the oracle never escape."""
        oracle = MockOracleClient(responses=[RuntimeError("network down")])
        pipeline = _pipeline(oracle, clock)

        report = await pipeline.process_tick(_frame(), references.list())

        assert "network down" in report.error
        assert pipeline.in_flight is False

    @pytest.mark.asyncio
    async def test_oracle_timeout(self, clock, references):
        """Verify a hung oracle call is abandoned after the deadline."""
        oracle = MockOracleClient(default=[make_judgment("Alice")])
        oracle.gate = asyncio.Event()
        pipeline = _pipeline(oracle, clock, timeout=0.05)

        report = await pipeline.process_tick(_frame(), references.list())

        assert report.error is not None
        assert report.admitted == []
        assert pipeline.in_flight is False

    @pytest.mark.asyncio
    async def test_multiple_faces_preserve_order(self, clock, references):
        """Verify admitted names and log entries follow oracle order."""
        oracle = MockOracleClient(default=[
            make_judgment("Bob"),
            make_judgment("Stranger", confidence=0.3, match_found=False),
            make_judgment("Alice"),
        ])
        pipeline = _pipeline(oracle, clock)

        report = await pipeline.process_tick(_frame(), references.list())

        assert report.admitted == ["Bob", "Alice"]
        assert [e.matched_name for e in pipeline.activity_log.list()] == ["Bob", "Alice"]


class TestMatchBanner:
    """Tests for the transient match banner."""

    @pytest.mark.asyncio
    async def test_one_signal_per_tick_with_joined_names(self, clock, references):
        """Verify multiple admissions in one tick share one banner."""
        banner = MatchBanner(display_seconds=5.0, clock=clock)
        oracle = MockOracleClient(default=[make_judgment("Alice"), make_judgment("Bob")])
        pipeline = _pipeline(oracle, clock, banner=banner)

        await pipeline.process_tick(_frame(), references.list())

        assert banner.current.label == "Alice + Bob"
        assert banner.raised_count == 1
        banner.clear()

    @pytest.mark.asyncio
    async def test_no_banner_without_admission(self, clock, references):
        """Verify suppressed or rejected judgments raise nothing."""
        banner = MatchBanner(display_seconds=5.0, clock=clock)
        oracle = MockOracleClient(default=[make_judgment("Alice", confidence=0.5)])
        pipeline = _pipeline(oracle, clock, banner=banner)

        await pipeline.process_tick(_frame(), references.list())

        assert banner.current is None

    @pytest.mark.asyncio
    async def test_auto_clear(self):
        """Verify the banner clears itself after display_seconds."""
        banner = MatchBanner(display_seconds=0.05)

        banner.raise_signal(["Alice"])
        assert banner.current is not None

        await asyncio.sleep(0.15)
        assert banner.current is None

    @pytest.mark.asyncio
    async def test_newer_signal_restarts_timer(self):
        """Verify an old timer never clears a newer signal."""
        banner = MatchBanner(display_seconds=0.1)

        banner.raise_signal(["Alice"])
        await asyncio.sleep(0.06)
        banner.raise_signal(["Bob"])
        await asyncio.sleep(0.06)

        assert banner.current is not None
        assert banner.current.names == ["Bob"]
        banner.clear()

    @pytest.mark.asyncio
    async def test_empty_names_rejected(self):
        """Verify a banner needs at least one name."""
        with pytest.raises(ValueError):
            MatchBanner().raise_signal([])
