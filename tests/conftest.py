"""
Test Configuration
==================

Pytest fixtures and test configuration for SentinelID.
"""

import cv2
import numpy as np
import pytest


class ManualClock:
    """Controllable wall clock (UNIX seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_jpeg(width: int = 64, height: int = 48, value: int = 128) -> bytes:
    """Encode a solid-color BGR image as JPEG."""
    image = np.full((height, width, 3), value, dtype=np.uint8)
    ok, buffer = cv2.imencode(".jpg", image)
    assert ok
    return buffer.tobytes()


def make_judgment(
    name=None,
    confidence: float = 0.9,
    match_found: bool = True,
    mask_detected: bool = False,
):
    """Build a JudgmentResult with sensible defaults."""
    from sentinel_id.models.judgment import JudgmentResult

    return JudgmentResult(
        match_found=match_found,
        matched_name=name,
        confidence=confidence,
        mask_detected=mask_detected,
        reasoning="test",
    )


@pytest.fixture
def clock():
    """Provide a manual clock starting at a fixed instant."""
    return ManualClock()


@pytest.fixture
def jpeg_bytes():
    """Provide a small valid JPEG."""
    return make_jpeg()


@pytest.fixture
def frame(jpeg_bytes):
    """Provide a FrameSample."""
    from sentinel_id.capture.frame import FrameSample

    return FrameSample(sequence=1, captured_at=1_700_000_000.0, jpeg=jpeg_bytes)


@pytest.fixture
def references(jpeg_bytes):
    """Provide a reference repository with Alice and Bob enrolled."""
    from sentinel_id.store.references import ReferenceRepository

    repo = ReferenceRepository()
    repo.enroll("Alice", jpeg_bytes)
    repo.enroll("Bob", jpeg_bytes)
    return repo


@pytest.fixture
def mock_oracle():
    """Provide a scripted oracle with an empty script."""
    from sentinel_id.oracle.client import MockOracleClient

    return MockOracleClient()


@pytest.fixture
def static_source(jpeg_bytes):
    """Provide a fixed-image video source."""
    from sentinel_id.capture.source import StaticVideoSource

    return StaticVideoSource(jpeg_bytes)


@pytest.fixture
def session(static_source, mock_oracle, references, clock):
    """Provide an IDLE MonitoringSession wired to test doubles."""
    from sentinel_id.session import MonitoringSession

    return MonitoringSession(
        source=static_source,
        oracle=mock_oracle,
        references=references,
        capture_interval=0.01,
        clock=clock,
    )
