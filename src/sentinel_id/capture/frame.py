"""
Frame Sample
============

Internal representation of one captured video frame.

Design Rules:
    - Exists only for the duration of one pipeline tick
    - Never persisted (the activity log keeps its own thumbnail copy)
    - Holds JPEG bytes; no decoded pixels
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FrameSample:
    """
    One JPEG-encoded frame captured by the sampler.

    Attributes:
        sequence: Monotonically increasing capture counter
        captured_at: UNIX timestamp of the capture
        jpeg: JPEG-encoded image bytes
    """

    sequence: int
    captured_at: float
    jpeg: bytes

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image."""
        return (
            f"FrameSample(sequence={self.sequence}, "
            f"captured_at={self.captured_at:.3f}, "
            f"bytes={len(self.jpeg)})"
        )
