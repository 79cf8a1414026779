"""
Activity Log Entry
==================

Record of one accepted match.

A LogEntry is only ever created by the identification pipeline for a
judgment that passed both the confidence threshold and the cooldown check.
"""

import base64
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from sentinel_id.capture.frame import FrameSample
from sentinel_id.models.judgment import JudgmentResult


class LogEntry(BaseModel):
    """
    Accepted match, immutable once created.

    Attributes:
        id: Opaque entry token
        timestamp: UNIX timestamp (seconds) when the match was accepted
        matched_name: Identity that was matched
        thumbnail: JPEG bytes of the frame that triggered the match
        mask_detected: Whether the person wore a mask
        confidence: Oracle confidence for the match
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    timestamp: float = Field(..., ge=0)
    matched_name: str
    thumbnail: bytes = Field(..., repr=False)
    mask_detected: bool = False
    confidence: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_judgment(
        cls,
        judgment: JudgmentResult,
        frame: FrameSample,
        timestamp: float,
    ) -> "LogEntry":
        """Build an entry for an admitted judgment."""
        return cls(
            timestamp=timestamp,
            matched_name=judgment.matched_name,
            thumbnail=frame.jpeg,
            mask_detected=judgment.mask_detected,
            confidence=judgment.confidence,
        )

    @field_serializer("thumbnail", when_used="json")
    def _serialize_thumbnail(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")
