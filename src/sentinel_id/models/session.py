"""
Session and Decision Models
===========================

State enums and per-tick records for the monitoring session.

Core Concepts:
    - SessionState: IDLE or MONITORING, owned by the session controller
    - MatchDecision: Outcome of evaluating one judgment
    - MatchSignal: Transient banner raised when a tick admits matches
    - TickReport: What one pipeline tick did (observability only)

Decision Outcomes:
    REJECTED_BY_THRESHOLD: no match, no name, or confidence <= 0.5
    SUPPRESSED: passed threshold, but the identity is still cooling down
    ADMITTED: passed threshold and cooldown; logged
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Monitoring session states."""

    IDLE = "IDLE"
    MONITORING = "MONITORING"


class MatchDecision(str, Enum):
    """
    Outcome of the per-judgment decision.

    Attributes:
        ADMITTED: Logged and ledger updated
        SUPPRESSED: Within the cooldown window; no side effects
        REJECTED_BY_THRESHOLD: Not a confident match; no side effects
    """

    ADMITTED = "ADMITTED"
    SUPPRESSED = "SUPPRESSED"
    REJECTED_BY_THRESHOLD = "REJECTED_BY_THRESHOLD"


class SkipReason(str, Enum):
    """Why a tick did not reach the oracle."""

    IN_FLIGHT = "IN_FLIGHT"
    NO_REFERENCES = "NO_REFERENCES"


class MatchSignal(BaseModel):
    """
    Transient "match" banner.

    Multiple admissions within one tick share a single signal.

    Attributes:
        names: Admitted names, in oracle order
        label: Names joined for display ("Alice + Bob")
        raised_at: UNIX timestamp when raised
        expires_at: UNIX timestamp when it auto-clears
    """

    names: List[str] = Field(..., min_length=1)
    label: str
    raised_at: float
    expires_at: float


class TickReport(BaseModel):
    """
    Summary of one pipeline tick.

    Attributes:
        sequence: Frame sequence number
        dispatched: Whether the oracle was called
        skipped_reason: Set when the tick was rejected before the oracle call
        judgments: Number of judgments returned by the oracle
        decisions: Decision per judgment, in oracle order
        admitted: Names admitted in this tick
        error: Oracle failure message, if the call failed
    """

    sequence: int
    dispatched: bool = False
    skipped_reason: Optional[SkipReason] = None
    judgments: int = 0
    decisions: List[MatchDecision] = Field(default_factory=list)
    admitted: List[str] = Field(default_factory=list)
    error: Optional[str] = None
