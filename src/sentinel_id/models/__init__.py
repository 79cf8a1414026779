"""
Data Models
===========

Pydantic models for SentinelID.

Models:
    Reference:
        - ReferenceIdentity: Labeled reference face

    Oracle:
        - JudgmentResult: Per-face judgment returned by the oracle

    Activity:
        - LogEntry: Accepted match record

    Session:
        - SessionState: IDLE / MONITORING
        - MatchDecision: ADMITTED / SUPPRESSED / REJECTED_BY_THRESHOLD
        - MatchSignal: Transient match banner
        - TickReport: Per-tick summary
"""

from sentinel_id.models.reference import ReferenceIdentity, ReferenceUpload
from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.log_entry import LogEntry
from sentinel_id.models.session import (
    MatchDecision,
    MatchSignal,
    SessionState,
    SkipReason,
    TickReport,
)

__all__ = [
    # Reference
    "ReferenceIdentity",
    "ReferenceUpload",
    # Oracle
    "JudgmentResult",
    # Activity
    "LogEntry",
    # Session
    "SessionState",
    "MatchDecision",
    "SkipReason",
    "MatchSignal",
    "TickReport",
]
