"""
Match Policy
============

Per-judgment decision: threshold check, then cooldown check.

    REJECTED_BY_THRESHOLD  match_found is false, no name, or confidence <= 0.5
    SUPPRESSED             identity accepted less than one window ago
    ADMITTED               otherwise

decide() is pure: it reads the ledger but never writes it. Applying the
decision (ledger update, log append) is the caller's job.
"""

import logging

from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.session import MatchDecision
from sentinel_id.pipeline.cooldown import CooldownLedger


logger = logging.getLogger(__name__)


# Fixed policy constant, strict inequality.
CONFIDENCE_THRESHOLD = 0.5


def passes_threshold(judgment: JudgmentResult) -> bool:
    """True for a confident, named match."""
    return (
        judgment.match_found
        and bool(judgment.matched_name)
        and judgment.confidence > CONFIDENCE_THRESHOLD
    )


class MatchPolicy:
    """Tri-state decision function over a cooldown ledger."""

    def decide(
        self,
        judgment: JudgmentResult,
        ledger: CooldownLedger,
        now: float,
    ) -> MatchDecision:
        """
        Decide what should happen to one judgment.

        Args:
            judgment: Oracle judgment
            ledger: Cooldown ledger (read only here)
            now: Current UNIX timestamp

        Returns:
            MatchDecision
        """
        if not passes_threshold(judgment):
            return MatchDecision.REJECTED_BY_THRESHOLD

        if ledger.would_admit(judgment.matched_name, now):
            return MatchDecision.ADMITTED

        return MatchDecision.SUPPRESSED
