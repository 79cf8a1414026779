"""
Match Graph
===========

LangGraph workflow that turns one tick's judgments into decisions.

LangGraph is used for CONTROL FLOW only, no LLM reasoning.

Graph Structure:
    START → filter_judgments → apply_cooldown → END

    filter_judgments:
        Marks every judgment that fails the confidence threshold as
        REJECTED_BY_THRESHOLD.
    apply_cooldown:
        Walks the survivors in oracle order; each one is ADMITTED (ledger
        updated immediately) or SUPPRESSED.

The ledger update happens inside apply_cooldown, so a second judgment for
the same name within one tick sees the first admission and is suppressed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from langgraph.graph import END, StateGraph

from sentinel_id.models.judgment import JudgmentResult
from sentinel_id.models.session import MatchDecision
from sentinel_id.pipeline.cooldown import CooldownLedger
from sentinel_id.pipeline.policy import MatchPolicy, passes_threshold


logger = logging.getLogger(__name__)


class MatchGraphState(TypedDict):
    """
    State passed through the match graph.

    Attributes:
        judgments: Oracle judgments for this tick, in oracle order
        timestamp: Decision time (UNIX seconds)
        decisions: Decision per judgment (None until decided)
    """
    judgments: List[JudgmentResult]
    timestamp: float
    decisions: List[Optional[MatchDecision]]


@dataclass
class MatchOutcome:
    """Decisions for one tick, in oracle order."""

    decisions: List[Tuple[JudgmentResult, MatchDecision]] = field(default_factory=list)

    @property
    def admitted(self) -> List[JudgmentResult]:
        return [j for j, d in self.decisions if d is MatchDecision.ADMITTED]

    @property
    def suppressed(self) -> List[JudgmentResult]:
        return [j for j, d in self.decisions if d is MatchDecision.SUPPRESSED]


class MatchGraph:
    """
    Deterministic decision workflow over a shared cooldown ledger.

    Example:
        graph = MatchGraph(CooldownLedger(60.0))
        outcome = graph.process(judgments, now=time.time())
        for judgment in outcome.admitted:
            ...
    """

    def __init__(
        self,
        ledger: CooldownLedger,
        policy: Optional[MatchPolicy] = None,
    ) -> None:
        self.ledger = ledger
        self.policy = policy or MatchPolicy()
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(MatchGraphState)

        workflow.add_node("filter_judgments", self._filter_node)
        workflow.add_node("apply_cooldown", self._cooldown_node)

        workflow.set_entry_point("filter_judgments")
        workflow.add_edge("filter_judgments", "apply_cooldown")
        workflow.add_edge("apply_cooldown", END)

        return workflow.compile()

    def _filter_node(self, state: MatchGraphState) -> Dict[str, Any]:
        decisions: List[Optional[MatchDecision]] = [
            None if passes_threshold(j) else MatchDecision.REJECTED_BY_THRESHOLD
            for j in state["judgments"]
        ]
        return {"decisions": decisions}

    def _cooldown_node(self, state: MatchGraphState) -> Dict[str, Any]:
        now = state["timestamp"]
        decisions = list(state["decisions"])

        for index, judgment in enumerate(state["judgments"]):
            if decisions[index] is not None:
                continue

            decision = self.policy.decide(judgment, self.ledger, now)
            if decision is MatchDecision.ADMITTED:
                self.ledger.record(judgment.matched_name, now)
            else:
                logger.debug(f"Skipping {judgment.matched_name} due to cooldown.")
            decisions[index] = decision

        return {"decisions": decisions}

    def process(self, judgments: List[JudgmentResult], now: float) -> MatchOutcome:
        """
        Decide every judgment of one tick.

        Args:
            judgments: Oracle judgments in oracle order
            now: Decision time (UNIX seconds)

        Returns:
            MatchOutcome preserving oracle order
        """
        if not judgments:
            return MatchOutcome()

        result = self._graph.invoke({
            "judgments": list(judgments),
            "timestamp": now,
            "decisions": [],
        })

        return MatchOutcome(decisions=list(zip(result["judgments"], result["decisions"])))
